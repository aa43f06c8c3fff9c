# SPDX-License-Identifier: MIT
"""Catalog loading — JSON/YAML rule records into a validated RuleCatalog."""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rulecheck.errors import CatalogError
from rulecheck.rules.base import DomainTags, Level, Rule
from rulecheck.rules.catalog import RuleCatalog
from rulecheck.rules.registry import PredicateRegistry, registry

log = logging.getLogger(__name__)

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class RuleEntry(BaseModel):
    """One rule record as written in a catalog file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    level: Level
    category: str = Field(min_length=1)
    description: str
    applicability_tag: str | list[str] = "*"
    predicate_ref: str = Field(min_length=1)
    fix_template: str | None = None
    escalate: bool = False
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @property
    def tags(self) -> tuple[str, ...]:
        if isinstance(self.applicability_tag, str):
            return (self.applicability_tag,)
        return tuple(self.applicability_tag) or ("*",)


def _safe_error_summary(e: ValidationError) -> str:
    """Field paths and error codes only; raw catalog values are never echoed."""
    parts: list[str] = []
    for err in e.errors():
        loc = ".".join(str(loc) for loc in err["loc"])
        parts.append(f"{loc}: {err['type']}")
    return "; ".join(parts)


def _extract_records(data: Any, source: str) -> list[Any]:
    if data is None:
        return []
    if isinstance(data, Mapping):
        if "rules" not in data:
            raise CatalogError(source, ["top-level mapping has no 'rules' list"])
        data = data["rules"] or []
    if not isinstance(data, list):
        raise CatalogError(source, [f"expected a list of rules, got {type(data).__name__}"])
    return data


def _build_rule(entry: RuleEntry, source: str, predicates: PredicateRegistry) -> Rule:
    try:
        predicate = predicates.resolve(entry.predicate_ref, entry.params or None)
    except Exception as exc:  # user factories may raise anything
        raise CatalogError(source, [f"rule {entry.id!r}: {exc}"]) from exc
    return Rule(
        id=entry.id,
        level=entry.level,
        category=entry.category,
        description=entry.description,
        predicate=predicate,
        applicability=DomainTags(entry.tags),
        fix_template=entry.fix_template,
        escalate=entry.escalate,
        predicate_ref=entry.predicate_ref,
    )


def load_catalog_records(
    records: Iterable[Any],
    *,
    source: str = "<memory>",
    predicates: PredicateRegistry | None = None,
) -> RuleCatalog:
    """Validate raw rule records and build a catalog from them.

    Raises:
        CatalogError: On malformed records, duplicate ids within *records*,
            or unresolvable predicates.
    """
    predicates = predicates or registry
    entries: list[RuleEntry] = []
    problems: list[str] = []
    for index, record in enumerate(records):
        try:
            entries.append(RuleEntry.model_validate(record))
        except ValidationError as exc:
            problems.append(f"rule #{index}: {_safe_error_summary(exc)}")
    if problems:
        raise CatalogError(source, problems)

    dupes = sorted(i for i, n in Counter(e.id for e in entries).items() if n > 1)
    if dupes:
        raise CatalogError(source, [f"duplicate rule id {d!r}" for d in dupes])

    rules = [_build_rule(e, source, predicates) for e in entries]
    log.debug("Loaded %d rules from %s", len(rules), source)
    return RuleCatalog.from_rules(rules, source=source)


def load_catalog(path: Path | str, *, predicates: PredicateRegistry | None = None) -> RuleCatalog:
    """Load a catalog file (JSON, or YAML by ``.yaml``/``.yml`` suffix).

    Raises:
        CatalogError: If the file is unreadable, unparseable, or invalid.
    """
    path = Path(path)
    source = str(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CatalogError(source, [f"cannot read catalog: {exc}"]) from exc

    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise CatalogError(source, [f"cannot parse catalog: {exc}"]) from exc

    return load_catalog_records(_extract_records(data, source), source=source, predicates=predicates)
