# SPDX-License-Identifier: MIT
"""Rule level, outcome status, value types, and the Predicate protocol."""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rulecheck.rules.context import EvaluationContext


class Level(StrEnum):
    """Compliance level of a rule, as written in the standards documents."""

    MUST = "MUST"
    SHOULD = "SHOULD"
    MAY = "MAY"


class Status(StrEnum):
    """Terminal state of one rule evaluation."""

    PASSED = "Passed"
    FAILED = "Failed"
    NOT_APPLICABLE = "NotApplicable"
    INDETERMINATE = "Indeterminate"


@dataclass(frozen=True)
class Artifact:
    """The immutable source text being checked."""

    content: str
    domain_tag: str
    path: str = ""

    @property
    def artifact_id(self) -> str:
        """Path when known, otherwise a content digest."""
        if self.path:
            return self.path
        digest = hashlib.sha256(self.content.encode()).hexdigest()[:12]
        return f"sha256:{digest}"


@dataclass(frozen=True)
class Location:
    """Where in an artifact a piece of evidence was found."""

    path: str
    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        text = self.path or "<artifact>"
        if self.line is not None:
            text += f":{self.line}"
            if self.column is not None:
                text += f":{self.column}"
        return text


@dataclass(frozen=True)
class Evidence:
    """What a failing predicate saw: the offending snippet and its captures."""

    snippet: str
    location: Location | None = None
    message: str = ""
    groups: tuple[str | None, ...] = ()
    named: tuple[tuple[str, str | None], ...] = ()

    def __post_init__(self) -> None:
        # Mappings are frozen into sorted pairs so evidence stays hashable
        if isinstance(self.named, Mapping):
            object.__setattr__(self, "named", tuple(sorted(self.named.items())))


@dataclass(frozen=True)
class CheckResult:
    """Value returned by a predicate: Passed, Failed(evidence) or NotApplicable."""

    status: Status
    evidence: Evidence | None = None

    @classmethod
    def passed(cls) -> CheckResult:
        return cls(Status.PASSED)

    @classmethod
    def failed(cls, evidence: Evidence) -> CheckResult:
        return cls(Status.FAILED, evidence)

    @classmethod
    def not_applicable(cls) -> CheckResult:
        return cls(Status.NOT_APPLICABLE)


@dataclass(frozen=True)
class Outcome:
    """Per-rule result of one analysis run. Created once, never mutated."""

    rule_id: str
    status: Status
    evidence: Evidence | None = None
    reason: str | None = None


@runtime_checkable
class Predicate(Protocol):
    """Pure check of an artifact. Must not mutate shared state."""

    def __call__(self, artifact: Artifact, ctx: EvaluationContext) -> CheckResult | bool: ...


@dataclass(frozen=True)
class DomainTags:
    """Applicability over domain tags. ``*`` matches every domain."""

    tags: tuple[str, ...] = ("*",)

    def __call__(self, domain_tag: str) -> bool:
        wanted = {t.strip().casefold() for t in self.tags}
        return "*" in wanted or domain_tag.strip().casefold() in wanted


@dataclass(frozen=True)
class Rule:
    """One checkable requirement.

    ``description`` is what the standard states; ``predicate`` is what is
    actually checked. The two are never conflated.
    """

    id: str
    level: Level
    category: str
    description: str
    predicate: Predicate
    applicability: Callable[[str], bool] = DomainTags()
    fix_template: str | None = None
    escalate: bool = False
    predicate_ref: str = ""

    def applies_to(self, domain_tag: str) -> bool:
        return bool(self.applicability(domain_tag))
