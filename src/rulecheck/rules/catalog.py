# SPDX-License-Identifier: MIT
"""Rule catalog — an immutable, ordered, deduplicated collection of rules."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator
from functools import reduce

from rulecheck.errors import CatalogError
from rulecheck.rules.base import Rule


class RuleCatalog:
    """Ordered rules keyed by id.

    Catalogs are values: ``merge`` returns a new catalog and never touches
    its inputs. There is no global catalog.
    """

    def __init__(self, rules: Iterable[Rule] = (), *, source: str = "<memory>") -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._by_id: dict[str, Rule] = {r.id: r for r in self._rules}
        self.source = source
        if len(self._by_id) != len(self._rules):
            # Only reachable by bypassing from_rules(); keep the invariant anyway
            dupes = sorted(i for i, n in Counter(r.id for r in self._rules).items() if n > 1)
            raise CatalogError(source, [f"duplicate rule id {d!r}" for d in dupes])

    @classmethod
    def from_rules(cls, rules: Iterable[Rule], *, source: str = "<memory>") -> RuleCatalog:
        """Build a raw catalog from one load operation.

        Raises:
            CatalogError: If a rule id is declared more than once.
        """
        return cls(rules, source=source)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def __repr__(self) -> str:
        return f"RuleCatalog(source={self.source!r}, rules={len(self._rules)})"

    @property
    def ids(self) -> list[str]:
        return [r.id for r in self._rules]

    def get(self, rule_id: str) -> Rule | None:
        return self._by_id.get(rule_id)

    def applicable_to(self, domain_tag: str) -> list[Rule]:
        """Return rules whose applicability accepts *domain_tag*, in catalog order."""
        return [r for r in self._rules if r.applies_to(domain_tag)]


def merge(first: RuleCatalog, second: RuleCatalog) -> RuleCatalog:
    """Compose two catalogs; on an id collision the second catalog wins.

    The overriding rule takes the position of the rule it replaces, so
    ordering stays stable across overrides.
    """
    merged: dict[str, Rule] = {r.id: r for r in first}
    for rule in second:
        merged[rule.id] = rule
    return RuleCatalog(merged.values(), source=f"{first.source}+{second.source}")


def merge_all(*catalogs: RuleCatalog) -> RuleCatalog:
    """Fold ``merge`` left to right. Later catalogs override earlier ones."""
    if not catalogs:
        return RuleCatalog()
    return reduce(merge, catalogs)
