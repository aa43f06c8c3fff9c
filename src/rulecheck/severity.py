# SPDX-License-Identifier: MIT
"""Severity classifier — fixed mapping from (rule level, outcome) to report severity."""

from __future__ import annotations

from enum import StrEnum

from rulecheck.rules.base import Level, Outcome, Rule, Status


class Severity(StrEnum):
    CRITICAL = "Critical"
    RECOMMENDATION = "Recommendation"
    SUGGESTION = "Suggestion"
    INDETERMINATE = "Indeterminate"


# Report ordering: lower ranks first
SEVERITY_RANK: dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.RECOMMENDATION: 1,
    Severity.SUGGESTION: 2,
    Severity.INDETERMINATE: 3,
}

_LEVEL_SEVERITY: dict[Level, Severity] = {
    Level.MUST: Severity.CRITICAL,
    Level.SHOULD: Severity.RECOMMENDATION,
    Level.MAY: Severity.SUGGESTION,
}


def classify(rule: Rule, outcome: Outcome) -> Severity | None:
    """Return the finding severity for *outcome*, or None when it is not a finding.

    Indeterminate outcomes are always reported, whatever the level, so that
    incomplete coverage is never hidden. ``escalate`` is the only way a
    failure is raised above its level's severity.
    """
    if outcome.status is Status.INDETERMINATE:
        return Severity.INDETERMINATE
    if outcome.status is not Status.FAILED:
        return None
    if rule.escalate:
        return Severity.CRITICAL
    return _LEVEL_SEVERITY[rule.level]
