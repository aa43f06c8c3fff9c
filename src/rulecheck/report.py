# SPDX-License-Identifier: MIT
"""Compliance report schema and finding construction.

The report is a frozen pydantic model. Its JSON form uses camelCase keys
(``artifactId``, ``passedRuleIds``) and is byte-stable for identical inputs.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from rulecheck.diffing import DiffGenerator
from rulecheck.errors import RenderError
from rulecheck.rules.base import Artifact, Level, Location, Outcome, Status
from rulecheck.rules.catalog import RuleCatalog
from rulecheck.severity import SEVERITY_RANK, Severity, classify

log = logging.getLogger(__name__)


class _ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Finding(_ReportModel):
    """A reportable, severity-classified Failed or Indeterminate outcome."""

    rule_id: str
    severity: Severity
    level: Level
    category: str
    location: str
    message: str
    reason: str | None = None
    evidence_snippet: str = ""
    diff: str | None = None


class CoverageSummary(_ReportModel):
    evaluated: int
    total: int


class ComplianceReport(_ReportModel):
    """Final result of one analysis run; consumed by the renderers."""

    artifact_id: str
    domain_tag: str
    score: float | Literal["N/A"]
    coverage: CoverageSummary
    incomplete: bool = False
    banner: str | None = None
    findings: tuple[Finding, ...] = ()
    passed_rule_ids: tuple[str, ...] = ()

    def by_severity(self, severity: Severity) -> list[Finding]:
        return [f for f in self.findings if f.severity == severity]


def _location_for(artifact: Artifact, location: Location | None) -> str:
    location = location or Location(artifact.artifact_id)
    if not location.path:
        location = dataclasses.replace(location, path=artifact.artifact_id)
    return str(location)


def build_findings(
    artifact: Artifact,
    catalog: RuleCatalog,
    outcomes: Iterable[Outcome],
    diff_generator: DiffGenerator | None = None,
) -> list[Finding]:
    """Classify *outcomes* and order the resulting findings by severity.

    Within a severity, findings keep evaluation order. A fix template that
    cannot be rendered drops the diff, never the finding.

    Raises:
        KeyError: If an outcome names a rule that is not in *catalog*.
    """
    diff_generator = diff_generator or DiffGenerator()
    findings: list[Finding] = []
    for outcome in outcomes:
        rule = catalog.get(outcome.rule_id)
        if rule is None:
            msg = f"Outcome for unknown rule {outcome.rule_id!r}"
            raise KeyError(msg)
        severity = classify(rule, outcome)
        if severity is None:
            continue

        if outcome.status is Status.INDETERMINATE:
            findings.append(
                Finding(
                    rule_id=rule.id,
                    severity=severity,
                    level=rule.level,
                    category=rule.category,
                    location=_location_for(artifact, None),
                    message=rule.description,
                    reason=outcome.reason,
                )
            )
            continue

        evidence = outcome.evidence
        snippet = evidence.snippet if evidence else ""
        diff: str | None = None
        if rule.fix_template is not None:
            try:
                diff = diff_generator.diff(
                    snippet,
                    rule.fix_template,
                    evidence,
                    path=artifact.artifact_id,
                ) or None
            except RenderError as exc:
                log.debug("No fix diff for %s: %s", rule.id, exc)
        findings.append(
            Finding(
                rule_id=rule.id,
                severity=severity,
                level=rule.level,
                category=rule.category,
                location=_location_for(artifact, evidence.location if evidence else None),
                message=(evidence.message if evidence else "") or rule.description,
                evidence_snippet=snippet,
                diff=diff,
            )
        )

    # sorted() is stable, so evaluation order survives within a severity
    return sorted(findings, key=lambda f: SEVERITY_RANK[f.severity])
