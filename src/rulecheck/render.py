# SPDX-License-Identifier: MIT
"""Report renderer: assemble the ComplianceReport, then emit Markdown or JSON.

Markdown follows the fixed section order of the standards documents:
Critical Violations, Recommendations, Suggestions, Indeterminate, Passed,
then the score footer. An optional banner line sits above everything.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import navi_sanitize

from rulecheck.diffing import DiffGenerator
from rulecheck.report import ComplianceReport, CoverageSummary, Finding, build_findings
from rulecheck.rules.base import Artifact, Status
from rulecheck.rules.catalog import RuleCatalog
from rulecheck.rules.config import DEFAULT_BANNERS
from rulecheck.rules.engine import AnalysisResult
from rulecheck.scoring import coverage, score
from rulecheck.severity import Severity

_SECTIONS: list[tuple[str, Severity]] = [
    ("Critical Violations", Severity.CRITICAL),
    ("Recommendations", Severity.RECOMMENDATION),
    ("Suggestions", Severity.SUGGESTION),
    ("Indeterminate", Severity.INDETERMINATE),
]

_BACKTICK_RUN_RE = re.compile(r"`+")


# --- Report assembly ---


def select_banner(
    categories: Iterable[str],
    banners: Iterable[tuple[str, str]] = DEFAULT_BANNERS,
) -> str | None:
    """Pick the banner for the finding categories present.

    Banners are checked in configured order and the first whose category is
    present wins. Category matching ignores case. Severity plays no part.
    """
    present = {c.casefold() for c in categories}
    for category, text in banners:
        if category.casefold() in present:
            return text
    return None


def build_report(
    artifact: Artifact,
    catalog: RuleCatalog,
    analysis: AnalysisResult,
    *,
    banners: Iterable[tuple[str, str]] = DEFAULT_BANNERS,
    diff_generator: DiffGenerator | None = None,
) -> ComplianceReport:
    """Assemble findings, score, coverage, and banner into a ComplianceReport."""
    findings = build_findings(artifact, catalog, analysis.outcomes, diff_generator)
    cov = coverage(analysis.outcomes, analysis.applicable_total)
    return ComplianceReport(
        artifact_id=artifact.artifact_id,
        domain_tag=artifact.domain_tag,
        score=score(analysis.outcomes),
        coverage=CoverageSummary(evaluated=cov.evaluated, total=cov.total),
        incomplete=analysis.incomplete,
        banner=select_banner((f.category for f in findings), banners),
        findings=tuple(findings),
        passed_rule_ids=tuple(o.rule_id for o in analysis.outcomes if o.status is Status.PASSED),
    )


# --- Markdown ---


def _escape_text(text: str) -> str:
    """Clean Unicode obfuscation, then escape HTML delimiters.

    Messages often quote markup (``<DIV>``); escaping keeps it visible
    instead of letting a Markdown viewer interpret it.
    """
    text = navi_sanitize.clean(text)
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _longest_backtick_run(text: str) -> int:
    return max((len(m) for m in _BACKTICK_RUN_RE.findall(text)), default=0)


def _code_span(text: str) -> str:
    ticks = "`" * (_longest_backtick_run(text) + 1)
    pad = " " if text.startswith("`") or text.endswith("`") else ""
    return f"{ticks}{pad}{text}{pad}{ticks}"


def _code_block(text: str, info: str = "") -> list[str]:
    fence = "`" * max(3, _longest_backtick_run(text) + 1)
    return [f"{fence}{info}", text.removesuffix("\n"), fence]


def format_score(value: float | str) -> str:
    return f"{value}%" if isinstance(value, float) else str(value)


def _format_finding(finding: Finding, domain_tag: str) -> list[str]:
    lines = [
        f"#### {_code_span(finding.rule_id)} \u00b7 {finding.level.value} \u00b7 "
        f"{_escape_text(finding.category)}",
        "",
        _escape_text(finding.message),
        "",
        f"- **Location:** {_code_span(finding.location)}",
    ]
    if finding.reason:
        lines.append(f"- **Reason:** {_escape_text(finding.reason)}")
    lines.append("")
    if finding.evidence_snippet:
        lines.extend(_code_block(finding.evidence_snippet, domain_tag))
        lines.append("")
    if finding.diff:
        lines.append("**Suggested fix:**")
        lines.append("")
        lines.extend(_code_block(finding.diff, "diff"))
        lines.append("")
    return lines


def render_markdown(report: ComplianceReport) -> str:
    """Render *report* as Markdown. Identical reports render identically."""
    lines: list[str] = []
    if report.banner:
        lines.append(report.banner)
        lines.append("")

    lines.append("## Compliance Report")
    lines.append("")
    lines.append(f"**Artifact:** {_code_span(report.artifact_id)} ({_escape_text(report.domain_tag)})")
    lines.append("")
    if report.incomplete:
        lines.append(
            "> \u26a0\ufe0f **Incomplete:** the run was cancelled before every rule was"
            " evaluated. Coverage below is partial."
        )
        lines.append("")

    for title, severity in _SECTIONS:
        lines.append(f"### {title}")
        lines.append("")
        section = report.by_severity(severity)
        if not section:
            lines.append("_None._")
            lines.append("")
        for finding in section:
            lines.extend(_format_finding(finding, report.domain_tag))

    lines.append("### Passed")
    lines.append("")
    if report.passed_rule_ids:
        lines.extend(f"- {_code_span(rule_id)}" for rule_id in report.passed_rule_ids)
    else:
        lines.append("_None._")
    lines.append("")

    lines.append("---")
    lines.append(
        f"Compliance score: {format_score(report.score)} "
        f"({report.coverage.evaluated}/{report.coverage.total} rules evaluated)"
    )
    return "\n".join(lines) + "\n"


# --- JSON ---


def render_json(report: ComplianceReport) -> str:
    """Render *report* as indented JSON with camelCase keys."""
    return report.model_dump_json(by_alias=True, indent=2) + "\n"
