# SPDX-License-Identifier: MIT
"""rulecheck — deterministic MUST/SHOULD/MAY compliance checks for source artifacts."""

from rulecheck.check import check_artifact, check_gate, infer_domain_tag, load_artifact
from rulecheck.diffing import DiffGenerator, apply_unified_diff, resolve_fix_template, unified_diff
from rulecheck.errors import CatalogError, ComplianceError, FatalError, PredicateError, RenderError
from rulecheck.render import build_report, render_json, render_markdown, select_banner
from rulecheck.report import ComplianceReport, Finding
from rulecheck.rules import (
    Analyzer,
    Artifact,
    Level,
    Rule,
    RuleCatalog,
    Status,
    load_catalog,
    merge,
)
from rulecheck.scoring import coverage, score
from rulecheck.severity import Severity, classify

__all__ = [
    "Analyzer",
    "Artifact",
    "CatalogError",
    "ComplianceError",
    "ComplianceReport",
    "DiffGenerator",
    "FatalError",
    "Finding",
    "Level",
    "PredicateError",
    "RenderError",
    "Rule",
    "RuleCatalog",
    "Severity",
    "Status",
    "apply_unified_diff",
    "build_report",
    "check_artifact",
    "check_gate",
    "classify",
    "coverage",
    "infer_domain_tag",
    "load_artifact",
    "load_catalog",
    "merge",
    "render_json",
    "render_markdown",
    "resolve_fix_template",
    "score",
    "select_banner",
    "unified_diff",
]
