# SPDX-License-Identifier: MIT
"""Rule model, catalogs, predicate registry, and the analyzer."""

from rulecheck.rules.base import (
    Artifact,
    CheckResult,
    DomainTags,
    Evidence,
    Level,
    Location,
    Outcome,
    Predicate,
    Rule,
    Status,
)
from rulecheck.rules.catalog import RuleCatalog, merge, merge_all
from rulecheck.rules.config import EngineConfig, load_config
from rulecheck.rules.context import EvaluationContext
from rulecheck.rules.engine import AnalysisResult, Analyzer
from rulecheck.rules.loader import RuleEntry, load_catalog, load_catalog_records
from rulecheck.rules.registry import PredicateRegistry, register_predicate, registry

__all__ = [
    "AnalysisResult",
    "Analyzer",
    "Artifact",
    "CheckResult",
    "DomainTags",
    "EngineConfig",
    "EvaluationContext",
    "Evidence",
    "Level",
    "Location",
    "Outcome",
    "Predicate",
    "PredicateRegistry",
    "Rule",
    "RuleCatalog",
    "RuleEntry",
    "Status",
    "load_catalog",
    "load_catalog_records",
    "load_config",
    "merge",
    "merge_all",
    "register_predicate",
    "registry",
]
