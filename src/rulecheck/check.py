# SPDX-License-Identifier: MIT
"""Compliance pipeline: artifact loading, analysis, report assembly, and gating."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from rulecheck.errors import FatalError
from rulecheck.render import build_report
from rulecheck.report import ComplianceReport
from rulecheck.rules.base import Artifact
from rulecheck.rules.catalog import RuleCatalog
from rulecheck.rules.config import FAIL_ON_THRESHOLDS, EngineConfig
from rulecheck.rules.engine import Analyzer

log = logging.getLogger(__name__)

_DOMAIN_BY_SUFFIX: dict[str, str] = {
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".scss": "css",
    ".sql": "sql",
    ".php": "php",
    ".js": "js",
    ".mjs": "js",
    ".cjs": "js",
    ".ts": "ts",
    ".vue": "vue",
    ".py": "py",
    ".md": "md",
}


def infer_domain_tag(path: Path | str) -> str:
    """Map a file extension to a domain tag; unknown extensions are ``text``."""
    return _DOMAIN_BY_SUFFIX.get(Path(path).suffix.lower(), "text")


def load_artifact(path: Path | str, domain_tag: str | None = None) -> Artifact:
    """Read a UTF-8 artifact from disk.

    Raises:
        FatalError: If the file cannot be read or decoded.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Artifact unreadable: {path}: {exc}"
        raise FatalError(msg) from exc
    return Artifact(
        content=content,
        domain_tag=domain_tag or infer_domain_tag(path),
        path=path.as_posix(),
    )


def check_artifact(
    artifact: Artifact,
    catalog: RuleCatalog,
    config: EngineConfig | None = None,
    *,
    cancel_event: threading.Event | None = None,
) -> ComplianceReport:
    """Run the whole pipeline for one artifact.

    Per-rule failures end up in the report. Only a fatal condition raises.

    Raises:
        FatalError: If *catalog* holds no rules.
    """
    config = config or EngineConfig()
    if len(catalog) == 0:
        msg = f"Catalog {catalog.source} is empty; nothing to check"
        raise FatalError(msg)

    analyzer = Analyzer(max_concurrency=config.max_concurrency)
    analysis = analyzer.analyze(
        artifact,
        catalog,
        config.timeout_seconds,
        cancel_event=cancel_event,
    )
    report = build_report(artifact, catalog, analysis, banners=config.banners)
    log.info(
        "%s: score=%s coverage=%d/%d findings=%d",
        report.artifact_id,
        report.score,
        report.coverage.evaluated,
        report.coverage.total,
        len(report.findings),
    )
    return report


def check_gate(report: ComplianceReport, fail_on: str = "critical") -> bool:
    """Return True if any finding meets the *fail_on* threshold.

    Raises:
        ValueError: If *fail_on* is not a known threshold.
    """
    if fail_on not in FAIL_ON_THRESHOLDS:
        msg = f"Unknown fail-on threshold: {fail_on!r}. Valid: {sorted(FAIL_ON_THRESHOLDS)}"
        raise ValueError(msg)
    gating = FAIL_ON_THRESHOLDS[fail_on]
    return any(f.severity in gating for f in report.findings)
