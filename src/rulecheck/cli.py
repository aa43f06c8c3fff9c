# SPDX-License-Identifier: MIT
"""Command line entry point: ``compliance-check <artifact> --catalog FILE``.

Exit codes: 0 when no finding meets the gate, 1 when one does, 2 on a
catalog, usage, or fatal error. Reports go to stdout (or ``--output``);
diagnostics go to stderr.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from rulecheck.check import check_artifact, check_gate, load_artifact
from rulecheck.errors import CatalogError, FatalError
from rulecheck.render import render_json, render_markdown
from rulecheck.rules.catalog import merge_all
from rulecheck.rules.config import FAIL_ON_THRESHOLDS, OUTPUT_FORMATS, load_config
from rulecheck.rules.loader import load_catalog

EXIT_OK = 0
EXIT_GATE_FAILED = 1
EXIT_ERROR = 2


def _parse_banner(value: str) -> tuple[str, str]:
    category, sep, text = value.partition("=")
    if not sep or not category.strip() or not text.strip():
        msg = f"expected CATEGORY=TEXT, got {value!r}"
        raise argparse.ArgumentTypeError(msg)
    return category.strip(), text.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compliance-check",
        description="Check an artifact against MUST/SHOULD/MAY rule catalogs",
    )
    parser.add_argument("artifact", type=Path, help="File to check")
    parser.add_argument(
        "--catalog",
        action="append",
        type=Path,
        required=True,
        metavar="FILE",
        help="Rule catalog (JSON or YAML). Repeat to merge; later catalogs win",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=None,
        help="Report format (overrides RULECHECK_FORMAT env var)",
    )
    parser.add_argument(
        "--fail-on",
        choices=sorted(FAIL_ON_THRESHOLDS),
        default=None,
        help="Lowest severity that fails the run (overrides RULECHECK_FAIL_ON env var)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        metavar="MS",
        help="Per-rule timeout in milliseconds, 0 to disable (overrides RULECHECK_TIMEOUT_MS)",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        metavar="N",
        help="Rules evaluated in parallel (overrides RULECHECK_MAX_CONCURRENCY)",
    )
    parser.add_argument(
        "--domain",
        default=None,
        metavar="TAG",
        help="Domain tag; inferred from the file extension when omitted",
    )
    parser.add_argument(
        "--banner",
        action="append",
        type=_parse_banner,
        default=None,
        metavar="CATEGORY=TEXT",
        help="Banner shown when a finding has CATEGORY. Repeat in priority order",
    )
    parser.add_argument("--output", type=Path, default=None, metavar="FILE", help="Write the report here")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on stderr")
    return parser


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.environ.get("RULECHECK_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _error(message: str) -> int:
    print(f"::error::{message}", file=sys.stderr)
    return EXIT_ERROR


def main(argv: list[str] | None = None) -> int:
    """Run one compliance check and return the process exit code."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = load_config(
            timeout_ms=args.timeout,
            max_concurrency=args.max_concurrency,
            fail_on=args.fail_on,
            output_format=args.format,
            banners=tuple(args.banner) if args.banner else None,
        )
    except ValueError as exc:
        return _error(f"Invalid configuration: {exc}")

    try:
        catalog = merge_all(*(load_catalog(path) for path in args.catalog))
        artifact = load_artifact(args.artifact, args.domain)
        report = check_artifact(artifact, catalog, config)
    except (CatalogError, FatalError) as exc:
        return _error(str(exc))

    rendered = render_json(report) if config.output_format == "json" else render_markdown(report)
    if args.output is not None:
        try:
            args.output.write_text(rendered, encoding="utf-8")
        except OSError as exc:
            return _error(f"Cannot write report to {args.output}: {exc}")
    else:
        sys.stdout.write(rendered)

    if check_gate(report, config.fail_on):
        print(
            f"::error::Compliance gate failed (fail-on: {config.fail_on})",
            file=sys.stderr,
        )
        return EXIT_GATE_FAILED
    return EXIT_OK
