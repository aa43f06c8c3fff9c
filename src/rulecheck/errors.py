# SPDX-License-Identifier: MIT
"""Error taxonomy for the compliance engine.

Only ``CatalogError`` and ``FatalError`` stop a run. Predicate failures,
timeouts and broken fix templates are recorded in the report as data.
"""

from __future__ import annotations


class ComplianceError(Exception):
    """Base class for every error raised by rulecheck."""


class CatalogError(ComplianceError):
    """Raised when a raw catalog is malformed or repeats a rule id."""

    def __init__(self, source: str, problems: list[str]) -> None:
        self.source = source
        self.problems = problems
        super().__init__(f"Invalid catalog {source}: {'; '.join(problems)}")


class PredicateError(ComplianceError):
    """Raised by a predicate that cannot reach a verdict."""


class RenderError(ComplianceError):
    """Raised when a fix template or diff cannot be resolved."""


class FatalError(ComplianceError):
    """Raised when a run cannot start (unreadable artifact, empty catalog)."""
