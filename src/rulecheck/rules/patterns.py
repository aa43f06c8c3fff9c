# SPDX-License-Identifier: MIT
"""Regex predicates — forbid or require a pattern in the artifact text."""

from __future__ import annotations

import re

from rulecheck.rules.base import Artifact, CheckResult, Evidence, Location
from rulecheck.rules.context import EvaluationContext

_FLAG_LETTERS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


def compile_pattern(pattern: str, flags: str = "") -> re.Pattern[str]:
    """Compile *pattern* with flags given as letters (``"im"``)."""
    value = 0
    for letter in flags:
        if letter not in _FLAG_LETTERS:
            msg = f"Unknown regex flag {letter!r}. Valid flags: {sorted(_FLAG_LETTERS)}"
            raise ValueError(msg)
        value |= _FLAG_LETTERS[letter]
    return re.compile(pattern, value)


def _position(text: str, offset: int) -> tuple[int, int]:
    """Convert a string offset into a 1-based (line, column)."""
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def forbid_pattern(pattern: str, flags: str = "", message: str = ""):
    """Fail on the first match of *pattern*.

    The evidence carries the matched text and its capture groups so a fix
    template can rebuild the replacement from them.
    """
    compiled = compile_pattern(pattern, flags)

    def _forbid(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
        match = compiled.search(artifact.content)
        if match is None:
            return CheckResult.passed()
        line, column = _position(artifact.content, match.start())
        return CheckResult.failed(
            Evidence(
                snippet=match.group(0),
                location=Location(artifact.path, line, column),
                message=message,
                groups=match.groups(),
                named=match.groupdict(),
            )
        )

    return _forbid


def require_pattern(pattern: str, flags: str = "", message: str = ""):
    """Fail when *pattern* never matches."""
    compiled = compile_pattern(pattern, flags)

    def _require(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
        if compiled.search(artifact.content) is not None:
            return CheckResult.passed()
        return CheckResult.failed(
            Evidence(
                snippet="",
                location=Location(artifact.path, 1, 1),
                message=message or f"Required pattern not found: {pattern}",
            )
        )

    return _require
