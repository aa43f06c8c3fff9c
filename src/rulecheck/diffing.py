# SPDX-License-Identifier: MIT
"""Fix-template resolution, unified diff rendering, and diff application.

Fix templates use ``{{token}}`` placeholders filled from the evidence of a
failed rule:

    {{match}} / {{0}}   the whole offending snippet
    {{1}} ... {{n}}     positional capture groups
    {{name}}            named capture groups

Diffs are line based and only ever split on ``\\n``, so carriage returns and
other separators survive a render/apply round trip unchanged.
"""

from __future__ import annotations

import difflib
import re
from dataclasses import dataclass

from rulecheck.errors import RenderError
from rulecheck.rules.base import Evidence

_TOKEN_RE = re.compile(r"\{\{(\w+)\}\}")
_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+")
_NO_NEWLINE = "\\ No newline at end of file"


# --- Template resolution ---


def resolve_fix_template(template: str, evidence: Evidence) -> str:
    """Fill ``{{token}}`` placeholders from *evidence*.

    Raises:
        RenderError: If a token names no capture, or the capture is empty
            because its group did not participate in the match.
    """
    named = dict(evidence.named)

    def _lookup(match: re.Match[str]) -> str:
        token = match.group(1)
        if token in ("match", "0"):
            return evidence.snippet
        if token.isdecimal():
            index = int(token)
            if index > len(evidence.groups):
                msg = f"Fix template references group {index}, evidence has {len(evidence.groups)}"
                raise RenderError(msg)
            value = evidence.groups[index - 1]
        elif token in named:
            value = named[token]
        else:
            msg = f"Fix template token {{{{{token}}}}} is not resolvable from the evidence"
            raise RenderError(msg)
        if value is None:
            msg = f"Fix template token {{{{{token}}}}} matched nothing"
            raise RenderError(msg)
        return value

    return _TOKEN_RE.sub(_lookup, template)


# --- Diff rendering ---


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, keeping line endings."""
    return _LINE_RE.findall(text)


def _format_range(start: int, stop: int) -> str:
    """Unified diff range, same conventions as difflib."""
    beginning = start + 1
    length = stop - start
    if length == 1:
        return str(beginning)
    if not length:
        beginning -= 1
    return f"{beginning},{length}"


def _render_line(prefix: str, line: str) -> str:
    if line.endswith("\n"):
        return prefix + line
    return f"{prefix}{line}\n{_NO_NEWLINE}\n"


def unified_diff(
    original: str,
    target: str,
    *,
    context_lines: int = 3,
    path: str = "snippet",
) -> str:
    """Render a unified diff from *original* to *target*.

    Returns an empty string when the two are identical. Output is a pure
    function of the inputs.
    """
    a = split_lines(original)
    b = split_lines(target)
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)
    groups = list(matcher.get_grouped_opcodes(context_lines))
    if not groups:
        return ""

    out: list[str] = [f"--- a/{path}\n", f"+++ b/{path}\n"]
    for group in groups:
        first, last = group[0], group[-1]
        out.append(f"@@ -{_format_range(first[1], last[2])} +{_format_range(first[3], last[4])} @@\n")
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                out.extend(_render_line(" ", line) for line in a[i1:i2])
                continue
            if tag in ("replace", "delete"):
                out.extend(_render_line("-", line) for line in a[i1:i2])
            if tag in ("replace", "insert"):
                out.extend(_render_line("+", line) for line in b[j1:j2])
    return "".join(out)


class DiffGenerator:
    """Turns a rule's fix template plus failure evidence into a unified diff."""

    def __init__(self, context_lines: int = 3) -> None:
        self.context_lines = context_lines

    def diff(
        self,
        original: str,
        fix_template: str,
        evidence: Evidence | None = None,
        *,
        path: str = "snippet",
    ) -> str:
        """Diff *original* against the resolved *fix_template*.

        Raises:
            RenderError: If the template cannot be resolved from *evidence*.
        """
        evidence = evidence or Evidence(snippet=original)
        target = resolve_fix_template(fix_template, evidence)
        return unified_diff(original, target, context_lines=self.context_lines, path=path)


# --- Diff application ---


@dataclass(frozen=True)
class _Hunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[tuple[str, str]]  # (tag, line text including its newline, if any)


def _parse_hunks(diff_text: str) -> list[_Hunk]:
    hunks: list[_Hunk] = []
    current: _Hunk | None = None
    for raw in diff_text.split("\n"):
        header = _HUNK_HEADER_RE.match(raw)
        if header:
            current = _Hunk(
                old_start=int(header.group(1)),
                old_count=int(header.group(2) or "1"),
                new_start=int(header.group(3)),
                new_count=int(header.group(4) or "1"),
                lines=[],
            )
            hunks.append(current)
            continue
        if current is None:
            # File headers and preamble
            continue
        if raw == _NO_NEWLINE:
            if not current.lines:
                raise RenderError("No-newline marker without a preceding line")
            tag, text = current.lines[-1]
            current.lines[-1] = (tag, text.removesuffix("\n"))
            continue
        if not raw:
            continue
        tag, body = raw[0], raw[1:]
        if tag not in (" ", "-", "+"):
            msg = f"Unexpected line in diff hunk: {raw[:40]!r}"
            raise RenderError(msg)
        current.lines.append((tag, body + "\n"))
    return hunks


def apply_unified_diff(original: str, diff_text: str) -> str:
    """Apply a diff produced by ``unified_diff`` to *original*.

    Context and removed lines must match exactly.

    Raises:
        RenderError: On malformed diffs or content mismatch.
    """
    if not diff_text:
        return original
    src = split_lines(original)
    out: list[str] = []
    cursor = 0
    for hunk in _parse_hunks(diff_text):
        old_seen = sum(1 for tag, _ in hunk.lines if tag != "+")
        new_seen = sum(1 for tag, _ in hunk.lines if tag != "-")
        if old_seen != hunk.old_count or new_seen != hunk.new_count:
            msg = f"Hunk at line {hunk.old_start} does not match its header counts"
            raise RenderError(msg)
        start = hunk.old_start - 1 if hunk.old_count else hunk.old_start
        if start < cursor or start > len(src):
            msg = f"Hunk at line {hunk.old_start} is out of order or out of range"
            raise RenderError(msg)
        out.extend(src[cursor:start])
        cursor = start
        for tag, text in hunk.lines:
            if tag == "+":
                out.append(text)
                continue
            if cursor >= len(src) or src[cursor] != text:
                msg = f"Diff does not apply at line {cursor + 1}"
                raise RenderError(msg)
            if tag == " ":
                out.append(text)
            cursor += 1
    out.extend(src[cursor:])
    return "".join(out)
