# SPDX-License-Identifier: MIT
"""Property-based fuzz tests for the diff generator, diff applier, and fix templates.

Uses hypothesis to generate random inputs and verify that a rendered diff
always applies back to its target, and that template and diff parsing fail
only with RenderError.
"""

from __future__ import annotations

import os

from hypothesis import given, settings
from hypothesis import strategies as st

from rulecheck.diffing import apply_unified_diff, resolve_fix_template, unified_diff
from rulecheck.errors import RenderError
from rulecheck.rules.base import Evidence

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

# CI runs 1k examples; set FUZZ_SLOW=1 for 10k (local deep run)
_MAX_EXAMPLES = 10_000 if os.environ.get("FUZZ_SLOW") else 1_000

# Few distinct lines so diffs have plenty of shared context
_LINE = st.sampled_from(["<div>", "<DIV>", "</div>", "", "  x", "y\r", "\t", "@@ -1 +1 @@", "\\"])

_TEXT = st.builds(
    lambda lines, trailing: "\n".join(lines) + ("\n" if trailing and lines else ""),
    st.lists(_LINE, max_size=12),
    st.booleans(),
)

_ANY_TEXT = st.text(max_size=200)

_TEMPLATE = st.builds(
    lambda parts: "".join(parts),
    st.lists(
        st.one_of(
            st.text(max_size=10),
            st.sampled_from(["{{match}}", "{{0}}", "{{1}}", "{{2}}", "{{tag}}", "{{}}", "{{ 1 }}"]),
        ),
        max_size=6,
    ),
)

_EVIDENCE = st.builds(
    lambda snippet, groups, named: Evidence(snippet, groups=tuple(groups), named=named),
    st.text(max_size=20),
    st.lists(st.one_of(st.none(), st.text(max_size=8)), max_size=2),
    st.dictionaries(st.sampled_from(["tag", "value"]), st.one_of(st.none(), st.text(max_size=8))),
)


# ---------------------------------------------------------------------------
# Fuzz: unified_diff + apply_unified_diff round trip
# ---------------------------------------------------------------------------


@given(original=_TEXT, target=_TEXT, context=st.integers(min_value=0, max_value=4))
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_diff_roundtrip_structured(original: str, target: str, context: int) -> None:
    """Applying the rendered diff to the original always yields the target."""
    diff = unified_diff(original, target, context_lines=context)
    assert apply_unified_diff(original, diff) == target


@given(original=_ANY_TEXT, target=_ANY_TEXT)
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_diff_roundtrip_arbitrary(original: str, target: str) -> None:
    """Round trip holds for arbitrary Unicode, including CR and other separators."""
    diff = unified_diff(original, target)
    assert apply_unified_diff(original, diff) == target
    assert (diff == "") == (original == target)


# ---------------------------------------------------------------------------
# Fuzz: apply_unified_diff on junk, RenderError or a string only
# ---------------------------------------------------------------------------


@given(original=_ANY_TEXT, diff_text=_ANY_TEXT)
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_apply_arbitrary(original: str, diff_text: str) -> None:
    """apply_unified_diff never crashes with anything but RenderError."""
    try:
        result = apply_unified_diff(original, diff_text)
    except RenderError:
        return
    assert isinstance(result, str)


# ---------------------------------------------------------------------------
# Fuzz: resolve_fix_template
# ---------------------------------------------------------------------------


@given(template=_TEMPLATE, evidence=_EVIDENCE)
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_resolve_fix_template(template: str, evidence: Evidence) -> None:
    """Template resolution returns a string or raises RenderError."""
    try:
        result = resolve_fix_template(template, evidence)
    except RenderError:
        return
    assert isinstance(result, str)
