# SPDX-License-Identifier: MIT
"""Engine configuration — timeouts, concurrency, gate threshold, banners."""

from __future__ import annotations

import os
from dataclasses import dataclass

from rulecheck.severity import Severity

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_MAX_CONCURRENCY = 8

# Gate thresholds: a report fails the gate when any finding has one of these severities
FAIL_ON_THRESHOLDS: dict[str, frozenset[Severity]] = {
    "critical": frozenset({Severity.CRITICAL}),
    "recommendation": frozenset({Severity.CRITICAL, Severity.RECOMMENDATION}),
}

OUTPUT_FORMATS = ("md", "json")

DEFAULT_BANNERS: tuple[tuple[str, str], ...] = (
    ("Security", "\u26a0\ufe0f SECURITY WARNING"),
    ("Accessibility", "\U0001f6a8 CRITICAL"),
)


@dataclass(frozen=True)
class EngineConfig:
    """Resolved settings for one compliance run."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    fail_on: str = "critical"
    output_format: str = "md"
    banners: tuple[tuple[str, str], ...] = DEFAULT_BANNERS

    @property
    def timeout_seconds(self) -> float | None:
        """Per-rule budget in seconds; 0 disables the timeout."""
        return self.timeout_ms / 1000 if self.timeout_ms > 0 else None


def _choice(name: str, value: str, valid: tuple[str, ...] | list[str]) -> str:
    if value not in valid:
        msg = f"Unknown {name}: {value!r}. Valid values: {sorted(valid)}"
        raise ValueError(msg)
    return value


def _non_negative_int(name: str, value: int | str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        msg = f"{name} must be an integer, got {value!r}"
        raise ValueError(msg) from None
    if number < 0:
        msg = f"{name} must be >= 0, got {number}"
        raise ValueError(msg)
    return number


def load_config(
    *,
    timeout_ms: int | None = None,
    max_concurrency: int | None = None,
    fail_on: str | None = None,
    output_format: str | None = None,
    banners: tuple[tuple[str, str], ...] | None = None,
) -> EngineConfig:
    """Load engine config with CLI > env > default priority.

    Environment variables: ``RULECHECK_TIMEOUT_MS``,
    ``RULECHECK_MAX_CONCURRENCY``, ``RULECHECK_FAIL_ON``, ``RULECHECK_FORMAT``.

    Raises:
        ValueError: If a value is out of range or not a known choice.
    """
    timeout = _non_negative_int(
        "timeout",
        timeout_ms if timeout_ms is not None else os.environ.get("RULECHECK_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
    )
    concurrency = _non_negative_int(
        "max concurrency",
        max_concurrency
        if max_concurrency is not None
        else os.environ.get("RULECHECK_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY),
    )
    if concurrency < 1:
        raise ValueError("max concurrency must be >= 1")
    gate = _choice(
        "fail-on threshold",
        (fail_on or os.environ.get("RULECHECK_FAIL_ON", "critical")).lower(),
        list(FAIL_ON_THRESHOLDS),
    )
    fmt = _choice(
        "output format",
        (output_format or os.environ.get("RULECHECK_FORMAT", "md")).lower(),
        OUTPUT_FORMATS,
    )
    return EngineConfig(
        timeout_ms=timeout,
        max_concurrency=concurrency,
        fail_on=gate,
        output_format=fmt,
        banners=banners if banners is not None else DEFAULT_BANNERS,
    )
