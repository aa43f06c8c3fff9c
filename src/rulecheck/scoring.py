# SPDX-License-Identifier: MIT
"""Compliance score and coverage — pure reductions over an outcome list."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from rulecheck.rules.base import Outcome, Status

NOT_AVAILABLE: Literal["N/A"] = "N/A"

Score = float | Literal["N/A"]


@dataclass(frozen=True)
class Coverage:
    """Rules actually exercised (passed or failed) out of the applicable rules."""

    evaluated: int
    total: int

    @property
    def complete(self) -> bool:
        return self.evaluated == self.total

    def __str__(self) -> str:
        return f"{self.evaluated}/{self.total}"


def score(outcomes: Iterable[Outcome]) -> Score:
    """Percentage of exercised rules that passed, one decimal, rounded half up.

    NotApplicable and Indeterminate outcomes count in neither numerator nor
    denominator. When nothing was exercised the score is ``"N/A"``, never 0
    or 100.
    """
    counts = Counter(o.status for o in outcomes)
    passed = counts[Status.PASSED]
    exercised = passed + counts[Status.FAILED]
    if exercised == 0:
        return NOT_AVAILABLE
    pct = Decimal(100 * passed) / Decimal(exercised)
    return float(pct.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def coverage(outcomes: Iterable[Outcome], applicable_total: int) -> Coverage:
    """Exercised outcomes over *applicable_total*.

    *applicable_total* comes from the catalog, not the outcome list, so rules
    a cancelled run never reached still count against coverage.
    """
    evaluated = sum(1 for o in outcomes if o.status in (Status.PASSED, Status.FAILED))
    return Coverage(evaluated=evaluated, total=applicable_total)
