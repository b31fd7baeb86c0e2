# engine/stats.py: Rounded descriptive statistics.
"""Numeric primitives shared by the aggregation engine.

Every derived quantity is rounded half-up to 2 decimals at the point it
is produced.  Later steps reuse the rounded value (the standard
deviation is measured from the rounded mean, driver scores average the
rounded question means), so report numbers chain exactly.
"""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from schemas.taxonomy import MAX_SCORE, MIN_SCORE

_TWO_PLACES = Decimal("0.01")


def round2(value: float) -> float:
    """Round half-up to 2 decimal places (2.675 → 2.68, -1.005 → -1.01)."""
    return float(Decimal(repr(float(value))).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def valid_scores(values: Iterable[Optional[float]]) -> list[float]:
    """Drop missing (``None``) and NaN entries."""
    return [v for v in values if v is not None and not math.isnan(v)]


def mean(values: Iterable[Optional[float]]) -> float:
    valid = valid_scores(values)
    if not valid:
        return 0.0
    return round2(sum(valid) / len(valid))


def population_std_dev(values: Iterable[Optional[float]]) -> float:
    """Population standard deviation (divisor N) around the rounded mean."""
    valid = valid_scores(values)
    if not valid:
        return 0.0
    avg = mean(valid)
    variance = sum((v - avg) ** 2 for v in valid) / len(valid)
    return round2(math.sqrt(variance))


def distribution(values: Iterable[Optional[float]]) -> tuple[int, int, int, int, int]:
    """Counts of scores 1..5; index i holds the count of score i+1."""
    counts = [0] * (MAX_SCORE - MIN_SCORE + 1)
    for v in valid_scores(values):
        if MIN_SCORE <= v <= MAX_SCORE and v == int(v):
            counts[int(v) - MIN_SCORE] += 1
    return tuple(counts)  # type: ignore[return-value]
