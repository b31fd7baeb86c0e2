# engine/projections.py: Ranked question subsets for the report.
"""Sorted / capped views of the question statistics.

Each report table takes the top ``REPORT_SECTION_SIZE`` questions of a
full stable sort and then regroups them by driver order.  All sorts are
stable, so ties keep question order.

Driver ranking quirk (preserved, the report depends on it): a driver
missing from ``DRIVER_ORDER`` ranks -1 and therefore sorts *before*
every known driver.
"""
from __future__ import annotations

from typing import Any, Sequence

from schemas.domain import QuestionStats
from schemas.taxonomy import DRIVER_ORDER

REPORT_SECTION_SIZE = 8


def driver_rank(driver: str) -> int:
    try:
        return DRIVER_ORDER.index(driver)
    except ValueError:
        return -1


def sort_by_driver_order(questions: Sequence[QuestionStats]) -> list[QuestionStats]:
    """Stable sort by driver priority; returns a new list."""
    return sorted(questions, key=lambda q: driver_rank(q.driver))


def _by_average_desc(stats: Sequence[QuestionStats]) -> list[QuestionStats]:
    return sorted(stats, key=lambda q: q.average, reverse=True)


def _by_std_dev_asc(stats: Sequence[QuestionStats]) -> list[QuestionStats]:
    return sorted(stats, key=lambda q: q.std_dev)


def most_aligned(stats: Sequence[QuestionStats]) -> list[QuestionStats]:
    """Lowest disagreement first (ascending std-dev), top 8, driver-grouped."""
    return sort_by_driver_order(_by_std_dev_asc(stats)[:REPORT_SECTION_SIZE])


def most_different(stats: Sequence[QuestionStats]) -> list[QuestionStats]:
    """Highest disagreement first (descending std-dev), top 8, driver-grouped."""
    ranked = sorted(stats, key=lambda q: q.std_dev, reverse=True)
    return sort_by_driver_order(ranked[:REPORT_SECTION_SIZE])


def highest_scoring(stats: Sequence[QuestionStats]) -> list[QuestionStats]:
    return sort_by_driver_order(_by_average_desc(stats)[:REPORT_SECTION_SIZE])


def lowest_scoring(stats: Sequence[QuestionStats]) -> list[QuestionStats]:
    # Reverse of the descending ranking, so equal averages come out in
    # reverse question order.
    ranked = list(reversed(_by_average_desc(stats)))
    return sort_by_driver_order(ranked[:REPORT_SECTION_SIZE])


def key_questions(stats: Sequence[QuestionStats]) -> dict[str, Any]:
    """Single extremal questions used as narrative context (uncapped).

    Keys: ``highest``, ``lowest``, ``most_aligned``, ``most_disagreed``;
    all ``None`` for an empty list.
    """
    if not stats:
        return {"highest": None, "lowest": None, "most_aligned": None, "most_disagreed": None}
    by_average = _by_average_desc(stats)
    by_std_dev = _by_std_dev_asc(stats)
    return {
        "highest": by_average[0],
        "lowest": by_average[-1],
        "most_aligned": by_std_dev[0],
        "most_disagreed": by_std_dev[-1],
    }
