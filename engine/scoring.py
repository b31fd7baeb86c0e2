# engine/scoring.py
"""Deterministic aggregation: team, driver and respondent statistics.

Every function here is pure: no I/O, no mutation of its inputs, and the
same input always yields the same rounded output.  "No data" never
raises; it degrades to zeros / ``None`` so the report renders uniformly.

Tie-breaking for strongest / weakest drivers is first-seen: scan in
iteration order and only replace on a strictly greater (or strictly
smaller) score.  The same rule applies to each respondent's highest /
lowest driver.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Mapping, Sequence

from engine.stats import distribution, mean, population_std_dev, round2, valid_scores
from schemas.domain import (
    DriverExtreme,
    OutlierQuestion,
    QuestionStats,
    Respondent,
    RespondentSummary,
)
from schemas.taxonomy import QuestionDefinition

_log = logging.getLogger(__name__)

# A respondent score this far from the team average (either direction)
# flags the question as an outlier for that respondent.  Inclusive.
OUTLIER_THRESHOLD = 1.5


# ── Respondent filtering ──────────────────────────────────────────

def exclude_empty_respondents(
    respondents: Iterable[Respondent],
) -> tuple[list[Respondent], list[str]]:
    """Split off respondents with no valid score at all.

    Returns ``(kept, excluded_names)``.  Exclusion is not an error; each
    dropped respondent is logged for operators.
    """
    kept: list[Respondent] = []
    excluded: list[str] = []
    for r in respondents:
        if r.valid_score_count == 0:
            _log.warning("Skipping respondent %r: no valid scores found", r.name)
            excluded.append(r.name)
        else:
            kept.append(r)
    if excluded:
        _log.info("Excluded %d respondent(s) without valid scores", len(excluded))
    return kept, excluded


# ── Team-level statistics ─────────────────────────────────────────

def compute_question_stats(
    questions: Sequence[QuestionDefinition],
    respondents: Sequence[Respondent],
) -> list[QuestionStats]:
    """Average, population std-dev and distribution for every question.

    Only non-missing scores at the question's position are used; a gap
    in one question never affects another.
    """
    stats: list[QuestionStats] = []
    for position, q in enumerate(questions):
        responses = [r.scores[position] for r in respondents]
        stats.append(QuestionStats(
            index=q.index,
            driver=q.driver,
            skill=q.skill,
            text=q.text,
            average=mean(responses),
            std_dev=population_std_dev(responses),
            distribution=distribution(responses),
            response_count=len(valid_scores(responses)),
        ))
    return stats


def compute_driver_scores(question_stats: Iterable[QuestionStats]) -> dict[str, float]:
    """Mean of the (rounded) question averages, per driver.

    Keys follow first-seen order.  A driver whose questions have no
    answers still appears, its zero averages included.
    """
    groups: dict[str, list[float]] = defaultdict(list)
    for q in question_stats:
        groups[q.driver].append(q.average)
    return {driver: mean(averages) for driver, averages in groups.items()}


def _first_seen_extremes(
    scores: Mapping[str, float],
) -> tuple[DriverExtreme | None, DriverExtreme | None]:
    items = iter(scores.items())
    first = next(items, None)
    if first is None:
        return None, None

    high_name, high_score = first
    low_name, low_score = first
    for name, score in items:
        if score > high_score:
            high_name, high_score = name, score
        if score < low_score:
            low_name, low_score = name, score
    return DriverExtreme(high_name, high_score), DriverExtreme(low_name, low_score)


def find_extreme_drivers(
    driver_scores: Mapping[str, float],
) -> tuple[DriverExtreme | None, DriverExtreme | None]:
    """Return ``(strongest, weakest)``; both ``None`` when there are no drivers."""
    return _first_seen_extremes(driver_scores)


# ── Per-respondent statistics ─────────────────────────────────────

def is_outlier(score: float, team_average: float) -> bool:
    return abs(score - team_average) >= OUTLIER_THRESHOLD


def _respondent_driver_scores(
    respondent: Respondent,
    question_stats: Sequence[QuestionStats],
) -> dict[str, float]:
    groups: dict[str, list[int]] = defaultdict(list)
    for position, q in enumerate(question_stats):
        score = respondent.scores[position]
        if score is not None:
            groups[q.driver].append(score)
    return {driver: mean(scores) for driver, scores in groups.items()}


def _outlier_questions(
    respondent: Respondent,
    question_stats: Sequence[QuestionStats],
) -> tuple[OutlierQuestion, ...]:
    outliers: list[OutlierQuestion] = []
    for position, q in enumerate(question_stats):
        score = respondent.scores[position]
        if score is None or not is_outlier(score, q.average):
            continue
        outliers.append(OutlierQuestion(
            question_index=q.index,
            question=q.text,
            respondent_score=score,
            team_average=q.average,
            difference=round2(score - q.average),
        ))
    return tuple(outliers)


def compute_respondent_summaries(
    respondents: Sequence[Respondent],
    question_stats: Sequence[QuestionStats],
    driver_scores: Mapping[str, float],
) -> list[RespondentSummary]:
    """Per-respondent averages, driver extremes and outlier questions.

    Outliers compare each answer against the *team* average held in
    ``question_stats`` (already rounded).  A respondent's driver means
    only cover drivers they answered at least once.
    """
    summaries: list[RespondentSummary] = []
    for r in respondents:
        own_drivers = _respondent_driver_scores(r, question_stats)
        highest, lowest = _first_seen_extremes(own_drivers)
        summaries.append(RespondentSummary(
            name=r.name,
            scores=r.scores,
            overall_average=mean(r.scores),
            driver_scores=own_drivers,
            highest_driver=highest,
            lowest_driver=lowest,
            outlier_questions=_outlier_questions(r, question_stats),
        ))
    return summaries
