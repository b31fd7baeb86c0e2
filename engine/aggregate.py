# engine/aggregate.py: Aggregation entry point.
"""Build the ``CalculatedDataset`` for one survey upload.

    raw rows ──► engine.likert (normalize) ──► Respondent[]
             ──► engine.scoring (question / driver / respondent stats)
             ──► engine.projections (report views)
             ──► CalculatedDataset (frozen)

The dataset is created once per call and never mutated afterwards; the
narrative and rendering layers only read it.  Safe to call concurrently
for independent inputs.
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from engine.likert import score_row
from engine.projections import (
    highest_scoring,
    key_questions,
    lowest_scoring,
    most_aligned,
    most_different,
)
from engine.scoring import (
    compute_driver_scores,
    compute_question_stats,
    compute_respondent_summaries,
    exclude_empty_respondents,
    find_extreme_drivers,
)
from question_packs.loader import SurveyConfig
from schemas.domain import CalculatedDataset, RawResponseRow, Respondent

_log = logging.getLogger(__name__)


def default_respondent_name(ordinal: int) -> str:
    return f"Respondent {ordinal}"


def build_respondents(config: SurveyConfig, rows: Iterable[RawResponseRow]) -> list[Respondent]:
    """Normalize raw rows into aligned respondents (empty ones included)."""
    respondents: list[Respondent] = []
    for ordinal, row in enumerate(rows, start=1):
        name = str(row.name).strip() if row.name is not None else ""
        name = name or default_respondent_name(ordinal)
        scores = score_row(
            row.cells,
            scale=config.likert_scale,
            respondent_ordinal=ordinal,
            name=name,
        )
        respondents.append(Respondent.aligned(name, scores, config.question_count))
    return respondents


def calculate_all(config: SurveyConfig, respondents: Sequence[Respondent]) -> CalculatedDataset:
    """Run every aggregation step and freeze the result.

    Raises ``ResponseAlignmentError`` only for a respondent whose score
    count differs from the question count.  Empty inputs produce a
    structurally complete dataset of zeros and ``None``.
    """
    for r in respondents:
        Respondent.aligned(r.name, r.scores, config.question_count)

    kept, excluded = exclude_empty_respondents(respondents)

    question_stats = compute_question_stats(config.questions, kept)
    driver_scores = compute_driver_scores(question_stats)
    strongest, weakest = find_extreme_drivers(driver_scores)
    summaries = compute_respondent_summaries(kept, question_stats, driver_scores)
    key = key_questions(question_stats)

    dataset = CalculatedDataset(
        questions=tuple(question_stats),
        driver_scores=driver_scores,
        strongest_driver=strongest,
        weakest_driver=weakest,
        respondents=tuple(summaries),
        highest_question=key["highest"],
        lowest_question=key["lowest"],
        most_aligned=key["most_aligned"],
        most_disagreed=key["most_disagreed"],
        sorted_by_alignment=tuple(most_aligned(question_stats)),
        sorted_by_difference=tuple(most_different(question_stats)),
        sorted_by_highest_score=tuple(highest_scoring(question_stats)),
        sorted_by_lowest_score=tuple(lowest_scoring(question_stats)),
        excluded_respondents=tuple(excluded),
    )
    _log.info(
        "Calculated statistics: %d respondents, %d questions, %d drivers",
        dataset.respondent_count, len(dataset.questions), len(dataset.driver_scores),
    )
    return dataset


def analyze_responses(config: SurveyConfig, rows: Iterable[RawResponseRow]) -> CalculatedDataset:
    """Normalize raw spreadsheet rows and aggregate them."""
    return calculate_all(config, build_respondents(config, rows))
