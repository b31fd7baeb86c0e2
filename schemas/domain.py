"""Core domain types: shared contracts used across the assessment pipeline.

Everything the aggregation engine produces is a frozen dataclass.  The
narrative and rendering layers only read these values; ``to_dict()``
gives the nested key/value shape they are handed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence


Score = Optional[int]   # 1..5, or None for a missing / unmatched answer


class ResponseAlignmentError(ValueError):
    """Raised when a respondent's scores do not line up with the question list."""


# ── Raw row: one decoded spreadsheet row before normalization ────
@dataclass(frozen=True)
class RawResponseRow:
    """Display name (may be blank) plus the raw answer cells, in question order."""
    name: str | None
    cells: tuple[Any, ...]


# ── Respondent: one spreadsheet row after normalization ──────────
@dataclass(frozen=True)
class Respondent:
    """A respondent and their positionally aligned scores.

    ``scores[i]`` answers ``questions[i]``.  Build through ``aligned()``
    whenever the question count is known so a short or long row fails
    loudly instead of shifting every later answer by one column.
    """
    name: str
    scores: tuple[Score, ...]

    @classmethod
    def aligned(cls, name: str, scores: Sequence[Score], question_count: int) -> Respondent:
        if len(scores) != question_count:
            raise ResponseAlignmentError(
                f"Respondent {name!r} has {len(scores)} scores, "
                f"expected {question_count} (one per question)"
            )
        return cls(name=name, scores=tuple(scores))

    @property
    def valid_score_count(self) -> int:
        return sum(1 for s in self.scores if s is not None)


# ── Per-question statistics ───────────────────────────────────────
@dataclass(frozen=True)
class QuestionStats:
    index: int
    driver: str
    skill: str
    text: str
    average: float
    std_dev: float
    distribution: tuple[int, int, int, int, int]
    response_count: int = 0

    @property
    def competency(self) -> str:
        return f"{self.skill}: {self.text}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "driver": self.driver,
            "skill": self.skill,
            "text": self.text,
            "average": self.average,
            "stdDev": self.std_dev,
            "distribution": list(self.distribution),
            "responseCount": self.response_count,
        }


@dataclass(frozen=True)
class DriverExtreme:
    """A driver name paired with its score (strongest / weakest / highest / lowest)."""
    name: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "score": self.score}


@dataclass(frozen=True)
class OutlierQuestion:
    question_index: int
    question: str
    respondent_score: int
    team_average: float
    difference: float           # respondent_score - team_average, signed

    def to_dict(self) -> dict[str, Any]:
        return {
            "questionIndex": self.question_index,
            "question": self.question,
            "respondentScore": self.respondent_score,
            "teamAverage": self.team_average,
            "difference": self.difference,
        }


@dataclass(frozen=True)
class RespondentSummary:
    name: str
    scores: tuple[Score, ...]
    overall_average: float
    driver_scores: Mapping[str, float]
    highest_driver: DriverExtreme | None
    lowest_driver: DriverExtreme | None
    outlier_questions: tuple[OutlierQuestion, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "driver_scores", MappingProxyType(dict(self.driver_scores)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "scores": list(self.scores),
            "overallAverage": self.overall_average,
            "driverScores": dict(self.driver_scores),
            "highestDriver": _extreme_dict(self.highest_driver),
            "lowestDriver": _extreme_dict(self.lowest_driver),
            "outlierQuestions": [o.to_dict() for o in self.outlier_questions],
        }


# ── The engine's single output artifact ───────────────────────────
@dataclass(frozen=True)
class CalculatedDataset:
    """Complete, immutable statistics for one uploaded survey.

    ``questions`` keeps the original question order; the four
    ``sorted_by_*`` projections hold at most 8 entries each and are
    already grouped by driver order for the report tables.
    """
    questions: tuple[QuestionStats, ...]
    driver_scores: Mapping[str, float]
    strongest_driver: DriverExtreme | None
    weakest_driver: DriverExtreme | None
    respondents: tuple[RespondentSummary, ...]
    highest_question: QuestionStats | None = None
    lowest_question: QuestionStats | None = None
    most_aligned: QuestionStats | None = None
    most_disagreed: QuestionStats | None = None
    sorted_by_alignment: tuple[QuestionStats, ...] = ()
    sorted_by_difference: tuple[QuestionStats, ...] = ()
    sorted_by_highest_score: tuple[QuestionStats, ...] = ()
    sorted_by_lowest_score: tuple[QuestionStats, ...] = ()
    excluded_respondents: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "driver_scores", MappingProxyType(dict(self.driver_scores)))

    @property
    def all_questions_in_order(self) -> tuple[QuestionStats, ...]:
        return self.questions

    @property
    def respondent_count(self) -> int:
        return len(self.respondents)

    def to_dict(self) -> dict[str, Any]:
        def _q(q: QuestionStats | None) -> dict[str, Any] | None:
            return q.to_dict() if q is not None else None

        return {
            "questions": [q.to_dict() for q in self.questions],
            "respondents": [r.to_dict() for r in self.respondents],
            "driverScores": dict(self.driver_scores),
            "strongestDriver": _extreme_dict(self.strongest_driver),
            "weakestDriver": _extreme_dict(self.weakest_driver),
            "highestQuestion": _q(self.highest_question),
            "lowestQuestion": _q(self.lowest_question),
            "mostAligned": _q(self.most_aligned),
            "mostDisagreed": _q(self.most_disagreed),
            "allQuestionsInOrder": [q.to_dict() for q in self.questions],
            "sortedByAlignment": [q.to_dict() for q in self.sorted_by_alignment],
            "sortedByDifference": [q.to_dict() for q in self.sorted_by_difference],
            "sortedByHighestScore": [q.to_dict() for q in self.sorted_by_highest_score],
            "sortedByLowestScore": [q.to_dict() for q in self.sorted_by_lowest_score],
            "excludedRespondents": list(self.excluded_respondents),
        }


def _extreme_dict(extreme: DriverExtreme | None) -> dict[str, Any] | None:
    return extreme.to_dict() if extreme is not None else None
