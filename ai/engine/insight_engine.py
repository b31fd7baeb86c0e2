"""Insight engine: turns a CalculatedDataset into narrative report text.

Read-only consumer of the aggregation output: it summarizes the dataset
into a prompt payload, asks the provider for prose, and validates the
reply.  It never recomputes or edits a statistic.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from pydantic import ValidationError

from ai.engine.reasoning_provider import ReasoningProvider
from ai.prompts import PromptPack
from ai.schemas.insights import NarrativeInsights, TeamMemberInsight
from schemas.domain import CalculatedDataset, QuestionStats

_log = logging.getLogger(__name__)

# Outliers per respondent forwarded to the model.
TOP_OUTLIERS = 3

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class InsightGenerationError(RuntimeError):
    """The model's reply did not have the expected structure."""


def format_report_date(day: date | None = None) -> str:
    """Report date in ``16-Jan-26`` form."""
    day = day or date.today()
    return f"{day.day:02d}-{_MONTHS[day.month - 1]}-{day.year % 100:02d}"


def _question_pointer(q: QuestionStats | None, metric: str) -> dict[str, Any] | None:
    if q is None:
        return None
    return {"text": q.text, "driver": q.driver, metric: q.average if metric == "average" else q.std_dev}


def build_insight_payload(
    team_name: str,
    dataset: CalculatedDataset,
    special_instructions: str = "",
    today: date | None = None,
) -> dict[str, Any]:
    """Project the dataset onto the fields the narrative prompt needs."""
    respondents = []
    for r in dataset.respondents:
        summary = r.to_dict()
        respondents.append({
            "name": r.name,
            "overallAverage": r.overall_average,
            "highestDriver": summary["highestDriver"],
            "lowestDriver": summary["lowestDriver"],
            "outlierCount": len(r.outlier_questions),
            "topOutliers": [
                {k: v for k, v in o.to_dict().items() if k != "questionIndex"}
                for o in r.outlier_questions[:TOP_OUTLIERS]
            ],
        })

    full = dataset.to_dict()
    return {
        "teamName": team_name,
        "respondentCount": dataset.respondent_count,
        "assessmentDate": format_report_date(today),
        "driverScores": full["driverScores"],
        "keyPatterns": {
            "strongestDriver": full["strongestDriver"],
            "weakestDriver": full["weakestDriver"],
            "highestScoringQuestion": _question_pointer(dataset.highest_question, "average"),
            "lowestScoringQuestion": _question_pointer(dataset.lowest_question, "average"),
            "mostAlignedQuestion": _question_pointer(dataset.most_aligned, "stdDev"),
            "mostDisagreedQuestion": _question_pointer(dataset.most_disagreed, "stdDev"),
        },
        "respondents": respondents,
        "specialInstructions": special_instructions.strip(),
    }


def placeholder_insights(dataset: CalculatedDataset, special_instructions: str = "") -> NarrativeInsights:
    """Neutral text used when narrative generation is switched off."""
    strongest = dataset.strongest_driver
    weakest = dataset.weakest_driver
    if dataset.respondents and strongest is not None and weakest is not None:
        summary = (
            f"{dataset.respondent_count} respondent(s) completed the assessment. "
            f"The strongest driver is {strongest.name} ({strongest.score:.2f}) and the "
            f"weakest is {weakest.name} ({weakest.score:.2f})."
        )
    else:
        summary = "No scored responses were available for this assessment."
    return NarrativeInsights(
        executive_summary=summary,
        discussion_questions=[],
        team_member_analysis=[
            TeamMemberInsight(
                name=r.name,
                insight=(
                    f"Overall average {r.overall_average:.2f} with "
                    f"{len(r.outlier_questions)} answer(s) far from the team average."
                ),
                follow_up_question="Which of your answers surprised you most compared to the team?",
            )
            for r in dataset.respondents
        ],
        special_analysis=None if not special_instructions.strip() else
        "Narrative generation was disabled for this report.",
    )


class InsightEngine:
    """Runs the single narrative pass over a calculated dataset."""

    def __init__(self, provider: ReasoningProvider, prompts: PromptPack | None = None):
        self.provider = provider
        self.prompts = prompts or PromptPack()

    def generate(
        self,
        team_name: str,
        dataset: CalculatedDataset,
        special_instructions: str = "",
        *,
        today: date | None = None,
    ) -> NarrativeInsights:
        payload = build_insight_payload(team_name, dataset, special_instructions, today)
        template = self.prompts.render(payload)

        _log.info("Requesting narrative insights for %r (%d respondents)",
                  team_name, dataset.respondent_count)
        raw = self.provider.complete(template, payload)

        try:
            insights = NarrativeInsights.model_validate(raw)
        except ValidationError as exc:
            _log.error("Invalid narrative response structure: %s", exc)
            raise InsightGenerationError("Invalid response structure from the narrative service") from exc

        known = {r.name for r in dataset.respondents}
        for member in insights.team_member_analysis:
            if member.name not in known:
                _log.warning("Narrative mentions unknown respondent %r", member.name)
        return insights
