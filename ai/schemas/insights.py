"""AI-layer response contract for the narrative pass.

The model answers in camelCase JSON; fields are validated here before
anything reaches the report.  Statistics never come back from the
model, only prose.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TeamMemberInsight(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    insight: str = Field(description="2-3 sentence view of the respondent's perspective.")
    follow_up_question: str = Field(alias="followUpQuestion")


class NarrativeInsights(BaseModel):
    """Free-text fields generated for one report."""
    model_config = ConfigDict(populate_by_name=True)

    executive_summary: str = Field(alias="executiveSummary", min_length=1)
    discussion_questions: list[str] = Field(alias="discussionQuestions")
    team_member_analysis: list[TeamMemberInsight] = Field(alias="teamMemberAnalysis")
    special_analysis: Optional[str] = Field(default=None, alias="specialAnalysis")
