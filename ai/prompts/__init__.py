"""Prompt loader: reads versioned .txt templates from this directory."""
import json
from pathlib import Path

PROMPT_DIR = Path(__file__).parent


def _load(name: str) -> str:
    path = PROMPT_DIR / name
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")
    return path.read_text(encoding="utf-8")


class PromptPack:
    """Versioned prompt templates for the narrative pass."""

    def __init__(self):
        self._system = _load("system.txt")

    @property
    def system(self) -> str:
        return self._system

    def insights(self, payload: dict) -> str:
        tpl = _load("insights.txt")
        special = payload.get("specialInstructions") or ""
        special_block = _load("special_analysis.txt").replace("{{INSTRUCTIONS}}", special) if special else ""
        special_field = ',\n  "specialAnalysis": "..."' if special else ""
        return (
            tpl
            .replace("{{TEAM_NAME}}", payload["teamName"])
            .replace("{{RESPONDENT_COUNT}}", str(payload["respondentCount"]))
            .replace("{{ASSESSMENT_DATE}}", payload["assessmentDate"])
            .replace("{{DRIVER_SCORES}}", json.dumps(payload["driverScores"], indent=2))
            .replace("{{KEY_PATTERNS}}", json.dumps(payload["keyPatterns"], indent=2))
            .replace("{{RESPONDENTS}}", json.dumps(payload["respondents"], indent=2))
            .replace("{{SPECIAL_ANALYSIS}}", special_block)
            .replace("{{SPECIAL_FIELD}}", special_field)
        )

    def render(self, payload: dict) -> str:
        """System prompt and user prompt joined for ``ReasoningProvider.complete``."""
        return self.system + "\n---SYSTEM---\n" + self.insights(payload)
