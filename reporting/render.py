from jinja2 import Environment, FileSystemLoader, select_autoescape
import logging, os, re
from datetime import date

from ai.engine.insight_engine import format_report_date
from ai.schemas.insights import NarrativeInsights
from schemas.domain import CalculatedDataset, QuestionStats

_log = logging.getLogger(__name__)

# Always printed ahead of the generated discussion questions.
FIXED_DISCUSSION_QUESTIONS = (
    "Do these results accurately describe our current state?",
    "What is causing our key areas of difference?",
    "Which competencies, if focused on, would create the most value for our team/business?",
    "What can we do in the near term (weeks/months) to level up in those areas?",
)

# Label widths per table format.
_LABEL_WIDTH = {"distribution": 60, "average": 75}


# ── Jinja filters (formatting only, no arithmetic) ───────────────
def _score(value) -> str:
    if value is None:
        return "n/a"
    return f"{float(value):.2f}"


def _truncate_label(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def report_filename(team_name: str) -> str:
    """``Strategic_Maturity_Assessment_<team>.html`` with a filesystem-safe team name."""
    slug = re.sub(r"[^a-zA-Z0-9\-_ ]", "", team_name)
    slug = re.sub(r"\s+", "_", slug.strip())
    return f"Strategic_Maturity_Assessment_{slug or 'Team'}.html"


def _question_rows(questions: tuple[QuestionStats, ...], fmt: str) -> list[dict]:
    width = _LABEL_WIDTH[fmt]
    return [{
        "driver": q.driver,
        "competency": _truncate_label(q.competency, width),
        "full_competency": q.competency,
        "average": q.average,
        "std_dev": q.std_dev,
        "distribution": list(q.distribution),
    } for q in questions]


# ═════════════════════════════════════════════════════════════════
#  REPORT CONTEXT BUILDER
# ═════════════════════════════════════════════════════════════════

def build_report_context(
    team_name: str,
    dataset: CalculatedDataset,
    insights: NarrativeInsights,
    generated_on: date | None = None,
) -> dict:
    """
    Walk the precomputed dataset into the report's page sections:

      1. Cover
      2. Team summary + driver table
      3. Four focused question tables (alignment, difference, strengths, gaps)
      4. Full response distribution in question order
      5. Discussion questions
      6. Team member analysis
      7. Special analysis (only when requested)
    """
    strongest = dataset.strongest_driver
    weakest = dataset.weakest_driver

    driver_rows = []
    for name, score in sorted(dataset.driver_scores.items(), key=lambda kv: kv[1], reverse=True):
        note = ""
        if strongest is not None and name == strongest.name:
            note = "Your strongest driver"
        if weakest is not None and name == weakest.name:
            note = "Your weakest driver"
        driver_rows.append({"driver": name, "score": score, "note": note})

    question_sections = [
        {
            "id": "alignment",
            "title": "Team Alignment",
            "description": "Competencies where the team answered most consistently (lowest spread of responses), grouped by driver.",
            "format": "distribution",
            "rows": _question_rows(dataset.sorted_by_alignment, "distribution"),
        },
        {
            "id": "difference",
            "title": "Areas of Difference",
            "description": "Competencies where team members' answers differed most, grouped by driver.",
            "format": "distribution",
            "rows": _question_rows(dataset.sorted_by_difference, "distribution"),
        },
        {
            "id": "strengths",
            "title": "Highest Scoring Competencies",
            "description": "The competencies with the highest team averages, grouped by driver.",
            "format": "average",
            "rows": _question_rows(dataset.sorted_by_highest_score, "average"),
        },
        {
            "id": "opportunities",
            "title": "Lowest Scoring Competencies",
            "description": "The competencies with the lowest team averages, grouped by driver.",
            "format": "average",
            "rows": _question_rows(dataset.sorted_by_lowest_score, "average"),
        },
    ]

    discussion = [
        {"number": i, "text": text}
        for i, text in enumerate(
            list(FIXED_DISCUSSION_QUESTIONS) + list(insights.discussion_questions), start=1
        )
    ]

    return {
        "team_name": team_name,
        "report_date": format_report_date(generated_on),
        "respondent_count": dataset.respondent_count,
        "executive_summary": insights.executive_summary,
        "driver_rows": driver_rows,
        "strongest_driver": strongest,
        "weakest_driver": weakest,
        "question_sections": question_sections,
        "response_distribution": _question_rows(dataset.all_questions_in_order, "distribution"),
        "discussion_questions": discussion,
        "team_members": [m.model_dump() for m in insights.team_member_analysis],
        "special_analysis": insights.special_analysis,
    }


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(os.path.dirname(__file__)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["score"] = _score
    return env


def render_report(
    team_name: str,
    dataset: CalculatedDataset,
    insights: NarrativeInsights,
    template_name: str = "report_template.html",
    generated_on: date | None = None,
) -> str:
    context = build_report_context(team_name, dataset, insights, generated_on)
    return _environment().get_template(template_name).render(**context)


def generate_report(
    team_name: str,
    dataset: CalculatedDataset,
    insights: NarrativeInsights,
    out_path: str = None,
    template_name: str = "report_template.html",
    generated_on: date | None = None,
) -> str:
    """Render the report and write it; returns the output path."""
    html = render_report(team_name, dataset, insights, template_name, generated_on)

    if out_path is None:
        out_path = os.path.join(os.getcwd(), report_filename(team_name))
    os.makedirs(os.path.dirname(os.path.abspath(out_path)), exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(html)
    _log.info("Report written to %s", out_path)
    return out_path
