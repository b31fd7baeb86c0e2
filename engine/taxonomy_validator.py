# engine/taxonomy_validator.py: Fail-fast question pack enforcement.
"""Question taxonomy and Likert vocabulary validation.

Every question that enters the pipeline MUST carry a complete, valid
taxonomy, and the pack MUST hold exactly the expected number of
questions.  Respondent scores are aligned to questions by position, so a
missing or extra question would silently shift every answer after it.
There is **zero** fallback logic: the system refuses to start.

``validate_and_build_questions()`` validates the raw JSON dicts and then
constructs frozen ``QuestionDefinition`` instances.  This is the **only**
code path that creates ``QuestionDefinition`` objects.

Usage
~~~~~
    from engine.taxonomy_validator import validate_and_build_questions, TaxonomyViolation

    questions = validate_and_build_questions(raw_questions, expected_count=82)
    # Returns tuple[QuestionDefinition, ...], or raises TaxonomyViolation

Wire-in
~~~~~~~
Called by ``question_packs.loader.load_pack()`` before constructing the
``SurveyConfig``.
"""
from __future__ import annotations

from typing import Any, Mapping

from schemas.taxonomy import (
    ALL_DRIVERS,
    MAX_SCORE,
    MIN_SCORE,
    REQUIRED_QUESTION_FIELDS,
    QuestionDefinition,
)


# ── Exception ─────────────────────────────────────────────────────

class TaxonomyViolation(Exception):
    """Raised when the question pack has invalid taxonomy metadata.

    Contains a structured list of violations so callers can format them
    however they like (CLI table, JSON report, etc.).
    """

    def __init__(self, violations: list[dict[str, str]]) -> None:
        self.violations = violations
        lines = [f"  ✗ [{v['question']}] {v['field']}: {v['detail']}" for v in violations]
        msg = (
            f"{len(violations)} taxonomy violation(s), fix the question pack before analysing:\n"
            + "\n".join(lines)
        )
        super().__init__(msg)


# ── Single question validation ────────────────────────────────────

def validate_question(index: int, raw: Any) -> list[dict[str, str]]:
    """Validate a single question dict against the canonical taxonomy.

    Returns a (possibly empty) list of violation dicts:
        [{"question": "Q3", "field": "...", "detail": "..."}]
    """
    violations: list[dict[str, str]] = []
    ref = f"Q{index}"

    def _fail(field: str, detail: str) -> None:
        violations.append({"question": ref, "field": field, "detail": detail})

    if not isinstance(raw, dict):
        _fail("*", f"Must be an object, got {type(raw).__name__}")
        return violations

    # ── 1.  Required field presence ───────────────────────────────
    for field in REQUIRED_QUESTION_FIELDS:
        val = raw.get(field)
        if val is None or not isinstance(val, str) or val.strip() == "":
            _fail(field, "Missing or empty (required by REQUIRED_QUESTION_FIELDS)")

    # ── 2.  Driver enum ───────────────────────────────────────────
    driver = raw.get("driver")
    if isinstance(driver, str) and driver.strip() and driver not in ALL_DRIVERS:
        _fail("driver", f"'{driver}' not in {list(ALL_DRIVERS)}")

    return violations


# ── Likert vocabulary validation ──────────────────────────────────

def validate_likert_scale(scale: Any) -> list[dict[str, str]]:
    """Check the label → score vocabulary.

    The vocabulary must map exactly five normalized labels onto the
    scores 1..5, one label per score.
    """
    violations: list[dict[str, str]] = []

    def _fail(detail: str) -> None:
        violations.append({"question": "likert_scale", "field": "likert_scale", "detail": detail})

    if not isinstance(scale, Mapping) or not scale:
        _fail("Must be a non-empty object of label → score")
        return violations

    expected_scores = set(range(MIN_SCORE, MAX_SCORE + 1))
    scores = list(scale.values())
    if sorted(scores) != sorted(expected_scores):
        _fail(f"Scores {sorted(scores)} must be exactly {sorted(expected_scores)}")

    for label in scale:
        if not isinstance(label, str) or not label.strip():
            _fail(f"Empty label {label!r}")
        elif label != label.strip().lower():
            _fail(f"Label {label!r} must be stored trimmed and lower-cased")

    return violations


# ── Pack-level validation ─────────────────────────────────────────

def validate_and_build_questions(
    raw_questions: Any,
    expected_count: int,
) -> tuple[QuestionDefinition, ...]:
    """Validate raw JSON question dicts and return typed definitions.

    Two-phase approach:
      1. Validate raw dicts (per-field error messages via ``validate_question``)
         and the question count.
      2. If all clear, construct frozen ``QuestionDefinition`` instances.

    Raises ``TaxonomyViolation`` if ANY question or the count has ANY violation.
    """
    if not isinstance(raw_questions, list) or not raw_questions:
        raise TaxonomyViolation([{
            "question": "*",
            "field": "questions",
            "detail": "Question pack has zero questions, nothing to analyse",
        }])

    all_violations: list[dict[str, str]] = []

    # ── Phase 1a: per-question field validation ───────────────────
    for index, raw in enumerate(raw_questions):
        all_violations.extend(validate_question(index, raw))

    # ── Phase 1b: count must match the configured expectation ─────
    if len(raw_questions) != expected_count:
        all_violations.append({
            "question": "*",
            "field": "questions",
            "detail": (
                f"Expected {expected_count} questions, found {len(raw_questions)}; "
                f"spreadsheet columns would no longer line up"
            ),
        })

    if all_violations:
        raise TaxonomyViolation(all_violations)

    # ── Phase 2: construct frozen QuestionDefinition instances ────
    return tuple(
        QuestionDefinition.from_json(index, raw)
        for index, raw in enumerate(raw_questions)
    )
