"""Question pack loader: discovers and loads versioned question packs.

Usage:
    from question_packs.loader import load_pack, list_packs
    config = load_pack("sma", "v1.0")
    config.questions      # tuple[QuestionDefinition, ...]: frozen, typed
    config.likert_scale   # normalized label → score

Taxonomy enforcement:
    Every ``load_pack()`` call runs ``validate_and_build_questions()``
    and ``validate_likert_scale()``.  If ANY question has a missing or
    invalid field, or the question count differs from the manifest's
    ``expected_question_count``, the loader raises ``TaxonomyViolation``
    and the analysis never starts.

Version locking:
    The SMA v1.0 pack is frozen.  A SHA-256 checksum of questions.json
    is verified at load time.  If the file changes without an explicit
    version bump the loader raises ``QuestionPackVersionError``.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from schemas.taxonomy import DEFAULT_LIKERT_SCALE, QuestionDefinition
from engine.taxonomy_validator import (
    TaxonomyViolation,
    validate_and_build_questions,
    validate_likert_scale,
)

_log = logging.getLogger(__name__)

# ── Version-locked checksums ──────────────────────────────────────
# SHA-256 prefix of the canonical questions.json for each frozen version.
_FROZEN_CHECKSUMS: dict[str, str] = {
    "sma/v1.0": "0ffc0ab0aa36543f",  # 82 questions, 5 drivers
}


class QuestionPackVersionError(Exception):
    """Raised when a frozen question pack's checksum does not match."""
    pass


@dataclass(frozen=True)
class SheetLayout:
    """Where the survey export keeps names and answers (0-based columns)."""
    header_rows: int = 1
    name_column: int = 4
    first_question_column: int = 9

    @classmethod
    def from_json(cls, raw: dict[str, Any] | None) -> SheetLayout:
        raw = raw or {}
        return cls(
            header_rows=int(raw.get("header_rows", 1)),
            name_column=int(raw.get("name_column", 4)),
            first_question_column=int(raw.get("first_question_column", 9)),
        )


@dataclass(frozen=True)
class SurveyConfig:
    """Immutable survey configuration handed to the aggregation engine.

    Built once at startup.  Tests construct smaller fixtures through
    ``SurveyConfig.build()``, which runs the same validation.
    """
    questions: tuple[QuestionDefinition, ...]
    likert_scale: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_LIKERT_SCALE))
    layout: SheetLayout = field(default_factory=SheetLayout)
    pack_id: str = ""
    name: str = ""
    version: str = ""
    checksum: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "likert_scale", MappingProxyType(dict(self.likert_scale)))

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def drivers(self) -> list[str]:
        """Distinct drivers in first-seen question order."""
        return list(dict.fromkeys(q.driver for q in self.questions))

    @classmethod
    def build(
        cls,
        questions: Iterable[dict[str, Any]],
        *,
        likert_scale: Mapping[str, int] | None = None,
        expected_count: int | None = None,
        layout: SheetLayout | None = None,
        name: str = "",
    ) -> SurveyConfig:
        raw_questions = list(questions)
        scale = dict(likert_scale if likert_scale is not None else DEFAULT_LIKERT_SCALE)
        violations = validate_likert_scale(scale)
        if violations:
            raise TaxonomyViolation(violations)
        typed = validate_and_build_questions(
            raw_questions,
            expected_count if expected_count is not None else len(raw_questions),
        )
        return cls(questions=typed, likert_scale=scale, layout=layout or SheetLayout(), name=name)


PACKS_DIR = Path(__file__).parent


def list_packs() -> list[dict[str, str]]:
    """Discover all available question packs under question_packs/."""
    packs = []
    for manifest_path in sorted(PACKS_DIR.rglob("manifest.json")):
        try:
            with open(manifest_path, encoding="utf-8") as f:
                m = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            _log.warning("Skipping unreadable manifest %s: %s", manifest_path, exc)
            continue
        packs.append({
            "pack_id": m.get("pack_id", "unknown"),
            "name": m.get("name", ""),
            "version": m.get("version", ""),
            "path": str(manifest_path.parent),
        })
    return packs


def load_pack(family: str = "sma", version: str = "v1.0", packs_dir: Path | None = None) -> SurveyConfig:
    """
    Load a question pack by family and version.

    Flow:
      1. Read manifest and questions JSON from disk.
      2. ``validate_likert_scale()`` + ``validate_and_build_questions()``
         validate raw dicts and construct frozen definitions.
      3. Verify the version-lock checksum for frozen packs.

    Raises:
        FileNotFoundError: no such pack
        TaxonomyViolation: invalid questions, count or vocabulary
        QuestionPackVersionError: frozen pack modified on disk
    """
    pack_dir = (packs_dir or PACKS_DIR) / family / version

    manifest_path = pack_dir / "manifest.json"
    if not manifest_path.exists():
        raise FileNotFoundError(f"Question pack not found: {pack_dir}")
    with open(manifest_path, encoding="utf-8") as f:
        manifest = json.load(f)

    questions_path = pack_dir / manifest.get("questions_ref", "questions.json")
    with open(questions_path, encoding="utf-8") as f:
        questions_data = json.load(f)

    # ── Vocabulary + taxonomy enforcement ─────────────────────────
    likert_scale = manifest.get("likert_scale", dict(DEFAULT_LIKERT_SCALE))
    scale_violations = validate_likert_scale(likert_scale)
    if scale_violations:
        raise TaxonomyViolation(scale_violations)

    expected_count = manifest.get("expected_question_count")
    if not isinstance(expected_count, int):
        raise TaxonomyViolation([{
            "question": "*",
            "field": "expected_question_count",
            "detail": f"Manifest must declare an integer count, got {expected_count!r}",
        }])
    questions = validate_and_build_questions(questions_data.get("questions"), expected_count)

    # ── Version-lock guardrail ────────────────────────────────────
    with open(questions_path, "rb") as fb:
        checksum = hashlib.sha256(fb.read()).hexdigest()[:16]

    pack_key = f"{family}/{version}"
    expected = _FROZEN_CHECKSUMS.get(pack_key) if packs_dir is None else None
    if expected and checksum != expected:
        raise QuestionPackVersionError(
            f"Question pack '{pack_key}' is version-locked (expected checksum "
            f"{expected}, got {checksum}).  If you modified questions.json, "
            f"create a new version directory (e.g. {family}/v1.1/) and update "
            f"_FROZEN_CHECKSUMS in question_packs/loader.py."
        )
    if expected:
        _log.debug("Question pack %s: checksum verified (%s)", pack_key, checksum)

    config = SurveyConfig(
        questions=questions,
        likert_scale=likert_scale,
        layout=SheetLayout.from_json(manifest.get("layout")),
        pack_id=manifest.get("pack_id", ""),
        name=manifest.get("name", ""),
        version=manifest.get("version", ""),
        checksum=checksum,
    )
    _log.info(
        "Loaded question pack %s: %d questions across %d drivers",
        pack_key, config.question_count, len(config.drivers),
    )
    return config
