# schemas/taxonomy.py: Single authoritative taxonomy for assessment drivers.
"""Centralised taxonomy for the Strategic Maturity Assessment.

Every question carries a driver, a skill and its prompt text.  The
question list is loaded once from a versioned question pack, validated,
and frozen.  If a field is missing or a driver is unknown the system
refuses to start.

Canonical sources defined here:
  - ``Driver``                : the 5 strategic drivers
  - ``DRIVER_ORDER``          : report priority order of the drivers
  - ``LikertLabel``           : the 5 agreement labels
  - ``DEFAULT_LIKERT_SCALE``  : normalized label → score (5..1)
  - ``EXPECTED_QUESTION_COUNT``: scoreable questions in the shipped pack
  - ``QuestionDefinition``    : frozen dataclass for a single question
  - ``REQUIRED_QUESTION_FIELDS``: fields every question MUST have
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal, Mapping, get_args


# ══════════════════════════════════════════════════════════════════
# Canonical enums
# ══════════════════════════════════════════════════════════════════

Driver = Literal[
    "Purpose",
    "People",
    "Plan",
    "Product",
    "Profit",
]

ALL_DRIVERS: tuple[str, ...] = get_args(Driver)

# Report sections list questions in this driver order.
DRIVER_ORDER: tuple[str, ...] = ("Purpose", "People", "Plan", "Product", "Profit")

assert set(DRIVER_ORDER) == set(ALL_DRIVERS), \
    f"DRIVER_ORDER out of sync: {set(ALL_DRIVERS) ^ set(DRIVER_ORDER)}"

LikertLabel = Literal[
    "strongly agree",
    "agree",
    "neutral",
    "disagree",
    "strongly disagree",
]

ALL_LIKERT_LABELS: tuple[str, ...] = get_args(LikertLabel)

# Labels are stored already normalized (trimmed, lower-cased).
DEFAULT_LIKERT_SCALE: Mapping[str, int] = MappingProxyType({
    "strongly agree":    5,
    "agree":             4,
    "neutral":           3,
    "disagree":          2,
    "strongly disagree": 1,
})

assert tuple(DEFAULT_LIKERT_SCALE) == ALL_LIKERT_LABELS

MIN_SCORE = 1
MAX_SCORE = 5

EXPECTED_QUESTION_COUNT = 82


# ══════════════════════════════════════════════════════════════════
# QuestionDefinition: typed, frozen, validated
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class QuestionDefinition:
    """Typed, immutable question definition.

    Loaded once from ``questions.json`` via ``from_json()`` and frozen.
    ``index`` is the position of the question in the pack and doubles as
    the column offset inside the spreadsheet's question block.
    """

    index: int
    driver: str                        # Driver literal
    skill: str
    text: str

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"[Q{self.index}] Invalid index: must be >= 0")
        if self.driver not in ALL_DRIVERS:
            raise ValueError(
                f"[Q{self.index}] Invalid driver: "
                f"{self.driver!r}, expected one of {list(ALL_DRIVERS)}"
            )

    @property
    def competency(self) -> str:
        """Report label combining skill and question text."""
        return f"{self.skill}: {self.text}"

    @classmethod
    def from_json(cls, index: int, raw: dict[str, Any]) -> QuestionDefinition:
        """Construct from a raw ``questions.json`` entry.

        Raises ``KeyError`` if a required JSON field is missing.
        Raises ``ValueError`` if the driver is invalid (via __post_init__).
        """
        return cls(
            index=index,
            driver=raw["driver"],
            skill=raw["skill"],
            text=raw["text"],
        )


# ── Required fields every question definition MUST have ───────────
REQUIRED_QUESTION_FIELDS: tuple[str, ...] = (
    "driver",
    "skill",
    "text",
)
