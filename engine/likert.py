# engine/likert.py: Likert label → score normalization.
"""Convert free-text agreement labels into 1..5 scores.

Matching is exact after trimming and lower-casing.  Anything else
(empty cells, typos, unexpected free text) becomes ``None`` so the
rest of the respondent's answers still count.  Unmatched cells are
logged with enough context to audit the export, never raised.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from schemas.domain import Score
from schemas.taxonomy import DEFAULT_LIKERT_SCALE

_log = logging.getLogger(__name__)


def normalize_response(response: Any) -> str:
    """Trim and lower-case a raw cell; missing cells normalize to ``""``."""
    if response is None:
        return ""
    return str(response).strip().lower()


def text_to_score(response: Any, scale: Mapping[str, int] = DEFAULT_LIKERT_SCALE) -> Score:
    """Return the score for a Likert label, or ``None`` if it does not match."""
    return scale.get(normalize_response(response))


def score_row(
    cells: Iterable[Any],
    *,
    scale: Mapping[str, int] = DEFAULT_LIKERT_SCALE,
    respondent_ordinal: int = 0,
    name: str = "",
) -> tuple[Score, ...]:
    """Score every cell of one respondent's answer block.

    ``respondent_ordinal`` is the 1-based upload position used in the
    data-quality warnings.
    """
    scores: list[Score] = []
    for question_index, raw in enumerate(cells):
        score = text_to_score(raw, scale)
        if score is None:
            _log.warning(
                "Unmatched response for respondent %d (%s), question %d: %r",
                respondent_ordinal, name or "unnamed", question_index, raw,
            )
        scores.append(score)
    return tuple(scores)
