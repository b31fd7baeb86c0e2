"""Survey export reader: decodes the response workbook into raw rows.

Reads the first worksheet of a Microsoft Forms ``.xlsx`` export:

- ``layout.header_rows`` leading rows are skipped
- ``layout.name_column`` holds the respondent's display name
- ``question_count`` answer columns start at ``layout.first_question_column``

The email column that sits next to the name in the export is not extracted.
Scoring is left to ``engine.likert``; this module only extracts cells.

Usage::

    from ingest.excel_reader import read_survey_rows
    rows = read_survey_rows("responses.xlsx", config.layout, config.question_count)
"""
from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from question_packs.loader import SheetLayout
from schemas.domain import RawResponseRow

_log = logging.getLogger(__name__)


class SpreadsheetError(Exception):
    """Raised when the upload cannot be read as a survey export."""


def _cell(row: tuple[Any, ...], column: int) -> Any:
    return row[column] if column < len(row) else None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def read_survey_rows(
    path: str | Path,
    layout: SheetLayout,
    question_count: int,
) -> list[RawResponseRow]:
    """Return one ``RawResponseRow`` per non-blank data row.

    Every row carries exactly ``question_count`` cells; short rows are
    padded with ``None`` so answers stay aligned with their questions.

    Raises ``SpreadsheetError`` for unreadable files and for sheets
    without any respondent rows.
    """
    path = Path(path)
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise SpreadsheetError(
            f"Could not read the Excel file {path.name!r}. Please ensure it's a valid .xlsx file."
        ) from exc

    try:
        ws = wb.worksheets[0]
        grid = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()

    data_rows = grid[layout.header_rows:]
    first = layout.first_question_column
    last = first + question_count

    rows: list[RawResponseRow] = []
    for offset, row in enumerate(data_rows):
        row = tuple(row)
        answers = tuple(_cell(row, c) for c in range(first, last))
        name = _cell(row, layout.name_column)
        if _is_blank(name) and all(_is_blank(a) for a in answers):
            _log.debug("Skipping blank spreadsheet row %d", offset + layout.header_rows + 1)
            continue
        if len(row) < last:
            _log.warning(
                "Row %d has %d columns, expected at least %d; missing answers treated as blank",
                offset + layout.header_rows + 1, len(row), last,
            )
        rows.append(RawResponseRow(name=None if _is_blank(name) else str(name).strip(), cells=answers))

    if not rows:
        raise SpreadsheetError(
            "Excel file must contain at least a header row and one respondent"
        )

    _log.info("Read %d respondent row(s) from %s", len(rows), path.name)
    return rows
