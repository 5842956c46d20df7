# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Excel readers for class and student roster imports.

Only the first worksheet is read and its first row is treated as a header.

Class sheet layout:
    A: class name, B: capacity, C: teacher email (optional)

Student sheet layout (the school registry export):
    C: English name, D: Arabic name, F: student code, G: class name

Example:
    >>> rows, skipped = read_student_rows("data/students.xlsx")
    >>> report = await RosterService(db).import_students(rows)
"""

import logging
from pathlib import Path
from typing import Any, Iterator, NamedTuple

from openpyxl import load_workbook
from openpyxl.utils import column_index_from_string
from pydantic import ValidationError as PydanticValidationError

from src.models.roster import ClassImportRow, RowIssue, StudentImportRow

logger = logging.getLogger(__name__)

HEADER_ROWS = 1


class StudentColumns(NamedTuple):
    """Zero-based column positions of the student sheet fields."""

    name_english: int
    name_arabic: int
    student_code: int
    class_name: int

    @classmethod
    def from_letters(cls, letters: str) -> "StudentColumns":
        """Build from comma-separated column letters, e.g. "C,D,F,G".

        Raises:
            ValueError: If there are not four valid column letters.
        """
        parts = [p.strip().upper() for p in letters.split(",")]
        if len(parts) != 4:
            raise ValueError("Expected four columns: English name, Arabic name, code, class")
        return cls(*(column_index_from_string(p) - 1 for p in parts))


DEFAULT_STUDENT_COLUMNS = StudentColumns.from_letters("C,D,F,G")


def cell_text(value: Any) -> str | None:
    """Render a cell as trimmed text; blank cells become None.

    Whole-number floats lose their ".0" so numeric student codes read as
    typed.
    """
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _cell(row: tuple[Any, ...], index: int) -> str | None:
    return cell_text(row[index]) if index < len(row) else None


def iter_sheet_rows(path: str | Path) -> Iterator[tuple[int, tuple[Any, ...]]]:
    """Yield (sheet row number, values) for every non-blank data row.

    Args:
        path: Path to an .xlsx workbook.
    """
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        start = HEADER_ROWS + 1
        for number, values in enumerate(sheet.iter_rows(min_row=start, values_only=True), start=start):
            if values is None or all(cell_text(v) is None for v in values):
                continue
            yield number, values
    finally:
        workbook.close()


def read_class_rows(path: str | Path) -> tuple[list[ClassImportRow], list[RowIssue]]:
    """Parse the class sheet.

    Returns:
        Tuple of (valid rows, skipped rows with reasons).
    """
    rows: list[ClassImportRow] = []
    skipped: list[RowIssue] = []

    for number, values in iter_sheet_rows(path):
        name = _cell(values, 0)
        capacity = _cell(values, 1)
        if not name or not capacity:
            skipped.append(RowIssue(row=number, message="Missing class name or capacity"))
            continue
        try:
            rows.append(
                ClassImportRow(
                    row=number,
                    name=name,
                    capacity=int(capacity),
                    teacher_email=_cell(values, 2),
                )
            )
        except (ValueError, PydanticValidationError) as e:
            skipped.append(RowIssue(row=number, message=_reason(e)))

    logger.info("Read %d class rows from %s (%d skipped)", len(rows), path, len(skipped))
    return rows, skipped


def read_student_rows(
    path: str | Path,
    columns: StudentColumns = DEFAULT_STUDENT_COLUMNS,
) -> tuple[list[StudentImportRow], list[RowIssue]]:
    """Parse the student sheet.

    English name, student code and class name are required; the Arabic
    name is optional.

    Returns:
        Tuple of (valid rows, skipped rows with reasons).
    """
    rows: list[StudentImportRow] = []
    skipped: list[RowIssue] = []

    for number, values in iter_sheet_rows(path):
        name_english = _cell(values, columns.name_english)
        student_code = _cell(values, columns.student_code)
        class_name = _cell(values, columns.class_name)
        if not name_english or not student_code or not class_name:
            skipped.append(
                RowIssue(row=number, message="Missing English name, student code or class name")
            )
            continue
        rows.append(
            StudentImportRow(
                row=number,
                student_code=student_code,
                name_english=name_english,
                name_arabic=_cell(values, columns.name_arabic),
                class_name=class_name,
            )
        )

    logger.info("Read %d student rows from %s (%d skipped)", len(rows), path, len(skipped))
    return rows, skipped


def _reason(error: Exception) -> str:
    if isinstance(error, PydanticValidationError):
        first = error.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        return f"{field}: {first['msg']}"
    return str(error)
