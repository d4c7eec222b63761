"""Row transcoding: one spreadsheet row <-> one record."""

# Module responsibilities:
# - Decode a row of openpyxl cells into a new record instance using the resolved schema.
# - Encode a record into display strings plus their byte widths for column sizing.

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from .cells import BLANK, RawCellValue, read_cell
from .coercion import coerce, render
from .errors import ConfigurationError, FormatError
from .schema import ColumnSchema
from .utils.log import get_logger
from .validation import Violation

logger = get_logger("rows")


def _raw_at(cells: Sequence[Any], index: int) -> RawCellValue:
    if index >= len(cells):
        return BLANK
    return read_cell(cells[index])


def is_row_empty(cells: Optional[Sequence[Any]]) -> bool:
    """True when the row is missing or every cell reads as blank."""

    if not cells:
        return True
    return all(read_cell(cell).is_blank for cell in cells)


def import_row(
    cells: Optional[Sequence[Any]],
    columns: Sequence[ColumnSchema],
    record_type: type,
) -> Tuple[Optional[Any], List[Violation]]:
    """Decode one row into a record.

    Args:
        cells: Cells of the row, index 0 being column A.
        columns: Resolved schema of ``record_type``.
        record_type: Record dataclass to instantiate.

    Returns:
        ``(None, [])`` for an empty row (skip), otherwise the record and the
        violations of fields whose cell could not be parsed.
    """

    if is_row_empty(cells):
        return None, []

    try:
        record = record_type()
    except TypeError as exc:
        raise ConfigurationError(
            f"{record_type.__name__} cannot be created without arguments: {exc}"
        ) from exc

    violations: List[Violation] = []
    for column in columns:
        raw = _raw_at(cells, column.col)
        try:
            value = coerce(raw, column)
        except FormatError as exc:
            violations.append(Violation(field_path=column.field_name, message=str(exc)))
            continue
        setattr(record, column.field_name, value)
    return record, violations


def export_row(record: Any, columns: Sequence[ColumnSchema]) -> Tuple[List[str], List[int]]:
    """Render ``record`` as one display string per column and each string's UTF-8 byte length."""

    values: List[str] = []
    widths: List[int] = []
    for column in columns:
        try:
            text = render(getattr(record, column.field_name), column)
        except Exception as exc:
            logger.error(
                "Failed to render field",
                extra={"field": column.field_name, "error": str(exc)},
            )
            text = ""
        values.append(text)
        widths.append(len(text.encode("utf-8")))
    return values, widths
