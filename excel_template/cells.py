"""Raw cell values read from openpyxl cells."""

# Module responsibilities:
# - Classify an openpyxl cell into the closed set of raw kinds the coercion engine understands.
# - Provide a text rendering of raw values shared by lookups and text coercion.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from openpyxl.cell.cell import TYPE_BOOL, TYPE_ERROR, TYPE_FORMULA, TYPE_NUMERIC


class RawKind(str, Enum):
    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"
    BLANK = "blank"
    ERROR = "error"


@dataclass(frozen=True)
class RawCellValue:
    """A cell value before coercion to a field type."""

    kind: RawKind
    value: Any = None

    @property
    def is_blank(self) -> bool:
        return self.kind in (RawKind.BLANK, RawKind.ERROR)

    @classmethod
    def of(cls, value: Any) -> "RawCellValue":
        """Classify a plain Python value (as held by a cell or a ``values_only`` row)."""

        if value is None:
            return BLANK
        if isinstance(value, bool):
            return cls(RawKind.BOOLEAN, value)
        if isinstance(value, (int, float, Decimal)):
            return cls(RawKind.NUMERIC, value)
        if isinstance(value, datetime):
            return cls(RawKind.DATE, value)
        if isinstance(value, date):
            return cls(RawKind.DATE, datetime.combine(value, time()))
        if isinstance(value, (time, timedelta)):
            return cls(RawKind.TEXT, str(value))
        text = str(value).strip()
        if not text:
            return BLANK
        return cls(RawKind.TEXT, text)


BLANK = RawCellValue(RawKind.BLANK)
ERROR = RawCellValue(RawKind.ERROR)


def read_cell(cell: Optional[Any]) -> RawCellValue:
    """Read one openpyxl cell.

    Workbooks are loaded with ``data_only=True`` so formula cells already
    carry their cached result; a formula still present here has no cached
    value and reads as blank.
    """

    if cell is None:
        return BLANK
    data_type = getattr(cell, "data_type", None)
    if data_type == TYPE_ERROR:
        return ERROR
    if data_type == TYPE_FORMULA:
        return BLANK
    value = cell.value
    if data_type == TYPE_BOOL:
        return RawCellValue(RawKind.BOOLEAN, bool(value)) if value is not None else BLANK
    if data_type == TYPE_NUMERIC and isinstance(value, (int, float)) and not isinstance(value, bool):
        return RawCellValue(RawKind.NUMERIC, value)
    return RawCellValue.of(value)


def plain_number(value: Any) -> str:
    """Plain decimal text with trailing zeros stripped (``2.50`` -> ``2.5``, ``3.0`` -> ``3``)."""

    number = value if isinstance(value, Decimal) else Decimal(str(value))
    if not number.is_finite():
        return str(value)
    text = format(number.normalize(), "f")
    return "0" if text in ("-0", "") else text


def raw_text(raw: RawCellValue, date_format: str) -> str:
    """Natural text form of a raw value; blanks render as an empty string."""

    if raw.is_blank:
        return ""
    if raw.kind is RawKind.NUMERIC:
        return plain_number(raw.value)
    if raw.kind is RawKind.DATE:
        return raw.value.strftime(date_format)
    if raw.kind is RawKind.BOOLEAN:
        return "TRUE" if raw.value else "FALSE"
    return str(raw.value)
