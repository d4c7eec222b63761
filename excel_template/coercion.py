"""Type coercion between raw cell values and typed record fields."""

# Module responsibilities:
# - Import direction: convert a RawCellValue into the declared kind of a column (coerce()).
# - Export direction: render a field value as display text (render()).
# - Dispatch on ColumnKind through a table instead of per-cell type tests.

from __future__ import annotations

import struct
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict

from .cells import RawCellValue, RawKind, plain_number, raw_text
from .errors import FormatError
from .schema import ColumnKind, ColumnSchema

Coercer = Callable[[RawCellValue, ColumnSchema], Any]

_TRUE_TEXT = frozenset({"true", "yes", "y", "1"})
_FALSE_TEXT = frozenset({"false", "no", "n", "0"})
_INTEGER_RANGES = {
    ColumnKind.SHORT: (-(2**15), 2**15 - 1),
    ColumnKind.BYTE: (-(2**7), 2**7 - 1),
}


def parse_date_strictly(text: str, formats: tuple[str, ...]) -> datetime:
    """Parse ``text`` against each pattern in order; the first match wins."""

    for pattern in formats:
        try:
            return datetime.strptime(text, pattern)
        except ValueError:
            continue
    raise FormatError(f"'{text}' does not match any of the date formats {list(formats)}")


def _as_text(raw: RawCellValue, column: ColumnSchema) -> str:
    return raw_text(raw, column.default_date_format)


def _to_text(raw: RawCellValue, column: ColumnSchema) -> str:
    if raw.kind is RawKind.TEXT:
        return raw.value
    return _as_text(raw, column)


def _to_boolean(raw: RawCellValue, column: ColumnSchema) -> bool:
    if raw.kind is RawKind.BOOLEAN:
        return raw.value
    if raw.kind is RawKind.NUMERIC:
        return bool(raw.value)
    text = _as_text(raw, column).lower()
    if text in _TRUE_TEXT:
        return True
    if text in _FALSE_TEXT:
        return False
    raise FormatError(f"'{raw.value}' is not a boolean value for column '{column.name}'")


def _to_datetime(raw: RawCellValue, column: ColumnSchema) -> datetime:
    if raw.kind is RawKind.DATE:
        return raw.value
    return parse_date_strictly(_as_text(raw, column), column.date_formats)


def _to_date(raw: RawCellValue, column: ColumnSchema) -> date:
    return _to_datetime(raw, column).date()


def _to_decimal(raw: RawCellValue, column: ColumnSchema) -> Decimal:
    if raw.kind not in (RawKind.NUMERIC, RawKind.TEXT):
        raise FormatError(f"{raw.kind.value} value cannot be read as a number for column '{column.name}'")
    if isinstance(raw.value, Decimal):
        return raw.value
    try:
        return Decimal(str(raw.value))
    except InvalidOperation as exc:
        raise FormatError(f"'{raw.value}' is not a number for column '{column.name}'") from exc


def _to_integer(raw: RawCellValue, column: ColumnSchema) -> int:
    if raw.kind is RawKind.NUMERIC and isinstance(raw.value, int) and column.kind is ColumnKind.INTEGER:
        return raw.value
    number = _to_decimal(raw, column)
    if not number.is_finite():
        raise FormatError(f"'{raw.value}' is not a finite number for column '{column.name}'")
    value = int(number)
    bounds = _INTEGER_RANGES.get(column.kind)
    if bounds and not bounds[0] <= value <= bounds[1]:
        raise FormatError(f"{value} is out of range for {column.kind.value} column '{column.name}'")
    return value


def _to_float(raw: RawCellValue, column: ColumnSchema) -> float:
    value = float(_to_decimal(raw, column))
    # Single precision, the way a 32-bit float column stores it.
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError as exc:
        raise FormatError(f"{value} is out of range for float column '{column.name}'") from exc


def _to_double(raw: RawCellValue, column: ColumnSchema) -> float:
    if raw.kind is RawKind.NUMERIC and isinstance(raw.value, float):
        return raw.value
    return float(_to_decimal(raw, column))


def _to_exact_decimal(raw: RawCellValue, column: ColumnSchema) -> Decimal:
    number = _to_decimal(raw, column)
    if column.fraction_digits is not None and number.is_finite():
        number = number.quantize(Decimal(1).scaleb(-column.fraction_digits), rounding=ROUND_HALF_UP)
    return number


def _passthrough(raw: RawCellValue, column: ColumnSchema) -> Any:
    return raw.value


COERCERS: Dict[ColumnKind, Coercer] = {
    ColumnKind.TEXT: _to_text,
    ColumnKind.BOOLEAN: _to_boolean,
    ColumnKind.INTEGER: _to_integer,
    ColumnKind.SHORT: _to_integer,
    ColumnKind.BYTE: _to_integer,
    ColumnKind.FLOAT: _to_float,
    ColumnKind.DOUBLE: _to_double,
    ColumnKind.DECIMAL: _to_exact_decimal,
    ColumnKind.DATE: _to_date,
    ColumnKind.DATETIME: _to_datetime,
    ColumnKind.OBJECT: _passthrough,
}


def coerce(raw: RawCellValue, column: ColumnSchema) -> Any:
    """Convert ``raw`` into the value stored on the record field of ``column``.

    A bound code lookup takes precedence over the column kind: the raw value
    is read as a display name and translated to its code, with ``""`` for
    blanks and unmatched names.

    Raises:
        FormatError: When the value cannot be parsed for the column kind.
    """

    if column.lookup is not None:
        name = _as_text(raw, column)
        if not name:
            return ""
        return column.lookup.get_code(name) or ""
    if raw.is_blank:
        return None
    return COERCERS[column.kind](raw, column)


def render(value: Any, column: ColumnSchema) -> str:
    """Render a field value as the display text written to a cell."""

    if value is None:
        return ""
    if column.lookup is not None:
        return column.lookup.get_name(str(value)) or ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime, date)):
        return value.strftime(column.default_date_format)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float):
        return plain_number(value)
    return str(value)
