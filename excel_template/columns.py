"""Declarative column metadata for record dataclasses.

A record type is a dataclass whose fields are declared with
:func:`excel_column`::

    @dataclass
    class Person(ExcelRecord):
        name: str | None = excel_column(0, "Name", constraints=(NotBlank(),))
        born: date | None = excel_column(1, "Birthday", constraints=(IsDate(("%Y-%m-%d",)),))
        gender: str | None = excel_column(2, "Gender", coding=GenderLookup)

The metadata is read once per import/export call by
:func:`excel_template.schema.resolve_columns`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

COLUMN_METADATA_KEY = "excel_column"
DEFAULT_DATE_FORMAT = "%Y/%m/%d"


@dataclass(frozen=True)
class NotNull:
    message: str = "must not be null"


@dataclass(frozen=True)
class NotEmpty:
    message: str = "must not be empty"


@dataclass(frozen=True)
class NotBlank:
    message: str = "must not be blank"


@dataclass(frozen=True)
class IsDate:
    """Accepted date patterns (``strftime`` syntax); the first one is canonical."""

    formats: Tuple[str, ...] = ("%Y-%m-%d",)
    message: str = "invalid date format"

    def __post_init__(self) -> None:
        if isinstance(self.formats, str):
            object.__setattr__(self, "formats", (self.formats,))
        if not self.formats:
            raise ValueError("IsDate requires at least one format")


@dataclass(frozen=True)
class Digits:
    """Maximum integer/fraction digits of a numeric value."""

    integer: int
    fraction: int
    message: Optional[str] = None

    def describe(self) -> str:
        return self.message or (
            f"numeric value out of bounds (<{self.integer} digits>.<{self.fraction} digits> expected)"
        )


REQUIRED_CONSTRAINTS = (NotNull, NotEmpty, NotBlank)


@dataclass(frozen=True)
class ExcelColumn:
    """Column metadata attached to a dataclass field."""

    col: int
    name: str
    coding: Optional[type] = None
    kind: Optional[str] = None
    constraints: Tuple[Any, ...] = ()

    def constraint(self, constraint_type: type) -> Optional[Any]:
        for item in self.constraints:
            if isinstance(item, constraint_type):
                return item
        return None

    @property
    def required(self) -> bool:
        return any(isinstance(item, REQUIRED_CONSTRAINTS) for item in self.constraints)


def excel_column(
    col: int,
    name: str,
    *,
    coding: Optional[type] = None,
    kind: Optional[str] = None,
    constraints: Tuple[Any, ...] = (),
    default: Any = None,
) -> Any:
    """Declare a dataclass field mapped to spreadsheet column ``col``.

    Args:
        col: Zero-based column index; defines the row layout.
        name: Header text of the column.
        coding: Optional CodeLookup type translating codes <-> display names.
        kind: Optional ColumnKind value overriding the annotation (e.g. ``"short"``).
        constraints: Constraint markers checked by the validator.
        default: Field default, ``None`` unless given.
    """

    meta = ExcelColumn(
        col=col,
        name=name,
        coding=coding,
        kind=kind,
        constraints=tuple(constraints),
    )
    return field(default=default, metadata={COLUMN_METADATA_KEY: meta})


def column_metadata(item: dataclasses.Field) -> Optional[ExcelColumn]:
    return item.metadata.get(COLUMN_METADATA_KEY)


@dataclass
class ExcelRecord:
    """Base class for imported records.

    ``excel_row_index`` holds the physical (1-based) row number the record was
    read from and ``has_error`` is set when the row failed validation. Neither
    takes part in equality.
    """

    excel_row_index: Optional[int] = field(default=None, kw_only=True, repr=False, compare=False)
    has_error: bool = field(default=False, kw_only=True, repr=False, compare=False)
