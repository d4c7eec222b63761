"""Column schema resolution for record dataclasses."""

# Module responsibilities:
# - Turn the excel_column() metadata of a record dataclass into ordered ColumnSchema descriptors.
# - Resolve field annotations into ColumnKind tags, bind code lookups and date formats once per call.

from __future__ import annotations

import dataclasses
import types
import typing
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .codes import CodeLookup, LookupProvider, RegistryLookupProvider
from .columns import DEFAULT_DATE_FORMAT, Digits, IsDate, column_metadata
from .errors import ConfigurationError


class ColumnKind(str, Enum):
    """Target type tag of a column, drives coercion dispatch."""

    TEXT = "text"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    SHORT = "short"
    BYTE = "byte"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "datetime"
    OBJECT = "object"


# Order matters: bool is an int subclass, datetime a date subclass.
_ANNOTATION_KINDS: Tuple[Tuple[type, ColumnKind], ...] = (
    (bool, ColumnKind.BOOLEAN),
    (int, ColumnKind.INTEGER),
    (float, ColumnKind.DOUBLE),
    (Decimal, ColumnKind.DECIMAL),
    (datetime, ColumnKind.DATETIME),
    (date, ColumnKind.DATE),
    (str, ColumnKind.TEXT),
)


@dataclass(frozen=True)
class ColumnSchema:
    """Resolved description of how one record field maps to one column."""

    col: int
    name: str
    title: str
    field_name: str
    kind: ColumnKind
    lookup: Optional[CodeLookup] = None
    date_formats: Tuple[str, ...] = (DEFAULT_DATE_FORMAT,)
    fraction_digits: Optional[int] = None
    required: bool = False

    @property
    def default_date_format(self) -> str:
        return self.date_formats[0]


def _unwrap_optional(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def kind_for_annotation(annotation: Any) -> ColumnKind:
    """Map a field annotation to its ColumnKind; unknown types pass through as OBJECT."""

    target = _unwrap_optional(annotation)
    if not isinstance(target, type):
        return ColumnKind.OBJECT
    for python_type, kind in _ANNOTATION_KINDS:
        if issubclass(target, python_type):
            return kind
    return ColumnKind.OBJECT


def resolve_columns(
    record_type: Optional[type],
    title_mapper: Optional[Mapping[str, str]] = None,
    *,
    lookups: Optional[LookupProvider] = None,
    default_date_format: str = DEFAULT_DATE_FORMAT,
) -> List[ColumnSchema]:
    """Build the ordered column schema of ``record_type``.

    Args:
        record_type: Dataclass whose fields are declared with ``excel_column``.
        title_mapper: Optional ``declared name -> display title`` rename map.
        lookups: Provider used to instantiate declared code lookups.
        default_date_format: Date pattern of columns without an IsDate constraint.

    Returns:
        Column descriptors sorted by column index.

    Raises:
        ConfigurationError: When the record type is missing, not a dataclass,
            declares no columns, repeats a column index, or has unresolvable
            annotations.
    """

    if record_type is None:
        raise ConfigurationError("Record type is not set")
    if not dataclasses.is_dataclass(record_type):
        raise ConfigurationError(f"{record_type!r} is not a dataclass")

    try:
        hints = typing.get_type_hints(record_type)
    except (NameError, TypeError) as exc:
        raise ConfigurationError(
            f"Cannot resolve field annotations of {record_type.__name__}: {exc}"
        ) from exc

    provider = lookups or RegistryLookupProvider()
    columns: List[ColumnSchema] = []
    seen: Dict[int, str] = {}
    for item in dataclasses.fields(record_type):
        meta = column_metadata(item)
        if meta is None:
            continue
        if meta.col in seen:
            raise ConfigurationError(
                f"Column index {meta.col} declared by both '{seen[meta.col]}' and '{item.name}'"
            )
        seen[meta.col] = item.name

        if meta.kind is not None:
            try:
                kind = ColumnKind(meta.kind)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Unknown column kind '{meta.kind}' on field '{item.name}'"
                ) from exc
        else:
            kind = kind_for_annotation(hints.get(item.name))

        is_date = meta.constraint(IsDate)
        digits = meta.constraint(Digits)
        columns.append(
            ColumnSchema(
                col=meta.col,
                name=meta.name,
                title=(title_mapper or {}).get(meta.name, meta.name),
                field_name=item.name,
                kind=kind,
                lookup=provider.resolve(meta.coding) if meta.coding is not None else None,
                date_formats=tuple(is_date.formats) if is_date else (default_date_format,),
                fraction_digits=digits.fraction if digits else None,
                required=meta.required,
            )
        )

    if not columns:
        raise ConfigurationError(f"{record_type.__name__} declares no excel columns")

    return sorted(columns, key=lambda column: column.col)


def filter_columns(
    columns: Sequence[ColumnSchema], include_fields: Optional[Sequence[str]]
) -> List[ColumnSchema]:
    """Keep only the columns of the named fields, preserving schema order."""

    if not include_fields:
        return list(columns)
    wanted = set(include_fields)
    return [column for column in columns if column.field_name in wanted]
