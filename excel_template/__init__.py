"""`excel_template` maps spreadsheet rows to typed record dataclasses and back."""

# Module responsibilities:
# - Re-export the record declaration helpers, the ExcelTemplate facade and result types.
# - Provide package version placeholder for packaging.

from __future__ import annotations

from .codes import (
    BaseCodeLookup,
    CodeBean,
    CodeLookup,
    LookupProvider,
    MappingCodeLookup,
    RegistryLookupProvider,
)
from .columns import (
    Digits,
    ExcelColumn,
    ExcelRecord,
    IsDate,
    NotBlank,
    NotEmpty,
    NotNull,
    excel_column,
)
from .errors import ConfigurationError, ExcelTemplateError, FormatError, WorkbookReadError
from .schema import ColumnKind, ColumnSchema, resolve_columns
from .settings import TemplateSettings, load_settings, load_title_mapper
from .template import ExcelTemplate
from .validation import (
    ConstraintValidator,
    ExcelRowError,
    ImportResult,
    Validator,
    Violation,
)

__all__ = [
    "BaseCodeLookup",
    "CodeBean",
    "CodeLookup",
    "LookupProvider",
    "MappingCodeLookup",
    "RegistryLookupProvider",
    "Digits",
    "ExcelColumn",
    "ExcelRecord",
    "IsDate",
    "NotBlank",
    "NotEmpty",
    "NotNull",
    "excel_column",
    "ConfigurationError",
    "ExcelTemplateError",
    "FormatError",
    "WorkbookReadError",
    "ColumnKind",
    "ColumnSchema",
    "resolve_columns",
    "TemplateSettings",
    "load_settings",
    "load_title_mapper",
    "ExcelTemplate",
    "ConstraintValidator",
    "ExcelRowError",
    "ImportResult",
    "Validator",
    "Violation",
]

__version__ = "0.1.0"
