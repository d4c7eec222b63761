"""Custom exceptions used across excel_template."""


class ExcelTemplateError(Exception):
    """Base error for the package."""


class ConfigurationError(ExcelTemplateError):
    """Record type or template configuration is invalid."""


class FormatError(ExcelTemplateError, ValueError):
    """Raised when a cell cannot be parsed into the type of its field."""


class WorkbookReadError(ExcelTemplateError, OSError):
    """Raised when the source workbook cannot be opened or read."""
