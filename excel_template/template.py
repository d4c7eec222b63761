"""Excel import/export driven by record dataclass metadata."""

# Module responsibilities:
# - Import the first sheet of a workbook into typed records, aggregating row errors per call.
# - Generate formatted templates: styled headers, data rows, lookup dropdowns and column widths.
# - Keep openpyxl resource handling (open/close, write-only streaming) in one place.

from __future__ import annotations

import re
import zipfile
from pathlib import Path
from typing import IO, Any, Generic, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from openpyxl import Workbook, load_workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Alignment, Border, Font, NamedStyle, PatternFill, Side
from openpyxl.utils import get_column_letter, quote_sheetname
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.defined_name import DefinedName
from openpyxl.worksheet.datavalidation import DataValidation

from .codes import LookupProvider, RegistryLookupProvider
from .errors import ConfigurationError, WorkbookReadError
from .rows import export_row, import_row
from .schema import ColumnSchema, filter_columns, resolve_columns
from .settings import TemplateSettings
from .utils.log import get_logger
from .validation import ConstraintValidator, ImportResult, RowAggregator, Validator

logger = get_logger("template")

T = TypeVar("T")
Source = Union[str, Path, IO[bytes]]

_INVALID_SHEET_CHARS = re.compile(r"[\\/?*\[\]:]")
_INVALID_NAME_CHARS = re.compile(r"[^\w.]")
_CELL_REFERENCE = re.compile(r"^[A-Za-z]{1,3}\d+$")


def _merge_max(widths: List[int], row_widths: Sequence[int]) -> None:
    for index, width in enumerate(row_widths[: len(widths)]):
        widths[index] = max(widths[index], width)


def _place(columns: Sequence[ColumnSchema], values: Sequence[Any]) -> List[Any]:
    """Lay ``values`` (one per column) out at their declared column indices."""

    row: List[Any] = [None] * (columns[-1].col + 1)
    for column, value in zip(columns, values):
        row[column.col] = value
    return row


def _code_sheet_title(name: str) -> str:
    return _INVALID_SHEET_CHARS.sub("_", name)[:31]


def _defined_name(name: str) -> str:
    """Turn a column name into a valid workbook-level defined name."""

    candidate = _INVALID_NAME_CHARS.sub("_", name)
    if not candidate or candidate[0].isdigit() or _CELL_REFERENCE.match(candidate):
        candidate = f"_{candidate}"
    return candidate


def _open_workbook(source: Source) -> Workbook:
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise WorkbookReadError(f"Source workbook not found: {source}")
    try:
        return load_workbook(source, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        logger.error("Failed to open Excel workbook", extra={"error": str(exc)})
        raise WorkbookReadError(f"Cannot open workbook: {exc}") from exc


class ExcelTemplate(Generic[T]):
    """Map the first sheet of a workbook to and from records of ``record_type``.

    Each import call returns its own :class:`ImportResult`, so one instance
    can serve any number of (concurrent) calls.
    """

    def __init__(
        self,
        record_type: type,
        mark_required: bool = True,
        *,
        lookups: Optional[LookupProvider] = None,
        validator: Optional[Validator] = None,
        settings: Optional[TemplateSettings] = None,
    ) -> None:
        if record_type is None:
            raise ConfigurationError("Record type is not set")
        self.record_type = record_type
        self.mark_required = mark_required
        self.settings = settings if settings is not None else TemplateSettings()
        self._lookups = lookups or RegistryLookupProvider()
        self._validator = validator if validator is not None else ConstraintValidator()

    @classmethod
    def of(cls, record_type: type, mark_required: bool = True, **kwargs: Any) -> "ExcelTemplate[T]":
        return cls(record_type, mark_required, **kwargs)

    def column_info(self, title_mapper: Optional[Mapping[str, str]] = None) -> List[ColumnSchema]:
        """Resolved columns of the record type, ordered by column index."""

        return resolve_columns(
            self.record_type,
            title_mapper,
            lookups=self._lookups,
            default_date_format=self.settings.default_date_format,
        )

    # ------------------------------------------------------------------ import

    def import_excel(
        self,
        source: Optional[Source],
        title_mapper: Optional[Mapping[str, str]] = None,
        begin_row: int = 1,
    ) -> ImportResult:
        """Read the first sheet of ``source`` into records.

        Args:
            source: Workbook path or binary stream; ``None`` gives an empty result.
            title_mapper: Optional rename map applied to column titles.
            begin_row: Zero-based index of the first data row (1 skips a header row).

        Returns:
            Records in sheet order with the per-call counters and row errors.

        Raises:
            ConfigurationError: When the record type cannot be resolved.
            WorkbookReadError: When the workbook cannot be opened.
        """

        if source is None:
            return ImportResult()
        if begin_row < 0:
            raise ValueError("begin_row must be zero or positive")

        columns = self.column_info(title_mapper)
        aggregator = RowAggregator(self._validator)
        workbook = _open_workbook(source)
        try:
            sheet = workbook.worksheets[0]
            aggregator.start()
            first_row = begin_row + 1
            for offset, cells in enumerate(sheet.iter_rows(min_row=first_row)):
                row_index = first_row + offset
                try:
                    record, violations = import_row(cells, columns, self.record_type)
                except ConfigurationError:
                    raise
                except Exception as exc:
                    logger.error(
                        "Failed to decode row",
                        extra={"row": row_index, "error": str(exc)},
                    )
                    aggregator.add_failure(row_index, exc)
                    continue
                if record is None:
                    continue
                aggregator.add_record(row_index, record, violations)
        finally:
            workbook.close()

        result = aggregator.finish()
        logger.info(
            "Excel import finished",
            extra={
                "record_type": self.record_type.__name__,
                "count": result.count,
                "success": result.success,
                "errors": len(result.errors),
            },
        )
        return result

    # ------------------------------------------------------------------ export

    def generate_excel(
        self,
        workbook: Optional[Workbook] = None,
        records: Iterable[Any] = (),
        include_fields: Optional[Sequence[str]] = None,
        title_mapper: Optional[Mapping[str, str]] = None,
        repeat_header: bool = False,
    ) -> Workbook:
        """Write ``records`` into the first sheet of ``workbook``.

        Args:
            workbook: Target workbook; a streaming (write-only) workbook is created when omitted.
            records: Records to write, in order.
            include_fields: Field names to export; all columns when empty.
            title_mapper: Optional rename map applied to header titles.
            repeat_header: Repeat the header row before every record.

        Returns:
            The populated workbook (not saved).
        """

        if workbook is None:
            workbook = Workbook(write_only=True)
        sheet = workbook.worksheets[0] if workbook.worksheets else workbook.create_sheet(self.settings.sheet_title)

        columns = filter_columns(self.column_info(title_mapper), include_fields)
        if not columns:
            logger.error(
                "No columns to export",
                extra={"record_type": self.record_type.__name__, "include_fields": list(include_fields or [])},
            )
            return workbook

        style_name = self._header_style(workbook)
        titles, widths = self._header_row(columns)
        self._add_dropdowns(workbook, sheet, columns)

        header = _place(columns, titles)
        rows: List[Tuple[List[Any], bool]] = [(header, True)]
        written = 0
        for index, record in enumerate(records):
            if repeat_header and index > 0:
                rows.append((header, True))
            values, row_widths = export_row(record, columns)
            _merge_max(widths, row_widths)
            rows.append((_place(columns, values), False))
            written += 1

        # Write-only sheets fix column widths before the first row is emitted.
        for column, width in zip(columns, widths):
            sheet.column_dimensions[get_column_letter(column.col + 1)].width = min(
                self.settings.max_column_width, width
            )

        for values, is_header in rows:
            if is_header:
                sheet.append(
                    [
                        None if value is None else self._header_cell(sheet, value, style_name)
                        for value in values
                    ]
                )
            else:
                sheet.append(values)

        logger.info(
            "Excel template generated",
            extra={"record_type": self.record_type.__name__, "rows": written, "columns": len(columns)},
        )
        return workbook

    def export_excel(
        self,
        out_path: Path,
        records: Iterable[Any],
        include_fields: Optional[Sequence[str]] = None,
        title_mapper: Optional[Mapping[str, str]] = None,
        repeat_header: bool = False,
    ) -> Path:
        """Generate a streaming workbook for ``records`` and save it to ``out_path``."""

        workbook = self.generate_excel(
            None,
            records,
            include_fields=include_fields,
            title_mapper=title_mapper,
            repeat_header=repeat_header,
        )
        out_path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(out_path)
        logger.info("Excel template saved", extra={"output": str(out_path)})
        return out_path

    # ----------------------------------------------------------------- helpers

    def _header_row(self, columns: Sequence[ColumnSchema]) -> Tuple[List[str], List[int]]:
        values: List[str] = []
        widths: List[int] = []
        for column in columns:
            text = column.title
            if self.mark_required and column.required:
                text += self.settings.required_mark
            values.append(text)
            widths.append(len(text.encode("utf-8")))
        return values, widths

    @staticmethod
    def _header_cell(sheet: Any, value: str, style_name: str) -> WriteOnlyCell:
        cell = WriteOnlyCell(sheet, value=value)
        cell.style = style_name
        return cell

    def _header_style(self, workbook: Workbook) -> str:
        """Register the header style once per workbook and return its name."""

        name = self.settings.header_style_name
        if name in workbook.named_styles:
            return name
        thin = Side(style="thin", color="000000")
        style = NamedStyle(
            name=name,
            font=Font(bold=True),
            fill=PatternFill(
                fill_type="solid",
                start_color=self.settings.header_fill,
                end_color=self.settings.header_fill,
            ),
            border=Border(left=thin, right=thin, top=thin, bottom=thin),
            alignment=Alignment(horizontal="center"),
        )
        workbook.add_named_style(style)
        return name

    def _add_dropdowns(self, workbook: Workbook, sheet: Any, columns: Sequence[ColumnSchema]) -> None:
        for column in columns:
            if column.lookup is None:
                continue
            range_name = self._code_list_range(workbook, column)
            if range_name is None:
                continue
            letter = get_column_letter(column.col + 1)
            validation = DataValidation(type="list", formula1=range_name, allow_blank=True)
            validation.add(f"{letter}2:{letter}{self.settings.dropdown_row_limit + 1}")
            sheet.data_validations.append(validation)

    def _code_list_range(self, workbook: Workbook, column: ColumnSchema) -> Optional[str]:
        """Hidden sheet + defined name listing the lookup's entries, built once per workbook.

        Returns the defined name, or ``None`` when the lookup has no entries.
        """

        if not column.name:
            raise ConfigurationError(f"Column of field '{column.field_name}' needs a name for its dropdown")
        range_name = _defined_name(column.name)
        if range_name in workbook.defined_names:
            return range_name

        beans = list(column.lookup.load_code_list())
        if not beans:
            return None

        # openpyxl suffixes the title when a sheet of that name already exists.
        code_sheet = workbook.create_sheet(_code_sheet_title(column.name))
        code_sheet.sheet_state = "hidden"
        for bean in beans:
            code_sheet.append([bean.name])
        workbook.defined_names[range_name] = DefinedName(
            name=range_name,
            attr_text=f"{quote_sheetname(code_sheet.title)}!$A$1:$A${len(beans)}",
        )
        logger.info(
            "Dropdown source sheet created",
            extra={"sheet": code_sheet.title, "entries": len(beans)},
        )
        return range_name

