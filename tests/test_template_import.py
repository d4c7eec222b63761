"""Tests for ExcelTemplate.import_excel."""

# Module responsibilities:
# - Verify sheet import against in-memory workbooks (begin row, blank rows, counters).
# - Verify per-call result isolation and workbook read failures.

from __future__ import annotations

from datetime import date, datetime
from io import BytesIO

import pytest

from excel_template import (
    ConfigurationError,
    ExcelTemplate,
    ImportResult,
    Violation,
    WorkbookReadError,
)
from excel_template.validation import ROW_FIELD_PATH

from sample_records import AllTypes, Exploding, Person, workbook_bytes


def test_rows_are_validated_and_counted():
    source = workbook_bytes(
        [
            ["Alice", "Male", "2000-01-01", 30],
            ["  ", "Female", None, 20],
        ]
    )

    result = ExcelTemplate(Person).import_excel(source, begin_row=0)

    assert result.count == 2
    assert result.success == 1
    assert len(result.records) == 2
    assert [error.row_index for error in result.errors] == [2]
    assert result.errors[0].violations == [Violation("name", "must not be blank")]
    first, second = result.records
    assert first == Person(name="Alice", gender="M", birthday=date(2000, 1, 1), age=30)
    assert first.excel_row_index == 1 and first.has_error is False
    assert second.excel_row_index == 2 and second.has_error is True


def test_default_begin_row_skips_the_header():
    source = workbook_bytes(
        [
            ["Name", "Gender", "Birthday", "Age"],
            ["Bob", "Male", datetime(1999, 12, 31), 25],
        ]
    )

    result = ExcelTemplate(Person).import_excel(source)

    assert result.count == 1
    assert result.success == 1
    assert result.records[0].birthday == date(1999, 12, 31)
    assert result.records[0].excel_row_index == 2


def test_blank_rows_do_not_count():
    source = workbook_bytes(
        [
            ["Name", "Gender", "Birthday", "Age"],
            ["Carol", "Female", None, 50],
            [None, None, None, None],
            ["", " ", None, None],
            ["Dave", "Male", None, 51],
        ]
    )

    result = ExcelTemplate(Person).import_excel(source)

    assert result.count == 2
    assert [record.name for record in result] == ["Carol", "Dave"]
    assert [record.excel_row_index for record in result] == [2, 5]


def test_unknown_lookup_names_import_as_empty_code():
    source = workbook_bytes([["Name", "Gender", "Birthday", "Age"], ["Eve", "Other", None, 22]])

    result = ExcelTemplate(Person).import_excel(source)

    assert result.records[0].gender == ""
    assert result.success == 1


def test_format_errors_mark_the_row_without_dropping_it():
    source = workbook_bytes(
        [["Name", "Gender", "Birthday", "Age"], ["Frank", "Male", "31.12.1999", "old"]]
    )

    result = ExcelTemplate(Person).import_excel(source)

    assert result.count == 1
    assert result.success == 0
    assert result.records[0].name == "Frank"
    assert result.records[0].has_error is True
    assert [item.field_path for item in result.errors[0].violations] == ["birthday", "age"]


def test_failed_rows_are_reported_and_import_continues():
    source = workbook_bytes([["Name"], ["ok"], ["boom"], ["fine"]])

    result = ExcelTemplate(Exploding).import_excel(source)

    assert result.count == 3
    assert result.success == 2
    assert [record.name for record in result] == ["ok", "fine"]
    assert result.errors[0].row_index == 3
    assert result.errors[0].violations == [Violation(ROW_FIELD_PATH, "cannot store boom")]


def test_results_are_isolated_per_call():
    template = ExcelTemplate(Person)
    failing = workbook_bytes([["Name", "Gender", "Birthday", "Age"], [None, "Male", None, 1]])
    passing = workbook_bytes([["Name", "Gender", "Birthday", "Age"], ["Gina", "Female", None, 2]])

    first = template.import_excel(failing)
    second = template.import_excel(passing)

    assert (first.count, first.success, len(first.errors)) == (1, 0, 1)
    assert (second.count, second.success, second.errors) == (1, 1, [])


def test_counters_add_up():
    rows = [["Name", "Gender", "Birthday", "Age"]]
    rows += [[f"p{index}" if index % 3 else None, "Male", None, index] for index in range(10)]

    result = ExcelTemplate(Person).import_excel(workbook_bytes(rows))

    assert result.count == 10
    assert result.success + len(result.errors) == result.count
    assert result.has_error is True


def test_import_from_file_path(tmp_path):
    path = tmp_path / "people.xlsx"
    path.write_bytes(workbook_bytes([["Name", "Gender", "Birthday", "Age"], ["Hana", "Female", None, 9]]).getvalue())

    result = ExcelTemplate(Person).import_excel(path)

    assert [record.name for record in result] == ["Hana"]


def test_missing_source_gives_an_empty_result():
    result = ExcelTemplate(Person).import_excel(None)

    assert result == ImportResult()
    assert result.has_error is False


def test_negative_begin_row_is_rejected():
    with pytest.raises(ValueError):
        ExcelTemplate(Person).import_excel(workbook_bytes([["x"]]), begin_row=-1)


def test_unreadable_workbooks_raise(tmp_path):
    with pytest.raises(WorkbookReadError):
        ExcelTemplate(Person).import_excel(BytesIO(b"not a workbook"))
    with pytest.raises(WorkbookReadError):
        ExcelTemplate(Person).import_excel(tmp_path / "missing.xlsx")


def test_record_type_is_required():
    with pytest.raises(ConfigurationError):
        ExcelTemplate(None)


def test_custom_validator_is_used():
    class RejectAll:
        def validate(self, record):
            return [Violation("name", "rejected")]

    source = workbook_bytes([["Name", "Gender", "Birthday", "Age"], ["Ivan", "Male", None, 3]])

    result = ExcelTemplate(Person, validator=RejectAll()).import_excel(source)

    assert result.success == 0
    assert result.errors[0].violations == [Violation("name", "rejected")]


def test_title_mapper_does_not_change_import_positions():
    source = workbook_bytes([["Whatever"], ["Julia", "Female", None, 4]])

    result = ExcelTemplate(Person).import_excel(source, {"Name": "Full name"})

    assert result.records[0].name == "Julia"


def test_typed_cells_are_coerced():
    source = workbook_bytes(
        [
            ["header"],
            ["text", True, datetime(2024, 1, 5), datetime(2024, 1, 5, 13, 45, 30), 4.0, -3, 5, 0.5, 2.25, 19.999],
        ]
    )

    record = ExcelTemplate(AllTypes).import_excel(source).records[0]

    assert record.flag is True
    assert record.day == date(2024, 1, 5)
    assert record.moment == datetime(2024, 1, 5, 13, 45, 30)
    assert record.count == 4
    assert record.small == -3
    assert record.tiny == 5
    assert record.ratio == 0.5
    assert record.amount == 2.25
    assert str(record.price) == "20.00"


def test_of_builds_a_template_and_exposes_columns():
    template = ExcelTemplate.of(Person, mark_required=False)

    columns = template.column_info({"Age": "Years"})

    assert template.mark_required is False
    assert [column.title for column in columns] == ["Name", "Gender", "Birthday", "Years"]
