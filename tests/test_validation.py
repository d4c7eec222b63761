"""Tests for constraint validation and row error aggregation."""

# Module responsibilities:
# - Verify the constraint validator against the declared markers.
# - Verify RowAggregator counters, its lifecycle and ExcelRowError rendering.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from excel_template import (
    ConstraintValidator,
    Digits,
    ExcelRecord,
    ExcelRowError,
    ExcelTemplateError,
    IsDate,
    NotBlank,
    NotEmpty,
    NotNull,
    Violation,
    excel_column,
)
from excel_template.validation import ROW_FIELD_PATH, AggregatorState, RowAggregator

from sample_records import Person


@dataclass
class Constrained(ExcelRecord):
    label: Optional[str] = excel_column(0, "Label", constraints=(NotEmpty(),))
    code: Optional[str] = excel_column(1, "Code", constraints=(NotNull(message="code is required"),))
    issued: Optional[str] = excel_column(2, "Issued", constraints=(IsDate(("%Y-%m-%d",)),))
    amount: Optional[Decimal] = excel_column(3, "Amount", constraints=(Digits(3, 2),))


def test_valid_record_has_no_violations():
    record = Constrained(label="x", code="c", issued="2024-01-05", amount=Decimal("123.45"))

    assert ConstraintValidator().validate(record) == []


def test_violations_are_reported_in_field_order():
    record = Constrained(label="", code=None, issued="05.01.2024", amount=Decimal("1234.5"))

    violations = ConstraintValidator().validate(record)

    assert violations == [
        Violation("label", "must not be empty"),
        Violation("code", "code is required"),
        Violation("issued", "invalid date format"),
        Violation("amount", Digits(3, 2).describe()),
    ]


def test_optional_constraints_ignore_missing_values():
    record = Constrained(label="x", code="c", issued=None, amount=None)

    assert ConstraintValidator().validate(record) == []


def test_date_values_satisfy_is_date():
    @dataclass
    class Dated:
        day: Optional[date] = excel_column(0, "Day", constraints=(IsDate(),))

    assert ConstraintValidator().validate(Dated(day=date(2024, 1, 5))) == []


def test_digits_counts_fraction_after_normalizing():
    record = Constrained(label="x", code="c", amount=Decimal("1.500"))
    too_precise = Constrained(label="x", code="c", amount=Decimal("1.555"))

    assert ConstraintValidator().validate(record) == []
    assert [item.field_path for item in ConstraintValidator().validate(too_precise)] == ["amount"]


def test_not_blank_rejects_whitespace():
    assert ConstraintValidator().validate(Person(name="   ", age=3)) == [
        Violation("name", NotBlank().message)
    ]


def test_aggregator_counts_rows_and_collects_errors():
    aggregator = RowAggregator(ConstraintValidator())
    valid = Person(name="Alice", age=30)
    invalid = Person(name=None, age=20)

    aggregator.start()
    aggregator.add_record(2, valid)
    aggregator.add_record(3, invalid)
    aggregator.add_failure(4, RuntimeError("broken row"))
    result = aggregator.finish()

    assert result.count == 3
    assert result.success == 1
    assert result.has_error is True
    assert [error.row_index for error in result.errors] == [3, 4]
    assert result.success + len(result.errors) == result.count
    assert list(result) == [valid, invalid]
    assert len(result) == 2
    assert valid.excel_row_index == 2 and valid.has_error is False
    assert invalid.excel_row_index == 3 and invalid.has_error is True
    assert result.errors[1].violations == [Violation(ROW_FIELD_PATH, "broken row")]
    assert aggregator.state is AggregatorState.DONE


def test_decode_violations_fail_the_row():
    aggregator = RowAggregator(ConstraintValidator())
    record = Person(name="Bob", age=1)

    aggregator.start()
    aggregator.add_record(5, record, [Violation("birthday", "bad date")])
    result = aggregator.finish()

    assert result.success == 0
    assert result.errors[0].violations == [Violation("birthday", "bad date")]


def test_undecodable_field_is_reported_once():
    aggregator = RowAggregator(ConstraintValidator())
    record = Person(name=None, age=None)

    aggregator.start()
    aggregator.add_record(7, record, [Violation("age", "'old' is not a number")])
    result = aggregator.finish()

    assert result.errors[0].violations == [
        Violation("age", "'old' is not a number"),
        Violation("name", "must not be blank"),
    ]


def test_aggregator_requires_start():
    aggregator = RowAggregator(ConstraintValidator())

    with pytest.raises(ExcelTemplateError):
        aggregator.add_record(1, Person())

    aggregator.start()
    aggregator.finish()
    with pytest.raises(ExcelTemplateError):
        aggregator.finish()


def test_row_error_text():
    error = ExcelRowError(2, [Violation("name", "must not be blank"), Violation("age", "must not be null")])

    assert str(error) == "Row 2:\nname must not be blank\nage must not be null\n"
    assert str(ExcelRowError(9)) == ""
