"""
RESPONSIBILITIES
- Define the Validator interface and the default constraint validator for record dataclasses.
- Aggregate per-row violations of one import call into an ImportResult.
PROCESS OVERVIEW
1. RowAggregator.start() opens a counting window (count/success/errors reset).
2. add_record() validates a decoded record and records an ExcelRowError when it fails.
3. add_failure() turns a row that could not be decoded into an ExcelRowError.
4. finish() closes the window and returns the immutable per-call ImportResult.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterator, List, Optional, Protocol, Sequence

from .coercion import parse_date_strictly
from .columns import Digits, IsDate, NotBlank, NotEmpty, NotNull, column_metadata
from .errors import ExcelTemplateError, FormatError

ROW_FIELD_PATH = "<row>"


@dataclass(frozen=True)
class Violation:
    field_path: str
    message: str


class Validator(Protocol):
    """Constraint-validation engine inspecting one record."""

    def validate(self, record: Any) -> List[Violation]:
        """Return the violations of ``record``; empty when it is valid."""


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    try:
        return len(value) == 0
    except TypeError:
        return False


def _check_digits(value: Any, digits: Digits) -> bool:
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        return False
    if not number.is_finite():
        return False
    sign, digit_tuple, exponent = number.normalize().as_tuple()
    fraction = max(0, -exponent)
    integer = max(0, len(digit_tuple) + exponent)
    if number == 0:
        integer = 0
    return integer <= digits.integer and fraction <= digits.fraction


def _check_date(value: Any, constraint: IsDate) -> bool:
    if isinstance(value, date):
        return True
    try:
        parse_date_strictly(str(value), tuple(constraint.formats))
    except FormatError:
        return False
    return True


class ConstraintValidator:
    """Evaluate the constraint markers declared through ``excel_column``.

    Violations are reported in field declaration order.
    """

    def validate(self, record: Any) -> List[Violation]:
        violations: List[Violation] = []
        for item in dataclasses.fields(record):
            meta = column_metadata(item)
            if meta is None:
                continue
            value = getattr(record, item.name)
            for constraint in meta.constraints:
                message = self._check(value, constraint)
                if message is not None:
                    violations.append(Violation(field_path=item.name, message=message))
        return violations

    @staticmethod
    def _check(value: Any, constraint: Any) -> Optional[str]:
        if isinstance(constraint, NotNull):
            return constraint.message if value is None else None
        if isinstance(constraint, NotEmpty):
            return constraint.message if _is_empty(value) else None
        if isinstance(constraint, NotBlank):
            return constraint.message if value is None or not str(value).strip() else None
        if value is None or value == "":
            return None
        if isinstance(constraint, IsDate):
            return None if _check_date(value, constraint) else constraint.message
        if isinstance(constraint, Digits):
            return None if _check_digits(value, constraint) else constraint.describe()
        return None


@dataclass
class ExcelRowError:
    """Validation failures of one imported row."""

    row_index: int
    violations: List[Violation] = field(default_factory=list)

    def __str__(self) -> str:
        if not self.violations:
            return ""
        lines = [f"Row {self.row_index}:"]
        lines.extend(f"{item.field_path} {item.message}" for item in self.violations)
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class ImportResult:
    """Outcome of one import call."""

    records: List[Any] = field(default_factory=list)
    count: int = 0
    success: int = 0
    errors: List[ExcelRowError] = field(default_factory=list)

    @property
    def has_error(self) -> bool:
        return self.success < self.count

    def __iter__(self) -> Iterator[Any]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


class AggregatorState(Enum):
    IDLE = "idle"
    COUNTING = "counting"
    DONE = "done"


class RowAggregator:
    """Count rows and collect row errors for a single import call."""

    def __init__(self, validator: Validator) -> None:
        self._validator = validator
        self.state = AggregatorState.IDLE
        self._records: List[Any] = []
        self._errors: List[ExcelRowError] = []
        self._count = 0
        self._success = 0

    def start(self) -> None:
        self._records = []
        self._errors = []
        self._count = 0
        self._success = 0
        self.state = AggregatorState.COUNTING

    def _ensure_counting(self) -> None:
        if self.state is not AggregatorState.COUNTING:
            raise ExcelTemplateError(f"Aggregator is {self.state.value}; call start() first")

    def add_record(
        self, row_index: int, record: Any, decode_violations: Sequence[Violation] = ()
    ) -> None:
        """Validate ``record`` read from physical row ``row_index``."""

        self._ensure_counting()
        self._count += 1
        record.excel_row_index = row_index
        violations = list(decode_violations)
        # A field that failed to decode is reported once, by its decode violation.
        undecoded = {item.field_path for item in violations}
        violations.extend(
            item for item in self._validator.validate(record) if item.field_path not in undecoded
        )
        if violations:
            self._errors.append(ExcelRowError(row_index=row_index, violations=violations))
            record.has_error = True
        else:
            self._success += 1
        self._records.append(record)

    def add_failure(self, row_index: int, exc: BaseException) -> None:
        """Record a row whose decoding failed before a record existed."""

        self._ensure_counting()
        self._count += 1
        self._errors.append(
            ExcelRowError(
                row_index=row_index,
                violations=[Violation(field_path=ROW_FIELD_PATH, message=str(exc) or type(exc).__name__)],
            )
        )

    def finish(self) -> ImportResult:
        self._ensure_counting()
        self.state = AggregatorState.DONE
        return ImportResult(
            records=self._records,
            count=self._count,
            success=self._success,
            errors=self._errors,
        )
