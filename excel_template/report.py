"""Reporting utilities for import results."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd

from .validation import ImportResult

ERROR_COLUMNS = ("row", "field", "message")


def errors_frame(result: ImportResult) -> pd.DataFrame:
    """One line per violation, ordered by row."""

    rows = [
        {"row": error.row_index, "field": violation.field_path, "message": violation.message}
        for error in result.errors
        for violation in error.violations
    ]
    return pd.DataFrame(rows, columns=list(ERROR_COLUMNS))


def generate_report(
    result: ImportResult,
    output_dir: Path,
    *,
    name: str = "import",
) -> tuple[Path, Optional[Path]]:
    """Generate a Markdown summary and, when rows failed, a CSV of the violations."""

    output_dir.mkdir(parents=True, exist_ok=True)

    errors_path: Optional[Path] = None
    frame = errors_frame(result)
    if not frame.empty:
        errors_path = output_dir / f"{name}_errors.csv"
        frame.to_csv(errors_path, index=False)

    report_path = output_dir / f"{name}_report.md"
    lines = ["# Excel Import Report", ""]
    lines.append(f"- Imported rows: {result.count}")
    lines.append(f"- Valid rows: {result.success}")
    lines.append(f"- Rows with errors: {len(result.errors)}")
    lines.append("")

    if result.errors:
        lines.append("## Row errors")
        for error in result.errors:
            lines.append(f"- **Row {error.row_index}**")
            for violation in error.violations:
                lines.append(f"  - `{violation.field_path}`: {violation.message}")
        lines.append("")
    if errors_path:
        lines.append(f"Violations exported to `{errors_path.name}`.")

    report_path.write_text("\n".join(lines), encoding="utf-8")
    return report_path, errors_path
