"""
Input errors raised while ingesting and validating benchmark data.
All of them are caller-recoverable and map to HTTP 400 at the API boundary.
"""

from typing import List, Optional


class BenchmarkInputError(ValueError):
    """Base class for rejected benchmark input."""


class MissingColumns(BenchmarkInputError):
    """The CSV header row does not cover every mandatory standard field."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"CSV is missing required columns: {', '.join(self.missing)}")


class InvalidNumericData(BenchmarkInputError):
    """A mandatory numeric cell could not be parsed."""

    def __init__(self, row: int, column: str, value: str):
        self.row = row
        self.column = column
        self.value = value
        super().__init__(
            f"CSV contains invalid numeric data in row {row}, column '{column}': {value!r}"
        )


class InvalidCsvFormat(BenchmarkInputError):
    """The CSV text itself is unusable (empty, ragged rows, no data)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid CSV: {reason}")


class InvalidConfig(BenchmarkInputError):
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid config: {field} {reason}")


class InvalidMetric(BenchmarkInputError):
    def __init__(self, field: Optional[str], reason: str, row: Optional[int] = None):
        self.field = field
        self.reason = reason
        self.row = row
        location = f" at row {row}" if row is not None else ""
        subject = f"{field} " if field else ""
        super().__init__(f"Invalid metric entry{location}: {subject}{reason}")


class InvalidReport(BenchmarkInputError):
    """A comparison report references missing or identical benchmarks."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid report: {reason}")
