"""
Metrics extraction from benchmark CSV files.

Reads the CSV table, resolves its columns through the header matcher, converts
units and computes TPOT for every data row. A CSV is imported atomically: the
first bad row rejects the whole file.
"""

import csv
import io
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from benchmark_models import PerformanceMetrics
from services.benchmark_validator import BenchmarkValidator
from services.errors import InvalidCsvFormat, InvalidNumericData, MissingColumns
from services.header_matcher import (
    HeaderMapping,
    StandardField,
    map_headers,
    missing_required_fields,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CsvTable:
    headers: List[str]
    rows: List[List[str]]


@dataclass(frozen=True)
class CsvRow:
    """Raw values of one data row, keyed by standard field."""
    process_num: str
    input_length: str
    output_length: str
    ttft: str
    tps: str
    total_time: Optional[str] = None


def read_csv_table(csv_text: str) -> CsvTable:
    """Split CSV text into a header row and trimmed data rows.

    Blank lines are skipped; the first non-empty line is the header.
    """
    if csv_text.startswith("\ufeff"):
        csv_text = csv_text[1:]

    try:
        records = [
            [cell.strip() for cell in record]
            for record in csv.reader(io.StringIO(csv_text))
        ]
    except csv.Error as e:
        raise InvalidCsvFormat(f"CSV could not be parsed: {e}")

    records = [record for record in records if any(cell for cell in record)]
    if not records:
        raise InvalidCsvFormat("CSV file is empty")

    headers, rows = records[0], records[1:]
    if not rows:
        raise InvalidCsvFormat("CSV file has no data rows")

    for number, row in enumerate(rows, start=1):
        if len(row) != len(headers):
            raise InvalidCsvFormat(
                f"CSV row {number} has {len(row)} columns, header has {len(headers)}"
            )
    return CsvTable(headers=headers, rows=rows)


class MetricsExtractor:
    """Turns CSV rows plus a header mapping into validated metrics records."""

    def __init__(self, validator: Optional[BenchmarkValidator] = None):
        self.validator = validator or BenchmarkValidator()

    def extract(self, mapping: HeaderMapping, rows: Sequence[Sequence[str]]) -> List[PerformanceMetrics]:
        missing = missing_required_fields(mapping)
        if missing:
            logger.warning(f"CSV rejected, missing columns: {missing}")
            raise MissingColumns(missing)

        metrics = []
        for number, row in enumerate(rows, start=1):
            raw = self._select(mapping, row)
            record = self._extract_row(mapping, raw, number)
            metrics.append(self.validator.validate_metric(record, row=number))
        return metrics

    def _select(self, mapping: HeaderMapping, row: Sequence[str]) -> CsvRow:
        def cell(field: StandardField) -> Optional[str]:
            column = mapping.get(field)
            if column is None or column.column_index >= len(row):
                return None
            return row[column.column_index]

        return CsvRow(
            process_num=cell(StandardField.PROCESS_NUM) or "",
            input_length=cell(StandardField.INPUT_LENGTH) or "",
            output_length=cell(StandardField.OUTPUT_LENGTH) or "",
            ttft=cell(StandardField.TTFT) or "",
            tps=cell(StandardField.TPS) or "",
            total_time=cell(StandardField.TOTAL_TIME),
        )

    def _extract_row(self, mapping: HeaderMapping, raw: CsvRow, number: int) -> dict:
        def integer(field: StandardField, value: str) -> int:
            parsed = _parse_int(value)
            if parsed is None:
                raise InvalidNumericData(number, mapping[field].source_column, value)
            return parsed

        def decimal(field: StandardField, value: str) -> float:
            parsed = _parse_float(value)
            if parsed is None:
                raise InvalidNumericData(number, mapping[field].source_column, value)
            return parsed * mapping[field].conversion_factor

        concurrency = integer(StandardField.PROCESS_NUM, raw.process_num)
        input_length = integer(StandardField.INPUT_LENGTH, raw.input_length)
        output_length = integer(StandardField.OUTPUT_LENGTH, raw.output_length)
        ttft = decimal(StandardField.TTFT, raw.ttft)
        tokens_per_second = decimal(StandardField.TPS, raw.tps)

        total_time = 0.0
        if raw.total_time:
            parsed = _parse_float(raw.total_time)
            if parsed is not None:
                total_time = parsed * mapping[StandardField.TOTAL_TIME].conversion_factor

        return {
            "input_length": input_length,
            "output_length": output_length,
            "concurrency": concurrency,
            "ttft": ttft,
            "tpot": compute_tpot(total_time, ttft, output_length),
            "tokens_per_second": round(tokens_per_second, 4),
        }


def compute_tpot(total_time: float, ttft: float, output_length: int) -> float:
    """Time per output token in ms; 0 when total time or output length is missing."""
    if total_time > 0 and output_length > 0:
        return round((total_time - ttft) / output_length, 4)
    return 0.0


def _parse_float(value: str) -> Optional[float]:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    parsed = _parse_float(value)
    if parsed is None or not parsed.is_integer():
        return None
    return int(parsed)


def parse_benchmark_csv(csv_text: str, extractor: Optional[MetricsExtractor] = None) -> List[PerformanceMetrics]:
    """Full ingestion pipeline: read, match headers, extract, validate."""
    _, metrics = preview_benchmark_csv(csv_text, extractor)
    return metrics


def preview_benchmark_csv(
    csv_text: str, extractor: Optional[MetricsExtractor] = None
) -> Tuple[HeaderMapping, List[PerformanceMetrics]]:
    """Like parse_benchmark_csv, but also returns the header mapping used."""
    table = read_csv_table(csv_text)
    mapping = map_headers(table.headers)
    metrics = (extractor or MetricsExtractor()).extract(mapping, table.rows)
    logger.info(f"Extracted {len(metrics)} metric rows from CSV with {len(table.headers)} columns")
    return mapping, metrics
