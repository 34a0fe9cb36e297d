"""
Header matching for benchmark CSV files.

Maps the column headers produced by different vendor benchmark tools onto a
fixed set of standard fields, and detects columns reported in seconds that
have to be converted to milliseconds.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class StandardField(str, Enum):
    PROCESS_NUM = "processNum"
    INPUT_LENGTH = "inputLength"
    OUTPUT_LENGTH = "outputLength"
    TTFT = "ttft"
    TPS = "tps"
    TOTAL_TIME = "totalTime"


REQUIRED_FIELDS: Tuple[StandardField, ...] = (
    StandardField.PROCESS_NUM,
    StandardField.INPUT_LENGTH,
    StandardField.OUTPUT_LENGTH,
    StandardField.TTFT,
    StandardField.TPS,
)

HEADER_ALIASES: Mapping[StandardField, Tuple[str, ...]] = MappingProxyType({
    StandardField.PROCESS_NUM: (
        "Process Num",
        "ProcessNum",
        "process num",
        "parallel",
        "concurrency",
    ),
    StandardField.INPUT_LENGTH: (
        "Input Length",
        "InputLength",
        "input length",
        "input",
        "total input",
    ),
    StandardField.OUTPUT_LENGTH: (
        "Output Length",
        "OutputLength",
        "output length",
        "output",
        "total output",
    ),
    StandardField.TTFT: (
        "TTFT (ms)",
        "TTFT(ms)",
        "ttft ms",
        "ttft",
        "Mean TTFT (ms)",
        "Mean TTFT",
        "mean ttft",
    ),
    StandardField.TPS: (
        "TPS (with prefill)",
        "TPS(with prefill)",
        "avg TPS (with prefill)",
        "tps with prefill",
        "tps",
        "output throughput (tok/s)",
        "output throughput",
        "throughput",
    ),
    StandardField.TOTAL_TIME: (
        "Total Time (ms)",
        "TotalTime(ms)",
        "total time ms",
        "total time",
        "duration (s)",
        "duration(s)",
        "duration",
    ),
})

FRIENDLY_NAMES: Mapping[StandardField, str] = MappingProxyType({
    StandardField.PROCESS_NUM: "Process Num / parallel / concurrency",
    StandardField.INPUT_LENGTH: "Input Length / input",
    StandardField.OUTPUT_LENGTH: "Output Length / output",
    StandardField.TTFT: "TTFT (ms) / Mean TTFT",
    StandardField.TPS: "TPS (with prefill) / output throughput",
    StandardField.TOTAL_TIME: "Total Time (ms) / duration",
})


@dataclass(frozen=True)
class UnitConversion:
    """Header tokens that mark a unit, and the factor converting it to ms."""
    identifiers: Tuple[str, ...]
    excluded: Tuple[str, ...]
    factor: float
    description: str


UNIT_CONVERSIONS: Tuple[UnitConversion, ...] = (
    UnitConversion(
        identifiers=("(s)", "(sec)", "(secs)", "(seconds)", "[s]", "seconds"),
        excluded=("ms", "millisecond"),
        factor=1000.0,
        description="seconds to milliseconds",
    ),
)

# Only time columns carry a unit worth converting
CONVERTIBLE_FIELDS = frozenset({StandardField.TTFT, StandardField.TOTAL_TIME})


@dataclass(frozen=True)
class ColumnMapping:
    """Where a standard field lives in the CSV and how to scale its values."""
    source_column: str
    column_index: int
    conversion_factor: float = 1.0


HeaderMapping = Dict[StandardField, ColumnMapping]

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_header(header: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace.

    "TTFT (ms)", "ttft_ms" and " TTFT  MS " all compare equal afterwards.
    """
    normalized = _NON_WORD.sub("", header.lower()).replace("_", " ")
    return _WHITESPACE.sub(" ", normalized).strip()


_NORMALIZED_ALIASES: Mapping[StandardField, Tuple[str, ...]] = MappingProxyType({
    field: tuple(normalize_header(alias) for alias in aliases)
    for field, aliases in HEADER_ALIASES.items()
})


def conversion_factor(original_header: str) -> float:
    """Return the factor that converts a column's values to milliseconds."""
    lower = original_header.lower()
    for conversion in UNIT_CONVERSIONS:
        if any(token in lower for token in conversion.excluded):
            continue
        if any(identifier in lower for identifier in conversion.identifiers):
            return conversion.factor
    return 1.0


def _substring_match(normalized: str, field: StandardField) -> bool:
    return any(
        alias in normalized or normalized in alias
        for alias in _NORMALIZED_ALIASES[field]
    )


def map_headers(headers: Sequence[str]) -> HeaderMapping:
    """Build the standard field -> column mapping for one CSV header row.

    All headers are tried for an exact alias match first; a substring pass
    then fills only the fields still unassigned, using only headers that are
    not an exact alias of any field. Within a pass the first header in row
    order wins.
    """
    normalized_headers = [normalize_header(header) for header in headers]
    mapping: HeaderMapping = {}
    claimed = set()

    for index, normalized in enumerate(normalized_headers):
        field = _exact_field(normalized)
        if field is None:
            continue
        # An exact alias is never reconsidered for another field
        claimed.add(index)
        if field not in mapping:
            mapping[field] = _column(headers, index, field)

    for index, normalized in enumerate(normalized_headers):
        if index in claimed or not normalized:
            continue
        field = _first_unassigned_substring_match(normalized, mapping)
        if field is None:
            continue
        mapping[field] = _column(headers, index, field)
        claimed.add(index)

    logger.debug(
        f"Mapped {len(mapping)} of {len(headers)} headers: "
        f"{ {field.value: column.source_column for field, column in mapping.items()} }"
    )
    return mapping


def _exact_field(normalized: str) -> Optional[StandardField]:
    if not normalized:
        return None
    for field in StandardField:
        if normalized in _NORMALIZED_ALIASES[field]:
            return field
    return None


def _first_unassigned_substring_match(normalized: str, mapping: HeaderMapping) -> Optional[StandardField]:
    for field in StandardField:
        if field in mapping:
            continue
        if _substring_match(normalized, field):
            return field
    return None


def _column(headers: Sequence[str], index: int, field: StandardField) -> ColumnMapping:
    factor = conversion_factor(headers[index]) if field in CONVERTIBLE_FIELDS else 1.0
    return ColumnMapping(
        source_column=headers[index],
        column_index=index,
        conversion_factor=factor,
    )


def missing_required_fields(mapping: HeaderMapping) -> List[str]:
    """Friendly names of the mandatory fields absent from a mapping."""
    return [FRIENDLY_NAMES[field] for field in REQUIRED_FIELDS if field not in mapping]
