"""
Benchmark list filtering: free-text search plus advanced per-field filters.
"""

from datetime import datetime, time, timezone
from typing import Iterable, List, Optional

from benchmark_models import Benchmark, BenchmarkFilters

# Fields covered by the free-text query
QUERY_FIELDS = (
    "model_name",
    "server_name",
    "chip_name",
    "framework",
    "sharding_config",
    "submitter",
    "operator_acceleration",
)

# Advanced filters, each a case-insensitive substring match on the config field of the same name
ADVANCED_FIELDS = (
    "model_name",
    "server_name",
    "sharding_config",
    "chip_name",
    "framework",
    "framework_version",
    "submitter",
    "operator_acceleration",
    "notes",
    "framework_params",
)


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle.lower() in (haystack or "").lower()


def matches_filters(benchmark: Benchmark, filters: BenchmarkFilters) -> bool:
    config = benchmark.config

    if filters.q:
        candidates = [benchmark.unique_id] + [getattr(config, name) for name in QUERY_FIELDS]
        if not any(_contains(value, filters.q) for value in candidates):
            return False

    for name in ADVANCED_FIELDS:
        needle = getattr(filters, name)
        if needle and not _contains(getattr(config, name), needle):
            return False

    if filters.start_date or filters.end_date:
        test_date = config.parsed_test_date()
        if test_date is None:
            return False
        if test_date.tzinfo is not None:
            test_date = test_date.astimezone(timezone.utc).replace(tzinfo=None)
        if filters.start_date and test_date < datetime.combine(filters.start_date, time.min):
            return False
        # The end date includes its whole day
        if filters.end_date and test_date > datetime.combine(filters.end_date, time.max):
            return False

    return True


def filter_benchmarks(benchmarks: Iterable[Benchmark], filters: BenchmarkFilters) -> List[Benchmark]:
    return [b for b in benchmarks if matches_filters(b, filters)]
