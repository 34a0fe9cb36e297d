"""
Pairwise benchmark comparison.

Averages each benchmark's metrics, computes delta percentages and per-GPU
throughput, and lines up the test scenarios both benchmarks share.
"""

import logging
import re
from typing import Dict, List, Sequence, Tuple

from api_models import (
    ComparisonData,
    ConfigComparison,
    MetricDelta,
    MetricsAverage,
    ScenarioComparison,
)
from benchmark_models import Benchmark, PerformanceMetrics

logger = logging.getLogger(__name__)

# Config fields shown side by side
CONFIG_FIELDS = (
    "model_name",
    "server_name",
    "sharding_config",
    "chip_name",
    "framework",
    "framework_version",
    "framework_params",
    "launch_params",
    "operator_acceleration",
    "test_date",
    "submitter",
)

_MIXED = re.compile(r"(\d+)P(\d+)D")
_TP_PP = re.compile(r"(?:TP|PP)(\d+)")
_MULTIPLIER = re.compile(r"(\d+)X")
_CARDS = re.compile(r"(\d+)\s*(?:卡|GPU)")


def parse_gpu_count(sharding_config: str) -> int:
    """Number of accelerators described by a sharding descriptor.

    "2P2D" -> 4, "TP4" -> 4, "8xH100" -> 8, "8卡" -> 8, anything else -> 1.
    """
    if not sharding_config:
        return 1
    config = sharding_config.upper()
    for pattern in (_MIXED, _TP_PP, _MULTIPLIER, _CARDS):
        match = pattern.search(config)
        if not match:
            continue
        count = 1
        for group in match.groups():
            count *= int(group)
        return max(count, 1)
    return 1


def average_metrics(metrics: Sequence[PerformanceMetrics]) -> MetricsAverage:
    if not metrics:
        return MetricsAverage(
            input_length=0, output_length=0, concurrency=0,
            ttft=0, tpot=0, tokens_per_second=0, sample_count=0,
        )
    n = len(metrics)
    return MetricsAverage(
        input_length=sum(m.input_length for m in metrics) / n,
        output_length=sum(m.output_length for m in metrics) / n,
        concurrency=sum(m.concurrency for m in metrics) / n,
        ttft=sum(m.ttft for m in metrics) / n,
        tpot=sum(m.tpot for m in metrics) / n,
        tokens_per_second=sum(m.tokens_per_second for m in metrics) / n,
        sample_count=n,
    )


def calculate_delta(value1: float, value2: float, lower_is_better: bool = False) -> MetricDelta:
    delta = value2 - value1
    percentage = (delta / value1) * 100 if value1 != 0 else 0.0
    is_better = delta < 0 if lower_is_better else delta > 0
    return MetricDelta(
        value1=value1,
        value2=value2,
        delta=delta,
        percentage=percentage,
        is_better=is_better,
        is_equal=abs(percentage) < 0.01,
        lower_is_better=lower_is_better,
    )


def _metric_deltas(first: MetricsAverage, second: MetricsAverage) -> Dict[str, MetricDelta]:
    return {
        "ttft": calculate_delta(first.ttft, second.ttft, lower_is_better=True),
        "tpot": calculate_delta(first.tpot, second.tpot, lower_is_better=True),
        "tokensPerSecond": calculate_delta(first.tokens_per_second, second.tokens_per_second),
    }


def group_by_scenario(metrics: Sequence[PerformanceMetrics]) -> Dict[Tuple[int, int, int], MetricsAverage]:
    """Average the records sharing the same (input, output, concurrency) combination."""
    groups: Dict[Tuple[int, int, int], List[PerformanceMetrics]] = {}
    for m in metrics:
        groups.setdefault((m.input_length, m.output_length, m.concurrency), []).append(m)
    return {key: average_metrics(items) for key, items in groups.items()}


def compare_benchmarks(first: Benchmark, second: Benchmark) -> ComparisonData:
    average1 = average_metrics(first.metrics)
    average2 = average_metrics(second.metrics)
    gpus1 = parse_gpu_count(first.config.sharding_config)
    gpus2 = parse_gpu_count(second.config.sharding_config)

    overall = _metric_deltas(average1, average2)
    overall["tokensPerSecondPerGpu"] = calculate_delta(
        average1.tokens_per_second / gpus1, average2.tokens_per_second / gpus2
    )

    config_rows = [
        ConfigComparison(
            field=name,
            value1=getattr(first.config, name),
            value2=getattr(second.config, name),
        )
        for name in CONFIG_FIELDS
    ]

    scenarios1 = group_by_scenario(first.metrics)
    scenarios2 = group_by_scenario(second.metrics)
    shared = sorted(set(scenarios1) & set(scenarios2))
    scenarios = [
        ScenarioComparison(
            input_length=key[0],
            output_length=key[1],
            concurrency=key[2],
            metrics=_metric_deltas(scenarios1[key], scenarios2[key]),
        )
        for key in shared
    ]

    logger.info(
        f"Compared {first.unique_id} with {second.unique_id}: {len(shared)} shared scenario(s)"
    )
    return ComparisonData(
        benchmark1=first,
        benchmark2=second,
        gpu_count1=gpus1,
        gpu_count2=gpus2,
        average1=average1,
        average2=average2,
        config=config_rows,
        metrics=overall,
        scenarios=scenarios,
    )
