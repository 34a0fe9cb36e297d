"""
API response models for the benchmark board.
Every successful response is wrapped in a {success, data, timestamp} envelope.
"""

from typing import Dict, List

from pydantic import Field

from benchmark_models import Benchmark, CamelModel, ComparisonReport, PerformanceMetrics


class HealthResponse(CamelModel):
    """Health check response."""
    success: bool = True
    status: str = "healthy"
    version: str = "1.0.0"
    timestamp: int


class BenchmarkResponse(CamelModel):
    success: bool = True
    data: Benchmark
    timestamp: int


class BenchmarkListResponse(CamelModel):
    success: bool = True
    data: List[Benchmark]
    total: int = Field(..., description="Number of benchmarks after filtering")
    timestamp: int


class ReportResponse(CamelModel):
    success: bool = True
    data: ComparisonReport
    timestamp: int


class ReportListResponse(CamelModel):
    success: bool = True
    data: List[ComparisonReport]
    timestamp: int


class ColumnMappingInfo(CamelModel):
    """Which CSV column feeds a standard field, for the import preview."""
    field: str = Field(..., description="Standard field name")
    source_column: str
    conversion_factor: float


class CsvPreviewData(CamelModel):
    mapping: List[ColumnMappingInfo]
    metrics: List[PerformanceMetrics]


class CsvPreviewResponse(CamelModel):
    success: bool = True
    data: CsvPreviewData
    timestamp: int


class MetricsAverage(CamelModel):
    """Mean of a benchmark's metric records."""
    input_length: float
    output_length: float
    concurrency: float
    ttft: float
    tpot: float
    tokens_per_second: float
    sample_count: int


class MetricDelta(CamelModel):
    value1: float
    value2: float
    delta: float
    percentage: float = Field(..., description="Delta relative to value1, 0 when value1 is 0")
    is_better: bool
    is_equal: bool
    lower_is_better: bool


class ConfigComparison(CamelModel):
    field: str
    value1: str
    value2: str


class ScenarioComparison(CamelModel):
    """A (input, output, concurrency) combination measured by both benchmarks."""
    input_length: int
    output_length: int
    concurrency: int
    metrics: Dict[str, MetricDelta]


class ComparisonData(CamelModel):
    benchmark1: Benchmark
    benchmark2: Benchmark
    gpu_count1: int
    gpu_count2: int
    average1: MetricsAverage
    average2: MetricsAverage
    config: List[ConfigComparison]
    metrics: Dict[str, MetricDelta]
    scenarios: List[ScenarioComparison] = Field(default_factory=list)


class ComparisonResponse(CamelModel):
    success: bool = True
    data: ComparisonData
    timestamp: int
