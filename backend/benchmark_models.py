"""
Benchmark domain models.
Pydantic models for benchmark configurations, performance metrics and comparison
reports, serialized with camelCase keys on the wire.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


def parse_iso_date(value: str) -> datetime:
    """Parse an ISO-8601 date or date-time string."""
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return datetime.combine(date.fromisoformat(text), datetime.min.time())


class BenchmarkConfig(CamelModel):
    """Descriptive configuration of one benchmark run. Stored verbatim."""
    model_name: str = Field(..., min_length=1, description="Model under test, e.g. Qwen3-32B-FP8")
    server_name: str = Field(..., min_length=1, description="Server the benchmark ran on")
    sharding_config: str = Field(..., min_length=1, description="Parallelism descriptor: TP4, 2P2D, 8xH100")
    chip_name: str = Field(..., min_length=1, description="Accelerator chip")
    framework: str = Field(..., min_length=1, description="Inference framework name")
    framework_params: str = Field(..., description="Framework parameters, may be empty")
    test_date: str = Field(..., min_length=1, description="ISO-8601 test date")

    framework_version: str = ""
    launch_params: str = ""
    submitter: str = ""
    operator_acceleration: str = ""
    notes: str = ""

    @field_validator("test_date")
    @classmethod
    def check_test_date(cls, value: str) -> str:
        try:
            parse_iso_date(value)
        except ValueError:
            raise ValueError("must be a valid ISO-8601 date")
        return value

    def parsed_test_date(self) -> Optional[datetime]:
        try:
            return parse_iso_date(self.test_date)
        except ValueError:
            return None


class PerformanceMetrics(CamelModel):
    """One canonical metrics record: a single length/concurrency combination."""
    model_config = ConfigDict(frozen=True)

    input_length: int = Field(..., ge=0)
    output_length: int = Field(..., ge=0)
    concurrency: int = Field(..., ge=1)
    ttft: float = Field(..., ge=0, allow_inf_nan=False, description="Time to first token in ms")
    tpot: float = Field(..., ge=0, allow_inf_nan=False, description="Time per output token in ms")
    tokens_per_second: float = Field(..., ge=0, allow_inf_nan=False)

    @field_validator(
        "input_length", "output_length", "concurrency", "ttft", "tpot", "tokens_per_second",
        mode="before",
    )
    @classmethod
    def reject_booleans(cls, value):
        # bool is an int subclass; JSON true/false is not a measurement
        if isinstance(value, bool):
            raise ValueError("must be a number")
        return value


class Benchmark(CamelModel):
    id: str
    unique_id: str
    config: BenchmarkConfig
    metrics: List[PerformanceMetrics]
    created_at: datetime


class ComparisonReport(CamelModel):
    id: str
    unique_id: str
    benchmark_id1: str
    benchmark_id2: str
    model_name1: str
    model_name2: str
    summary: str
    created_at: datetime


class ReportInput(CamelModel):
    """Body for creating or updating a comparison report."""
    id: Optional[str] = None
    benchmark_id1: str = Field(..., min_length=1)
    benchmark_id2: str = Field(..., min_length=1)
    model_name1: Optional[str] = None
    model_name2: Optional[str] = None
    summary: str = Field(..., min_length=1)
    created_at: Optional[datetime] = None


class BenchmarkFilters(CamelModel):
    """Free-text query plus advanced filters for the benchmark list."""
    q: Optional[str] = None
    model_name: Optional[str] = None
    server_name: Optional[str] = None
    sharding_config: Optional[str] = None
    chip_name: Optional[str] = None
    framework: Optional[str] = None
    framework_version: Optional[str] = None
    submitter: Optional[str] = None
    operator_acceleration: Optional[str] = None
    notes: Optional[str] = None
    framework_params: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def is_empty(self) -> bool:
        return not any(value not in (None, "") for value in self.model_dump().values())
