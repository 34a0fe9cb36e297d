"""
Benchmark validator for configurations and performance metrics.
Applied to manual entries and CSV-derived records before they are stored.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from benchmark_models import BenchmarkConfig, PerformanceMetrics
from services.errors import InvalidConfig, InvalidMetric

logger = logging.getLogger(__name__)


class BenchmarkValidator:
    """Schema checks for benchmark input. Stateless, never touches the database."""

    def __init__(self):
        pass

    def validate_config(self, config: Any) -> BenchmarkConfig:
        """Validate a raw config object, raising InvalidConfig on the first bad field."""
        if not isinstance(config, dict):
            raise InvalidConfig("config", "must be an object")
        try:
            return BenchmarkConfig.model_validate(config)
        except ValidationError as e:
            field, reason = self._first_error(e)
            logger.warning(f"Rejected benchmark config: {field} {reason}")
            raise InvalidConfig(field or "config", reason)

    def validate_metric(self, metric: Any, row: Optional[int] = None) -> PerformanceMetrics:
        if isinstance(metric, PerformanceMetrics):
            metric = metric.model_dump()
        if not isinstance(metric, dict):
            raise InvalidMetric(None, "must be an object", row)
        try:
            return PerformanceMetrics.model_validate(metric)
        except ValidationError as e:
            field, reason = self._first_error(e)
            raise InvalidMetric(field, reason, row)

    def validate_metrics(self, metrics: Any) -> List[PerformanceMetrics]:
        """Validate an array of metric entries; the row index is reported on failure."""
        if not isinstance(metrics, list):
            raise InvalidMetric(None, "Metrics must be an array")
        validated = []
        for index, metric in enumerate(metrics):
            try:
                validated.append(self.validate_metric(metric, row=index))
            except InvalidMetric as e:
                logger.warning(f"Rejected metric entry: {e}")
                raise
        return validated

    def _first_error(self, error: ValidationError):
        """Field name and human-readable reason of a pydantic error's first entry."""
        first: Dict[str, Any] = error.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        error_type = first.get("type", "")
        ctx = first.get("ctx") or {}
        if error_type in REASONS:
            reason = REASONS[error_type]
        elif error_type == "greater_than_equal":
            reason = f"must be greater than or equal to {ctx.get('ge')}"
        else:
            reason = first.get("msg") or "is invalid"
            if reason.startswith("Value error, "):
                reason = reason[len("Value error, "):]
        return field, reason


REASONS = {
    "missing": "is required",
    "string_too_short": "must not be empty",
    "string_type": "must be a string",
    "int_type": "must be an integer",
    "int_parsing": "must be an integer",
    "int_from_float": "must be an integer",
    "float_type": "must be a number",
    "float_parsing": "must be a number",
    "finite_number": "must be a finite number",
}
