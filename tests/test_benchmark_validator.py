"""Tests for configuration and metrics validation."""

from __future__ import annotations

import math
import unittest

from benchmark_models import BenchmarkConfig, PerformanceMetrics
from services.benchmark_validator import BenchmarkValidator
from services.errors import BenchmarkInputError, InvalidConfig, InvalidMetric


def make_config(**overrides):
    config = {
        "modelName": "Qwen3-32B-FP8",
        "serverName": "node-a",
        "shardingConfig": "TP4",
        "chipName": "H100",
        "framework": "vLLM",
        "frameworkParams": "",
        "testDate": "2025-05-20",
    }
    config.update(overrides)
    return config


def make_metric(**overrides):
    metric = {
        "inputLength": 128,
        "outputLength": 64,
        "concurrency": 4,
        "ttft": 12.5,
        "tpot": 3.25,
        "tokensPerSecond": 400.0,
    }
    metric.update(overrides)
    return metric


class TestValidateConfig(unittest.TestCase):

    def setUp(self):
        self.validator = BenchmarkValidator()

    def test_valid_config(self):
        config = self.validator.validate_config(make_config())
        self.assertIsInstance(config, BenchmarkConfig)
        self.assertEqual(config.model_name, "Qwen3-32B-FP8")
        self.assertEqual(config.framework_params, "")
        self.assertEqual(config.notes, "")

    def test_optional_fields_and_extra_keys(self):
        config = self.validator.validate_config(make_config(
            frameworkVersion="0.8.5", submitter="alice", notes="warm cache", unknownKey=1,
        ))
        self.assertEqual(config.framework_version, "0.8.5")
        self.assertEqual(config.submitter, "alice")

    def test_snake_case_keys_accepted(self):
        config = make_config()
        config["model_name"] = config.pop("modelName")
        self.assertEqual(self.validator.validate_config(config).model_name, "Qwen3-32B-FP8")

    def test_datetime_test_date(self):
        config = self.validator.validate_config(make_config(testDate="2025-05-20T10:30:00Z"))
        self.assertEqual(config.parsed_test_date().year, 2025)

    def test_missing_required_field(self):
        config = make_config()
        del config["framework"]
        with self.assertRaises(InvalidConfig) as ctx:
            self.validator.validate_config(config)
        self.assertEqual(ctx.exception.field, "framework")
        self.assertIn("required", str(ctx.exception))

    def test_empty_required_field(self):
        with self.assertRaises(InvalidConfig) as ctx:
            self.validator.validate_config(make_config(framework=""))
        self.assertIn("must not be empty", str(ctx.exception))

    def test_framework_params_must_be_present(self):
        config = make_config()
        del config["frameworkParams"]
        with self.assertRaises(InvalidConfig):
            self.validator.validate_config(config)

    def test_invalid_test_date(self):
        with self.assertRaises(InvalidConfig) as ctx:
            self.validator.validate_config(make_config(testDate="20th of May"))
        self.assertIn("ISO-8601", str(ctx.exception))
        self.assertTrue(str(ctx.exception).startswith("Invalid config"))

    def test_non_object(self):
        with self.assertRaises(InvalidConfig):
            self.validator.validate_config(["not", "a", "dict"])

    def test_errors_are_input_errors(self):
        with self.assertRaises(BenchmarkInputError):
            self.validator.validate_config(None)


class TestValidateMetrics(unittest.TestCase):

    def setUp(self):
        self.validator = BenchmarkValidator()

    def test_valid_metrics(self):
        metrics = self.validator.validate_metrics([make_metric(), make_metric(concurrency=8)])
        self.assertEqual([m.concurrency for m in metrics], [4, 8])
        self.assertIsInstance(metrics[0], PerformanceMetrics)

    def test_empty_list_allowed(self):
        self.assertEqual(self.validator.validate_metrics([]), [])

    def test_not_a_list(self):
        with self.assertRaises(InvalidMetric) as ctx:
            self.validator.validate_metrics({"ttft": 1})
        self.assertIn("array", str(ctx.exception))

    def test_negative_value_reports_row(self):
        with self.assertRaises(InvalidMetric) as ctx:
            self.validator.validate_metrics([make_metric(), make_metric(ttft=-1)])
        self.assertEqual(ctx.exception.row, 1)
        self.assertEqual(ctx.exception.field, "ttft")
        self.assertIn("greater than or equal to 0", str(ctx.exception))

    def test_concurrency_must_be_positive(self):
        with self.assertRaises(InvalidMetric) as ctx:
            self.validator.validate_metric(make_metric(concurrency=0))
        self.assertEqual(ctx.exception.field, "concurrency")

    def test_missing_value(self):
        metric = make_metric()
        del metric["tpot"]
        with self.assertRaises(InvalidMetric) as ctx:
            self.validator.validate_metric(metric, row=3)
        self.assertEqual(ctx.exception.row, 3)
        self.assertIn("required", str(ctx.exception))

    def test_non_finite_value(self):
        with self.assertRaises(InvalidMetric) as ctx:
            self.validator.validate_metric(make_metric(ttft=math.inf))
        self.assertIn("finite", str(ctx.exception))

    def test_non_numeric_value(self):
        with self.assertRaises(InvalidMetric):
            self.validator.validate_metric(make_metric(tpot="fast"))

    def test_boolean_values_rejected(self):
        for field in ("inputLength", "concurrency", "ttft", "tokensPerSecond"):
            with self.assertRaises(InvalidMetric) as ctx:
                self.validator.validate_metric(make_metric(**{field: True}))
            self.assertIn("must be a number", str(ctx.exception))
        with self.assertRaises(InvalidMetric) as ctx:
            self.validator.validate_metric(make_metric(concurrency=True))
        self.assertEqual(ctx.exception.field, "concurrency")

    def test_numeric_strings_still_coerced(self):
        record = self.validator.validate_metric(make_metric(concurrency="8", ttft="12.5"))
        self.assertEqual(record.concurrency, 8)
        self.assertEqual(record.ttft, 12.5)

    def test_entry_must_be_object(self):
        with self.assertRaises(InvalidMetric):
            self.validator.validate_metrics([42])

    def test_model_instance_passes_through(self):
        record = PerformanceMetrics.model_validate(make_metric())
        self.assertEqual(self.validator.validate_metric(record), record)


if __name__ == "__main__":
    unittest.main()
