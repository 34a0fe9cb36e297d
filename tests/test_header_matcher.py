"""Tests for CSV header normalization, fuzzy matching and unit detection."""

from __future__ import annotations

import unittest

from services.header_matcher import (
    FRIENDLY_NAMES,
    HEADER_ALIASES,
    StandardField,
    conversion_factor,
    map_headers,
    missing_required_fields,
    normalize_header,
)


STANDARD_HEADERS = [
    "Process Num",
    "Input Length",
    "Output Length",
    "TTFT (ms)",
    "TPS (with prefill)",
    "Total Time (ms)",
]

VENDOR_HEADERS = [
    "parallel",
    "total input",
    "total output",
    "Mean TTFT",
    "output throughput (tok/s)",
]


class TestNormalizeHeader(unittest.TestCase):

    def test_punctuation_and_case(self):
        self.assertEqual(normalize_header("TTFT (ms)"), "ttft ms")
        self.assertEqual(normalize_header("TTFT MS"), "ttft ms")
        self.assertEqual(normalize_header("ttft_ms"), "ttft ms")

    def test_collapses_whitespace(self):
        self.assertEqual(normalize_header("  Total \t Time   (ms) "), "total time ms")

    def test_idempotent(self):
        samples = STANDARD_HEADERS + VENDOR_HEADERS + [
            "", "()", "  A__b  c ", "TPS(with prefill)", "duration (s)", "吞吐量 (tok/s)",
        ]
        for aliases in HEADER_ALIASES.values():
            samples.extend(aliases)
        for sample in samples:
            once = normalize_header(sample)
            self.assertEqual(normalize_header(once), once, sample)


class TestMapHeaders(unittest.TestCase):

    def test_standard_headers(self):
        mapping = map_headers(STANDARD_HEADERS)
        self.assertEqual(set(mapping), set(StandardField))
        self.assertEqual(mapping[StandardField.TTFT].source_column, "TTFT (ms)")
        self.assertEqual(mapping[StandardField.TTFT].column_index, 3)
        self.assertEqual(mapping[StandardField.TOTAL_TIME].conversion_factor, 1.0)

    def test_vendor_dialect_maps_same_fields(self):
        standard = map_headers(STANDARD_HEADERS[:5])
        vendor = map_headers(VENDOR_HEADERS)
        self.assertEqual(set(standard), set(vendor))
        for field in standard:
            self.assertEqual(
                standard[field].column_index, vendor[field].column_index, field
            )

    def test_exact_match_beats_substring_match(self):
        # "output" is a substring of the TPS alias "output throughput",
        # but it is an exact OUTPUT_LENGTH alias and must never become TPS.
        mapping = map_headers(["Output Length", "output"])
        self.assertEqual(mapping[StandardField.OUTPUT_LENGTH].column_index, 0)
        self.assertNotIn(StandardField.TPS, mapping)

    def test_exact_pass_completes_before_substring_pass(self):
        # The first header only matches TTFT by substring; the later exact
        # alias wins the field.
        mapping = map_headers(["TTFT p99 (ms)", "Mean TTFT (ms)"])
        self.assertEqual(mapping[StandardField.TTFT].source_column, "Mean TTFT (ms)")

    def test_substring_match_fills_unassigned_fields(self):
        mapping = map_headers(["Request Concurrency", "Avg Input Tokens", "ttft_p50"])
        self.assertEqual(mapping[StandardField.PROCESS_NUM].column_index, 0)
        self.assertEqual(mapping[StandardField.INPUT_LENGTH].column_index, 1)
        self.assertEqual(mapping[StandardField.TTFT].column_index, 2)

    def test_first_header_wins(self):
        mapping = map_headers(["TTFT (ms)", "Mean TTFT (ms)", "TTFT (ms)"])
        self.assertEqual(mapping[StandardField.TTFT].column_index, 0)

    def test_header_assigned_to_one_field_only(self):
        mapping = map_headers(["total input"])
        self.assertEqual(list(mapping), [StandardField.INPUT_LENGTH])

    def test_empty_headers_never_match(self):
        mapping = map_headers(["", "()", "Process Num"])
        self.assertEqual(mapping, {StandardField.PROCESS_NUM: mapping[StandardField.PROCESS_NUM]})
        self.assertEqual(mapping[StandardField.PROCESS_NUM].column_index, 2)

    def test_unknown_headers_are_ignored(self):
        self.assertEqual(map_headers(["gpu", "notes", "date"]), {})


class TestUnitConversion(unittest.TestCase):

    def test_seconds_headers(self):
        self.assertEqual(conversion_factor("duration (s)"), 1000.0)
        self.assertEqual(conversion_factor("Duration(s)"), 1000.0)
        self.assertEqual(conversion_factor("TTFT (seconds)"), 1000.0)

    def test_millisecond_headers_are_not_converted(self):
        self.assertEqual(conversion_factor("Total Time (ms)"), 1.0)
        self.assertEqual(conversion_factor("TTFT (milliseconds)"), 1.0)
        self.assertEqual(conversion_factor("duration"), 1.0)

    def test_factor_only_on_time_fields(self):
        mapping = map_headers([
            "parallel", "input", "output", "TTFT (s)", "output throughput (tok/s)", "duration (s)",
        ])
        self.assertEqual(mapping[StandardField.TTFT].conversion_factor, 1000.0)
        self.assertEqual(mapping[StandardField.TOTAL_TIME].conversion_factor, 1000.0)
        self.assertEqual(mapping[StandardField.TPS].conversion_factor, 1.0)
        self.assertEqual(mapping[StandardField.PROCESS_NUM].conversion_factor, 1.0)


class TestMissingRequiredFields(unittest.TestCase):

    def test_complete_mapping(self):
        self.assertEqual(missing_required_fields(map_headers(STANDARD_HEADERS[:5])), [])

    def test_missing_ttft(self):
        headers = ["Process Num", "Input Length", "Output Length", "TPS (with prefill)"]
        missing = missing_required_fields(map_headers(headers))
        self.assertEqual(missing, [FRIENDLY_NAMES[StandardField.TTFT]])
        self.assertIn("TTFT", missing[0])

    def test_total_time_is_optional(self):
        missing = missing_required_fields(map_headers(STANDARD_HEADERS[:5]))
        self.assertNotIn(FRIENDLY_NAMES[StandardField.TOTAL_TIME], missing)


if __name__ == "__main__":
    unittest.main()
