from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from pdf_shrink.config import CompressionSettings, RASTER_DPI, SUBPROCESS_TIMEOUT
from pdf_shrink.errors import AllBackendsFailed, BackendExecutionFailed, RenderFailure
from pdf_shrink.results import (
    BackendResult,
    CompressionMode,
    CompressionOutcome,
    CompressionRequest,
    RequestState,
    compression_percent,
    format_bytes,
    suggested_filename,
)


class TestFormatting(unittest.TestCase):
    def test_format_bytes(self) -> None:
        self.assertEqual(format_bytes(0), "0 B")
        self.assertEqual(format_bytes(512), "512 B")
        self.assertEqual(format_bytes(1536), "1.5 KB")
        self.assertEqual(format_bytes(1048576), "1 MB")
        self.assertEqual(format_bytes(3 * 1024 ** 3), "3 GB")

    def test_compression_percent(self) -> None:
        self.assertEqual(compression_percent(1000, 700), 30)
        self.assertEqual(compression_percent(1000, 1200), -20)
        self.assertEqual(compression_percent(0, 10), 0)
        self.assertEqual(compression_percent(3, 2), 33)

    def test_suggested_filename(self) -> None:
        self.assertEqual(suggested_filename("report.pdf"), "report_compressed.pdf")
        self.assertEqual(suggested_filename("Scan.PDF"), "Scan_compressed.pdf")
        self.assertEqual(suggested_filename("/tmp/dir/notes"), "notes_compressed.pdf")


class TestBackendResult(unittest.TestCase):
    def test_success(self) -> None:
        result = BackendResult.success("qpdf", "QPDF", b"x" * 250, original_size=1000)

        self.assertTrue(result.ok)
        self.assertEqual(result.size, 250)
        self.assertAlmostEqual(result.size_delta_percent, 75.0)
        self.assertIsNone(result.message)
        self.assertEqual(result.describe(), "QPDF: 250 B (+75.0% reduction)")

    def test_describe_without_original_size(self) -> None:
        result = BackendResult.success("qpdf", "QPDF", b"x" * 250, original_size=0)

        self.assertIsNone(result.size_delta_percent)
        self.assertEqual(result.describe(), "QPDF: 250 B (reduction n/a)")

    def test_failure(self) -> None:
        error = BackendExecutionFailed("gs", "Ghostscript exited with code 1", returncode=1)
        result = BackendResult.failure("gs", "Ghostscript", error)

        self.assertFalse(result.ok)
        self.assertIsNone(result.size)
        self.assertIsNone(result.data)
        self.assertIs(result.outcome.error, error)
        self.assertEqual(result.describe(), "Ghostscript: failed - Ghostscript exited with code 1")


class TestAllBackendsFailed(unittest.TestCase):
    def test_message_lists_every_backend(self) -> None:
        results = [
            BackendResult.failure("qpdf", "QPDF", BackendExecutionFailed("qpdf", "exited with code 2")),
            BackendResult.failure("gs", "Ghostscript", BackendExecutionFailed("gs", "timed out")),
        ]

        error = AllBackendsFailed(results)

        self.assertEqual(
            str(error),
            "All compression backends failed (QPDF: exited with code 2; Ghostscript: timed out)",
        )
        self.assertEqual(error.results, results)

    def test_empty(self) -> None:
        self.assertEqual(str(AllBackendsFailed([])), "No compression backends are registered")


class TestCompressionRequest(unittest.TestCase):
    def test_mode_coerced_from_value(self) -> None:
        request = CompressionRequest(data=b"%PDF", mode="extreme", aggressiveness=10)
        self.assertIs(request.mode, CompressionMode.AGGRESSIVE)

    def test_aggressiveness_validated_in_aggressive_mode(self) -> None:
        for value in (-5, 100, 1.5, True, "70"):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    CompressionRequest(data=b"%PDF", mode=CompressionMode.AGGRESSIVE, aggressiveness=value)

    def test_bounds_accepted(self) -> None:
        for value in (0, 99):
            request = CompressionRequest(data=b"%PDF", mode=CompressionMode.AGGRESSIVE, aggressiveness=value)
            self.assertEqual(request.aggressiveness, value)

    def test_unknown_mode(self) -> None:
        with self.assertRaises(ValueError):
            CompressionRequest(data=b"%PDF", mode="lossy")


class TestCompressionOutcome(unittest.TestCase):
    def test_summary_marks_best(self) -> None:
        best = BackendResult.success("a", "A", b"x" * 100, 400)
        other = BackendResult.success("b", "B", b"x" * 300, 400)
        outcome = CompressionOutcome(
            mode=CompressionMode.STRUCTURAL,
            original_size=400,
            state=RequestState.COMPLETED,
            best=best,
            ordered_results=[best, other],
        )

        lines = outcome.summary().splitlines()

        self.assertEqual(lines[0], "Original: 400 B")
        self.assertTrue(lines[1].startswith(" * A"))
        self.assertTrue(lines[2].startswith("   B"))
        self.assertIs(outcome.raise_for_status(), outcome)

    def test_failed_outcome(self) -> None:
        error = RenderFailure(4, "broken image")
        outcome = CompressionOutcome(
            mode=CompressionMode.AGGRESSIVE,
            original_size=1000,
            state=RequestState.FAILED,
            error=error,
        )

        self.assertFalse(outcome.success)
        self.assertFalse(outcome.is_smaller)
        self.assertIn("Page 5 could not be rasterized", outcome.summary())
        with self.assertRaises(RenderFailure):
            outcome.raise_for_status()


class TestCompressionSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = CompressionSettings()
        self.assertEqual(settings.raster_dpi, RASTER_DPI)
        self.assertEqual(settings.subprocess_timeout, SUBPROCESS_TIMEOUT)
        self.assertIsNone(settings.qpdf_command)

    def test_validation(self) -> None:
        with self.assertRaises(ValueError):
            CompressionSettings(raster_dpi=0)
        with self.assertRaises(ValueError):
            CompressionSettings(subprocess_timeout=-1)

    def test_from_env(self) -> None:
        env = {
            "PDF_SHRINK_QPDF": "/opt/qpdf",
            "PDF_SHRINK_GS": "",
            "PDF_SHRINK_TIMEOUT": "12.5",
            "PDF_SHRINK_RASTER_DPI": "48",
        }
        with patch.dict(os.environ, env):
            settings = CompressionSettings.from_env()

        self.assertEqual(settings.qpdf_command, "/opt/qpdf")
        self.assertIsNone(settings.gs_command)
        self.assertEqual(settings.subprocess_timeout, 12.5)
        self.assertEqual(settings.raster_dpi, 48)


if __name__ == "__main__":
    unittest.main()
