"""Unit tests for latency measurement."""

import unittest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from match_event_detection.services.performance_profiler import (
    IterationTiming, LatencyStats, PerformanceProfiler, percentile
)


def timing(total, capture=0.0, preprocess=0.0, recognize=0.0, classify=0.0):
    return IterationTiming(capture_ms=capture, preprocess_ms=preprocess,
                           recognize_ms=recognize, classify_ms=classify, total_ms=total)


class TestPercentile(unittest.TestCase):
    """Test cases for the nearest-rank percentile."""

    def test_empty(self):
        self.assertEqual(percentile([], 95), 0.0)

    def test_single_value(self):
        self.assertEqual(percentile([7.0], 99), 7.0)

    def test_rank_rounding(self):
        values = [float(v) for v in range(1, 101)]
        self.assertEqual(percentile(values, 50), 51.0)
        self.assertEqual(percentile(values, 95), 95.0)
        self.assertEqual(percentile(values, 99), 99.0)
        self.assertEqual(percentile(values, 100), 100.0)


class TestLatencyStats(unittest.TestCase):
    """Test cases for LatencyStats."""

    def setUp(self):
        """Set up test fixtures."""
        self.stats = LatencyStats()
        for i in range(1, 21):
            self.stats.add(timing(total=float(i * 5), capture=1.0, preprocess=2.0,
                                  recognize=float(i * 4), classify=0.1))

    def test_stage_stats(self):
        total = self.stats.stage_stats("total")
        self.assertEqual(len(self.stats), 20)
        self.assertAlmostEqual(total.mean, 52.5)
        self.assertEqual(total.p95, 95.0)
        self.assertEqual(self.stats.stage_stats("capture").p99, 1.0)

    def test_bottleneck(self):
        self.assertEqual(self.stats.bottleneck(), "recognize")

    def test_meets_target(self):
        self.assertTrue(self.stats.meets_target(100.0))
        self.assertFalse(self.stats.meets_target(90.0))
        self.assertFalse(LatencyStats().meets_target())

    def test_format_report(self):
        report = self.stats.format_report()
        self.assertIn("Sample size: 20 iterations", report)
        self.assertIn("Performance target MET", report)
        self.assertIn("Bottleneck: recognize", report)
        self.assertEqual(LatencyStats().format_report(), "No timing data collected")

    def test_bounded_history(self):
        stats = LatencyStats(max_samples=3)
        for i in range(5):
            stats.add(timing(total=float(i)))
        self.assertEqual(len(stats), 3)
        self.assertEqual(stats.stage_stats("total").p50, 3.0)


class TestPerformanceProfiler(unittest.TestCase):
    """Test cases for PerformanceProfiler."""

    def setUp(self):
        """Set up test fixtures."""
        self.profiler = PerformanceProfiler(history=10)

    def test_rolling_window_is_bounded(self):
        for value in range(15):
            self.profiler.record_iteration(timing(total=float(value)))
        self.assertEqual(len(self.profiler.latency), 10)
        self.assertEqual(self.profiler.latency.timings[0].total_ms, 5.0)

    def test_collect_receives_only_ticks_inside_block(self):
        self.profiler.record_iteration(timing(total=1.0))
        with self.profiler.collect() as stats:
            self.profiler.record_iteration(timing(total=2.0))
            self.profiler.record_iteration(timing(total=3.0))
        self.profiler.record_iteration(timing(total=4.0))

        self.assertEqual([t.total_ms for t in stats.timings], [2.0, 3.0])
        self.assertEqual(len(self.profiler.latency), 4)
        self.assertEqual(self.profiler.latency.timings.maxlen, 10)

    def test_collector_detached_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.profiler.collect() as stats:
                raise RuntimeError("boom")
        self.profiler.record_iteration(timing(total=1.0))
        self.assertEqual(len(stats), 0)


if __name__ == '__main__':
    unittest.main()
