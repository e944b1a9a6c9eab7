"""Per-stage latency measurement for the detection loop."""

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Deque, List, NamedTuple, Optional

from ..config.defaults import SYSTEM_CONSTANTS


STAGES = ("capture", "preprocess", "recognize", "classify")


@dataclass
class IterationTiming:
    """Milliseconds spent in each stage of one tick."""
    capture_ms: float = 0.0
    preprocess_ms: float = 0.0
    recognize_ms: float = 0.0
    classify_ms: float = 0.0
    total_ms: float = 0.0


class StageStats(NamedTuple):
    mean: float
    p50: float
    p95: float
    p99: float


def percentile(sorted_values: List[float], p: float) -> float:
    """Nearest-rank percentile of an ascending list; 0.0 when empty."""
    if not sorted_values:
        return 0.0
    # Half rounds up, matching the benchmark reports this replaced
    index = int(p / 100.0 * (len(sorted_values) - 1) + 0.5)
    return sorted_values[index]


class LatencyStats:
    """Collects IterationTimings and summarizes them per stage."""

    def __init__(self, max_samples: Optional[int] = None):
        self.timings: Deque[IterationTiming] = deque(maxlen=max_samples)

    def add(self, timing: IterationTiming) -> None:
        self.timings.append(timing)

    def __len__(self) -> int:
        return len(self.timings)

    def stage_stats(self, stage: str) -> StageStats:
        """Mean, p50, p95 and p99 of one stage (``"total"`` included)."""
        values = sorted(getattr(t, f"{stage}_ms") for t in self.timings)
        if not values:
            return StageStats(0.0, 0.0, 0.0, 0.0)
        return StageStats(
            mean=sum(values) / len(values),
            p50=percentile(values, 50),
            p95=percentile(values, 95),
            p99=percentile(values, 99)
        )

    def bottleneck(self) -> Optional[str]:
        """Stage with the highest p95, None without samples."""
        if not self.timings:
            return None
        return max(STAGES, key=lambda stage: self.stage_stats(stage).p95)

    def meets_target(self, target_ms: float = SYSTEM_CONSTANTS["TARGET_P95_MS"]) -> bool:
        return bool(self.timings) and self.stage_stats("total").p95 < target_ms

    def format_report(self, target_ms: float = SYSTEM_CONSTANTS["TARGET_P95_MS"]) -> str:
        if not self.timings:
            return "No timing data collected"

        lines = [
            "Latency benchmark report",
            f"Sample size: {len(self.timings)} iterations",
            "",
            f"{'Stage':<12} {'Mean':>10} {'p50':>10} {'p95':>10} {'p99':>10}"
        ]
        for stage in STAGES + ("total",):
            stats = self.stage_stats(stage)
            lines.append(f"{stage.capitalize():<12} {stats.mean:>7.2f} ms {stats.p50:>7.2f} ms "
                         f"{stats.p95:>7.2f} ms {stats.p99:>7.2f} ms")

        total = self.stage_stats("total")
        lines.append("")
        if total.p95 < target_ms:
            lines.append(f"Performance target MET (p95 {total.p95:.2f} ms < {target_ms:.0f} ms)")
        else:
            lines.append(f"Performance target MISSED (p95 {total.p95:.2f} ms >= {target_ms:.0f} ms)")

        bottleneck = self.bottleneck()
        lines.append(f"Bottleneck: {bottleneck} ({self.stage_stats(bottleneck).p95:.2f} ms p95)")
        return "\n".join(lines)


class PerformanceProfiler:
    """Rolling LatencyStats of recent ticks plus temporary collectors.

    The rolling window is bounded to ``history`` ticks. ``collect`` hands
    out an extra LatencyStats that receives every tick recorded inside the
    ``with`` block, which is how a benchmark gets its own sample set
    without disturbing the rolling window.
    """

    def __init__(self, history: int = 1000):
        self.latency = LatencyStats(max_samples=history)
        self._collectors: List[LatencyStats] = []

    def record_iteration(self, timing: IterationTiming) -> None:
        self.latency.add(timing)
        for collector in self._collectors:
            collector.add(timing)

    @contextmanager
    def collect(self, max_samples: Optional[int] = None):
        stats = LatencyStats(max_samples=max_samples)
        self._collectors.append(stats)
        try:
            yield stats
        finally:
            self._collectors.remove(stats)
