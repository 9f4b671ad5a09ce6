"""
Filter diagnostics: counters, rejection reasons and innovation series.

Every refused filter call is recorded under the reason code of its
FilterStatus, so the summary printed at shutdown accounts for every sample
that reached the filter. Worker-level drops (queue overflow, malformed
items) use their own codes.
"""

import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional

import numpy as np

from tdoa_core.proto.filter_result import FilterStatus

logger = logging.getLogger(__name__)

# Drops decided by the estimator worker rather than by a filter call
WORKER_DROP_REASONS = ('queue_full', 'malformed_sample')

DROP_REASONS = tuple(
    status.drop_reason for status in FilterStatus if not status.is_ok
) + WORKER_DROP_REASONS


@dataclass
class MetricsSnapshot:
    """Copy of the collector state."""

    counters: Dict[str, int]
    drop_reasons: Dict[str, int]
    status_counts: Dict[str, int]

    @property
    def total_rejected(self) -> int:
        return sum(self.drop_reasons.values())


class MetricsCollector:
    """
    Thread-safe metrics for one estimator process.

    Usage:
        metrics = MetricsCollector()
        metrics.record_status(result.status)
        metrics.record_histogram('tdoa_innovation_m', result.innovation_m)
        print(metrics.format_summary())
    """

    DROP_REASONS = DROP_REASONS

    def __init__(self, max_series_len: int = 4096):
        """
        Args:
            max_series_len: Most recent values kept per histogram series
        """
        self._lock = threading.Lock()
        self._max_series_len = max_series_len
        self._counters: Counter = Counter()
        self._drops: Counter = Counter()
        self._statuses: Counter = Counter()
        self._series: Dict[str, Deque[float]] = {}

    def increment(self, counter_name: str, value: int = 1):
        with self._lock:
            self._counters[counter_name] += value

    def increment_drop(self, reason: str, value: int = 1):
        """Count a rejection under a reason code."""
        if reason not in self.DROP_REASONS:
            logger.warning(f"Unknown drop reason '{reason}'")

        with self._lock:
            self._drops[reason] += value

    def record_status(self, status: FilterStatus):
        """
        Count the outcome of a filter call.

        Non-OK statuses are also counted as drops under status.drop_reason.
        """
        with self._lock:
            self._statuses[status.name] += 1
        if not status.is_ok:
            self.increment_drop(status.drop_reason)

    def record_histogram(self, series_name: str, value: float):
        """Append a value to a bounded series."""
        with self._lock:
            series = self._series.get(series_name)
            if series is None:
                series = deque(maxlen=self._max_series_len)
                self._series[series_name] = series
            series.append(float(value))

    def get_counter(self, counter_name: str) -> int:
        with self._lock:
            return self._counters[counter_name]

    def get_drop_count(self, reason: str) -> int:
        with self._lock:
            return self._drops[reason]

    def get_status_count(self, status: FilterStatus) -> int:
        with self._lock:
            return self._statuses[status.name]

    def histogram_summary(self, series_name: str) -> Optional[Dict[str, float]]:
        """
        Summary of a series.

        Returns:
            Dict with count, mean, rms, p95 of |value| and max |value|;
            None if nothing was recorded
        """
        with self._lock:
            series = self._series.get(series_name)
            values = np.array(series, dtype=float) if series else None

        if values is None:
            return None

        magnitudes = np.abs(values)
        return {
            'count': int(values.size),
            'mean': float(values.mean()),
            'rms': float(np.sqrt(np.mean(values ** 2))),
            'p95': float(np.percentile(magnitudes, 95)),
            'max': float(magnitudes.max()),
        }

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            drops = {reason: 0 for reason in self.DROP_REASONS}
            drops.update(self._drops)
            return MetricsSnapshot(
                counters=dict(self._counters),
                drop_reasons=drops,
                status_counts=dict(self._statuses),
            )

    def reset(self):
        with self._lock:
            self._counters.clear()
            self._drops.clear()
            self._statuses.clear()
            self._series.clear()

    def format_summary(self) -> str:
        """Human-readable report of counters, rejections and series."""
        snapshot = self.snapshot()
        lines = ["=" * 60, "  METRICS SUMMARY", "=" * 60]

        lines.append("COUNTERS:")
        for name, value in sorted(snapshot.counters.items()):
            lines.append(f"  {name:28s} {value:8d}")

        if snapshot.status_counts:
            lines.append("FILTER CALLS BY STATUS:")
            for name, value in sorted(snapshot.status_counts.items()):
                lines.append(f"  {name:28s} {value:8d}")

        if snapshot.total_rejected:
            lines.append(f"REJECTED ({snapshot.total_rejected}):")
            for reason, count in sorted(snapshot.drop_reasons.items()):
                if count:
                    lines.append(f"  {reason:28s} {count:8d}")

        with self._lock:
            series_names = sorted(self._series)
        for name in series_names:
            stats = self.histogram_summary(name)
            if stats:
                lines.append(
                    f"{name}: n={stats['count']} mean={stats['mean']:.4f} "
                    f"rms={stats['rms']:.4f} p95={stats['p95']:.4f}"
                )

        lines.append("=" * 60)
        return "\n".join(lines)

    def print_summary(self):
        print("\n" + self.format_summary() + "\n")
