"""In-process counters and latency histograms for commands and tool calls."""
from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

HISTOGRAM_WINDOW = 100


class MetricsCollector:
    """Thread-safe metrics collector with in-memory storage."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._counters: dict[str, float] = defaultdict(float)
        self._histograms: dict[str, list[float]] = defaultdict(list)

    def increment(self, name: str, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        """Increment a counter metric."""
        key = self._make_key(name, labels)
        with self._lock:
            self._counters[key] += value

    def histogram(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        """Record a value in a histogram metric."""
        key = self._make_key(name, labels)
        with self._lock:
            self._histograms[key].append(value)
            if len(self._histograms[key]) > HISTOGRAM_WINDOW:
                self._histograms[key] = self._histograms[key][-HISTOGRAM_WINDOW:]

    @contextmanager
    def timer(self, name: str, labels: dict[str, str] | None = None) -> Generator[None, None, None]:
        """Context manager to time an operation and record as histogram."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.histogram(f"{name}_duration_ms", elapsed_ms, labels)

    def _make_key(self, name: str, labels: dict[str, str] | None) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> float:
        key = self._make_key(name, labels)
        with self._lock:
            return self._counters.get(key, 0.0)

    def get_histogram_stats(self, name: str, labels: dict[str, str] | None = None) -> dict[str, float]:
        """Get histogram statistics (count, min, max, avg, p50, p95)."""
        key = self._make_key(name, labels)
        with self._lock:
            return self._stats(self._histograms.get(key, []))

    @staticmethod
    def _stats(values: list[float]) -> dict[str, float]:
        if not values:
            return {}
        sorted_values = sorted(values)
        count = len(sorted_values)
        return {
            "count": count,
            "min": sorted_values[0],
            "max": sorted_values[-1],
            "avg": sum(sorted_values) / count,
            "p50": sorted_values[int(count * 0.5)],
            "p95": sorted_values[int(count * 0.95)] if count > 1 else sorted_values[-1],
        }

    def get_all_metrics(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "histograms": {key: self._stats(values) for key, values in self._histograms.items()},
                "collected_at": datetime.now(timezone.utc).isoformat(),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._counters.clear()
            self._histograms.clear()


# Global metrics instance
metrics = MetricsCollector()


def record_command(kind: str, duration_ms: float, success: bool = True) -> None:
    """Record one executed chat command."""
    labels = {"kind": kind, "success": str(success).lower()}
    metrics.histogram("command_duration_ms", duration_ms, {"kind": kind})
    metrics.increment("commands_total", labels=labels)


def record_tool_call(server: str, tool: str, duration_ms: float, success: bool) -> None:
    """Record one tool server invocation."""
    labels = {"server": server, "tool": tool, "success": str(success).lower()}
    metrics.histogram("tool_call_duration_ms", duration_ms, {"server": server, "tool": tool})
    metrics.increment("tool_calls_total", labels=labels)


def record_error(component: str, error_type: str) -> None:
    metrics.increment("errors_total", labels={"component": component, "type": error_type})
