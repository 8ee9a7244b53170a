import threading
from unittest.mock import patch

import pytest

from services.metrics import MetricsCollector, record_command, record_error, record_tool_call


class TestMetricsCollector:
    def test_increment(self):
        collector = MetricsCollector()
        collector.increment("test_counter")
        assert collector.get_counter("test_counter") == 1.0

        collector.increment("test_counter", 2.5)
        assert collector.get_counter("test_counter") == 3.5

        # Test with labels
        collector.increment("labeled_counter", labels={"server": "burbar-database"})
        assert collector.get_counter("labeled_counter", labels={"server": "burbar-database"}) == 1.0
        assert collector.get_counter("labeled_counter", labels={"server": "burbar-vercel"}) == 0.0

    def test_histogram(self):
        collector = MetricsCollector()
        for v in [10, 20, 30, 40, 50]:
            collector.histogram("test_hist", v)

        stats = collector.get_histogram_stats("test_hist")
        assert stats["count"] == 5
        assert stats["min"] == 10
        assert stats["max"] == 50
        assert stats["avg"] == 30.0
        assert stats["p50"] == 30

        # Rolling window keeps the last 100 values
        for i in range(150):
            collector.histogram("rolling_hist", i)

        stats = collector.get_histogram_stats("rolling_hist")
        assert stats["count"] == 100
        assert stats["min"] == 50
        assert stats["max"] == 149

    def test_timer(self):
        collector = MetricsCollector()
        with patch("time.perf_counter", side_effect=[0.0, 0.1]):  # 100ms elapsed
            with collector.timer("test_op"):
                pass

        stats = collector.get_histogram_stats("test_op_duration_ms")
        assert stats["count"] == 1
        assert stats["avg"] == pytest.approx(100.0)

    def test_thread_safety(self):
        collector = MetricsCollector()

        def worker():
            for _ in range(100):
                collector.increment("thread_counter")

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert collector.get_counter("thread_counter") == 1000.0

    def test_reset(self):
        collector = MetricsCollector()
        collector.increment("foo")
        collector.histogram("bar", 1.0)
        collector.reset()
        snapshot = collector.get_all_metrics()
        assert not snapshot["counters"]
        assert not snapshot["histograms"]


def test_record_command():
    from services.metrics import metrics as global_metrics

    record_command("update_order", 12.0, success=False)

    assert global_metrics.get_counter("commands_total", labels={"kind": "update_order", "success": "false"}) == 1.0
    assert global_metrics.get_histogram_stats("command_duration_ms", labels={"kind": "update_order"})["avg"] == 12.0


def test_record_tool_call_and_errors():
    from services.metrics import metrics as global_metrics

    record_tool_call("burbar-stripe", "retrieve_payment", 30.0, True)
    record_error("executor", "RuntimeError")

    assert global_metrics.get_counter(
        "tool_calls_total", labels={"server": "burbar-stripe", "tool": "retrieve_payment", "success": "true"}
    ) == 1.0
    assert global_metrics.get_counter("errors_total", labels={"component": "executor", "type": "RuntimeError"}) == 1.0
