# tests/test_metrics.py
"""Tests for PerformanceMonitor."""

import pytest

from chuk_ai_orchestrator.orchestration.metrics import PerformanceMonitor


class TestPerformanceMonitor:
    def test_stats(self):
        monitor = PerformanceMonitor()
        for ms in (10.0, 20.0, 30.0):
            monitor.record("call_main", ms)
        monitor.record("call_main", 40.0, success=False)

        stats = monitor.get_stats("call_main")
        assert stats.count == 4
        assert stats.avg_duration_ms == pytest.approx(25.0)
        assert stats.min_duration_ms == 10.0
        assert stats.max_duration_ms == 40.0
        assert stats.failures == 1

    def test_unknown_operation(self):
        assert PerformanceMonitor().get_stats("nope") is None

    def test_window(self):
        monitor = PerformanceMonitor(window=2)
        for ms in (1.0, 2.0, 3.0):
            monitor.record("op", ms)
        assert monitor.get_stats("op").min_duration_ms == 2.0

    def test_timer_success(self):
        monitor = PerformanceMonitor()
        with monitor.timer("op"):
            pass
        stats = monitor.get_stats("op")
        assert stats.count == 1
        assert stats.failures == 0

    def test_timer_failure_reraises(self):
        monitor = PerformanceMonitor()
        with pytest.raises(RuntimeError):
            with monitor.timer("op"):
                raise RuntimeError("x")
        assert monitor.get_stats("op").failures == 1

    def test_all_stats_and_reset(self):
        monitor = PerformanceMonitor()
        monitor.record("a", 1.0)
        monitor.record("b", 2.0)
        assert set(monitor.all_stats()) == {"a", "b"}
        monitor.reset()
        assert monitor.all_stats() == {}
