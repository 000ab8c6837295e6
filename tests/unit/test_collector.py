"""Tests for the MetricCollector."""

from __future__ import annotations

import time

from loadprobe.dsl.http_client import RequestMetric
from loadprobe.metrics.collector import MetricCollector


def _make_metric(
    name: str = "Test",
    latency_ms: float = 10.0,
    status_code: int = 200,
    error: str | None = None,
) -> RequestMetric:
    """Create a RequestMetric with sensible defaults."""
    return RequestMetric(
        timestamp=time.monotonic(),
        name=name,
        method="GET",
        url="http://localhost/test",
        status_code=status_code,
        latency_ms=latency_ms,
        content_length=0,
        error=error,
    )


class TestMetricCollectorRecord:
    """Tests for the record method."""

    def test_pending_count_starts_at_zero(self) -> None:
        assert MetricCollector().pending_count == 0

    def test_record_appends_to_buffer(self) -> None:
        collector = MetricCollector()
        for _ in range(5):
            collector.record(_make_metric())
        assert collector.pending_count == 5
        assert collector.total_requests == 0

    def test_drain_folds_into_totals(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric())
        collector.record(_make_metric())

        drained = collector.drain()

        assert len(drained) == 2
        assert collector.pending_count == 0
        assert collector.total_requests == 2


class TestMetricCollectorFlush:
    """Tests for the flush method."""

    def test_flush_drains_buffer(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric())
        collector.flush(elapsed_seconds=1.0, active_users=1)
        assert collector.pending_count == 0

    def test_flush_counts(self) -> None:
        collector = MetricCollector()
        for _ in range(3):
            collector.record(_make_metric())
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=2, iterations=3)
        assert snapshot.total_requests == 3
        assert snapshot.active_users == 2
        assert snapshot.iterations == 3
        assert snapshot.requests_per_second > 0

    def test_flush_computes_latency_stats(self) -> None:
        collector = MetricCollector()
        for lat in [10.0, 20.0, 30.0, 40.0, 50.0]:
            collector.record(_make_metric(latency_ms=lat))
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=1)
        assert snapshot.latency_min == 10.0
        assert snapshot.latency_max == 50.0
        assert snapshot.latency_avg == 30.0
        assert snapshot.latency_p50 == 30.0
        assert 40.0 < snapshot.latency_p99 <= 50.0

    def test_flush_groups_by_endpoint(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric(name="GET /api/users"))
        collector.record(_make_metric(name="GET /api/users"))
        collector.record(_make_metric(name="POST /api/users", status_code=201))

        snapshot = collector.flush(elapsed_seconds=1.0, active_users=1)

        assert set(snapshot.endpoints) == {"GET /api/users", "POST /api/users"}
        assert snapshot.endpoints["GET /api/users"].request_count == 2
        assert snapshot.endpoints["POST /api/users"].error_count == 0

    def test_flush_error_breakdown(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric())
        collector.record(_make_metric(status_code=500))
        collector.record(_make_metric(status_code=404))
        collector.record(_make_metric(status_code=0, error="ClientConnectorError: refused"))

        snapshot = collector.flush(elapsed_seconds=1.0, active_users=1)

        assert snapshot.total_errors == 3
        assert snapshot.error_rate == 0.75
        assert snapshot.errors_by_status == {500: 1, 404: 1}
        assert snapshot.errors_by_type == {"ClientConnectorError": 1}

    def test_empty_flush_returns_zero_snapshot(self) -> None:
        snapshot = MetricCollector().flush(elapsed_seconds=1.0, active_users=0)
        assert snapshot.total_requests == 0
        assert snapshot.error_rate == 0.0
        assert snapshot.latency_p95 == 0.0
        assert snapshot.endpoints == {}

    def test_flush_only_covers_its_interval(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric())
        collector.flush(elapsed_seconds=1.0, active_users=1)
        collector.record(_make_metric())
        snapshot = collector.flush(elapsed_seconds=2.0, active_users=1)
        assert snapshot.total_requests == 1


class TestMetricCollectorCumulative:
    def test_cumulative_includes_all_flushed_metrics(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric(latency_ms=10.0))
        collector.flush(elapsed_seconds=1.0, active_users=1)
        collector.record(_make_metric(latency_ms=30.0, status_code=500))
        collector.flush(elapsed_seconds=2.0, active_users=1)

        summary = collector.get_cumulative_snapshot(elapsed_seconds=2.0, iterations=2)

        assert summary.total_requests == 2
        assert summary.total_errors == 1
        assert summary.error_rate == 0.5
        assert summary.requests_per_second == 1.0
        assert summary.iterations == 2
        assert summary.errors_by_status == {500: 1}
        assert 9.5 <= summary.latency_min <= 10.5
        assert 29.5 <= summary.latency_max <= 30.5

    def test_cumulative_drains_pending_metrics(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric(name="POST /api/users"))

        summary = collector.get_cumulative_snapshot(elapsed_seconds=1.0)

        assert collector.pending_count == 0
        assert summary.total_requests == 1
        assert summary.endpoints["POST /api/users"].request_count == 1

    def test_cumulative_empty(self) -> None:
        summary = MetricCollector().get_cumulative_snapshot(elapsed_seconds=0.0)
        assert summary.total_requests == 0
        assert summary.latency_p50 == 0.0
