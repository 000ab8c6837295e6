"""In-memory request metric collection for a test session."""

from __future__ import annotations

import time
from collections import Counter, defaultdict, deque
from typing import TYPE_CHECKING

import numpy as np

from loadprobe.metrics.histogram import LatencyHistogram
from loadprobe.metrics.models import EndpointMetrics, MetricSnapshot

if TYPE_CHECKING:
    from loadprobe.dsl.http_client import RequestMetric


_PERCENTILES = (50.0, 90.0, 95.0, 99.0)


def _latency_stats(latencies: list[float]) -> dict[str, float]:
    """Compute min/max/avg and percentiles for a list of latencies (ms)."""
    if not latencies:
        return {}

    arr = np.array(latencies, dtype=np.float64)
    p50, p90, p95, p99 = np.percentile(arr, _PERCENTILES)
    return {
        "latency_min": float(np.min(arr)),
        "latency_max": float(np.max(arr)),
        "latency_avg": float(np.mean(arr)),
        "latency_p50": float(p50),
        "latency_p90": float(p90),
        "latency_p95": float(p95),
        "latency_p99": float(p99),
    }


def _histogram_stats(hist: LatencyHistogram) -> dict[str, float]:
    """Same keys as ``_latency_stats``, read from an HDR histogram."""
    if not len(hist):
        return {}
    p50, p90, p95, p99 = (hist.percentile(p) for p in _PERCENTILES)
    return {
        "latency_min": hist.min(),
        "latency_max": hist.max(),
        "latency_avg": hist.mean(),
        "latency_p50": p50,
        "latency_p90": p90,
        "latency_p95": p95,
        "latency_p99": p99,
    }


def _error_type(metric: RequestMetric) -> str:
    # "ClientConnectorError: Cannot connect..." -> "ClientConnectorError"
    return (metric.error or "").split(":")[0].strip()


class MetricCollector:
    """Collects ``RequestMetric`` objects emitted by every ``HttpClient``.

    ``record`` is passed as the client's ``metric_callback`` and only
    appends to a deque. ``flush`` drains the deque once per tick, computes
    exact interval statistics with numpy, and folds the latencies into
    cumulative HDR histograms used for the whole-run summary.

    Attributes:
        worker_id: Worker identifier for metric tagging.
    """

    def __init__(self, worker_id: int = 0) -> None:
        self.worker_id = worker_id
        self._buffer: deque[RequestMetric] = deque()
        self._last_flush_time: float = time.monotonic()

        self._total_hist = LatencyHistogram()
        self._endpoint_hists: dict[str, LatencyHistogram] = {}
        self._total_requests = 0
        self._total_errors = 0
        self._endpoint_counts: Counter[str] = Counter()
        self._endpoint_errors: Counter[str] = Counter()
        self._errors_by_status: Counter[int] = Counter()
        self._errors_by_type: Counter[str] = Counter()

    @property
    def pending_count(self) -> int:
        """Return the number of unprocessed metrics in the buffer."""
        return len(self._buffer)

    @property
    def total_requests(self) -> int:
        """Requests folded into the cumulative state so far."""
        return self._total_requests

    def record(self, metric: RequestMetric) -> None:
        """Buffer a metric. Used as ``HttpClient.metric_callback``."""
        self._buffer.append(metric)

    def drain(self) -> list[RequestMetric]:
        """Remove and return all pending metrics, folding them into the totals."""
        drained: list[RequestMetric] = []
        while self._buffer:
            drained.append(self._buffer.popleft())
        for metric in drained:
            self._accumulate(metric)
        return drained

    def flush(
        self,
        elapsed_seconds: float,
        active_users: int,
        *,
        iterations: int = 0,
    ) -> MetricSnapshot:
        """Drain the buffer and compute a snapshot for the elapsed interval.

        Args:
            elapsed_seconds: Seconds since the load phase started.
            active_users: Number of running virtual users.
            iterations: Iterations completed during the interval.

        Returns:
            A MetricSnapshot covering the metrics drained by this call.
        """
        drained = self.drain()

        now = time.monotonic()
        interval = max(now - self._last_flush_time, 0.001)
        self._last_flush_time = now

        by_endpoint: dict[str, list[RequestMetric]] = defaultdict(list)
        errors_by_status: Counter[int] = Counter()
        errors_by_type: Counter[str] = Counter()
        for metric in drained:
            by_endpoint[metric.name].append(metric)
            if metric.status_code >= 400:
                errors_by_status[metric.status_code] += 1
            if metric.error is not None:
                errors_by_type[_error_type(metric)] += 1

        endpoints: dict[str, EndpointMetrics] = {}
        for name, ep_metrics in by_endpoint.items():
            ep_count = len(ep_metrics)
            ep_errors = sum(1 for m in ep_metrics if m.is_error)
            endpoints[name] = EndpointMetrics(
                name=name,
                request_count=ep_count,
                error_count=ep_errors,
                error_rate=ep_errors / ep_count,
                requests_per_second=ep_count / interval,
                **_latency_stats([m.latency_ms for m in ep_metrics]),
            )

        total = len(drained)
        total_errors = sum(1 for m in drained if m.is_error)
        return MetricSnapshot(
            timestamp=now,
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            total_requests=total,
            requests_per_second=total / interval,
            total_errors=total_errors,
            error_rate=total_errors / total if total else 0.0,
            errors_by_status=dict(errors_by_status),
            errors_by_type=dict(errors_by_type),
            endpoints=endpoints,
            iterations=iterations,
            **_latency_stats([m.latency_ms for m in drained]),
        )

    def get_cumulative_snapshot(
        self,
        elapsed_seconds: float,
        active_users: int = 0,
        *,
        iterations: int = 0,
    ) -> MetricSnapshot:
        """Return a snapshot covering every metric drained since creation.

        Pending metrics are drained first so nothing recorded is left out.

        Args:
            elapsed_seconds: Duration used as the RPS denominator.
            active_users: Active user count to report.
            iterations: Total completed iterations.

        Returns:
            The whole-run MetricSnapshot.
        """
        self.drain()
        interval = max(elapsed_seconds, 0.001)

        endpoints = {
            name: EndpointMetrics(
                name=name,
                request_count=self._endpoint_counts[name],
                error_count=self._endpoint_errors[name],
                error_rate=self._endpoint_errors[name] / self._endpoint_counts[name],
                requests_per_second=self._endpoint_counts[name] / interval,
                **_histogram_stats(hist),
            )
            for name, hist in self._endpoint_hists.items()
        }

        total = self._total_requests
        return MetricSnapshot(
            timestamp=time.monotonic(),
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            total_requests=total,
            requests_per_second=total / interval,
            total_errors=self._total_errors,
            error_rate=self._total_errors / total if total else 0.0,
            errors_by_status=dict(self._errors_by_status),
            errors_by_type=dict(self._errors_by_type),
            endpoints=endpoints,
            iterations=iterations,
            **_histogram_stats(self._total_hist),
        )

    def _accumulate(self, metric: RequestMetric) -> None:
        self._total_hist.record(metric.latency_ms)
        hist = self._endpoint_hists.get(metric.name)
        if hist is None:
            hist = self._endpoint_hists[metric.name] = LatencyHistogram()
        hist.record(metric.latency_ms)

        self._total_requests += 1
        self._endpoint_counts[metric.name] += 1
        if metric.is_error:
            self._total_errors += 1
            self._endpoint_errors[metric.name] += 1
            if metric.status_code >= 400:
                self._errors_by_status[metric.status_code] += 1
            if metric.error is not None:
                self._errors_by_type[_error_type(metric)] += 1
