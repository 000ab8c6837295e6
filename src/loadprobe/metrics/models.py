"""Metric, check and result dataclasses for loadprobe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

# NOTE: RequestMetric lives in dsl/http_client.py. Re-exported here so
# consumers can import every metric type from one place.
from loadprobe.dsl.http_client import RequestMetric

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "CheckOutcome",
    "CheckStats",
    "EndpointMetrics",
    "MetricSnapshot",
    "RequestMetric",
    "TestResult",
]


@dataclass(frozen=True)
class CheckOutcome:
    """Result of one named check evaluated during one iteration.

    Attributes:
        name: Check name, e.g. ``"status 200"``.
        passed: Whether the predicate returned a truthy value.
        vu_id: Virtual user that evaluated the check.
        iteration: Zero-based iteration number within that virtual user.
        timestamp: Monotonic time of evaluation.
        error: ``"<ExcType>: <message>"`` if the predicate raised.
    """

    name: str
    passed: bool
    vu_id: int
    iteration: int
    timestamp: float
    error: str | None = None


@dataclass
class CheckStats:
    """Pass/fail counters for one check name."""

    name: str
    passes: int = 0
    fails: int = 0

    @property
    def total(self) -> int:
        return self.passes + self.fails

    @property
    def pass_rate(self) -> float:
        """Fraction of evaluations that passed (0.0 when never evaluated)."""
        return self.passes / self.total if self.total else 0.0

    def merge(self, other: CheckStats) -> None:
        """Add another counter's totals into this one."""
        self.passes += other.passes
        self.fails += other.fails


@dataclass
class EndpointMetrics:
    """Aggregated metrics for a single endpoint (logical request name).

    Attributes:
        name: Logical endpoint name (e.g., "GET /api/users").
        request_count: Total number of requests to this endpoint.
        error_count: Number of failed requests (status >= 400 or error).
        error_rate: Fraction of requests that failed (0.0 to 1.0).
        requests_per_second: Requests per second to this endpoint.
        latency_min: Minimum response time in milliseconds.
        latency_max: Maximum response time in milliseconds.
        latency_avg: Mean response time in milliseconds.
        latency_p50: 50th percentile response time in milliseconds.
        latency_p90: 90th percentile response time in milliseconds.
        latency_p95: 95th percentile response time in milliseconds.
        latency_p99: 99th percentile response time in milliseconds.
    """

    name: str
    request_count: int = 0
    error_count: int = 0
    error_rate: float = 0.0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0


@dataclass
class MetricSnapshot:
    """Aggregated request metrics for one tick, or for the whole run.

    Attributes:
        timestamp: Monotonic timestamp of the snapshot.
        elapsed_seconds: Seconds since virtual users were started.
        active_users: Number of running virtual users.
        total_requests: Requests in this interval.
        requests_per_second: Overall RPS in this interval.
        latency_min: Minimum latency in milliseconds.
        latency_max: Maximum latency in milliseconds.
        latency_avg: Mean latency in milliseconds.
        latency_p50: 50th percentile latency (ms).
        latency_p90: 90th percentile latency (ms).
        latency_p95: 95th percentile latency (ms).
        latency_p99: 99th percentile latency (ms).
        total_errors: Failed requests in this interval.
        error_rate: Fraction of requests that failed (0.0 to 1.0).
        errors_by_status: Error count breakdown by HTTP status code.
        errors_by_type: Error count breakdown by exception type.
        endpoints: Per-endpoint metrics keyed by endpoint name.
        checks: Check counters for this interval, keyed by check name.
        iterations: Iterations completed in this interval.
    """

    timestamp: float
    elapsed_seconds: float
    active_users: int
    total_requests: int = 0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    total_errors: int = 0
    error_rate: float = 0.0
    errors_by_status: dict[int, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    endpoints: dict[str, EndpointMetrics] = field(default_factory=dict)
    checks: dict[str, CheckStats] = field(default_factory=dict)
    iterations: int = 0


@dataclass
class TestResult:
    """Complete result of a load test run.

    Attributes:
        scenario_name: Name of the scenario that was executed.
        start_time: Monotonic time when virtual users were started.
        end_time: Monotonic time when the last virtual user stopped.
        duration_seconds: Wall-clock duration of the load phase.
        pattern_description: Human-readable description of the load pattern.
        snapshots: Time-series of per-tick MetricSnapshot objects.
        final_summary: Whole-run MetricSnapshot, setup and teardown included.
        checks: Whole-run check counters keyed by check name.
        iterations_completed: Iterations that ran to completion.
        iterations_interrupted: Iterations whose task raised.
        setup_data: The shared setup result handed to every virtual user.
    """

    __test__ = False

    scenario_name: str
    start_time: float
    end_time: float
    duration_seconds: float
    pattern_description: str
    snapshots: list[MetricSnapshot] = field(default_factory=list)
    final_summary: MetricSnapshot | None = None
    checks: dict[str, CheckStats] = field(default_factory=dict)
    iterations_completed: int = 0
    iterations_interrupted: int = 0
    setup_data: Mapping[str, Any] = field(default_factory=dict)

    @property
    def check_pass_rate(self) -> float:
        """Pass rate across every check evaluation (1.0 when there were none)."""
        passes = sum(c.passes for c in self.checks.values())
        total = sum(c.total for c in self.checks.values())
        return passes / total if total else 1.0
