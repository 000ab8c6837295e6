"""JSON run summaries and threshold evaluation."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loadprobe._internal.errors import LoadProbeError

if TYPE_CHECKING:
    from loadprobe.metrics.models import MetricSnapshot, TestResult

_LATENCY_FIELDS = ("min", "max", "avg", "p50", "p90", "p95", "p99")


def _latency(snapshot: MetricSnapshot | Any) -> dict[str, float]:
    return {name: getattr(snapshot, f"latency_{name}") for name in _LATENCY_FIELDS}


def summary_to_dict(result: TestResult) -> dict[str, Any]:
    """Convert a TestResult into a JSON-serializable summary.

    Snapshots are omitted; the summary describes the run as a whole.

    Args:
        result: Completed test result.

    Returns:
        A dict with ``scenario``, ``metrics``, ``checks``, ``endpoints``,
        ``iterations`` and ``setup_data`` sections.
    """
    summary = result.final_summary
    metrics: dict[str, Any] = {}
    endpoints: dict[str, Any] = {}
    if summary is not None:
        metrics = {
            "requests": summary.total_requests,
            "requests_per_second": summary.requests_per_second,
            "errors": summary.total_errors,
            "error_rate": summary.error_rate,
            "errors_by_status": {str(k): v for k, v in summary.errors_by_status.items()},
            "errors_by_type": dict(summary.errors_by_type),
            "latency_ms": _latency(summary),
        }
        endpoints = {
            name: {
                "requests": ep.request_count,
                "requests_per_second": ep.requests_per_second,
                "errors": ep.error_count,
                "error_rate": ep.error_rate,
                "latency_ms": _latency(ep),
            }
            for name, ep in summary.endpoints.items()
        }

    checks = {
        name: {**asdict(stats), "pass_rate": stats.pass_rate}
        for name, stats in result.checks.items()
    }

    return {
        "scenario": result.scenario_name,
        "pattern": result.pattern_description,
        "duration_seconds": result.duration_seconds,
        "metrics": metrics,
        "checks": checks,
        "check_pass_rate": result.check_pass_rate,
        "endpoints": endpoints,
        "iterations": {
            "completed": result.iterations_completed,
            "interrupted": result.iterations_interrupted,
        },
        "setup_data": dict(result.setup_data),
    }


def write_summary(result: TestResult, path: str | Path) -> Path:
    """Write the JSON summary of ``result`` to ``path``.

    Parent directories are created as needed. Values in the setup data that
    JSON cannot represent are written as strings.

    Returns:
        The path written to.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(summary_to_dict(result), indent=2, default=str) + "\n")
    return out


def read_summary(path: str | Path) -> dict[str, Any]:
    """Load a summary previously written by :func:`write_summary`.

    Raises:
        LoadProbeError: If the file is missing or is not a summary.
    """
    src = Path(path)
    try:
        data = json.loads(src.read_text())
    except FileNotFoundError:
        msg = f"Summary file not found: {src}"
        raise LoadProbeError(msg) from None
    except json.JSONDecodeError as exc:
        msg = f"Summary file {src} is not valid JSON: {exc}"
        raise LoadProbeError(msg) from exc

    if not isinstance(data, dict) or "metrics" not in data or "checks" not in data:
        msg = f"{src} does not look like a loadprobe summary"
        raise LoadProbeError(msg)
    return data


def evaluate_thresholds(
    summary: dict[str, Any],
    *,
    max_error_rate: float | None = None,
    min_check_pass_rate: float | None = None,
) -> list[str]:
    """Compare a summary against pass/fail thresholds.

    Args:
        summary: A dict produced by :func:`summary_to_dict`.
        max_error_rate: Highest acceptable request error rate (0.0 to 1.0).
        min_check_pass_rate: Lowest acceptable check pass rate (0.0 to 1.0).

    Returns:
        One message per breached threshold; empty when everything passed.
    """
    breaches: list[str] = []

    error_rate = summary.get("metrics", {}).get("error_rate", 0.0)
    if max_error_rate is not None and error_rate > max_error_rate:
        breaches.append(
            f"Error rate {error_rate * 100:.2f}% exceeds threshold {max_error_rate * 100:.2f}%"
        )

    pass_rate = summary.get("check_pass_rate", 1.0)
    if min_check_pass_rate is not None and pass_rate < min_check_pass_rate:
        breaches.append(
            f"Check pass rate {pass_rate * 100:.2f}% is below threshold "
            f"{min_check_pass_rate * 100:.2f}%"
        )

    return breaches
