"""Rich tables shared by ``loadprobe run`` and ``loadprobe report``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from loadprobe.metrics.models import MetricSnapshot


def make_live_table(snapshot: MetricSnapshot | None, elapsed: float) -> Table:
    """Build a Rich table summarising the latest tick.

    Args:
        snapshot: Latest metric snapshot, or None if no data yet.
        elapsed: Elapsed seconds so far.

    Returns:
        Formatted Rich Table.
    """
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if snapshot is None:
        table.add_row("Elapsed", f"{elapsed:.0f}s")
        table.add_row("Status", "Seeding...")
        return table

    passes = sum(c.passes for c in snapshot.checks.values())
    fails = sum(c.fails for c in snapshot.checks.values())

    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.0f}s")
    table.add_row("Active Users", str(snapshot.active_users))
    table.add_row("Requests/sec", f"{snapshot.requests_per_second:.1f}")
    table.add_row("Requests", str(snapshot.total_requests))
    table.add_row("Iterations", str(snapshot.iterations))
    table.add_row("p50 Latency", f"{snapshot.latency_p50:.1f}ms")
    table.add_row("p95 Latency", f"{snapshot.latency_p95:.1f}ms")
    table.add_row("p99 Latency", f"{snapshot.latency_p99:.1f}ms")
    table.add_row("Errors", str(snapshot.total_errors))
    table.add_row("Checks", f"[green]{passes}[/green] / [red]{fails}[/red]")

    return table


def print_summary(console: Console, summary: dict[str, Any]) -> None:
    """Print the end-of-run tables for a summary dict.

    Args:
        console: Console to print to.
        summary: A dict produced by ``summary_to_dict``.
    """
    metrics = summary.get("metrics", {})
    latency = metrics.get("latency_ms", {})
    iterations = summary.get("iterations", {})

    table = Table(title="Test Complete", show_header=True, header_style="bold green", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Scenario", str(summary.get("scenario", "")))
    table.add_row("Pattern", str(summary.get("pattern", "")))
    table.add_row("Duration", f"{summary.get('duration_seconds', 0.0):.1f}s")
    table.add_row("Iterations", str(iterations.get("completed", 0)))
    table.add_row("Interrupted", str(iterations.get("interrupted", 0)))
    if metrics:
        table.add_row("Total Requests", str(metrics["requests"]))
        table.add_row("Avg Requests/sec", f"{metrics['requests_per_second']:.1f}")
        for name in ("p50", "p90", "p95", "p99"):
            table.add_row(f"{name} Latency", f"{latency.get(name, 0.0):.1f}ms")
        table.add_row("Total Errors", str(metrics["errors"]))
        table.add_row("Error Rate", f"{metrics['error_rate'] * 100:.2f}%")

    endpoints = summary.get("endpoints", {})
    if endpoints:
        ep_table = Table(
            title="Per-Endpoint Breakdown",
            show_header=True,
            header_style="bold cyan",
            expand=True,
        )
        ep_table.add_column("Endpoint")
        ep_table.add_column("Requests", justify="right")
        ep_table.add_column("RPS", justify="right")
        ep_table.add_column("p50", justify="right")
        ep_table.add_column("p95", justify="right")
        ep_table.add_column("p99", justify="right")
        ep_table.add_column("Errors", justify="right")
        ep_table.add_column("Error %", justify="right")

        for name, ep in endpoints.items():
            ep_latency = ep.get("latency_ms", {})
            ep_table.add_row(
                name,
                str(ep["requests"]),
                f"{ep['requests_per_second']:.1f}",
                f"{ep_latency.get('p50', 0.0):.1f}ms",
                f"{ep_latency.get('p95', 0.0):.1f}ms",
                f"{ep_latency.get('p99', 0.0):.1f}ms",
                str(ep["errors"]),
                f"{ep['error_rate'] * 100:.2f}%",
            )
        console.print(ep_table)

    checks = summary.get("checks", {})
    if checks:
        check_table = Table(title="Checks", show_header=True, header_style="bold cyan", expand=True)
        check_table.add_column("", width=2)
        check_table.add_column("Check")
        check_table.add_column("Passes", justify="right")
        check_table.add_column("Fails", justify="right")
        check_table.add_column("Pass %", justify="right")

        for name, stats in checks.items():
            marker = "[green]✓[/green]" if stats["fails"] == 0 else "[red]✗[/red]"
            check_table.add_row(
                marker,
                name,
                str(stats["passes"]),
                str(stats["fails"]),
                f"{stats['pass_rate'] * 100:.2f}%",
            )
        console.print(check_table)

    console.print(table)
