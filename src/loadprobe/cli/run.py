"""``loadprobe run``: execute a load test scenario with live terminal output."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel

from loadprobe._internal.config import parse_duration
from loadprobe._internal.errors import ConfigError, LoadProbeError
from loadprobe.cli.render import make_live_table, print_summary
from loadprobe.engine.runner import LoadTestRunner
from loadprobe.patterns.stages import StagesPattern
from loadprobe.report.summary import evaluate_thresholds, summary_to_dict, write_summary

if TYPE_CHECKING:
    from loadprobe._internal.types import ThinkTime
    from loadprobe.metrics.models import MetricSnapshot

console = Console(stderr=True)


def _parse_think_time(value: str | None) -> ThinkTime | None:
    """Parse ``"MIN,MAX"`` (or a single ``"N"``) into a think-time range.

    Raises:
        ConfigError: If the value is not one or two numbers.
    """
    if value is None:
        return None
    parts = [p.strip() for p in value.split(",")]
    try:
        numbers = [float(p) for p in parts]
    except ValueError:
        msg = f"Invalid think time {value!r}, expected MIN,MAX in seconds (e.g. '0.5,1.5')"
        raise ConfigError(msg) from None
    if len(numbers) == 1:
        return numbers[0], numbers[0]
    if len(numbers) == 2:
        return numbers[0], numbers[1]
    msg = f"Invalid think time {value!r}, expected MIN,MAX in seconds (e.g. '0.5,1.5')"
    raise ConfigError(msg)


def run_cmd(
    scenario_file: Path | None = typer.Argument(
        None,
        help="Path to a scenario .py file. Runs the built-in users-API scenario when omitted.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    vus: int | None = typer.Option(
        None,
        "--vus",
        "-u",
        help="Concurrent virtual users (default: scenario value, else 500).",
        min=1,
    ),
    duration: str | None = typer.Option(
        None,
        "--duration",
        "-d",
        help="Run duration, e.g. 60s, 1m30s or 500ms (default: scenario value, else 60s).",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="Target base URL (default: $BASE_URL, else http://localhost:3000).",
    ),
    stages: list[str] | None = typer.Option(
        None,
        "--stage",
        help="Ramp stage DURATION:TARGET, repeatable (e.g. --stage 30s:100 --stage 1m:100).",
    ),
    think_time: str | None = typer.Option(
        None,
        "--think-time",
        help="Pause between iterations as MIN,MAX seconds.",
    ),
    strict_setup: bool = typer.Option(
        False,
        "--strict-setup",
        help="Abort the run if any setup request fails.",
    ),
    summary_export: Path | None = typer.Option(
        None,
        "--summary-export",
        help="Write the end-of-run summary as JSON to this path.",
    ),
    fail_on_error_rate: float | None = typer.Option(
        None,
        "--fail-on-error-rate",
        help="Exit non-zero if the request error rate exceeds this threshold (e.g., 0.05).",
    ),
    min_check_pass_rate: float | None = typer.Option(
        None,
        "--min-check-pass-rate",
        help="Exit non-zero if the check pass rate falls below this threshold (e.g., 0.99).",
    ),
    log_format: str = typer.Option(
        "text",
        "--log-format",
        help="Log format: text or json.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
) -> None:
    """Execute a load test scenario with live terminal output."""
    if log_format not in ("text", "json"):
        msg = f"Unknown log format: {log_format}. Choose from: text, json"
        raise typer.BadParameter(msg)

    log_level = logging.DEBUG if verbose else logging.INFO

    try:
        pattern = StagesPattern.parse(stages) if stages else None
        test_runner = LoadTestRunner(
            scenario_file,
            pattern=pattern,
            log_level=log_level,
            json_logs=log_format == "json",
            base_url=base_url,
            vus=vus,
            duration_seconds=parse_duration(duration) if duration is not None else None,
            think_time=_parse_think_time(think_time),
            strict_setup=strict_setup or None,
        )
    except LoadProbeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    config = test_runner.config
    shape = pattern.describe() if pattern is not None else f"{config.vus} users"
    run_for = pattern.total_duration if pattern is not None else config.duration_seconds
    console.print(
        Panel(
            f"[bold]Scenario:[/bold] {test_runner.scenario.name}\n"
            f"[bold]Target:[/bold]   {config.base_url}\n"
            f"[bold]Load:[/bold]     {shape}\n"
            f"[bold]Duration:[/bold] {run_for:g}s",
            title="loadprobe",
            border_style="cyan",
        )
    )

    try:
        with Live(
            make_live_table(None, 0.0),
            console=console,
            refresh_per_second=2,
            transient=True,
        ) as live:

            def _live_snapshot(snapshot: MetricSnapshot) -> None:
                live.update(make_live_table(snapshot, snapshot.elapsed_seconds))

            test_runner.on_snapshot = _live_snapshot
            result = test_runner.run()
    except LoadProbeError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    summary = summary_to_dict(result)
    print_summary(console, summary)

    if summary_export is not None:
        written = write_summary(result, summary_export)
        console.print(f"Summary written to [bold]{written}[/bold]")

    breaches = evaluate_thresholds(
        summary,
        max_error_rate=fail_on_error_rate,
        min_check_pass_rate=min_check_pass_rate,
    )
    if breaches:
        for breach in breaches:
            console.print(f"[red]FAIL:[/red] {breach}")
        raise typer.Exit(code=1)

    console.print("[green]Load test completed successfully.[/green]")
