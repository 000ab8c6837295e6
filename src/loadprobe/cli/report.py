"""``loadprobe report``: render a saved JSON summary."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from loadprobe._internal.errors import LoadProbeError
from loadprobe.cli.render import print_summary
from loadprobe.report.summary import evaluate_thresholds, read_summary

console = Console(stderr=True)


def report_cmd(
    summary_file: Path = typer.Argument(
        ...,
        help="JSON summary written by 'loadprobe run --summary-export'.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    fail_on_error_rate: float | None = typer.Option(
        None,
        "--fail-on-error-rate",
        help="Exit non-zero if the request error rate exceeds this threshold.",
    ),
    min_check_pass_rate: float | None = typer.Option(
        None,
        "--min-check-pass-rate",
        help="Exit non-zero if the check pass rate falls below this threshold.",
    ),
) -> None:
    """Render a previously exported run summary."""
    try:
        summary = read_summary(summary_file)
    except LoadProbeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    print_summary(console, summary)

    breaches = evaluate_thresholds(
        summary,
        max_error_rate=fail_on_error_rate,
        min_check_pass_rate=min_check_pass_rate,
    )
    for breach in breaches:
        console.print(f"[red]FAIL:[/red] {breach}")
    if breaches:
        raise typer.Exit(code=1)
