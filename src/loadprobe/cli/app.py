"""Main Typer application, entry point for the ``loadprobe`` CLI."""

from __future__ import annotations

import typer

from loadprobe import __version__
from loadprobe.cli.init_cmd import init_cmd
from loadprobe.cli.report import report_cmd
from loadprobe.cli.run import run_cmd
from loadprobe.cli.serve import serve_cmd

app = typer.Typer(
    name="loadprobe",
    help="Seeded HTTP load tests as Python code.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run a load test scenario.")(run_cmd)
app.command("init", help="Scaffold a new scenario file.")(init_cmd)
app.command("report", help="Render a saved JSON summary.")(report_cmd)
app.command("serve", help="Serve the demo users API.")(serve_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"loadprobe {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """loadprobe: seeded HTTP load tests as Python code."""
