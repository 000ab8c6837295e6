"""``loadprobe serve``: run the demo users API."""

from __future__ import annotations

import logging

import typer
from aiohttp import web
from rich.console import Console

from loadprobe._internal.logging import setup_logging
from loadprobe.demo.app import DEFAULT_RATE_LIMIT, create_app

console = Console(stderr=True)


def serve_cmd(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(3000, "--port", "-p", help="Port to listen on.", min=1, max=65535),
    rate_limit: int = typer.Option(
        DEFAULT_RATE_LIMIT,
        "--rate-limit",
        help="Requests per second allowed per client before answering 429.",
        min=1,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every request.",
    ),
) -> None:
    """Serve the in-memory users API the built-in scenario targets."""
    setup_logging(level=logging.DEBUG if verbose else logging.INFO)
    console.print(f"[cyan]Users API listening on[/cyan] http://{host}:{port}")
    app = create_app(rate_limit=rate_limit)
    web.run_app(app, host=host, port=port, print=None, access_log=None)
