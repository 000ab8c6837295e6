"""``loadprobe init``: scaffold a new scenario file from a template."""

from __future__ import annotations

from pathlib import Path
from string import Template

import typer
from rich.console import Console

console = Console(stderr=True)

_SCENARIO_TEMPLATE = Template('''\
"""Load test scenario: $name.

Run with:
    loadprobe run $filename --vus 10 --duration 30s
"""

from __future__ import annotations

from typing import Any

from loadprobe import HttpClient, check, scenario, setup, task


@scenario(name="$name", think_time=(0.5, 1.5))
class $class_name:
    """$name load test."""

    @setup
    async def prepare(self, client: HttpClient) -> dict[str, Any]:
        """Runs once before any virtual user starts."""
        return {"baseUrl": client.base_url}

    @task(weight=1)
    async def get_health(self, client: HttpClient, data: dict[str, Any]) -> None:
        """GET the health endpoint."""
        resp = await client.get("/health", name="Health")
        check(resp, {"status 200": lambda r: r.status == 200})
''')


def init_cmd(
    name: str = typer.Argument(
        "my_scenario",
        help="Name for the scenario (used as filename and class name).",
    ),
    directory: Path | None = typer.Option(
        None,
        "--dir",
        help="Directory to write the scenario into (default: current directory).",
        file_okay=False,
    ),
) -> None:
    """Scaffold a new scenario file."""
    # Sanitise the name for use as a Python identifier
    safe_name = "".join(c if c.isalnum() or c == "_" else "_" for c in name).lower()
    if not safe_name or safe_name[0].isdigit():
        safe_name = "scenario_" + safe_name

    filename = f"{safe_name}.py"
    class_name = "".join(word.capitalize() for word in safe_name.split("_")) + "Scenario"
    display_name = name.replace("_", " ").replace("-", " ").title()

    target = (directory or Path.cwd()) / filename
    if target.exists():
        console.print(f"[red]File already exists:[/red] {filename}")
        raise typer.Exit(code=1)

    content = _SCENARIO_TEMPLATE.substitute(
        name=display_name,
        filename=filename,
        class_name=class_name,
    )
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)
    console.print(f"[green]Created scenario:[/green] {target}")
