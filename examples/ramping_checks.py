"""Ramp up, hold, ramp down, with several checks per response.

Run with stages on the command line:

    loadprobe run examples/ramping_checks.py \
        --stage 10s:50 --stage 30s:50 --stage 10s:0 \
        --summary-export results/summary.json --min-check-pass-rate 0.99
"""

from __future__ import annotations

import random
from typing import Any

from loadprobe import HttpClient, check, scenario, task


@scenario(
    name="Ramping Checks",
    think_time=(0.5, 1.5),
    default_headers={"Accept": "application/json"},
)
class RampingChecksScenario:
    @task(weight=3)
    async def list_users(self, client: HttpClient, data: dict[str, Any]) -> None:
        resp = await client.get("/api/users", name="GET /api/users")
        body = await resp.json() if resp.status == 200 else None
        check(
            resp,
            {
                "status 200": lambda r: r.status == 200,
                "json content type": lambda r: r.headers.get("Content-Type", "").startswith(
                    "application/json"
                ),
                "body is a list": lambda _r: isinstance(body, list),
            },
        )

    @task(weight=1)
    async def create_user(self, client: HttpClient, data: dict[str, Any]) -> None:
        n = random.randint(1, 1_000_000)  # noqa: S311
        resp = await client.post(
            "/api/users",
            json={"name": f"LoadUser{n}", "email": f"load{n}@example.com"},
            name="POST /api/users",
        )
        check(resp, {"status 201": lambda r: r.status == 201})
