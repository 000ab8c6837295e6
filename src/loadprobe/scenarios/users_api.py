"""Seeded users-API load test.

Seeds five users once, then has every virtual user list users in a loop
and check for a 200. The target comes from ``BASE_URL`` (default
``http://localhost:3000``). Run it with::

    loadprobe run
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loadprobe.dsl.checks import check
from loadprobe.dsl.decorators import scenario, setup, task

if TYPE_CHECKING:
    from collections.abc import Mapping

    from loadprobe.dsl.http_client import HttpClient

SEED_USERS = 5


@scenario(name="Users API", vus=500, duration="60s")
class UsersApiScenario:
    """Seed users, then list them under load."""

    @setup
    async def seed_users(self, client: HttpClient) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        for i in range(1, SEED_USERS + 1):
            await client.post(
                "/api/users",
                json={"name": f"TestUser{i}", "email": f"testuser{i}@example.com"},
                headers=headers,
                name="POST /api/users",
            )
        # The configured BASE_URL, unchanged.
        return {"baseUrl": client.base_url}

    @task()
    async def list_users(self, client: HttpClient, data: Mapping[str, Any]) -> None:
        base_url = data["baseUrl"].rstrip("/")
        resp = await client.get(f"{base_url}/api/users", name="GET /api/users")
        check(resp, {"status 200": lambda r: r.status == 200})
