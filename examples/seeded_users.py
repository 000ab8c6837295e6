"""Seeded users-API load test written as a scenario file.

Same shape as the built-in scenario, with a teardown that deletes the
seeded users. Start the demo API and run it with:

    loadprobe serve --port 3000 &
    loadprobe run examples/seeded_users.py --vus 50 --duration 30s
"""

from __future__ import annotations

from typing import Any

from loadprobe import HttpClient, check, scenario, setup, task, teardown


@scenario(name="Seeded Users", think_time=(0.1, 0.5))
class SeededUsersScenario:
    """Seed five users, list them under load, then clean up."""

    @setup
    async def seed(self, client: HttpClient) -> dict[str, Any]:
        """Create the users every virtual user will read back."""
        ids = []
        for i in range(1, 6):
            resp = await client.post(
                "/api/users",
                json={"name": f"TestUser{i}", "email": f"testuser{i}@example.com"},
                name="POST /api/users",
            )
            if resp.status == 201:
                ids.append((await resp.json())["id"])
        return {"baseUrl": client.base_url, "userIds": ids}

    @task(weight=4)
    async def list_users(self, client: HttpClient, data: dict[str, Any]) -> None:
        resp = await client.get("/api/users", name="GET /api/users")
        check(resp, {"status 200": lambda r: r.status == 200})

    @task(weight=1)
    async def get_seeded_user(self, client: HttpClient, data: dict[str, Any]) -> None:
        if not data["userIds"]:
            return
        user_id = data["userIds"][0]
        resp = await client.get(f"/api/users/{user_id}", name="GET /api/users/{id}")
        check(resp, {"status 200": lambda r: r.status == 200})

    @teardown
    async def remove_seeded(self, client: HttpClient, data: dict[str, Any]) -> None:
        for user_id in data["userIds"]:
            await client.delete(f"/api/users/{user_id}", name="DELETE /api/users/{id}")
