"""aiohttp application serving the demo users API.

Routes::

    GET    /api/users        list users
    GET    /api/users/{id}   fetch one user
    POST   /api/users        create a user (201)
    PUT    /api/users/{id}   replace name and email
    DELETE /api/users/{id}   delete a user (204)
    GET    /health           liveness probe
    GET    /metrics          Prometheus metrics, exempt from the rate limit
"""

from __future__ import annotations

import json
import time

from aiohttp import web

from loadprobe._internal.logging import get_logger
from loadprobe.demo.metrics import RateLimiter, ServerMetrics
from loadprobe.demo.storage import UserNotFoundError, UserStore

logger = get_logger("demo.app")

STORE_KEY = web.AppKey("store", UserStore)
METRICS_KEY = web.AppKey("metrics", ServerMetrics)

DEFAULT_RATE_LIMIT = 100_000


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _user_id(request: web.Request) -> int | None:
    try:
        user_id = int(request.match_info["id"])
    except ValueError:
        return None
    return user_id if user_id >= 1 else None


async def _user_fields(request: web.Request) -> tuple[str, str] | web.Response:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "invalid request body")
    if not isinstance(body, dict):
        return _error(400, "invalid request body")
    # null decodes to an empty string; any other non-string is a malformed body.
    name = body.get("name") if body.get("name") is not None else ""
    email = body.get("email") if body.get("email") is not None else ""
    if not isinstance(name, str) or not isinstance(email, str):
        return _error(400, "invalid request body")
    if not name or not email:
        return _error(400, "name and email are required")
    return name, email


async def list_users(request: web.Request) -> web.Response:
    store = request.app[STORE_KEY]
    return web.json_response([u.to_dict() for u in store.list_all()])


async def get_user(request: web.Request) -> web.Response:
    user_id = _user_id(request)
    if user_id is None:
        return _error(400, "invalid id")
    try:
        user = request.app[STORE_KEY].get(user_id)
    except UserNotFoundError:
        return _error(404, "user not found")
    return web.json_response(user.to_dict())


async def create_user(request: web.Request) -> web.Response:
    fields = await _user_fields(request)
    if isinstance(fields, web.Response):
        return fields
    user = request.app[STORE_KEY].create(*fields)
    return web.json_response(user.to_dict(), status=201)


async def update_user(request: web.Request) -> web.Response:
    user_id = _user_id(request)
    if user_id is None:
        return _error(400, "invalid id")
    fields = await _user_fields(request)
    if isinstance(fields, web.Response):
        return fields
    try:
        user = request.app[STORE_KEY].update(user_id, *fields)
    except UserNotFoundError:
        return _error(404, "user not found")
    return web.json_response(user.to_dict())


async def delete_user(request: web.Request) -> web.Response:
    user_id = _user_id(request)
    if user_id is None:
        return _error(400, "invalid id")
    try:
        request.app[STORE_KEY].delete(user_id)
    except UserNotFoundError:
        return _error(404, "user not found")
    return web.Response(status=204)


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


@web.middleware
async def access_log(request: web.Request, handler: web.Handler) -> web.StreamResponse:
    start = time.monotonic()
    response = await handler(request)
    logger.debug(
        "%d - %.2fms %s %s",
        response.status,
        (time.monotonic() - start) * 1000,
        request.method,
        request.path,
    )
    return response


def create_app(
    store: UserStore | None = None,
    *,
    rate_limit: int = DEFAULT_RATE_LIMIT,
    rate_window: float = 1.0,
) -> web.Application:
    """Build the demo users API application.

    Args:
        store: Backing store. A fresh empty one when omitted.
        rate_limit: Requests allowed per client address per window.
        rate_window: Rate limit window in seconds.
    """
    metrics = ServerMetrics()
    limiter = RateLimiter(rate_limit, rate_window)
    app = web.Application(
        middlewares=[access_log, metrics.middleware(), limiter.middleware(exempt=("/metrics",))],
    )
    app[STORE_KEY] = store if store is not None else UserStore()
    app[METRICS_KEY] = metrics
    app.router.add_get("/api/users", list_users)
    app.router.add_post("/api/users", create_user)
    app.router.add_get("/api/users/{id}", get_user)
    app.router.add_put("/api/users/{id}", update_user)
    app.router.add_delete("/api/users/{id}", delete_user)
    app.router.add_get("/health", health)
    app.router.add_get("/metrics", metrics.handle)
    return app
