"""Shared test fixtures for the loadprobe test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from typing import TYPE_CHECKING, Any

import pytest
from aiohttp import web

from loadprobe.demo.app import create_app
from loadprobe.demo.storage import UserStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
    from pathlib import Path


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class RequestLog(list):
    """``(method, path)`` pairs in the order the server received them."""

    def paths(self, method: str) -> list[str]:
        return [p for m, p in self if m == method]


def _logging_middleware(log: RequestLog) -> Callable[..., Any]:
    @web.middleware
    async def _log(request: web.Request, handler: web.Handler) -> web.StreamResponse:
        log.append((request.method, request.path))
        return await handler(request)

    return _log


# =============================================================================
# Echo HTTP server handlers
# =============================================================================


async def _echo_handler(request: web.Request) -> web.Response:
    """Echo back request details as JSON."""
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": str(request.path),
            "query": dict(request.query),
            "headers": dict(request.headers),
            "body": body.decode("utf-8", errors="replace"),
        },
        status=200,
    )


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


async def _error_handler(request: web.Request) -> web.Response:
    """Return a configurable error status (query param: ?status=500)."""
    status = int(request.query.get("status", "500"))
    return web.json_response({"error": True}, status=status)


def _create_echo_app() -> web.Application:
    """Build the echo server app with all test routes."""
    app = web.Application()
    app.router.add_route("*", "/echo{path:.*}", _echo_handler)
    app.router.add_get("/delay", _delay_handler)
    app.router.add_route("*", "/error{path:.*}", _error_handler)
    return app


def _create_users_app(store: UserStore, log: RequestLog) -> web.Application:
    app = create_app(store)
    app.middlewares.append(_logging_middleware(log))
    return app


async def _serve(app: web.Application) -> tuple[web.AppRunner, str]:
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    return runner, f"http://127.0.0.1:{port}"


# =============================================================================
# Async fixtures
# =============================================================================


@pytest.fixture
async def echo_server() -> AsyncIterator[str]:
    """Aiohttp echo server fixture.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    runner, url = await _serve(_create_echo_app())
    yield url
    await runner.cleanup()


@pytest.fixture
def users_store() -> UserStore:
    return UserStore()


@pytest.fixture
def request_log() -> RequestLog:
    return RequestLog()


@pytest.fixture
async def users_server(users_store: UserStore, request_log: RequestLog) -> AsyncIterator[str]:
    """Demo users API on a free port, recording every request in ``request_log``."""
    runner, url = await _serve(_create_users_app(users_store, request_log))
    yield url
    await runner.cleanup()


@pytest.fixture
async def serve_app() -> AsyncIterator[Callable[[web.Application], Awaitable[str]]]:
    """Serve arbitrary apps on free ports; all are cleaned up at teardown."""
    runners: list[web.AppRunner] = []

    async def _start(app: web.Application) -> str:
        runner, url = await _serve(app)
        runners.append(runner)
        return url

    yield _start
    for runner in runners:
        await runner.cleanup()


@pytest.fixture
def unused_url() -> str:
    """A URL nothing is listening on."""
    return f"http://127.0.0.1:{_get_free_port()}"


# =============================================================================
# Sync fixtures for tests where the runner blocks the main thread
# =============================================================================


def _serve_in_thread(app_factory: Callable[[], web.Application]) -> Iterator[str]:
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(app_factory())
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def sync_users_server(users_store: UserStore, request_log: RequestLog) -> Iterator[str]:
    """Demo users API running in a background thread."""
    yield from _serve_in_thread(lambda: _create_users_app(users_store, request_log))


@pytest.fixture
def sync_echo_server() -> Iterator[str]:
    """Echo server running in a background thread."""
    yield from _serve_in_thread(_create_echo_app)


# =============================================================================
# Scenario files
# =============================================================================


@pytest.fixture
def sample_scenario_path(tmp_path: Path) -> Path:
    """Create a temporary scenario file for testing the loader."""
    scenario_code = """\
from __future__ import annotations

from loadprobe import check, scenario, task


@scenario(name="Sample Scenario", base_url="http://127.0.0.1:9999", vus=3, duration="2s")
class SampleScenario:

    @task(weight=1)
    async def get_echo(self, client, data):
        resp = await client.get("/echo/test", name="Echo Test")
        check(resp, {"status 200": lambda r: r.status == 200})
"""
    path = tmp_path / "sample_scenario.py"
    path.write_text(scenario_code)
    return path


@pytest.fixture
def echo_scenario_file(tmp_path: Path, sync_echo_server: str) -> Path:
    """Scenario file pointing at the sync echo server."""
    code = f'''\
from __future__ import annotations

from loadprobe import check, scenario, task


@scenario(name="Echo Scenario", base_url="{sync_echo_server}", think_time=(0.01, 0.02))
class EchoScenario:

    @task(weight=1)
    async def get_echo(self, client, data):
        resp = await client.get("/echo/test", name="Echo Test")
        check(resp, {{"status 200": lambda r: r.status == 200}})
'''
    path = tmp_path / "echo_scenario.py"
    path.write_text(code)
    return path
