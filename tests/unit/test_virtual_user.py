"""Tests for VirtualUser and weighted task selection."""

from __future__ import annotations

import asyncio
import random
from collections import Counter
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import pytest

from loadprobe._internal.config import RunConfig
from loadprobe.dsl.checks import check
from loadprobe.dsl.scenario import ScenarioDefinition, TaskDefinition
from loadprobe.engine.virtual_user import VirtualUser, pick_weighted_task
from loadprobe.metrics.checks import CheckCollector
from loadprobe.metrics.collector import MetricCollector

if TYPE_CHECKING:
    from collections.abc import Mapping

    from loadprobe.dsl.http_client import HttpClient


async def _noop(self: object, client: HttpClient, data: Mapping[str, Any]) -> None:
    pass


def _scenario(*tasks: TaskDefinition) -> ScenarioDefinition:
    class _Scenario:
        pass

    return ScenarioDefinition(name="VU Test", cls=_Scenario, tasks=list(tasks))


def _user(
    scenario: ScenarioDefinition,
    base_url: str,
    data: Mapping[str, Any] | None = None,
    think_time: tuple[float, float] = (0.0, 0.0),
) -> tuple[VirtualUser, MetricCollector, CheckCollector]:
    metrics = MetricCollector()
    checks = CheckCollector()
    config = RunConfig(base_url=base_url, vus=1, duration_seconds=1.0, think_time=think_time)
    user = VirtualUser(
        1,
        scenario,
        MappingProxyType(dict(data or {})),
        config,
        metrics=metrics,
        checks=checks,
    )
    return user, metrics, checks


class TestPickWeightedTask:
    def test_single_task(self):
        only = TaskDefinition(name="only", func=_noop)
        assert pick_weighted_task([only]) is only

    def test_respects_weights(self):
        random.seed(42)
        heavy = TaskDefinition(name="heavy", func=_noop, weight=9)
        light = TaskDefinition(name="light", func=_noop, weight=1)

        counts = Counter(pick_weighted_task([heavy, light]).name for _ in range(2000))

        assert counts["heavy"] > counts["light"] * 5


@pytest.mark.timeout(10)
class TestVirtualUser:
    async def test_runs_until_stopped(self, echo_server: str):
        async def _get(self: object, client: HttpClient, data: Mapping[str, Any]) -> None:
            resp = await client.get("/echo/vu", name="Echo")
            check(resp, {"status 200": lambda r: r.status == 200})

        user, metrics, checks = _user(_scenario(TaskDefinition("get", _get)), echo_server)
        runner = asyncio.create_task(user.run())
        await asyncio.sleep(0.3)
        user.request_stop()
        await asyncio.wait_for(runner, timeout=5.0)

        assert user.stopping
        assert user.iterations >= 1
        assert user.completed == user.iterations
        assert user.interrupted == 0
        assert metrics.drain()
        stats = checks.flush()["status 200"]
        assert stats.fails == 0
        assert stats.passes == user.completed

    async def test_receives_setup_data(self, echo_server: str):
        seen: list[Mapping[str, Any]] = []

        async def _capture(self: object, client: HttpClient, data: Mapping[str, Any]) -> None:
            seen.append(data)
            await asyncio.sleep(0.01)

        user, _, _ = _user(
            _scenario(TaskDefinition("capture", _capture)),
            echo_server,
            data={"baseUrl": echo_server},
        )
        runner = asyncio.create_task(user.run())
        await asyncio.sleep(0.1)
        user.request_stop()
        await runner

        assert seen
        assert all(d["baseUrl"] == echo_server for d in seen)

    async def test_task_exception_interrupts_iteration_only(self, echo_server: str):
        async def _boom(self: object, client: HttpClient, data: Mapping[str, Any]) -> None:
            await asyncio.sleep(0.01)
            raise ValueError("boom")

        user, _, _ = _user(_scenario(TaskDefinition("boom", _boom)), echo_server)
        runner = asyncio.create_task(user.run())
        await asyncio.sleep(0.1)
        user.request_stop()
        await runner

        assert user.iterations >= 2
        assert user.completed == 0
        assert user.interrupted == user.iterations

    async def test_failed_request_fails_check(self, unused_url: str):
        outcomes: list[bool] = []

        async def _get(self: object, client: HttpClient, data: Mapping[str, Any]) -> None:
            resp = await client.get("/api/users")
            outcomes.append(check(resp, {"status 200": lambda r: r.status == 200}))

        user, metrics, _ = _user(_scenario(TaskDefinition("get", _get)), unused_url)
        runner = asyncio.create_task(user.run())
        await asyncio.sleep(0.2)
        user.request_stop()
        await runner

        assert outcomes
        assert not any(outcomes)
        assert user.interrupted == 0
        assert all(m.error is not None for m in metrics.drain())

    async def test_stop_interrupts_think_time(self, echo_server: str):
        user, _, _ = _user(
            _scenario(TaskDefinition("noop", _noop)),
            echo_server,
            think_time=(30.0, 30.0),
        )
        runner = asyncio.create_task(user.run())
        await asyncio.sleep(0.1)
        user.request_stop()
        await asyncio.wait_for(runner, timeout=2.0)

        assert user.iterations == 1

    async def test_cancel_counts_interrupted(self, echo_server: str):
        async def _slow(self: object, client: HttpClient, data: Mapping[str, Any]) -> None:
            await asyncio.sleep(10)

        user, _, _ = _user(_scenario(TaskDefinition("slow", _slow)), echo_server)
        runner = asyncio.create_task(user.run())
        await asyncio.sleep(0.1)
        runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)

        assert user.iterations == 1
        assert user.interrupted == 1
        assert user.completed == 0
