"""loadprobe: seeded HTTP load tests as Python code."""

from __future__ import annotations

from loadprobe.dsl.checks import check
from loadprobe.dsl.decorators import scenario, setup, task, teardown
from loadprobe.dsl.http_client import FailedResponse, HttpClient, RequestMetric
from loadprobe.engine.runner import LoadTestRunner
from loadprobe.engine.session import TestSession
from loadprobe.patterns.base import LoadPattern
from loadprobe.patterns.constant import ConstantPattern
from loadprobe.patterns.stages import StagesPattern

__version__ = "0.1.0"

__all__ = [
    "ConstantPattern",
    "FailedResponse",
    "HttpClient",
    "LoadPattern",
    "LoadTestRunner",
    "RequestMetric",
    "StagesPattern",
    "TestSession",
    "check",
    "scenario",
    "setup",
    "task",
    "teardown",
]
