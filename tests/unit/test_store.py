"""Tests for MetricStore."""

from __future__ import annotations

import time

from loadprobe.metrics.models import MetricSnapshot
from loadprobe.metrics.store import MetricStore


def _make_snapshot(elapsed: float, rps: float = 0.0) -> MetricSnapshot:
    return MetricSnapshot(
        timestamp=time.monotonic(),
        elapsed_seconds=elapsed,
        active_users=10,
        requests_per_second=rps,
    )


class TestMetricStore:
    def test_empty_store(self):
        store = MetricStore()
        assert len(store) == 0
        assert store.get_all() == []
        assert store.get_latest() is None

    def test_append_keeps_order(self):
        store = MetricStore()
        s1 = _make_snapshot(1.0)
        s2 = _make_snapshot(2.0)
        store.append(s1)
        store.append(s2)

        assert store.get_all() == [s1, s2]
        assert store.get_latest() is s2
        assert len(store) == 2

    def test_get_all_returns_copy(self):
        store = MetricStore()
        store.append(_make_snapshot(1.0))
        store.get_all().clear()
        assert len(store) == 1
