"""Named boolean assertions evaluated against responses.

``check`` finds the running virtual user through a context variable. The
session sets it for each iteration, and asyncio copies the context into the
task, so every virtual user sees its own ``IterationContext``.
"""

from __future__ import annotations

import contextvars
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loadprobe._internal.logging import get_logger
from loadprobe.metrics.models import CheckOutcome

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from loadprobe.metrics.checks import CheckCollector

logger = get_logger("dsl.checks")


@dataclass(frozen=True)
class IterationContext:
    """Identity of the iteration currently running in a virtual user."""

    vu_id: int
    iteration: int
    collector: CheckCollector


_current: contextvars.ContextVar[IterationContext | None] = contextvars.ContextVar(
    "loadprobe_iteration", default=None
)


@contextmanager
def iteration_context(
    vu_id: int,
    iteration: int,
    collector: CheckCollector,
) -> Iterator[IterationContext]:
    """Bind an iteration identity for ``check`` calls made inside the block."""
    ctx = IterationContext(vu_id=vu_id, iteration=iteration, collector=collector)
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def current_iteration() -> IterationContext | None:
    """Return the active iteration context, or None outside a virtual user."""
    return _current.get()


def check(response: Any, checks: Mapping[str, Callable[[Any], Any]]) -> bool:
    """Evaluate named predicates against a response.

    Each predicate is called with ``response``. A truthy return value is a
    pass. A predicate that raises is recorded as a failure and does not stop
    the remaining predicates or the iteration.

    Inside a virtual user iteration every result is recorded as a
    ``CheckOutcome``; elsewhere (e.g. during setup) the predicates are only
    evaluated.

    Example::

        resp = await client.get("/api/users")
        check(resp, {"status 200": lambda r: r.status == 200})

    Args:
        response: Object handed to every predicate.
        checks: Mapping of check name to predicate.

    Returns:
        True if every predicate passed.
    """
    ctx = _current.get()
    all_passed = True

    for name, predicate in checks.items():
        error: str | None = None
        try:
            passed = bool(predicate(response))
        except Exception as exc:
            passed = False
            error = f"{type(exc).__name__}: {exc}"
            logger.debug("Check %r raised %s", name, error)

        all_passed = all_passed and passed

        if ctx is not None:
            ctx.collector.record(
                CheckOutcome(
                    name=name,
                    passed=passed,
                    vu_id=ctx.vu_id,
                    iteration=ctx.iteration,
                    timestamp=time.monotonic(),
                    error=error,
                )
            )

    return all_passed
