"""Decorators for defining load test scenarios."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, TypeVar

from loadprobe._internal.config import parse_duration
from loadprobe._internal.errors import ScenarioError
from loadprobe.dsl.scenario import ScenarioDefinition, TaskDefinition

if TYPE_CHECKING:
    from collections.abc import Callable

_F = TypeVar("_F", bound="Callable[..., object]")

# Marker attribute names set on decorated methods.
_TASK_MARKER = "_loadprobe_task"
_TASK_WEIGHT = "_loadprobe_task_weight"
_TASK_NAME = "_loadprobe_task_name"
_SETUP_MARKER = "_loadprobe_setup"
_TEARDOWN_MARKER = "_loadprobe_teardown"


def _require_coroutine(cls: type, attr_name: str, attr: object, kind: str) -> None:
    if not inspect.iscoroutinefunction(attr):
        msg = f"{kind} method {cls.__name__}.{attr_name} must be an async function"
        raise ScenarioError(msg)


def scenario(
    name: str,
    *,
    base_url: str | None = None,
    vus: int | None = None,
    duration: str | float | None = None,
    think_time: tuple[float, float] | None = None,
    default_headers: dict[str, str] | None = None,
) -> Callable[[type], ScenarioDefinition]:
    """Decorate a class as a loadprobe scenario.

    The decorator collects the class's ``@setup``, ``@task`` and
    ``@teardown`` methods into a ``ScenarioDefinition``. Any option left as
    ``None`` falls back to the run configuration (``BASE_URL``, 500 users,
    60 seconds, no think time).

    Args:
        name: Human-readable name for this scenario.
        base_url: Target base URL.
        vus: Number of concurrent virtual users.
        duration: Run duration, in seconds or as a string such as ``"60s"``.
        think_time: Random pause range (min, max) in seconds between
            iterations.
        default_headers: Headers applied to every request.

    Returns:
        A class decorator producing a ScenarioDefinition.

    Raises:
        ScenarioError: If the class has no ``@task`` methods, a hook is not
            a coroutine function, or ``@setup``/``@teardown`` is duplicated.
    """
    duration_seconds = parse_duration(duration) if duration is not None else None

    def decorator(cls: type) -> ScenarioDefinition:
        definition = ScenarioDefinition(
            name=name,
            cls=cls,
            base_url=base_url,
            vus=vus,
            duration_seconds=duration_seconds,
            think_time=tuple(think_time) if think_time is not None else None,  # type: ignore[arg-type]
            default_headers=dict(default_headers or {}),
        )

        for attr_name, attr in vars(cls).items():
            if attr_name.startswith("__") or not callable(attr):
                continue

            if getattr(attr, _TASK_MARKER, False):
                _require_coroutine(cls, attr_name, attr, "Task")
                definition.tasks.append(
                    TaskDefinition(
                        name=getattr(attr, _TASK_NAME, attr_name),
                        func=attr,
                        weight=getattr(attr, _TASK_WEIGHT, 1),
                    )
                )

            if getattr(attr, _SETUP_MARKER, False):
                _require_coroutine(cls, attr_name, attr, "Setup")
                if definition.setup_func is not None:
                    msg = f"Scenario {cls.__name__} has multiple @setup methods"
                    raise ScenarioError(msg)
                definition.setup_func = attr

            if getattr(attr, _TEARDOWN_MARKER, False):
                _require_coroutine(cls, attr_name, attr, "Teardown")
                if definition.teardown_func is not None:
                    msg = f"Scenario {cls.__name__} has multiple @teardown methods"
                    raise ScenarioError(msg)
                definition.teardown_func = attr

        if not definition.tasks:
            msg = f"Scenario {cls.__name__} has no @task methods. At least one @task is required."
            raise ScenarioError(msg)

        return definition

    return decorator


def task(*, weight: int = 1, name: str | None = None) -> Callable[[_F], _F]:
    """Mark a method as an iteration task.

    The method is called as ``await fn(self, client, data)`` where ``data``
    is the read-only setup result. With several tasks, each iteration picks
    one at random proportionally to ``weight``.

    Args:
        weight: Relative selection weight. Must be >= 1.
        name: Optional display name. Defaults to the method name.

    Raises:
        ScenarioError: If weight is less than 1.
    """
    if weight < 1:
        msg = f"Task weight must be >= 1, got {weight}"
        raise ScenarioError(msg)

    def decorator(func: _F) -> _F:
        setattr(func, _TASK_MARKER, True)
        setattr(func, _TASK_WEIGHT, weight)
        setattr(func, _TASK_NAME, name or func.__name__)  # type: ignore[attr-defined]
        return func

    return decorator


def setup(func: _F) -> _F:
    """Mark a method as the one-time setup hook.

    Runs once before any virtual user starts, as ``await fn(self, client)``.
    The returned mapping is frozen and shared with every virtual user.
    """
    setattr(func, _SETUP_MARKER, True)
    return func


def teardown(func: _F) -> _F:
    """Mark a method as the one-time teardown hook.

    Runs once after every virtual user has stopped, as
    ``await fn(self, client, data)``.
    """
    setattr(func, _TEARDOWN_MARKER, True)
    return func
