"""
dualbuild.orchestration.registry - Task Registry and Build Graph
==================================================================

A registry is an object whose async methods marked with ``@task`` are the
named build steps. Tasks read the registry's configuration and call sibling
tasks through ``self``.

Per-Call Overrides:
    Calling a task with keyword arguments runs it on a *view* of the
    registry: a shallow copy whose configuration is
    ``resolve_config(config, overrides)``. Sibling calls made by that task go
    through the view, so they observe the same overrides. The base registry
    and its (frozen) configuration are never touched, which makes concurrent
    calls with different overrides safe:

        tasks.transpile(dest_dir="/tmp/a")  ──→ view A (dest_dir=/tmp/a)
        tasks.transpile(dest_dir="/tmp/b")  ──→ view B (dest_dir=/tmp/b)
        tasks.config.dest_dir               ──→ "dist" (unchanged)

Execution Rules:
    - No memoization: every call re-executes the task body.
    - ``BuildFailure`` and ``ConfigurationError`` propagate unchanged; any
      other exception escaping a task is wrapped in ``BuildFailure``.
    - No retries.

Composition:
    run_sequentially(a, b, c)  each awaited in turn; first failure stops it
    run_concurrently(a, b, c)  all started together; failures surface only
                               after every branch has settled
"""

from __future__ import annotations

import asyncio
import copy
import functools
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from dualbuild.core.config import resolve_config
from dualbuild.core.exceptions import BuildFailure, ConfigurationError, DualBuildError


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

TASK_MARKER = "__dualbuild_task__"

R = TypeVar("R", bound="TaskRegistry")
F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


# =============================================================================
# Task Decorator
# =============================================================================
def task(func: F) -> F:
    """Mark an async registry method as a named task.

    The decorated method accepts keyword overrides; see the module docstring
    for their semantics.

    Example:
        >>> class MyTasks(TaskRegistry):
        ...     @task
        ...     async def hello(self) -> None:
        ...         print(self.config.dest_dir)
        >>> await MyTasks(BuildConfig()).hello(dest_dir="out")
    """
    name = func.__name__

    @functools.wraps(func)
    async def wrapper(self: "TaskRegistry", **overrides: Any) -> Any:
        target = self.derive(**overrides) if overrides else self
        return await target._invoke(name, func)

    setattr(wrapper, TASK_MARKER, True)
    return wrapper  # type: ignore[return-value]


# =============================================================================
# Registry Base Class
# =============================================================================
class TaskRegistry:
    """Base class for task registries.

    Attributes:
        _config: The (frozen) configuration every task reads.
        _logger: Structured logger bound to the registry component.
    """

    component = "task_registry"

    def __init__(self, config: Any) -> None:
        self._config = config
        self._logger = logger.bind(component=self.component)

    @property
    def config(self) -> Any:
        return self._config

    # =========================================================================
    # Task Lookup
    # =========================================================================

    @classmethod
    def task_names(cls) -> list[str]:
        """Names of every task, base class tasks first."""
        names: dict[str, None] = {}
        for klass in reversed(cls.__mro__):
            for attribute, value in vars(klass).items():
                if getattr(value, TASK_MARKER, False):
                    names.setdefault(attribute, None)
        return list(names)

    async def run(self, name: str, **overrides: Any) -> Any:
        """Invoke a task by name.

        Raises:
            ConfigurationError: If no task has that name.
        """
        if name not in self.task_names():
            raise ConfigurationError(
                message=f"Unknown task: '{name}'",
                error_code="UNKNOWN_TASK",
                details={"task": name, "available": self.task_names()},
            )
        return await getattr(self, name)(**overrides)

    def banner(self, title: str) -> None:
        """Announce a build phase, unless banners are disabled."""
        if getattr(self._config, "banners_enabled", True):
            self._logger.info("banner", title=title)

    # =========================================================================
    # Views
    # =========================================================================

    def derive(self: R, **overrides: Any) -> R:
        """Return a view of this registry with overridden configuration.

        Subclass overrides of tasks are kept: the view has the same type.

        Raises:
            ConfigurationError: If an override does not validate.
        """
        view = copy.copy(self)
        view._config = resolve_config(self._config, overrides)
        view._logger = self._logger.bind(overrides=sorted(overrides))
        return view

    # =========================================================================
    # Invocation
    # =========================================================================

    async def _invoke(self, name: str, func: Callable[..., Awaitable[Any]]) -> Any:
        self._logger.debug("task_starting", task=name)
        try:
            result = await func(self)
        except DualBuildError as e:
            self._logger.debug("task_failed", task=name, error_code=e.error_code)
            raise
        except Exception as e:
            self._logger.debug("task_failed", task=name, error=str(e))
            raise BuildFailure(
                message=f"Task '{name}' failed: {e}",
                error_code="TASK_ERROR",
                details={"task": name, "error_type": type(e).__name__},
            ) from e

        self._logger.debug("task_completed", task=name)
        return result


# =============================================================================
# Composition Helpers
# =============================================================================
async def run_concurrently(*steps: Awaitable[Any]) -> list[Any]:
    """Run steps concurrently and wait until every one has settled.

    Returns:
        Results in argument order.

    Raises:
        BaseException: The single failure, or a ``BuildFailure`` aggregating
            several, once all steps have settled.
    """
    results = await asyncio.gather(*steps, return_exceptions=True)
    errors = [result for result in results if isinstance(result, BaseException)]
    if errors:
        raise BuildFailure.aggregate(errors)
    return list(results)


async def run_sequentially(*steps: Callable[[], Awaitable[Any]]) -> list[Any]:
    """Await each step in turn; a failure stops the remaining steps.

    Steps are passed as factories so that nothing starts before its turn.
    """
    results: list[Any] = []
    for step in steps:
        results.append(await step())
    return results
