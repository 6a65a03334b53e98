"""
dualbuild.orchestration.outcome - Captured Results
====================================================

``Outcome`` holds either the value or the error of an awaited step. It lets
a caller run a fallible step, always run a follow-up step, and only then
decide whether to propagate the first step's failure:

    outcome = await Outcome.capture(self.test())
    report = await reporter()          # runs on success AND failure
    outcome.unwrap()                   # re-raises the test failure, if any

Cancellation is never captured: ``asyncio.CancelledError`` propagates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """The settled result of one awaited step."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    async def capture(cls, awaitable: Awaitable[T]) -> "Outcome[T]":
        try:
            return cls(value=await awaitable)
        except Exception as e:
            return cls(error=e)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Optional[T]:
        """Return the value, or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value
