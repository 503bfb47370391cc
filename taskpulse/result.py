"""
Tool: Check Results
Purpose: Explicit success/failure values for soft-fail paths

Trigger evaluations, smart-messaging checks and delivery handlers report
through Ok/Err instead of letting exceptions escape. Callers log the Err
branch and carry on.

Usage:
    from taskpulse.result import Ok, Err, capture_async

    result = await capture_async(check, snapshot, manager)
    if result.ok:
        created = result.value
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: str
    exception: BaseException | None = None

    @property
    def ok(self) -> bool:
        return False

    def unwrap_or(self, default: T) -> T:
        return default

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Err":
        return cls(error=f"{type(exc).__name__}: {exc}", exception=exc)


Result = Union[Ok[T], Err]


def capture(fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Result[T]":
    """Call fn and wrap its return value or exception."""
    try:
        return Ok(fn(*args, **kwargs))
    except Exception as e:
        return Err.from_exception(e)


async def capture_async(fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> "Result[T]":
    """Await fn and wrap its return value or exception."""
    try:
        return Ok(await fn(*args, **kwargs))
    except Exception as e:
        return Err.from_exception(e)
