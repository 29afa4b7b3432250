"""Bounded-concurrency batch execution with per-unit outcomes.

Units run in chunks of at most ``limit``; a chunk must fully settle before the
next one starts, which caps in-flight file descriptors on large workspaces.
A failing unit is reported as ``Failed`` and never aborts its siblings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")

# Directory probing is slower than reading a file, so fewer run at once.
DIRECTORY_SCAN_LIMIT = 10
FILE_READ_LIMIT = 20


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failed:
    error: Exception


Outcome = Union[Ok[T], Failed]


async def _settle(unit: Callable[[], Awaitable[T]]) -> T:
    return await unit()


async def run_bounded(
    units: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
) -> list[Outcome[T]]:
    """Run zero-argument async callables ``limit`` at a time.

    Returns one outcome per unit, in input order.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    outcomes: list[Outcome[T]] = []
    for start in range(0, len(units), limit):
        chunk = units[start : start + limit]
        results = await asyncio.gather(*(_settle(unit) for unit in chunk), return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                outcomes.append(Failed(result))
            elif isinstance(result, BaseException):
                # Cancellation and interpreter exits are not unit failures.
                raise result
            else:
                outcomes.append(Ok(result))
    return outcomes
