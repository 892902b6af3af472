"""
Fail-Independent Fan-Out

Helpers for running independent units of work concurrently where one unit's
failure must not cancel its siblings (split parts, per-question answering).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one unit of work, tagged with its original position."""

    index: int
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(awaitables: Sequence[Awaitable[T]]) -> List[Settled[T]]:
    """
    Run every awaitable concurrently and classify each outcome.

    Results come back in input order regardless of completion order.
    Cancellation of the caller still propagates.
    """
    if not awaitables:
        return []

    raw = await asyncio.gather(*awaitables, return_exceptions=True)

    settled: List[Settled[T]] = []
    for index, item in enumerate(raw):
        if isinstance(item, asyncio.CancelledError):
            raise item
        if isinstance(item, BaseException):
            settled.append(Settled(index=index, error=item))
        else:
            settled.append(Settled(index=index, value=item))
    return settled
