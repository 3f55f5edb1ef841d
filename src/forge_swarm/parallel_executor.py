"""
Settle-all fan-out of independent generator calls.

Every task runs to completion regardless of sibling failures. Each task yields
a ``TaskOutcome`` holding either a value or the exception it raised, in input
order. No wall-clock timeout is applied here: callers rely on the generator's
own timeout contract.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class TaskOutcome(Generic[R]):
    """Result-or-error of one fanned-out task."""
    index: int
    value: R | None = None
    error: BaseException | None = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


class ParallelExecutor:
    """
    Runs one coroutine per input item, concurrently or one at a time.

    Attributes:
        max_concurrent: Optional cap on simultaneously running tasks
    """

    def __init__(self, max_concurrent: int | None = None):
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError("max_concurrent must be a positive integer or None")
        self.max_concurrent = max_concurrent

    async def run_all(
        self,
        items: Sequence[T],
        fn: Callable[[T], Awaitable[R]],
    ) -> list[TaskOutcome[R]]:
        """Run ``fn`` over every item concurrently and settle all of them."""
        if not items:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent) if self.max_concurrent else None

        async def _run(index: int, item: T) -> TaskOutcome[R]:
            if semaphore is None:
                return await self._execute(index, item, fn)
            async with semaphore:
                return await self._execute(index, item, fn)

        results = await asyncio.gather(
            *(_run(i, item) for i, item in enumerate(items)),
            return_exceptions=True,
        )

        outcomes: list[TaskOutcome[R]] = []
        for i, result in enumerate(results):
            if isinstance(result, TaskOutcome):
                outcomes.append(result)
            else:
                # cancellation and other BaseExceptions escape _execute
                outcomes.append(TaskOutcome(index=i, error=result))
        return outcomes

    async def run_sequential(
        self,
        items: Sequence[T],
        fn: Callable[[T], Awaitable[R]],
    ) -> list[TaskOutcome[R]]:
        """Run ``fn`` over every item one at a time, in order."""
        return [await self._execute(i, item, fn) for i, item in enumerate(items)]

    @staticmethod
    async def _execute(
        index: int,
        item: T,
        fn: Callable[[T], Awaitable[R]],
    ) -> TaskOutcome[R]:
        start = time.perf_counter()
        try:
            value = await fn(item)
        except Exception as e:
            return TaskOutcome(index=index, error=e, duration=time.perf_counter() - start)
        return TaskOutcome(index=index, value=value, duration=time.perf_counter() - start)


__all__ = ["TaskOutcome", "ParallelExecutor"]
