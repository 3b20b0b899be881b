"""
Bounded concurrency for the per-page transform step.

run_bounded() keeps a 1:1 correspondence between tasks and results (by
index) no matter in which order the tasks finish, runs at most
`max_in_flight` of them at once, and starts queued tasks in submission
order. A task that raises yields None in its slot; siblings keep running.
"""

import asyncio
from functools import partial
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    max_in_flight: int,
    tasks: Sequence[Callable[[], Awaitable[T]]]
) -> List[Optional[T]]:
    """
    Run task factories with at most `max_in_flight` executing concurrently.

    Args:
        max_in_flight: Concurrency ceiling (>= 1)
        tasks: Zero-argument callables returning awaitables

    Returns:
        Results in task order; None where a task raised
    """
    if max_in_flight < 1:
        raise ValueError(f"max_in_flight must be >= 1, got {max_in_flight}")
    if not tasks:
        return []

    semaphore = asyncio.Semaphore(max_in_flight)

    async def _run(index: int, task: Callable[[], Awaitable[T]]) -> Optional[T]:
        async with semaphore:
            try:
                return await task()
            except Exception as e:
                logger.error(f"Bounded task {index} failed: {type(e).__name__}: {e}")
                return None

    results = await asyncio.gather(*(_run(i, task) for i, task in enumerate(tasks)))
    return list(results)


class ConcurrencyGate:
    """
    Reusable concurrency ceiling.

    Synchronous functions passed to map() run in worker threads, so the
    ceiling bounds real parallel work rather than interleaved coroutines.
    """

    def __init__(self, max_in_flight: int):
        if max_in_flight < 1:
            raise ValueError(f"max_in_flight must be >= 1, got {max_in_flight}")
        self.max_in_flight = max_in_flight

    async def run(self, tasks: Sequence[Callable[[], Awaitable[T]]]) -> List[Optional[T]]:
        return await run_bounded(self.max_in_flight, tasks)

    async def map(self, func: Callable[[T], R], items: Iterable[T]) -> List[Optional[R]]:
        """Apply a synchronous function to every item, results in item order"""
        tasks = [partial(asyncio.to_thread, func, item) for item in items]
        return await self.run(tasks)
