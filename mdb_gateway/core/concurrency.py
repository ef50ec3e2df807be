"""
Bounded fan-out helper.
"""

import asyncio
from collections.abc import Awaitable, Iterable
from typing import TypeVar

T = TypeVar("T")


async def gather_bounded(awaitables: Iterable[Awaitable[T]], limit: int) -> list[T]:
    """
    Run awaitables concurrently, at most ``limit`` at a time.

    Results come back in input order. The first failure is raised as soon
    as it happens; branches still running are not cancelled and their
    outcomes are discarded.
    """
    semaphore = asyncio.Semaphore(limit)

    async def run(awaitable: Awaitable[T]) -> T:
        async with semaphore:
            return await awaitable

    return list(await asyncio.gather(*(run(awaitable) for awaitable in awaitables)))
