# src/xml_transform/pipeline/pool.py

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import Any

logger = logging.getLogger(__name__)


async def drain(completions: Iterable[Awaitable[Any]], concurrency: int = 8) -> int:
    """Await every item of ``completions`` with at most ``concurrency`` in flight.

    Items are pulled lazily, so pulling is what starts new work when the
    iterable schedules on demand (like PipelineRun).

    On the first failure no further items are pulled. Items already in
    flight are allowed to finish, then the first failure is raised.

    Returns:
        Number of items that completed successfully.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")

    iterator = iter(completions)
    pending: set[asyncio.Future[Any]] = set()
    failure: BaseException | None = None
    exhausted = False
    completed = 0

    while True:
        while not exhausted and failure is None and len(pending) < concurrency:
            try:
                item = next(iterator)
            except StopIteration:
                exhausted = True
                break
            pending.add(asyncio.ensure_future(item))

        if not pending:
            break

        done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        for future in done:
            exc = future.exception()
            if exc is None:
                completed += 1
            elif failure is None:
                logger.debug("Stopping drain after failure: %r", exc)
                failure = exc

    if failure is not None:
        raise failure
    return completed
