# src/xml_transform/pipeline/write_head.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Step = Callable[[], Awaitable[None]]


class WriteHead:
    """
    A chain of async steps that run one at a time, in append order.

    - append() is synchronous: order is fixed when a step is queued, not
      when the previous step finishes
    - Each step starts only after the previous one completed
    - A failed step fails every later step without running it

    Must be used from a running event loop.
    """

    def __init__(self) -> None:
        self._tail: asyncio.Task[None] | None = None
        self._appended = 0

    @property
    def tail(self) -> asyncio.Task[None] | None:
        return self._tail

    def append(self, step: Step, *, name: str | None = None) -> asyncio.Task[None]:
        """Queue ``step`` after the current tail and return its task."""
        previous = self._tail
        self._appended += 1
        task = asyncio.create_task(
            self._run(previous, step),
            name=name or f"write-head-{self._appended}",
        )
        self._tail = task
        logger.debug("Queued write step %s", task.get_name())
        return task

    async def _run(self, previous: asyncio.Task[None] | None, step: Step) -> None:
        if previous is not None:
            # Re-raises the failure of any earlier step
            await previous
        await step()

    async def settle(self) -> BaseException | None:
        """Wait for every queued step to finish.

        Returns the chain's failure instead of raising it; by the time a
        caller settles, failures have already been reported through the
        tasks handed out by append().
        """
        if self._tail is None:
            return None
        try:
            await self._tail
        except Exception as exc:
            logger.debug("Write head settled with failure: %r", exc)
            return exc
        return None
