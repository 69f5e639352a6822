# src/ecs_s3_copy/barrier.py
"""
Completion barrier between enumeration pages.

The barrier counts the copy tasks of the current batch that have not reached
a terminal state yet. The pipeline waits on it before requesting the next
page, so at most one page of objects is ever in flight.
"""

import asyncio
import logging

logger: logging.Logger = logging.getLogger(__name__)


class CompletionBarrier:
    """
    An asyncio counterpart of a wait group.

    `add` is called once per dispatched task, `done` once per terminal task,
    and `wait` returns when the two balance out.
    """

    def __init__(self) -> None:
        """Initialize an empty barrier."""
        self._outstanding: int = 0
        self._idle: asyncio.Event = asyncio.Event()
        self._idle.set()

    @property
    def outstanding(self) -> int:
        """
        Get the number of tasks that have not finished yet.

        Returns:
            int: The current counter value.
        """
        return self._outstanding

    def add(self, count: int = 1) -> None:
        """
        Registers new outstanding tasks.

        Args:
            count (int): The number of tasks to register.
        """
        if count < 0:
            raise ValueError(f"Cannot add a negative task count: {count}")
        if count == 0:
            return
        self._outstanding += count
        self._idle.clear()

    def done(self) -> None:
        """
        Marks one outstanding task as finished.
        """
        if self._outstanding <= 0:
            raise ValueError("CompletionBarrier.done() called more times than add().")
        self._outstanding -= 1
        if self._outstanding == 0:
            self._idle.set()

    async def wait(self) -> None:
        """Blocks until every registered task has called `done`."""
        if self._outstanding:
            logger.debug(f"Waiting for {self._outstanding} outstanding tasks.")
        await self._idle.wait()
