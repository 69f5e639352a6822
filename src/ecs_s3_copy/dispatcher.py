# src/ecs_s3_copy/dispatcher.py
"""
Fans a batch of keys out to concurrent copy tasks.

The dispatcher starts one asyncio task per key and tracks them with a
`CompletionBarrier`. It never looks at copy outcomes; it only guarantees that
every task it starts releases the barrier exactly once.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional, Set

from ecs_s3_copy.barrier import CompletionBarrier
from ecs_s3_copy.jobs import Batch, CopyObjectJob, Job, ObjectKey
from ecs_s3_copy.summary import RunCounters, RunSummary
from ecs_s3_copy.worker import copy_object_with_retry

if TYPE_CHECKING:
    from ecs_s3_copy.store import EcsStoreClient

logger: logging.Logger = logging.getLogger(__name__)


class Dispatcher:
    """Turns batches into copy tasks and exposes the per-batch barrier."""

    def __init__(
        self,
        store: "EcsStoreClient",
        counters: RunCounters,
        summary: Optional[RunSummary] = None,
    ) -> None:
        """
        Initializes the dispatcher.

        Args:
            store (EcsStoreClient): The shared store client handed to every task.
            counters (RunCounters): The counters the tasks report into.
            summary (RunSummary, optional): Receives per-task latencies.
        """
        self._store: "EcsStoreClient" = store
        self._counters: RunCounters = counters
        self._summary: Optional[RunSummary] = summary
        self._barrier: CompletionBarrier = CompletionBarrier()
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def barrier(self) -> CompletionBarrier:
        return self._barrier

    def dispatch(self, batch: Batch) -> None:
        """
        Starts one task per key of the batch.

        The barrier is incremented before each task is created, so a caller
        awaiting `wait` right after this method returns always observes the
        whole batch.

        Args:
            batch (Batch): The keys of one page and the job to run on them.
        """
        logger.debug(f"Dispatching {len(batch)} keys.")
        for key in batch.keys:
            self._barrier.add(1)
            task: asyncio.Task[None] = asyncio.create_task(
                self._run_job(key, batch.job), name=f"copy:{key}"
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def wait(self) -> None:
        """Blocks until every dispatched task reached a terminal state."""
        await self._barrier.wait()

    async def _run_job(self, key: ObjectKey, job: Job) -> None:
        try:
            if isinstance(job, CopyObjectJob):
                await copy_object_with_retry(
                    key, job, self._store, self._counters, self._summary
                )
            else:
                logger.error(f"Unsupported job type {type(job).__name__} for '{key}'")
        finally:
            self._barrier.done()
