# src/ecs_s3_copy/pipeline.py
"""Core orchestration logic for the ecs-s3-copy pipeline."""

import logging
from typing import Optional

from rich.progress import (
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from ecs_s3_copy.config import Config, CopyJobConfig
from ecs_s3_copy.dispatcher import Dispatcher
from ecs_s3_copy.enumerator import Enumerator, create_enumerator
from ecs_s3_copy.exceptions import EnumerationError
from ecs_s3_copy.jobs import CopyObjectJob
from ecs_s3_copy.store import EcsStoreClient
from ecs_s3_copy.summary import RunSummary

logger: logging.Logger = logging.getLogger(__name__)

# Connections kept on top of one page of concurrent copies, for listing calls.
_SPARE_CONNECTIONS: int = 10


class CopyBucketPipeline:
    """Orchestrates a bucket copy from start to finish."""

    def __init__(
        self, config: Config, store: Optional[EcsStoreClient] = None
    ) -> None:
        """
        Initializes the pipeline with the given configuration.

        Args:
            config (Config): The application configuration.
            store (EcsStoreClient, optional): An already opened store client.
                When omitted, a client is opened from `config.store` for the
                duration of `run`.
        """
        self._config: Config = config
        self._store: Optional[EcsStoreClient] = store

    async def run(self) -> RunSummary:
        """
        Copies every object in scope and reports the run summary.

        Pages are processed strictly one after the other: the next page is
        only requested once every copy of the current page has finished.

        Returns:
            RunSummary: The counters and timings of the run.

        Raises:
            EnumerationError: If a listing or query page could not be fetched.
                The summary is still logged before the error propagates.
        """
        job_config: CopyJobConfig = self._config.job
        logger.info(
            f"Starting copy from '{job_config.source_bucket}' "
            f"to '{job_config.target_bucket}'."
        )
        summary: RunSummary = RunSummary()

        if self._store is not None:
            await self._copy_all(self._store, summary)
        else:
            async with EcsStoreClient(
                self._config.store,
                max_connections=job_config.page_size + _SPARE_CONNECTIONS,
            ) as store:
                await self._copy_all(store, summary)

        return summary

    async def _copy_all(self, store: EcsStoreClient, summary: RunSummary) -> None:
        """
        Runs the enumerate, dispatch and wait loop until enumeration ends.

        Args:
            store (EcsStoreClient): The opened store client.
            summary (RunSummary): The summary to fill and log.
        """
        job: CopyObjectJob = CopyObjectJob(self._config.job)
        enumerator: Enumerator = create_enumerator(store, job)
        dispatcher: Dispatcher = Dispatcher(store, summary.counters, summary)

        progress: Progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TextColumn("[bold green]{task.fields[succeeded]} copied"),
            TextColumn("[bold red]{task.fields[failed]} failed"),
            TimeElapsedColumn(),
            transient=True,
        )

        summary.start()
        try:
            with progress:
                task_id: TaskID = progress.add_task(
                    "Copying...", total=None, succeeded=0, failed=0
                )
                async for batch in enumerator.batches():
                    dispatcher.dispatch(batch)
                    await dispatcher.wait()
                    progress.update(
                        task_id,
                        advance=len(batch),
                        succeeded=summary.counters.succeeded,
                        failed=summary.counters.failed,
                    )
        except EnumerationError as e:
            logger.error(f"Aborting the run: {e}")
            raise
        finally:
            summary.stop()
            summary.log()
