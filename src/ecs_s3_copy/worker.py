# src/ecs_s3_copy/worker.py
"""
Defines the copy task run for every discovered object.

A copy task performs a server-side copy of a single key with a fixed retry
budget and reports its terminal outcome into the shared run counters. It
never raises: a failed copy is logged and counted, and the run continues.
"""

import logging
import time
from typing import TYPE_CHECKING, Optional

import aiohttp
from botocore.exceptions import BotoCoreError, ClientError

from ecs_s3_copy.config import CopyJobConfig
from ecs_s3_copy.exceptions import StoreError
from ecs_s3_copy.jobs import CopyObjectJob, ObjectKey
from ecs_s3_copy.summary import RunCounters, RunSummary

if TYPE_CHECKING:
    from ecs_s3_copy.store import EcsStoreClient

logger: logging.Logger = logging.getLogger(__name__)


async def copy_object_with_retry(
    key: ObjectKey,
    job: CopyObjectJob,
    store: "EcsStoreClient",
    counters: RunCounters,
    summary: Optional[RunSummary] = None,
) -> bool:
    """
    Copies one object from the source to the target bucket.

    The object is counted as attempted once, whatever the number of remote
    calls. Failed calls are retried immediately until `max_attempts` calls
    have been made.

    Args:
        key (ObjectKey): The source object key.
        job (CopyObjectJob): The copy job, with buckets, prefixes and budget.
        store (EcsStoreClient): The shared store client.
        counters (RunCounters): The run counters to report into.
        summary (RunSummary, optional): Receives the task latency when given.

    Returns:
        bool: True if the object was copied, False if the budget ran out.
    """
    config: CopyJobConfig = job.config
    target_key: ObjectKey = job.target_key(key)
    counters.record_attempt()
    start_time: float = time.monotonic()
    copied: bool = False

    for attempt in range(1, config.max_attempts + 1):
        try:
            await store.copy_object(
                config.source_bucket,
                key,
                config.target_bucket,
                target_key,
                job.acl,
                job.metadata_directive,
            )
        except (ClientError, BotoCoreError, aiohttp.ClientError, StoreError) as e:
            logger.warning(
                f"Copy of '{key}' failed (attempt {attempt}/{config.max_attempts}): "
                f"{type(e).__name__} - {e}"
            )
            continue
        except Exception:
            logger.exception(
                f"An unexpected error occurred copying '{key}' "
                f"(attempt {attempt}/{config.max_attempts})"
            )
            continue

        copied = True
        break

    if copied:
        counters.record_success()
        message: str = (
            f"Object {key} has been copied from {config.source_bucket} "
            f"to {config.target_bucket}"
        )
        if config.verbose:
            logger.info(message)
        else:
            logger.debug(message)
    else:
        counters.record_failure()
        logger.error(
            f"Object {key} hasn't been copied from {config.source_bucket} "
            f"to {config.target_bucket}"
        )

    if summary is not None:
        summary.record_latency(time.monotonic() - start_time)
    return copied
