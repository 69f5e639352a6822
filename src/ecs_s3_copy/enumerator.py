# src/ecs_s3_copy/enumerator.py
"""
Discovers the objects to copy, one page at a time.

Two strategies share the same interface: listing the keys under a prefix, or
running an ECS metadata search. Both are async generators that yield one
`Batch` per non-empty page and only request the next page once the consumer
resumes them, which the pipeline does after the page's copies have finished.
"""

import logging
from typing import TYPE_CHECKING, AsyncIterator, Union

import aiohttp
from botocore.exceptions import BotoCoreError, ClientError

from ecs_s3_copy.config import CopyJobConfig
from ecs_s3_copy.exceptions import EnumerationError, StoreError
from ecs_s3_copy.jobs import Batch, CopyObjectJob
from ecs_s3_copy.store import NO_MORE_PAGES, ListPage, QueryPage

if TYPE_CHECKING:
    from ecs_s3_copy.store import EcsStoreClient

logger: logging.Logger = logging.getLogger(__name__)

_PAGE_ERRORS = (ClientError, BotoCoreError, aiohttp.ClientError, StoreError)


class PrefixListingEnumerator:
    """Walks the source bucket with a plain, marker-based listing."""

    def __init__(self, store: "EcsStoreClient", job: CopyObjectJob) -> None:
        """
        Initializes the enumerator for a prefix listing.

        Args:
            store (EcsStoreClient): The store to list.
            job (CopyObjectJob): The job attached to every batch.
        """
        self._store: "EcsStoreClient" = store
        self._job: CopyObjectJob = job

    async def batches(self) -> AsyncIterator[Batch]:
        """
        Yields one batch per non-empty listing page.

        Yields:
            Batch: The keys of the page, in listing order.
        """
        config: CopyJobConfig = self._job.config
        marker: str = ""
        while True:
            logger.info(
                f"Start listing 's3://{config.source_bucket}/{config.source_prefix}'"
                + (f" after '{marker}'" if marker else "")
            )
            try:
                page: ListPage = await self._store.list_objects(
                    config.source_bucket, config.source_prefix, marker, config.page_size
                )
            except _PAGE_ERRORS as e:
                raise EnumerationError(
                    f"Listing bucket '{config.source_bucket}' failed: {e}"
                ) from e

            if page.keys:
                yield Batch(keys=page.keys, job=self._job)

            if not page.is_truncated:
                break

            # An empty truncated page can only be resumed from NextMarker
            next_marker: str = max(page.keys) if page.keys else (page.next_marker or "")
            if not next_marker or next_marker == marker:
                raise EnumerationError(
                    f"Listing bucket '{config.source_bucket}' returned a truncated "
                    f"page without a way to continue after marker '{marker}'."
                )
            marker = next_marker


class MetadataQueryEnumerator:
    """Walks the results of an ECS metadata search query."""

    def __init__(self, store: "EcsStoreClient", job: CopyObjectJob) -> None:
        """
        Initializes the enumerator for a metadata search.

        Args:
            store (EcsStoreClient): The store to query.
            job (CopyObjectJob): The job attached to every batch. Its
                configuration must carry a query.
        """
        if not job.config.query:
            raise ValueError("A metadata search query is required.")
        self._store: "EcsStoreClient" = store
        self._job: CopyObjectJob = job

    async def batches(self) -> AsyncIterator[Batch]:
        """
        Yields one batch per non-empty query page.

        Yields:
            Batch: The matching keys of the page.
        """
        config: CopyJobConfig = self._job.config
        query: str = config.query or ""
        marker: str = ""
        while True:
            logger.info(
                f"Start querying '{config.source_bucket}' with '{query}'"
                + (f" from marker '{marker}'" if marker else "")
            )
            try:
                page: QueryPage = await self._store.query_objects(
                    config.source_bucket, query, marker, config.page_size
                )
            except _PAGE_ERRORS as e:
                raise EnumerationError(
                    f"Metadata search on bucket '{config.source_bucket}' failed: {e}"
                ) from e

            if page.keys:
                yield Batch(keys=page.keys, job=self._job)

            if page.next_marker == NO_MORE_PAGES:
                break
            marker = page.next_marker


Enumerator = Union[PrefixListingEnumerator, MetadataQueryEnumerator]


def create_enumerator(
    store: "EcsStoreClient", job: CopyObjectJob
) -> Enumerator:
    """
    Selects the enumeration strategy of a job.

    Args:
        store (EcsStoreClient): The store to enumerate.
        job (CopyObjectJob): The job to enumerate for.

    Returns:
        Enumerator: Query mode if the job has a query, prefix listing otherwise.
    """
    if job.config.uses_query:
        return MetadataQueryEnumerator(store, job)
    return PrefixListingEnumerator(store, job)
