# src/ecs_s3_copy/store.py
"""
Thin async client for the ECS S3 operations used by the copy pipeline.

Listing and server-side copy go through aiobotocore. ECS metadata search is
an extension of the S3 API that botocore does not model, so query requests
are signed with botocore's SigV4 signer and sent with aiohttp.
"""

import logging
import xml.etree.ElementTree as ET
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Tuple
from urllib.parse import quote, urlencode

import aiohttp
from aiobotocore.session import AioSession, get_session
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.config import Config as BotoConfig
from botocore.credentials import Credentials
from yarl import URL

from ecs_s3_copy.config import StoreConfig
from ecs_s3_copy.exceptions import StoreError

if TYPE_CHECKING:
    from types_aiobotocore_s3.client import S3Client
    from types_aiobotocore_s3.type_defs import ListObjectsOutputTypeDef

logger: logging.Logger = logging.getLogger(__name__)

# Marker returned by ECS metadata search once the last page has been served.
NO_MORE_PAGES: str = "NO MORE PAGES"


@dataclass(frozen=True)
class ListPage:
    """
    One page of a bucket listing.

    Attributes:
        keys (Tuple[str, ...]): Object keys in ascending key order.
        is_truncated (bool): Whether more keys follow this page.
        next_marker (str, optional): The NextMarker returned by the store, if
            any. Only needed to resume after a truncated page without keys.
    """

    keys: Tuple[str, ...]
    is_truncated: bool
    next_marker: Optional[str] = None


@dataclass(frozen=True)
class QueryPage:
    """
    One page of a metadata search.

    Attributes:
        keys (Tuple[str, ...]): Names of the matching objects.
        next_marker (str): Marker for the next page, `NO_MORE_PAGES` at the end.
    """

    keys: Tuple[str, ...]
    next_marker: str


def _local_name(tag: str) -> str:
    """Strips the XML namespace from an element tag."""
    return tag.rsplit("}", 1)[-1]


def parse_query_result(body: bytes) -> QueryPage:
    """
    Parses the `BucketQueryResult` document of an ECS metadata search.

    Args:
        body (bytes): The raw XML response body.

    Returns:
        QueryPage: The matching object names and the next marker.
    """
    try:
        root: ET.Element = ET.fromstring(body)
    except ET.ParseError as e:
        raise StoreError(f"Malformed metadata search response: {e}") from e

    if _local_name(root.tag) != "BucketQueryResult":
        raise StoreError(
            f"Unexpected metadata search response root '{_local_name(root.tag)}'."
        )

    keys: List[str] = []
    next_marker: Optional[str] = None
    for element in root:
        name: str = _local_name(element.tag)
        if name == "NextMarker":
            next_marker = (element.text or "").strip()
        elif name == "ObjectMatches":
            for match in element:
                for field in match:
                    if _local_name(field.tag) == "objectName" and field.text:
                        keys.append(field.text)

    # ECS omits the marker on some versions when the result set is exhausted
    return QueryPage(keys=tuple(keys), next_marker=next_marker or NO_MORE_PAGES)


class EcsStoreClient:
    """
    Async context manager wrapping the remote operations of one run.

    The underlying aiobotocore client and aiohttp session are opened on
    enter and closed on exit. Both are shared by all concurrent copy tasks.
    """

    def __init__(self, store_config: StoreConfig, max_connections: int) -> None:
        """
        Initializes the client without opening any connection.

        Args:
            store_config (StoreConfig): Endpoint and credentials.
            max_connections (int): Size of the HTTP connection pool, which
                should cover one full page of concurrent copies.
        """
        self._config: StoreConfig = store_config
        self._max_connections: int = max_connections
        self._session: AioSession = get_session()
        self._exit_stack: Optional[AsyncExitStack] = None
        self._client: Optional["S3Client"] = None
        self._http: Optional[aiohttp.ClientSession] = None
        self._signer: S3SigV4Auth = S3SigV4Auth(
            Credentials(store_config.access_key_id, store_config.secret_access_key),
            "s3",
            store_config.region,
        )

    async def __aenter__(self) -> "EcsStoreClient":
        # Retries are owned by the copy tasks, one botocore attempt per call.
        boto_config: BotoConfig = BotoConfig(
            signature_version="s3v4",
            max_pool_connections=self._max_connections,
            retries={"total_max_attempts": 1},
            s3={"addressing_style": "path"},
        )
        stack: AsyncExitStack = AsyncExitStack()
        try:
            self._client = await stack.enter_async_context(
                self._session.create_client(
                    "s3", **self._config.as_boto_dict(), config=boto_config
                )
            )
            self._http = await stack.enter_async_context(
                aiohttp.ClientSession(
                    connector=aiohttp.TCPConnector(limit=self._max_connections)
                )
            )
        except BaseException:
            await stack.aclose()
            raise
        self._exit_stack = stack
        logger.debug(f"Connected to ECS endpoint '{self._config.endpoint_url}'")
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
        self._exit_stack = None
        self._client = None
        self._http = None

    @property
    def client(self) -> "S3Client":
        if self._client is None:
            raise StoreError("The store client is not open.")
        return self._client

    async def list_objects(
        self, bucket: str, prefix: str, marker: str, page_size: int
    ) -> ListPage:
        """
        Lists one page of keys under a prefix.

        Args:
            bucket (str): The bucket to list.
            prefix (str): Only keys starting with this prefix are returned.
            marker (str): Listing starts after this key; empty for the first page.
            page_size (int): Maximum number of keys to return.

        Returns:
            ListPage: The keys of the page, the truncation flag and the next
                marker when the store sent one.
        """
        response: "ListObjectsOutputTypeDef" = await self.client.list_objects(
            Bucket=bucket, Prefix=prefix, Marker=marker, MaxKeys=page_size
        )
        keys: Tuple[str, ...] = tuple(
            content["Key"] for content in response.get("Contents", [])
        )
        return ListPage(
            keys=keys,
            is_truncated=response.get("IsTruncated", False),
            next_marker=response.get("NextMarker") or None,
        )

    async def query_objects(
        self, bucket: str, query: str, marker: str, page_size: int
    ) -> QueryPage:
        """
        Fetches one page of an ECS metadata search.

        Args:
            bucket (str): The bucket to search.
            query (str): The metadata search expression.
            marker (str): Marker returned by the previous page; empty for the first.
            page_size (int): Maximum number of matches to return.

        Returns:
            QueryPage: The matching keys and the marker of the next page.
        """
        if self._http is None:
            raise StoreError("The store client is not open.")

        params: List[Tuple[str, str]] = [
            ("max-keys", str(page_size)),
            ("query", query),
        ]
        if marker:
            params.append(("marker", marker))
        url: str = (
            f"{self._config.endpoint_url.rstrip('/')}/{quote(bucket)}"
            f"?{urlencode(params, quote_via=quote)}"
        )

        request: AWSRequest = AWSRequest(method="GET", url=url, data=b"")
        self._signer.add_auth(request)

        async with self._http.get(
            URL(request.url, encoded=True), headers=dict(request.headers.items())
        ) as response:
            body: bytes = await response.read()
            if response.status >= 300:
                raise StoreError(
                    f"Metadata search on '{bucket}' failed with HTTP "
                    f"{response.status}: {body.decode('utf-8', 'replace')}"
                )
        return parse_query_result(body)

    async def copy_object(
        self,
        source_bucket: str,
        source_key: str,
        target_bucket: str,
        target_key: str,
        acl: str,
        metadata_directive: str,
    ) -> None:
        """
        Copies one object server-side.

        Args:
            source_bucket (str): The bucket holding the object.
            source_key (str): The key of the object.
            target_bucket (str): The bucket to copy into.
            target_key (str): The key of the copy.
            acl (str): Canned ACL applied to the copy.
            metadata_directive (str): Metadata directive for the copy.
        """
        await self.client.copy_object(
            Bucket=target_bucket,
            Key=target_key,
            CopySource={"Bucket": source_bucket, "Key": source_key},
            ACL=acl,
            MetadataDirective=metadata_directive,
        )
