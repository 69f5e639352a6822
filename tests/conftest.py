# tests/conftest.py
"""
Pytest configuration and fixtures for the ecs-s3-copy tests.

This module provides:
- An in-memory `FakeStore` that scripts listing, query and copy responses and
  records every call, used by the unit tests.
- Configuration fixtures for the copy job.
- Docker-based MinIO fixtures for the end-to-end tests.
"""

import asyncio
import uuid
from pathlib import Path
from typing import (
    Any,
    AsyncGenerator,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import boto3
import pytest
import pytest_asyncio
import requests
from aiobotocore.session import AioSession, get_session
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from requests.exceptions import ConnectionError

from ecs_s3_copy.config import Config, CopyJobConfig, StoreConfig
from ecs_s3_copy.store import ListPage, QueryPage

# --- Constants ---
S3_ACCESS_KEY: str = "minio-key"
S3_SECRET_KEY: str = "minio-secret"
S3_REGION: str = "us-east-1"


def make_client_error(
    code: str = "SlowDown", operation: str = "CopyObject"
) -> ClientError:
    """
    Build a botocore `ClientError` as raised by a failed S3 call.

    Args:
        code (str): The S3 error code.
        operation (str): The name of the failed operation.

    Returns:
        ClientError: The error instance.
    """
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} raised by test"}}, operation
    )


CopyOutcome = Optional[BaseException]


class FakeStore:
    """
    A scripted stand-in for `EcsStoreClient`.

    Listing and query responses are consumed in order. Copy outcomes are
    looked up per source key: a list of `None` (success) or exceptions, one
    per attempt; keys without a script always succeed. Every call is appended
    to `events` so tests can check ordering across pages.
    """

    def __init__(
        self,
        list_pages: Sequence[Union[ListPage, BaseException]] = (),
        query_pages: Sequence[Union[QueryPage, BaseException]] = (),
        copy_outcomes: Optional[Dict[str, List[CopyOutcome]]] = None,
        copy_delay_s: float = 0.0,
    ) -> None:
        self._list_pages: List[Union[ListPage, BaseException]] = list(list_pages)
        self._query_pages: List[Union[QueryPage, BaseException]] = list(query_pages)
        self._copy_outcomes: Dict[str, List[CopyOutcome]] = dict(copy_outcomes or {})
        self._copy_delay_s: float = copy_delay_s
        self.list_calls: List[Tuple[str, str, str, int]] = []
        self.query_calls: List[Tuple[str, str, str, int]] = []
        self.copy_calls: List[Tuple[str, str, str, str, str, str]] = []
        self.events: List[Tuple[str, str]] = []
        self.in_flight: int = 0
        self.max_in_flight: int = 0

    async def list_objects(
        self, bucket: str, prefix: str, marker: str, page_size: int
    ) -> ListPage:
        self.list_calls.append((bucket, prefix, marker, page_size))
        self.events.append(("list", marker))
        response: Union[ListPage, BaseException] = self._list_pages.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def query_objects(
        self, bucket: str, query: str, marker: str, page_size: int
    ) -> QueryPage:
        self.query_calls.append((bucket, query, marker, page_size))
        self.events.append(("query", marker))
        response: Union[QueryPage, BaseException] = self._query_pages.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def copy_object(
        self,
        source_bucket: str,
        source_key: str,
        target_bucket: str,
        target_key: str,
        acl: str,
        metadata_directive: str,
    ) -> None:
        self.copy_calls.append(
            (source_bucket, source_key, target_bucket, target_key, acl, metadata_directive)
        )
        self.events.append(("copy-start", source_key))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._copy_delay_s)
            outcomes: List[CopyOutcome] = self._copy_outcomes.get(source_key, [])
            outcome: CopyOutcome = outcomes.pop(0) if outcomes else None
            if outcome is not None:
                raise outcome
        finally:
            self.in_flight -= 1
            self.events.append(("copy-end", source_key))

    def copy_attempts(self, source_key: str) -> int:
        """Number of copy calls made for a source key."""
        return sum(1 for call in self.copy_calls if call[1] == source_key)


# --- Application Fixtures ---
@pytest.fixture(scope="function")
def fake_store() -> Callable[..., FakeStore]:
    """
    Provide the `FakeStore` factory.

    Returns:
        Callable[..., FakeStore]: Builds a scripted store from pages and outcomes.
    """
    return FakeStore


@pytest.fixture(scope="function")
def client_error() -> Callable[..., ClientError]:
    """
    Provide a factory of botocore `ClientError` instances.

    Returns:
        Callable[..., ClientError]: Builds an error from an S3 error code.
    """
    return make_client_error


@pytest.fixture(scope="function")
def job_config() -> CopyJobConfig:
    """
    Provide a prefix-listing copy job configuration.

    Returns:
        CopyJobConfig: A job copying 'source' into 'target' under 'new/'.
    """
    return CopyJobConfig(
        source_bucket="source",
        target_bucket="target",
        target_prefix="new/",
        page_size=2,
    )


@pytest.fixture(scope="function")
def store_config() -> StoreConfig:
    """
    Provide dummy connection settings.

    Returns:
        StoreConfig: Settings pointing at an unroutable local endpoint.
    """
    return StoreConfig(
        endpoint_url="http://127.0.0.1:9020",
        access_key_id="object-user",
        secret_access_key="secret",
    )


@pytest.fixture(scope="function")
def test_config(store_config: StoreConfig, job_config: CopyJobConfig) -> Config:
    """
    Provide a full configuration built from the job and store fixtures.

    Args:
        store_config (StoreConfig): The store settings fixture.
        job_config (CopyJobConfig): The job settings fixture.

    Returns:
        Config: A Config instance for use in tests.
    """
    return Config(store=store_config, job=job_config)


# --- Docker Fixtures ---
@pytest.fixture(scope="session")
def docker_compose_file(pytestconfig: pytest.Config) -> str:
    """
    Locate the docker-compose.yml file for the test suite.

    Args:
        pytestconfig (pytest.Config): The pytest configuration objects.

    Returns:
        str: The absolute path to the docker-compose.yml file.
    """
    return str(Path(pytestconfig.rootdir) / "tests" / "docker-compose.yml")


@pytest.fixture(scope="session")
def docker_compose_project_name() -> str:
    """
    Define a unique, static project name for the Docker stack.

    Returns:
        str: A unique name for the docker-compose project.
    """
    return "ecs-s3-copy-tests"


def _is_s3_responsive(url: str) -> bool:
    """
    Check if the MinIO health endpoint is responsive.

    Args:
        url (str): The base URL of the MinIO API.

    Returns:
        bool: True if the service is responsive, False otherwise.
    """
    try:
        response: requests.Response = requests.get(f"{url}/minio/health/live")
        return response.status_code == 200
    except ConnectionError:
        return False


@pytest.fixture(scope="session")
def s3_service(docker_ip: str, docker_services: Any) -> Dict[str, Any]:
    """
    Ensure the S3 service is running and return its connection details.

    Args:
        docker_ip (str): The IP address of the Docker host, provided by pytest-docker.
        docker_services (Any): The pytest-docker services fixture.

    Returns:
        Dict[str, Any]: A dictionary with connection details for the S3 service.
    """
    port: int = docker_services.port_for("minio", 9000)
    api_url: str = f"http://{docker_ip}:{port}"
    docker_services.wait_until_responsive(
        timeout=30.0, pause=0.1, check=lambda: _is_s3_responsive(api_url)
    )
    return {
        "endpoint_url": api_url,
        "aws_access_key_id": S3_ACCESS_KEY,
        "aws_secret_access_key": S3_SECRET_KEY,
        "region_name": S3_REGION,
    }


@pytest_asyncio.fixture(scope="function")
async def s3_buckets(
    s3_service: Dict[str, Any],
) -> AsyncGenerator[Dict[str, str], None]:
    """
    Create unique, isolated source and target buckets for a single test.

    Args:
        s3_service (Dict[str, Any]): Connection details for the S3 service.

    Yield:
        AsyncGenerator[Dict[str, str], None]: The names of the created source
            and target buckets.
    """
    session: AioSession = get_session()
    suffix: str = f"test-bucket-{uuid.uuid4()}"
    source_bucket: str = f"source-{suffix}"
    target_bucket: str = f"target-{suffix}"

    async with session.create_client("s3", **s3_service) as client:
        await client.create_bucket(Bucket=source_bucket)
        await client.create_bucket(Bucket=target_bucket)

    yield {"source": source_bucket, "target": target_bucket}

    # Cleanup: boto3 is simpler for synchronous, recursive delete
    boto_config: BotoConfig = BotoConfig(
        retries={"max_attempts": 0, "mode": "standard"}
    )
    resource: Any = boto3.resource("s3", **s3_service, config=boto_config)
    for bucket in (source_bucket, target_bucket):
        try:
            bucket_obj: Any = resource.Bucket(bucket)
            bucket_obj.objects.all().delete()
            bucket_obj.delete()
        except ClientError as e:
            if e.response["Error"]["Code"] != "NoSuchBucket":
                raise


@pytest.fixture(scope="function")
def e2e_store_config(s3_service: Dict[str, Any]) -> StoreConfig:
    """
    Provide store settings pointing at the MinIO service.

    Args:
        s3_service (Dict[str, Any]): Connection details for the S3 service.

    Returns:
        StoreConfig: The MinIO endpoint and credentials.
    """
    return StoreConfig(
        endpoint_url=s3_service["endpoint_url"],
        access_key_id=S3_ACCESS_KEY,
        secret_access_key=S3_SECRET_KEY,
        region=S3_REGION,
    )
