# src/ecs_s3_copy/config.py
"""
Configuration for the ecs-s3-copy pipeline.

This module centralizes all configuration in typed, frozen dataclasses. The
values are created once from validated command-line input and are read-only
for the rest of the run.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ecs_s3_copy.exceptions import ConfigError

# Hard upper bound of objects returned by a single ECS listing or query page.
MAX_PAGE_SIZE: int = 1000

DEFAULT_ACL: str = "public-read"
METADATA_DIRECTIVE_REPLACE: str = "REPLACE"


@dataclass(frozen=True)
class StoreConfig:
    """
    Represents the connection settings for the S3-compatible endpoint.

    Attributes:
        endpoint_url (str): The ECS S3 endpoint URL.
        access_key_id (str): The ECS object user.
        secret_access_key (str): The ECS object user secret key.
        region (str): The region used to sign requests.
    """

    endpoint_url: str
    access_key_id: str
    secret_access_key: str
    region: str = "us-east-1"

    def __post_init__(self) -> None:
        if not self.endpoint_url:
            raise ConfigError("An endpoint URL is required.")
        if not self.access_key_id or not self.secret_access_key:
            raise ConfigError("Both the object user and its secret key are required.")

    def as_boto_dict(self) -> Dict[str, str]:
        """
        Returns the configuration as a dictionary suitable for aiobotocore clients.

        Returns:
            Dict[str, str]: A dictionary of client parameters.
        """
        return {
            "endpoint_url": self.endpoint_url,
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
            "region_name": self.region,
        }


@dataclass(frozen=True)
class CopyJobConfig:
    """
    Defines what is copied and how.

    Attributes:
        source_bucket (str): The bucket objects are copied from.
        target_bucket (str): The bucket objects are copied to.
        source_prefix (str): Only keys under this prefix are listed.
        target_prefix (str): Prepended verbatim to every source key.
        query (str, optional): ECS metadata search expression. When set, the
            objects are selected by the query instead of by listing.
        page_size (int): Keys requested per listing or query page. This is
            also the number of copies running at the same time.
        verbose (bool): Whether to log every successful copy.
        acl (str): Canned ACL applied to the copied objects.
        metadata_directive (str): Metadata directive sent with the copy.
        max_attempts (int): Copy attempts per object before it is counted
            as failed.
    """

    source_bucket: str
    target_bucket: str
    source_prefix: str = ""
    target_prefix: str = ""
    query: Optional[str] = None
    page_size: int = 100
    verbose: bool = False
    acl: str = DEFAULT_ACL
    metadata_directive: str = METADATA_DIRECTIVE_REPLACE
    max_attempts: int = 3

    def __post_init__(self) -> None:
        if not self.source_bucket:
            raise ConfigError("A source bucket is required.")
        if not self.target_bucket:
            raise ConfigError("A target bucket is required.")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ConfigError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}, "
                f"got {self.page_size}."
            )
        if self.max_attempts < 1:
            raise ConfigError(
                f"At least one copy attempt is required, got {self.max_attempts}."
            )
        if self.metadata_directive != METADATA_DIRECTIVE_REPLACE:
            raise ConfigError(
                f"Unsupported metadata directive '{self.metadata_directive}'."
            )

    @property
    def uses_query(self) -> bool:
        """
        Whether objects are selected with a metadata search query.

        Returns:
            bool: True if a non-empty query was supplied.
        """
        return bool(self.query)


@dataclass(frozen=True)
class Config:
    """
    Top-level configuration container for a single run.

    Attributes:
        store (StoreConfig): Connection settings for the object store.
        job (CopyJobConfig): The copy job to perform.
    """

    store: StoreConfig
    job: CopyJobConfig
