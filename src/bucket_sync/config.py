# src/bucket_sync/config.py
"""
Configuration for the bucket-sync pipeline.

This module centralizes all configuration, loading connection settings from
environment variables and providing typed dataclasses for use throughout
the application.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from bucket_sync.exceptions import ConfigError

# The S3 ListObjectsV2 API never returns more than this many keys per call.
MAX_PAGE_SIZE: int = 1000


def _get_env_var(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Retrieves an optional environment variable.

    Empty values are treated as unset.

    Args:
        name (str): The name of the environment variable.
        default (str, optional): The default value if the variable is not set.

    Returns:
        Optional[str]: The value of the environment variable, or the default.
    """
    value: Optional[str] = os.environ.get(name)
    return value if value else default


@dataclass(frozen=True)
class S3Config:
    """
    Represents the connection settings for an S3-compatible endpoint.

    Leaving the credentials unset defers to botocore's default credential
    chain (environment, shared config, instance profile).

    Attributes:
        endpoint_url (str, optional): The S3 endpoint URL, None for AWS.
        access_key_id (str, optional): The access key ID.
        secret_access_key (str, optional): The secret access key.
        region (str): The AWS region.
    """

    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: str = "us-east-1"

    def __post_init__(self) -> None:
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ConfigError(
                "Access key ID and secret access key must be set together."
            )

    @classmethod
    def from_env(cls, prefix: str) -> "S3Config":
        """
        Builds an `S3Config` from `<prefix>_*` environment variables.

        Args:
            prefix (str): The variable prefix, e.g. `BUCKET_SYNC_SOURCE`.

        Returns:
            S3Config: The loaded configuration.
        """
        return cls(
            endpoint_url=_get_env_var(f"{prefix}_ENDPOINT_URL"),
            access_key_id=_get_env_var(f"{prefix}_ACCESS_KEY_ID"),
            secret_access_key=_get_env_var(f"{prefix}_SECRET_ACCESS_KEY"),
            region=_get_env_var(f"{prefix}_REGION", "us-east-1"),
        )

    def as_boto_dict(self) -> Dict[str, str]:
        """
        Returns the configuration as a dictionary suitable for aiobotocore clients.

        Unset values are omitted so botocore can apply its own defaults.

        Returns:
            Dict[str, str]: A dictionary of client parameters.
        """
        params: Dict[str, Optional[str]] = {
            "endpoint_url": self.endpoint_url,
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
            "region_name": self.region,
        }
        return {name: value for name, value in params.items() if value}


@dataclass(frozen=True)
class AppConfig:
    """
    Defines the application's operational parameters.

    Attributes:
        page_size (int): Number of keys requested per listing call.
        num_workers (int): Number of concurrent copy workers.
        page_queue_size (int): Capacity of each lister -> extractor channel, in pages.
        record_queue_size (int): Capacity of record and missing-key channels.
        prefix (str): Only objects whose key starts with this prefix are synced.
        dry_run (bool): Compute the difference without copying anything.
        failed_keys_out (Path, optional): Where to write a Parquet report
            of keys that failed to copy.
    """

    page_size: int = MAX_PAGE_SIZE
    num_workers: int = 32
    page_queue_size: int = 4
    record_queue_size: int = 1000
    prefix: str = ""
    dry_run: bool = False
    failed_keys_out: Optional[Path] = None

    def __post_init__(self) -> None:
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ConfigError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}, "
                f"got {self.page_size}."
            )
        if self.num_workers < 1:
            raise ConfigError(
                f"Number of workers must be at least 1, got {self.num_workers}."
            )
        if self.page_queue_size < 1 or self.record_queue_size < 1:
            raise ConfigError("Queue sizes must be at least 1.")


@dataclass(frozen=True)
class Config:
    """
    Top-level configuration container for the entire application.

    Attributes:
        source_bucket (str): Name of the bucket to copy from.
        destination_bucket (str): Name of the bucket to copy into.
        source (S3Config): Connection settings for the source bucket.
        destination (S3Config): Connection settings for the destination bucket.
        app (AppConfig): General application settings.
    """

    source_bucket: str
    destination_bucket: str
    source: S3Config = field(
        default_factory=lambda: S3Config.from_env("BUCKET_SYNC_SOURCE")
    )
    destination: S3Config = field(
        default_factory=lambda: S3Config.from_env("BUCKET_SYNC_DESTINATION")
    )
    app: AppConfig = field(default_factory=AppConfig)

    def __post_init__(self) -> None:
        if not self.source_bucket or not self.destination_bucket:
            raise ConfigError("Source and destination buckets must be named.")
        # Copies are server-side, issued to the destination endpoint.
        if self.source.endpoint_url != self.destination.endpoint_url:
            raise ConfigError(
                "Source and destination must share an endpoint; got "
                f"'{self.source.endpoint_url}' and "
                f"'{self.destination.endpoint_url}'."
            )
        if self.source_bucket == self.destination_bucket:
            raise ConfigError(
                f"Source and destination are the same bucket '{self.source_bucket}'."
            )
