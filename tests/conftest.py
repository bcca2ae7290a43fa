# tests/conftest.py
"""
Pytest configuration and fixtures for the bucket-sync test suite.

This module provides:
- An in-memory object store that honours the listing contract, with hooks
  to inject listing and copy failures, used by the unit tests.
- Helpers to build configurations without touching the environment.
- Docker-based MinIO fixtures for the end-to-end tests.
"""

import asyncio
import os
import uuid
from pathlib import Path
from typing import (
    Any,
    AsyncGenerator,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Optional,
    Set,
)

import pytest
import pytest_asyncio
import requests
from aiobotocore.session import AioSession, get_session
from requests.exceptions import ConnectionError

from bucket_sync.config import AppConfig, Config, S3Config
from bucket_sync.exceptions import CopyError
from bucket_sync.models import ObjectRecord, Page

# --- Constants ---
S3_ACCESS_KEY: str = "minio-key"
S3_SECRET_KEY: str = "minio-secret"
S3_REGION: str = "us-east-1"

SOURCE_BUCKET: str = "source-bucket"
DEST_BUCKET: str = "dest-bucket"


# --- In-memory store ---
class InMemoryObjectStore:
    """
    An `ObjectStore` over plain lists of keys.

    Keys are listed in the order given, so tests can feed unsorted input.
    Copies are recorded instead of mutating the listed buckets.
    """

    def __init__(
        self,
        buckets: Dict[str, List[str]],
        page_layouts: Optional[Dict[str, List[List[str]]]] = None,
        fail_copy: Optional[Set[str]] = None,
        fail_listing_after: Optional[Dict[str, int]] = None,
        copy_delay: float = 0,
    ) -> None:
        """
        Initialize the store.

        Args:
            buckets (Dict[str, List[str]]): Keys per bucket, in listing order.
            page_layouts (Dict[str, List[List[str]]], optional): Explicit pages
                per bucket, overriding `buckets` and the requested page size.
            fail_copy (Set[str], optional): Keys whose copy raises `CopyError`.
            fail_listing_after (Dict[str, int], optional): Buckets whose listing
                raises after the given number of pages.
            copy_delay (float): Seconds each copy takes.
        """
        self.buckets: Dict[str, List[str]] = buckets
        self.page_layouts: Dict[str, List[List[str]]] = page_layouts or {}
        self.fail_copy: Set[str] = fail_copy or set()
        self.fail_listing_after: Dict[str, int] = fail_listing_after or {}
        self.copy_delay: float = copy_delay
        self.copy_attempts: List[str] = []
        self.copied: Dict[str, List[str]] = {}
        self.list_calls: List[str] = []

    def _pages(self, collection: str, page_size: int, prefix: str) -> List[List[str]]:
        if collection in self.page_layouts:
            return [
                [key for key in page if key.startswith(prefix)]
                for page in self.page_layouts[collection]
            ]
        keys: List[str] = [
            key for key in self.buckets.get(collection, []) if key.startswith(prefix)
        ]
        pages: List[List[str]] = [
            keys[i : i + page_size] for i in range(0, len(keys), page_size)
        ]
        return pages or [[]]

    async def enumerate(
        self, collection: str, page_size: int, prefix: str = ""
    ) -> AsyncIterator[Page]:
        self.list_calls.append(collection)
        pages: List[List[str]] = self._pages(collection, page_size, prefix)
        fail_after: Optional[int] = self.fail_listing_after.get(collection)
        for number, keys in enumerate(pages):
            if fail_after is not None and number >= fail_after:
                raise RuntimeError(f"listing of '{collection}' failed")
            await asyncio.sleep(0)
            yield Page(
                records=tuple(ObjectRecord(key=key) for key in keys),
                is_last=number == len(pages) - 1,
            )

    async def copy_object(
        self, source_collection: str, key: str, destination_collection: str
    ) -> None:
        self.copy_attempts.append(key)
        await asyncio.sleep(self.copy_delay)
        if key in self.fail_copy:
            raise CopyError(key, "simulated store error")
        if key not in self.buckets.get(source_collection, []) and not any(
            key in page for page in self.page_layouts.get(source_collection, [])
        ):
            raise CopyError(key, "NoSuchKey")
        self.copied.setdefault(destination_collection, []).append(key)


def make_config(**app_kwargs: Any) -> Config:
    """
    Builds a `Config` for the in-memory buckets without reading the environment.

    Args:
        **app_kwargs: Overrides for `AppConfig`.

    Returns:
        Config: The configuration.
    """
    return Config(
        source_bucket=SOURCE_BUCKET,
        destination_bucket=DEST_BUCKET,
        source=S3Config(),
        destination=S3Config(),
        app=AppConfig(**app_kwargs),
    )


@pytest.fixture(scope="function")
def clean_env() -> Any:
    """
    Remove all BUCKET_SYNC_* variables for the duration of a test.

    Yields:
        None
    """
    saved: Dict[str, str] = {
        name: value
        for name, value in os.environ.items()
        if name.startswith("BUCKET_SYNC_")
    }
    for name in saved:
        del os.environ[name]
    yield
    os.environ.update(saved)


# --- Docker Fixtures ---
@pytest.fixture(scope="session")
def docker_compose_file(pytestconfig: pytest.Config) -> str:
    """
    Locate the docker-compose.yml file for the test suite.

    Args:
        pytestconfig (pytest.Config): The pytest configuration object.

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
    return "bucket-sync-tests"


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
    Ensure the MinIO service is running and return its connection details.

    Both buckets live on the same service so server-side copies work.

    Args:
        docker_ip (str): The IP address of the Docker host, provided by pytest-docker.
        docker_services (Any): The pytest-docker services fixture.

    Returns:
        Dict[str, Any]: Client parameters for the MinIO service.
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
    Create unique, isolated source and destination buckets for one test.

    Sets the BUCKET_SYNC_* environment variables read by `Config` and
    removes both buckets and their contents afterwards.

    Args:
        s3_service (Dict[str, Any]): Connection details for MinIO.

    Yields:
        Dict[str, str]: The names of the source and destination buckets.
    """
    session: AioSession = get_session()
    suffix: str = str(uuid.uuid4())
    buckets: Dict[str, str] = {
        "source": f"source-{suffix}",
        "destination": f"dest-{suffix}",
    }

    for side in ("SOURCE", "DESTINATION"):
        os.environ[f"BUCKET_SYNC_{side}_ENDPOINT_URL"] = s3_service["endpoint_url"]
        os.environ[f"BUCKET_SYNC_{side}_ACCESS_KEY_ID"] = S3_ACCESS_KEY
        os.environ[f"BUCKET_SYNC_{side}_SECRET_ACCESS_KEY"] = S3_SECRET_KEY
        os.environ[f"BUCKET_SYNC_{side}_REGION"] = S3_REGION

    async with session.create_client("s3", **s3_service) as client:
        for bucket in buckets.values():
            await client.create_bucket(Bucket=bucket)

    yield buckets

    async with session.create_client("s3", **s3_service) as client:
        for bucket in buckets.values():
            paginator = client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=bucket):
                for entry in page.get("Contents", []):
                    await client.delete_object(Bucket=bucket, Key=entry["Key"])
            await client.delete_bucket(Bucket=bucket)


# --- Application Fixtures ---
@pytest.fixture(scope="function")
def store_factory() -> Callable[..., InMemoryObjectStore]:
    """
    Provide a factory for in-memory stores.

    Returns:
        Callable[..., InMemoryObjectStore]: The store constructor.
    """
    return InMemoryObjectStore


@pytest.fixture(scope="function")
def config_factory() -> Callable[..., Config]:
    """
    Provide a factory for configurations pointing at the in-memory buckets.

    Returns:
        Callable[..., Config]: Builds a `Config` from `AppConfig` overrides.
    """
    return make_config
