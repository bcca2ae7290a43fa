# src/bucket_sync/store.py
"""
Object store access.

The pipeline talks to storage only through the `ObjectStore` protocol:
paginated, ordered enumeration of a collection and a server-side copy of
one key between collections. `S3ObjectStore` implements it on top of an
aiobotocore S3 client.
"""

import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from bucket_sync.exceptions import CopyError, EnumerationError
from bucket_sync.models import ObjectRecord, Page

if TYPE_CHECKING:
    from types_aiobotocore_s3.client import S3Client
    from types_aiobotocore_s3.paginator import ListObjectsV2Paginator
    from types_aiobotocore_s3.type_defs import ListObjectsV2OutputTypeDef

logger: logging.Logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """The storage operations the sync pipeline depends on."""

    def enumerate(
        self, collection: str, page_size: int, prefix: str = ""
    ) -> AsyncIterator[Page]:
        """
        Lists a collection as a finite stream of pages.

        Records must be in ascending key order, globally across pages.

        Raises:
            EnumerationError: If the store fails while listing.
        """
        ...

    async def copy_object(
        self, source_collection: str, key: str, destination_collection: str
    ) -> None:
        """
        Copies one object to the same key in another collection.

        Raises:
            CopyError: If the copy fails.
        """
        ...


def _record_from_listing(entry: Dict[str, Any]) -> ObjectRecord:
    """Converts one `Contents` entry of a ListObjectsV2 response."""
    return ObjectRecord(
        key=entry["Key"],
        size=entry.get("Size"),
        etag=entry.get("ETag"),
        last_modified=entry.get("LastModified"),
    )


class S3ObjectStore:
    """An `ObjectStore` backed by an aiobotocore S3 client."""

    def __init__(self, client: "S3Client") -> None:
        """
        Initialize the store.

        Args:
            client (S3Client): An open aiobotocore S3 client. For copies this
                must be the client of the destination endpoint.
        """
        self._client: "S3Client" = client

    async def enumerate(
        self, collection: str, page_size: int, prefix: str = ""
    ) -> AsyncIterator[Page]:
        paginator: "ListObjectsV2Paginator" = self._client.get_paginator(
            "list_objects_v2"
        )
        pages: AsyncIterator["ListObjectsV2OutputTypeDef"] = paginator.paginate(
            Bucket=collection,
            Prefix=prefix,
            PaginationConfig={"PageSize": page_size},
        )
        try:
            async for response in pages:
                records: List[ObjectRecord] = [
                    _record_from_listing(entry)
                    for entry in response.get("Contents", [])
                ]
                yield Page(
                    records=tuple(records),
                    is_last=not response.get("IsTruncated", False),
                )
        except (ClientError, BotoCoreError) as e:
            raise EnumerationError(collection, str(e)) from e

    async def copy_object(
        self, source_collection: str, key: str, destination_collection: str
    ) -> None:
        try:
            await self._client.copy_object(
                Bucket=destination_collection,
                Key=key,
                CopySource={"Bucket": source_collection, "Key": key},
            )
        except (ClientError, BotoCoreError) as e:
            raise CopyError(key, str(e)) from e
        logger.debug(
            f"Copied 's3://{source_collection}/{key}' to "
            f"'s3://{destination_collection}/{key}'"
        )
