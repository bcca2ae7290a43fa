# src/bucket_sync/models.py
"""Records streamed between pipeline stages."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class ObjectRecord:
    """
    One object in a collection.

    Only `key` takes part in the diff; the remaining store metadata is
    carried through for logging and reporting.

    Attributes:
        key (str): The object key, unique and sortable within a collection.
        size (int, optional): Object size in bytes.
        etag (str, optional): The entity tag reported by the store.
        last_modified (datetime, optional): Last modification time.
    """

    key: str
    size: Optional[int] = None
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class Page:
    """
    One batch of records returned by a single listing call.

    Attributes:
        records (Tuple[ObjectRecord, ...]): Records in ascending key order.
        is_last (bool): True if the store reported no further pages.
    """

    records: Tuple[ObjectRecord, ...]
    is_last: bool = False
