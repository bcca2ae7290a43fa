# src/bucket_sync/exceptions.py
"""Custom exceptions for the bucket-sync application."""

from typing import Optional


class BucketSyncError(Exception):
    """Base exception for all application-specific errors."""

    pass


class ConfigError(BucketSyncError):
    """Raised for configuration-related issues."""

    pass


class EnumerationError(BucketSyncError):
    """Raised when listing a collection fails on the store side."""

    def __init__(self, collection: str, message: str) -> None:
        super().__init__(f"Failed to list '{collection}': {message}")
        self.collection: str = collection


class SortednessError(BucketSyncError):
    """Raised when a record stream is not in strictly ascending key order."""

    def __init__(self, side: str, previous_key: str, key: str) -> None:
        super().__init__(
            f"Keys from {side} are not strictly ascending: "
            f"'{key}' follows '{previous_key}'"
        )
        self.side: str = side
        self.previous_key: str = previous_key
        self.key: str = key


class CopyError(BucketSyncError):
    """Raised when copying a single object fails."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"Failed to copy '{key}': {message}")
        self.key: str = key


class StreamAborted(BucketSyncError):
    """Raised in a consumer whose upstream channel was closed after a failure."""

    pass


class SyncAborted(BucketSyncError):
    """Raised when a fatal error stopped the run before completion."""

    def __init__(self, stage: str, cause: Optional[BaseException] = None) -> None:
        detail: str = f": {cause}" if cause is not None else ""
        super().__init__(f"Sync aborted by stage '{stage}'{detail}")
        self.stage: str = stage
        self.cause: Optional[BaseException] = cause


class SyncInterrupted(BucketSyncError):
    """Raised when a shutdown signal stopped the run before completion."""

    pass
