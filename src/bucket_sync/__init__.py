# src/bucket_sync/__init__.py
"""
bucket-sync: A streaming, additive S3 to S3 bucket synchronizer.

This package copies every object that exists in a source bucket but not in
a destination bucket. Both buckets are listed in key order and compared as
streams with a merge-join, so buckets of any size can be synced in constant
memory.

The primary entry point for programmatic use is the `BucketSyncPipeline` class.
"""

from typing import List

from bucket_sync.diff import DiffEngine
from bucket_sync.pipeline import BucketSyncPipeline
from bucket_sync.report import SyncReport

__all__: List[str] = ["BucketSyncPipeline", "DiffEngine", "SyncReport"]
