# src/bucket_sync/report.py
"""Run summary and failed-key reporting."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import polars as pl

logger: logging.Logger = logging.getLogger(__name__)

FAILED_KEYS_COLUMN: str = "key"


@dataclass(frozen=True)
class SyncReport:
    """
    The outcome of one completed sync run.

    Attributes:
        source_count (int): Records read from the source listing.
        destination_count (int): Records read from the destination listing.
        missing_count (int): Source records absent from the destination.
        copied_count (int): Records copied successfully.
        failed_keys (List[str]): Keys whose copy failed.
        dry_run (bool): Whether copies were skipped.
    """

    source_count: int
    destination_count: int
    missing_count: int
    copied_count: int
    failed_keys: List[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.failed_keys

    def log_summary(self) -> None:
        """Logs the counts and, on partial failure, every failed key."""
        logger.info(
            f"Compared {self.source_count} source and "
            f"{self.destination_count} destination objects; "
            f"{self.missing_count} missing from destination."
        )
        if self.dry_run:
            logger.info(f"Dry run: {self.missing_count} objects would be copied.")
            return
        logger.info(f"Copied {self.copied_count} objects.")
        if self.failed_keys:
            logger.error(f"{len(self.failed_keys)} objects failed to copy:")
            for key in self.failed_keys:
                logger.error(f"  {key}")


def write_failed_keys(path: Path, keys: List[str]) -> None:
    """
    Writes failed keys as a single-column Parquet manifest.

    Args:
        path (Path): Destination file; parent directories are created.
        keys (List[str]): The keys to write, sorted before writing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    df: pl.DataFrame = pl.DataFrame(
        {FAILED_KEYS_COLUMN: sorted(keys)}, schema={FAILED_KEYS_COLUMN: pl.Utf8}
    )
    df.write_parquet(path)
    logger.info(f"Wrote {len(keys)} failed keys to '{path}'.")
