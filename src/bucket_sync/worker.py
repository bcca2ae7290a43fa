# src/bucket_sync/worker.py
"""
Defines the copy worker pool.

A fixed number of long-lived worker tasks share one channel of missing
records. Each worker takes one record at a time and asks the store for a
server-side copy of that key. A failed copy is recorded against its key and
the worker moves on, so one failure never abandons the rest of the run.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, List, Optional

from bucket_sync.channel import Channel
from bucket_sync.config import Config
from bucket_sync.errors import ErrorChannel
from bucket_sync.exceptions import CopyError, StreamAborted
from bucket_sync.models import ObjectRecord
from bucket_sync.store import ObjectStore

if TYPE_CHECKING:
    from rich.progress import Progress, TaskID

logger: logging.Logger = logging.getLogger(__name__)


class CopyWorkerPool:
    """Copies every record from the missing-key channel to the destination."""

    def __init__(
        self,
        config: Config,
        store: ObjectStore,
        missing: Channel[ObjectRecord],
        errors: ErrorChannel,
        progress_bar: Optional["Progress"] = None,
        progress_task_id: Optional["TaskID"] = None,
    ) -> None:
        """
        Initialize the pool.

        Args:
            config (Config): The application configuration.
            store (ObjectStore): Store used to issue copies.
            missing (Channel[ObjectRecord]): Inbound channel of missing records.
            errors (ErrorChannel): Where copy failures are recorded.
            progress_bar (Progress, optional): The rich Progress instance for UI updates.
            progress_task_id (TaskID, optional): The TaskID of the progress row.
        """
        self._config: Config = config
        self._store: ObjectStore = store
        self._missing: Channel[ObjectRecord] = missing
        self._errors: ErrorChannel = errors
        self._progress_bar: Optional["Progress"] = progress_bar
        self._progress_task_id: Optional["TaskID"] = progress_task_id
        self.attempted_count: int = 0
        self.copied_count: int = 0
        self.failed_count: int = 0

    async def run(self) -> None:
        """
        Starts all workers and waits until every one of them has exited.

        Workers exit once the missing-key channel is exhausted. Cancelling
        this coroutine cancels every worker.
        """
        num_workers: int = self._config.app.num_workers
        logger.debug(f"Starting {num_workers} copy workers.")
        workers: List[asyncio.Task[None]] = [
            asyncio.create_task(self._worker(i)) for i in range(num_workers)
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for task in workers:
                task.cancel()
        logger.debug(
            f"Copy workers finished: {self.copied_count} copied, "
            f"{self.failed_count} failed."
        )

    async def _worker(self, worker_id: int) -> None:
        """
        A long-lived worker task that processes records from the channel.

        Args:
            worker_id (int): A unique identifier for this worker.
        """
        logger.debug(f"Worker {worker_id} started.")
        try:
            async for record in self._missing:
                await self._copy(record)
        except StreamAborted:
            logger.debug(f"Worker {worker_id} stopping: upstream failed.")
            return
        logger.debug(f"Worker {worker_id} finished.")

    async def _copy(self, record: ObjectRecord) -> None:
        """
        Copies a single record, recording the outcome.

        Args:
            record (ObjectRecord): The record to copy.
        """
        stage: str = "copy worker"
        self.attempted_count += 1
        if self._config.app.dry_run:
            logger.info(f"[dry run] Would copy '{record.key}'")
            self._advance_progress()
            return

        try:
            await self._store.copy_object(
                self._config.source_bucket,
                record.key,
                self._config.destination_bucket,
            )
        except CopyError as e:
            self.failed_count += 1
            self._errors.report(stage, e)
            self._advance_progress()
            return
        except Exception as e:
            logger.exception(f"An unexpected error occurred copying '{record.key}'")
            self.failed_count += 1
            self._errors.report(stage, CopyError(record.key, str(e)))
            self._advance_progress()
            return

        self.copied_count += 1
        self._advance_progress()

    def _advance_progress(self) -> None:
        if self._progress_bar is None or self._progress_task_id is None:
            return
        self._progress_bar.update(
            self._progress_task_id, advance=1, failed=self.failed_count
        )
