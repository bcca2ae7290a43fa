# src/bucket_sync/pipeline.py
"""Core orchestration logic for the bucket-sync pipeline."""

import asyncio
import logging
from typing import Awaitable, List, Optional, Set

from aiobotocore.session import AioSession, get_session
from botocore.config import Config as BotoConfig
from rich.progress import (
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from bucket_sync.channel import Channel
from bucket_sync.config import AppConfig, Config
from bucket_sync.diff import DiffEngine, run_diff
from bucket_sync.errors import ErrorChannel, StageFailure
from bucket_sync.exceptions import SyncAborted, SyncInterrupted
from bucket_sync.extractor import run_extractor
from bucket_sync.lister import run_lister
from bucket_sync.models import ObjectRecord, Page
from bucket_sync.report import SyncReport, write_failed_keys
from bucket_sync.store import ObjectStore, S3ObjectStore
from bucket_sync.worker import CopyWorkerPool

logger: logging.Logger = logging.getLogger(__name__)


class BucketSyncPipeline:
    """Orchestrates the entire sync from start to finish."""

    def __init__(self, config: Config, shutdown_event: asyncio.Event) -> None:
        """
        Initializes the pipeline with the given configuration.

        Args:
            config (Config): The application configuration.
            shutdown_event (asyncio.Event): Event to signal graceful shutdown.
        """
        self._config: Config = config
        self._shutdown_event: asyncio.Event = shutdown_event
        self._session: AioSession = get_session()

    async def run(self) -> SyncReport:
        """
        Opens one S3 client per bucket and runs the sync between them.

        Returns:
            SyncReport: Counts and failed keys of the completed run.

        Raises:
            SyncAborted: If a stage reported a fatal error.
            SyncInterrupted: If the shutdown event was set.
        """
        logger.info(
            f"Starting bucket-sync: 's3://{self._config.source_bucket}' -> "
            f"'s3://{self._config.destination_bucket}'."
        )
        boto_config: BotoConfig = BotoConfig(
            signature_version="s3v4",
            max_pool_connections=self._config.app.num_workers + 10,
        )
        async with (
            self._session.create_client(
                "s3",
                **self._config.source.as_boto_dict(),
                config=boto_config,
            ) as source_client,
            self._session.create_client(
                "s3",
                **self._config.destination.as_boto_dict(),
                config=boto_config,
            ) as dest_client,
        ):
            return await self.sync(
                S3ObjectStore(source_client), S3ObjectStore(dest_client)
            )

    async def sync(
        self, source_store: ObjectStore, destination_store: ObjectStore
    ) -> SyncReport:
        """
        Runs all pipeline stages between two stores.

        The stages run as concurrent tasks joined by bounded channels. The
        run ends when every stage has finished, when a stage reports a
        fatal error, or when the shutdown event is set; in the last two
        cases every remaining stage is cancelled before this returns.

        Args:
            source_store (ObjectStore): Store holding the source bucket.
            destination_store (ObjectStore): Store holding the destination
                bucket; copies are issued through it.

        Returns:
            SyncReport: Counts and failed keys of the completed run.

        Raises:
            SyncAborted: If a stage reported a fatal error.
            SyncInterrupted: If the shutdown event was set.
        """
        if self._shutdown_event.is_set():
            raise SyncInterrupted("Shutdown requested before the sync started.")

        app: AppConfig = self._config.app
        errors: ErrorChannel = ErrorChannel()

        source_pages: Channel[Page] = Channel("source pages", app.page_queue_size)
        dest_pages: Channel[Page] = Channel("destination pages", app.page_queue_size)
        source_records: Channel[ObjectRecord] = Channel(
            "source records", app.record_queue_size
        )
        dest_records: Channel[ObjectRecord] = Channel(
            "destination records", app.record_queue_size
        )
        missing: Channel[ObjectRecord] = Channel("missing keys", app.record_queue_size)
        engine: DiffEngine = DiffEngine(source_records, dest_records)

        progress: Progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TextColumn("{task.completed:.0f} processed"),
            TextColumn("([bold red]{task.fields[failed]} failed)"),
            TimeElapsedColumn(),
            transient=True,
        )

        with progress:
            task_id: TaskID = progress.add_task(
                "Checking..." if app.dry_run else "Copying...", total=None, failed=0
            )
            pool: CopyWorkerPool = CopyWorkerPool(
                self._config,
                destination_store,
                missing,
                errors,
                progress_bar=progress,
                progress_task_id=task_id,
            )

            stage_tasks: List[asyncio.Task[None]] = [
                self._start_stage(
                    "source lister",
                    run_lister(
                        "source",
                        source_store,
                        self._config.source_bucket,
                        app,
                        source_pages,
                        errors,
                    ),
                    errors,
                ),
                self._start_stage(
                    "destination lister",
                    run_lister(
                        "destination",
                        destination_store,
                        self._config.destination_bucket,
                        app,
                        dest_pages,
                        errors,
                    ),
                    errors,
                ),
                self._start_stage(
                    "source extractor",
                    run_extractor("source", source_pages, source_records, errors),
                    errors,
                ),
                self._start_stage(
                    "destination extractor",
                    run_extractor("destination", dest_pages, dest_records, errors),
                    errors,
                ),
                self._start_stage(
                    "diff engine", run_diff(engine, missing, errors), errors
                ),
                self._start_stage("copy worker pool", pool.run(), errors),
            ]

            # Race normal completion against a fatal error or a shutdown signal
            completion_task: asyncio.Future[List[None]] = asyncio.gather(*stage_tasks)
            fatal_task: asyncio.Task[None] = asyncio.create_task(errors.wait_fatal())
            shutdown_task: asyncio.Task[bool] = asyncio.create_task(
                self._shutdown_event.wait()
            )

            done: Set[asyncio.Future[object]]
            pending: Set[asyncio.Future[object]]
            done, pending = await asyncio.wait(
                {completion_task, fatal_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )

            if completion_task not in done:
                logger.warning("Stopping all pipeline stages...")
            for task in pending:
                task.cancel()
            for task in stage_tasks:
                task.cancel()
            await asyncio.gather(
                completion_task,
                fatal_task,
                shutdown_task,
                *stage_tasks,
                return_exceptions=True,
            )

        failed_keys: List[str] = errors.failed_keys
        if failed_keys and app.failed_keys_out is not None:
            write_failed_keys(app.failed_keys_out, failed_keys)

        failure: Optional[StageFailure] = errors.first_fatal
        if failure is not None:
            raise SyncAborted(failure.stage, failure.error) from failure.error
        if completion_task not in done:
            raise SyncInterrupted(
                f"Shutdown signal received after {pool.attempted_count} "
                "copies were attempted."
            )

        return SyncReport(
            source_count=engine.source_count,
            destination_count=engine.destination_count,
            missing_count=engine.missing_count,
            copied_count=pool.copied_count,
            failed_keys=failed_keys,
            dry_run=app.dry_run,
        )

    @staticmethod
    def _start_stage(
        stage: str, coro: Awaitable[object], errors: ErrorChannel
    ) -> "asyncio.Task[None]":
        """
        Runs a stage coroutine as a task, reporting anything it lets escape.

        Args:
            stage (str): Name of the stage.
            coro (Awaitable[object]): The stage coroutine.
            errors (ErrorChannel): Where an escaped failure is reported.

        Returns:
            asyncio.Task[None]: The running task.
        """

        async def _guarded() -> None:
            try:
                await coro
            except Exception as e:
                errors.report(stage, e)

        return asyncio.create_task(_guarded(), name=stage)
