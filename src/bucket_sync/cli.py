# src/bucket_sync/cli.py
"""Command-line interface for the bucket-sync tool."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from bucket_sync.config import MAX_PAGE_SIZE, AppConfig, Config
from bucket_sync.exceptions import BucketSyncError, SyncAborted, SyncInterrupted
from bucket_sync.report import SyncReport
from bucket_sync.signals import GracefulShutdown

logger: logging.Logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure rich-based logging for the application."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # Silence noisy loggers
    for logger_name in ["aiobotocore", "botocore", "urllib3"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


async def main_async(config: Config) -> SyncReport:
    """
    Asynchronously execute the sync pipeline.

    Args:
        config (Config): The application configuration.

    Returns:
        SyncReport: The outcome of the run.
    """
    # Lazily import to keep the CLI fast
    from bucket_sync.pipeline import BucketSyncPipeline

    async with GracefulShutdown() as shutdown_event:
        pipeline: BucketSyncPipeline = BucketSyncPipeline(config, shutdown_event)
        return await pipeline.run()


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.argument("source")
@click.argument("destination")
@click.option(
    "--page-size",
    type=click.IntRange(1, MAX_PAGE_SIZE),
    default=MAX_PAGE_SIZE,
    help="Number of keys requested per listing call.",
    show_default=True,
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=32,
    help="Number of concurrent copy workers.",
    show_default=True,
)
@click.option(
    "--prefix",
    default="",
    help="Only sync objects whose key starts with this prefix.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="List the objects that would be copied without copying them.",
)
@click.option(
    "--failed-keys-out",
    type=click.Path(dir_okay=False, writable=True, resolve_path=True),
    default=None,
    help="Write keys that failed to copy to this Parquet file.",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the logging level.",
    show_default=True,
)
def cli(**kwargs: Any) -> None:
    """
    Copy every object in SOURCE that is missing from DESTINATION.

    Both buckets are listed in key order and compared as streams, so
    buckets of any size can be synced without holding their listings in
    memory. Objects already present in DESTINATION under the same key are
    left untouched, and nothing is ever deleted.

    Endpoints and credentials are read from BUCKET_SYNC_SOURCE_* and
    BUCKET_SYNC_DESTINATION_* environment variables (or a .env file);
    when unset, botocore's default credential chain is used.
    """
    load_dotenv()
    setup_logging(kwargs["log_level"])

    failed_keys_out: Optional[str] = kwargs["failed_keys_out"]
    try:
        app_config: AppConfig = AppConfig(
            page_size=kwargs["page_size"],
            num_workers=kwargs["workers"],
            prefix=kwargs["prefix"],
            dry_run=kwargs["dry_run"],
            failed_keys_out=Path(failed_keys_out) if failed_keys_out else None,
        )
        config: Config = Config(
            source_bucket=kwargs["source"],
            destination_bucket=kwargs["destination"],
            app=app_config,
        )

        report: SyncReport = asyncio.run(main_async(config))
    except SyncAborted as e:
        logger.critical(f"Sync stopped by a fatal error in the {e.stage}: {e.cause}")
        sys.exit(1)
    except SyncInterrupted as e:
        logger.warning(f"Sync interrupted: {e}")
        sys.exit(1)
    except BucketSyncError as e:
        logger.critical(f"A critical application error occurred: {e}")
        sys.exit(1)
    except Exception:
        logger.critical(
            "An unexpected error caused the application to fail:", exc_info=True
        )
        sys.exit(1)

    report.log_summary()
    if not report.succeeded:
        logger.error("❌ Run completed with failed copies.")
        sys.exit(1)
    logger.info("✅ Run completed successfully.")


if __name__ == "__main__":
    cli()
