# src/bucket_sync/lister.py
"""
Lister stage: pages through one collection and forwards each page.
"""

import logging

from bucket_sync.channel import Channel
from bucket_sync.config import AppConfig
from bucket_sync.errors import ErrorChannel
from bucket_sync.exceptions import EnumerationError
from bucket_sync.models import Page
from bucket_sync.store import ObjectStore

logger: logging.Logger = logging.getLogger(__name__)


async def run_lister(
    side: str,
    store: ObjectStore,
    collection: str,
    app_config: AppConfig,
    pages: Channel[Page],
    errors: ErrorChannel,
) -> int:
    """
    Streams every page of a collection into a channel.

    Pages are sent in the order the store returns them, and the channel is
    closed after the final one. If listing fails, the failure is reported
    as an `EnumerationError` and the channel is aborted instead, so the
    partial key stream is never diffed as if it were complete.

    Args:
        side (str): "source" or "destination", used to label the stage.
        store (ObjectStore): The store holding the collection.
        collection (str): The collection (bucket) to list.
        app_config (AppConfig): Supplies the page size and key prefix.
        pages (Channel[Page]): Outbound channel.
        errors (ErrorChannel): Where failures are reported.

    Returns:
        int: The number of pages sent.
    """
    stage: str = f"{side} lister"
    page_count: int = 0
    logger.debug(
        f"Listing 's3://{collection}/{app_config.prefix}' "
        f"(page size {app_config.page_size})."
    )
    try:
        async for page in store.enumerate(
            collection, app_config.page_size, app_config.prefix
        ):
            page_count += 1
            await pages.send(page)
            if page.is_last:
                break
    except Exception as e:
        error: EnumerationError = (
            e if isinstance(e, EnumerationError) else EnumerationError(collection, str(e))
        )
        errors.report(stage, error)
        await pages.abort(str(error))
        return page_count

    logger.debug(f"Finished listing '{collection}' after {page_count} page(s).")
    await pages.close()
    return page_count
