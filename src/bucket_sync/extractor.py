# src/bucket_sync/extractor.py
"""
Key extractor stage: flattens a page stream into a record stream.
"""

import logging

from bucket_sync.channel import Channel
from bucket_sync.errors import ErrorChannel
from bucket_sync.exceptions import StreamAborted
from bucket_sync.models import ObjectRecord, Page

logger: logging.Logger = logging.getLogger(__name__)


async def run_extractor(
    side: str,
    pages: Channel[Page],
    records: Channel[ObjectRecord],
    errors: ErrorChannel,
) -> int:
    """
    Forwards the records of each page, one at a time, in received order.

    Only the page currently being flattened is held; ordering across page
    boundaries is exactly the store's listing order.

    Args:
        side (str): "source" or "destination", used to label the stage.
        pages (Channel[Page]): Inbound channel of listed pages.
        records (Channel[ObjectRecord]): Outbound channel of records.
        errors (ErrorChannel): Where failures are reported.

    Returns:
        int: The number of records sent.
    """
    stage: str = f"{side} extractor"
    record_count: int = 0
    try:
        async for page in pages:
            for record in page.records:
                await records.send(record)
                record_count += 1
    except StreamAborted as e:
        # The upstream failure has already been reported
        await records.abort(str(e))
        return record_count
    except Exception as e:
        errors.report(stage, e)
        await records.abort(str(e))
        return record_count

    await records.close()
    return record_count
