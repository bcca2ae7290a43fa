# src/bucket_sync/diff.py
"""
Streaming set difference of two ascending record streams.

`DiffEngine` walks a source and a destination stream in lockstep (a
merge-join) and yields the source records whose key has no counterpart in
the destination. It needs one buffered record per side and a single pass
over each input, so neither collection is ever materialized.

Correctness depends on both inputs being strictly ascending by key. Every
key read is checked against the previous one on the same side, and a
violation raises `SortednessError` instead of producing a wrong diff.
"""

import logging
from enum import Enum
from typing import AsyncIterable, AsyncIterator, Optional

from bucket_sync.channel import Channel
from bucket_sync.errors import ErrorChannel
from bucket_sync.exceptions import SortednessError, StreamAborted
from bucket_sync.models import ObjectRecord

logger: logging.Logger = logging.getLogger(__name__)


class CursorState(Enum):
    """Whether a cursor currently holds a record."""

    HOLDS_RECORD = "holds_record"
    EXHAUSTED = "exhausted"


class _Cursor:
    """A one-record lookahead over an ascending record stream."""

    def __init__(self, side: str, records: AsyncIterable[ObjectRecord]) -> None:
        self._side: str = side
        self._records: AsyncIterator[ObjectRecord] = records.__aiter__()
        self._last_key: Optional[str] = None
        self._record: Optional[ObjectRecord] = None
        self.state: CursorState = CursorState.EXHAUSTED
        self.count: int = 0

    @property
    def record(self) -> ObjectRecord:
        if self.state is not CursorState.HOLDS_RECORD or self._record is None:
            raise RuntimeError(f"The {self._side} cursor is exhausted.")
        return self._record

    async def advance(self) -> None:
        """
        Moves to the next record, or to `EXHAUSTED` at end of stream.

        Raises:
            SortednessError: If the next key is not greater than the last one.
        """
        try:
            record: ObjectRecord = await self._records.__anext__()
        except StopAsyncIteration:
            self._record = None
            self.state = CursorState.EXHAUSTED
            return

        if self._last_key is not None and record.key <= self._last_key:
            raise SortednessError(self._side, self._last_key, record.key)
        self._last_key = record.key
        self._record = record
        self.state = CursorState.HOLDS_RECORD
        self.count += 1


class DiffEngine:
    """
    Yields the source records missing from the destination.

    Iterate the engine once with `async for`; afterwards the counters hold
    how many records were read from each side and how many were emitted.
    Output is a strictly ascending subsequence of the source.

    Example:
        engine = DiffEngine(source_records, destination_records)
        async for record in engine:
            ...
    """

    def __init__(
        self,
        source: AsyncIterable[ObjectRecord],
        destination: AsyncIterable[ObjectRecord],
    ) -> None:
        """
        Initialize the engine.

        Args:
            source (AsyncIterable[ObjectRecord]): Ascending source records.
            destination (AsyncIterable[ObjectRecord]): Ascending destination records.
        """
        self._src: _Cursor = _Cursor("source", source)
        self._dest: _Cursor = _Cursor("destination", destination)
        self.missing_count: int = 0

    @property
    def source_count(self) -> int:
        return self._src.count

    @property
    def destination_count(self) -> int:
        return self._dest.count

    async def __aiter__(self) -> AsyncIterator[ObjectRecord]:
        src: _Cursor = self._src
        dest: _Cursor = self._dest
        await src.advance()
        await dest.advance()

        while True:
            src_holds: bool = src.state is CursorState.HOLDS_RECORD
            dest_holds: bool = dest.state is CursorState.HOLDS_RECORD

            if src_holds and dest_holds:
                if src.record.key < dest.record.key:
                    self.missing_count += 1
                    yield src.record
                    await src.advance()
                elif src.record.key > dest.record.key:
                    await dest.advance()
                else:
                    # Equal keys count as synchronized whatever the metadata
                    await src.advance()
                    await dest.advance()
            elif src_holds:
                self.missing_count += 1
                yield src.record
                await src.advance()
            elif dest_holds:
                await dest.advance()
            else:
                break

        logger.debug(
            f"Diff complete: {src.count} source, {dest.count} destination, "
            f"{self.missing_count} missing."
        )


async def run_diff(
    engine: DiffEngine,
    missing: Channel[ObjectRecord],
    errors: ErrorChannel,
) -> int:
    """
    Runs a `DiffEngine` as a pipeline stage.

    Args:
        engine (DiffEngine): An engine reading from the two extractor channels.
        missing (Channel[ObjectRecord]): Outbound channel of missing records.
        errors (ErrorChannel): Where failures are reported.

    Returns:
        int: The number of missing records sent.
    """
    try:
        async for record in engine:
            await missing.send(record)
    except StreamAborted as e:
        await missing.abort(str(e))
        return engine.missing_count
    except Exception as e:
        errors.report("diff engine", e)
        await missing.abort(str(e))
        return engine.missing_count

    await missing.close()
    return engine.missing_count
