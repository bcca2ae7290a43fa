# src/bucket_sync/signals.py
"""
Translation of process signals into cooperative cancellation.

`GracefulShutdown` turns SIGINT and SIGTERM into an `asyncio.Event`. The
sync pipeline races that event against its own completion and, once it is
set, cancels every running stage and unwinds.
"""

import asyncio
import logging
import os
import signal
from types import FrameType
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

logger: logging.Logger = logging.getLogger(__name__)

_SignalHandler = Callable[[int, Optional[FrameType]], None]

DEFAULT_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class GracefulShutdown:
    """
    An async context manager that captures POSIX signals for graceful shutdown.

    The first received signal sets the shutdown event. A second one exits
    the process immediately. Previous handlers are restored on exit.
    """

    def __init__(self, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS) -> None:
        """
        Initialize the shutdown manager.

        Args:
            signals (Iterable[signal.Signals]): The signals to intercept.
        """
        self._signals: Tuple[signal.Signals, ...] = tuple(signals)
        self._event: asyncio.Event = asyncio.Event()
        self._old_handlers: Dict[signal.Signals, Any] = {}

    async def __aenter__(self) -> asyncio.Event:
        """
        Registers signal handlers and returns the shutdown event.

        Returns:
            asyncio.Event: The event set when a handled signal is received.
        """
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()

        def _handler(sig: int, _: Optional[FrameType]) -> None:
            if self._event.is_set():
                logger.critical(
                    "Received second shutdown signal. Forcing immediate exit."
                )
                # Skips cleanup, which may be what is hanging
                os._exit(1)
            logger.warning(
                f"Received shutdown signal: {signal.strsignal(sig)}. "
                "Cancelling the sync..."
            )
            loop.call_soon_threadsafe(self._event.set)

        for sig in self._signals:
            try:
                # signal.signal must be called from the main thread
                self._old_handlers[sig] = signal.signal(sig, _handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not set handler for {sig.name}: {e}")

        return self._event

    async def __aexit__(self, *args: Any) -> None:
        """Restores original signal handlers."""
        for sig, handler in self._old_handlers.items():
            try:
                signal.signal(sig, handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not restore handler for {sig.name}: {e}")
        self._old_handlers.clear()
