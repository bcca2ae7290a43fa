# src/bucket_sync/errors.py
"""
Central error reporting for the pipeline stages.

Stages never decide on their own whether a failure ends the run. They hand
every failure to an `ErrorChannel`, which classifies it: a `CopyError` is
recorded against its key and the run continues, anything else is fatal and
wakes the orchestrator so it can cancel the remaining stages.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from bucket_sync.exceptions import CopyError

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageFailure:
    """
    A fatal failure reported by a pipeline stage.

    Attributes:
        stage (str): Name of the stage that failed.
        error (BaseException): The exception it raised.
    """

    stage: str
    error: BaseException


class ErrorChannel:
    """Collects stage failures and signals the first fatal one."""

    def __init__(self) -> None:
        self._fatal_event: asyncio.Event = asyncio.Event()
        self._fatal: List[StageFailure] = []
        self._copy_failures: List[CopyError] = []

    def report(self, stage: str, error: BaseException) -> None:
        """
        Reports a failure raised inside a stage.

        Args:
            stage (str): Name of the reporting stage.
            error (BaseException): The failure.
        """
        if isinstance(error, CopyError):
            self._copy_failures.append(error)
            logger.error(f"[{stage}] {error}")
            return

        self._fatal.append(StageFailure(stage=stage, error=error))
        logger.error(f"[{stage}] Fatal error: {error}")
        self._fatal_event.set()

    @property
    def first_fatal(self) -> Optional[StageFailure]:
        """The first fatal failure reported, if any."""
        return self._fatal[0] if self._fatal else None

    @property
    def failed_keys(self) -> List[str]:
        """Keys whose copy failed, in the order the failures were reported."""
        return [failure.key for failure in self._copy_failures]

    async def wait_fatal(self) -> None:
        """Waits until a fatal failure has been reported."""
        await self._fatal_event.wait()
