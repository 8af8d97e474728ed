"""SyncContext — progress sink, cancellation token and accumulators for one sync run."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ledgersync.domain.models.sync import WindowFailure

logger = logging.getLogger(__name__)

# (percent or None, message). None percent = informational, leave the bar alone.
ProgressUpdate = tuple[float | None, str]
ProgressCallback = Callable[[ProgressUpdate], Awaitable[None]]


async def log_progress(update: ProgressUpdate) -> None:
    """Default progress sink: write updates to the module logger."""
    percent, message = update
    if percent is None:
        logger.info("%s", message)
    else:
        logger.info("[%3.0f%%] %s", percent, message)


class CancellationToken:
    """Cooperative cancellation flag shared by every unit of work in a sync."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str = "Sync cancelled"

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class SyncContext:
    """Explicit state threaded through every call of a sync run."""

    def __init__(
        self,
        progress: ProgressCallback = log_progress,
        token: CancellationToken | None = None,
        debug: bool = False,
    ) -> None:
        self.progress = progress
        self.token = token or CancellationToken()
        self.debug = debug
        self.failures: list[WindowFailure] = []

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    async def report(self, message: str, percent: float | None = None) -> None:
        await self.progress((percent, message))

    async def debug_report(self, message: str) -> None:
        """Fine-grained progress, only emitted in debug mode."""
        if self.debug:
            await self.progress((None, message))
