"""Pagination orchestrator — rate-limited, concurrent fetch cycles.

Two variants share one batching core:

* ``paginate`` walks a time range in windows of at most ``window`` ms.
* ``paginate_exact`` walks a fixed index range ``[0, count)`` (e.g. one call
  per trading pair). Its body may itself call ``paginate``.

Fetches run in batches of ``concurrency``; every fetch in a batch settles
before the next batch starts, and batches are separated by ``cooldown`` ms.
A generic error drops that window only. ``RateLimitError`` aborts the run once
the batch has settled. Cancellation is checked before every fetch and raises
``SyncCancelledError`` carrying the partial ``PaginationResult``.

Items are concatenated in completion order inside a batch and issue order
across batches. Callers must not rely on chronological order.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Generic, TypeVar

from ledgersync.domain.models.sync import WindowFailure
from ledgersync.engine.context import SyncContext
from ledgersync.exceptions import RateLimitError, SyncCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

WindowFetch = Callable[[int, int], Awaitable[Sequence[T]]]
IndexFetch = Callable[[int], Awaitable[Sequence[T]]]


@dataclass
class PaginationResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    failures: list[WindowFailure] = field(default_factory=list)
    total: int = 0
    completed: int = 0
    # End of the longest contiguous prefix of handled windows (windowed only).
    covered_until: int | None = None


def format_day(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000, UTC).strftime("%Y-%m-%d")


def build_windows(since: int, until: int, window: int) -> list[tuple[int, int]]:
    """Split ``[since, until]`` into consecutive ``(start, end)`` windows."""
    if window <= 0:
        raise ValueError(f"window must be positive, got {window}")
    windows: list[tuple[int, int]] = []
    start = since
    while start <= until:
        windows.append((start, min(start + window, until)))
        start += window
    return windows


async def paginate(
    ctx: SyncContext,
    fetch: WindowFetch[T],
    *,
    since: int,
    until: int,
    window: int,
    concurrency: int = 1,
    cooldown: int = 0,
    label: str = "records",
) -> PaginationResult[T]:
    """Fetch ``[since, until]`` window by window."""
    windows = build_windows(since, until, window)
    result: PaginationResult[T] = PaginationResult(total=len(windows))

    async def run_one(unit: tuple[int, int]) -> Sequence[T]:
        start, end = unit
        await ctx.debug_report(f"Fetching {label} for {format_day(start)} to {format_day(end)}")
        return await fetch(start, end)

    def on_failure(unit: tuple[int, int], exc: Exception) -> WindowFailure:
        start, end = unit
        return WindowFailure(label=label, error=str(exc), start=start, end=end)

    def describe(unit: tuple[int, int]) -> str:
        return f"{format_day(unit[0])}-{format_day(unit[1])}"

    def finalize(handled: set[int]) -> None:
        covered = None
        for pos, (_, end) in enumerate(windows):
            if pos not in handled:
                break
            covered = end
        result.covered_until = covered

    await _run_batches(
        ctx, windows, run_one, result,
        concurrency=concurrency, cooldown=cooldown,
        on_failure=on_failure, describe=describe, finalize=finalize,
    )
    return result


async def paginate_exact(
    ctx: SyncContext,
    fetch: IndexFetch[T],
    *,
    count: int,
    concurrency: int = 1,
    cooldown: int = 0,
    label: str = "records",
    describe: Callable[[int], str] | None = None,
) -> PaginationResult[T]:
    """Fetch once per index in ``[0, count)``."""
    indices = list(range(count))
    result: PaginationResult[T] = PaginationResult(total=count)
    describe_index = describe or (lambda i: f"{label} #{i}")

    async def run_one(index: int) -> Sequence[T]:
        await ctx.debug_report(f"Fetching {label} for {describe_index(index)}")
        return await fetch(index)

    def on_failure(index: int, exc: Exception) -> WindowFailure:
        return WindowFailure(label=label, error=str(exc), index=index)

    await _run_batches(
        ctx, indices, run_one, result,
        concurrency=concurrency, cooldown=cooldown,
        on_failure=on_failure, describe=describe_index, finalize=lambda handled: None,
    )
    return result


async def _run_batches(
    ctx: SyncContext,
    units: list[U],
    run_one: Callable[[U], Awaitable[Sequence[T]]],
    result: PaginationResult[T],
    *,
    concurrency: int,
    cooldown: int,
    on_failure: Callable[[U, Exception], WindowFailure],
    describe: Callable[[U], str],
    finalize: Callable[[set[int]], None],
) -> None:
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    handled: set[int] = set()

    def cancel() -> SyncCancelledError:
        finalize(handled)
        return SyncCancelledError(ctx.token.reason, partial=result)

    async def attempt(pos: int, unit: U) -> None:
        if ctx.cancelled:
            return
        try:
            items = await run_one(unit)
        except (RateLimitError, SyncCancelledError) as exc:
            if isinstance(exc, SyncCancelledError) and isinstance(exc.partial, PaginationResult):
                # nested pagination: keep what the inner loop fetched
                result.items.extend(exc.partial.items)
                result.failures.extend(exc.partial.failures)
            raise
        except Exception as exc:
            failure = on_failure(unit, exc)
            result.failures.append(failure)
            ctx.failures.append(failure)
            handled.add(pos)
            result.completed += 1
            logger.warning("Skipping %s %s: %s", failure.label, describe(unit), exc)
            await ctx.report(f"Skipping {describe(unit)}. {exc}")
            return
        result.items.extend(items)
        handled.add(pos)
        result.completed += 1

    for batch_start in range(0, len(units), concurrency):
        if ctx.cancelled:
            raise cancel()
        if batch_start and cooldown:
            await asyncio.sleep(cooldown / 1000)
            if ctx.cancelled:
                raise cancel()

        batch = units[batch_start: batch_start + concurrency]
        outcomes = await asyncio.gather(
            *(attempt(batch_start + offset, unit) for offset, unit in enumerate(batch)),
            return_exceptions=True,
        )

        errors = [o for o in outcomes if isinstance(o, BaseException)]
        for err in errors:
            if isinstance(err, RateLimitError):
                finalize(handled)
                raise err
        for err in errors:
            if not isinstance(err, SyncCancelledError):
                raise err
        if ctx.cancelled or any(isinstance(err, SyncCancelledError) for err in errors):
            raise cancel()

    finalize(handled)
