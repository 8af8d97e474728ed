"""BinanceConnector — drive the spot and margin sync phases through the pagination engine."""

import logging
import time
from collections.abc import Awaitable, Callable
from functools import partial
from typing import NamedTuple

from pydantic import BaseModel

from ledgersync.domain.models.sync import SyncResult
from ledgersync.engine.aggregate import SyncResultAggregator
from ledgersync.engine.context import SyncContext
from ledgersync.engine.pagination import PaginationResult, paginate, paginate_exact
from ledgersync.exceptions import ConfigurationError, SyncCancelledError
from ledgersync.infra.cex.binance_client import BinanceClient
from ledgersync.parser.cex.binance_margin import CROSS_MARGIN_WALLET, ISOLATED_MARGIN_WALLET
from ledgersync.parser.registry import ParserRegistry
from ledgersync.parser.utils.timestamps import DAY_MS

logger = logging.getLogger(__name__)

PLATFORM = "binance"
# 2017-07-01, before the first Binance trade
BINANCE_GENESIS = 1_498_867_200_000
WALLETS = ("spot", "crossMargin", "isolatedMargin")


class BinanceSyncOptions(BaseModel):
    """Tuning and scope of one Binance connection's sync."""

    window_days: int = 90
    concurrency: int = 10
    cooldown_ms: int = 1000
    trades_concurrency: int = 10
    trades_cooldown_ms: int = 2000
    # Binance caps these ranges at 24 hours, 30 days and 30 days
    margin_trades_window_days: int = 1
    loans_window_days: int = 7
    transfers_window_days: int = 30
    genesis: int = BINANCE_GENESIS
    wallet: str = "Binance Spot"
    wallets: dict[str, bool] = {"spot": True}
    # restrict the trades phases to these pairs instead of every listed pair
    symbols: list[dict[str, str]] | None = None

    @property
    def window(self) -> int:
        return self.window_days * DAY_MS


PhaseFetch = Callable[[SyncContext, int, int], Awaitable[PaginationResult[dict]]]


class Phase(NamedTuple):
    label: str
    kind: str
    wallet: str
    fetch: PhaseFetch


def now_ms() -> int:
    return int(time.time() * 1000)


class BinanceConnector:
    """Fetch every enabled wallet's history and fold it into a SyncResult.

    Phases run one after another. A rate limit aborts the sync and nothing
    is returned. Cancellation stops scheduling further windows and returns
    what was fetched so far; the cursor resumes at the earliest point any
    phase has not covered, so a phase that never ran resumes at ``since``.
    """

    def __init__(self, client: BinanceClient, registry: ParserRegistry, options: BinanceSyncOptions | None = None) -> None:
        self._client = client
        self._registry = registry
        self.options = options or BinanceSyncOptions()

    def _phases(self) -> list[Phase]:
        wallets = self.options.wallets
        phases: list[Phase] = []
        if wallets.get("spot"):
            spot = self.options.wallet
            phases += [
                Phase("deposits", "deposit", spot, self._fetch_deposits),
                Phase("withdrawals", "withdrawal", spot, self._fetch_withdrawals),
                Phase("trades", "trade", spot, self._fetch_trades),
                Phase("rewards", "reward", spot, self._fetch_rewards),
            ]
        for key, wallet, isolated in (
            ("crossMargin", CROSS_MARGIN_WALLET, False),
            ("isolatedMargin", ISOLATED_MARGIN_WALLET, True),
        ):
            if not wallets.get(key):
                continue
            prefix = "isolated margin" if isolated else "cross margin"
            trades = partial(self._fetch_margin_trades, isolated=isolated)
            loans = partial(self._fetch_borrow_repay, kind="BORROW", isolated=isolated)
            repayments = partial(self._fetch_borrow_repay, kind="REPAY", isolated=isolated)
            transfers = partial(self._fetch_transfers, isolated=isolated)
            phases += [
                Phase(f"{prefix} trades", "margin-trade", wallet, trades),
                Phase(f"{prefix} loans", "margin-loan", wallet, loans),
                Phase(f"{prefix} repayments", "margin-repayment", wallet, repayments),
                Phase(f"{prefix} transfers", "margin-transfer", wallet, transfers),
            ]
        return phases

    def _check_wallets(self) -> None:
        enabled = [name for name, on in self.options.wallets.items() if on]
        if not enabled:
            raise ConfigurationError("No wallets enabled for this Binance connection")
        unsupported = [name for name in enabled if name not in WALLETS]
        if unsupported:
            raise ConfigurationError(f"Unsupported Binance wallet(s): {', '.join(unsupported)}")

    async def sync(
        self,
        ctx: SyncContext,
        connection_id: str,
        since: int | None = None,
        until: int | None = None,
    ) -> SyncResult:
        self._check_wallets()

        start = since if since is not None else self.options.genesis
        end = until if until is not None else now_ms()
        if start > end:
            raise ValueError(f"since ({start}) is after until ({end})")

        aggregator = SyncResultAggregator()
        phases = self._phases()
        # end of the contiguous range each phase has fetched; None = nothing
        covered: dict[str, int | None] = {phase.label: None for phase in phases}
        cancelled = False

        for position, phase in enumerate(phases):
            if ctx.cancelled:
                cancelled = True
                break

            percent = 100 * position / len(phases)
            await ctx.report(f"Fetching {phase.label}", percent)
            try:
                fetched = await phase.fetch(ctx, start, end)
                covered[phase.label] = end
            except SyncCancelledError as exc:
                fetched = exc.partial if isinstance(exc.partial, PaginationResult) else PaginationResult()
                covered[phase.label] = fetched.covered_until
                cancelled = True
                logger.info("Binance sync of %s cancelled during %s: %s", connection_id, phase.label, exc)

            parser = self._registry.for_record(PLATFORM, phase.kind)
            await aggregator.parse_all(ctx, parser, fetched.items, connection_id, {"wallet": phase.wallet})
            await ctx.report(f"Fetched {len(fetched.items)} {phase.label}", 100 * (position + 1) / len(phases))

            if cancelled:
                break

        new_cursor = None
        if cancelled:
            new_cursor = min(start if reached is None else reached + 1 for reached in covered.values())

        result = aggregator.build(
            until=end,
            cursor=new_cursor,
            cancelled=cancelled,
            failures=ctx.failures,
        )
        logger.info(
            "Binance sync of %s: %d rows, %d logs, %d transactions, %d skipped windows%s",
            connection_id, result.rows, len(result.log_map), len(result.tx_map),
            len(result.failures), " (cancelled)" if cancelled else "",
        )
        return result

    async def _windowed(
        self, ctx: SyncContext, fetch, start: int, end: int, label: str, window: int | None = None,
    ) -> PaginationResult[dict]:
        return await paginate(
            ctx, fetch,
            since=start, until=end, window=window or self.options.window,
            concurrency=self.options.concurrency, cooldown=self.options.cooldown_ms,
            label=label,
        )

    async def _fetch_deposits(self, ctx: SyncContext, start: int, end: int) -> PaginationResult[dict]:
        return await self._windowed(ctx, self._client.get_deposits, start, end, "deposits")

    async def _fetch_withdrawals(self, ctx: SyncContext, start: int, end: int) -> PaginationResult[dict]:
        return await self._windowed(ctx, self._client.get_withdrawals, start, end, "withdrawals")

    async def _fetch_rewards(self, ctx: SyncContext, start: int, end: int) -> PaginationResult[dict]:
        return await self._windowed(ctx, self._client.get_rewards, start, end, "rewards")

    async def _pairs(self, ctx: SyncContext) -> list[dict]:
        pairs = self.options.symbols or await self._client.get_pairs()
        await ctx.report(f"Fetched {len(pairs)} symbols")
        return pairs

    async def _fetch_trades(self, ctx: SyncContext, start: int, end: int) -> PaginationResult[dict]:
        pairs = await self._pairs(ctx)

        async def fetch_pair(index: int) -> list[dict]:
            return await self._client.get_trades(pairs[index], start, end)

        return await paginate_exact(
            ctx, fetch_pair,
            count=len(pairs),
            concurrency=self.options.trades_concurrency,
            cooldown=self.options.trades_cooldown_ms,
            label="trades",
            describe=lambda index: pairs[index]["symbol"],
        )

    async def _fetch_margin_trades(
        self, ctx: SyncContext, start: int, end: int, isolated: bool,
    ) -> PaginationResult[dict]:
        """One pass per pair, each walking ``[start, end]`` in margin-trade windows."""
        pairs = await self._pairs(ctx)
        label = "isolated margin trades" if isolated else "cross margin trades"

        async def fetch_pair(index: int) -> list[dict]:
            pair = pairs[index]

            async def fetch_window(window_start: int, window_end: int) -> list[dict]:
                return await self._client.get_margin_trades(pair, window_start, window_end, isolated=isolated)

            result = await self._windowed(
                ctx, fetch_window, start, end, f"{label} {pair['symbol']}",
                window=self.options.margin_trades_window_days * DAY_MS,
            )
            return result.items

        return await paginate_exact(
            ctx, fetch_pair,
            count=len(pairs),
            concurrency=self.options.trades_concurrency,
            cooldown=self.options.trades_cooldown_ms,
            label=label,
            describe=lambda index: pairs[index]["symbol"],
        )

    async def _fetch_borrow_repay(
        self, ctx: SyncContext, start: int, end: int, kind: str, isolated: bool,
    ) -> PaginationResult[dict]:
        async def fetch(window_start: int, window_end: int) -> list[dict]:
            return await self._client.get_margin_borrow_repay(window_start, window_end, kind, isolated=isolated)

        label = "margin loans" if kind == "BORROW" else "margin repayments"
        return await self._windowed(ctx, fetch, start, end, label, window=self.options.loans_window_days * DAY_MS)

    async def _fetch_transfers(
        self, ctx: SyncContext, start: int, end: int, isolated: bool,
    ) -> PaginationResult[dict]:
        async def fetch(window_start: int, window_end: int) -> list[dict]:
            return await self._client.get_margin_transfers(window_start, window_end, isolated=isolated)

        return await self._windowed(
            ctx, fetch, start, end, "margin transfers", window=self.options.transfers_window_days * DAY_MS,
        )
