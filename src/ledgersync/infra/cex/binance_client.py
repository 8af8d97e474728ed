"""Binance REST API client with HMAC-SHA256 authentication."""

import hashlib
import hmac
import logging
import time
from urllib.parse import urlencode

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ledgersync.exceptions import ExternalServiceError, FetchError
from ledgersync.infra.http.rate_limited_client import RateLimitedClient

logger = logging.getLogger(__name__)

BASE_URL = "https://api.binance.com"
RECV_WINDOW = 60_000
TRADES_PAGE_LIMIT = 1000
ROWS_PAGE_SIZE = 100
FLEXIBLE_REWARD_TYPES = ("REWARDS", "BONUS", "REALTIME")
CROSS_MARGIN_ACCOUNT = "CROSS_MARGIN"
ISOLATED_MARGIN_ACCOUNT = "ISOLATED_MARGIN"


class BinanceClient:
    """Authenticated Binance REST API client.

    Every windowed method takes ``start``/``end`` in ms and returns raw
    records. Transient failures are retried a few times; rate limits
    (``RateLimitError``) are never retried.
    """

    def __init__(self, api_key: str, api_secret: str, http_client: RateLimitedClient, base_url: str = BASE_URL) -> None:
        self._api_key = api_key
        self._api_secret = api_secret
        self._http = http_client
        self._base_url = base_url

    def _sign(self, params: dict) -> dict:
        """Add timestamp and HMAC-SHA256 signature to request params."""
        params["timestamp"] = int(time.time() * 1000)
        params["recvWindow"] = RECV_WINDOW
        query_string = urlencode(params)
        signature = hmac.new(
            self._api_secret.encode(), query_string.encode(), hashlib.sha256
        ).hexdigest()
        params["signature"] = signature
        return params

    @retry(
        retry=retry_if_exception_type(FetchError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        reraise=True,
    )
    async def _request(self, path: str, params: dict | None = None, signed: bool = True) -> list | dict:
        """Make an (optionally signed) GET request."""
        params = dict(params or {})
        headers = None
        if signed:
            params = self._sign(params)
            headers = {"X-MBX-APIKEY": self._api_key}

        resp = await self._http.get(f"{self._base_url}{path}", params=params, headers=headers)
        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.status_code != 200 or data is None:
            message = data.get("msg", "") if isinstance(data, dict) else resp.text
            logger.error("Binance %s returned HTTP %d: %s", path, resp.status_code, message)
            raise ExternalServiceError(f"Binance API error {resp.status_code}: {message}")
        if isinstance(data, dict) and "code" in data and data["code"] not in (0, 200):
            raise ExternalServiceError(f"Binance API error {data.get('code')}: {data.get('msg', '')}")

        return data

    async def get_deposits(self, start: int, end: int) -> list[dict]:
        """GET /sapi/v1/capital/deposit/hisrec — deposit history (max 90 days)."""
        result = await self._request("/sapi/v1/capital/deposit/hisrec", {"startTime": start, "endTime": end})
        return result if isinstance(result, list) else []

    async def get_withdrawals(self, start: int, end: int) -> list[dict]:
        """GET /sapi/v1/capital/withdraw/history — withdrawal history (max 90 days)."""
        result = await self._request("/sapi/v1/capital/withdraw/history", {"startTime": start, "endTime": end})
        return result if isinstance(result, list) else []

    async def get_pairs(self) -> list[dict]:
        """GET /api/v3/exchangeInfo — public endpoint (no auth)."""
        info = await self._request("/api/v3/exchangeInfo", signed=False)
        symbols = info.get("symbols", []) if isinstance(info, dict) else []
        return [
            {"symbol": s["symbol"], "baseAsset": s["baseAsset"], "quoteAsset": s["quoteAsset"]}
            for s in symbols
        ]

    async def _walk_trades(self, path: str, pair: dict, params: dict, start: int, end: int) -> list[dict]:
        """Page a trade list forward by ``fromId`` and keep trades inside ``[start, end]``.

        Each trade is tagged with the pair's base and quote asset. Paging stops
        on a short page or once the page reaches past ``end``.
        """
        trades: list[dict] = []
        while True:
            page = await self._request(path, params)
            if not isinstance(page, list) or not page:
                break
            trades.extend(
                {**trade, "baseAsset": pair["baseAsset"], "quoteAsset": pair["quoteAsset"]}
                for trade in page
                if start <= trade["time"] <= end
            )
            if len(page) < TRADES_PAGE_LIMIT or page[-1]["time"] > end:
                break
            # fromId cannot be combined with a time range
            params = {key: value for key, value in params.items() if key not in ("startTime", "endTime")}
            params["fromId"] = page[-1]["id"] + 1
        return trades

    async def get_trades(self, pair: dict, start: int, end: int) -> list[dict]:
        """GET /api/v3/myTrades — all trades of one pair within ``[start, end]``.

        Without ``fromId`` Binance answers with the most recent trades only,
        so the walk starts from id 0.
        """
        params = {"symbol": pair["symbol"], "limit": TRADES_PAGE_LIMIT, "fromId": 0}
        return await self._walk_trades("/api/v3/myTrades", pair, params, start, end)

    async def get_margin_trades(self, pair: dict, start: int, end: int, isolated: bool = False) -> list[dict]:
        """GET /sapi/v1/margin/myTrades — margin trades of one pair (max 24h per call)."""
        params = {
            "symbol": pair["symbol"],
            "isIsolated": "TRUE" if isolated else "FALSE",
            "startTime": start,
            "endTime": end,
            "limit": TRADES_PAGE_LIMIT,
        }
        return await self._walk_trades("/sapi/v1/margin/myTrades", pair, params, start, end)

    async def get_margin_borrow_repay(self, start: int, end: int, kind: str, isolated: bool = False) -> list[dict]:
        """GET /sapi/v1/margin/borrow-repay — ``BORROW`` or ``REPAY`` records of one margin account."""
        rows = await self._get_rows(
            "/sapi/v1/margin/borrow-repay",
            {"type": kind, "startTime": start, "endTime": end},
        )
        return [row for row in rows if bool(row.get("isolatedSymbol")) == isolated]

    async def get_margin_transfers(self, start: int, end: int, isolated: bool = False) -> list[dict]:
        """GET /sapi/v1/margin/transfer — transfers into or out of one margin account."""
        account = ISOLATED_MARGIN_ACCOUNT if isolated else CROSS_MARGIN_ACCOUNT
        rows = await self._get_rows("/sapi/v1/margin/transfer", {"startTime": start, "endTime": end})
        return [row for row in rows if account in (row.get("transFrom"), row.get("transTo"))]

    async def _get_rows(self, path: str, params: dict) -> list[dict]:
        """Collect every ``rows`` page of a ``current``/``size`` paged endpoint."""
        rows: list[dict] = []
        current = 1
        while True:
            data = await self._request(path, {**params, "current": current, "size": ROWS_PAGE_SIZE})
            page = data.get("rows", []) if isinstance(data, dict) else []
            rows.extend(page)
            if len(page) < ROWS_PAGE_SIZE:
                break
            current += 1
        return rows

    async def get_flexible_rewards(self, start: int, end: int, reward_type: str) -> list[dict]:
        """GET /sapi/v1/simple-earn/flexible/history/rewardsRecord."""
        return await self._get_rows(
            "/sapi/v1/simple-earn/flexible/history/rewardsRecord",
            {"startTime": start, "endTime": end, "type": reward_type},
        )

    async def get_locked_rewards(self, start: int, end: int) -> list[dict]:
        """GET /sapi/v1/simple-earn/locked/history/rewardsRecord."""
        return await self._get_rows(
            "/sapi/v1/simple-earn/locked/history/rewardsRecord",
            {"startTime": start, "endTime": end},
        )

    async def get_rewards(self, start: int, end: int) -> list[dict]:
        """Locked plus every flexible reward type for one window."""
        rewards = await self.get_locked_rewards(start, end)
        for reward_type in FLEXIBLE_REWARD_TYPES:
            rewards.extend(await self.get_flexible_rewards(start, end, reward_type))
        return rewards
