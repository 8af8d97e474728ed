import asyncio
import logging
import time

import httpx

from ledgersync.exceptions import FetchError, RateLimitError

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUSES = (418, 429)
USED_WEIGHT_HEADER = "X-Mbx-Used-Weight-1m"


class RateLimitedClient:
    """Async HTTP client with simple interval-based rate limiting.

    Upstream throttling (429/418) surfaces as ``RateLimitError`` carrying the
    used-weight and retry-after headers; timeouts, transport errors and 5xx
    responses surface as ``FetchError``. Other statuses are returned as-is.
    """

    def __init__(
        self,
        rate_per_second: float = 5.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._min_interval = 1.0 / rate_per_second
        self._last_request_time = 0.0
        self._lock = asyncio.Lock()
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _wait_for_slot(self) -> None:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

    async def _send(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        await self._wait_for_slot()
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timeout calling {url}") from exc
        except httpx.TransportError as exc:
            raise FetchError(f"Transport error calling {url}: {exc}") from exc
        return self._check(resp)

    @staticmethod
    def _check(resp: httpx.Response) -> httpx.Response:
        if resp.status_code in RATE_LIMIT_STATUSES:
            used_weight = resp.headers.get(USED_WEIGHT_HEADER) or resp.headers.get("X-Mbx-Used-Weight")
            retry_after = resp.headers.get("Retry-After")
            logger.warning(
                "Rate limited by %s (status %d, weight %s, retry after %s)",
                resp.request.url.host, resp.status_code, used_weight, retry_after,
            )
            raise RateLimitError(
                f"Rate limited by {resp.request.url.host} (HTTP {resp.status_code})",
                status_code=resp.status_code,
                used_weight=used_weight,
                retry_after=retry_after,
            )
        if resp.status_code >= 500:
            raise FetchError(f"HTTP {resp.status_code} from {resp.request.url.host}", status_code=resp.status_code)
        return resp

    async def get(self, url: str, params: dict | None = None, headers: dict | None = None) -> httpx.Response:
        return await self._send("GET", url, params=params, headers=headers)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RateLimitedClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
