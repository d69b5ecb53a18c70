"""Binance spot REST API client for recent klines and the ticker price."""

import asyncio
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from core.errors import SourceUnavailableError
from core.models import PriceBar


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            now = asyncio.get_running_loop().time()
            wait_time = self.last_call + self.interval - now
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = asyncio.get_running_loop().time()


class BinanceRestClient:
    """Binance spot REST API client."""

    BASE_URL = "https://api.binance.com"

    name = "binance"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.rate_limiter = RateLimiter()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting.

        Raises:
            SourceUnavailableError: On transport errors, non-2xx responses
                or a body that is not JSON
        """
        await self.rate_limiter.acquire()
        client = await self._get_client()
        try:
            response = await client.request(method, endpoint, params=params)
        except httpx.HTTPError as e:
            raise SourceUnavailableError(self.name, f"Binance request failed: {e}") from e

        if response.is_error:
            raise SourceUnavailableError(
                self.name,
                f"Binance returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailableError(self.name, f"Binance sent invalid JSON: {e}") from e

    async def get_klines(
        self,
        symbol: str,
        interval: str,
        limit: int = 100,
    ) -> list[PriceBar]:
        """
        Fetch the most recent K-lines from Binance.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval: K-line interval (e.g., "1h")
            limit: Number of K-lines (max 1000)

        Returns:
            List of PriceBar objects, oldest first
        """
        params: dict[str, Any] = {
            "symbol": symbol,
            "interval": interval,
            "limit": min(limit, 1000),
        }
        data = await self._request("GET", "/api/v3/klines", params)

        # Rows: [open_time, open, high, low, close, volume, ...]
        try:
            return [
                PriceBar(
                    close=float(item[4]),
                    low=float(item[3]),
                    high=float(item[2]),
                    timestamp=datetime.fromtimestamp(item[0] / 1000, tz=timezone.utc),
                )
                for item in data
            ]
        except (TypeError, IndexError, ValueError, ValidationError) as e:
            raise SourceUnavailableError(self.name, f"Malformed kline payload: {e}") from e

    async def fetch_recent_bars(
        self,
        symbol: str,
        bar_interval: str,
        count: int,
    ) -> list[PriceBar]:
        return await self.get_klines(symbol, bar_interval, count)

    async def get_ticker_price(self, symbol: str) -> float:
        """Get the latest traded price for a symbol."""
        data = await self._request("GET", "/api/v3/ticker/price", {"symbol": symbol})
        try:
            price = float(data["price"])
        except (TypeError, KeyError, ValueError) as e:
            raise SourceUnavailableError(self.name, f"Malformed ticker payload: {e}") from e
        if price <= 0:
            raise SourceUnavailableError(self.name, f"Non-positive ticker price {price}")
        return price
