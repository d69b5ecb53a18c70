"""CoinGecko REST client, used as the backup source of hourly prices."""

from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from core.errors import SourceUnavailableError
from core.models import PriceBar


class CoinGeckoClient:
    """CoinGecko market chart client.

    CoinGecko only reports one price per point, so every bar it produces is
    degenerate (low == high == close).
    """

    BASE_URL = "https://api.coingecko.com"

    name = "coingecko"

    def __init__(
        self,
        coin_id: str = "bitcoin",
        vs_currency: str = "usd",
        days: int = 5,
        base_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.coin_id = coin_id
        self.vs_currency = vs_currency
        self.days = days
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
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

    async def get_market_chart(self) -> list[list[float]]:
        """Fetch `[timestamp_ms, price]` points in ascending time order."""
        client = await self._get_client()
        params: dict[str, Any] = {
            "vs_currency": self.vs_currency,
            "days": self.days,
            "interval": "hourly",
        }
        try:
            response = await client.get(
                f"/api/v3/coins/{self.coin_id}/market_chart", params=params
            )
        except httpx.HTTPError as e:
            raise SourceUnavailableError(self.name, f"CoinGecko request failed: {e}") from e

        if response.is_error:
            raise SourceUnavailableError(
                self.name,
                f"CoinGecko returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()["prices"]
        except (ValueError, KeyError, TypeError) as e:
            raise SourceUnavailableError(self.name, f"Malformed market chart: {e}") from e

    async def fetch_recent_bars(
        self,
        symbol: str,
        bar_interval: str,
        count: int,
    ) -> list[PriceBar]:
        """Return the last `count` hourly prices as flat bars.

        `symbol` and `bar_interval` are fixed by the client configuration
        (coin id and hourly points).
        """
        points = await self.get_market_chart()
        try:
            return [
                PriceBar.flat(
                    float(price),
                    datetime.fromtimestamp(ts / 1000, tz=timezone.utc),
                )
                for ts, price in points[-count:]
            ]
        except (TypeError, ValueError, ValidationError) as e:
            raise SourceUnavailableError(self.name, f"Malformed price point: {e}") from e
