"""Live price sources: a cell fed by the trade stream, or ticker polling."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.clients import BinanceRestClient
from core.errors import SourceUnavailableError
from core.sources import PriceSample

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LivePriceCell:
    """
    Holds the most recent live price pushed by a stream.

    Reads fail with SourceUnavailableError until the first update arrives,
    and again whenever the stored price is older than `max_age`.
    """

    def __init__(self, max_age: float = 30.0, clock: Clock = utc_now):
        self.max_age = timedelta(seconds=max_age)
        self._clock = clock
        self._sample: PriceSample | None = None

    def update(self, price: float, observed_at: datetime | None = None) -> None:
        """Store a new price sample; older samples than the stored one are ignored."""
        if not price > 0:
            logger.warning(f"Ignoring non-positive price {price}")
            return
        observed_at = observed_at or self._clock()
        if self._sample and observed_at < self._sample.observed_at:
            return
        self._sample = PriceSample(price=price, observed_at=observed_at)

    async def on_trade(self, price: float, observed_at: datetime) -> None:
        """Trade stream callback."""
        self.update(price, observed_at)

    async def fetch_price_sample(self) -> PriceSample:
        sample = self._sample
        if sample is None:
            raise SourceUnavailableError("live_price", "no live price received yet")
        age = self._clock() - sample.observed_at
        if age > self.max_age:
            raise SourceUnavailableError(
                "live_price",
                f"live price is stale ({age.total_seconds():.1f}s old)",
            )
        return sample

    async def fetch_current_price(self) -> float:
        return (await self.fetch_price_sample()).price


class PolledPriceSource:
    """Pull-based live price from the Binance ticker endpoint."""

    def __init__(
        self,
        client: BinanceRestClient,
        symbol: str,
        clock: Clock = utc_now,
    ):
        self.client = client
        self.symbol = symbol
        self._clock = clock

    async def fetch_price_sample(self) -> PriceSample:
        price = await self.client.get_ticker_price(self.symbol)
        # Stamped on receipt
        return PriceSample(price=price, observed_at=self._clock())

    async def fetch_current_price(self) -> float:
        return (await self.fetch_price_sample()).price
