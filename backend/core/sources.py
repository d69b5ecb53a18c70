"""Protocols for the data sources the engine depends on.

This module provides:
- PriceSample: a live price together with the time it was observed
- OHLCSource: anything that can return recent bars for a symbol
- PriceSource: anything that can return the current live price
- Callback type aliases used by the driver
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Protocol, runtime_checkable

from core.models import Prediction, PriceBar


@dataclass(frozen=True, slots=True)
class PriceSample:
    """A live price and when it was observed."""

    price: float
    observed_at: datetime


PredictionCallback = Callable[[Prediction], Awaitable[None]]


@runtime_checkable
class OHLCSource(Protocol):
    """Source of recent OHLC bars, oldest first."""

    @property
    def name(self) -> str:
        """Short identifier used in logs and errors (e.g., 'binance')."""
        ...

    async def fetch_recent_bars(
        self,
        symbol: str,
        bar_interval: str,
        count: int,
    ) -> list[PriceBar]:
        """Fetch the most recent `count` bars.

        Raises:
            SourceUnavailableError: On any transport or payload failure.
        """
        ...


@runtime_checkable
class PriceSource(Protocol):
    """Source of the current live price."""

    async def fetch_price_sample(self) -> PriceSample:
        """Return the latest price with its observation time.

        Raises:
            SourceUnavailableError: If no usable price is available.
        """
        ...

    async def fetch_current_price(self) -> float:
        """Return the latest price.

        Raises:
            SourceUnavailableError: If no usable price is available.
        """
        ...
