"""Business services."""

from app.services.driver import (
    CycleResult,
    PredictionDriver,
    STATUS_INSUFFICIENT,
    STATUS_OK,
    STATUS_UNAVAILABLE,
)
from app.services.ohlc_source import FallbackOHLCSource
from app.services.price_feed import LivePriceCell, PolledPriceSource, utc_now

__all__ = [
    "CycleResult",
    "PredictionDriver",
    "STATUS_INSUFFICIENT",
    "STATUS_OK",
    "STATUS_UNAVAILABLE",
    "FallbackOHLCSource",
    "LivePriceCell",
    "PolledPriceSource",
    "utc_now",
]
