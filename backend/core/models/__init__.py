"""Core data models."""

from core.models.kline import PriceBar, PriceWindow
from core.models.signal import (
    Decision,
    Direction,
    IndicatorSnapshot,
    LedgerStats,
    Outcome,
    Prediction,
    PredictionView,
    Settlement,
)
from core.models.config import (
    DEFAULT_TIMEFRAMES,
    FusionThresholds,
    IndicatorPeriods,
    StrategyConfig,
    TimeframeConfig,
)

__all__ = [
    "PriceBar",
    "PriceWindow",
    "Decision",
    "Direction",
    "IndicatorSnapshot",
    "LedgerStats",
    "Outcome",
    "Prediction",
    "PredictionView",
    "Settlement",
    "DEFAULT_TIMEFRAMES",
    "FusionThresholds",
    "IndicatorPeriods",
    "StrategyConfig",
    "TimeframeConfig",
]
