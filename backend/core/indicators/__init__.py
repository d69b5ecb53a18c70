"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    KDJ_SEED,
    NEUTRAL_RSV,
    rsi,
    bollinger_bands,
    raw_stochastic_value,
    stochastic_kdj,
    IndicatorCalculator,
)

__all__ = [
    "KDJ_SEED",
    "NEUTRAL_RSV",
    "rsi",
    "bollinger_bands",
    "raw_stochastic_value",
    "stochastic_kdj",
    "IndicatorCalculator",
]
