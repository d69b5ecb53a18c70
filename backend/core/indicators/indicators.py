"""Technical indicators for signal generation.

All functions take price series ordered oldest to newest and return the
value for the most recent bar. They are pure NumPy computations with no
state carried between calls.
"""

import logging
from typing import Sequence

import numpy as np

from core.errors import InsufficientDataError
from core.models import IndicatorPeriods, IndicatorSnapshot

logger = logging.getLogger(__name__)

# Stochastic value used when the high/low range has zero width
NEUTRAL_RSV = 50.0

# RSI is reported to two decimals, so thresholds compare the rounded value
RSI_DECIMALS = 2

# K and D are seeded at this value on every call (no recursive carry-over)
KDJ_SEED = 50.0


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def rsi(closes: Sequence[float], period: int = 14) -> float:
    """
    Calculate the Relative Strength Index for the latest close.

    Uses Wilder's smoothing: the first average gain/loss is the simple mean
    of the first `period` changes, later ones are
    avg = (prev_avg * (period - 1) + change) / period.

    Args:
        closes: Sequence of close prices
        period: RSI period

    Returns:
        RSI value in [0, 100], rounded to RSI_DECIMALS

    Raises:
        InsufficientDataError: If fewer than period + 1 closes are given
    """
    if len(closes) < period + 1:
        raise InsufficientDataError("RSI", period + 1, len(closes))

    deltas = np.diff(_as_array(closes))
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

    if avg_loss == 0:
        return 100.0
    if avg_gain == 0:
        return 0.0

    rs = avg_gain / avg_loss
    return round(100.0 - 100.0 / (1.0 + rs), RSI_DECIMALS)


def bollinger_bands(
    closes: Sequence[float],
    period: int = 20,
    k: float = 2.0,
) -> tuple[float, float, float]:
    """
    Calculate Bollinger Bands over the trailing `period` closes.

    upper = mean + k * stddev
    lower = mean - k * stddev

    Uses the population standard deviation. With fewer than `period` closes
    the bands are computed over whatever is available.

    Args:
        closes: Sequence of close prices
        period: Lookback period
        k: Band width in standard deviations

    Returns:
        Tuple of (upper, middle, lower)

    Raises:
        InsufficientDataError: If no closes are given
    """
    if len(closes) == 0:
        raise InsufficientDataError("Bollinger Bands", 1, 0)

    window = _as_array(closes)[-period:]
    mean = float(np.mean(window))
    stddev = float(np.std(window))

    return mean + k * stddev, mean, mean - k * stddev


def raw_stochastic_value(
    closes: Sequence[float],
    lows: Sequence[float],
    highs: Sequence[float],
    period: int = 9,
) -> float:
    """
    Calculate RSV = (last_close - lowest_low) / (highest_high - lowest_low) * 100.

    Returns NEUTRAL_RSV when the high/low range over the period is zero.
    """
    if not (len(closes) == len(lows) == len(highs)):
        raise ValueError("closes, lows and highs must have the same length")
    if len(closes) == 0:
        raise InsufficientDataError("KDJ", 1, 0)

    lowest = float(np.min(_as_array(lows)[-period:]))
    highest = float(np.max(_as_array(highs)[-period:]))

    if highest == lowest:
        return NEUTRAL_RSV

    return (float(closes[-1]) - lowest) / (highest - lowest) * 100.0


def stochastic_kdj(
    closes: Sequence[float],
    lows: Sequence[float],
    highs: Sequence[float],
    period: int = 9,
) -> tuple[float, float, float]:
    """
    Calculate the KDJ stochastic oscillator for the latest bar.

    This is the simplified single-step form: K and D start from KDJ_SEED on
    every call instead of the previous bar's values.

    K = 2/3 * 50 + 1/3 * RSV
    D = 2/3 * 50 + 1/3 * K
    J = 3K - 2D

    Args:
        closes: Sequence of close prices
        lows: Sequence of low prices
        highs: Sequence of high prices
        period: Lookback period for highest high / lowest low

    Returns:
        Tuple of (k, d, j)
    """
    rsv = raw_stochastic_value(closes, lows, highs, period)
    k = (2.0 / 3.0) * KDJ_SEED + (1.0 / 3.0) * rsv
    d = (2.0 / 3.0) * KDJ_SEED + (1.0 / 3.0) * k
    j = 3.0 * k - 2.0 * d
    return k, d, j


class IndicatorCalculator:
    """Calculator for all technical indicators needed by the signal fuser."""

    def __init__(self, periods: IndicatorPeriods | None = None):
        self.periods = periods or IndicatorPeriods()

    def calculate_latest(
        self,
        closes: list[float],
        lows: list[float],
        highs: list[float],
        neutral_rsi: float | None = None,
    ) -> IndicatorSnapshot:
        """
        Calculate indicators for the latest bar.

        Args:
            closes: List of close prices (oldest first)
            lows: List of low prices
            highs: List of high prices
            neutral_rsi: Value to use for RSI when there are not enough
                closes; None re-raises InsufficientDataError instead

        Returns:
            IndicatorSnapshot for the latest bar

        Raises:
            InsufficientDataError: If the window is empty, or RSI cannot be
                computed and no neutral_rsi is given
        """
        if not closes:
            raise InsufficientDataError("indicators", self.periods.longest, 0)

        substituted = False
        try:
            rsi_value = rsi(closes, self.periods.rsi)
        except InsufficientDataError as e:
            if neutral_rsi is None:
                raise
            logger.debug(f"{e}; using neutral RSI {neutral_rsi}")
            rsi_value = neutral_rsi
            substituted = True

        upper, middle, lower = bollinger_bands(
            closes, self.periods.boll, self.periods.boll_k
        )
        k, d, j = stochastic_kdj(closes, lows, highs, self.periods.kdj)

        return IndicatorSnapshot(
            rsi=rsi_value,
            boll_upper=upper,
            boll_middle=middle,
            boll_lower=lower,
            kdj_k=k,
            kdj_d=d,
            kdj_j=j,
            last_close=float(closes[-1]),
            rsi_substituted=substituted,
        )
