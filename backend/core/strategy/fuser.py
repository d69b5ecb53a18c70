"""Signal fuser: combines RSI, Bollinger Bands and KDJ into one decision.

This module is pure business logic with no I/O dependencies.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from core.indicators import IndicatorCalculator
from core.models import (
    Decision,
    FusionThresholds,
    IndicatorSnapshot,
    PriceBar,
    PriceWindow,
    StrategyConfig,
)

logger = logging.getLogger(__name__)

_DEFAULT_THRESHOLDS = FusionThresholds()


def fuse(
    last_close: float,
    rsi: float,
    boll_upper: float,
    boll_lower: float,
    kdj_j: float,
    thresholds: FusionThresholds = _DEFAULT_THRESHOLDS,
) -> Decision:
    """
    Combine indicator values into a decision.

    Rules are checked in order and the first match wins:
    - BULLISH_ENTRY: close above the lower band, J oversold, RSI oversold
    - BEARISH_ENTRY: close below the upper band, J overbought, RSI overbought
    - HOLD otherwise
    """
    if (
        last_close > boll_lower
        and kdj_j < thresholds.kdj_low
        and rsi < thresholds.rsi_low
    ):
        return Decision.BULLISH_ENTRY

    if (
        last_close < boll_upper
        and kdj_j > thresholds.kdj_high
        and rsi > thresholds.rsi_high
    ):
        return Decision.BEARISH_ENTRY

    return Decision.HOLD


def fuse_snapshot(
    snapshot: IndicatorSnapshot,
    thresholds: FusionThresholds = _DEFAULT_THRESHOLDS,
) -> Decision:
    return fuse(
        snapshot.last_close,
        snapshot.rsi,
        snapshot.boll_upper,
        snapshot.boll_lower,
        snapshot.kdj_j,
        thresholds,
    )


@dataclass
class FusionResult:
    """Result of evaluating a price window.

    Attributes:
        decision: Fused decision.
        snapshot: Indicator values the decision was made from.
    """

    decision: Decision
    snapshot: IndicatorSnapshot


class SignalFuser:
    """Evaluates a window of bars into a decision using a StrategyConfig."""

    def __init__(self, config: StrategyConfig | None = None):
        self.config = config or StrategyConfig()
        self.calculator = IndicatorCalculator(self.config.indicator_periods)

    def evaluate(self, bars: Sequence[PriceBar]) -> FusionResult:
        """
        Compute indicators over the bars and fuse them.

        A window too short for RSI uses the configured neutral RSI instead.

        Raises:
            InsufficientDataError: If no bars are given
        """
        return self._evaluate(
            [b.close for b in bars],
            [b.low for b in bars],
            [b.high for b in bars],
        )

    def evaluate_window(self, window: PriceWindow) -> FusionResult:
        """Evaluate the bars currently held by a rolling window."""
        return self._evaluate(window.get_closes(), window.get_lows(), window.get_highs())

    def _evaluate(
        self,
        closes: list[float],
        lows: list[float],
        highs: list[float],
    ) -> FusionResult:
        snapshot = self.calculator.calculate_latest(
            closes, lows, highs, neutral_rsi=self.config.neutral_rsi
        )
        decision = fuse_snapshot(snapshot, self.config.fusion_thresholds)

        logger.debug(
            f"Fused {decision.value}: close={snapshot.last_close:.2f} "
            f"rsi={snapshot.rsi:.2f} boll=[{snapshot.boll_lower:.2f}, "
            f"{snapshot.boll_upper:.2f}] j={snapshot.kdj_j:.2f}"
        )
        return FusionResult(decision=decision, snapshot=snapshot)
