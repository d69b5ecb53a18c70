"""Offline replay of historical bars through the fuser and ledger.

Each bar's close stands in for the live price at the bar's timestamp: due
predictions are settled against it first, then the rolling window ending
at that bar is evaluated and may open a new prediction.
"""

import logging
from typing import Sequence

from core.errors import InsufficientDataError
from core.ledger import PredictionLedger
from core.models import LedgerStats, PriceBar, PriceWindow
from core.strategy import SignalFuser

logger = logging.getLogger(__name__)


def replay_bars(
    bars: Sequence[PriceBar],
    fuser: SignalFuser,
    ledger: PredictionLedger,
    timeframe: str,
    window: int = 100,
    warmup: int | None = None,
) -> LedgerStats:
    """
    Replay bars oldest to newest and return the resulting ledger stats.

    Args:
        bars: Historical bars with timestamps, oldest first
        fuser: Signal fuser to evaluate windows with
        ledger: Ledger receiving predictions (usually empty)
        timeframe: Timeframe label for every prediction
        window: Maximum number of trailing bars per evaluation
        warmup: Bars the window must hold before the first evaluation;
            defaults to the longest indicator lookback

    Raises:
        ValueError: If a bar has no timestamp
    """
    if warmup is None:
        warmup = fuser.config.indicator_periods.longest
    warmup = min(warmup, window)

    rolling = PriceWindow(max_size=window)

    for i, bar in enumerate(bars):
        if bar.timestamp is None:
            raise ValueError(f"bar {i} has no timestamp")

        ledger.tick(bar.close, bar.timestamp)
        rolling.add(bar)

        if len(rolling) < warmup:
            continue

        try:
            result = fuser.evaluate_window(rolling)
        except InsufficientDataError as e:
            logger.debug(f"Bar {i}: {e}")
            continue

        ledger.create(result.decision, bar.close, timeframe, bar.timestamp)

    return ledger.stats()
