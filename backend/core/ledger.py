"""Prediction ledger: opens predictions on decisions and settles them at expiry.

The ledger is the only mutable shared state in the engine. `create` and
`tick` are synchronous single-pass operations serialized by one lock, so a
record is never visible half-initialized and never settled twice.
"""

import logging
import threading
from datetime import datetime

from core.models import (
    Decision,
    LedgerStats,
    Prediction,
    PredictionView,
    StrategyConfig,
)

logger = logging.getLogger(__name__)


class PredictionLedger:
    """
    Ordered collection of predictions with an open -> settled lifecycle.

    Records are appended by `create` and settled in place by `tick`; they
    are never removed or re-opened. Readers get deep copies.
    """

    def __init__(self, config: StrategyConfig | None = None):
        self.config = config or StrategyConfig()
        self._predictions: list[Prediction] = []
        self._last_price: float | None = None
        self._lock = threading.Lock()

    def create(
        self,
        decision: Decision,
        current_price: float,
        timeframe: str,
        now: datetime,
    ) -> Prediction | None:
        """
        Open a prediction for a directional decision.

        Args:
            decision: Fused decision; HOLD is a no-op
            current_price: Entry price
            timeframe: Timeframe label selecting horizon and profit rate
            now: Opening time

        Returns:
            Copy of the new prediction, or None for HOLD

        Raises:
            KeyError: If the timeframe label is not configured
        """
        direction = decision.direction
        if direction is None:
            return None

        preset = self.config.get_timeframe(timeframe)

        with self._lock:
            prediction = Prediction(
                id=len(self._predictions),
                opened_at=now,
                timeframe=timeframe,
                horizon=preset.horizon,
                direction=direction,
                entry_price=current_price,
                stake=self.config.base_stake,
                profit_rate=preset.profit_rate,
            )
            self._predictions.append(prediction)
            created = prediction.model_copy(deep=True)

        logger.info(
            f"Opened prediction #{created.id}: {direction.value} "
            f"entry={current_price} timeframe={timeframe} "
            f"expires={created.expires_at.isoformat()}"
        )
        return created

    def tick(self, current_price: float, now: datetime) -> list[Prediction]:
        """
        Settle every open prediction whose horizon has elapsed.

        Already settled predictions are left untouched, so repeated calls
        with the same inputs change nothing.

        Returns:
            Copies of the predictions settled by this call
        """
        settled: list[Prediction] = []

        with self._lock:
            self._last_price = current_price
            for prediction in self._predictions:
                if prediction.settle(current_price, now):
                    settled.append(prediction.model_copy(deep=True))

        for prediction in settled:
            s = prediction.settlement
            logger.info(
                f"Settled prediction #{prediction.id}: {prediction.direction.value} "
                f"entry={prediction.entry_price} settled={s.settled_price} "
                f"{prediction.outcome.value} profit={s.profit:+.2f}"
            )
        return settled

    def snapshot(self) -> list[Prediction]:
        """Get copies of all predictions in insertion order."""
        with self._lock:
            return [p.model_copy(deep=True) for p in self._predictions]

    def views(self) -> list[PredictionView]:
        """Get read-only display projections of all predictions."""
        with self._lock:
            return [p.to_view() for p in self._predictions]

    def stats(self) -> LedgerStats:
        """Get accuracy and profit totals."""
        stats = LedgerStats()
        with self._lock:
            for prediction in self._predictions:
                stats.total += 1
                if prediction.settlement is None:
                    stats.open += 1
                    continue
                stats.settled += 1
                stats.total_profit += prediction.settlement.profit
                if prediction.settlement.correct:
                    stats.correct += 1
                else:
                    stats.wrong += 1
        return stats

    @property
    def last_price(self) -> float | None:
        """Most recent live price passed to `tick`."""
        return self._last_price

    @property
    def open_count(self) -> int:
        with self._lock:
            return sum(1 for p in self._predictions if p.settlement is None)

    def __len__(self) -> int:
        return len(self._predictions)
