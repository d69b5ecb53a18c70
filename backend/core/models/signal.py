"""Decision and prediction data models."""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Direction(str, Enum):
    """Predicted price direction."""

    BULLISH = "bullish"
    BEARISH = "bearish"


class Decision(str, Enum):
    """Output of the signal fuser."""

    BULLISH_ENTRY = "bullish_entry"
    BEARISH_ENTRY = "bearish_entry"
    HOLD = "hold"

    @property
    def direction(self) -> Direction | None:
        """Direction a prediction opened on this decision takes, None for HOLD."""
        if self is Decision.BULLISH_ENTRY:
            return Direction.BULLISH
        if self is Decision.BEARISH_ENTRY:
            return Direction.BEARISH
        return None


class Outcome(str, Enum):
    """Prediction outcome status."""

    PENDING = "pending"
    CORRECT = "correct"
    WRONG = "wrong"


class IndicatorSnapshot(BaseModel):
    """Indicator values for the most recent bar of a window."""

    model_config = ConfigDict(frozen=True)

    rsi: float
    boll_upper: float
    boll_middle: float
    boll_lower: float
    kdj_k: float
    kdj_d: float
    kdj_j: float
    last_close: float
    rsi_substituted: bool = False  # True when rsi is the neutral fallback


class Settlement(BaseModel):
    """Result of settling a prediction. Set once, never changed."""

    model_config = ConfigDict(frozen=True)

    settled_price: float
    settled_at: datetime
    correct: bool
    profit: float


class Prediction(BaseModel):
    """A time-boxed directional prediction owned by the ledger."""

    id: int
    opened_at: datetime
    timeframe: str
    horizon: timedelta
    direction: Direction
    entry_price: float
    stake: float
    profit_rate: float
    settlement: Settlement | None = None

    @property
    def expires_at(self) -> datetime:
        return self.opened_at + self.horizon

    @property
    def is_open(self) -> bool:
        return self.settlement is None

    @property
    def outcome(self) -> Outcome:
        if self.settlement is None:
            return Outcome.PENDING
        return Outcome.CORRECT if self.settlement.correct else Outcome.WRONG

    def is_due(self, now: datetime) -> bool:
        """Check if the prediction is open and its horizon has elapsed."""
        return self.settlement is None and now >= self.expires_at

    def is_correct(self, price: float) -> bool:
        """Check if the price observed at settlement confirms the direction."""
        if self.direction == Direction.BULLISH:
            return price > self.entry_price
        return price < self.entry_price

    def settle(self, price: float, now: datetime) -> bool:
        """
        Settle against the current price if due.
        Returns True if the prediction was settled by this call.
        """
        if not self.is_due(now):
            return False

        correct = self.is_correct(price)
        profit = self.stake * self.profit_rate if correct else -self.stake
        self.settlement = Settlement(
            settled_price=price,
            settled_at=now,
            correct=correct,
            profit=profit,
        )
        return True

    def to_view(self) -> "PredictionView":
        settlement = self.settlement
        return PredictionView(
            id=self.id,
            opened_at=self.opened_at,
            expires_at=self.expires_at,
            timeframe=self.timeframe,
            direction=self.direction,
            entry_price=self.entry_price,
            settled_price=settlement.settled_price if settlement else None,
            outcome=self.outcome,
            profit=settlement.profit if settlement else None,
        )


class PredictionView(BaseModel):
    """Read-only projection of a prediction for display."""

    model_config = ConfigDict(frozen=True)

    id: int
    opened_at: datetime
    expires_at: datetime
    timeframe: str
    direction: Direction
    entry_price: float
    settled_price: float | None = None
    outcome: Outcome = Outcome.PENDING
    profit: float | None = None


class LedgerStats(BaseModel):
    """Accuracy and profit totals over a ledger."""

    total: int = 0
    open: int = 0
    settled: int = 0
    correct: int = 0
    wrong: int = 0
    total_profit: float = 0.0

    @property
    def accuracy(self) -> float:
        """Calculate accuracy over settled predictions."""
        if self.settled == 0:
            return 0.0
        return self.correct / self.settled
