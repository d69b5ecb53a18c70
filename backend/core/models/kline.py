"""Price bar data models."""

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PriceBar(BaseModel):
    """One OHLC observation. Only close, low and high are used."""

    model_config = ConfigDict(frozen=True)

    close: float
    low: float
    high: float
    timestamp: datetime | None = None

    @model_validator(mode="after")
    def _check_range(self):
        for name in ("close", "low", "high"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive finite number, got {value}")
        if not self.low <= self.close <= self.high:
            raise ValueError(
                f"expected low <= close <= high, got {self.low}/{self.close}/{self.high}"
            )
        return self

    @classmethod
    def flat(cls, price: float, timestamp: datetime | None = None) -> "PriceBar":
        """Build a degenerate bar for sources that only report one price."""
        return cls(close=price, low=price, high=price, timestamp=timestamp)


class PriceWindow(BaseModel):
    """Bounded rolling window of recent bars, oldest first."""

    bars: list[PriceBar] = Field(default_factory=list)
    max_size: int = 100

    def add(self, bar: PriceBar) -> None:
        """Append a bar, replacing the last one if it has the same timestamp."""
        if (
            self.bars
            and bar.timestamp is not None
            and self.bars[-1].timestamp is not None
        ):
            if bar.timestamp == self.bars[-1].timestamp:
                self.bars[-1] = bar
                return
            if bar.timestamp < self.bars[-1].timestamp:
                return

        self.bars.append(bar)
        if len(self.bars) > self.max_size:
            self.bars = self.bars[-self.max_size :]

    def extend(self, bars: list[PriceBar]) -> None:
        for bar in bars:
            self.add(bar)

    def get_closes(self) -> list[float]:
        """Get list of close prices."""
        return [b.close for b in self.bars]

    def get_highs(self) -> list[float]:
        """Get list of high prices."""
        return [b.high for b in self.bars]

    def get_lows(self) -> list[float]:
        """Get list of low prices."""
        return [b.low for b in self.bars]

    @property
    def last_close(self) -> float | None:
        return self.bars[-1].close if self.bars else None

    def __len__(self) -> int:
        return len(self.bars)
