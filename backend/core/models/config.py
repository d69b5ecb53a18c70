"""Strategy configuration models."""

from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, Field, field_validator, model_validator


class IndicatorPeriods(BaseModel):
    """Lookback periods for each indicator."""

    rsi: int = Field(default=14, ge=1)
    boll: int = Field(default=20, ge=1)
    boll_k: float = Field(default=2.0, gt=0)
    kdj: int = Field(default=9, ge=1)

    @property
    def longest(self) -> int:
        """Longest lookback any indicator needs (RSI needs one extra close)."""
        return max(self.rsi + 1, self.boll, self.kdj)


class FusionThresholds(BaseModel):
    """Threshold constants used by the signal fuser."""

    rsi_low: float = 30.0
    rsi_high: float = 70.0
    kdj_low: float = 20.0
    kdj_high: float = 80.0

    @model_validator(mode="after")
    def _check_order(self):
        if self.rsi_low >= self.rsi_high:
            raise ValueError("rsi_low must be below rsi_high")
        if self.kdj_low >= self.kdj_high:
            raise ValueError("kdj_low must be below kdj_high")
        return self


class TimeframeConfig(BaseModel):
    """Holding horizon and payout rate for one selectable timeframe."""

    horizon: timedelta
    profit_rate: float = Field(ge=0.0, le=1.0)

    @field_validator("horizon")
    @classmethod
    def _positive_horizon(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("horizon must be positive")
        return value


# Presets offered to the user: 10 minutes, 30 minutes, 1 hour, 1 day
DEFAULT_TIMEFRAMES: dict[str, TimeframeConfig] = {
    "10m": TimeframeConfig(horizon=timedelta(minutes=10), profit_rate=0.80),
    "30m": TimeframeConfig(horizon=timedelta(minutes=30), profit_rate=0.85),
    "1h": TimeframeConfig(horizon=timedelta(hours=1), profit_rate=0.85),
    "1d": TimeframeConfig(horizon=timedelta(days=1), profit_rate=0.85),
}


class StrategyConfig(BaseModel):
    """Strategy configuration parameters."""

    indicator_periods: IndicatorPeriods = IndicatorPeriods()
    fusion_thresholds: FusionThresholds = FusionThresholds()

    # RSI value used when the window is too short to compute it
    neutral_rsi: float = Field(default=50.0, ge=0.0, le=100.0)

    # Synthetic stake per prediction; a wrong call loses exactly this much
    base_stake: float = Field(default=5.0, gt=0)

    timeframes: dict[str, TimeframeConfig] = Field(
        default_factory=lambda: dict(DEFAULT_TIMEFRAMES)
    )

    @field_validator("timeframes")
    @classmethod
    def _non_empty(cls, value: dict[str, TimeframeConfig]) -> dict[str, TimeframeConfig]:
        if not value:
            raise ValueError("at least one timeframe must be configured")
        return value

    def get_timeframe(self, label: str) -> TimeframeConfig:
        """Look up a timeframe preset by label.

        Raises:
            KeyError: If the label is not configured
        """
        try:
            return self.timeframes[label]
        except KeyError:
            raise KeyError(
                f"unknown timeframe '{label}', expected one of {list(self.timeframes)}"
            ) from None

    def profit_rate(self, label: str) -> float:
        return self.get_timeframe(label).profit_rate
