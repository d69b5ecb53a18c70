"""Strategy configuration loaded from trading.yaml.

Supports:
- Custom timeframe presets (label -> horizon minutes + profit rate)
- Base stake, neutral RSI, indicator periods and fusion thresholds
- Backward compatible: no YAML file = built-in defaults
"""

import logging
from datetime import timedelta
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from core.models import (
    DEFAULT_TIMEFRAMES,
    FusionThresholds,
    IndicatorPeriods,
    StrategyConfig,
    TimeframeConfig,
)

logger = logging.getLogger(__name__)


class TimeframeEntry(BaseModel):
    """A single timeframe entry in the YAML config."""

    minutes: float = Field(gt=0)
    profit_rate: float = Field(ge=0.0, le=1.0)

    def to_timeframe_config(self) -> TimeframeConfig:
        return TimeframeConfig(
            horizon=timedelta(minutes=self.minutes),
            profit_rate=self.profit_rate,
        )


class TradingConfig(BaseModel):
    """Top-level trading.yaml configuration."""

    base_stake: float = Field(default=5.0, gt=0)
    neutral_rsi: float = Field(default=50.0, ge=0.0, le=100.0)
    indicator_periods: IndicatorPeriods = IndicatorPeriods()
    fusion_thresholds: FusionThresholds = FusionThresholds()
    timeframes: dict[str, TimeframeEntry] = {}  # empty = built-in presets

    def to_strategy_config(self) -> StrategyConfig:
        """Resolve to the StrategyConfig used by the fuser and ledger."""
        if self.timeframes:
            timeframes = {
                label: entry.to_timeframe_config()
                for label, entry in self.timeframes.items()
            }
        else:
            timeframes = dict(DEFAULT_TIMEFRAMES)

        return StrategyConfig(
            indicator_periods=self.indicator_periods,
            fusion_thresholds=self.fusion_thresholds,
            neutral_rsi=self.neutral_rsi,
            base_stake=self.base_stake,
            timeframes=timeframes,
        )


_DEFAULT_PATH = Path(__file__).parent.parent / "trading.yaml"


def load_trading_config(path: Path | None = None) -> TradingConfig:
    """Load trading config from YAML file.

    Falls back to defaults if the file doesn't exist.
    """
    config_path = path or _DEFAULT_PATH

    if not config_path.exists():
        logger.info("No trading.yaml found at %s, using defaults", config_path)
        return TradingConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = TradingConfig(**raw)
    logger.info(
        "Loaded trading config: stake=%s, %d timeframes, rsi=%d boll=%d kdj=%d",
        config.base_stake,
        len(config.timeframes) or len(DEFAULT_TIMEFRAMES),
        config.indicator_periods.rsi,
        config.indicator_periods.boll,
        config.indicator_periods.kdj,
    )
    return config
