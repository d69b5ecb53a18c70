"""Tests for trading_config.py."""

import textwrap
from datetime import timedelta

import pytest
from pydantic import ValidationError

from app.trading_config import TimeframeEntry, TradingConfig, load_trading_config
from core.models import DEFAULT_TIMEFRAMES


# ── TradingConfig model tests ─────────────────────────────────────────────


class TestTradingConfig:
    def test_defaults_resolve_to_built_in_presets(self):
        strategy = TradingConfig().to_strategy_config()

        assert strategy.base_stake == 5.0
        assert strategy.neutral_rsi == 50.0
        assert set(strategy.timeframes) == set(DEFAULT_TIMEFRAMES)

    def test_custom_timeframes_replace_presets(self):
        config = TradingConfig(
            timeframes={"5m": TimeframeEntry(minutes=5, profit_rate=0.75)}
        )

        strategy = config.to_strategy_config()

        assert list(strategy.timeframes) == ["5m"]
        assert strategy.timeframes["5m"].horizon == timedelta(minutes=5)
        assert strategy.profit_rate("5m") == 0.75

    def test_timeframe_entry_validation(self):
        with pytest.raises(ValidationError):
            TimeframeEntry(minutes=0, profit_rate=0.8)
        with pytest.raises(ValidationError):
            TimeframeEntry(minutes=10, profit_rate=-0.1)

    def test_invalid_thresholds(self):
        with pytest.raises(ValidationError):
            TradingConfig(fusion_thresholds={"rsi_low": 80, "rsi_high": 20})

    def test_invalid_stake(self):
        with pytest.raises(ValidationError):
            TradingConfig(base_stake=0)


# ── load_trading_config tests ─────────────────────────────────────────────


class TestLoadTradingConfig:
    def test_missing_file_returns_defaults(self, tmp_path):
        config = load_trading_config(tmp_path / "nonexistent.yaml")
        assert config == TradingConfig()

    def test_empty_file_returns_defaults(self, tmp_path):
        yaml_path = tmp_path / "trading.yaml"
        yaml_path.write_text("")

        assert load_trading_config(yaml_path) == TradingConfig()

    def test_load_full_config(self, tmp_path):
        yaml_content = textwrap.dedent("""\
            base_stake: 10
            neutral_rsi: 45
            indicator_periods:
              rsi: 7
              boll: 10
              kdj: 5
            fusion_thresholds:
              rsi_low: 25
              rsi_high: 75
            timeframes:
              15m:
                minutes: 15
                profit_rate: 0.8
              4h:
                minutes: 240
                profit_rate: 0.9
        """)
        yaml_path = tmp_path / "trading.yaml"
        yaml_path.write_text(yaml_content)

        strategy = load_trading_config(yaml_path).to_strategy_config()

        assert strategy.base_stake == 10
        assert strategy.neutral_rsi == 45
        assert strategy.indicator_periods.rsi == 7
        assert strategy.indicator_periods.boll_k == 2.0
        assert strategy.fusion_thresholds.rsi_low == 25
        assert strategy.fusion_thresholds.kdj_high == 80
        assert strategy.timeframes["4h"].horizon == timedelta(hours=4)
        assert strategy.profit_rate("4h") == 0.9

    def test_invalid_yaml_values_raise(self, tmp_path):
        yaml_path = tmp_path / "trading.yaml"
        yaml_path.write_text("timeframes:\n  1m:\n    minutes: -1\n    profit_rate: 0.8\n")

        with pytest.raises(ValidationError):
            load_trading_config(yaml_path)
