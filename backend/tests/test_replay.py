"""Tests for historical replay."""

from datetime import datetime, timedelta, timezone

import pytest

from core.ledger import PredictionLedger
from core.models import PriceBar, StrategyConfig
from core.replay import replay_bars
from core.strategy import SignalFuser

T = datetime(2024, 1, 1, tzinfo=timezone.utc)


def hourly_bars(closes: list[float]) -> list[PriceBar]:
    return [PriceBar.flat(c, T + timedelta(hours=i)) for i, c in enumerate(closes)]


class TestReplay:
    """Tests for replay_bars."""

    @pytest.fixture
    def config(self):
        return StrategyConfig()

    def test_falling_then_rebound(self, config):
        """The falling window opens one bullish call that the rebound settles."""
        closes = [float(p) for p in range(110, 90, -1)] + [95.0]
        ledger = PredictionLedger(config)

        stats = replay_bars(hourly_bars(closes), SignalFuser(config), ledger, "1h")

        assert stats.total == 1
        assert stats.settled == 1
        assert stats.correct == 1
        assert stats.total_profit == pytest.approx(5.0 * 0.85)

        prediction = ledger.snapshot()[0]
        assert prediction.entry_price == 91.0
        assert prediction.opened_at == T + timedelta(hours=19)
        assert prediction.settlement.settled_price == 95.0

    def test_warmup_skips_short_windows(self, config):
        """Nothing is evaluated before the warmup is reached."""
        closes = [float(p) for p in range(110, 90, -1)]
        ledger = PredictionLedger(config)

        stats = replay_bars(
            hourly_bars(closes), SignalFuser(config), ledger, "1h", warmup=21
        )

        assert stats.total == 0

    def test_flat_series_opens_nothing(self, config):
        ledger = PredictionLedger(config)

        stats = replay_bars(hourly_bars([100.0] * 40), SignalFuser(config), ledger, "10m")

        assert stats.total == 0
        assert ledger.last_price == 100.0

    def test_requires_timestamps(self, config):
        with pytest.raises(ValueError):
            replay_bars(
                [PriceBar.flat(100.0)],
                SignalFuser(config),
                PredictionLedger(config),
                "1h",
            )

    def test_unknown_timeframe(self, config):
        """An unknown timeframe surfaces on the first directional decision."""
        closes = [float(p) for p in range(110, 90, -1)]

        with pytest.raises(KeyError):
            replay_bars(
                hourly_bars(closes),
                SignalFuser(config),
                PredictionLedger(config),
                "2w",
            )

    def test_window_smaller_than_warmup(self):
        """A short rolling window starts evaluating as soon as it is full."""
        # RSI never fits in 5 bars; a low neutral RSI lets the other legs decide
        config = StrategyConfig(neutral_rsi=10.0)
        closes = [float(p) for p in range(110, 90, -1)]
        ledger = PredictionLedger(config)

        stats = replay_bars(
            hourly_bars(closes), SignalFuser(config), ledger, "1h", window=5
        )

        # Bars 4..19 each open a bullish prediction
        assert stats.total == 16
        assert ledger.snapshot()[0].opened_at == T + timedelta(hours=4)
