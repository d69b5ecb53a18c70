"""Tests for technical indicators."""

import math

import pytest

from core.errors import InsufficientDataError
from core.indicators import (
    IndicatorCalculator,
    bollinger_bands,
    raw_stochastic_value,
    rsi,
    stochastic_kdj,
)
from core.models import Decision, IndicatorPeriods
from core.strategy import fuse


def falling_closes() -> list[float]:
    """20 closes falling one point per bar from 110 to 91."""
    return [float(p) for p in range(110, 90, -1)]


class TestRSI:
    """Tests for RSI calculation."""

    def test_rsi_balanced_moves(self):
        """Equal gain and loss gives RSI 50."""
        assert rsi([10.0, 11.0, 10.0], period=2) == pytest.approx(50.0)

    def test_rsi_wilder_smoothing(self):
        """Changes after the first period use Wilder smoothing."""
        # avg_gain = (0.5 * 1 + 2) / 2 = 1.25, avg_loss = (0.5 * 1 + 0) / 2 = 0.25
        result = rsi([10.0, 11.0, 10.0, 12.0], period=2)
        assert result == 83.33

    def test_rsi_rounded_to_two_decimals(self):
        """RSI just under a threshold rounds onto it."""
        # avg_gain = 0.5, avg_loss = 2.3338 / 2, RSI = 100 / 3.3338 = 29.9958
        result = rsi([10.0, 11.0, 8.6662], period=2)

        assert result == 30.0
        assert fuse(100, result, 110, 90, 10) == Decision.HOLD

    def test_rsi_falling_series_is_oversold(self):
        """A steadily falling series has RSI below 30."""
        assert rsi(falling_closes(), 14) < 30

    def test_rsi_only_losses_is_zero(self):
        """No gains at all gives RSI 0."""
        assert rsi(falling_closes(), 14) == 0.0

    def test_rsi_only_gains_is_hundred(self):
        """No losses at all gives RSI 100."""
        assert rsi(list(reversed(falling_closes())), 14) == 100.0

    def test_rsi_insufficient_data(self):
        """RSI needs period + 1 closes."""
        with pytest.raises(InsufficientDataError) as exc_info:
            rsi([100.0] * 14, 14)

        assert exc_info.value.required == 15
        assert exc_info.value.available == 14

    def test_rsi_exact_minimum(self):
        """Exactly period + 1 closes is enough."""
        result = rsi([float(i) for i in range(15)], 14)
        assert 0 <= result <= 100


class TestBollingerBands:
    """Tests for Bollinger Bands calculation."""

    def test_bollinger_population_stddev(self):
        """Bands use the population standard deviation."""
        upper, middle, lower = bollinger_bands([10.0, 20.0], period=20, k=2)

        # mean = 15, population stddev = 5
        assert middle == pytest.approx(15.0)
        assert upper == pytest.approx(25.0)
        assert lower == pytest.approx(5.0)

    def test_bollinger_uses_trailing_period(self):
        """Only the trailing `period` closes are used."""
        upper, middle, lower = bollinger_bands([1000.0] + [10.0] * 20, period=20)

        assert upper == pytest.approx(10.0)
        assert middle == pytest.approx(10.0)
        assert lower == pytest.approx(10.0)

    def test_bollinger_falling_series(self):
        """Lower band of the falling series sits below its last close."""
        upper, middle, lower = bollinger_bands(falling_closes(), period=20)

        assert middle == pytest.approx(100.5)
        assert lower == pytest.approx(100.5 - 2 * math.sqrt(399 / 12))
        assert lower < 91

    def test_bollinger_short_window_degrades(self):
        """Fewer closes than the period still gives finite bands."""
        result = bollinger_bands([100.0, 101.0, 99.0], period=20)
        assert all(math.isfinite(v) for v in result)

    def test_bollinger_empty(self):
        """No closes at all cannot produce bands."""
        with pytest.raises(InsufficientDataError):
            bollinger_bands([], period=20)


class TestKDJ:
    """Tests for the KDJ stochastic oscillator."""

    def test_kdj_basic(self):
        """Check K, D and J against hand-computed values."""
        closes = [100.0] * 8 + [105.0]
        lows = [90.0] * 9
        highs = [110.0] * 9

        k, d, j = stochastic_kdj(closes, lows, highs, period=9)

        # RSV = (105 - 90) / (110 - 90) * 100 = 75
        assert k == pytest.approx(175 / 3)
        assert d == pytest.approx(475 / 9)
        assert j == pytest.approx(625 / 9)

    def test_kdj_uses_trailing_period(self):
        """Lows and highs outside the trailing period are ignored."""
        closes = [100.0] * 9 + [105.0]
        lows = [50.0] + [90.0] * 9
        highs = [200.0] + [110.0] * 9

        assert raw_stochastic_value(closes, lows, highs, period=9) == pytest.approx(75.0)

    def test_kdj_zero_range_is_neutral(self):
        """Zero-width high/low range gives RSV 50 instead of dividing by zero."""
        prices = [100.0] * 9

        assert raw_stochastic_value(prices, prices, prices, period=9) == 50.0

        k, d, j = stochastic_kdj(prices, prices, prices, period=9)
        assert (k, d, j) == pytest.approx((50.0, 50.0, 50.0))

    def test_kdj_falling_series_oversold(self):
        """Falling flat bars close at the period low, so J is below 20."""
        closes = falling_closes()
        k, d, j = stochastic_kdj(closes, closes, closes, period=9)

        assert k == pytest.approx(100 / 3)
        assert j == pytest.approx(100 / 9)
        assert j < 20

    def test_kdj_is_not_recursive(self):
        """Same window gives the same result regardless of earlier calls."""
        closes = falling_closes()
        first = stochastic_kdj(closes, closes, closes)
        stochastic_kdj([1.0, 2.0, 3.0], [1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
        assert stochastic_kdj(closes, closes, closes) == first

    def test_kdj_mismatched_lengths(self):
        """Series must have the same length."""
        with pytest.raises(ValueError):
            stochastic_kdj([1.0, 2.0], [1.0], [2.0, 3.0])

    def test_kdj_empty(self):
        """No bars cannot produce KDJ."""
        with pytest.raises(InsufficientDataError):
            stochastic_kdj([], [], [])


class TestIndicatorCalculator:
    """Tests for IndicatorCalculator class."""

    def test_calculate_latest(self):
        """Calculate all indicators for a full window."""
        closes = falling_closes()
        calc = IndicatorCalculator(IndicatorPeriods())

        snapshot = calc.calculate_latest(closes, closes, closes)

        assert snapshot.rsi == 0.0
        assert snapshot.rsi_substituted is False
        assert snapshot.last_close == 91.0
        assert snapshot.boll_lower < 91.0 < snapshot.boll_upper
        assert snapshot.kdj_j < 20

    def test_short_window_with_neutral_rsi(self):
        """A window too short for RSI uses the neutral value when given."""
        closes = [100.0, 101.0, 102.0]
        calc = IndicatorCalculator()

        snapshot = calc.calculate_latest(closes, closes, closes, neutral_rsi=50.0)

        assert snapshot.rsi == 50.0
        assert snapshot.rsi_substituted is True
        assert all(
            math.isfinite(v)
            for v in (snapshot.boll_upper, snapshot.boll_lower, snapshot.kdj_j)
        )

    def test_short_window_without_neutral_rsi(self):
        """Without a neutral value the RSI error propagates."""
        closes = [100.0, 101.0, 102.0]
        calc = IndicatorCalculator()

        with pytest.raises(InsufficientDataError):
            calc.calculate_latest(closes, closes, closes)

    def test_empty_window(self):
        """An empty window always fails."""
        calc = IndicatorCalculator()

        with pytest.raises(InsufficientDataError):
            calc.calculate_latest([], [], [], neutral_rsi=50.0)
