"""Unit tests for BacktestEngine"""

from datetime import timedelta

import pytest

from conftest import BASE_TIME
from pattern_scanner.core.backtest_engine import BacktestEngine, find_closest_index
from pattern_scanner.core.models import Candle, Direction, PatternData
from pattern_scanner.data.data_source import DataSource
from pattern_scanner.exceptions import InvalidPatternError


def bar(i, low, high, close=None):
    close = close if close is not None else (low + high) / 2
    return Candle(
        timestamp=BASE_TIME + timedelta(days=i),
        open=close,
        high=high,
        low=low,
        close=close,
        volume=1_000_000,
    )


class ListSource(DataSource):
    source_name = "mock"
    is_delayed = False

    def __init__(self, candles):
        self.candles = candles

    def fetch_candles(self, symbol, timeframe, start, end):
        return list(self.candles)

    def fetch_quote(self, symbol):
        raise ConnectionError("quotes not available")


class TestFindClosestIndex:
    """Test find_closest_index"""

    def test_empty(self):
        assert find_closest_index([], BASE_TIME) == -1

    def test_before_first_candle(self):
        candles = [bar(i, 99, 101) for i in range(3)]
        assert find_closest_index(candles, BASE_TIME - timedelta(days=2)) == 0

    def test_exact_match(self):
        candles = [bar(i, 99, 101) for i in range(5)]
        assert find_closest_index(candles, BASE_TIME + timedelta(days=3)) == 3

    def test_between_candles_uses_earlier(self):
        candles = [bar(i, 99, 101) for i in range(5)]
        assert find_closest_index(candles, BASE_TIME + timedelta(days=2, hours=6)) == 2

    def test_after_last_candle(self):
        candles = [bar(i, 99, 101) for i in range(5)]
        assert find_closest_index(candles, BASE_TIME + timedelta(days=30)) == 4


class TestBacktestPattern:
    """Test BacktestEngine.backtest_pattern"""

    def test_target_hit(self, make_pattern):
        candles = [bar(0, 99, 101, 100), bar(1, 101, 105), bar(2, 104, 111)]
        result = BacktestEngine().backtest_pattern(make_pattern(), candles, 0, "mock")

        assert result.successful is True
        assert result.actual_exit_price == 110.0
        assert result.candles_to_breakout == 2
        assert result.profit_loss == pytest.approx(10.0)
        assert result.profit_loss_percent == pytest.approx(10.0)
        assert result.actual_direction is Direction.BULLISH
        assert result.risk_reward_ratio == pytest.approx(2.0)
        assert result.max_drawdown == 0.0
        assert result.exit_date == candles[2].timestamp
        assert result.data_source == "mock"
        assert result.rsi_at_entry == 50.0

    def test_stop_hit(self, make_pattern):
        candles = [bar(0, 99, 101, 100), bar(1, 94, 99)]
        result = BacktestEngine().backtest_pattern(make_pattern(), candles, 0)

        assert result.successful is False
        assert result.actual_exit_price == 95.0
        assert result.profit_loss_percent == pytest.approx(-5.0)
        assert result.actual_direction is Direction.BEARISH
        assert result.max_drawdown == pytest.approx(6.0)

    def test_target_checked_before_stop(self, make_pattern):
        candles = [bar(0, 99, 101, 100), bar(1, 90, 115)]
        result = BacktestEngine().backtest_pattern(make_pattern(), candles, 0)
        assert result.successful is True
        assert result.actual_exit_price == 110.0

    def test_bearish_target_hit(self, make_pattern):
        pattern = make_pattern(direction=Direction.BEARISH, target_price=90.0, stop_loss=105.0)
        candles = [bar(0, 99, 101, 100), bar(1, 97, 102), bar(2, 89, 99)]
        result = BacktestEngine().backtest_pattern(pattern, candles, 0)

        assert result.successful is True
        assert result.profit_loss_percent == pytest.approx(10.0)
        assert result.max_drawdown == pytest.approx(2.0)

    def test_max_bars_exit_at_close(self, make_pattern):
        candles = [bar(0, 99, 101, 100)] + [bar(i, 98, 103, 101) for i in range(1, 6)]
        result = BacktestEngine(max_bars=2).backtest_pattern(make_pattern(), candles, 0)

        assert result.candles_to_breakout == 2
        assert result.actual_exit_price == 101
        assert result.successful is True

    def test_data_exhausted_exit_at_last_close(self, make_pattern):
        candles = [bar(0, 99, 101, 100), bar(1, 98, 100, 99), bar(2, 97, 100, 99)]
        result = BacktestEngine().backtest_pattern(make_pattern(), candles, 0)

        assert result.candles_to_breakout == 2
        assert result.actual_exit_price == 99
        assert result.successful is False

    def test_missing_stop_uses_default_percent(self, make_pattern):
        candles = [bar(0, 99, 101, 100), bar(1, 94, 99)]
        result = BacktestEngine().backtest_pattern(make_pattern(stop_loss=0.0), candles, 0)
        assert result.stop_loss == pytest.approx(95.0)
        assert result.actual_exit_price == pytest.approx(95.0)

    def test_uses_pattern_indicators(self, make_pattern):
        candles = [bar(0, 99, 101, 100), bar(1, 104, 111)]
        result = BacktestEngine(is_simulated=True).backtest_pattern(
            make_pattern(rsi=61.0, atr=2.5), candles, 0
        )
        assert result.rsi_at_entry == 61.0
        assert result.atr_at_entry == 2.5
        assert result.is_simulated is True

    def test_rejects_non_positive_entry(self, make_pattern):
        candles = [bar(0, 99, 101), bar(1, 99, 101)]
        with pytest.raises(InvalidPatternError):
            BacktestEngine().backtest_pattern(make_pattern(entry_price=0.0), candles, 0)

    @pytest.mark.parametrize("overrides", [
        {"target_price": 0.0},
        {"target_price": 98.0},
        {"stop_loss": 102.0},
        {"direction": Direction.BEARISH},
    ])
    def test_rejects_levels_on_wrong_side(self, make_pattern, overrides):
        candles = [bar(0, 99, 101, 100), bar(1, 99, 101)]
        with pytest.raises(InvalidPatternError):
            BacktestEngine().backtest_pattern(make_pattern(**overrides), candles, 0)

    def test_bearish_missing_stop_sits_above_entry(self, make_pattern):
        pattern = make_pattern(direction=Direction.BEARISH, target_price=90.0, stop_loss=0.0)
        candles = [bar(0, 99, 101, 100), bar(1, 100, 106)]
        result = BacktestEngine().backtest_pattern(pattern, candles, 0)
        assert result.stop_loss == pytest.approx(105.0)
        assert result.successful is False

    def test_rejects_bad_entry_index(self, make_pattern):
        with pytest.raises(ValueError, match="out of range"):
            BacktestEngine().backtest_pattern(make_pattern(), [bar(0, 99, 101)], 3)

    def test_rejects_non_positive_max_bars(self):
        with pytest.raises(ValueError):
            BacktestEngine(max_bars=0)


class TestBacktestRun:
    """Test fetching data and running backtests"""

    def test_run_single_requires_source(self, make_pattern):
        with pytest.raises(ValueError, match="requires a data source"):
            BacktestEngine().run_single(make_pattern())

    def test_run_single_without_data(self, make_pattern):
        assert BacktestEngine(ListSource([])).run_single(make_pattern()) is None

    def test_run_single_uses_closest_entry(self, make_pattern):
        candles = [bar(-1, 95, 97)] + [bar(0, 99, 101, 100), bar(1, 104, 111)]
        result = BacktestEngine(ListSource(candles)).run_single(make_pattern())

        assert result.entry_date == BASE_TIME
        assert result.successful is True
        assert result.data_source == "mock"

    def test_run_single_skips_entry_on_last_candle(self, make_pattern):
        candles = [bar(-2, 95, 97), bar(-1, 97, 99), bar(0, 99, 101, 100)]
        assert BacktestEngine(ListSource(candles)).run_single(make_pattern()) is None

    def test_run_single_skips_row_without_target(self, make_pattern):
        row = make_pattern().to_dict()
        del row["target_price"]
        pattern = PatternData.from_dict(row)
        candles = [bar(0, 99, 101, 100), bar(1, 104, 111)]
        assert pattern.target_price == 0.0
        assert BacktestEngine(ListSource(candles)).run_single(pattern) is None

    def test_run_skips_invalid_patterns(self, make_pattern):
        candles = [bar(0, 99, 101, 100), bar(1, 104, 111)]
        engine = BacktestEngine(ListSource(candles))
        results = engine.run([make_pattern(id="good"), make_pattern(id="bad", entry_price=-1.0)])
        assert [r.pattern_id for r in results] == ["good"]
