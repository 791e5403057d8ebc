"""
Unit tests for data sources

Covers the metadata wrapper, the seeded mock source, the demo pattern
generator and the yfinance helpers (with a stubbed yfinance client).
"""

from datetime import datetime, timedelta

import pandas as pd
import pytest

from pattern_scanner.core.constants import PATTERN_TYPES, pattern_direction
from pattern_scanner.core.models import Direction
from pattern_scanner.data import (
    DataSource,
    MockDataSource,
    PatternGenerator,
    YFinanceDataSource,
)
from pattern_scanner.data.yfinance_source import dataframe_to_candles, resample_ohlcv, trim_to_end
from pattern_scanner.exceptions import InvalidTimeframeError

END = datetime(2024, 6, 3, 16, 0)


def ohlcv_frame(periods, freq="1h", start="2024-06-03 09:00"):
    index = pd.date_range(start, periods=periods, freq=freq)
    return pd.DataFrame(
        {
            "Open": [100.0 + i for i in range(periods)],
            "High": [101.0 + i for i in range(periods)],
            "Low": [99.0 + i for i in range(periods)],
            "Close": [100.5 + i for i in range(periods)],
            "Volume": [1000] * periods,
        },
        index=index,
    )


class FakeTicker:
    def __init__(self, frame, calls):
        self.frame = frame
        self.calls = calls

    def history(self, **kwargs):
        self.calls.append(kwargs)
        return self.frame


class FakeYFinance:
    def __init__(self, frame):
        self.frame = frame
        self.calls = []

    def Ticker(self, symbol):
        return FakeTicker(self.frame, self.calls)


class FailingSource(DataSource):
    source_name = "api"

    def fetch_candles(self, symbol, timeframe, start, end):
        raise ConnectionError("network down")

    def fetch_quote(self, symbol):
        raise ConnectionError("network down")


class TestDataSourceMetadata:
    """Test DataSource.fetch_with_metadata"""

    def test_failure_returns_error_metadata(self):
        candles, metadata = FailingSource().fetch_with_metadata("AAPL", "1d", END - timedelta(days=5), END)
        assert candles == []
        assert metadata.source == "error"
        assert metadata.freshness_label() == "Error"

    def test_success_metadata(self):
        candles, metadata = MockDataSource().fetch_with_metadata("AAPL", "1d", END - timedelta(days=30), END)
        assert len(candles) == 30
        assert metadata.source == "mock"
        assert metadata.is_delayed is False


class TestMockDataSource:
    """Test MockDataSource"""

    def test_candle_count_and_spacing(self):
        candles = MockDataSource().fetch_candles("AAPL", "1h", END - timedelta(hours=48), END)
        assert len(candles) == 48
        assert candles[-1].timestamp == END - timedelta(hours=1)
        assert all(b.timestamp - a.timestamp == timedelta(hours=1) for a, b in zip(candles, candles[1:]))

    def test_ohlc_consistency(self):
        for candle in MockDataSource().fetch_candles("NVDA", "1d", END - timedelta(days=100), END):
            assert candle.low <= min(candle.open, candle.close)
            assert candle.high >= max(candle.open, candle.close)
            assert candle.volume > 0

    def test_same_seed_same_candles(self):
        start = END - timedelta(days=60)
        first = MockDataSource(seed=1).fetch_candles("AMD", "1d", start, END)
        second = MockDataSource(seed=1).fetch_candles("AMD", "1d", start, END)
        third = MockDataSource(seed=2).fetch_candles("AMD", "1d", start, END)
        assert first == second
        assert first != third

    def test_max_candles(self):
        candles = MockDataSource(max_candles=50).fetch_candles("AAPL", "1d", END - timedelta(days=365), END)
        assert len(candles) == 50

    def test_invalid_timeframe(self):
        with pytest.raises(InvalidTimeframeError):
            MockDataSource().fetch_candles("AAPL", "2h", END - timedelta(days=5), END)

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            MockDataSource().fetch_candles("AAPL", "1d", END, END - timedelta(days=5))

    def test_quote(self):
        quote = MockDataSource().fetch_quote("AAPL")
        assert quote.symbol == "AAPL"
        assert quote.bid < quote.price < quote.ask
        assert quote.change == pytest.approx(quote.price - quote.previous_close)

    def test_pattern_prices_drift_to_target(self, make_pattern):
        pattern = make_pattern()
        candles = MockDataSource().generate_pattern_prices(pattern, start=END, days=50)

        assert len(candles) == 50
        assert candles[0].timestamp == END
        assert abs(candles[0].close - pattern.entry_price) < abs(candles[-1].close - pattern.entry_price)
        assert candles[-1].close == pytest.approx(pattern.target_price, rel=0.05)


class TestPatternGenerator:
    """Test PatternGenerator"""

    def test_generates_count(self):
        patterns = PatternGenerator(seed=5).generate_demo_patterns(count=12, timeframe="4h", now=END)
        assert len(patterns) == 12
        assert all(p.timeframe == "4h" for p in patterns)
        assert all(p.is_ai_generated and p.data_freshness == "Simulated" for p in patterns)

    def test_seeded_output_is_reproducible(self):
        first = PatternGenerator(seed=9).generate_demo_patterns(count=5, now=END)
        second = PatternGenerator(seed=9).generate_demo_patterns(count=5, now=END)
        assert first == second

    def test_price_levels_follow_direction(self):
        for pattern in PatternGenerator(seed=3).generate_demo_patterns(count=40, now=END):
            assert pattern.pattern_type in PATTERN_TYPES
            expected = pattern_direction(pattern.pattern_type)
            if expected is not None:
                assert pattern.direction.value == expected
            if pattern.direction is Direction.BULLISH:
                assert pattern.stop_loss < pattern.entry_price < pattern.target_price
            else:
                assert pattern.target_price < pattern.entry_price < pattern.stop_loss
            assert 65 <= pattern.confidence_score <= 94
            assert (pattern.confirming_timeframe is not None) == pattern.multi_timeframe_confirmed

    def test_negative_count(self):
        with pytest.raises(ValueError):
            PatternGenerator().generate_demo_patterns(count=-1)

    def test_single_pattern(self):
        pattern = PatternGenerator(seed=1).generate_single_pattern("COIN", "1d", now=END)
        assert pattern.symbol == "COIN"
        assert pattern.id == "demo-COIN-1d-0"

    def test_backtest_results_exit_at_target_or_stop(self):
        generator = PatternGenerator(seed=11, success_rate=0.5)
        patterns = generator.generate_demo_patterns(count=20, now=END)
        results = generator.generate_backtest_results(patterns)

        assert len(results) == len(patterns)
        for pattern, result in zip(patterns, results):
            assert result.is_simulated is True
            expected_exit = pattern.target_price if result.successful else pattern.stop_loss
            assert result.actual_exit_price == expected_exit
            assert (result.profit_loss > 0) == result.successful

    def test_success_rate_extremes(self):
        generator = PatternGenerator(seed=2, success_rate=1.0)
        results = generator.generate_backtest_results(generator.generate_demo_patterns(count=10, now=END))
        assert all(r.successful for r in results)


class TestYFinanceHelpers:
    """Test yfinance DataFrame helpers and source with a stubbed client"""

    def test_resample_to_four_hours(self):
        df = resample_ohlcv(ohlcv_frame(8, start="2024-06-03 08:00"), "4h")

        assert len(df) == 2
        first = df.iloc[0]
        assert first["Open"] == 100.0
        assert first["High"] == 104.0
        assert first["Low"] == 99.0
        assert first["Close"] == 103.5
        assert first["Volume"] == 4000

    def test_dataframe_to_candles_drops_timezone(self):
        df = ohlcv_frame(3)
        df.index = df.index.tz_localize("America/New_York")
        candles = dataframe_to_candles(df)

        assert len(candles) == 3
        assert candles[0].timestamp == datetime(2024, 6, 3, 9, 0)
        assert candles[0].timestamp.tzinfo is None
        assert candles[-1].close == 102.5
        assert candles[-1].volume == 1000

    def test_invalid_timeframe(self):
        with pytest.raises(InvalidTimeframeError):
            YFinanceDataSource().fetch_candles("AAPL", "3h", END - timedelta(days=5), END)

    def test_fetch_uses_cache(self):
        source = YFinanceDataSource(cache_ttl=300)
        source._yf = FakeYFinance(ohlcv_frame(5, freq="1D"))
        start = END - timedelta(days=10)

        first = source.fetch_candles("AAPL", "1d", start, END)
        assert source.describe_last_fetch().source == "api"
        second = source.fetch_candles("AAPL", "1d", start, END)

        assert first == second
        assert len(source._yf.calls) == 1
        assert source._yf.calls[0]["interval"] == "1d"
        metadata = source.describe_last_fetch()
        assert metadata.source == "cache"
        assert metadata.last_updated is not None

        source.clear_cache()
        source.fetch_candles("AAPL", "1d", start, END)
        assert len(source._yf.calls) == 2

    def test_four_hour_candles_are_resampled(self):
        source = YFinanceDataSource()
        source._yf = FakeYFinance(ohlcv_frame(8, start="2024-06-03 08:00"))
        candles = source.fetch_candles("AAPL", "4h", END - timedelta(days=2), END)

        assert len(candles) == 2
        assert source._yf.calls[0]["interval"] == "1h"

    def test_intraday_keeps_bars_up_to_end(self):
        source = YFinanceDataSource()
        source._yf = FakeYFinance(ohlcv_frame(84, freq="5min", start="2024-06-03 09:30"))
        candles = source.fetch_candles("AAPL", "5m", END - timedelta(days=5), END)

        call = source._yf.calls[0]
        assert call["start"] == "2024-05-29"
        assert call["end"] == "2024-06-04"
        assert call["interval"] == "5m"
        assert len(candles) == 79
        assert candles[-1].timestamp == END

    def test_trim_handles_timezone_index(self):
        df = ohlcv_frame(84, freq="5min", start="2024-06-03 09:30")
        df.index = df.index.tz_localize("America/New_York")
        assert len(trim_to_end(df, END)) == 79

    def test_empty_history(self):
        source = YFinanceDataSource()
        source._yf = FakeYFinance(ohlcv_frame(0))
        assert source.fetch_candles("ZZZZ", "1d", END - timedelta(days=5), END) == []

    def test_quote(self):
        source = YFinanceDataSource()
        source._yf = FakeYFinance(ohlcv_frame(2, freq="1D"))
        quote = source.fetch_quote("AAPL")

        assert quote.price == 101.5
        assert quote.previous_close == 100.5
        assert quote.change == pytest.approx(1.0)

    def test_quote_without_data(self):
        source = YFinanceDataSource()
        source._yf = FakeYFinance(ohlcv_frame(0))
        with pytest.raises(ValueError):
            source.fetch_quote("ZZZZ")
