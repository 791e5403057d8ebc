"""Unit tests for multi-timeframe confirmation"""

from datetime import timedelta

import pytest

from conftest import BASE_TIME, build_candles
from pattern_scanner.core.models import Direction
from pattern_scanner.core.multi_timeframe import (
    ConfirmationResult,
    MultiTimeframeConfirmer,
    confirms_direction,
)
from pattern_scanner.data.data_source import DataSource


RISING = [100.0 + i for i in range(60)]
FALLING = [160.0 - i for i in range(60)]


class StubSource(DataSource):
    """依週期回傳固定收盤序列的數據源"""

    source_name = "mock"
    is_delayed = False

    def __init__(self, closes_by_timeframe, default=None):
        self.closes_by_timeframe = closes_by_timeframe
        self.default = default
        self.requests = []

    def fetch_candles(self, symbol, timeframe, start, end):
        self.requests.append((symbol, timeframe))
        closes = self.closes_by_timeframe.get(timeframe, self.default)
        return build_candles(closes) if closes else []

    def fetch_quote(self, symbol):
        raise ConnectionError("quotes not available")


class BrokenSource(StubSource):
    def fetch_with_metadata(self, symbol, timeframe, start, end):
        raise ValueError("bad range")


class TestConfirmsDirection:
    """Test confirms_direction"""

    def test_too_few_candles(self, make_candles):
        assert confirms_direction(make_candles(RISING[:9]), Direction.BULLISH) is False

    def test_uptrend_confirms_bullish(self, make_candles):
        candles = make_candles(RISING)
        assert confirms_direction(candles, Direction.BULLISH) is True
        assert confirms_direction(candles, Direction.BEARISH) is False

    def test_downtrend_confirms_bearish(self, make_candles):
        candles = make_candles(FALLING)
        assert confirms_direction(candles, Direction.BEARISH) is True
        assert confirms_direction(candles, Direction.BULLISH) is False

    def test_current_price_overrides_last_close(self, make_candles):
        candles = make_candles(RISING)
        # aligned EMAs but price far below both and no recent touch of EMA20
        assert confirms_direction(candles, Direction.BULLISH, current_price=50.0) is False


class TestMultiTimeframeConfirmer:
    """Test MultiTimeframeConfirmer"""

    def test_highest_timeframe_has_nothing_to_confirm(self, make_pattern):
        source = StubSource({}, default=RISING)
        result = MultiTimeframeConfirmer(source).evaluate(make_pattern(timeframe="1w"))
        assert result == ConfirmationResult()
        assert source.requests == []

    def test_daily_confirmed_by_weekly(self, make_pattern):
        source = StubSource({"1w": RISING})
        result = MultiTimeframeConfirmer(source).evaluate(make_pattern(timeframe="1d"))

        assert result.confirmed is True
        assert result.confirming_timeframe == "1w"
        assert result.ratio == pytest.approx(1.0)
        assert result.confidence_boost == 14
        assert result.details == {"1w": True}
        assert source.requests == [("AAPL", "1w")]

    def test_minority_agreement_is_not_confirmed(self, make_pattern):
        source = StubSource({"4h": RISING, "1d": FALLING, "1w": FALLING})
        result = MultiTimeframeConfirmer(source).evaluate(make_pattern(timeframe="1h"))

        assert result.confirmed is False
        assert result.confirming_timeframe is None
        assert result.confidence_boost == 0
        assert result.ratio == pytest.approx(0.85 / 2.7)

    def test_weighted_majority_is_confirmed(self, make_pattern):
        source = StubSource({"4h": FALLING, "1d": RISING, "1w": RISING})
        result = MultiTimeframeConfirmer(source).evaluate(make_pattern(timeframe="1h"))

        assert result.confirmed is True
        assert result.confirming_timeframe == "1d"
        assert result.confidence_boost == 9

    def test_bearish_pattern(self, make_pattern):
        source = StubSource({}, default=FALLING)
        pattern = make_pattern(timeframe="4h", direction=Direction.BEARISH)
        result = MultiTimeframeConfirmer(source).evaluate(pattern)
        assert result.confirmed is True
        assert result.details == {"1d": True, "1w": True}

    def test_boost_is_capped(self, make_pattern):
        source = StubSource({}, default=RISING)
        result = MultiTimeframeConfirmer(source, max_boost=5).evaluate(make_pattern(timeframe="1d"))
        assert result.confidence_boost == 5

    def test_missing_data_is_not_confirmed(self, make_pattern):
        result = MultiTimeframeConfirmer(StubSource({})).evaluate(make_pattern(timeframe="1d"))
        assert result.confirmed is False
        assert result.details == {"1w": False}

    def test_apply_adds_boost(self, make_pattern):
        pattern = make_pattern(timeframe="1d", confidence_score=80.0)
        MultiTimeframeConfirmer(StubSource({"1w": RISING})).apply(pattern)

        assert pattern.multi_timeframe_confirmed is True
        assert pattern.confirming_timeframe == "1w"
        assert pattern.confidence_score == 94.0

    def test_apply_caps_confidence(self, make_pattern):
        pattern = make_pattern(timeframe="1d", confidence_score=95.0)
        MultiTimeframeConfirmer(StubSource({"1w": RISING})).apply(pattern)
        assert pattern.confidence_score == 100.0

    def test_apply_leaves_unconfirmed_score(self, make_pattern):
        pattern = make_pattern(timeframe="1d", confidence_score=80.0)
        MultiTimeframeConfirmer(StubSource({"1w": FALLING})).apply(pattern)
        assert pattern.multi_timeframe_confirmed is False
        assert pattern.confidence_score == 80.0

    def test_apply_survives_source_failure(self, make_pattern):
        pattern = make_pattern(timeframe="1d", multi_timeframe_confirmed=True)
        MultiTimeframeConfirmer(BrokenSource({})).apply(pattern)
        assert pattern.multi_timeframe_confirmed is False
        assert pattern.confidence_score == 80.0


class TestHigherTimeframeData:
    """Test how the confirmer reads and reuses higher timeframe candles"""

    def test_uses_higher_timeframe_close(self, make_pattern):
        # pattern price far below the weekly EMAs does not matter
        pattern = make_pattern(timeframe="1d", current_price=50.0)
        result = MultiTimeframeConfirmer(StubSource({"1w": RISING})).evaluate(pattern)
        assert result.confirmed is True

    def test_shared_fetch_end_fetches_once(self, make_pattern):
        source = StubSource({"1w": RISING})
        confirmer = MultiTimeframeConfirmer(source)
        fetch_end = BASE_TIME + timedelta(days=59)

        for offset in (20, 30, 40):
            pattern = make_pattern(timeframe="1d", created_at=BASE_TIME + timedelta(days=offset))
            confirmer.evaluate(pattern, end=pattern.created_at, fetch_end=fetch_end)

        assert source.requests == [("AAPL", "1w")]

        confirmer.clear_cache()
        confirmer.evaluate(make_pattern(timeframe="1d"), end=fetch_end, fetch_end=fetch_end)
        assert source.requests == [("AAPL", "1w"), ("AAPL", "1w")]

    def test_ignores_candles_after_pattern(self, make_pattern):
        # only six weekly candles exist up to the pattern time
        pattern = make_pattern(timeframe="1d", created_at=BASE_TIME + timedelta(days=5))
        result = MultiTimeframeConfirmer(StubSource({"1w": RISING})).evaluate(
            pattern, end=pattern.created_at, fetch_end=BASE_TIME + timedelta(days=59)
        )
        assert result.details == {"1w": False}
