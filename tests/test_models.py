"""Unit tests for core data models

Covers enum restriction, defaulting of optional fields and JSON persistence
of the flat pattern / backtest / quote / preset records.
"""

import json
from datetime import datetime, timedelta

import pytest
from hypothesis import given, strategies as st, settings, HealthCheck

from pattern_scanner.core.models import (
    BacktestResult,
    BacktestSummary,
    Candle,
    ChannelType,
    DataMetadata,
    Direction,
    PatternData,
    PatternStatus,
    RealTimeQuote,
    ScannerFilterPreset,
    TimeframeStats,
)


class TestEnums:
    """Test enum literal sets"""

    def test_direction_values(self):
        assert Direction.BULLISH.value == "bullish"
        assert Direction.BEARISH.value == "bearish"

    def test_direction_opposite(self):
        assert Direction.BULLISH.opposite is Direction.BEARISH
        assert Direction.BEARISH.opposite is Direction.BULLISH

    def test_pattern_status_values(self):
        assert {s.value for s in PatternStatus} == {"active", "completed", "failed"}

    def test_channel_type_values(self):
        assert {c.value for c in ChannelType} == {"horizontal", "ascending", "descending"}


class TestCandle:
    """Test Candle conversion"""

    def test_from_dict_accepts_time_key(self):
        candle = Candle.from_dict({
            "time": "2024-01-02T09:30:00",
            "open": 1, "high": 2, "low": 0.5, "close": 1.5, "volume": 100,
        })
        assert candle.timestamp == datetime(2024, 1, 2, 9, 30)
        assert candle.close == 1.5
        assert candle.volume == 100

    def test_from_dict_accepts_trailing_z(self):
        candle = Candle.from_dict({"timestamp": "2024-01-02T09:30:00Z", "close": 1})
        assert candle.timestamp.year == 2024
        assert candle.timestamp.tzinfo is not None

    def test_missing_volume_defaults_to_zero(self):
        candle = Candle.from_dict({"timestamp": "2024-01-02T09:30:00"})
        assert candle.volume == 0


class TestDataMetadata:
    """Test freshness labels and persistence"""

    def test_error_label(self):
        assert DataMetadata(source="error").freshness_label() == "Error"

    def test_cached_label_uses_age_in_minutes(self):
        now = datetime(2024, 1, 2, 10, 0)
        meta = DataMetadata(source="cache", last_updated=now - timedelta(minutes=12))
        assert meta.freshness_label(now) == "Cached (12m old)"

    def test_delayed_label(self):
        assert DataMetadata(source="api", is_delayed=True).freshness_label() == "Delayed (15m)"

    def test_real_time_label(self):
        assert DataMetadata(source="mock", is_delayed=False).freshness_label() == "Real-time"

    def test_json_round_trip(self):
        meta = DataMetadata(
            source="cache",
            is_delayed=False,
            fetched_at=datetime(2024, 1, 2, 10, 0),
            last_updated=datetime(2024, 1, 2, 9, 48),
            pattern_counts={"Bull Flag": 2},
        )
        assert DataMetadata.from_dict(json.loads(json.dumps(meta.to_dict()))) == meta

    def test_from_dict_defaults(self):
        meta = DataMetadata.from_dict({})
        assert meta.source == "unknown"
        assert meta.is_delayed is True
        assert meta.last_updated is None
        assert meta.pattern_counts == {}


class TestPatternData:
    """Test PatternData defaults and persistence"""

    def test_defaults(self, make_pattern):
        pattern = PatternData(
            id="x", symbol="MSFT", timeframe="1h", pattern_type="Bull Flag",
            direction=Direction.BULLISH, entry_price=10, target_price=12, stop_loss=9,
        )
        assert pattern.status is PatternStatus.ACTIVE
        assert pattern.data_freshness == "Unknown"
        assert pattern.multi_timeframe_confirmed is False
        assert pattern.channel_type is None

    def test_potential_profit_bullish(self, make_pattern):
        assert make_pattern().potential_profit_percent == pytest.approx(10.0)

    def test_potential_profit_bearish(self, make_pattern):
        pattern = make_pattern(direction=Direction.BEARISH, target_price=90.0, stop_loss=105.0)
        assert pattern.potential_profit_percent == pytest.approx(10.0)

    def test_potential_profit_zero_entry(self, make_pattern):
        assert make_pattern(entry_price=0.0).potential_profit_percent == 0.0

    def test_to_dict_is_json_serializable(self, make_pattern):
        data = make_pattern(rsi=55.5).to_dict()
        text = json.dumps(data)
        assert '"direction": "bullish"' in text
        assert data["channel_type"] == "ascending"

    def test_round_trip(self, make_pattern):
        pattern = make_pattern(current_price=101.0, confirming_timeframe="1w")
        assert PatternData.from_dict(pattern.to_dict()) == pattern

    def test_from_dict_defaults_missing_fields(self):
        pattern = PatternData.from_dict({
            "id": 7, "symbol": "TSLA", "pattern_type": "Double Top",
            "direction": "bearish",
        })
        assert pattern.id == "7"
        assert pattern.timeframe == "1d"
        assert pattern.entry_price == 0.0
        assert pattern.status is PatternStatus.ACTIVE
        assert pattern.data_freshness == "Unknown"

    def test_from_dict_rejects_unknown_direction(self):
        with pytest.raises(ValueError):
            PatternData.from_dict({
                "id": "1", "symbol": "A", "pattern_type": "Bull Flag", "direction": "sideways",
            })

    def test_from_dict_rejects_unknown_status(self):
        with pytest.raises(ValueError):
            PatternData.from_dict({
                "id": "1", "symbol": "A", "pattern_type": "Bull Flag", "status": "pending",
            })


class TestBacktestResult:
    """Test BacktestResult persistence"""

    def test_round_trip(self, make_result):
        result = make_result(rsi_at_entry=48.2, is_simulated=True, data_source="mock")
        assert BacktestResult.from_dict(result.to_dict()) == result

    def test_actual_direction_defaults_to_predicted(self):
        result = BacktestResult.from_dict({
            "pattern_id": "p", "symbol": "A", "predicted_direction": "bearish",
        })
        assert result.actual_direction is Direction.BEARISH
        assert result.data_source == "unknown"

    def test_summary_defaults(self):
        summary = BacktestSummary(timeframe="all")
        assert summary.total_patterns == 0
        assert summary.success_rate == 0.0

    def test_summary_round_trip_ignores_unknown_keys(self):
        summary = BacktestSummary(timeframe="1d", total_patterns=3, success_rate=66.7, max_win_streak=2)
        data = summary.to_dict()
        data["extra"] = "ignored"
        assert BacktestSummary.from_dict(data) == summary
        assert BacktestSummary.from_dict({"timeframe": "1h"}).total_patterns == 0

    def test_timeframe_stats_round_trip(self):
        stats = TimeframeStats(
            timeframe="4h", accuracy_rate=60.0, avg_days_to_breakout=3.5, success_rate=60.0,
            total_patterns=5, avg_profit=2.1, successful_patterns=3,
        )
        assert TimeframeStats.from_dict(json.loads(json.dumps(stats.to_dict()))) == stats


class TestRealTimeQuote:
    """Test RealTimeQuote persistence"""

    def test_round_trip(self):
        quote = RealTimeQuote(
            symbol="AAPL", price=190.5, change=1.5, change_percent=0.79,
            volume=1000, timestamp=datetime(2024, 1, 2, 16, 0), previous_close=189.0,
        )
        assert RealTimeQuote.from_dict(quote.to_dict()) == quote


class TestScannerFilterPreset:
    """Test ScannerFilterPreset persistence"""

    def test_defaults(self):
        preset = ScannerFilterPreset(id="1", name="Breakouts")
        assert preset.timeframe == "all"
        assert preset.pattern_types == []
        assert preset.is_default is False

    def test_from_dict_defaults_timeframe(self):
        preset = ScannerFilterPreset.from_dict({"id": "1", "name": "x", "timeframe": None})
        assert preset.timeframe == "all"

    def test_round_trip(self):
        preset = ScannerFilterPreset(
            id="1", name="Flags", pattern_types=["Bull Flag"], timeframe="1h",
            created_at=datetime(2024, 1, 1), min_price=5.0, min_volume=1000,
        )
        assert ScannerFilterPreset.from_dict(preset.to_dict()) == preset


class TestPatternDataProperty:
    """Property: every pattern survives the JSON persistence path unchanged"""

    @given(
        entry=st.floats(min_value=0.01, max_value=10000.0),
        move=st.floats(min_value=0.001, max_value=0.5),
        confidence=st.floats(min_value=0.0, max_value=100.0),
        bullish=st.booleans(),
        status=st.sampled_from(list(PatternStatus)),
    )
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_json_persistence(self, entry, move, confidence, bullish, status):
        direction = Direction.BULLISH if bullish else Direction.BEARISH
        sign = 1 if bullish else -1
        pattern = PatternData(
            id="p", symbol="AAPL", timeframe="4h", pattern_type="Bull Flag",
            direction=direction,
            entry_price=entry,
            target_price=entry * (1 + sign * move),
            stop_loss=entry * (1 - sign * move / 2),
            confidence_score=confidence,
            created_at=datetime(2024, 1, 1),
            status=status,
        )
        restored = PatternData.from_dict(json.loads(json.dumps(pattern.to_dict())))
        assert restored == pattern
        assert restored.potential_profit_percent == pytest.approx(move * 100)
