"""Shared fixtures for pattern scanner tests"""

from datetime import datetime, timedelta

import pytest

from pattern_scanner.core.models import (
    BacktestResult,
    Candle,
    ChannelType,
    Direction,
    PatternData,
    PatternStatus,
)

BASE_TIME = datetime(2024, 1, 2, 9, 30)


def build_candles(closes, volumes=None, start=BASE_TIME, step=timedelta(days=1), spread=0.005):
    """以收盤價序列建立 K 線；開盤價為前一根收盤價"""
    candles = []
    previous = closes[0]
    for i, close in enumerate(closes):
        open_ = previous
        candles.append(Candle(
            timestamp=start + step * i,
            open=open_,
            high=max(open_, close) * (1 + spread),
            low=min(open_, close) * (1 - spread),
            close=close,
            volume=volumes[i] if volumes is not None else 1_000_000,
        ))
        previous = close
    return candles


@pytest.fixture
def make_candles():
    return build_candles


@pytest.fixture
def make_pattern():
    def _make(**overrides):
        values = dict(
            id="AAPL-1d-bull-flag-202401100930",
            symbol="AAPL",
            timeframe="1d",
            pattern_type="Bull Flag",
            direction=Direction.BULLISH,
            entry_price=100.0,
            target_price=110.0,
            stop_loss=95.0,
            risk_reward_ratio=2.0,
            confidence_score=80.0,
            created_at=BASE_TIME,
            status=PatternStatus.ACTIVE,
            channel_type=ChannelType.ASCENDING,
            ema_pattern="allBullish",
        )
        values.update(overrides)
        return PatternData(**values)
    return _make


@pytest.fixture
def make_result():
    def _make(**overrides):
        values = dict(
            pattern_id="p1",
            symbol="AAPL",
            timeframe="1d",
            pattern_type="Bull Flag",
            entry_price=100.0,
            target_price=110.0,
            stop_loss=95.0,
            actual_exit_price=110.0,
            predicted_direction=Direction.BULLISH,
            actual_direction=Direction.BULLISH,
            entry_date=BASE_TIME,
            exit_date=BASE_TIME + timedelta(days=4),
            candles_to_breakout=4,
            successful=True,
            profit_loss=10.0,
            profit_loss_percent=10.0,
        )
        values.update(overrides)
        return BacktestResult(**values)
    return _make
