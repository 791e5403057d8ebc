"""Detection helpers shared by the pattern detectors

Builds PatternData records from computed entry/target/stop levels so
every detector produces ids, risk/reward and freshness the same way.
"""

from typing import Optional

from .models import Candle, DataMetadata, Direction, PatternData


def freshness_for(metadata: Optional[DataMetadata]) -> str:
    """數據新鮮度標籤（無 metadata 時為 Unknown）"""
    if metadata is None:
        return "Unknown"
    return metadata.freshness_label()


def risk_reward(direction: Direction, entry: float, target: float, stop: float) -> float:
    """依方向計算風險報酬比；風險為零或負時回傳 0"""
    if direction is Direction.BULLISH:
        risk, reward = entry - stop, target - entry
    else:
        risk, reward = stop - entry, entry - target
    if risk <= 0:
        return 0.0
    return reward / risk


def pattern_id(symbol: str, timeframe: str, pattern_type: str, candle: Candle) -> str:
    """以偵測 K 線時間產生穩定的型態識別碼"""
    slug = pattern_type.lower().replace(" ", "-")
    return f"{symbol}-{timeframe}-{slug}-{candle.timestamp:%Y%m%d%H%M}"


def build_pattern(
    symbol: str,
    timeframe: str,
    pattern_type: str,
    direction: Direction,
    detection_candle: Candle,
    entry: float,
    target: float,
    stop: float,
    metadata: Optional[DataMetadata] = None,
    support_level: Optional[float] = None,
    resistance_level: Optional[float] = None,
) -> PatternData:
    """建立型態記錄（信心分數稍後由引擎計算）"""
    return PatternData(
        id=pattern_id(symbol, timeframe, pattern_type, detection_candle),
        symbol=symbol,
        timeframe=timeframe,
        pattern_type=pattern_type,
        direction=direction,
        entry_price=entry,
        target_price=target,
        stop_loss=stop,
        risk_reward_ratio=risk_reward(direction, entry, target, stop),
        confidence_score=0.0,
        created_at=detection_candle.timestamp,
        support_level=support_level,
        resistance_level=resistance_level,
        current_price=detection_candle.close,
        data_freshness=freshness_for(metadata),
    )
