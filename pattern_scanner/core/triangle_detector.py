"""Triangle Pattern Detector for AI PatternScanner

Ascending triangles (flat resistance, rising lows) and descending
triangles (flat support, falling highs) over a sliding 20-candle window.
"""

from typing import List, Optional, Sequence

from .constants import ASCENDING_TRIANGLE, DESCENDING_TRIANGLE
from .detection import build_pattern, risk_reward
from .models import Candle, DataMetadata, Direction, PatternData


class TriangleDetector:
    """三角形檢測器

    Attributes:
        direction: BULLISH 偵測上升三角形，BEARISH 偵測下降三角形
        window: 窗口長度 (預設 20)
        touch_tolerance: 觸及水平線的容差 (預設 0.5%)
        min_touches: 最少觸及次數 (預設 3)
        segments: 斜邊分段數 (預設 4)
        min_trending_segments: 最少同向段數 (預設 2)
        min_risk_reward: 最低風險報酬比 (預設 2)
    """

    def __init__(
        self,
        direction: Direction = Direction.BULLISH,
        window: int = 20,
        touch_tolerance: float = 0.005,
        min_touches: int = 3,
        segments: int = 4,
        min_trending_segments: int = 2,
        min_risk_reward: float = 2.0,
    ):
        if window < segments:
            raise ValueError("window must be >= segments")

        self.direction = direction
        self.window = window
        self.touch_tolerance = touch_tolerance
        self.min_touches = min_touches
        self.segments = segments
        self.min_trending_segments = min_trending_segments
        self.min_risk_reward = min_risk_reward

    @property
    def pattern_type(self) -> str:
        if self.direction is Direction.BULLISH:
            return ASCENDING_TRIANGLE
        return DESCENDING_TRIANGLE

    def flat_level(self, values: Sequence[float]) -> float:
        """水平線價位：壓力取最高 3 個高點平均，支撐取最低 3 個低點平均"""
        ordered = sorted(values, reverse=self.direction is Direction.BULLISH)
        top = ordered[:3]
        return sum(top) / len(top)

    def has_flat_level(self, values: Sequence[float]) -> bool:
        level = self.flat_level(values)
        if level <= 0:
            return False
        touches = sum(1 for v in values if abs(v - level) / level < self.touch_tolerance)
        return touches >= self.min_touches

    def has_sloping_side(self, candles: Sequence[Candle]) -> bool:
        """檢查斜邊：上升三角形要求分段低點墊高，下降三角形要求分段高點下降"""
        size = len(candles) // self.segments
        extremes: List[float] = []
        for s in range(self.segments):
            segment = candles[s * size:(s + 1) * size]
            if self.direction is Direction.BULLISH:
                extremes.append(min(c.low for c in segment))
            else:
                extremes.append(max(c.high for c in segment))

        if self.direction is Direction.BULLISH:
            trending = sum(1 for a, b in zip(extremes, extremes[1:]) if b > a)
        else:
            trending = sum(1 for a, b in zip(extremes, extremes[1:]) if b < a)
        return trending >= self.min_trending_segments

    def detect(
        self,
        symbol: str,
        candles: List[Candle],
        timeframe: str,
        metadata: Optional[DataMetadata] = None,
    ) -> List[PatternData]:
        """偵測三角形型態

        Returns:
            符合條件的型態列表
        """
        patterns: List[PatternData] = []
        bullish = self.direction is Direction.BULLISH

        for i in range(self.window, len(candles) + 1):
            window = candles[i - self.window:i]
            flat_values = [c.high for c in window] if bullish else [c.low for c in window]

            if not self.has_flat_level(flat_values):
                continue
            if not self.has_sloping_side(window):
                continue

            level = self.flat_level(flat_values)
            last = window[-1]
            if bullish:
                entry = level * 1.01
                height = level - min(c.low for c in window)
                target = entry + height
                stop = last.low * 0.99
            else:
                entry = level * 0.99
                height = max(c.high for c in window) - level
                target = entry - height
                stop = last.high * 1.01

            if risk_reward(self.direction, entry, target, stop) < self.min_risk_reward:
                continue

            patterns.append(build_pattern(
                symbol=symbol,
                timeframe=timeframe,
                pattern_type=self.pattern_type,
                direction=self.direction,
                detection_candle=last,
                entry=entry,
                target=target,
                stop=stop,
                metadata=metadata,
                support_level=last.low if bullish else level,
                resistance_level=level if bullish else last.high,
            ))

        return patterns
