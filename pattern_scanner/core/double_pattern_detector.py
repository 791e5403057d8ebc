"""Double Top / Double Bottom Detector for AI PatternScanner

This module identifies two comparable extremes separated by a counter
move, then projects the neckline breakout into a tradable pattern.
"""

from typing import List, Optional, Tuple

from .constants import DOUBLE_BOTTOM, DOUBLE_TOP
from .detection import build_pattern
from .models import Candle, DataMetadata, Direction, PatternData


class DoublePatternDetector:
    """雙重頂底檢測器

    Attributes:
        direction: BULLISH 偵測雙重底，BEARISH 偵測雙重頂
        extreme_tolerance: 兩個極值與絕對極值的容差 (預設 3%)
        min_separation: 兩極值最小間隔 K 線數 (預設 5)
        min_middle_bars: 兩極值之間最少 K 線數 (預設 3)
        min_counter_move: 中間反彈/回落最小幅度 (預設 3%)
        confirm_move: 第二極值後價格離開的最小幅度 (預設 1%)
    """

    def __init__(
        self,
        direction: Direction = Direction.BULLISH,
        extreme_tolerance: float = 0.03,
        min_separation: int = 5,
        min_middle_bars: int = 3,
        min_counter_move: float = 0.03,
        confirm_move: float = 0.01,
    ):
        self.direction = direction
        self.extreme_tolerance = extreme_tolerance
        self.min_separation = min_separation
        self.min_middle_bars = min_middle_bars
        self.min_counter_move = min_counter_move
        self.confirm_move = confirm_move

    @property
    def pattern_type(self) -> str:
        return DOUBLE_BOTTOM if self.direction is Direction.BULLISH else DOUBLE_TOP

    def find_extremes(self, candles: List[Candle]) -> Optional[Tuple[int, int, float]]:
        """找出兩個極值

        Returns:
            (較早索引, 較晚索引, 頸線價位)；不成立時回傳 None
        """
        if len(candles) < self.min_separation + 1:
            return None

        bullish = self.direction is Direction.BULLISH
        if bullish:
            values = [c.low for c in candles]
            extreme = min(values)
            candidates = [
                (v, idx) for idx, v in enumerate(values)
                if v < extreme * (1 + self.extreme_tolerance)
            ]
            candidates.sort()
        else:
            values = [c.high for c in candles]
            extreme = max(values)
            candidates = [
                (v, idx) for idx, v in enumerate(values)
                if v > extreme * (1 - self.extreme_tolerance)
            ]
            candidates.sort(key=lambda item: (-item[0], item[1]))

        if len(candidates) < 2:
            return None

        first_idx = candidates[0][1]
        second = next(
            (item for item in candidates if abs(item[1] - first_idx) >= self.min_separation),
            None,
        )
        if second is None:
            return None

        left, right = sorted((first_idx, second[1]))
        middle = candles[left + 1:right]
        if len(middle) < self.min_middle_bars:
            return None

        if bullish:
            lowest = min(values[left], values[right])
            neckline = max(c.high for c in middle)
            if neckline < lowest * (1 + self.min_counter_move):
                return None
        else:
            highest = max(values[left], values[right])
            neckline = min(c.low for c in middle)
            if neckline > highest * (1 - self.min_counter_move):
                return None

        return left, right, neckline

    def is_confirmed(self, candles: List[Candle], left: int, right: int) -> bool:
        """第二極值之後（最多 3 根）收盤價是否已離開極值區"""
        recent_idx = min(len(candles) - 1, right + 3)
        recent_close = candles[recent_idx].close
        if self.direction is Direction.BULLISH:
            lowest = min(candles[left].low, candles[right].low)
            return recent_close > lowest * (1 + self.confirm_move)
        highest = max(candles[left].high, candles[right].high)
        return recent_close < highest * (1 - self.confirm_move)

    def detect(
        self,
        symbol: str,
        candles: List[Candle],
        timeframe: str,
        metadata: Optional[DataMetadata] = None,
    ) -> List[PatternData]:
        """偵測雙重頂底

        以整段 K 線判斷，最多回傳一個型態。目標價為頸線突破後投射型態高度。
        """
        found = self.find_extremes(candles)
        if found is None:
            return []

        left, right, neckline = found
        if not self.is_confirmed(candles, left, right):
            return []

        detection_candle = candles[min(len(candles) - 1, right + 3)]
        if self.direction is Direction.BULLISH:
            bottom = min(candles[left].low, candles[right].low)
            entry = neckline * 1.01
            target = entry + (neckline - bottom)
            stop = bottom * 0.99
            support, resistance = bottom, neckline
        else:
            top = max(candles[left].high, candles[right].high)
            entry = neckline * 0.99
            target = entry - (top - neckline)
            stop = top * 1.01
            support, resistance = neckline, top

        return [build_pattern(
            symbol=symbol,
            timeframe=timeframe,
            pattern_type=self.pattern_type,
            direction=self.direction,
            detection_candle=detection_candle,
            entry=entry,
            target=target,
            stop=stop,
            metadata=metadata,
            support_level=support,
            resistance_level=resistance,
        )]
