"""Flag Pattern Detector for AI PatternScanner

This module implements the FlagDetector class for identifying bull and
bear flags: a strong directional pole followed by a tight consolidation
on fading volume.
"""

from typing import List, Optional, Sequence

from .constants import BEAR_FLAG, BULL_FLAG
from .detection import build_pattern, risk_reward
from .models import Candle, DataMetadata, Direction, PatternData


def _avg_volume(candles: Sequence[Candle]) -> float:
    return sum(c.volume for c in candles) / len(candles)


class FlagDetector:
    """旗形檢測器

    以 20 根 K 線的滑動窗口掃描：前 10 根為旗桿，後 10 根為旗面。

    Attributes:
        direction: 偵測方向（多頭旗形或空頭旗形）
        window: 窗口長度（預設 20）
        min_pole_move: 旗桿最小漲跌幅 (預設 5%)
        min_directional_ratio: 旗桿中同向 K 線最小比例 (預設 60%)
        max_flag_range: 旗面最大振幅 (預設 10%)
        flag_volume_ratio: 旗面末段成交量上限 (預設為初段的 80%)
        min_risk_reward: 最低風險報酬比 (預設 2)
    """

    def __init__(
        self,
        direction: Direction = Direction.BULLISH,
        window: int = 20,
        min_pole_move: float = 0.05,
        min_directional_ratio: float = 0.6,
        max_flag_range: float = 0.10,
        flag_volume_ratio: float = 0.8,
        min_risk_reward: float = 2.0,
    ):
        if window < 10 or window % 2:
            raise ValueError("window must be an even number >= 10")

        self.direction = direction
        self.window = window
        self.min_pole_move = min_pole_move
        self.min_directional_ratio = min_directional_ratio
        self.max_flag_range = max_flag_range
        self.flag_volume_ratio = flag_volume_ratio
        self.min_risk_reward = min_risk_reward

    @property
    def pattern_type(self) -> str:
        return BULL_FLAG if self.direction is Direction.BULLISH else BEAR_FLAG

    def is_pole(self, candles: Sequence[Candle]) -> bool:
        """檢查是否為旗桿

        Args:
            candles: 旗桿區段 K 線

        Returns:
            漲跌幅、同向 K 線比例與成交量遞增皆成立時為 True
        """
        if len(candles) < 5 or candles[0].open <= 0:
            return False

        change = (candles[-1].close - candles[0].open) / candles[0].open
        if self.direction is Direction.BULLISH:
            if change < self.min_pole_move:
                return False
            directional = sum(1 for c in candles if c.close > c.open)
        else:
            if change > -self.min_pole_move:
                return False
            directional = sum(1 for c in candles if c.close < c.open)

        if directional < len(candles) * self.min_directional_ratio:
            return False

        return _avg_volume(candles[-3:]) >= _avg_volume(candles[:3])

    def is_flag(self, candles: Sequence[Candle]) -> bool:
        """檢查是否為旗面（窄幅整理且量縮）"""
        if len(candles) < 5:
            return False

        max_high = max(c.high for c in candles)
        min_low = min(c.low for c in candles)
        if min_low <= 0:
            return False
        if (max_high - min_low) / min_low > self.max_flag_range:
            return False

        return _avg_volume(candles[-3:]) <= _avg_volume(candles[:3]) * self.flag_volume_ratio

    def detect(
        self,
        symbol: str,
        candles: List[Candle],
        timeframe: str,
        metadata: Optional[DataMetadata] = None,
    ) -> List[PatternData]:
        """偵測旗形型態

        Args:
            symbol: 股票代碼
            candles: K 線序列（由舊到新）
            timeframe: K 線週期
            metadata: 數據來源資訊

        Returns:
            符合條件的型態列表（K 線不足時為空）
        """
        patterns: List[PatternData] = []
        half = self.window // 2

        for i in range(self.window, len(candles) + 1):
            pole = candles[i - self.window:i - half]
            if not self.is_pole(pole):
                continue

            flag = candles[i - half:i]
            if not self.is_flag(flag):
                continue

            flag_high = max(c.high for c in flag)
            flag_low = min(c.low for c in flag)

            if self.direction is Direction.BULLISH:
                entry = candles[i - 1].high * 1.01
                pole_height = pole[-1].high - pole[0].low
                target = entry + pole_height
                stop = flag_low * 0.99
            else:
                entry = candles[i - 1].low * 0.99
                pole_height = pole[0].high - pole[-1].low
                target = entry - pole_height
                stop = flag_high * 1.01

            if risk_reward(self.direction, entry, target, stop) < self.min_risk_reward:
                continue

            patterns.append(build_pattern(
                symbol=symbol,
                timeframe=timeframe,
                pattern_type=self.pattern_type,
                direction=self.direction,
                detection_candle=candles[i - 1],
                entry=entry,
                target=target,
                stop=stop,
                metadata=metadata,
                support_level=flag_low,
                resistance_level=flag_high,
            ))

        return patterns
