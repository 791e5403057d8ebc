"""Multi-Timeframe Confirmation for AI PatternScanner

Checks whether the higher timeframes of a pattern trend the same way as
the pattern itself, and marks the pattern confirmed when the weighted
share of agreeing timeframes reaches the threshold.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from .constants import get_higher_timeframes, get_lookback_days, get_timeframe_weight
from .indicators import calculate_ema_series
from .models import Candle, Direction, PatternData

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationResult:
    """多週期確認結果"""
    confirmed: bool = False
    confirming_timeframe: Optional[str] = None
    ratio: float = 0.0
    confidence_boost: int = 0
    details: Dict[str, bool] = field(default_factory=dict)


def confirms_direction(
    candles: Sequence[Candle],
    direction: Direction,
    current_price: Optional[float] = None,
    min_candles: int = 10,
) -> bool:
    """判斷單一週期是否支持型態方向

    多頭：價格同時在 EMA20 與 EMA50 之上，或 EMA20 > EMA50 且最近 5 根
    K 線曾在 EMA20 的 1% 內獲得支撐。空頭鏡像處理。

    Args:
        candles: 該週期的 K 線（由舊到新）
        direction: 型態方向
        current_price: 目前價格（預設為最後收盤價）
        min_candles: 最少 K 線數

    Returns:
        是否確認
    """
    if len(candles) < min_candles:
        return False

    closes = [c.close for c in candles]
    ema20 = calculate_ema_series(closes, 20)
    ema50 = calculate_ema_series(closes, 50)
    price = current_price if current_price is not None else closes[-1]
    last20, last50 = float(ema20[-1]), float(ema50[-1])

    recent = range(max(0, len(candles) - 5), len(candles))
    if direction is Direction.BULLISH:
        beyond = price > last20 and price > last50
        aligned = last20 > last50
        touched = any(
            ema20[i] > 0 and abs(candles[i].low - ema20[i]) / ema20[i] < 0.01
            for i in recent
        )
    else:
        beyond = price < last20 and price < last50
        aligned = last20 < last50
        touched = any(
            ema20[i] > 0 and abs(candles[i].high - ema20[i]) / ema20[i] < 0.01
            for i in recent
        )

    return beyond or (aligned and touched)


class MultiTimeframeConfirmer:
    """多週期確認器

    較高週期以其自身的最後收盤價判斷趨勢。同一次掃描中，每個
    (股票, 週期, 抓取截止時間) 只抓取一次，再依型態時間截斷，避免使用未來數據。

    Attributes:
        data_source: 提供較高週期 K 線的數據源
        threshold: 加權確認比例門檻 (預設 0.5)
        max_boost: 信心分數最大加成 (預設 15)
    """

    def __init__(self, data_source, threshold: float = 0.5, max_boost: int = 15):
        self.data_source = data_source
        self.threshold = threshold
        self.max_boost = max_boost
        self._cache: Dict[Tuple[str, str, datetime], List[Candle]] = {}

    def clear_cache(self) -> None:
        """清除已抓取的較高週期 K 線"""
        self._cache.clear()

    def _higher_candles(
        self, symbol: str, timeframe: str, end: datetime, fetch_end: datetime
    ) -> List[Candle]:
        key = (symbol, timeframe, fetch_end)
        if key not in self._cache:
            start = fetch_end - timedelta(days=get_lookback_days(timeframe))
            candles, _ = self.data_source.fetch_with_metadata(symbol, timeframe, start, fetch_end)
            self._cache[key] = candles
        return [c for c in self._cache[key] if c.timestamp <= end]

    def evaluate(
        self,
        pattern: PatternData,
        end: Optional[datetime] = None,
        fetch_end: Optional[datetime] = None,
    ) -> ConfirmationResult:
        """計算型態的多週期確認結果（不修改型態）

        Args:
            pattern: 要確認的型態
            end: 只使用此時間（含）之前的較高週期 K 線（預設為現在）
            fetch_end: 向數據源抓取的截止時間，不得早於 end（預設同 end）
        """
        higher = get_higher_timeframes(pattern.timeframe)
        if not higher:
            return ConfirmationResult()

        end = end or datetime.now()
        fetch_end = max(fetch_end or end, end)
        details: Dict[str, bool] = {}
        confirmed_weight = 0.0
        total_weight = 0.0
        first_confirming = None

        for timeframe in higher:
            candles = self._higher_candles(pattern.symbol, timeframe, end, fetch_end)
            ok = confirms_direction(candles, pattern.direction)
            details[timeframe] = ok
            weight = get_timeframe_weight(timeframe)
            total_weight += weight
            if ok:
                confirmed_weight += weight
                if first_confirming is None:
                    first_confirming = timeframe

        ratio = confirmed_weight / total_weight if total_weight else 0.0
        confirmed = ratio >= self.threshold
        boost = 0
        if confirmed:
            boost = min(self.max_boost, int(round(confirmed_weight / len(higher) * self.max_boost)))

        return ConfirmationResult(
            confirmed=confirmed,
            confirming_timeframe=first_confirming if confirmed else None,
            ratio=ratio,
            confidence_boost=boost,
            details=details,
        )

    def apply(self, pattern: PatternData, end: Optional[datetime] = None) -> PatternData:
        """套用多週期確認至型態；失敗時記錄並保持未確認"""
        try:
            result = self.evaluate(pattern, end)
        except (ConnectionError, ValueError) as e:
            logger.error(f"Multi-timeframe confirmation failed for {pattern.symbol}: {e}")
            pattern.multi_timeframe_confirmed = False
            return pattern

        pattern.multi_timeframe_confirmed = result.confirmed
        pattern.confirming_timeframe = result.confirming_timeframe
        if result.confirmed:
            pattern.confidence_score = min(100.0, pattern.confidence_score + result.confidence_boost)
        return pattern
