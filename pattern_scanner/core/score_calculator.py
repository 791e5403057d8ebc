"""Score Calculator for AI PatternScanner

This module implements the ScoreCalculator class for computing a
0-100 confidence score from weighted pattern, technical, timeframe,
market and historical factors.
"""

import math
from dataclasses import dataclass, fields
from typing import Dict, Optional, Sequence

import numpy as np

from .constants import (
    ASCENDING_TRIANGLE,
    BEAR_FLAG,
    BULL_FLAG,
    DESCENDING_TRIANGLE,
    get_timeframe_weight,
)
from .indicators import linear_regression_slope
from .models import Direction


DEFAULT_WEIGHTS: Dict[str, float] = {
    # 型態品質
    "pattern_quality": 15,
    "price_action": 15,
    "volume_confirmation": 10,
    # 技術面
    "trend_strength": 10,
    "volatility": 5,
    "momentum": 10,
    "support": 5,
    # 週期
    "timeframe": 5,
    "multi_timeframe_alignment": 10,
    # 市場
    "market_condition": 5,
    "sector_strength": 5,
    # 歷史
    "historical_accuracy": 3,
    "backtest_results": 2,
}


@dataclass
class ConfidenceFactors:
    """信心分數因子（皆為 0-1，None 表示不計入）"""
    pattern_quality: Optional[float] = None
    price_action: Optional[float] = None
    volume_confirmation: Optional[float] = None
    trend_strength: Optional[float] = None
    volatility: Optional[float] = None
    momentum: Optional[float] = None
    support: Optional[float] = None
    timeframe: Optional[float] = None
    multi_timeframe_alignment: Optional[float] = None
    market_condition: Optional[float] = None
    sector_strength: Optional[float] = None
    historical_accuracy: Optional[float] = None
    backtest_results: Optional[float] = None


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _consistency(values: Sequence[float]) -> float:
    """序列一致性：1 - 平均絕對偏差 / 平均值"""
    if len(values) < 2:
        return 1.0
    arr = np.asarray(values, dtype=float)
    mean = float(np.mean(arr))
    if mean == 0:
        return 0.0
    avg_dev = float(np.mean(np.abs(arr - mean)))
    return 1.0 - min(1.0, avg_dev / mean)


def _level_quality(values: Sequence[float]) -> float:
    """水平線品質：接近平均值（1% 內）的比例 x 0.7 + 離散度 x 0.3"""
    if len(values) < 3:
        return 0.5
    arr = np.asarray(values, dtype=float)
    mean = float(np.mean(arr))
    if mean == 0:
        return 0.0
    std = float(np.std(arr))
    touches = int(np.sum(np.abs(arr - mean) <= mean * 0.01))
    touches_quality = touches / len(arr)
    deviation_quality = max(0.0, 1.0 - std / mean)
    return touches_quality * 0.7 + deviation_quality * 0.3


class ScoreCalculator:
    """信心分數計算器

    各因子先限制在 0-1，只有提供的因子參與加權；沒有任何因子時為 50。

    Attributes:
        weights: 因子權重
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        """初始化信心分數計算器

        Args:
            weights: 自訂權重（鍵須為 ConfidenceFactors 欄位）

        Raises:
            ValueError: 出現未知因子或權重為負
        """
        merged = dict(DEFAULT_WEIGHTS)
        if weights:
            valid = {f.name for f in fields(ConfidenceFactors)}
            for name, weight in weights.items():
                if name not in valid:
                    raise ValueError(f"Unknown confidence factor: {name}")
                if weight < 0:
                    raise ValueError(f"Weight for {name} must be >= 0, got {weight}")
                merged[name] = weight
        self.weights = merged

    def calculate_confidence_score(self, factors: ConfidenceFactors) -> int:
        """計算加權信心分數

        Args:
            factors: 信心因子

        Returns:
            0-100 的整數分數
        """
        score = 0.0
        total_weight = 0.0
        for name, weight in self.weights.items():
            value = getattr(factors, name)
            if value is None:
                continue
            score += _clamp(float(value)) * weight
            total_weight += weight

        if total_weight == 0:
            return 50

        normalized = _clamp(score / total_weight * 100, 0.0, 100.0)
        return int(math.floor(normalized + 0.5))

    # ==================== 型態品質 ====================

    def calculate_pattern_quality(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        pattern_type: str,
    ) -> float:
        """依型態計算形態品質 (0-1)；未知型態為 0.7"""
        name = pattern_type.lower()
        if name == BULL_FLAG.lower():
            return self._flag_quality(highs, lows, ideal_slope=-0.05)
        if name == BEAR_FLAG.lower():
            return self._flag_quality(highs, lows, ideal_slope=0.05)
        if name == ASCENDING_TRIANGLE.lower():
            return self._triangle_quality(highs, lows, ascending=True)
        if name == DESCENDING_TRIANGLE.lower():
            return self._triangle_quality(highs, lows, ascending=False)
        return 0.7

    def _flag_quality(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        ideal_slope: float,
    ) -> float:
        if len(highs) < 5 or len(lows) < 5:
            return 0.5

        highs_dev = abs(linear_regression_slope(highs) - ideal_slope)
        lows_dev = abs(linear_regression_slope(lows) - ideal_slope)

        widths = [h - l for h, l in zip(highs, lows)]
        slope_quality = max(0.0, 1.0 - (highs_dev + lows_dev))
        quality = slope_quality * 0.7 + _consistency(widths) * 0.3
        return _clamp(quality)

    def _triangle_quality(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        ascending: bool,
    ) -> float:
        if len(highs) < 5 or len(lows) < 5:
            return 0.5

        highs_slope = linear_regression_slope(highs)
        lows_slope = linear_regression_slope(lows)

        if ascending:
            highs_dev = abs(highs_slope - 0.0)
            lows_dev = abs(lows_slope - 0.1)
            slope_quality = max(0.0, 1.0 - (highs_dev * 2 + lows_dev))
            level = _level_quality(highs)
        else:
            highs_dev = abs(highs_slope - (-0.1))
            lows_dev = abs(lows_slope - 0.0)
            slope_quality = max(0.0, 1.0 - (highs_dev + lows_dev * 2))
            level = _level_quality(lows)

        return _clamp(slope_quality * 0.5 + level * 0.5)

    # ==================== 技術面因子 ====================

    def calculate_volume_confirmation(self, volumes: Sequence[float], pattern_type: str) -> float:
        """成交量確認：整理期間量縮為佳"""
        if len(volumes) < 5:
            return 0.5

        declining = linear_regression_slope(volumes) < 0
        name = pattern_type.lower()
        if name in (BULL_FLAG.lower(), BEAR_FLAG.lower()):
            return 0.8 if declining else 0.5
        if name in (ASCENDING_TRIANGLE.lower(), DESCENDING_TRIANGLE.lower()):
            return 0.7 if declining else 0.5
        return 0.6

    def calculate_trend_strength(
        self,
        ema20: Sequence[float],
        ema50: Sequence[float],
        direction: Direction,
    ) -> float:
        """趨勢強度：EMA20/EMA50 斜率 x 0.7 + 均線排列 x 0.3"""
        if len(ema20) < 5 or len(ema50) < 5:
            return 0.5

        slope20 = linear_regression_slope(ema20)
        slope50 = linear_regression_slope(ema50)

        if direction is Direction.BULLISH:
            slope_strength = _clamp((slope20 + slope50) / 0.01 + 0.5)
            alignment = 1.0 if ema20[-1] > ema50[-1] else 0.0
        else:
            slope_strength = _clamp((-slope20 - slope50) / 0.01 + 0.5)
            alignment = 1.0 if ema20[-1] < ema50[-1] else 0.0

        return slope_strength * 0.7 + alignment * 0.3

    def calculate_momentum(self, rsi: Optional[float], direction: Direction) -> float:
        """RSI 動能：順向但未過熱時加分，其餘為 0.5"""
        if rsi is None:
            return 0.5
        if direction is Direction.BULLISH:
            if 50 < rsi <= 70:
                return (rsi - 50) / 20 + 0.5
            return 0.5
        if 30 <= rsi < 50:
            return (50 - rsi) / 20 + 0.5
        return 0.5

    def get_timeframe_weight(self, timeframe: str) -> float:
        return get_timeframe_weight(timeframe)

    def calculate_combined_score(
        self,
        pattern_type: str,
        timeframe: str,
        direction: Direction,
        highs: Sequence[float],
        lows: Sequence[float],
        volumes: Sequence[float],
        ema20: Sequence[float],
        ema50: Sequence[float],
        rsi: Optional[float] = None,
        multi_timeframe_confirmed: bool = False,
        historical_accuracy: Optional[float] = None,
    ) -> int:
        """綜合信心分數

        未能從數據計算的因子使用固定預設值。
        """
        factors = ConfidenceFactors(
            pattern_quality=self.calculate_pattern_quality(highs, lows, pattern_type),
            price_action=0.8,
            volume_confirmation=self.calculate_volume_confirmation(volumes, pattern_type),
            trend_strength=self.calculate_trend_strength(ema20, ema50, direction),
            volatility=0.7,
            momentum=self.calculate_momentum(rsi, direction),
            support=0.75,
            timeframe=self.get_timeframe_weight(timeframe),
            multi_timeframe_alignment=1.0 if multi_timeframe_confirmed else 0.5,
            market_condition=0.7,
            sector_strength=0.7,
            historical_accuracy=historical_accuracy or 0.75,
        )
        return self.calculate_confidence_score(factors)
