"""
技術指標 (Technical Indicators)

RSI, ATR, EMA, EMA crossover, volume trend, regression slope, price
channel and trendline break computed over chronologically ordered candles
(oldest first).
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .models import Candle, ChannelType, Direction


@dataclass
class EMACrossover:
    """EMA 交叉結果"""
    ema7: float = 0.0
    ema50: float = 0.0
    ema100: float = 0.0
    crossovers: List[str] = field(default_factory=list)


@dataclass
class VolumeTrend:
    """成交量趨勢"""
    increasing: bool = False
    percent: float = 0.0


def _closes(candles: Sequence[Candle]) -> np.ndarray:
    return np.array([c.close for c in candles], dtype=float)


def calculate_rsi(candles: Sequence[Candle], period: int = 14) -> float:
    """
    計算 RSI

    使用最近 period 個價格變化的簡單平均。數據不足時回傳中性值 50，
    沒有下跌時回傳 100。

    Args:
        candles: K 線序列
        period: RSI 週期

    Returns:
        RSI 值（小數兩位）
    """
    if len(candles) < period + 1:
        return 50.0

    deltas = np.diff(_closes(candles))[-period:]
    gains = np.where(deltas > 0, deltas, 0.0).sum() / period
    losses = np.where(deltas < 0, -deltas, 0.0).sum() / period

    if losses == 0:
        return 100.0

    rs = gains / losses
    return round(float(100 - (100 / (1 + rs))), 2)


def calculate_atr(candles: Sequence[Candle], period: int = 14) -> float:
    """
    計算 ATR（Wilder 平滑）

    Returns:
        ATR 值；數據不足時回傳 0
    """
    if len(candles) < period + 1:
        return 0.0

    highs = np.array([c.high for c in candles[1:]], dtype=float)
    lows = np.array([c.low for c in candles[1:]], dtype=float)
    prev_closes = _closes(candles[:-1])

    true_ranges = np.maximum.reduce([
        highs - lows,
        np.abs(highs - prev_closes),
        np.abs(lows - prev_closes),
    ])

    atr = float(np.mean(true_ranges[:period]))
    for tr in true_ranges[period:]:
        atr = (atr * (period - 1) + float(tr)) / period

    return round(atr, 2)


def calculate_ema(candles: Sequence[Candle], period: int) -> float:
    """
    計算 EMA（以 SMA 作為初始值）

    Returns:
        最新 EMA 值；數據不足時回傳第一根收盤價（無數據為 0）
    """
    if len(candles) < period:
        return float(candles[0].close) if candles else 0.0

    closes = _closes(candles)
    multiplier = 2 / (period + 1)
    ema = float(np.mean(closes[:period]))
    for close in closes[period:]:
        ema = (float(close) - ema) * multiplier + ema

    return round(ema, 2)


def calculate_ema_series(values: Sequence[float], period: int) -> np.ndarray:
    """計算 EMA 序列（長度與輸入相同，使用 pandas ewm）"""
    series = pd.Series(values, dtype=float)
    return series.ewm(span=period, adjust=False).mean().to_numpy()


def check_ema_crossover(candles: Sequence[Candle]) -> EMACrossover:
    """
    偵測 EMA 7/50/100 交叉

    比較最新 K 線與前一根 K 線的 EMA 排列，需至少 105 根 K 線。
    """
    if len(candles) < 105:
        return EMACrossover()

    ema7 = calculate_ema(candles, 7)
    ema50 = calculate_ema(candles, 50)
    ema100 = calculate_ema(candles, 100)

    previous = candles[:-1]
    prev7 = calculate_ema(previous, 7)
    prev50 = calculate_ema(previous, 50)
    prev100 = calculate_ema(previous, 100)

    crossovers: List[str] = []
    pairs = [
        ("7", "50", prev7, prev50, ema7, ema50),
        ("7", "100", prev7, prev100, ema7, ema100),
        ("50", "100", prev50, prev100, ema50, ema100),
    ]
    for fast, slow, prev_fast, prev_slow, cur_fast, cur_slow in pairs:
        if prev_fast <= prev_slow and cur_fast > cur_slow:
            crossovers.append(f"{fast}above{slow}")
        if prev_fast >= prev_slow and cur_fast < cur_slow:
            crossovers.append(f"{fast}below{slow}")

    return EMACrossover(ema7=ema7, ema50=ema50, ema100=ema100, crossovers=crossovers)


def analyze_volume(candles: Sequence[Candle], period: int = 5) -> VolumeTrend:
    """比較最近 period 根與前 period 根的平均成交量"""
    if len(candles) < period * 2:
        return VolumeTrend()

    volumes = np.array([c.volume for c in candles], dtype=float)
    recent_avg = float(np.mean(volumes[-period:]))
    prev_avg = float(np.mean(volumes[-2 * period:-period]))

    if prev_avg == 0:
        return VolumeTrend(increasing=recent_avg > 0, percent=0.0)

    percent = (recent_avg - prev_avg) / prev_avg * 100
    return VolumeTrend(increasing=recent_avg > prev_avg, percent=round(percent, 2))


def linear_regression_slope(values: Sequence[float]) -> float:
    """最小平方法斜率（x 為 0..n-1）"""
    n = len(values)
    if n < 2:
        return 0.0

    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)
    denominator = n * np.sum(x * x) - np.sum(x) ** 2
    if denominator == 0:
        return 0.0
    return float((n * np.sum(x * y) - np.sum(x) * np.sum(y)) / denominator)


def classify_channel(
    candles: Sequence[Candle],
    min_candles: int = 7,
    threshold: float = 0.1,
) -> Optional[ChannelType]:
    """
    依收盤價回歸斜率分類價格通道

    斜率以平均 K 線振幅 (high - low) 正規化，絕對值小於 threshold
    視為水平通道。

    Args:
        candles: K 線序列
        min_candles: 最少 K 線數
        threshold: 水平通道的正規化斜率門檻

    Returns:
        通道類型；K 線不足時回傳 None
    """
    if len(candles) < min_candles:
        return None

    slope = linear_regression_slope([c.close for c in candles])
    avg_range = float(np.mean([c.high - c.low for c in candles]))
    normalized = slope / avg_range if avg_range > 0 else slope

    if abs(normalized) < threshold:
        return ChannelType.HORIZONTAL
    return ChannelType.ASCENDING if normalized > 0 else ChannelType.DESCENDING


def check_trendline_break(
    candles: Sequence[Candle],
    direction: Direction,
    min_candles: int = 5,
) -> bool:
    """
    檢查最後一根 K 線是否突破趨勢線

    多頭以前面 K 線高點的回歸線為壓力線，收盤價高於其延伸值即為突破；
    空頭以低點回歸線為支撐線，收盤價低於延伸值即為跌破。
    """
    if len(candles) < min_candles:
        return False

    previous = candles[:-1]
    x = np.arange(len(previous), dtype=float)
    if direction is Direction.BULLISH:
        y = np.array([c.high for c in previous], dtype=float)
    else:
        y = np.array([c.low for c in previous], dtype=float)

    slope, intercept = np.polyfit(x, y, 1)
    projected = slope * len(previous) + intercept
    close = candles[-1].close
    if direction is Direction.BULLISH:
        return bool(close > projected)
    return bool(close < projected)


def candles_to_dataframe(candles: Sequence[Candle]) -> pd.DataFrame:
    """將 K 線列表轉為以時間為索引的 DataFrame"""
    if not candles:
        return pd.DataFrame(columns=["open", "high", "low", "close", "volume"])

    df = pd.DataFrame([
        {
            "timestamp": c.timestamp,
            "open": c.open,
            "high": c.high,
            "low": c.low,
            "close": c.close,
            "volume": c.volume,
        }
        for c in candles
    ])
    return df.set_index("timestamp")
