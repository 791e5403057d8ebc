"""Mock Data Source - 模擬數據源

Seeded random-walk candles and quotes that stand in for a market data
provider, plus price paths that drift toward a pattern's target for demo
backtests.
"""

import logging
import zlib
from datetime import datetime, timedelta
from typing import List, Optional

import numpy as np

from pattern_scanner.core.models import Candle, PatternData, RealTimeQuote
from pattern_scanner.exceptions import InvalidTimeframeError
from .data_source import DataSource

logger = logging.getLogger(__name__)

TIMEFRAME_DELTAS = {
    "1m": timedelta(minutes=1),
    "5m": timedelta(minutes=5),
    "15m": timedelta(minutes=15),
    "30m": timedelta(minutes=30),
    "1h": timedelta(hours=1),
    "4h": timedelta(hours=4),
    "1d": timedelta(days=1),
    "1w": timedelta(weeks=1),
}


class MockDataSource(DataSource):
    """模擬數據源

    相同的 seed、股票代碼與週期會產生相同的 K 線。

    Attributes:
        seed: 亂數種子
        volatility: 每根 K 線的報酬標準差
        max_candles: 單次回傳的最大 K 線數
    """

    source_name = "mock"
    is_delayed = False

    def __init__(self, seed: int = 42, volatility: float = 0.01, max_candles: int = 500):
        self.seed = seed
        self.volatility = volatility
        self.max_candles = max_candles

    def _rng(self, *parts: str) -> np.random.Generator:
        key = zlib.crc32("|".join(parts).encode("utf-8"))
        return np.random.default_rng([self.seed, key])

    def _base_price(self, symbol: str) -> float:
        return 20.0 + zlib.crc32(symbol.encode("utf-8")) % 480

    def fetch_candles(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> List[Candle]:
        """產生隨機漫步 K 線

        Raises:
            ValueError: 無效的週期或時間區間
        """
        if timeframe not in TIMEFRAME_DELTAS:
            raise InvalidTimeframeError(timeframe, TIMEFRAME_DELTAS.keys())
        if end <= start:
            raise ValueError(f"end ({end}) must be after start ({start})")

        step = TIMEFRAME_DELTAS[timeframe]
        count = min(self.max_candles, int((end - start) / step))
        if count <= 0:
            return []

        rng = self._rng(symbol, timeframe, start.isoformat())
        returns = rng.normal(0.0, self.volatility, count)
        closes = self._base_price(symbol) * np.exp(np.cumsum(returns))
        opens = np.concatenate(([self._base_price(symbol)], closes[:-1]))
        spread = np.abs(rng.normal(0.0, self.volatility / 2, count))
        volumes = rng.integers(100_000, 5_000_000, count)

        first = end - step * count
        candles = []
        for i in range(count):
            high = max(opens[i], closes[i]) * (1 + spread[i])
            low = min(opens[i], closes[i]) * (1 - spread[i])
            candles.append(Candle(
                timestamp=first + step * i,
                open=round(float(opens[i]), 4),
                high=round(float(high), 4),
                low=round(float(low), 4),
                close=round(float(closes[i]), 4),
                volume=int(volumes[i]),
            ))

        logger.debug(f"Generated {len(candles)} mock candles for {symbol} {timeframe}")
        return candles

    def fetch_quote(self, symbol: str) -> RealTimeQuote:
        """以最近兩根日 K 產生報價"""
        now = datetime.now().replace(second=0, microsecond=0)
        candles = self.fetch_candles(symbol, "1d", now - timedelta(days=5), now)
        last, previous = candles[-1], candles[-2]
        change = last.close - previous.close
        spread = last.close * 0.0005
        return RealTimeQuote(
            symbol=symbol,
            price=last.close,
            change=change,
            change_percent=change / previous.close * 100,
            volume=last.volume,
            timestamp=last.timestamp,
            bid=round(last.close - spread, 4),
            ask=round(last.close + spread, 4),
            high=last.high,
            low=last.low,
            open=last.open,
            previous_close=previous.close,
        )

    def generate_pattern_prices(
        self,
        pattern: PatternData,
        start: Optional[datetime] = None,
        days: int = 50,
    ) -> List[Candle]:
        """產生往型態目標價移動的日 K

        前 40 天線性接近目標價，雜訊為價格區間的 ±10%。

        Args:
            pattern: 型態
            start: 第一根 K 線時間（預設為 60 天前）
            days: K 線數

        Returns:
            K 線列表（由舊到新）
        """
        start = start or datetime.now().replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=60)
        price_range = pattern.target_price - pattern.entry_price
        rng = self._rng(pattern.id, "pattern-prices")

        candles: List[Candle] = []
        for i in range(days):
            progress = min(1.0, i / 40)
            noise = (rng.random() - 0.5) * (price_range * 0.2)
            base = pattern.entry_price + price_range * progress + noise
            open_ = base * (0.99 + rng.random() * 0.02)
            close = base * (0.99 + rng.random() * 0.02)
            candles.append(Candle(
                timestamp=start + timedelta(days=i),
                open=open_,
                high=max(open_, close) * (1 + rng.random() * 0.01),
                low=min(open_, close) * (0.99 - rng.random() * 0.01),
                close=close,
                volume=int(10_000 + rng.random() * 90_000),
            ))
        return candles
