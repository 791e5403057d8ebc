"""Yahoo Finance Data Source - 真實股票數據源

This module provides real market candles and quotes using the yfinance API.
Four-hour candles are resampled from hourly data with pandas.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pandas as pd

from pattern_scanner.core.models import Candle, DataMetadata, RealTimeQuote
from pattern_scanner.exceptions import InvalidTimeframeError
from .data_source import DataSource

logger = logging.getLogger(__name__)

# 週期 -> yfinance interval
YF_INTERVALS: Dict[str, str] = {
    "1m": "1m",
    "5m": "5m",
    "15m": "15m",
    "30m": "30m",
    "1h": "1h",
    "4h": "1h",
    "1d": "1d",
    "1w": "1wk",
}


def resample_ohlcv(df: pd.DataFrame, rule: str) -> pd.DataFrame:
    """將 OHLCV DataFrame 重新取樣為較長週期（如 4h）"""
    resampled = df.resample(rule).agg({
        "Open": "first",
        "High": "max",
        "Low": "min",
        "Close": "last",
        "Volume": "sum",
    })
    return resampled.dropna(subset=["Open", "Close"])


def trim_to_end(df: pd.DataFrame, end: datetime) -> pd.DataFrame:
    """移除時間晚於 end 的列（時區索引以交易所當地時間比較）"""
    index = df.index.tz_localize(None) if df.index.tz is not None else df.index
    return df[index <= pd.Timestamp(end)]


def dataframe_to_candles(df: pd.DataFrame) -> List[Candle]:
    """將 yfinance 格式的 DataFrame 轉為 K 線列表"""
    candles: List[Candle] = []
    for idx, row in df.iterrows():
        timestamp = idx.to_pydatetime()
        if timestamp.tzinfo is not None:
            timestamp = timestamp.replace(tzinfo=None)
        candles.append(Candle(
            timestamp=timestamp,
            open=float(row["Open"]),
            high=float(row["High"]),
            low=float(row["Low"]),
            close=float(row["Close"]),
            volume=int(row["Volume"]),
        ))
    return candles


class YFinanceDataSource(DataSource):
    """Yahoo Finance 數據源

    使用 yfinance 套件抓取真實股票數據。

    Attributes:
        cache: 簡單的記憶體快取，避免重複請求
        cache_ttl: 快取存活時間（秒）
    """

    source_name = "api"
    is_delayed = True

    def __init__(self, cache_ttl: int = 300):
        """初始化 Yahoo Finance 數據源

        Args:
            cache_ttl: 快取存活時間（秒），預設 5 分鐘
        """
        self.cache = {}
        self.cache_ttl = cache_ttl
        self._yf = None
        self._last_cache_time: Optional[datetime] = None

    def _get_yfinance(self):
        """延遲載入 yfinance 模組"""
        if self._yf is None:
            try:
                import yfinance as yf
                self._yf = yf
            except ImportError:
                raise ImportError(
                    "yfinance 套件未安裝。請執行: pip install yfinance"
                )
        return self._yf

    def _get_cache_key(self, symbol: str, timeframe: str, start: datetime, end: datetime) -> str:
        """生成快取鍵值"""
        return f"{symbol}_{timeframe}_{start:%Y%m%d%H%M}_{end:%Y%m%d%H%M}"

    def _is_cache_valid(self, cache_key: str) -> bool:
        """檢查快取是否有效"""
        if cache_key not in self.cache:
            return False
        cached_time, _ = self.cache[cache_key]
        return (datetime.now() - cached_time).total_seconds() < self.cache_ttl

    def describe_last_fetch(self) -> DataMetadata:
        if self._last_cache_time is not None:
            return DataMetadata(
                source="cache",
                is_delayed=self.is_delayed,
                last_updated=self._last_cache_time,
            )
        return DataMetadata(source=self.source_name, is_delayed=self.is_delayed)

    def fetch_candles(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> List[Candle]:
        """抓取 K 線數據

        Args:
            symbol: 股票代碼（美股直接輸入如 AAPL）
            timeframe: K 線週期
            start: 開始時間
            end: 結束時間（含），以交易所當地時間解讀

        Returns:
            K 線列表（由舊到新）

        Raises:
            ConnectionError: 連線失敗
            ValueError: 無效的週期
        """
        if timeframe not in YF_INTERVALS:
            raise InvalidTimeframeError(timeframe, YF_INTERVALS.keys())

        yf = self._get_yfinance()

        cache_key = self._get_cache_key(symbol, timeframe, start, end)
        if self._is_cache_valid(cache_key):
            logger.debug(f"使用快取數據: {symbol} {timeframe}")
            cached_time, data = self.cache[cache_key]
            self._last_cache_time = cached_time
            return data

        self._last_cache_time = None
        try:
            logger.info(f"從 Yahoo Finance 抓取 {symbol} {timeframe} 數據...")
            ticker = yf.Ticker(symbol)
            # yfinance 的 end 不含當日，多取一天再截斷至 end
            df = ticker.history(
                start=start.strftime("%Y-%m-%d"),
                end=(end + timedelta(days=1)).strftime("%Y-%m-%d"),
                interval=YF_INTERVALS[timeframe],
            )
        except Exception as e:
            logger.error(f"抓取 {symbol} 數據失敗: {e}")
            raise ConnectionError(f"無法抓取 {symbol} 數據: {e}")

        if not df.empty:
            df = trim_to_end(df, end)
        if df.empty:
            logger.warning(f"找不到 {symbol} 的數據")
            return []

        if timeframe == "4h":
            df = resample_ohlcv(df, "4h")

        result = dataframe_to_candles(df)
        self.cache[cache_key] = (datetime.now(), result)

        logger.info(f"成功抓取 {symbol}: {len(result)} 筆數據")
        return result

    def fetch_quote(self, symbol: str) -> RealTimeQuote:
        """以最近兩個交易日收盤價計算即時報價

        Raises:
            ConnectionError: 連線失敗
            ValueError: 找不到股票數據
        """
        yf = self._get_yfinance()

        try:
            df = yf.Ticker(symbol).history(period="5d")
        except Exception as e:
            logger.error(f"抓取 {symbol} 報價失敗: {e}")
            raise ConnectionError(f"無法抓取 {symbol} 報價: {e}")

        if df.empty:
            raise ValueError(f"No quote data for {symbol}")

        last = df.iloc[-1]
        price = float(last["Close"])
        previous_close = float(df["Close"].iloc[-2]) if len(df) >= 2 else price
        change = price - previous_close
        change_percent = change / previous_close * 100 if previous_close else 0.0
        timestamp = df.index[-1].to_pydatetime().replace(tzinfo=None)

        return RealTimeQuote(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=change_percent,
            volume=int(last["Volume"]),
            timestamp=timestamp,
            high=float(last["High"]),
            low=float(last["Low"]),
            open=float(last["Open"]),
            previous_close=previous_close,
        )

    def clear_cache(self):
        """清除所有快取"""
        self.cache.clear()
        self._last_cache_time = None
        logger.info("快取已清除")
