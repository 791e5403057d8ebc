"""Data Source Abstract Interface - 數據源抽象介面

This module defines the abstract interface for data sources that provide
candles and quotes to the scanner, plus the metadata-returning wrapper the
pattern engine consumes.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Tuple

from pattern_scanner.core.models import Candle, DataMetadata, RealTimeQuote

logger = logging.getLogger(__name__)


class DataSource(ABC):
    """數據源抽象介面

    定義數據源必須實作的方法，用於抓取 K 線與即時報價。
    具體實作可以是 Yahoo Finance 或模擬數據。

    Attributes:
        source_name: 成功抓取時回報的來源名稱
        is_delayed: 報價是否延遲
    """

    source_name = "api"
    is_delayed = True

    @abstractmethod
    def fetch_candles(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> List[Candle]:
        """抓取 K 線數據

        Args:
            symbol: 股票代碼
            timeframe: K 線週期 (1m, 5m, 15m, 30m, 1h, 4h, 1d, 1w)
            start: 開始時間
            end: 結束時間

        Returns:
            K 線列表（由舊到新）

        Raises:
            ConnectionError: 連線失敗
            ValueError: 無效的參數
        """
        pass

    @abstractmethod
    def fetch_quote(self, symbol: str) -> RealTimeQuote:
        """抓取即時報價

        Raises:
            ConnectionError: 連線失敗
            ValueError: 無效的股票代碼
        """
        pass

    def describe_last_fetch(self) -> DataMetadata:
        """最近一次抓取的來源資訊"""
        return DataMetadata(source=self.source_name, is_delayed=self.is_delayed)

    def fetch_with_metadata(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> Tuple[List[Candle], DataMetadata]:
        """抓取 K 線並附帶來源資訊

        抓取失敗時記錄錯誤並回傳空列表與 source=error 的 metadata。
        """
        try:
            candles = self.fetch_candles(symbol, timeframe, start, end)
        except (ConnectionError, ValueError) as e:
            logger.error(f"Failed to fetch {symbol} {timeframe}: {e}")
            return [], DataMetadata(source="error", is_delayed=self.is_delayed)
        return candles, self.describe_last_fetch()
