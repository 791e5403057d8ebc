"""Scanner Configuration

Runtime settings read from environment variables, and the factory that turns
them into a data source.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from pattern_scanner.data import DataSource, MockDataSource, YFinanceDataSource
from pattern_scanner.exceptions import DataSourceError

logger = logging.getLogger(__name__)

DATA_SOURCES = ("mock", "yfinance")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ScannerConfig:
    """掃描器配置

    Attributes:
        data_source: 數據來源 (mock 或 yfinance)
        db_path: SQLite 資料庫路徑，None 表示預設的 data/patterns.db
        min_confidence: 輸出型態的最低信心分數
        max_bars: 回測最多持有的 K 線數
        seed: 模擬數據的亂數種子
        log_level: 日誌等級
        cache_ttl: yfinance 快取存活秒數
    """
    data_source: str = "mock"
    db_path: Optional[str] = None
    min_confidence: float = 0.0
    max_bars: int = 30
    seed: int = 42
    log_level: str = "INFO"
    cache_ttl: int = 300

    @classmethod
    def from_env(cls) -> "ScannerConfig":
        """從環境變數讀取配置；未設定的項目使用預設值

        Raises:
            ValueError: 數值型環境變數無法解析
        """
        return cls(
            data_source=os.environ.get('SCANNER_DATA_SOURCE', 'mock').lower(),
            db_path=os.environ.get('SCANNER_DB_PATH') or None,
            min_confidence=float(os.environ.get('SCANNER_MIN_CONFIDENCE', '0')),
            max_bars=int(os.environ.get('SCANNER_MAX_BARS', '30')),
            seed=int(os.environ.get('SCANNER_SEED', '42')),
            log_level=os.environ.get('SCANNER_LOG_LEVEL', 'INFO').upper(),
            cache_ttl=int(os.environ.get('SCANNER_CACHE_TTL', '300')),
        )

    def validate(self) -> bool:
        """驗證配置是否有效

        Returns:
            配置是否有效
        """
        return (
            self.data_source in DATA_SOURCES
            and 0.0 <= self.min_confidence <= 100.0
            and self.max_bars >= 1
            and self.log_level in LOG_LEVELS
            and self.cache_ttl >= 0
        )


def create_data_source(config: ScannerConfig) -> DataSource:
    """依配置建立數據源

    Raises:
        DataSourceError: 未知的數據來源名稱
    """
    if config.data_source == "mock":
        return MockDataSource(seed=config.seed)
    if config.data_source == "yfinance":
        return YFinanceDataSource(cache_ttl=config.cache_ttl)
    raise DataSourceError(config.data_source)
