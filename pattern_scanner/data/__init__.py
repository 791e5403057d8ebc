"""Data module - 數據來源層

This module provides market data sources and demo data generation for the
AI PatternScanner system.
"""

from .data_source import DataSource
from .mock_source import MockDataSource
from .pattern_generator import PatternGenerator
from .yfinance_source import YFinanceDataSource

__all__ = [
    'DataSource',
    'MockDataSource',
    'PatternGenerator',
    'YFinanceDataSource',
]
