"""Database layer for AI PatternScanner

This module provides the SQLite schema and repository for detected patterns,
backtest results and scanner filter presets.
"""

from pattern_scanner.db.schema import (
    CREATE_PATTERNS_TABLE,
    CREATE_BACKTEST_RESULTS_TABLE,
    CREATE_FILTER_PRESETS_TABLE,
    get_schema_statements,
)
from pattern_scanner.db.repository import PatternRepository

__all__ = [
    "CREATE_PATTERNS_TABLE",
    "CREATE_BACKTEST_RESULTS_TABLE",
    "CREATE_FILTER_PRESETS_TABLE",
    "get_schema_statements",
    "PatternRepository",
]
