"""
Pattern Scanner Exception Classes

This module defines custom exceptions raised for invalid scanner inputs.
Data access keeps its log-and-fallback contract and does not raise these.
"""

from typing import Iterable, Optional


class ScannerError(Exception):
    """Base exception class for all scanner errors."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.suggestion:
            return f"{self.message}. Suggestion: {self.suggestion}"
        return self.message


class InvalidTimeframeError(ScannerError, ValueError):
    """Raised when a timeframe is not one of the supported intervals."""

    def __init__(self, timeframe: str, allowed: Optional[Iterable[str]] = None):
        self.timeframe = timeframe
        self.allowed = list(allowed) if allowed is not None else []
        message = f"Invalid timeframe: {timeframe}"
        suggestion = None
        if self.allowed:
            suggestion = f"Use one of: {', '.join(self.allowed)}"
        super().__init__(message, suggestion)


class InvalidPatternError(ScannerError, ValueError):
    """Raised when a pattern record is missing prices or has inconsistent levels."""

    def __init__(self, pattern_id: str, reason: str):
        self.pattern_id = pattern_id
        self.reason = reason
        super().__init__(
            f"Invalid pattern {pattern_id}: {reason}",
            "Check entry, target and stop loss prices",
        )


class DataSourceError(ScannerError):
    """Raised when a data source name cannot be resolved to an implementation."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(
            f"Unknown data source: {source}",
            "Set SCANNER_DATA_SOURCE to 'mock' or 'yfinance'",
        )
