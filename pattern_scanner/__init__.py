"""AI PatternScanner - 股票型態偵測與回測系統

Detects chart patterns (flags, triangles, double tops/bottoms) on market
candles, scores and backtests them, and produces strategy suggestions and
HTML chart reports.
"""

__version__ = "0.1.0"
