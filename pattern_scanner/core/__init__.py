"""Core module - 型態偵測、評分與回測"""

from .models import (
    BacktestResult,
    BacktestSummary,
    Candle,
    ChannelType,
    DataMetadata,
    Direction,
    PatternData,
    PatternStatus,
    RealTimeQuote,
    ScannerFilterPreset,
    Timeframe,
    TimeframeStats,
)
from .flag_detector import FlagDetector
from .triangle_detector import TriangleDetector
from .double_pattern_detector import DoublePatternDetector
from .score_calculator import ConfidenceFactors, ScoreCalculator
from .multi_timeframe import ConfirmationResult, MultiTimeframeConfirmer
from .pattern_engine import FreshnessSummary, PatternEngine, ScanResult, classify_ema_pattern
from .backtest_engine import BacktestEngine, find_closest_index
from .backtest_summary import (
    StrategyMetrics,
    TradeResult,
    calculate_strategy_metrics,
    create_timeframe_stats,
    generate_backtest_summary,
)

__all__ = [
    'BacktestResult',
    'BacktestSummary',
    'Candle',
    'ChannelType',
    'DataMetadata',
    'Direction',
    'PatternData',
    'PatternStatus',
    'RealTimeQuote',
    'ScannerFilterPreset',
    'Timeframe',
    'TimeframeStats',
    'FlagDetector',
    'TriangleDetector',
    'DoublePatternDetector',
    'ConfidenceFactors',
    'ScoreCalculator',
    'ConfirmationResult',
    'MultiTimeframeConfirmer',
    'FreshnessSummary',
    'PatternEngine',
    'ScanResult',
    'classify_ema_pattern',
    'BacktestEngine',
    'find_closest_index',
    'StrategyMetrics',
    'TradeResult',
    'calculate_strategy_metrics',
    'create_timeframe_stats',
    'generate_backtest_summary',
]
