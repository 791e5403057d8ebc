"""
Strategy module - 交易策略、AI 分析與過濾預設

This module provides trading strategy models, the predefined system
strategies, rule-based entry/exit analysis and scanner filter presets.
"""

from .models import (
    EntryAnalysis,
    ExitAnalysis,
    PatternPerformance,
    RiskManagement,
    StrategyAnalysis,
    StrategyRule,
    TimeEstimate,
    TradingStrategy,
)
from .predefined import get_predefined_strategies, get_strategy_by_id, strategies_by_tag
from .analyzer import StrategyAnalyzer
from .filters import dedup_patterns, filter_patterns, sort_by_confidence
from .config import FilterPresetManager

__all__ = [
    'EntryAnalysis',
    'ExitAnalysis',
    'PatternPerformance',
    'RiskManagement',
    'StrategyAnalysis',
    'StrategyRule',
    'TimeEstimate',
    'TradingStrategy',
    'get_predefined_strategies',
    'get_strategy_by_id',
    'strategies_by_tag',
    'StrategyAnalyzer',
    'dedup_patterns',
    'filter_patterns',
    'sort_by_confidence',
    'FilterPresetManager',
]
