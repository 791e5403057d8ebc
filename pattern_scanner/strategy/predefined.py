"""
系統預設交易策略

提供五個內建策略：多頭旗形、雙重底、趨勢線突破、MACD 交叉與吞噬 K 線。
"""

from typing import Dict, List, Optional, Tuple

from pattern_scanner.core.constants import BULL_FLAG, DOUBLE_BOTTOM
from .models import RiskManagement, StrategyRule, TradingStrategy


def _rules(*specs: Tuple[str, str, str]) -> List[StrategyRule]:
    """以 (type, value, name) 建立依序編號的規則"""
    return [
        StrategyRule(id=str(i), type=rule_type, value=value, name=name)
        for i, (rule_type, value, name) in enumerate(specs, start=1)
    ]


def _system_strategy(
    strategy_id: str,
    name: str,
    description: str,
    entry_rules: List[StrategyRule],
    exit_rules: List[StrategyRule],
    risk_management: RiskManagement,
    timeframes: List[str],
    tags: List[str],
    entry_conditions: Optional[List[str]] = None,
    exit_conditions: Optional[List[str]] = None,
) -> TradingStrategy:
    return TradingStrategy(
        id=strategy_id,
        name=name,
        description=description,
        entry_rules=entry_rules,
        exit_rules=exit_rules,
        risk_management=risk_management,
        timeframes=timeframes,
        version="1.0",
        tags=tags,
        author="System",
        is_active=True,
        is_system=True,
        entry_conditions=entry_conditions or [],
        exit_conditions=exit_conditions or [],
    )


def get_predefined_strategies() -> List[TradingStrategy]:
    """建立系統預設策略

    每次呼叫回傳新的物件，修改不會影響其他呼叫者。

    Returns:
        五個系統策略
    """
    return [
        _system_strategy(
            "bull-flag-strategy",
            "Bull Flag Strategy",
            "Identifies bull flag patterns during uptrends for potential breakout opportunities.",
            _rules(
                ("pattern", BULL_FLAG, "Bull Flag Pattern"),
                ("volume", "increasing", "Volume Confirmation"),
                ("ema", "price > EMA50", "Above 50 EMA"),
            ),
            _rules(
                ("price", "target", "Price Target Reached"),
                ("stop", "trailing", "Trailing Stop Hit"),
            ),
            RiskManagement(
                stop_loss_percent=2.5,
                take_profit_percent=7.5,
                max_position_size=5,
                trailing_stop=True,
                max_loss_per_trade=2.0,
            ),
            ["1d", "4h"],
            ["trend-following", "breakout", "bull-flag"],
            exit_conditions=["Price reaches target"],
        ),
        _system_strategy(
            "double-bottom-strategy",
            "Double Bottom Strategy",
            "Identifies double bottom patterns as reversal signals in downtrends.",
            _rules(
                ("pattern", DOUBLE_BOTTOM, "Double Bottom Pattern"),
                ("volume", "increasing", "Volume Confirmation"),
                ("rsi", "rsi > 40", "RSI Recovery"),
            ),
            _rules(
                ("price", "target", "Price Target Reached"),
                ("time", "20", "20-Day Exit"),
            ),
            RiskManagement(
                stop_loss_percent=3.0,
                take_profit_percent=10.0,
                max_position_size=5,
                trailing_stop=True,
                max_loss_per_trade=2.5,
            ),
            ["1d", "1w"],
            ["reversal", "bottom", "double-bottom"],
            entry_conditions=["RSI > 40"],
            exit_conditions=["Price reaches target"],
        ),
        _system_strategy(
            "trendline-breakout-strategy",
            "Trendline Breakout Strategy",
            "Identifies breakouts from established trendlines with volume confirmation.",
            _rules(
                ("trendline", "break", "Trendline Break"),
                ("volume", "1.5x avg", "High Volume"),
                ("candle", "close > open", "Bullish Close"),
            ),
            _rules(
                ("fibonacci", "1.618", "Fibonacci Target"),
                ("stop", "fixed", "Fixed Stop"),
            ),
            RiskManagement(
                stop_loss_percent=4.0,
                take_profit_percent=12.0,
                max_position_size=5,
                trailing_stop=False,
                max_loss_per_trade=3.0,
            ),
            ["1d", "4h", "1h"],
            ["breakout", "trendline", "momentum"],
        ),
        _system_strategy(
            "macd-crossover-strategy",
            "MACD Crossover Strategy",
            "Uses MACD crossovers to identify trend changes and momentum shifts.",
            _rules(
                ("macd", "signal cross", "MACD Signal Crossover"),
                ("price", "above 20 SMA", "Price Above 20 SMA"),
                ("volume", "above avg", "Above Average Volume"),
            ),
            _rules(
                ("macd", "opposing cross", "Opposing MACD Cross"),
                ("trailing", "2 ATR", "ATR-Based Trailing Stop"),
            ),
            RiskManagement(
                stop_loss_percent=3.5,
                take_profit_percent=9.0,
                max_position_size=5,
                trailing_stop=True,
                max_loss_per_trade=2.5,
            ),
            ["1d", "4h", "1h"],
            ["indicator", "macd", "crossover"],
        ),
        _system_strategy(
            "engulfing-candle-strategy",
            "Engulfing Candle Strategy",
            "Identifies bullish and bearish engulfing candle patterns for trend reversals.",
            _rules(
                ("candle", "engulfing", "Engulfing Candle"),
                ("atr", "high volatility", "High ATR"),
                ("support", "near level", "Near Support/Resistance"),
            ),
            _rules(
                ("price", "target", "Price Target"),
                ("time", "15", "15-Day Exit"),
            ),
            RiskManagement(
                stop_loss_percent=2.0,
                take_profit_percent=6.0,
                max_position_size=5,
                trailing_stop=True,
                max_loss_per_trade=1.5,
            ),
            ["1d", "4h"],
            ["candlestick", "reversal", "engulfing"],
            exit_conditions=["Price reaches target"],
        ),
    ]


def get_strategy_by_id(strategy_id: str) -> Optional[TradingStrategy]:
    """依識別碼取得系統策略，找不到時回傳 None"""
    for strategy in get_predefined_strategies():
        if strategy.id == strategy_id:
            return strategy
    return None


def strategies_by_tag() -> Dict[str, List[str]]:
    """標籤 -> 策略識別碼"""
    index: Dict[str, List[str]] = {}
    for strategy in get_predefined_strategies():
        for tag in strategy.tags:
            index.setdefault(tag, []).append(strategy.id)
    return index
