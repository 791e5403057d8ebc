"""
回測統計模組

彙整回測結果為摘要、各週期統計與策略績效指標。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import numpy as np

from .models import BacktestResult, BacktestSummary, PatternData, TimeframeStats


@dataclass
class TradeResult:
    """策略單筆交易"""
    symbol: str
    entry_date: datetime
    profit_loss_percent: float
    max_drawdown: float = 0.0
    bars_in_trade: int = 0
    timeframe: str = ""


@dataclass
class StrategyMetrics:
    """策略績效指標"""
    strategy_id: str
    strategy_name: str
    timeframe: str = ""
    win_rate: float = 0.0
    expectancy: float = 0.0
    profit_factor: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    max_drawdown: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    average_holding_period: float = 0.0
    profitable_tickers: List[str] = field(default_factory=list)
    unprofitable_tickers: List[str] = field(default_factory=list)


def _mean(values: List[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def generate_backtest_summary(
    results: List[BacktestResult],
    timeframe: str = "all",
    pattern_type: Optional[str] = None,
) -> BacktestSummary:
    """產生回測摘要

    Args:
        results: 回測結果
        timeframe: 週期過濾（all 表示不過濾）
        pattern_type: 型態過濾（None 或 all 表示不過濾）

    Returns:
        回測摘要；沒有符合的結果時所有數值為 0
    """
    selected = [r for r in results if timeframe == "all" or r.timeframe == timeframe]
    if pattern_type and pattern_type != "all":
        selected = [r for r in selected if r.pattern_type == pattern_type]

    if not selected:
        return BacktestSummary(timeframe=timeframe, pattern_type=pattern_type)

    total = len(selected)
    wins = [r for r in selected if r.successful]
    losses = [r for r in selected if not r.successful]
    pl_values = [r.profit_loss_percent or 0.0 for r in selected]

    avg_win = _mean([r.profit_loss_percent for r in wins])
    avg_loss = _mean([r.profit_loss_percent for r in losses])

    rsi_values = [r.rsi_at_entry for r in selected if r.rsi_at_entry and r.rsi_at_entry > 0]
    atr_percents = [
        r.atr_at_entry / r.entry_price * 100
        for r in selected
        if r.atr_at_entry and r.atr_at_entry > 0 and r.entry_price > 0
    ]
    confidences = [r.confidence_score for r in selected if r.confidence_score and r.confidence_score > 0]
    rr_values = [r.risk_reward_ratio for r in selected if r.risk_reward_ratio and r.risk_reward_ratio > 0]

    win_streak = loss_streak = max_win_streak = max_loss_streak = 0
    for result in sorted(selected, key=lambda r: r.entry_date):
        if result.successful:
            win_streak += 1
            loss_streak = 0
            max_win_streak = max(max_win_streak, win_streak)
        else:
            loss_streak += 1
            win_streak = 0
            max_loss_streak = max(max_loss_streak, loss_streak)

    std = float(np.std(pl_values))
    consistency = 100 * (1 - min(std, 20.0) / 20.0)

    return BacktestSummary(
        timeframe=timeframe,
        pattern_type=pattern_type,
        total_patterns=total,
        successful_patterns=len(wins),
        failed_patterns=len(losses),
        success_rate=len(wins) / total * 100,
        avg_profit_loss_percent=_mean(pl_values),
        avg_candles_to_breakout=_mean([float(r.candles_to_breakout or 0) for r in selected]),
        avg_rsi_at_entry=_mean(rsi_values),
        avg_atr_percent=_mean(atr_percents),
        is_simulated=any(r.is_simulated for r in selected),
        max_profit=max(pl_values + [0.0]),
        max_loss=min(pl_values + [0.0]),
        avg_confidence_score=_mean(confidences),
        avg_risk_reward_ratio=_mean(rr_values),
        consistency_score=consistency,
        max_win_streak=max_win_streak,
        max_loss_streak=max_loss_streak,
        avg_win=avg_win,
        avg_loss=avg_loss,
        risk_reward_ratio=abs(avg_win / avg_loss) if avg_loss != 0 else 0.0,
    )


def create_timeframe_stats(
    patterns: List[PatternData],
    results: List[BacktestResult],
    timeframe: str,
) -> TimeframeStats:
    """計算單一週期的型態與回測統計（all 表示全部週期）"""
    timeframe = timeframe or "all"
    selected_patterns = [p for p in patterns if timeframe == "all" or p.timeframe == timeframe]
    selected = [r for r in results if timeframe == "all" or r.timeframe == timeframe]
    wins = [r for r in selected if r.successful]

    rate = len(wins) / len(selected) * 100 if selected else 0.0
    return TimeframeStats(
        timeframe=timeframe,
        accuracy_rate=rate,
        avg_days_to_breakout=_mean([float(r.candles_to_breakout) for r in selected]),
        success_rate=rate,
        total_patterns=len(selected_patterns),
        avg_profit=_mean([r.profit_loss_percent for r in wins]),
        successful_patterns=len(wins),
    )


def calculate_strategy_metrics(
    strategy_id: str,
    strategy_name: str,
    trades: List[TradeResult],
    timeframe: Optional[str] = None,
) -> StrategyMetrics:
    """計算策略績效指標

    獲利因子在沒有虧損且有獲利時為 999；損益為 0 的交易同時重置連勝與連敗。
    """
    if not trades:
        return StrategyMetrics(strategy_id, strategy_name, timeframe=timeframe or "")

    winners = [t for t in trades if t.profit_loss_percent > 0]
    losers = [t for t in trades if t.profit_loss_percent < 0]

    win_rate = len(winners) / len(trades) * 100
    total_profit = sum(t.profit_loss_percent for t in winners)
    total_loss = sum(abs(t.profit_loss_percent) for t in losers)
    average_win = total_profit / len(winners) if winners else 0.0
    average_loss = total_loss / len(losers) if losers else 0.0

    if total_loss > 0:
        profit_factor = total_profit / total_loss
    else:
        profit_factor = 999.0 if total_profit > 0 else 0.0

    expectancy = win_rate / 100 * average_win - (100 - win_rate) / 100 * average_loss

    wins = losses = max_wins = max_losses = 0
    for trade in sorted(trades, key=lambda t: t.entry_date):
        if trade.profit_loss_percent > 0:
            wins += 1
            losses = 0
            max_wins = max(max_wins, wins)
        elif trade.profit_loss_percent < 0:
            losses += 1
            wins = 0
            max_losses = max(max_losses, losses)
        else:
            wins = losses = 0

    return StrategyMetrics(
        strategy_id=strategy_id,
        strategy_name=strategy_name,
        timeframe=timeframe or trades[0].timeframe,
        win_rate=round(win_rate, 2),
        expectancy=round(expectancy, 2),
        profit_factor=round(profit_factor, 2),
        average_win=round(average_win, 2),
        average_loss=round(average_loss, 2),
        max_consecutive_wins=max_wins,
        max_consecutive_losses=max_losses,
        total_trades=len(trades),
        winning_trades=len(winners),
        losing_trades=len(losers),
        max_drawdown=round(max(t.max_drawdown or 0.0 for t in trades), 2),
        largest_win=round(max([t.profit_loss_percent for t in winners] + [0.0]), 2),
        largest_loss=round(min([t.profit_loss_percent for t in losers] + [0.0]), 2),
        average_holding_period=round(sum(t.bars_in_trade for t in trades) / len(trades), 1),
        profitable_tickers=list(dict.fromkeys(t.symbol for t in winners)),
        unprofitable_tickers=list(dict.fromkeys(t.symbol for t in losers)),
    )
