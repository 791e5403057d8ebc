"""
策略分析器 (Strategy Analyzer)

為型態產生進出場分析、評估交易策略，並彙整型態分佈、市場偏向與
回測表現。所有分析皆為規則式且可重現：相同輸入產生相同輸出。
"""

import logging
import math
import re
from collections import Counter
from typing import Dict, List, Optional, Sequence

import pandas as pd

from pattern_scanner.core.backtest_summary import StrategyMetrics
from pattern_scanner.core.models import BacktestResult, Direction, PatternData, PatternStatus
from .models import (
    EntryAnalysis,
    ExitAnalysis,
    PatternPerformance,
    StrategyAnalysis,
    TimeEstimate,
    TradingStrategy,
)

logger = logging.getLogger(__name__)

_RSI_CONDITION = re.compile(r"RSI\s*>\s*([\d.]+)", re.IGNORECASE)


class StrategyAnalyzer:
    """
    策略分析器

    Attributes:
        exit_gain_percent: 獲利達此百分比建議出場 (預設 7)
        exit_loss_percent: 虧損達此百分比建議出場 (預設 3)
        scale_gain_percent: 獲利達此百分比建議分批出場 (預設 4)
        bias_ratio: 多空數量比超過此值判定市場偏向 (預設 1.5)
    """

    def __init__(
        self,
        exit_gain_percent: float = 7.0,
        exit_loss_percent: float = 3.0,
        scale_gain_percent: float = 4.0,
        bias_ratio: float = 1.5,
    ):
        self.exit_gain_percent = exit_gain_percent
        self.exit_loss_percent = exit_loss_percent
        self.scale_gain_percent = scale_gain_percent
        self.bias_ratio = bias_ratio

    # ==================== 型態分析 ====================

    def generate_entry_analysis(self, pattern: PatternData) -> EntryAnalysis:
        """
        產生進場分析

        支撐位為進場價的 97% / 95% / 92%，壓力位為 102% / 105% / 108%。

        Args:
            pattern: 型態

        Returns:
            進場分析
        """
        entry = pattern.entry_price
        target = pattern.target_price or entry * 1.1
        stop = pattern.stop_loss or entry * 0.95

        strengths = ["Pattern formed after a period of consolidation"]
        if pattern.volume_confirmation:
            strengths.insert(0, f"Strong volume confirmation for this {pattern.pattern_type}")
        if pattern.multi_timeframe_confirmed:
            strengths.append(f"Confirmed on the {pattern.confirming_timeframe} timeframe")
        if pattern.support_level and abs(entry - pattern.support_level) / entry < 0.05:
            strengths.append("Price near key support level")

        weaknesses = [f"Potential resistance at {entry * 1.03:.2f}"]
        if not pattern.volume_confirmation:
            weaknesses.append("Volume has not confirmed the breakout")

        return EntryAnalysis(
            entry=entry,
            target=target,
            stop_loss=stop,
            support_levels=[entry * 0.97, entry * 0.95, entry * 0.92],
            resistance_levels=[entry * 1.02, entry * 1.05, entry * 1.08],
            strengths=strengths,
            weaknesses=weaknesses,
            risk_reward_ratio=3.0,
            success_probability=68.0,
            time_estimate=TimeEstimate(min=3, max=7, unit="days"),
            confidence_score=pattern.confidence_score or 75.0,
        )

    def generate_exit_analysis(
        self,
        pattern: PatternData,
        current_price: Optional[float] = None,
    ) -> ExitAnalysis:
        """
        產生出場分析

        依型態方向計算價格變動百分比：
        - 獲利 ≥ 7%：出場（達成目標）
        - 虧損 ≥ 3%：出場（止損）
        - 獲利 ≥ 4%：分批出場
        - 其他：續抱

        Args:
            pattern: 型態
            current_price: 目前價格；未提供時使用型態的 current_price，
                再退回進場價

        Returns:
            出場分析
        """
        entry = pattern.entry_price
        target = pattern.target_price or entry * 1.1
        stop = pattern.stop_loss or entry * 0.95
        price = current_price if current_price and current_price > 0 else (pattern.current_price or entry)
        bullish = pattern.direction is Direction.BULLISH
        sign = 1 if bullish else -1

        percent_move = sign * (price - entry) / entry * 100 if entry else 0.0

        if percent_move >= self.exit_gain_percent:
            recommendation, reason = "exit", "Price target reached, take profits"
        elif percent_move <= -self.exit_loss_percent:
            recommendation, reason = "exit", "Stop loss triggered, exit to prevent further losses"
        elif percent_move >= self.scale_gain_percent:
            recommendation, reason = "scale", "Consider scaling out partial position"
        else:
            recommendation, reason = "hold", "Continue holding, pattern still developing"

        distance = target - entry
        progress = (price - entry) / distance * 100 if distance else 0.0
        target_progress = min(100.0, max(0.0, progress))

        strengths: List[str] = []
        weaknesses: List[str] = []
        if percent_move > 0:
            strengths.append("Price moving in expected direction")
            strengths.append("Momentum indicators confirming trend")
        else:
            weaknesses.append("Price not showing expected momentum")
            weaknesses.append("Pattern may be failing to develop as expected")
        if target_progress > 50:
            strengths.append("Trade progressing well toward target")
        if pattern.volume_confirmation:
            strengths.append("Volume confirms price movement")
        else:
            weaknesses.append("Volume not confirming price movement")

        confidence = int(math.floor(target_progress + (30 if recommendation == "exit" else 0)))
        confidence = min(100, confidence)

        remaining_upside = sign * (target - price)
        remaining_downside = sign * (price - stop)
        rr = round(remaining_upside / remaining_downside, 2) if remaining_downside > 0 else 0.0

        breaks = "below" if bullish else "above"
        return ExitAnalysis(
            recommendation=recommendation,
            reason_summary=reason,
            target_price=target,
            stop_loss=stop,
            current_price=price,
            percent_move=percent_move,
            target_progress=target_progress,
            risk_reward_ratio=rr,
            confidence=confidence,
            target_rationale=f"Original pattern target at {target:.2f}",
            stop_loss_rationale="Key support level and original stop loss",
            strengths=strengths,
            weaknesses=weaknesses,
            exit_conditions=[
                f"Price reaches target of ${target:.2f}",
                f"Price breaks {breaks} ${stop:.2f}",
                f"Pattern invalidation if price closes {breaks} support",
                f"3 consecutive opposing candles on the {pattern.timeframe} chart",
            ],
        )

    # ==================== 策略評估 ====================

    def generate_strategy_analysis(
        self,
        strategy: TradingStrategy,
        backtest_results: Optional[Sequence[BacktestResult]] = None,
    ) -> StrategyAnalysis:
        """
        評估交易策略的優缺點

        Args:
            strategy: 交易策略
            backtest_results: 可選的回測結果，用於計算預期勝率

        Returns:
            策略評估
        """
        rule_types = {rule.type for rule in strategy.enabled_entry_rules}
        risk = strategy.risk_management

        strengths = []
        weaknesses = []
        recommendations = []

        if strategy.enabled_entry_rules and strategy.enabled_exit_rules:
            strengths.append("Clear entry and exit rules")
        else:
            weaknesses.append("Incomplete entry or exit rules")
            recommendations.append("Define both entry and exit rules")

        if risk.stop_loss_percent > 0 and risk.take_profit_percent > 0:
            strengths.append("Well-defined risk management")
        if len(strategy.timeframes) > 1:
            strengths.append("Adapts to multiple timeframes")

        if "volume" not in rule_types:
            weaknesses.append("Lacks volume confirmation")
            recommendations.append("Add volume confirmation rules")
        if not risk.trailing_stop:
            recommendations.append("Consider adding trailing stops")
        if risk.stop_loss_percent > 5:
            weaknesses.append("Stop loss is wider than 5%")

        results = list(backtest_results or [])
        if results:
            expected_win_rate = sum(1 for r in results if r.successful) / len(results) * 100
        else:
            weaknesses.append("Limited backtest data")
            recommendations.append("Test on more market conditions")
            expected_win_rate = 65.0

        average_rr = risk.take_profit_percent / risk.stop_loss_percent if risk.stop_loss_percent else 0.0
        best_patterns = [rule.value for rule in strategy.enabled_entry_rules if rule.type == "pattern"]

        return StrategyAnalysis(
            name=strategy.name,
            strengths=strengths,
            weaknesses=weaknesses,
            recommendations=recommendations,
            expected_win_rate=round(expected_win_rate, 2),
            average_rr=round(average_rr, 2),
            best_timeframes=strategy.timeframes[:2],
            best_patterns=best_patterns,
        )

    def execute_strategy(
        self,
        strategy: Optional[TradingStrategy],
        pattern: Optional[PatternData],
        backtest_results: Optional[Sequence[BacktestResult]] = None,
    ) -> float:
        """
        計算策略套用在型態上的綜合信心分數

        綜合分數 = 策略信心 × 0.4 + 型態信心 × 0.6；有回測結果時再與
        成功率以 7:3 加權。未滿足進場條件 −10，已滿足出場條件 −5，
        止損超過 5% 再 −5，最後限制在 0-100。

        Args:
            strategy: 交易策略
            pattern: 型態
            backtest_results: 型態的回測結果

        Returns:
            綜合信心分數 (0-100)
        """
        if strategy is None:
            logger.warning("No strategy provided, returning default confidence")
            return 50.0
        if pattern is None:
            logger.warning("No pattern provided, returning strategy confidence")
            return strategy.confidence or 50.0

        entry_met = all(self._entry_condition_met(c, pattern) for c in strategy.entry_conditions)
        exit_met = any(self._exit_condition_met(c, pattern) for c in strategy.exit_conditions)

        combined = self.combine_confidence(
            strategy.confidence,
            pattern.confidence_score or 50.0,
            backtest_results,
        )
        if not entry_met:
            combined -= 10
        if exit_met:
            combined -= 5
        if strategy.risk_management.stop_loss_percent > 5:
            combined -= 5

        return max(0.0, min(100.0, combined))

    @staticmethod
    def combine_confidence(
        strategy_confidence: float,
        pattern_confidence: float,
        backtest_results: Optional[Sequence[BacktestResult]] = None,
    ) -> float:
        """以 4:6 加權策略與型態信心，並納入回測成功率 (30%)"""
        combined = strategy_confidence * 0.4 + pattern_confidence * 0.6
        results = list(backtest_results or [])
        if results:
            success_rate = sum(1 for r in results if r.successful) / len(results)
            combined = combined * 0.7 + success_rate * 100 * 0.3
        return max(0.0, min(100.0, combined))

    @staticmethod
    def _entry_condition_met(condition: str, pattern: PatternData) -> bool:
        match = _RSI_CONDITION.search(condition)
        if match:
            return pattern.rsi is not None and pattern.rsi > float(match.group(1))
        # 無法辨識的條件視為滿足
        return True

    @staticmethod
    def _exit_condition_met(condition: str, pattern: PatternData) -> bool:
        if "price reaches target" not in condition.lower() or pattern.current_price is None:
            return False
        if pattern.direction is Direction.BULLISH:
            return pattern.current_price >= pattern.target_price
        return pattern.current_price <= pattern.target_price

    # ==================== 市場與型態彙整 ====================

    def analyze_market_conditions(self, patterns: Sequence[PatternData]) -> Dict[str, object]:
        """
        依多空型態數量判定市場偏向

        Returns:
            {"market_bias", "bullish_count", "bearish_count"}
        """
        bullish = sum(1 for p in patterns if p.direction is Direction.BULLISH)
        bearish = sum(1 for p in patterns if p.direction is Direction.BEARISH)

        bias = "neutral"
        if bullish > bearish * self.bias_ratio:
            bias = "bullish"
        if bearish > bullish * self.bias_ratio:
            bias = "bearish"

        return {"market_bias": bias, "bullish_count": bullish, "bearish_count": bearish}

    def get_market_bias(self, patterns: Sequence[PatternData]) -> str:
        return self.analyze_market_conditions(patterns)["market_bias"]

    @staticmethod
    def analyze_pattern_distribution(patterns: Sequence[PatternData]) -> Dict[str, object]:
        """
        統計型態類型與週期分佈

        Returns:
            {"most_common_pattern", "best_timeframe", "pattern_counts", "timeframe_counts"}
        """
        pattern_counts = Counter(p.pattern_type for p in patterns)
        timeframe_counts = Counter(p.timeframe for p in patterns)

        most_common = pattern_counts.most_common(1)
        best_timeframe = timeframe_counts.most_common(1)

        return {
            "most_common_pattern": most_common[0][0] if most_common else "None",
            "best_timeframe": best_timeframe[0][0] if best_timeframe else "1d",
            "pattern_counts": dict(pattern_counts),
            "timeframe_counts": dict(timeframe_counts),
        }

    @staticmethod
    def generate_key_insights(patterns: Sequence[PatternData]) -> List[str]:
        """產生型態相關的重點提示；完成率 > 70% 或 < 30% 時額外說明"""
        insights = [
            "Analyze patterns for trading opportunities",
            "Consider risk management for each trade",
            "Monitor pattern completion rates",
        ]
        if patterns:
            completed = sum(1 for p in patterns if p.status is PatternStatus.COMPLETED)
            rate = completed / len(patterns)
            if rate > 0.7:
                insights.append(f"Pattern success rate is strong at {rate * 100:.1f}%")
            elif rate < 0.3:
                insights.append(f"Pattern success rate is weak at {rate * 100:.1f}%")
        return insights

    def generate_market_insights(self, patterns: Sequence[PatternData]) -> List[str]:
        """依市場偏向產生提示"""
        insights = [
            "Monitor market trends for trading opportunities",
            "Consider multiple timeframes for confirmation",
            "Use proper risk management for all trades",
        ]
        bias = self.get_market_bias(patterns)
        if bias == "bullish":
            insights.append("Market shows bullish bias, focus on bullish patterns")
        elif bias == "bearish":
            insights.append("Market shows bearish bias, be cautious with long positions")
        else:
            insights.append("Market is neutral, consider both bullish and bearish setups")
        return insights

    # ==================== 回測表現 ====================

    @staticmethod
    def analyze_pattern_performance(results: Sequence[BacktestResult]) -> List[PatternPerformance]:
        """
        依型態類型彙整回測表現

        Args:
            results: 回測結果

        Returns:
            每個型態類型的表現，依第一次出現的順序排列
        """
        if not results:
            return []

        df = pd.DataFrame([
            {
                "pattern_type": r.pattern_type or "Unknown",
                "successful": bool(r.successful),
                "profit_loss_percent": r.profit_loss_percent or 0.0,
                "holding_days": (r.exit_date - r.entry_date).total_seconds() / 86400,
                "timeframe": r.timeframe,
            }
            for r in results
        ])

        performance: List[PatternPerformance] = []
        for pattern_type, group in df.groupby("pattern_type", sort=False):
            total = len(group)
            successful = int(group["successful"].sum())
            performance.append(PatternPerformance(
                pattern_type=pattern_type,
                total_trades=total,
                successful_trades=successful,
                win_rate=successful / total * 100,
                average_return=float(group["profit_loss_percent"].mean()),
                average_holding_days=float(group["holding_days"].mean()),
                timeframes=list(dict.fromkeys(group["timeframe"])),
            ))
        return performance

    @staticmethod
    def get_recommended_patterns(
        patterns: Sequence[PatternData],
        performance: Optional[Sequence[PatternPerformance]] = None,
        limit: int = 3,
    ) -> List[str]:
        """
        推薦型態

        有回測表現時取勝率最高的前三名，否則取進行中型態最常見的前三名。
        """
        if performance:
            ranked = sorted(performance, key=lambda p: p.win_rate, reverse=True)
            return [p.pattern_type for p in ranked[:limit]]

        counts = Counter(p.pattern_type for p in patterns if p.status is PatternStatus.ACTIVE)
        return [pattern_type for pattern_type, _ in counts.most_common(limit)]

    @staticmethod
    def analyze_strategy_performance(metrics: Sequence[StrategyMetrics]) -> Dict[str, object]:
        """找出勝率最高的策略"""
        if not metrics:
            return {"best_strategy": "", "best_strategy_win_rate": 0.0}

        best = metrics[0]
        for current in metrics[1:]:
            if current.win_rate > best.win_rate:
                best = current
        return {
            "best_strategy": best.strategy_name or "Unknown",
            "best_strategy_win_rate": best.win_rate,
        }
