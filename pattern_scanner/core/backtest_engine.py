"""
回測引擎核心模組

提供 BacktestEngine 類別，在型態偵測之後的 K 線上模擬進出場，
判斷型態的預測是否實現。
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from pattern_scanner.exceptions import InvalidPatternError
from .indicators import calculate_atr, calculate_rsi
from .models import BacktestResult, Candle, Direction, PatternData

logger = logging.getLogger(__name__)


def find_closest_index(candles: List[Candle], target: datetime) -> int:
    """找出時間不晚於 target 的最後一根 K 線

    Returns:
        K 線索引；沒有任何 K 線早於 target 時回傳 0，空列表回傳 -1
    """
    if not candles:
        return -1
    index = 0
    for i, candle in enumerate(candles):
        if candle.timestamp <= target:
            index = i
        else:
            break
    return index


class BacktestEngine:
    """型態回測引擎

    Attributes:
        data_source: 提供回測 K 線的數據源（僅 run 需要）
        max_bars: 最長持有 K 線數，超過即以收盤價出場 (預設 30)
        default_stop_percent: 型態沒有止損價時使用的止損比例 (預設 5%)
        max_days_to_test: 抓取偵測後數據的最長天數
        is_simulated: 結果是否標記為模擬數據
    """

    def __init__(
        self,
        data_source=None,
        max_bars: int = 30,
        default_stop_percent: float = 0.05,
        max_days_to_test: int = 60,
        is_simulated: bool = False,
    ):
        if max_bars < 1:
            raise ValueError("max_bars must be positive")
        self.data_source = data_source
        self.max_bars = max_bars
        self.default_stop_percent = default_stop_percent
        self.max_days_to_test = max_days_to_test
        self.is_simulated = is_simulated

    def backtest_pattern(
        self,
        pattern: PatternData,
        candles: List[Candle],
        entry_index: int,
        data_source: str = "unknown",
    ) -> BacktestResult:
        """回測單一型態

        從進場後下一根 K 線開始逐根檢查：同一根先判斷目標價再判斷止損；
        持有滿 max_bars 根時以收盤價出場；數據結束仍未出場則以最後收盤價出場。

        Args:
            pattern: 型態
            candles: K 線序列（由舊到新）
            entry_index: 進場 K 線索引
            data_source: 數據來源名稱

        Returns:
            回測結果

        Raises:
            ValueError: 如果 entry_index 超出範圍
            InvalidPatternError: 進場價不為正，或目標價、止損價不在型態方向的正確一側
        """
        if not 0 <= entry_index < len(candles):
            raise ValueError(f"entry_index {entry_index} out of range for {len(candles)} candles")
        if pattern.entry_price <= 0:
            raise InvalidPatternError(pattern.id, "entry price must be positive")

        entry = pattern.entry_price
        target = pattern.target_price
        bullish = pattern.direction is Direction.BULLISH
        if pattern.stop_loss:
            stop = pattern.stop_loss
        elif bullish:
            stop = entry * (1 - self.default_stop_percent)
        else:
            stop = entry * (1 + self.default_stop_percent)

        if bullish and not stop < entry < target:
            raise InvalidPatternError(
                pattern.id, f"bullish levels need stop < entry < target, got {stop}/{entry}/{target}"
            )
        if not bullish and not target < entry < stop:
            raise InvalidPatternError(
                pattern.id, f"bearish levels need target < entry < stop, got {target}/{entry}/{stop}"
            )

        exit_index = -1
        exit_price = entry
        successful = False
        max_drawdown = 0.0

        for i in range(entry_index + 1, len(candles)):
            candle = candles[i]

            if bullish:
                drawdown = (entry - min(candle.low, entry)) / entry * 100
            else:
                drawdown = (max(candle.high, entry) - entry) / entry * 100
            max_drawdown = max(max_drawdown, drawdown)

            if (bullish and candle.high >= target) or (not bullish and candle.low <= target):
                exit_index, exit_price, successful = i, target, True
                break

            if (bullish and candle.low <= stop) or (not bullish and candle.high >= stop):
                exit_index, exit_price = i, stop
                break

            if i - entry_index >= self.max_bars:
                exit_index, exit_price = i, candle.close
                successful = candle.close > entry if bullish else candle.close < entry
                break

        if exit_index == -1:
            exit_index = len(candles) - 1
            exit_price = candles[exit_index].close
            successful = exit_price > entry if bullish else exit_price < entry

        profit_loss = exit_price - entry if bullish else entry - exit_price
        risk = entry - stop if bullish else stop - entry
        reward = target - entry if bullish else entry - target
        history = candles[:entry_index + 1]

        return BacktestResult(
            pattern_id=pattern.id,
            symbol=pattern.symbol,
            timeframe=pattern.timeframe,
            pattern_type=pattern.pattern_type,
            entry_price=entry,
            target_price=target,
            stop_loss=stop,
            actual_exit_price=exit_price,
            predicted_direction=pattern.direction,
            actual_direction=pattern.direction if successful else pattern.direction.opposite,
            entry_date=candles[entry_index].timestamp,
            exit_date=candles[exit_index].timestamp,
            candles_to_breakout=exit_index - entry_index,
            successful=successful,
            profit_loss=profit_loss,
            profit_loss_percent=profit_loss / entry * 100,
            max_drawdown=max_drawdown,
            is_simulated=self.is_simulated,
            rsi_at_entry=pattern.rsi if pattern.rsi is not None else calculate_rsi(history),
            atr_at_entry=pattern.atr if pattern.atr is not None else calculate_atr(history),
            confidence_score=pattern.confidence_score,
            risk_reward_ratio=reward / risk if risk > 0 else 0.0,
            data_source=data_source,
        )

    def run_single(self, pattern: PatternData, now: Optional[datetime] = None) -> Optional[BacktestResult]:
        """抓取型態偵測後的 K 線並回測

        Returns:
            回測結果；沒有數據、進場 K 線為最後一根或型態無效時回傳 None
        """
        if self.data_source is None:
            raise ValueError("BacktestEngine.run requires a data source")

        now = now or datetime.now()
        start = pattern.created_at - timedelta(days=7)
        end = min(now, pattern.created_at + timedelta(days=self.max_days_to_test))

        candles, metadata = self.data_source.fetch_with_metadata(
            pattern.symbol, pattern.timeframe, start, end
        )
        if not candles:
            logger.warning(f"No historical data found for {pattern.symbol} ({pattern.id})")
            return None

        entry_index = find_closest_index(candles, pattern.created_at)
        if entry_index == len(candles) - 1:
            logger.warning(f"No candles after entry for {pattern.symbol} ({pattern.id}), skipping")
            return None

        try:
            return self.backtest_pattern(pattern, candles, entry_index, metadata.source)
        except ValueError as e:
            logger.warning(f"Skipping backtest for {pattern.id}: {e}")
            return None

    def run(self, patterns: List[PatternData], now: Optional[datetime] = None) -> List[BacktestResult]:
        """回測多個型態，略過沒有數據的型態"""
        results: List[BacktestResult] = []
        for pattern in patterns:
            result = self.run_single(pattern, now)
            if result is not None:
                results.append(result)

        logger.info(f"Completed backtests: {len(results)}/{len(patterns)} patterns processed")
        return results
