"""Demo Pattern Generator - 示範型態產生器

Generates seeded demo patterns and simulated backtest results for the
dashboard data and report export when no live engine output is available.
"""

import random
from datetime import datetime, timedelta
from typing import List, Optional

from pattern_scanner.core.constants import (
    CHANNEL_TYPES,
    DEMO_SYMBOLS,
    EMA_PATTERNS,
    PATTERN_TYPES,
    get_confirming_timeframe,
    pattern_direction,
)
from pattern_scanner.core.models import (
    BacktestResult,
    ChannelType,
    Direction,
    PatternData,
    PatternStatus,
)


class PatternGenerator:
    """示範型態產生器

    Attributes:
        seed: 亂數種子；相同 seed 產生相同序列
        symbols: 可選用的股票代碼
        success_rate: 模擬回測的成功機率
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        symbols: Optional[List[str]] = None,
        success_rate: float = 0.7,
    ):
        self.seed = seed
        self.symbols = list(symbols) if symbols else list(DEMO_SYMBOLS)
        self.success_rate = success_rate
        self._random = random.Random(seed)

    def _direction_for(self, pattern_type: str) -> Direction:
        expected = pattern_direction(pattern_type)
        if expected is not None:
            return Direction(expected)
        return self._random.choice([Direction.BULLISH, Direction.BEARISH])

    def _build(self, index: int, symbol: str, timeframe: str, now: datetime) -> PatternData:
        rnd = self._random
        pattern_type = rnd.choice(PATTERN_TYPES)
        direction = self._direction_for(pattern_type)
        bullish = direction is Direction.BULLISH

        entry = round(50 + rnd.random() * 150, 2)
        target = round(entry * (1.05 if bullish else 0.95), 2)
        stop = round(entry * (0.98 if bullish else 1.02), 2)
        created_at = now - timedelta(hours=rnd.randint(0, 23))
        confirmed = rnd.random() > 0.5

        return PatternData(
            id=f"demo-{symbol}-{timeframe}-{index}",
            symbol=symbol,
            timeframe=timeframe,
            pattern_type=pattern_type,
            direction=direction,
            entry_price=entry,
            target_price=target,
            stop_loss=stop,
            risk_reward_ratio=round(abs(target - entry) / abs(entry - stop), 2),
            confidence_score=float(rnd.randint(65, 94)),
            created_at=created_at,
            updated_at=now,
            status=PatternStatus.ACTIVE if rnd.random() > 0.2 else PatternStatus.COMPLETED,
            support_level=round(entry * 0.95, 2),
            resistance_level=round(entry * 1.05, 2),
            channel_type=ChannelType(rnd.choice(CHANNEL_TYPES)),
            ema_pattern=rnd.choice(EMA_PATTERNS),
            trendline_break=rnd.random() > 0.3,
            volume_confirmation=rnd.random() > 0.3,
            predicted_breakout_candles=rnd.randint(1, 5),
            current_price=entry,
            multi_timeframe_confirmed=confirmed,
            confirming_timeframe=get_confirming_timeframe(timeframe) if confirmed else None,
            data_freshness="Simulated",
            is_ai_generated=True,
        )

    def generate_demo_patterns(
        self,
        count: int = 10,
        timeframe: str = "1h",
        now: Optional[datetime] = None,
    ) -> List[PatternData]:
        """產生示範型態

        Args:
            count: 型態數量
            timeframe: K 線週期
            now: 參考時間（預設為現在）

        Returns:
            型態列表
        """
        if count < 0:
            raise ValueError("count must be >= 0")
        now = now or datetime.now()
        return [
            self._build(i, self._random.choice(self.symbols), timeframe, now)
            for i in range(count)
        ]

    def generate_single_pattern(
        self,
        symbol: str,
        timeframe: str = "1h",
        now: Optional[datetime] = None,
    ) -> PatternData:
        """為指定股票產生一個示範型態"""
        return self._build(0, symbol, timeframe, now or datetime.now())

    def generate_backtest_results(self, patterns: List[PatternData]) -> List[BacktestResult]:
        """為示範型態產生模擬回測結果

        成功時以目標價出場，失敗時以止損價出場。
        """
        results: List[BacktestResult] = []
        for pattern in patterns:
            successful = self._random.random() < self.success_rate
            exit_price = pattern.target_price if successful else pattern.stop_loss
            bullish = pattern.direction is Direction.BULLISH
            profit_loss = exit_price - pattern.entry_price if bullish else pattern.entry_price - exit_price
            candles = pattern.predicted_breakout_candles or self._random.randint(1, 5)

            results.append(BacktestResult(
                pattern_id=pattern.id,
                symbol=pattern.symbol,
                timeframe=pattern.timeframe,
                pattern_type=pattern.pattern_type,
                entry_price=pattern.entry_price,
                target_price=pattern.target_price,
                stop_loss=pattern.stop_loss,
                actual_exit_price=exit_price,
                predicted_direction=pattern.direction,
                actual_direction=pattern.direction if successful else pattern.direction.opposite,
                entry_date=pattern.created_at,
                exit_date=pattern.created_at + timedelta(hours=candles),
                candles_to_breakout=candles,
                successful=successful,
                profit_loss=round(profit_loss, 4),
                profit_loss_percent=round(profit_loss / pattern.entry_price * 100, 4),
                max_drawdown=round(self._random.random() * 3, 2),
                is_simulated=True,
                rsi_at_entry=round(30 + self._random.random() * 40, 2),
                atr_at_entry=round(pattern.entry_price * (0.01 + self._random.random() * 0.02), 4),
                confidence_score=pattern.confidence_score,
                risk_reward_ratio=pattern.risk_reward_ratio,
                data_source="mock",
            ))
        return results
