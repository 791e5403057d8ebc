"""Unit tests for backtest summaries and strategy metrics"""

from datetime import timedelta

import pytest

from conftest import BASE_TIME
from pattern_scanner.core.backtest_summary import (
    TradeResult,
    calculate_strategy_metrics,
    create_timeframe_stats,
    generate_backtest_summary,
)


def trade(day, pl, symbol="AAPL", bars=3, drawdown=0.0):
    return TradeResult(
        symbol=symbol,
        entry_date=BASE_TIME + timedelta(days=day),
        profit_loss_percent=pl,
        max_drawdown=drawdown,
        bars_in_trade=bars,
        timeframe="1d",
    )


@pytest.fixture
def results(make_result):
    return [
        make_result(pattern_id="a", rsi_at_entry=60.0, atr_at_entry=2.0, confidence_score=80.0,
                    risk_reward_ratio=2.0, candles_to_breakout=4),
        make_result(pattern_id="b", successful=False, profit_loss_percent=-5.0, actual_exit_price=95.0,
                    entry_date=BASE_TIME + timedelta(days=1), candles_to_breakout=2,
                    pattern_type="Double Bottom", is_simulated=True),
        make_result(pattern_id="c", timeframe="1h", profit_loss_percent=4.0,
                    entry_date=BASE_TIME + timedelta(days=2), candles_to_breakout=6),
    ]


class TestBacktestSummary:
    """Test generate_backtest_summary"""

    def test_empty(self):
        summary = generate_backtest_summary([])
        assert summary.timeframe == "all"
        assert summary.total_patterns == 0
        assert summary.success_rate == 0.0
        assert summary.is_simulated is False

    def test_all_results(self, results):
        summary = generate_backtest_summary(results)

        assert summary.total_patterns == 3
        assert summary.successful_patterns == 2
        assert summary.failed_patterns == 1
        assert summary.success_rate == pytest.approx(200 / 3)
        assert summary.avg_profit_loss_percent == pytest.approx(3.0)
        assert summary.avg_candles_to_breakout == pytest.approx(4.0)
        assert summary.avg_win == pytest.approx(7.0)
        assert summary.avg_loss == pytest.approx(-5.0)
        assert summary.risk_reward_ratio == pytest.approx(1.4)
        assert summary.max_profit == 10.0
        assert summary.max_loss == -5.0
        assert summary.max_win_streak == 1
        assert summary.max_loss_streak == 1
        assert summary.is_simulated is True

    def test_optional_averages_skip_missing_values(self, results):
        summary = generate_backtest_summary(results)
        assert summary.avg_rsi_at_entry == pytest.approx(60.0)
        assert summary.avg_atr_percent == pytest.approx(2.0)
        assert summary.avg_confidence_score == pytest.approx(80.0)
        assert summary.avg_risk_reward_ratio == pytest.approx(2.0)

    def test_timeframe_filter(self, results):
        summary = generate_backtest_summary(results, timeframe="1h")
        assert summary.total_patterns == 1
        assert summary.success_rate == 100.0
        assert summary.risk_reward_ratio == 0.0

    def test_pattern_type_filter(self, results):
        summary = generate_backtest_summary(results, pattern_type="Double Bottom")
        assert summary.pattern_type == "Double Bottom"
        assert summary.total_patterns == 1
        assert summary.success_rate == 0.0

    def test_consistency_score(self, make_result):
        summary = generate_backtest_summary([
            make_result(profit_loss_percent=10.0),
            make_result(profit_loss_percent=-5.0, successful=False),
        ])
        assert summary.consistency_score == pytest.approx(62.5)

    def test_win_streak(self, make_result):
        summary = generate_backtest_summary([
            make_result(entry_date=BASE_TIME + timedelta(days=i)) for i in range(4)
        ])
        assert summary.max_win_streak == 4
        assert summary.max_loss_streak == 0


class TestTimeframeStats:
    """Test create_timeframe_stats"""

    def test_daily(self, make_pattern, results):
        patterns = [make_pattern(), make_pattern(id="x", timeframe="1h")]
        stats = create_timeframe_stats(patterns, results, "1d")

        assert stats.timeframe == "1d"
        assert stats.total_patterns == 1
        assert stats.successful_patterns == 1
        assert stats.success_rate == pytest.approx(50.0)
        assert stats.accuracy_rate == stats.success_rate
        assert stats.avg_days_to_breakout == pytest.approx(3.0)
        assert stats.avg_profit == pytest.approx(10.0)

    def test_no_results(self, make_pattern):
        stats = create_timeframe_stats([make_pattern()], [], "all")
        assert stats.total_patterns == 1
        assert stats.success_rate == 0.0


class TestStrategyMetrics:
    """Test calculate_strategy_metrics"""

    def test_no_trades(self):
        metrics = calculate_strategy_metrics("s1", "Breakout", [], "1d")
        assert metrics.total_trades == 0
        assert metrics.timeframe == "1d"

    def test_mixed_trades(self):
        trades = [
            trade(0, 4.0, "AAPL", bars=2, drawdown=1.0),
            trade(1, 6.0, "MSFT", bars=4),
            trade(2, -2.0, "TSLA", bars=6, drawdown=3.5),
            trade(3, 0.0, "AMD", bars=4),
        ]
        metrics = calculate_strategy_metrics("s1", "Breakout", trades)

        assert metrics.timeframe == "1d"
        assert metrics.total_trades == 4
        assert metrics.winning_trades == 2
        assert metrics.losing_trades == 1
        assert metrics.win_rate == 50.0
        assert metrics.average_win == 5.0
        assert metrics.average_loss == 2.0
        assert metrics.profit_factor == 5.0
        assert metrics.expectancy == 1.5
        assert metrics.max_consecutive_wins == 2
        assert metrics.max_consecutive_losses == 1
        assert metrics.max_drawdown == 3.5
        assert metrics.largest_win == 6.0
        assert metrics.largest_loss == -2.0
        assert metrics.average_holding_period == 4.0
        assert metrics.profitable_tickers == ["AAPL", "MSFT"]
        assert metrics.unprofitable_tickers == ["TSLA"]

    def test_no_losses_caps_profit_factor(self):
        metrics = calculate_strategy_metrics("s1", "Breakout", [trade(0, 3.0), trade(1, 1.0)])
        assert metrics.profit_factor == 999.0
        assert metrics.win_rate == 100.0

    def test_flat_trade_resets_streaks(self):
        trades = [trade(0, 1.0), trade(1, 0.0), trade(2, 1.0), trade(3, -1.0), trade(4, 0.0), trade(5, -1.0)]
        metrics = calculate_strategy_metrics("s1", "Breakout", trades)
        assert metrics.max_consecutive_wins == 1
        assert metrics.max_consecutive_losses == 1
