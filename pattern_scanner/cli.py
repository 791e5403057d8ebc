"""Command line interface for AI PatternScanner

Subcommands:
    scan      偵測型態並（可選）存入資料庫
    backtest  回測資料庫中的型態
    demo      產生示範型態與模擬回測
    report    輸出 HTML 圖表報告
"""

import argparse
import logging
import sys
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from pattern_scanner.config import ScannerConfig, create_data_source
from pattern_scanner.core.backtest_engine import BacktestEngine
from pattern_scanner.core.backtest_summary import generate_backtest_summary
from pattern_scanner.core.constants import (
    SCANNER_UNIVERSES,
    get_allowed_timeframes,
    get_lookback_days,
    get_universe,
)
from pattern_scanner.core.models import BacktestResult, Candle, PatternData, PatternStatus
from pattern_scanner.core.multi_timeframe import MultiTimeframeConfirmer
from pattern_scanner.core.pattern_engine import PatternEngine
from pattern_scanner.data import PatternGenerator
from pattern_scanner.db import PatternRepository
from pattern_scanner.exceptions import InvalidTimeframeError, ScannerError
from pattern_scanner.reporting import build_report_figures, write_report
from pattern_scanner.strategy import StrategyAnalyzer, dedup_patterns, filter_patterns, sort_by_confidence

logger = logging.getLogger(__name__)


def _split(value: Optional[str]) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()] if value else []


def _print_patterns(patterns: Sequence[PatternData]) -> None:
    if not patterns:
        print("沒有符合條件的型態")
        return
    print(f"{'Symbol':<8}{'TF':<5}{'Pattern':<22}{'Dir':<9}{'Entry':>10}{'Target':>10}{'Stop':>10}{'Conf':>6}  Data")
    for p in patterns:
        print(
            f"{p.symbol:<8}{p.timeframe:<5}{p.pattern_type:<22}{p.direction.value:<9}"
            f"{p.entry_price:>10.2f}{p.target_price:>10.2f}{p.stop_loss:>10.2f}"
            f"{p.confidence_score:>6.0f}  {p.data_freshness}"
        )


def _print_summary(results: Sequence[BacktestResult], timeframe: str = "all") -> None:
    summary = generate_backtest_summary(list(results), timeframe)
    label = "（模擬）" if summary.is_simulated else ""
    print(f"回測摘要{label}: {summary.total_patterns} 筆, 成功率 {summary.success_rate:.1f}%, "
          f"平均損益 {summary.avg_profit_loss_percent:.2f}%, "
          f"平均出場 K 線數 {summary.avg_candles_to_breakout:.1f}")


def _resolve_timeframes(args: argparse.Namespace) -> List[str]:
    allowed = get_allowed_timeframes(args.mode)
    timeframes = _split(args.timeframes) or allowed
    for timeframe in timeframes:
        if timeframe not in allowed:
            raise InvalidTimeframeError(timeframe, allowed)
    return timeframes


def cmd_scan(args: argparse.Namespace, config: ScannerConfig) -> int:
    """偵測型態"""
    data_source = create_data_source(config)
    confirmer = MultiTimeframeConfirmer(data_source) if args.confirm else None
    engine = PatternEngine(confirmer=confirmer)

    symbols = _split(args.symbols) or get_universe(args.mode)
    timeframes = _resolve_timeframes(args)

    result = engine.scan_from_source(data_source, symbols, timeframes)
    min_confidence = args.min_confidence if args.min_confidence is not None else config.min_confidence
    patterns = sort_by_confidence(dedup_patterns(
        filter_patterns(result.all_patterns, min_confidence=min_confidence)
    ))

    _print_patterns(patterns[:args.limit] if args.limit else patterns)

    freshness = engine.get_data_freshness_summary(result.metadata)
    print(f"數據: 即時 {freshness.real_time_count}, 延遲 {freshness.delayed_count}, "
          f"快取 {freshness.cached_count}, 錯誤 {freshness.error_count}, "
          f"數據不足 {freshness.insufficient_count}")

    if args.save:
        repository = PatternRepository(config.db_path)
        saved = repository.save_patterns(patterns)
        print(f"已儲存 {saved} 個型態至 {repository.db_path}")
    return 0


def cmd_backtest(args: argparse.Namespace, config: ScannerConfig) -> int:
    """回測資料庫中進行中的型態"""
    repository = PatternRepository(config.db_path)
    patterns = repository.list_patterns(timeframe=args.timeframe, status=PatternStatus.ACTIVE)
    if not patterns:
        print("資料庫中沒有可回測的型態，請先執行 scan --save")
        return 1

    engine = BacktestEngine(create_data_source(config), max_bars=config.max_bars)
    results = engine.run(patterns)
    for result in results:
        repository.save_backtest_result(result)
        status = PatternStatus.COMPLETED if result.successful else PatternStatus.FAILED
        repository.update_pattern_status(result.pattern_id, status)

    _print_summary(results, args.timeframe)
    return 0


def cmd_demo(args: argparse.Namespace, config: ScannerConfig) -> int:
    """產生示範型態與模擬回測"""
    seed = args.seed if args.seed is not None else config.seed
    generator = PatternGenerator(seed=seed)
    patterns = generator.generate_demo_patterns(args.count, args.timeframe)
    results = generator.generate_backtest_results(patterns)

    _print_patterns(sort_by_confidence(patterns))
    _print_summary(results)

    analyzer = StrategyAnalyzer()
    performance = analyzer.analyze_pattern_performance(results)
    print(f"市場偏向: {analyzer.get_market_bias(patterns)}")
    print(f"推薦型態: {', '.join(analyzer.get_recommended_patterns(patterns, performance))}")

    if args.save:
        repository = PatternRepository(config.db_path)
        repository.save_patterns(patterns)
        for result in results:
            repository.save_backtest_result(result)
        print(f"已儲存至 {repository.db_path}")
    return 0


def cmd_report(args: argparse.Namespace, config: ScannerConfig) -> int:
    """輸出 HTML 圖表報告"""
    repository = PatternRepository(config.db_path)
    patterns = sort_by_confidence(repository.list_patterns(timeframe=args.timeframe))
    results = repository.list_backtest_results(timeframe=args.timeframe)
    if not patterns and not results:
        print("資料庫中沒有資料可輸出")
        return 1

    data_source = create_data_source(config)
    candle_data: Dict[str, List[Candle]] = {}
    for pattern in patterns[:args.max_charts]:
        key = f"{pattern.symbol}|{pattern.timeframe}"
        if key in candle_data:
            continue
        end = pattern.created_at + timedelta(days=1)
        start = end - timedelta(days=get_lookback_days(pattern.timeframe))
        candles, _ = data_source.fetch_with_metadata(pattern.symbol, pattern.timeframe, start, min(end, datetime.now()))
        candle_data[key] = candles

    figures = build_report_figures(candle_data, patterns, results, max_pattern_charts=args.max_charts)
    path = write_report(args.output, figures, patterns=patterns)
    if path is None:
        return 1
    print(f"報告已輸出至 {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pattern-scanner",
        description="AI PatternScanner 股票型態偵測與回測",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="偵測型態")
    scan.add_argument("--symbols", help="以逗號分隔的股票代碼（預設為掃描模式的股票池）")
    scan.add_argument("--mode", default="golden", choices=sorted(SCANNER_UNIVERSES), help="掃描模式")
    scan.add_argument("--timeframes", help="以逗號分隔的週期（預設為掃描模式允許的週期）")
    scan.add_argument("--min-confidence", type=float, default=None, help="最低信心分數")
    scan.add_argument("--limit", type=int, default=0, help="最多顯示幾筆")
    scan.add_argument("--confirm", action="store_true", help="啟用多週期確認")
    scan.add_argument("--save", action="store_true", help="存入資料庫")
    scan.set_defaults(handler=cmd_scan)

    backtest = subparsers.add_parser("backtest", help="回測資料庫中的型態")
    backtest.add_argument("--timeframe", default="all", help="只回測此週期")
    backtest.set_defaults(handler=cmd_backtest)

    demo = subparsers.add_parser("demo", help="產生示範型態與模擬回測")
    demo.add_argument("--count", type=int, default=10, help="型態數量")
    demo.add_argument("--timeframe", default="1h", help="K 線週期")
    demo.add_argument("--seed", type=int, default=None, help="亂數種子")
    demo.add_argument("--save", action="store_true", help="存入資料庫")
    demo.set_defaults(handler=cmd_demo)

    report = subparsers.add_parser("report", help="輸出 HTML 圖表報告")
    report.add_argument("--output", default="pattern_report.html", help="輸出路徑")
    report.add_argument("--timeframe", default="all", help="只輸出此週期")
    report.add_argument("--max-charts", type=int, default=10, help="最多畫幾個型態")
    report.set_defaults(handler=cmd_report)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI 進入點

    Returns:
        結束代碼（0 成功，1 無資料或輸出失敗，2 參數或配置錯誤）
    """
    args = build_parser().parse_args(argv)

    try:
        config = ScannerConfig.from_env()
    except ValueError as e:
        print(f"錯誤: 環境變數格式不正確: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not config.validate():
        print(f"錯誤: 無效的配置 {config}", file=sys.stderr)
        return 2

    try:
        return args.handler(args, config)
    except ScannerError as e:
        print(f"錯誤: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
