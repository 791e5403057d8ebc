"""Pattern Engine for AI PatternScanner

This module implements the PatternEngine class that integrates all
pattern detectors, confidence scoring and optional multi-timeframe
confirmation to perform complete pattern recognition.
"""

import logging
from bisect import bisect_right
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from .constants import (
    MIN_CANDLES_FOR_DETECTION,
    get_expected_breakout_candles,
    get_lookback_days,
)
from .double_pattern_detector import DoublePatternDetector
from .flag_detector import FlagDetector
from .indicators import (
    calculate_atr,
    calculate_ema_series,
    calculate_rsi,
    check_ema_crossover,
    check_trendline_break,
    classify_channel,
)
from .models import Candle, DataMetadata, Direction, PatternData
from .multi_timeframe import MultiTimeframeConfirmer
from .score_calculator import ScoreCalculator
from .triangle_detector import TriangleDetector

logger = logging.getLogger(__name__)


@dataclass
class FreshnessSummary:
    """數據新鮮度摘要"""
    real_time_count: int = 0
    delayed_count: int = 0
    cached_count: int = 0
    error_count: int = 0
    insufficient_count: int = 0
    total_count: int = 0
    freshest_symbols: List[str] = field(default_factory=list)


@dataclass
class ScanResult:
    """多標的掃描結果"""
    patterns_by_symbol: Dict[str, List[PatternData]] = field(default_factory=dict)
    metadata: Dict[str, Dict[str, DataMetadata]] = field(default_factory=dict)

    @property
    def all_patterns(self) -> List[PatternData]:
        return [p for patterns in self.patterns_by_symbol.values() for p in patterns]


def classify_ema_pattern(candles: List[Candle]) -> Optional[str]:
    """依 EMA 7/50/100 的最新交叉或排列分類（K 線不足 105 根時回傳 None）"""
    if len(candles) < 105:
        return None
    result = check_ema_crossover(candles)
    for crossover in result.crossovers:
        if "above" in crossover:
            return crossover.replace("above", "over")
    if result.ema7 > result.ema50 > result.ema100:
        return "allBullish"
    if result.ema7 < result.ema50 < result.ema100:
        return "allBearish"
    return "mixed"


def default_detectors() -> list:
    """預設啟用的檢測器（多空旗形、上升/下降三角形、雙重底/頂）"""
    return [
        FlagDetector(Direction.BULLISH),
        FlagDetector(Direction.BEARISH),
        TriangleDetector(Direction.BULLISH),
        TriangleDetector(Direction.BEARISH),
        DoublePatternDetector(Direction.BULLISH),
        DoublePatternDetector(Direction.BEARISH),
    ]


class PatternEngine:
    """型態識別整合引擎

    整合各型態檢測器與 ScoreCalculator，執行完整型態識別流程。

    Attributes:
        detectors: 型態檢測器列表
        score_calculator: 信心分數計算器
        confirmer: 多週期確認器（可選）
        score_window: 計算型態品質時使用的 K 線數
    """

    def __init__(
        self,
        detectors: Optional[list] = None,
        score_calculator: Optional[ScoreCalculator] = None,
        confirmer: Optional[MultiTimeframeConfirmer] = None,
        score_window: int = 20,
    ):
        self.detectors = detectors if detectors is not None else default_detectors()
        self.score_calculator = score_calculator or ScoreCalculator()
        self.confirmer = confirmer
        self.score_window = score_window

    def _score_pattern(self, pattern: PatternData, candles: List[Candle]) -> None:
        """計算並寫入信心分數、RSI、ATR、量能確認、通道與突破資訊"""
        timestamps = [c.timestamp for c in candles]
        end = bisect_right(timestamps, pattern.created_at)
        history = candles[:max(end, 1)]
        window = history[-self.score_window:]

        highs = [c.high for c in window]
        lows = [c.low for c in window]
        volumes = [float(c.volume) for c in window]
        closes = [c.close for c in history]
        ema20 = calculate_ema_series(closes, 20)[-self.score_window:]
        ema50 = calculate_ema_series(closes, 50)[-self.score_window:]

        pattern.rsi = calculate_rsi(history)
        pattern.atr = calculate_atr(history)
        if pattern.ema_pattern is None:
            pattern.ema_pattern = classify_ema_pattern(history)
        if pattern.channel_type is None:
            pattern.channel_type = classify_channel(window)
        pattern.trendline_break = check_trendline_break(window, pattern.direction)
        if pattern.predicted_breakout_candles is None:
            pattern.predicted_breakout_candles = get_expected_breakout_candles(pattern.timeframe)

        volume_factor = self.score_calculator.calculate_volume_confirmation(
            volumes, pattern.pattern_type
        )
        pattern.volume_confirmation = volume_factor > 0.5
        pattern.confidence_score = float(self.score_calculator.calculate_combined_score(
            pattern_type=pattern.pattern_type,
            timeframe=pattern.timeframe,
            direction=pattern.direction,
            highs=highs,
            lows=lows,
            volumes=volumes,
            ema20=list(ema20),
            ema50=list(ema50),
            rsi=pattern.rsi,
            multi_timeframe_confirmed=pattern.multi_timeframe_confirmed,
        ))

    def detect_patterns(
        self,
        symbol: str,
        candles: List[Candle],
        timeframe: str,
        metadata: Optional[DataMetadata] = None,
    ) -> Tuple[List[PatternData], DataMetadata]:
        """偵測單一標的、單一週期的所有型態

        Args:
            symbol: 股票代碼
            candles: K 線序列（由舊到新）
            timeframe: K 線週期
            metadata: 數據來源資訊

        Returns:
            (型態列表, 附帶各型態數量的 metadata)；K 線不足 20 根時
            回傳空列表且 source 為 insufficient_data
        """
        metadata = metadata or DataMetadata(source="unknown")
        if len(candles) < MIN_CANDLES_FOR_DETECTION:
            return [], replace(metadata, source="insufficient_data", pattern_counts={})

        patterns: List[PatternData] = []
        for detector in self.detectors:
            patterns.extend(detector.detect(symbol, candles, timeframe, metadata))

        fetch_end = candles[-1].timestamp
        for pattern in patterns:
            if self.confirmer is not None:
                result = self.confirmer.evaluate(
                    pattern, end=pattern.created_at, fetch_end=fetch_end
                )
                pattern.multi_timeframe_confirmed = result.confirmed
                pattern.confirming_timeframe = result.confirming_timeframe
            self._score_pattern(pattern, candles)

        counts = Counter(p.pattern_type for p in patterns)
        logger.debug(f"{symbol} {timeframe}: {len(patterns)} patterns detected")
        return patterns, replace(metadata, pattern_counts=dict(counts))

    def scan_symbol(
        self,
        symbol: str,
        timeframes: List[str],
        candle_data: Dict[str, List[Candle]],
        metadata_map: Optional[Dict[str, DataMetadata]] = None,
    ) -> Tuple[List[PatternData], Dict[str, DataMetadata]]:
        """掃描單一標的的多個週期

        K 線不足的週期不偵測，其 metadata 的 source 標記為 insufficient_data；
        抓取失敗 (error) 的週期維持原狀。
        """
        metadata_map = dict(metadata_map or {})
        all_patterns: List[PatternData] = []

        for timeframe in timeframes:
            candles = candle_data.get(timeframe) or []
            metadata = metadata_map.get(timeframe) or DataMetadata(source="unknown")
            if metadata.source == "error":
                continue
            patterns, updated = self.detect_patterns(symbol, candles, timeframe, metadata)
            all_patterns.extend(patterns)
            metadata_map[timeframe] = updated

        return all_patterns, metadata_map

    def scan_multiple_symbols(
        self,
        symbols: List[str],
        timeframes: List[str],
        candle_data_map: Dict[str, Dict[str, List[Candle]]],
        metadata_map: Optional[Dict[str, Dict[str, DataMetadata]]] = None,
    ) -> ScanResult:
        """掃描多個標的"""
        metadata_map = metadata_map or {}
        result = ScanResult()
        if self.confirmer is not None:
            self.confirmer.clear_cache()
        for symbol in symbols:
            patterns, meta = self.scan_symbol(
                symbol,
                timeframes,
                candle_data_map.get(symbol, {}),
                metadata_map.get(symbol, {}),
            )
            result.patterns_by_symbol[symbol] = patterns
            result.metadata[symbol] = meta
        return result

    def scan_from_source(
        self,
        data_source,
        symbols: List[str],
        timeframes: List[str],
        end: Optional[datetime] = None,
    ) -> ScanResult:
        """從數據源抓取 K 線後掃描多個標的"""
        end = end or datetime.now()
        candle_data_map: Dict[str, Dict[str, List[Candle]]] = {}
        metadata_map: Dict[str, Dict[str, DataMetadata]] = {}

        for symbol in symbols:
            candle_data_map[symbol] = {}
            metadata_map[symbol] = {}
            for timeframe in timeframes:
                start = end - timedelta(days=get_lookback_days(timeframe))
                candles, metadata = data_source.fetch_with_metadata(symbol, timeframe, start, end)
                candle_data_map[symbol][timeframe] = candles
                metadata_map[symbol][timeframe] = metadata

        logger.info(f"Scanning {len(symbols)} symbols on {', '.join(timeframes)}")
        return self.scan_multiple_symbols(symbols, timeframes, candle_data_map, metadata_map)

    @staticmethod
    def get_data_freshness_summary(
        metadata_map: Dict[str, Dict[str, Optional[DataMetadata]]]
    ) -> FreshnessSummary:
        """統計數據新鮮度

        評分：error 與 insufficient_data 0、cache 1、延遲 2、即時 3；
        取平均分最高的 5 個標的。
        """
        summary = FreshnessSummary()
        symbol_scores: Dict[str, float] = {}

        for symbol, timeframe_map in metadata_map.items():
            score = 0
            count = 0
            for metadata in timeframe_map.values():
                summary.total_count += 1
                if metadata is None:
                    summary.error_count += 1
                    continue
                if metadata.source == "error":
                    summary.error_count += 1
                elif metadata.source == "insufficient_data":
                    summary.insufficient_count += 1
                elif metadata.source == "cache":
                    summary.cached_count += 1
                    score += 1
                elif metadata.is_delayed:
                    summary.delayed_count += 1
                    score += 2
                else:
                    summary.real_time_count += 1
                    score += 3
                count += 1
            symbol_scores[symbol] = score / count if count else 0.0

        ranked = sorted(symbol_scores.items(), key=lambda item: item[1], reverse=True)
        summary.freshest_symbols = [symbol for symbol, _ in ranked[:5]]
        return summary
