"""
型態過濾器

依週期、型態類型、通道類型、EMA 型態、價格區間、信心分數與狀態過濾型態。
"all" 或空值表示不過濾該條件。
"""

from typing import Iterable, List, Optional, Union

from pattern_scanner.core.models import PatternData, PatternStatus

ALL = "all"

Selection = Union[str, Iterable[str], None]


def _selected(value: Selection) -> Optional[set]:
    """將單一值或清單轉為集合；不過濾時回傳 None"""
    if value is None:
        return None
    if isinstance(value, str):
        return None if value in ("", ALL) else {value}
    values = {v for v in value if v and v != ALL}
    return values or None


def dedup_patterns(patterns: Iterable[PatternData]) -> List[PatternData]:
    """同一股票、型態類型與週期只保留信心分數最高者"""
    best = {}
    for pattern in patterns:
        key = (pattern.symbol, pattern.pattern_type, pattern.timeframe)
        kept = best.get(key)
        if kept is None or pattern.confidence_score > kept.confidence_score:
            best[key] = pattern
    return list(best.values())


def sort_by_confidence(patterns: Iterable[PatternData]) -> List[PatternData]:
    """依信心分數由高到低排序"""
    return sorted(patterns, key=lambda p: p.confidence_score or 0, reverse=True)


def filter_patterns(
    patterns: Iterable[PatternData],
    timeframe: Selection = ALL,
    pattern_types: Selection = None,
    channel_types: Selection = None,
    ema_patterns: Selection = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    min_confidence: float = 0.0,
    status: Optional[Union[str, PatternStatus]] = None,
    multi_timeframe_only: bool = False,
) -> List[PatternData]:
    """
    過濾型態

    Args:
        patterns: 型態
        timeframe: 週期或週期清單
        pattern_types: 型態類型或清單
        channel_types: 通道類型或清單
        ema_patterns: EMA 型態或清單
        min_price: 進場價下限
        max_price: 進場價上限
        min_confidence: 信心分數下限 (0 表示不限)
        status: 型態狀態
        multi_timeframe_only: 只保留多週期確認的型態

    Returns:
        符合所有條件的型態（保留原順序）
    """
    timeframes = _selected(timeframe)
    types = _selected(pattern_types)
    channels = _selected(channel_types)
    emas = _selected(ema_patterns)
    if isinstance(status, str):
        status = None if status in ("", ALL) else PatternStatus(status)

    result: List[PatternData] = []
    for p in patterns:
        if timeframes and p.timeframe not in timeframes:
            continue
        if types and p.pattern_type not in types:
            continue
        if channels and (p.channel_type is None or p.channel_type.value not in channels):
            continue
        if emas and p.ema_pattern not in emas:
            continue
        if min_price is not None and p.entry_price < min_price:
            continue
        if max_price is not None and p.entry_price > max_price:
            continue
        if min_confidence > 0 and (p.confidence_score or 0) < min_confidence:
            continue
        if status is not None and p.status is not status:
            continue
        if multi_timeframe_only and not p.multi_timeframe_confirmed:
            continue
        result.append(p)
    return result
