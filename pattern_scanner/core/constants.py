"""Pattern Scanner Constants - 型態掃描常數

Catalogues shared by the detectors, generators and scanner filters:
pattern names, channel and EMA labels, stock universes, allowed timeframes
per scanner mode and the lower to higher timeframe hierarchy.
"""

from typing import Dict, List, Optional

# 型態名稱
BULL_FLAG = "Bull Flag"
BEAR_FLAG = "Bear Flag"
CUP_AND_HANDLE = "Cup and Handle"
DOUBLE_BOTTOM = "Double Bottom"
DOUBLE_TOP = "Double Top"
ASCENDING_TRIANGLE = "Ascending Triangle"
DESCENDING_TRIANGLE = "Descending Triangle"
SYMMETRICAL_TRIANGLE = "Symmetrical Triangle"
CHANNEL_BREAKOUT = "Channel Breakout"
TRENDLINE_BREAK = "Trendline Break"
HEAD_AND_SHOULDERS = "Head and Shoulders"

PATTERN_TYPES: List[str] = [
    BULL_FLAG,
    BEAR_FLAG,
    CUP_AND_HANDLE,
    DOUBLE_BOTTOM,
    DOUBLE_TOP,
    ASCENDING_TRIANGLE,
    DESCENDING_TRIANGLE,
    SYMMETRICAL_TRIANGLE,
    CHANNEL_BREAKOUT,
    TRENDLINE_BREAK,
    HEAD_AND_SHOULDERS,
]

CHANNEL_TYPES: List[str] = ["horizontal", "ascending", "descending"]

EMA_PATTERNS: List[str] = [
    "7over50",
    "7over100",
    "50over100",
    "allBullish",
    "allBearish",
    "mixed",
]

DEMO_SYMBOLS: List[str] = [
    "TSLA", "AAPL", "NVDA", "AMD", "MSFT",
    "AMZN", "GOOGL", "META", "PYPL", "NFLX",
    "COIN", "MARA", "RIOT", "SHOP", "SQ",
    "AFRM", "SNAP", "RBLX", "PLTR", "DKNG",
]

# 當沖標的：高流動性個股與主要指數 ETF
DAY_TRADING_UNIVERSE: List[str] = [
    "SPY", "QQQ", "IWM", "DIA", "AAPL",
    "MSFT", "AMZN", "GOOGL", "META", "TSLA",
    "NVDA", "AMD", "NFLX", "BA", "JPM",
    "GS", "XOM", "COIN", "GME", "AMC",
]

# 波段標的
SWING_TRADING_UNIVERSE: List[str] = [
    # Technology
    "AAPL", "MSFT", "AMZN", "GOOGL", "META", "TSLA", "NVDA", "AMD", "NFLX", "INTC",
    "CSCO", "ORCL", "IBM", "ADBE", "CRM", "PYPL", "SQ", "SHOP", "TWLO", "ZM",
    "SNOW", "NET", "CRWD", "OKTA", "DDOG", "PLTR", "RBLX", "U", "SNAP", "PINS",
    # Financials
    "JPM", "BAC", "WFC", "C", "GS", "MS", "AXP", "V", "MA", "SCHW",
    # Healthcare
    "JNJ", "PFE", "MRK", "ABBV", "BMY", "LLY", "AMGN", "GILD", "MRNA", "BNTX",
    # Consumer
    "AMZN", "WMT", "HD", "MCD", "NKE", "SBUX", "TGT", "COST", "LOW", "DIS",
    # Energy
    "XOM", "CVX", "COP", "EOG", "SLB",
    # Industrials
    "BA", "CAT", "DE", "MMM", "HON",
    # Crypto-related
    "COIN", "MARA", "RIOT", "MSTR", "SI",
    # Meme stocks
    "GME", "AMC", "BB", "BBBY", "KOSS",
    # ETFs
    "SPY", "QQQ", "IWM", "DIA", "XLF", "XLE", "XLK", "XLV", "XLI", "XLP",
    # Volatile growth
    "ROKU", "PTON", "BYND", "ZG", "DASH", "ABNB", "CVNA", "UPST", "AFRM", "LCID",
]

# 黃金掃描：兩者聯集，保留首次出現順序
GOLDEN_SCANNER_UNIVERSE: List[str] = list(
    dict.fromkeys(DAY_TRADING_UNIVERSE + SWING_TRADING_UNIVERSE)
)

SCANNER_UNIVERSES: Dict[str, List[str]] = {
    "day": DAY_TRADING_UNIVERSE,
    "swing": SWING_TRADING_UNIVERSE,
    "golden": GOLDEN_SCANNER_UNIVERSE,
}

ALL_TIMEFRAMES: List[str] = ["1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w"]

# 較低週期 -> 用於確認的較高週期
TIMEFRAME_HIERARCHY: Dict[str, List[str]] = {
    "1m": ["5m", "15m", "1h"],
    "5m": ["15m", "1h", "4h"],
    "15m": ["1h", "4h", "1d"],
    "30m": ["1h", "4h", "1d"],
    "1h": ["4h", "1d", "1w"],
    "4h": ["1d", "1w"],
    "1d": ["1w"],
}

# 週期可靠度權重（越長越可靠）
TIMEFRAME_WEIGHTS: Dict[str, float] = {
    "1m": 0.6,
    "5m": 0.65,
    "15m": 0.7,
    "30m": 0.75,
    "1h": 0.8,
    "4h": 0.85,
    "1d": 0.9,
    "1w": 0.95,
}
DEFAULT_TIMEFRAME_WEIGHT = 0.7

# Demo 型態的確認週期
CONFIRMING_TIMEFRAMES: Dict[str, str] = {
    "15m": "1h",
    "30m": "4h",
    "1h": "4h",
    "4h": "1d",
}
DEFAULT_CONFIRMING_TIMEFRAME = "1w"

MIN_CANDLES_FOR_DETECTION = 20


def get_allowed_timeframes(mode: str) -> List[str]:
    """取得掃描模式允許的週期

    Args:
        mode: 掃描模式 (day, swing, golden)

    Returns:
        週期列表；未知模式回傳預設列表
    """
    if mode == "day":
        return ["1m", "5m", "15m", "30m", "1h"]
    if mode in ("swing", "golden"):
        return ["1h", "4h", "1d", "1w"]
    return ["15m", "1h", "4h", "1d"]


def get_universe(mode: str) -> List[str]:
    """取得掃描模式的股票池（未知模式回傳黃金掃描池）"""
    return list(SCANNER_UNIVERSES.get(mode, GOLDEN_SCANNER_UNIVERSE))


def get_higher_timeframes(timeframe: str) -> List[str]:
    """取得用於多週期確認的較高週期（最高週期回傳空列表）"""
    return list(TIMEFRAME_HIERARCHY.get(timeframe, []))


def get_timeframe_weight(timeframe: str) -> float:
    return TIMEFRAME_WEIGHTS.get(timeframe, DEFAULT_TIMEFRAME_WEIGHT)


def get_confirming_timeframe(timeframe: str) -> str:
    return CONFIRMING_TIMEFRAMES.get(timeframe, DEFAULT_CONFIRMING_TIMEFRAME)


# 各週期抓取 K 線的回溯天數
LOOKBACK_DAYS: Dict[str, int] = {
    "1m": 5,
    "5m": 20,
    "15m": 30,
    "30m": 55,
    "1h": 120,
    "4h": 365,
    "1d": 730,
    "1w": 1825,
}
DEFAULT_LOOKBACK_DAYS = 365


def get_lookback_days(timeframe: str) -> int:
    return LOOKBACK_DAYS.get(timeframe, DEFAULT_LOOKBACK_DAYS)


# 各週期預期突破所需 K 線數
EXPECTED_BREAKOUT_CANDLES: Dict[str, int] = {
    "1h": 5,
    "4h": 4,
    "1d": 3,
}
DEFAULT_BREAKOUT_CANDLES = 5


def get_expected_breakout_candles(timeframe: str) -> int:
    return EXPECTED_BREAKOUT_CANDLES.get(timeframe, DEFAULT_BREAKOUT_CANDLES)


BULLISH_PATTERNS: List[str] = [
    DOUBLE_BOTTOM,
    CUP_AND_HANDLE,
    BULL_FLAG,
    ASCENDING_TRIANGLE,
    "Inverse Head and Shoulders",
    "Bullish Pennant",
    "Bullish Rectangle",
]

BEARISH_PATTERNS: List[str] = [
    DOUBLE_TOP,
    HEAD_AND_SHOULDERS,
    BEAR_FLAG,
    DESCENDING_TRIANGLE,
    "Bearish Pennant",
    "Bearish Rectangle",
]


def pattern_direction(pattern_type: str) -> Optional[str]:
    """型態的預期方向；無固定方向的型態回傳 None"""
    if pattern_type in BULLISH_PATTERNS:
        return "bullish"
    if pattern_type in BEARISH_PATTERNS:
        return "bearish"
    return None
