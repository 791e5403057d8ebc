"""Core data models for AI PatternScanner

This module defines all core dataclasses and enums used throughout the system.
Records mirror database rows: optional fields are defaulted, enum fields are
restricted to their literal values, and every record round-trips through
``to_dict`` / ``from_dict`` for JSON persistence.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Direction(Enum):
    """型態方向"""
    BULLISH = "bullish"
    BEARISH = "bearish"

    @property
    def opposite(self) -> "Direction":
        return Direction.BEARISH if self is Direction.BULLISH else Direction.BULLISH


class PatternStatus(Enum):
    """型態狀態"""
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class ChannelType(Enum):
    """通道類型"""
    HORIZONTAL = "horizontal"
    ASCENDING = "ascending"
    DESCENDING = "descending"


class Timeframe(Enum):
    """K 線週期"""
    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    DAILY = "1d"
    WEEKLY = "1w"


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Accept datetime, ISO string (with optional trailing Z) or None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """只保留 dataclass 定義的欄位"""
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass
class Candle:
    """K 線數據

    Attributes:
        timestamp: 時間戳
        open: 開盤價
        high: 最高價
        low: 最低價
        close: 收盤價
        volume: 成交量
    """
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _format_datetime(self.timestamp),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Candle":
        return cls(
            timestamp=_parse_datetime(data.get("timestamp") or data.get("time")),
            open=float(data.get("open", 0.0)),
            high=float(data.get("high", 0.0)),
            low=float(data.get("low", 0.0)),
            close=float(data.get("close", 0.0)),
            volume=int(data.get("volume") or 0),
        )


@dataclass
class DataMetadata:
    """數據來源資訊

    Attributes:
        source: 來源 (api, cache, mock, error, insufficient_data)
        is_delayed: 是否為延遲報價
        fetched_at: 抓取時間
        last_updated: 快取最後更新時間
        pattern_counts: 各型態偵測數量
    """
    source: str = "unknown"
    is_delayed: bool = True
    fetched_at: datetime = field(default_factory=datetime.now)
    last_updated: Optional[datetime] = None
    pattern_counts: Dict[str, int] = field(default_factory=dict)

    def freshness_label(self, now: Optional[datetime] = None) -> str:
        """Human readable freshness of the data behind a pattern."""
        if self.source == "error":
            return "Error"
        if self.source == "cache":
            now = now or datetime.now()
            reference = self.last_updated or self.fetched_at
            age_minutes = int((now - reference).total_seconds() // 60)
            return f"Cached ({age_minutes}m old)"
        if self.is_delayed:
            return "Delayed (15m)"
        return "Real-time"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "is_delayed": self.is_delayed,
            "fetched_at": _format_datetime(self.fetched_at),
            "last_updated": _format_datetime(self.last_updated),
            "pattern_counts": dict(self.pattern_counts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataMetadata":
        return cls(
            source=data.get("source") or "unknown",
            is_delayed=bool(data.get("is_delayed", True)),
            fetched_at=_parse_datetime(data.get("fetched_at")) or datetime.now(),
            last_updated=_parse_datetime(data.get("last_updated")),
            pattern_counts={str(k): int(v) for k, v in (data.get("pattern_counts") or {}).items()},
        )


@dataclass
class PatternData:
    """型態偵測結果

    Attributes:
        id: 型態識別碼
        symbol: 股票代碼
        timeframe: K 線週期
        pattern_type: 型態名稱 (如 Bull Flag)
        direction: 型態方向
        entry_price: 進場價
        target_price: 目標價
        stop_loss: 止損價
        risk_reward_ratio: 風險報酬比
        confidence_score: 信心分數 (0-100)
        created_at: 偵測時間
        status: 型態狀態
    """
    id: str
    symbol: str
    timeframe: str
    pattern_type: str
    direction: Direction
    entry_price: float
    target_price: float
    stop_loss: float
    risk_reward_ratio: float = 0.0
    confidence_score: float = 0.0
    created_at: datetime = field(default_factory=datetime.now)
    status: PatternStatus = PatternStatus.ACTIVE
    updated_at: Optional[datetime] = None
    support_level: Optional[float] = None
    resistance_level: Optional[float] = None
    channel_type: Optional[ChannelType] = None
    ema_pattern: Optional[str] = None
    trendline_break: bool = False
    volume_confirmation: bool = False
    predicted_breakout_candles: Optional[int] = None
    current_price: Optional[float] = None
    multi_timeframe_confirmed: bool = False
    confirming_timeframe: Optional[str] = None
    rsi: Optional[float] = None
    atr: Optional[float] = None
    data_freshness: str = "Unknown"
    is_ai_generated: bool = False

    @property
    def potential_profit_percent(self) -> float:
        """預期獲利百分比（依方向計算）"""
        if self.entry_price <= 0:
            return 0.0
        move = self.target_price - self.entry_price
        if self.direction is Direction.BEARISH:
            move = -move
        return move / self.entry_price * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "pattern_type": self.pattern_type,
            "direction": self.direction.value,
            "entry_price": self.entry_price,
            "target_price": self.target_price,
            "stop_loss": self.stop_loss,
            "risk_reward_ratio": self.risk_reward_ratio,
            "confidence_score": self.confidence_score,
            "created_at": _format_datetime(self.created_at),
            "status": self.status.value,
            "updated_at": _format_datetime(self.updated_at),
            "support_level": self.support_level,
            "resistance_level": self.resistance_level,
            "channel_type": self.channel_type.value if self.channel_type else None,
            "ema_pattern": self.ema_pattern,
            "trendline_break": self.trendline_break,
            "volume_confirmation": self.volume_confirmation,
            "predicted_breakout_candles": self.predicted_breakout_candles,
            "current_price": self.current_price,
            "multi_timeframe_confirmed": self.multi_timeframe_confirmed,
            "confirming_timeframe": self.confirming_timeframe,
            "rsi": self.rsi,
            "atr": self.atr,
            "data_freshness": self.data_freshness,
            "is_ai_generated": self.is_ai_generated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PatternData":
        """Build a pattern from a row; missing optional fields get defaults.

        Raises:
            ValueError: direction, status or channel type outside their
                literal sets
        """
        channel = data.get("channel_type")
        breakout = data.get("predicted_breakout_candles")
        return cls(
            id=str(data["id"]),
            symbol=data["symbol"],
            timeframe=data.get("timeframe", "1d"),
            pattern_type=data["pattern_type"],
            direction=Direction(data.get("direction", "bullish")),
            entry_price=float(data.get("entry_price") or 0.0),
            target_price=float(data.get("target_price") or 0.0),
            stop_loss=float(data.get("stop_loss") or 0.0),
            risk_reward_ratio=float(data.get("risk_reward_ratio") or 0.0),
            confidence_score=float(data.get("confidence_score") or 0.0),
            created_at=_parse_datetime(data.get("created_at")) or datetime.now(),
            status=PatternStatus(data.get("status", "active")),
            updated_at=_parse_datetime(data.get("updated_at")),
            support_level=_optional_float(data.get("support_level")),
            resistance_level=_optional_float(data.get("resistance_level")),
            channel_type=ChannelType(channel) if channel else None,
            ema_pattern=data.get("ema_pattern"),
            trendline_break=bool(data.get("trendline_break", False)),
            volume_confirmation=bool(data.get("volume_confirmation", False)),
            predicted_breakout_candles=int(breakout) if breakout is not None else None,
            current_price=_optional_float(data.get("current_price")),
            multi_timeframe_confirmed=bool(data.get("multi_timeframe_confirmed", False)),
            confirming_timeframe=data.get("confirming_timeframe"),
            rsi=_optional_float(data.get("rsi")),
            atr=_optional_float(data.get("atr")),
            data_freshness=data.get("data_freshness") or "Unknown",
            is_ai_generated=bool(data.get("is_ai_generated", False)),
        )


@dataclass
class BacktestResult:
    """單一型態的回測結果

    Attributes:
        pattern_id: 型態識別碼
        symbol: 股票代碼
        timeframe: K 線週期
        pattern_type: 型態名稱
        entry_price: 進場價
        target_price: 目標價
        stop_loss: 止損價
        actual_exit_price: 實際出場價
        predicted_direction: 預測方向
        actual_direction: 實際方向
        entry_date: 進場時間
        exit_date: 出場時間
        candles_to_breakout: 進場到出場的 K 線數
        successful: 是否達成預測
        profit_loss: 損益（價格單位）
        profit_loss_percent: 損益百分比
        max_drawdown: 最大不利變動百分比
    """
    pattern_id: str
    symbol: str
    timeframe: str
    pattern_type: str
    entry_price: float
    target_price: float
    stop_loss: float
    actual_exit_price: float
    predicted_direction: Direction
    actual_direction: Direction
    entry_date: datetime
    exit_date: datetime
    candles_to_breakout: int
    successful: bool
    profit_loss: float
    profit_loss_percent: float
    max_drawdown: float = 0.0
    is_simulated: bool = False
    rsi_at_entry: Optional[float] = None
    atr_at_entry: Optional[float] = None
    confidence_score: Optional[float] = None
    risk_reward_ratio: Optional[float] = None
    data_source: str = "unknown"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern_id": self.pattern_id,
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "pattern_type": self.pattern_type,
            "entry_price": self.entry_price,
            "target_price": self.target_price,
            "stop_loss": self.stop_loss,
            "actual_exit_price": self.actual_exit_price,
            "predicted_direction": self.predicted_direction.value,
            "actual_direction": self.actual_direction.value,
            "entry_date": _format_datetime(self.entry_date),
            "exit_date": _format_datetime(self.exit_date),
            "candles_to_breakout": self.candles_to_breakout,
            "successful": self.successful,
            "profit_loss": self.profit_loss,
            "profit_loss_percent": self.profit_loss_percent,
            "max_drawdown": self.max_drawdown,
            "is_simulated": self.is_simulated,
            "rsi_at_entry": self.rsi_at_entry,
            "atr_at_entry": self.atr_at_entry,
            "confidence_score": self.confidence_score,
            "risk_reward_ratio": self.risk_reward_ratio,
            "data_source": self.data_source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BacktestResult":
        predicted = Direction(data.get("predicted_direction", "bullish"))
        return cls(
            pattern_id=str(data["pattern_id"]),
            symbol=data["symbol"],
            timeframe=data.get("timeframe", "1d"),
            pattern_type=data.get("pattern_type", "Unknown"),
            entry_price=float(data.get("entry_price") or 0.0),
            target_price=float(data.get("target_price") or 0.0),
            stop_loss=float(data.get("stop_loss") or 0.0),
            actual_exit_price=float(data.get("actual_exit_price") or 0.0),
            predicted_direction=predicted,
            actual_direction=Direction(data.get("actual_direction", predicted.value)),
            entry_date=_parse_datetime(data.get("entry_date")) or datetime.now(),
            exit_date=_parse_datetime(data.get("exit_date")) or datetime.now(),
            candles_to_breakout=int(data.get("candles_to_breakout") or 0),
            successful=bool(data.get("successful", False)),
            profit_loss=float(data.get("profit_loss") or 0.0),
            profit_loss_percent=float(data.get("profit_loss_percent") or 0.0),
            max_drawdown=float(data.get("max_drawdown") or 0.0),
            is_simulated=bool(data.get("is_simulated", False)),
            rsi_at_entry=_optional_float(data.get("rsi_at_entry")),
            atr_at_entry=_optional_float(data.get("atr_at_entry")),
            confidence_score=_optional_float(data.get("confidence_score")),
            risk_reward_ratio=_optional_float(data.get("risk_reward_ratio")),
            data_source=data.get("data_source") or "unknown",
        )


@dataclass
class BacktestSummary:
    """回測統計摘要"""
    timeframe: str
    pattern_type: Optional[str] = None
    total_patterns: int = 0
    successful_patterns: int = 0
    failed_patterns: int = 0
    success_rate: float = 0.0
    avg_profit_loss_percent: float = 0.0
    avg_candles_to_breakout: float = 0.0
    avg_rsi_at_entry: float = 0.0
    avg_atr_percent: float = 0.0
    is_simulated: bool = False
    max_profit: float = 0.0
    max_loss: float = 0.0
    avg_confidence_score: float = 0.0
    avg_risk_reward_ratio: float = 0.0
    consistency_score: float = 0.0
    max_win_streak: int = 0
    max_loss_streak: int = 0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    risk_reward_ratio: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BacktestSummary":
        """從字典建立（忽略未知欄位，缺少的欄位使用預設值）"""
        return cls(**_known_fields(cls, data))


@dataclass
class TimeframeStats:
    """單一週期的統計"""
    timeframe: str
    accuracy_rate: float
    avg_days_to_breakout: float
    success_rate: float
    total_patterns: int
    avg_profit: float
    successful_patterns: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeframeStats":
        return cls(**_known_fields(cls, data))


@dataclass
class RealTimeQuote:
    """即時報價

    Attributes:
        symbol: 股票代碼
        price: 最新價
        change: 漲跌
        change_percent: 漲跌幅（百分比）
        volume: 成交量
        timestamp: 報價時間
    """
    symbol: str
    price: float
    change: float
    change_percent: float
    volume: int
    timestamp: datetime
    bid: Optional[float] = None
    ask: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    open: Optional[float] = None
    previous_close: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "volume": self.volume,
            "timestamp": _format_datetime(self.timestamp),
            "bid": self.bid,
            "ask": self.ask,
            "high": self.high,
            "low": self.low,
            "open": self.open,
            "previous_close": self.previous_close,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RealTimeQuote":
        return cls(
            symbol=data["symbol"],
            price=float(data.get("price") or 0.0),
            change=float(data.get("change") or 0.0),
            change_percent=float(data.get("change_percent") or 0.0),
            volume=int(data.get("volume") or 0),
            timestamp=_parse_datetime(data.get("timestamp")) or datetime.now(),
            bid=_optional_float(data.get("bid")),
            ask=_optional_float(data.get("ask")),
            high=_optional_float(data.get("high")),
            low=_optional_float(data.get("low")),
            open=_optional_float(data.get("open")),
            previous_close=_optional_float(data.get("previous_close")),
        )


@dataclass
class ScannerFilterPreset:
    """掃描器過濾條件預設

    Attributes:
        id: 預設識別碼
        name: 預設名稱
        pattern_types: 型態類型清單
        channel_types: 通道類型清單
        ema_patterns: EMA 型態清單
        timeframe: K 線週期（all 表示不限）
        created_at: 建立時間
    """
    id: str
    name: str
    pattern_types: List[str] = field(default_factory=list)
    channel_types: List[str] = field(default_factory=list)
    ema_patterns: List[str] = field(default_factory=list)
    timeframe: str = "all"
    created_at: datetime = field(default_factory=datetime.now)
    description: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_volume: Optional[int] = None
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "pattern_types": list(self.pattern_types),
            "channel_types": list(self.channel_types),
            "ema_patterns": list(self.ema_patterns),
            "timeframe": self.timeframe,
            "created_at": _format_datetime(self.created_at),
            "description": self.description,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "min_volume": self.min_volume,
            "is_default": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScannerFilterPreset":
        min_volume = data.get("min_volume")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            pattern_types=list(data.get("pattern_types") or []),
            channel_types=list(data.get("channel_types") or []),
            ema_patterns=list(data.get("ema_patterns") or []),
            timeframe=data.get("timeframe") or "all",
            created_at=_parse_datetime(data.get("created_at")) or datetime.now(),
            description=data.get("description"),
            min_price=_optional_float(data.get("min_price")),
            max_price=_optional_float(data.get("max_price")),
            min_volume=int(min_volume) if min_volume is not None else None,
            is_default=bool(data.get("is_default", False)),
        )
