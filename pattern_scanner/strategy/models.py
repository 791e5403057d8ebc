"""
交易策略資料模型

定義交易策略、進出場規則與風險管理設定的資料類別，以及 AI 分析結果。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pattern_scanner.core.models import _format_datetime, _parse_datetime


@dataclass
class StrategyRule:
    """策略規則

    Attributes:
        id: 規則識別碼
        type: 規則類型 (pattern, volume, ema, rsi, macd, time, ...)
        value: 規則參數，例如 "price > EMA50" 或 "20"
        enabled: 是否啟用
        name: 顯示名稱
    """
    id: str
    type: str
    value: str
    enabled: bool = True
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "value": self.value,
            "enabled": self.enabled,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StrategyRule":
        return cls(
            id=str(data["id"]),
            type=data.get("type", ""),
            value=str(data.get("value", "")),
            enabled=bool(data.get("enabled", True)),
            name=data.get("name", ""),
        )


@dataclass
class RiskManagement:
    """風險管理設定

    Attributes:
        stop_loss_percent: 止損百分比
        take_profit_percent: 停利百分比
        max_position_size: 單筆最大部位百分比
        trailing_stop: 是否使用移動止損
        max_loss_per_trade: 單筆最大虧損百分比
    """
    stop_loss_percent: float = 3.0
    take_profit_percent: float = 9.0
    max_position_size: float = 5.0
    trailing_stop: bool = False
    max_loss_per_trade: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stop_loss_percent": self.stop_loss_percent,
            "take_profit_percent": self.take_profit_percent,
            "max_position_size": self.max_position_size,
            "trailing_stop": self.trailing_stop,
            "max_loss_per_trade": self.max_loss_per_trade,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskManagement":
        max_loss = data.get("max_loss_per_trade")
        return cls(
            stop_loss_percent=float(data.get("stop_loss_percent", 3.0)),
            take_profit_percent=float(data.get("take_profit_percent", 9.0)),
            max_position_size=float(data.get("max_position_size", 5.0)),
            trailing_stop=bool(data.get("trailing_stop", False)),
            max_loss_per_trade=float(max_loss) if max_loss is not None else None,
        )


@dataclass
class TradingStrategy:
    """交易策略

    Attributes:
        id: 策略識別碼
        name: 策略名稱
        description: 策略說明
        entry_rules: 進場規則
        exit_rules: 出場規則
        risk_management: 風險管理設定
        timeframes: 適用的 K 線週期
        confidence: 策略本身的信心分數 (0-100)
        entry_conditions: 文字型進場條件，如 "RSI > 40"
        exit_conditions: 文字型出場條件，如 "Price reaches target"
    """
    id: str
    name: str
    description: str = ""
    entry_rules: List[StrategyRule] = field(default_factory=list)
    exit_rules: List[StrategyRule] = field(default_factory=list)
    risk_management: RiskManagement = field(default_factory=RiskManagement)
    timeframes: List[str] = field(default_factory=list)
    version: str = "1.0"
    tags: List[str] = field(default_factory=list)
    author: str = "User"
    is_active: bool = True
    is_system: bool = False
    confidence: float = 50.0
    entry_conditions: List[str] = field(default_factory=list)
    exit_conditions: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def enabled_entry_rules(self) -> List[StrategyRule]:
        return [rule for rule in self.entry_rules if rule.enabled]

    @property
    def enabled_exit_rules(self) -> List[StrategyRule]:
        return [rule for rule in self.exit_rules if rule.enabled]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "entry_rules": [rule.to_dict() for rule in self.entry_rules],
            "exit_rules": [rule.to_dict() for rule in self.exit_rules],
            "risk_management": self.risk_management.to_dict(),
            "timeframes": list(self.timeframes),
            "version": self.version,
            "tags": list(self.tags),
            "author": self.author,
            "is_active": self.is_active,
            "is_system": self.is_system,
            "confidence": self.confidence,
            "entry_conditions": list(self.entry_conditions),
            "exit_conditions": list(self.exit_conditions),
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TradingStrategy":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            description=data.get("description", ""),
            entry_rules=[StrategyRule.from_dict(r) for r in data.get("entry_rules") or []],
            exit_rules=[StrategyRule.from_dict(r) for r in data.get("exit_rules") or []],
            risk_management=RiskManagement.from_dict(data.get("risk_management") or {}),
            timeframes=list(data.get("timeframes") or []),
            version=data.get("version") or "1.0",
            tags=list(data.get("tags") or []),
            author=data.get("author", "User"),
            is_active=bool(data.get("is_active", True)),
            is_system=bool(data.get("is_system", False)),
            confidence=float(data.get("confidence", 50.0)),
            entry_conditions=list(data.get("entry_conditions") or []),
            exit_conditions=list(data.get("exit_conditions") or []),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass
class TimeEstimate:
    """預估持有時間"""
    min: int
    max: int
    unit: str = "days"


@dataclass
class EntryAnalysis:
    """進場分析

    Attributes:
        entry: 進場價
        target: 目標價
        stop_loss: 止損價
        support_levels: 下方支撐位（由近到遠）
        resistance_levels: 上方壓力位（由近到遠）
        risk_reward_ratio: 風險報酬比
        success_probability: 成功機率 (0-100)
    """
    entry: float
    target: float
    stop_loss: float
    support_levels: List[float] = field(default_factory=list)
    resistance_levels: List[float] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    risk_reward_ratio: float = 0.0
    success_probability: float = 0.0
    time_estimate: Optional[TimeEstimate] = None
    confidence_score: float = 0.0


@dataclass
class ExitAnalysis:
    """出場分析

    Attributes:
        recommendation: exit / hold / scale
        reason_summary: 建議原因
        target_progress: 已達成目標的百分比 (0-100)
        risk_reward_ratio: 以目前價格計算的剩餘風險報酬比
    """
    recommendation: str
    reason_summary: str
    target_price: float
    stop_loss: float
    current_price: float
    percent_move: float = 0.0
    target_progress: float = 0.0
    risk_reward_ratio: float = 0.0
    confidence: int = 0
    target_rationale: str = ""
    stop_loss_rationale: str = ""
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    exit_conditions: List[str] = field(default_factory=list)


@dataclass
class StrategyAnalysis:
    """策略評估"""
    name: str
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    expected_win_rate: float = 0.0
    average_rr: float = 0.0
    best_timeframes: List[str] = field(default_factory=list)
    best_patterns: List[str] = field(default_factory=list)


@dataclass
class PatternPerformance:
    """單一型態類型的回測表現"""
    pattern_type: str
    total_trades: int
    successful_trades: int
    win_rate: float
    average_return: float
    average_holding_days: float
    timeframes: List[str] = field(default_factory=list)
