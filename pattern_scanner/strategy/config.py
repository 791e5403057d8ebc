"""
掃描器過濾預設管理器 (Filter Preset Manager)

管理掃描器的過濾條件預設，支援儲存、切換、刪除與套用。
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pattern_scanner.core.models import PatternData, ScannerFilterPreset
from .filters import filter_patterns

logger = logging.getLogger(__name__)


class FilterPresetManager:
    """
    過濾預設管理器

    使用記憶體儲存；需要持久化時可搭配 PatternRepository 的
    save_preset / list_presets。

    儲存新預設後會自動設為目前使用中的預設；刪除使用中的預設會清除
    使用中狀態。
    """

    def __init__(self, presets: Optional[Iterable[ScannerFilterPreset]] = None):
        self._presets: Dict[str, ScannerFilterPreset] = {}
        self._active_id: Optional[str] = None
        for preset in presets or []:
            self._presets[preset.id] = preset
            if preset.is_default and self._active_id is None:
                self._active_id = preset.id

    @property
    def active_preset(self) -> Optional[ScannerFilterPreset]:
        if self._active_id is None:
            return None
        return self._presets.get(self._active_id)

    def save_preset(
        self,
        name: str,
        pattern_types: Optional[List[str]] = None,
        channel_types: Optional[List[str]] = None,
        ema_patterns: Optional[List[str]] = None,
        timeframe: str = "all",
        **extra,
    ) -> ScannerFilterPreset:
        """
        建立並儲存新預設

        Args:
            name: 預設名稱
            pattern_types: 型態類型
            channel_types: 通道類型
            ema_patterns: EMA 型態
            timeframe: K 線週期
            **extra: description、min_price、max_price、min_volume、is_default

        Returns:
            新建立的預設（已設為使用中）

        Raises:
            ValueError: 名稱為空
        """
        if not name or not name.strip():
            raise ValueError("Preset name must not be empty")

        preset = ScannerFilterPreset(
            id=str(uuid.uuid4()),
            name=name.strip(),
            pattern_types=list(pattern_types or []),
            channel_types=list(channel_types or []),
            ema_patterns=list(ema_patterns or []),
            timeframe=timeframe or "all",
            created_at=datetime.now(),
            **extra,
        )
        self._presets[preset.id] = preset
        self._active_id = preset.id
        logger.info(f"Saved filter preset '{preset.name}' ({preset.id})")
        return preset

    def get_preset(self, preset_id: str) -> Optional[ScannerFilterPreset]:
        return self._presets.get(preset_id)

    def list_presets(self) -> List[ScannerFilterPreset]:
        """依建立時間排序的預設清單"""
        return sorted(self._presets.values(), key=lambda p: p.created_at)

    def set_active(self, preset_id: Optional[str]) -> bool:
        """
        切換使用中的預設

        Args:
            preset_id: 預設識別碼，None 表示清除

        Returns:
            是否成功
        """
        if preset_id is None:
            self._active_id = None
            return True
        if preset_id not in self._presets:
            logger.warning(f"Unknown filter preset: {preset_id}")
            return False
        self._active_id = preset_id
        return True

    def delete_preset(self, preset_id: str) -> bool:
        """刪除預設；刪除使用中的預設時一併清除使用中狀態"""
        if preset_id not in self._presets:
            return False
        del self._presets[preset_id]
        if self._active_id == preset_id:
            self._active_id = None
        logger.info(f"Deleted filter preset {preset_id}")
        return True

    def apply_preset(
        self,
        patterns: Iterable[PatternData],
        preset: Optional[ScannerFilterPreset] = None,
    ) -> List[PatternData]:
        """
        以預設過濾型態

        Args:
            patterns: 型態
            preset: 要套用的預設，None 表示使用中的預設；皆無時不過濾

        Returns:
            過濾後的型態
        """
        preset = preset or self.active_preset
        if preset is None:
            return list(patterns)
        return filter_patterns(
            patterns,
            timeframe=preset.timeframe,
            pattern_types=preset.pattern_types,
            channel_types=preset.channel_types,
            ema_patterns=preset.ema_patterns,
            min_price=preset.min_price,
            max_price=preset.max_price,
        )

    def to_json(self) -> str:
        """將所有預設轉為 JSON 字串"""
        return json.dumps(
            {
                "active_id": self._active_id,
                "presets": [p.to_dict() for p in self.list_presets()],
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, json_str: str) -> "FilterPresetManager":
        """從 JSON 字串還原管理器"""
        data = json.loads(json_str)
        manager = cls(ScannerFilterPreset.from_dict(p) for p in data.get("presets", []))
        active_id = data.get("active_id")
        if active_id in manager._presets:
            manager._active_id = active_id
        return manager
