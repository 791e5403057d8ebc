"""Pattern Repository for Local Persistence

This module provides the PatternRepository class that stores detected
patterns, backtest results and filter presets in a local SQLite database.
Every method logs failures and returns None / False / [] instead of raising.
"""

import json
import logging
import os
import sqlite3
from datetime import datetime
from typing import List, Optional, Union

from pattern_scanner.core.models import (
    BacktestResult,
    PatternData,
    PatternStatus,
    ScannerFilterPreset,
)
from pattern_scanner.db.schema import get_schema_statements

logger = logging.getLogger(__name__)


class PatternRepository:
    """Pattern Repository

    使用 SQLite 儲存掃描與回測結果，支援：
    - 型態的儲存、查詢、狀態更新與刪除
    - 回測結果的儲存與查詢
    - 過濾預設的儲存、查詢與刪除

    Attributes:
        db_path: SQLite 資料庫檔案路徑
    """

    def __init__(self, db_path: Optional[str] = None):
        """初始化 PatternRepository

        Args:
            db_path: SQLite 資料庫路徑，預設為 data/patterns.db
        """
        if db_path is None:
            project_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
            data_dir = os.path.join(project_dir, "data")
            os.makedirs(data_dir, exist_ok=True)
            db_path = os.path.join(data_dir, "patterns.db")

        self.db_path = db_path
        self._initialize_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """取得資料庫連線"""
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize_schema(self) -> bool:
        """初始化資料庫結構"""
        try:
            with self._get_connection() as conn:
                for statement in get_schema_statements():
                    conn.executescript(statement)
                conn.commit()
            logger.info(f"Pattern database initialized at {self.db_path}")
            return True
        except Exception as e:
            logger.error(f"Failed to initialize pattern schema: {e}")
            return False

    # ==================== 型態 ====================

    def save_pattern(self, pattern: PatternData) -> bool:
        """儲存型態（相同 id 會覆寫）

        Args:
            pattern: 型態

        Returns:
            是否成功
        """
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO patterns
                    (id, symbol, timeframe, pattern_type, status, confidence_score,
                     payload, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, datetime('now', 'localtime'))
                    """,
                    (
                        pattern.id,
                        pattern.symbol,
                        pattern.timeframe,
                        pattern.pattern_type,
                        pattern.status.value,
                        pattern.confidence_score,
                        json.dumps(pattern.to_dict(), ensure_ascii=False),
                        pattern.created_at.isoformat(),
                    )
                )
                conn.commit()
            return True
        except Exception as e:
            logger.error(f"Failed to save pattern {pattern.id}: {e}")
            return False

    def save_patterns(self, patterns: List[PatternData]) -> int:
        """批次儲存型態

        Returns:
            成功儲存的數量
        """
        return sum(1 for pattern in patterns if self.save_pattern(pattern))

    def get_pattern(self, pattern_id: str) -> Optional[PatternData]:
        """取得單一型態

        Returns:
            PatternData 或 None
        """
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT payload FROM patterns WHERE id = ?",
                    (pattern_id,)
                ).fetchone()
            if row:
                return PatternData.from_dict(json.loads(row['payload']))
            return None
        except Exception as e:
            logger.error(f"Failed to get pattern {pattern_id}: {e}")
            return None

    def list_patterns(
        self,
        symbol: Optional[str] = None,
        timeframe: Optional[str] = None,
        status: Optional[Union[str, PatternStatus]] = None,
        limit: Optional[int] = None,
    ) -> List[PatternData]:
        """查詢型態，依偵測時間由新到舊排序

        Args:
            symbol: 股票代碼
            timeframe: K 線週期
            status: 型態狀態
            limit: 最大筆數

        Returns:
            型態列表
        """
        clauses = []
        params: list = []
        if symbol:
            clauses.append("symbol = ?")
            params.append(symbol)
        if timeframe and timeframe != "all":
            clauses.append("timeframe = ?")
            params.append(timeframe)
        if status:
            clauses.append("status = ?")
            params.append(status.value if isinstance(status, PatternStatus) else status)

        sql = "SELECT payload FROM patterns"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC"
        if limit:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            with self._get_connection() as conn:
                rows = conn.execute(sql, params).fetchall()
            return [PatternData.from_dict(json.loads(row['payload'])) for row in rows]
        except Exception as e:
            logger.error(f"Failed to list patterns: {e}")
            return []

    def update_pattern_status(self, pattern_id: str, status: Union[str, PatternStatus]) -> bool:
        """更新型態狀態

        Returns:
            是否成功（找不到型態時為 False）
        """
        try:
            status = PatternStatus(status) if isinstance(status, str) else status
            pattern = self.get_pattern(pattern_id)
            if pattern is None:
                logger.warning(f"Pattern {pattern_id} not found")
                return False
            pattern.status = status
            pattern.updated_at = datetime.now()
            return self.save_pattern(pattern)
        except Exception as e:
            logger.error(f"Failed to update pattern {pattern_id}: {e}")
            return False

    def delete_pattern(self, pattern_id: str) -> bool:
        """刪除型態

        Returns:
            是否有刪除資料
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.execute("DELETE FROM patterns WHERE id = ?", (pattern_id,))
                conn.commit()
            return cursor.rowcount > 0
        except Exception as e:
            logger.error(f"Failed to delete pattern {pattern_id}: {e}")
            return False

    # ==================== 回測結果 ====================

    def save_backtest_result(self, result: BacktestResult) -> Optional[int]:
        """儲存回測結果

        Returns:
            資料列 ID，失敗則返回 None
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO backtest_results
                    (pattern_id, symbol, timeframe, pattern_type, successful,
                     profit_loss_percent, is_simulated, payload)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        result.pattern_id,
                        result.symbol,
                        result.timeframe,
                        result.pattern_type,
                        int(result.successful),
                        result.profit_loss_percent,
                        int(result.is_simulated),
                        json.dumps(result.to_dict(), ensure_ascii=False),
                    )
                )
                conn.commit()
            return cursor.lastrowid
        except Exception as e:
            logger.error(f"Failed to save backtest result for {result.pattern_id}: {e}")
            return None

    def list_backtest_results(
        self,
        timeframe: Optional[str] = None,
        pattern_type: Optional[str] = None,
    ) -> List[BacktestResult]:
        """查詢回測結果，依儲存順序排列"""
        clauses = []
        params: list = []
        if timeframe and timeframe != "all":
            clauses.append("timeframe = ?")
            params.append(timeframe)
        if pattern_type:
            clauses.append("pattern_type = ?")
            params.append(pattern_type)

        sql = "SELECT payload FROM backtest_results"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY id"

        try:
            with self._get_connection() as conn:
                rows = conn.execute(sql, params).fetchall()
            return [BacktestResult.from_dict(json.loads(row['payload'])) for row in rows]
        except Exception as e:
            logger.error(f"Failed to list backtest results: {e}")
            return []

    # ==================== 過濾預設 ====================

    def save_preset(self, preset: ScannerFilterPreset) -> bool:
        """儲存過濾預設（相同 id 會覆寫）"""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO filter_presets (id, name, payload, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        preset.id,
                        preset.name,
                        json.dumps(preset.to_dict(), ensure_ascii=False),
                        preset.created_at.isoformat(),
                    )
                )
                conn.commit()
            return True
        except Exception as e:
            logger.error(f"Failed to save preset {preset.id}: {e}")
            return False

    def list_presets(self) -> List[ScannerFilterPreset]:
        """取得所有過濾預設，依建立時間排序"""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    "SELECT payload FROM filter_presets ORDER BY created_at"
                ).fetchall()
            return [ScannerFilterPreset.from_dict(json.loads(row['payload'])) for row in rows]
        except Exception as e:
            logger.error(f"Failed to list presets: {e}")
            return []

    def delete_preset(self, preset_id: str) -> bool:
        """刪除過濾預設"""
        try:
            with self._get_connection() as conn:
                cursor = conn.execute("DELETE FROM filter_presets WHERE id = ?", (preset_id,))
                conn.commit()
            return cursor.rowcount > 0
        except Exception as e:
            logger.error(f"Failed to delete preset {preset_id}: {e}")
            return False
