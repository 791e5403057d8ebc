"""Unit tests for PatternRepository (SQLite persistence)"""

import sqlite3
from datetime import timedelta

import pytest

from conftest import BASE_TIME
from pattern_scanner.core.models import PatternStatus, ScannerFilterPreset
from pattern_scanner.db.repository import PatternRepository
from pattern_scanner.db.schema import get_schema_statements


@pytest.fixture
def repository(tmp_path):
    return PatternRepository(str(tmp_path / "patterns.db"))


class TestSchema:
    """Test schema creation"""

    def test_tables_created(self, repository):
        conn = sqlite3.connect(repository.db_path)
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        conn.close()
        assert {"patterns", "backtest_results", "filter_presets"} <= names

    def test_schema_is_idempotent(self, repository):
        again = PatternRepository(repository.db_path)
        assert again.list_patterns() == []

    def test_statements(self):
        assert len(get_schema_statements()) >= 3


class TestPatterns:
    """Test pattern persistence"""

    def test_save_and_get(self, repository, make_pattern):
        pattern = make_pattern(rsi=58.0, current_price=101.5)
        assert repository.save_pattern(pattern) is True
        assert repository.get_pattern(pattern.id) == pattern

    def test_get_missing(self, repository):
        assert repository.get_pattern("missing") is None

    def test_save_overwrites(self, repository, make_pattern):
        repository.save_pattern(make_pattern(confidence_score=60.0))
        repository.save_pattern(make_pattern(confidence_score=75.0))
        patterns = repository.list_patterns()
        assert len(patterns) == 1
        assert patterns[0].confidence_score == 75.0

    def test_list_newest_first_with_filters(self, repository, make_pattern):
        count = repository.save_patterns([
            make_pattern(id="old", created_at=BASE_TIME),
            make_pattern(id="new", created_at=BASE_TIME + timedelta(days=2)),
            make_pattern(id="hourly", timeframe="1h", created_at=BASE_TIME + timedelta(days=1)),
            make_pattern(id="msft", symbol="MSFT", created_at=BASE_TIME + timedelta(days=3)),
        ])
        assert count == 4

        assert [p.id for p in repository.list_patterns()] == ["msft", "new", "hourly", "old"]
        assert [p.id for p in repository.list_patterns(symbol="AAPL", timeframe="1d")] == ["new", "old"]
        assert [p.id for p in repository.list_patterns(timeframe="all", limit=2)] == ["msft", "new"]

    def test_update_status(self, repository, make_pattern):
        repository.save_pattern(make_pattern())
        assert repository.update_pattern_status(make_pattern().id, "completed") is True

        stored = repository.get_pattern(make_pattern().id)
        assert stored.status is PatternStatus.COMPLETED
        assert stored.updated_at is not None
        assert [p.status for p in repository.list_patterns(status=PatternStatus.COMPLETED)] == [
            PatternStatus.COMPLETED
        ]
        assert repository.list_patterns(status="active") == []

    def test_update_missing_pattern(self, repository):
        assert repository.update_pattern_status("missing", PatternStatus.FAILED) is False

    def test_update_invalid_status(self, repository, make_pattern):
        repository.save_pattern(make_pattern())
        assert repository.update_pattern_status(make_pattern().id, "pending") is False

    def test_delete(self, repository, make_pattern):
        pattern = make_pattern()
        repository.save_pattern(pattern)
        assert repository.delete_pattern(pattern.id) is True
        assert repository.delete_pattern(pattern.id) is False
        assert repository.get_pattern(pattern.id) is None

    def test_failures_return_defaults(self, tmp_path, make_pattern):
        repository = PatternRepository(str(tmp_path / "missing_dir" / "patterns.db"))
        assert repository.save_pattern(make_pattern()) is False
        assert repository.list_patterns() == []
        assert repository.get_pattern("x") is None


class TestBacktestResults:
    """Test backtest result persistence"""

    def test_save_and_list(self, repository, make_result):
        first = repository.save_backtest_result(make_result(pattern_id="a"))
        second = repository.save_backtest_result(
            make_result(pattern_id="b", timeframe="1h", pattern_type="Double Top", successful=False)
        )

        assert first == 1
        assert second == 2
        results = repository.list_backtest_results()
        assert [r.pattern_id for r in results] == ["a", "b"]
        assert results[0] == make_result(pattern_id="a")

    def test_filters(self, repository, make_result):
        repository.save_backtest_result(make_result(pattern_id="a"))
        repository.save_backtest_result(make_result(pattern_id="b", timeframe="1h"))
        repository.save_backtest_result(make_result(pattern_id="c", pattern_type="Double Top"))

        assert [r.pattern_id for r in repository.list_backtest_results(timeframe="1h")] == ["b"]
        assert [r.pattern_id for r in repository.list_backtest_results(pattern_type="Double Top")] == ["c"]
        assert len(repository.list_backtest_results(timeframe="all")) == 3


class TestPresets:
    """Test filter preset persistence"""

    def test_save_list_delete(self, repository):
        older = ScannerFilterPreset(id="a", name="Flags", pattern_types=["Bull Flag"], created_at=BASE_TIME)
        newer = ScannerFilterPreset(
            id="b", name="Hourly", timeframe="1h", created_at=BASE_TIME + timedelta(hours=1),
            is_default=True,
        )
        assert repository.save_preset(newer) is True
        assert repository.save_preset(older) is True

        assert repository.list_presets() == [older, newer]
        assert repository.delete_preset("a") is True
        assert repository.delete_preset("a") is False
        assert repository.list_presets() == [newer]
