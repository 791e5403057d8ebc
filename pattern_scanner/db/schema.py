"""SQLite Schema for Pattern Scanner Persistence

This module defines the SQLite tables that store detected patterns, backtest
results and scanner filter presets. Each row keeps the full record as a JSON
payload next to the indexed columns used for lookups.
"""

# Detected patterns
CREATE_PATTERNS_TABLE = """
CREATE TABLE IF NOT EXISTS patterns (
    id                  TEXT PRIMARY KEY,
    symbol              TEXT NOT NULL,
    timeframe           TEXT NOT NULL,
    pattern_type        TEXT NOT NULL,
    status              TEXT NOT NULL DEFAULT 'active',  -- active, completed, failed
    confidence_score    REAL DEFAULT 0,
    payload             TEXT NOT NULL,  -- JSON of PatternData
    created_at          TEXT NOT NULL,
    updated_at          TEXT DEFAULT (datetime('now', 'localtime'))
);
"""

# Backtest results, one row per pattern run
CREATE_BACKTEST_RESULTS_TABLE = """
CREATE TABLE IF NOT EXISTS backtest_results (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    pattern_id          TEXT NOT NULL,
    symbol              TEXT NOT NULL,
    timeframe           TEXT NOT NULL,
    pattern_type        TEXT NOT NULL,
    successful          INTEGER NOT NULL,
    profit_loss_percent REAL NOT NULL,
    is_simulated        INTEGER DEFAULT 0,
    payload             TEXT NOT NULL,  -- JSON of BacktestResult
    created_at          TEXT DEFAULT (datetime('now', 'localtime'))
);
"""

# Scanner filter presets
CREATE_FILTER_PRESETS_TABLE = """
CREATE TABLE IF NOT EXISTS filter_presets (
    id                  TEXT PRIMARY KEY,
    name                TEXT NOT NULL,
    payload             TEXT NOT NULL,  -- JSON of ScannerFilterPreset
    created_at          TEXT NOT NULL
);
"""

CREATE_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_patterns_symbol ON patterns(symbol);
CREATE INDEX IF NOT EXISTS idx_patterns_timeframe ON patterns(timeframe);
CREATE INDEX IF NOT EXISTS idx_patterns_status ON patterns(status);
CREATE INDEX IF NOT EXISTS idx_backtest_pattern_type ON backtest_results(pattern_type);
CREATE INDEX IF NOT EXISTS idx_backtest_timeframe ON backtest_results(timeframe);
"""


def get_schema_statements():
    """Get individual schema statements for step-by-step execution.

    Returns:
        List of SQL statements to execute in order
    """
    return [
        CREATE_PATTERNS_TABLE,
        CREATE_BACKTEST_RESULTS_TABLE,
        CREATE_FILTER_PRESETS_TABLE,
        CREATE_INDEXES,
    ]
