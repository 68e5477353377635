"""SQLite table definitions."""

CREATE_PREDICTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS predictions (
    id TEXT PRIMARY KEY,
    symbol TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    current_price REAL,
    market_slug TEXT NOT NULL,
    question TEXT NOT NULL,
    outcomes TEXT NOT NULL,
    outcome_prices TEXT NOT NULL,
    clob_token_ids TEXT NOT NULL DEFAULT '[]',
    direction TEXT NOT NULL CHECK (direction IN ('UP', 'DOWN', 'NO_BET')),
    size_usd REAL NOT NULL,
    max_loss_usd REAL NOT NULL,
    edge_prob REAL NOT NULL,
    reasoning TEXT NOT NULL DEFAULT ''
);
"""

CREATE_PREDICTIONS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_predictions_slug_ts
ON predictions (market_slug, timestamp DESC);
"""
