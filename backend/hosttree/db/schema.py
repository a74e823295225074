"""Database schema DDL. All tables use CREATE IF NOT EXISTS for idempotency."""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS events (
    sequence_num INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id TEXT UNIQUE NOT NULL,
    node_id TEXT,
    timestamp TEXT NOT NULL,
    device_id TEXT NOT NULL DEFAULT 'local',
    user_id TEXT,
    event_type TEXT NOT NULL,
    payload TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_node_id ON events(node_id);
CREATE INDEX IF NOT EXISTS idx_events_event_type ON events(event_type);
CREATE INDEX IF NOT EXISTS idx_events_timestamp ON events(timestamp);

CREATE TABLE IF NOT EXISTS nodes (
    node_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    kind TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    config TEXT NOT NULL DEFAULT '{}',
    tags TEXT NOT NULL DEFAULT '[]',
    parent_id TEXT,
    prev_id TEXT,
    next_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_nodes_parent_id ON nodes(parent_id);
"""
