"""
Migration 002: Add workflow_errors table for tracking non-fatal errors.

Edge functions that tolerate partial failure (guest linking, cleanup)
record what went wrong here instead of only logging it.
"""


def up(conn):
    conn.execute("""
        CREATE TABLE IF NOT EXISTS workflow_errors (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            phase TEXT NOT NULL,
            session_id TEXT,
            user_id TEXT,
            function_name TEXT,
            error_type TEXT,
            error_message TEXT,
            context TEXT DEFAULT '{}',
            severity TEXT DEFAULT 'warning',
            resolved INTEGER DEFAULT 0,
            created_at TEXT DEFAULT (datetime('now'))
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_workflow_errors_session
        ON workflow_errors(session_id)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_workflow_errors_severity
        ON workflow_errors(severity, resolved)
    """)
