"""
Migration 001: Baseline schema.

A no-op for databases created by init_db.py. It establishes a baseline
version so later migrations can build on it.
"""

REQUIRED_TABLES = {
    "guest_user_profiles", "guest_contacts", "guest_saved_messages",
    "user_profiles", "companies", "contacts", "saved_message_versions",
}


def up(conn):
    """Baseline migration - verify core tables exist."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = {row[0] for row in cursor.fetchall()}

    missing = REQUIRED_TABLES - tables
    if missing:
        raise RuntimeError(
            f"Baseline migration requires existing schema. Missing tables: {missing}. "
            f"Run 'python -m opener.db.init_db' first."
        )
