"""
Versioned schema migrations applied by init_db.

Each file in opener/db/migrations/ named NNN_description.py defines up(conn).
Applied versions are recorded in schema_versions so a migration runs once.
"""

import importlib.util
import logging
import os
import sqlite3
from collections import namedtuple
from datetime import datetime, timezone
from glob import glob

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "migrations")

Migration = namedtuple("Migration", ["version", "name", "path"])


class MigrationError(RuntimeError):
    pass


def discover_migrations() -> list:
    """Migration files sorted by version. Files without a numeric prefix are ignored."""
    found = []
    for path in glob(os.path.join(MIGRATIONS_DIR, "[0-9]*_*.py")):
        prefix, name = os.path.splitext(os.path.basename(path))[0].split("_", 1)
        if prefix.isdigit():
            found.append(Migration(int(prefix), name, path))
    return sorted(found)


def _load_up(migration: Migration):
    module_spec = importlib.util.spec_from_file_location(
        f"opener_migration_{migration.version}", migration.path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    if not hasattr(module, "up"):
        raise MigrationError(f"Migration {migration.version:03d}_{migration.name} has no up()")
    return module.up


def run_migrations(db_path: str) -> int:
    """Apply pending migrations in order. Returns how many were applied.

    Stops at the first failure, rolling it back, and raises MigrationError.
    """
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_versions (
                version INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                applied_at TEXT NOT NULL
            )
        """)
        conn.commit()
        applied = {row[0] for row in conn.execute("SELECT version FROM schema_versions")}

        count = 0
        for migration in discover_migrations():
            if migration.version in applied:
                continue
            try:
                _load_up(migration)(conn)
                conn.execute(
                    "INSERT INTO schema_versions (version, name, applied_at) VALUES (?, ?, ?)",
                    (migration.version, migration.name, datetime.now(timezone.utc).isoformat()))
                conn.commit()
            except Exception as e:
                conn.rollback()
                raise MigrationError(
                    f"Migration {migration.version:03d}_{migration.name} failed: {e}") from e
            logger.info("Applied migration %03d_%s", migration.version, migration.name)
            count += 1
        return count
    finally:
        conn.close()
