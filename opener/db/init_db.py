"""
Opener Studio - Database Initialization
Creates the guest-session tables, the permanent user-keyed tables, and indexes.
"""

import logging
import sqlite3

from opener.config import DB_PATH

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
-- ─── GUEST SESSION TABLES (keyed by browser session id) ───

CREATE TABLE IF NOT EXISTS guest_user_profiles (
    session_id TEXT PRIMARY KEY,
    first_name TEXT,
    last_name TEXT,
    job_role TEXT,
    current_company TEXT,
    location TEXT,
    background_input TEXT,
    linkedin_content TEXT,
    cv_content TEXT,
    additional_details TEXT,
    linked_user_id TEXT,
    linked_at TEXT,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS guest_user_summaries (
    session_id TEXT PRIMARY KEY,
    experience TEXT,
    education TEXT,
    expertise TEXT,
    achievements TEXT,
    overall_blurb TEXT,
    combined_experience_highlights TEXT DEFAULT '[]',
    combined_education_highlights TEXT DEFAULT '[]',
    key_skills TEXT DEFAULT '[]',
    domain_expertise TEXT DEFAULT '[]',
    technical_expertise TEXT DEFAULT '[]',
    value_proposition_summary TEXT,
    linked_at TEXT,
    generated_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS guest_contacts (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    first_name TEXT,
    last_name TEXT,
    role TEXT,
    current_company TEXT,
    location TEXT,
    linkedin_bio TEXT,
    bio_summary TEXT,
    how_i_can_help TEXT,
    linked_contact_id TEXT,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS guest_saved_messages (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    guest_contact_id TEXT,
    version_name TEXT NOT NULL,
    message_text TEXT NOT NULL,
    medium TEXT,
    message_objective TEXT,
    message_additional_context TEXT,
    ai_reasoning TEXT,
    is_selected INTEGER DEFAULT 0,
    linked_message_version_id TEXT,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

-- ─── PERMANENT TABLES (keyed by authenticated user id) ───

CREATE TABLE IF NOT EXISTS user_profiles (
    profile_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    first_name TEXT,
    last_name TEXT,
    job_role TEXT,
    current_company TEXT,
    location TEXT,
    background_input TEXT,
    linkedin_content TEXT,
    cv_content TEXT,
    additional_details TEXT,
    linked_session_id TEXT,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS user_summaries (
    summary_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    experience TEXT,
    education TEXT,
    expertise TEXT,
    achievements TEXT,
    overall_blurb TEXT,
    combined_experience_highlights TEXT DEFAULT '[]',
    combined_education_highlights TEXT DEFAULT '[]',
    key_skills TEXT DEFAULT '[]',
    domain_expertise TEXT DEFAULT '[]',
    technical_expertise TEXT DEFAULT '[]',
    value_proposition_summary TEXT,
    generated_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS companies (
    company_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    industry TEXT,
    hq_location TEXT,
    website_url TEXT,
    public_private TEXT,
    estimated_revenue TEXT,
    estimated_headcount TEXT,
    wfh_policy TEXT,
    ai_description TEXT,
    ai_match_reasoning TEXT,
    match_quality_score INTEGER,
    user_priority TEXT,
    interaction_summary TEXT,
    user_notes TEXT,
    status TEXT DEFAULT 'active',
    is_blacklisted INTEGER DEFAULT 0,
    added_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS contacts (
    contact_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    company_id TEXT REFERENCES companies(company_id),
    first_name TEXT NOT NULL,
    last_name TEXT,
    role TEXT,
    location TEXT,
    email TEXT,
    linkedin_url TEXT,
    bio_summary TEXT,
    how_i_can_help TEXT,
    user_notes TEXT,
    status TEXT DEFAULT 'active',
    added_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS saved_message_versions (
    message_version_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    contact_id TEXT REFERENCES contacts(contact_id),
    company_id TEXT REFERENCES companies(company_id),
    version_name TEXT NOT NULL,
    message_text TEXT NOT NULL,
    medium TEXT,
    message_objective TEXT,
    message_additional_context TEXT,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS interactions (
    interaction_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    contact_id TEXT REFERENCES contacts(contact_id),
    company_id TEXT REFERENCES companies(company_id),
    interaction_type TEXT NOT NULL,
    description TEXT,
    medium TEXT,
    interaction_date TEXT,
    follow_up_due_date TEXT,
    follow_up_completed INTEGER DEFAULT 0,
    message_version_id TEXT REFERENCES saved_message_versions(message_version_id),
    created_at TEXT DEFAULT (datetime('now'))
);

-- ─── INDEXES ───

CREATE INDEX IF NOT EXISTS idx_guest_contacts_session ON guest_contacts(session_id);
CREATE INDEX IF NOT EXISTS idx_guest_messages_session ON guest_saved_messages(session_id, guest_contact_id);
CREATE INDEX IF NOT EXISTS idx_user_profiles_user ON user_profiles(user_id);
CREATE INDEX IF NOT EXISTS idx_user_summaries_user ON user_summaries(user_id);
CREATE INDEX IF NOT EXISTS idx_companies_user_name ON companies(user_id, name);
CREATE INDEX IF NOT EXISTS idx_contacts_user ON contacts(user_id, company_id);
CREATE INDEX IF NOT EXISTS idx_saved_messages_contact ON saved_message_versions(user_id, contact_id);
CREATE INDEX IF NOT EXISTS idx_interactions_company ON interactions(user_id, company_id);
"""

EXPECTED_TABLES = [
    "guest_user_profiles", "guest_user_summaries", "guest_contacts",
    "guest_saved_messages", "user_profiles", "user_summaries", "companies",
    "contacts", "saved_message_versions", "interactions",
]


def init_db(db_path=None, migrate=True):
    """Initialize the database with all tables and indexes, then apply migrations.

    Raises MigrationError if a pending migration fails.
    """
    path = db_path or DB_PATH
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA_SQL)
    conn.commit()

    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = [row[0] for row in cursor.fetchall()]
    conn.close()
    logger.info("Database initialized at %s (%d tables)", path, len(tables))

    if migrate:
        from opener.db.migration_runner import run_migrations
        run_migrations(path)
    return tables


def verify_db(db_path=None):
    """Verify the database schema is correct."""
    path = db_path or DB_PATH
    conn = sqlite3.connect(path)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    actual_tables = [row[0] for row in cursor.fetchall()]
    conn.close()

    missing = set(EXPECTED_TABLES) - set(actual_tables)
    if missing:
        print(f"FAIL: Missing tables: {missing}")
        return False

    print(f"PASS: All {len(EXPECTED_TABLES)} tables present")
    return True


if __name__ == "__main__":
    init_db()
    verify_db()
