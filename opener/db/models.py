"""
Opener Studio - Data Access Layer
CRUD operations for the guest-session tables and the permanent user tables.
"""

import json
import sqlite3
from typing import Optional

from opener.db.connection import get_db, get_db_conn, gen_id, now_iso, _safe_update

SUMMARY_TEXT_FIELDS = (
    "experience", "education", "expertise", "achievements",
    "overall_blurb", "value_proposition_summary",
)
SUMMARY_LIST_FIELDS = (
    "combined_experience_highlights", "combined_education_highlights",
    "key_skills", "domain_expertise", "technical_expertise",
)
PROFILE_FIELDS = (
    "first_name", "last_name", "job_role", "current_company", "location",
    "background_input", "linkedin_content", "cv_content", "additional_details",
)

COMPANY_FIELDS = {
    "name", "industry", "hq_location", "website_url", "public_private",
    "estimated_revenue", "estimated_headcount", "wfh_policy", "ai_description",
    "ai_match_reasoning", "match_quality_score", "user_priority",
    "interaction_summary", "user_notes", "status", "is_blacklisted", "updated_at",
}
CONTACT_FIELDS = {
    "company_id", "first_name", "last_name", "role", "location", "email",
    "linkedin_url", "bio_summary", "how_i_can_help", "user_notes", "status",
    "updated_at",
}


def _encode_summary(data: dict) -> dict:
    out = {k: data.get(k) for k in SUMMARY_TEXT_FIELDS}
    for k in SUMMARY_LIST_FIELDS:
        value = data.get(k)
        out[k] = json.dumps(value if value is not None else [])
    return out


def _decode_summary(row) -> Optional[dict]:
    if not row:
        return None
    d = dict(row)
    for k in SUMMARY_LIST_FIELDS:
        try:
            d[k] = json.loads(d[k]) if d.get(k) else []
        except (TypeError, ValueError):
            d[k] = []
    return d


def _rows(rows) -> list:
    return [dict(r) for r in rows]


# ─── GUEST PROFILES ─────────────────────────────────────────────

def get_guest_profile(session_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM guest_user_profiles WHERE session_id=?", (session_id,)
        ).fetchone()
        return dict(row) if row else None


def upsert_guest_profile(session_id: str, data: dict) -> dict:
    """Insert or replace the guest profile, keeping an earlier background_input."""
    now = now_iso()
    existing = get_guest_profile(session_id)
    values = {k: data.get(k) for k in PROFILE_FIELDS}
    if existing and existing.get("background_input"):
        values["background_input"] = existing["background_input"]

    with get_db_conn() as conn:
        if existing:
            fields = ", ".join(f"{k}=?" for k in values)
            conn.execute(
                f"UPDATE guest_user_profiles SET {fields}, updated_at=? WHERE session_id=?",
                list(values.values()) + [now, session_id],
            )
        else:
            cols = ", ".join(values)
            marks = ",".join("?" for _ in values)
            conn.execute(
                f"INSERT INTO guest_user_profiles (session_id, {cols}, created_at, updated_at) "
                f"VALUES (?,{marks},?,?)",
                [session_id] + list(values.values()) + [now, now],
            )
        conn.commit()
        row = conn.execute(
            "SELECT * FROM guest_user_profiles WHERE session_id=?", (session_id,)
        ).fetchone()
        return dict(row)


# ─── GUEST SUMMARIES ────────────────────────────────────────────

def get_guest_summary(session_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM guest_user_summaries WHERE session_id=?", (session_id,)
        ).fetchone()
        return _decode_summary(row)


def upsert_guest_summary(session_id: str, data: dict) -> dict:
    now = now_iso()
    values = _encode_summary(data)
    cols = ", ".join(values)
    marks = ",".join("?" for _ in values)
    updates = ", ".join(f"{k}=excluded.{k}" for k in values)
    with get_db_conn() as conn:
        conn.execute(
            f"INSERT INTO guest_user_summaries (session_id, {cols}, generated_at, updated_at) "
            f"VALUES (?,{marks},?,?) "
            f"ON CONFLICT(session_id) DO UPDATE SET {updates}, updated_at=excluded.updated_at",
            [session_id] + list(values.values()) + [now, now],
        )
        conn.commit()
    return get_guest_summary(session_id)


def mark_guest_summary_linked(session_id: str):
    with get_db_conn() as conn:
        conn.execute(
            "UPDATE guest_user_summaries SET linked_at=? WHERE session_id=?",
            (now_iso(), session_id),
        )
        conn.commit()


# ─── GUEST CONTACTS ─────────────────────────────────────────────

def create_guest_contact(session_id: str, data: dict) -> dict:
    gid = data.get("id", gen_id("gcon"))
    with get_db_conn() as conn:
        conn.execute("""
            INSERT INTO guest_contacts (id, session_id, first_name, last_name, role,
                current_company, location, linkedin_bio, bio_summary, how_i_can_help,
                created_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?)
        """, (
            gid, session_id, data.get("first_name"), data.get("last_name"),
            data.get("role"), data.get("current_company"), data.get("location"),
            data.get("linkedin_bio"), data.get("bio_summary"),
            data.get("how_i_can_help"), now_iso(),
        ))
        conn.commit()
        row = conn.execute("SELECT * FROM guest_contacts WHERE id=?", (gid,)).fetchone()
        return dict(row)


def get_guest_contact(guest_contact_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM guest_contacts WHERE id=?", (guest_contact_id,)
        ).fetchone()
        return dict(row) if row else None


def list_guest_contacts(session_id: str) -> list:
    """Guest contacts for a session in insertion order."""
    with get_db_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM guest_contacts WHERE session_id=? ORDER BY rowid",
            (session_id,),
        ).fetchall()
        return _rows(rows)


def mark_guest_contact_linked(guest_contact_id: str, contact_id: str):
    with get_db_conn() as conn:
        conn.execute(
            "UPDATE guest_contacts SET linked_contact_id=? WHERE id=?",
            (contact_id, guest_contact_id),
        )
        conn.commit()


# ─── GUEST MESSAGES ─────────────────────────────────────────────

def create_guest_message(data: dict) -> dict:
    mid = data.get("id", gen_id("gmsg"))
    now = now_iso()
    with get_db_conn() as conn:
        conn.execute("""
            INSERT INTO guest_saved_messages (id, session_id, guest_contact_id, version_name,
                message_text, medium, message_objective, message_additional_context,
                ai_reasoning, is_selected, created_at, updated_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
        """, (
            mid, data["session_id"], data.get("guest_contact_id"), data["version_name"],
            data["message_text"], data.get("medium"), data.get("message_objective"),
            data.get("message_additional_context"), data.get("ai_reasoning"),
            1 if data.get("is_selected") else 0, now, now,
        ))
        conn.commit()
        row = conn.execute("SELECT * FROM guest_saved_messages WHERE id=?", (mid,)).fetchone()
        return dict(row)


def list_guest_messages(session_id: str, guest_contact_id: str = None) -> list:
    query = "SELECT * FROM guest_saved_messages WHERE session_id=?"
    params = [session_id]
    if guest_contact_id:
        query += " AND guest_contact_id=?"
        params.append(guest_contact_id)
    query += " ORDER BY rowid"
    with get_db_conn() as conn:
        return _rows(conn.execute(query, params).fetchall())


def select_guest_message(session_id: str, guest_contact_id: str, version_name: str) -> int:
    """Exclusively select one version for a (session, guest contact) pair.

    Clears every selection for the pair first, then sets the requested version.
    Returns the number of rows now selected.
    """
    now = now_iso()
    with get_db_conn() as conn:
        conn.execute(
            "UPDATE guest_saved_messages SET is_selected=0, updated_at=? "
            "WHERE session_id=? AND guest_contact_id=?",
            (now, session_id, guest_contact_id),
        )
        cur = conn.execute(
            "UPDATE guest_saved_messages SET is_selected=1, updated_at=? "
            "WHERE session_id=? AND guest_contact_id=? AND version_name=?",
            (now, session_id, guest_contact_id, version_name),
        )
        conn.commit()
        return cur.rowcount


def select_latest_guest_message_version(session_id: str, version_name: str,
                                        guest_contact_id: str = None) -> Optional[dict]:
    """Unselect every message of the session, then select the newest row of a version.

    Returns the selected row, or None when no message of that version exists
    (in which case nothing is changed).
    """
    query = ("SELECT id FROM guest_saved_messages WHERE session_id=? AND version_name=?")
    params = [session_id, version_name]
    if guest_contact_id:
        query += " AND guest_contact_id=?"
        params.append(guest_contact_id)
    query += " ORDER BY created_at DESC, rowid DESC LIMIT 1"

    now = now_iso()
    with get_db_conn() as conn:
        latest = conn.execute(query, params).fetchone()
        if not latest:
            return None
        conn.execute(
            "UPDATE guest_saved_messages SET is_selected=0, updated_at=? WHERE session_id=?",
            (now, session_id),
        )
        conn.execute(
            "UPDATE guest_saved_messages SET is_selected=1, updated_at=? WHERE id=?",
            (now, latest["id"]),
        )
        conn.commit()
        row = conn.execute(
            "SELECT * FROM guest_saved_messages WHERE id=?", (latest["id"],)
        ).fetchone()
        return dict(row)


def get_selected_guest_message(session_id: str) -> Optional[dict]:
    """The selected message of a session (most recently selected if several contacts have one)."""
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM guest_saved_messages WHERE session_id=? AND is_selected=1 "
            "ORDER BY updated_at DESC, rowid DESC LIMIT 1",
            (session_id,),
        ).fetchone()
        return dict(row) if row else None


def mark_guest_message_linked(guest_message_id: str, message_version_id: str):
    with get_db_conn() as conn:
        conn.execute(
            "UPDATE guest_saved_messages SET linked_message_version_id=? WHERE id=?",
            (message_version_id, guest_message_id),
        )
        conn.commit()


GUEST_TABLES = ("guest_saved_messages", "guest_contacts",
                "guest_user_summaries", "guest_user_profiles")


def delete_guest_rows(table: str, session_id: str) -> int:
    if table not in GUEST_TABLES:
        raise ValueError(f"Not a guest table: {table}")
    with get_db_conn() as conn:
        cur = conn.execute(f"DELETE FROM {table} WHERE session_id=?", (session_id,))
        conn.commit()
        return cur.rowcount


def count_guest_rows(session_id: str) -> dict:
    with get_db_conn() as conn:
        return {
            t: conn.execute(f"SELECT COUNT(*) FROM {t} WHERE session_id=?", (session_id,)).fetchone()[0]
            for t in GUEST_TABLES
        }


# ─── USER PROFILES ──────────────────────────────────────────────

def _insert_user_profile(conn, user_id: str, data: dict, linked_session_id: str = None) -> str:
    pid = gen_id("prof")
    now = now_iso()
    values = [data.get(k) for k in PROFILE_FIELDS]
    cols = ", ".join(PROFILE_FIELDS)
    marks = ",".join("?" for _ in PROFILE_FIELDS)
    conn.execute(
        f"INSERT INTO user_profiles (profile_id, user_id, {cols}, linked_session_id, created_at, updated_at) "
        f"VALUES (?,?,{marks},?,?,?)",
        [pid, user_id] + values + [linked_session_id, now, now],
    )
    return pid


def claim_guest_profile(session_id: str, user_id: str, guest_profile: dict) -> dict:
    """Copy a guest profile into user_profiles and stamp the guest row as linked.

    Both writes commit together so a retry can tell the profile was already claimed.
    """
    conn = get_db()
    try:
        pid = _insert_user_profile(conn, user_id, guest_profile, linked_session_id=session_id)
        cur = conn.execute(
            "UPDATE guest_user_profiles SET linked_user_id=?, linked_at=? "
            "WHERE session_id=? AND linked_user_id IS NULL",
            (user_id, now_iso(), session_id),
        )
        if cur.rowcount == 0:
            raise sqlite3.IntegrityError(f"Guest session {session_id} was claimed concurrently")
        conn.commit()
        row = conn.execute("SELECT * FROM user_profiles WHERE profile_id=?", (pid,)).fetchone()
        return dict(row)
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def get_user_profile(user_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM user_profiles WHERE user_id=? ORDER BY created_at LIMIT 1", (user_id,)
        ).fetchone()
        return dict(row) if row else None


def upsert_user_profile(user_id: str, data: dict) -> dict:
    existing = get_user_profile(user_id)
    if not existing:
        with get_db_conn() as conn:
            pid = _insert_user_profile(conn, user_id, data)
            conn.commit()
            row = conn.execute("SELECT * FROM user_profiles WHERE profile_id=?", (pid,)).fetchone()
            return dict(row)
    update = {k: v for k, v in data.items() if k in PROFILE_FIELDS and v is not None}
    update["updated_at"] = now_iso()
    return _safe_update("user_profiles", existing["profile_id"], update,
                        set(PROFILE_FIELDS) | {"updated_at"}, id_column="profile_id")


# ─── USER SUMMARIES ─────────────────────────────────────────────

def get_user_summary(user_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM user_summaries WHERE user_id=? ORDER BY generated_at DESC LIMIT 1",
            (user_id,),
        ).fetchone()
        return _decode_summary(row)


def create_user_summary(user_id: str, data: dict) -> dict:
    sid = gen_id("sum")
    now = now_iso()
    values = _encode_summary(data)
    cols = ", ".join(values)
    marks = ",".join("?" for _ in values)
    with get_db_conn() as conn:
        conn.execute(
            f"INSERT INTO user_summaries (summary_id, user_id, {cols}, generated_at, updated_at) "
            f"VALUES (?,?,{marks},?,?)",
            [sid, user_id] + list(values.values()) + [now, now],
        )
        conn.commit()
        row = conn.execute("SELECT * FROM user_summaries WHERE summary_id=?", (sid,)).fetchone()
        return _decode_summary(row)


def upsert_user_summary(user_id: str, data: dict) -> dict:
    existing = get_user_summary(user_id)
    if not existing:
        return create_user_summary(user_id, data)
    values = _encode_summary(data)
    fields = ", ".join(f"{k}=?" for k in values)
    with get_db_conn() as conn:
        conn.execute(
            f"UPDATE user_summaries SET {fields}, updated_at=? WHERE summary_id=?",
            list(values.values()) + [now_iso(), existing["summary_id"]],
        )
        conn.commit()
    return get_user_summary(user_id)


# ─── COMPANIES ──────────────────────────────────────────────────

def create_company(user_id: str, data: dict) -> dict:
    cid = data.get("company_id", gen_id("comp"))
    now = now_iso()
    with get_db_conn() as conn:
        conn.execute("""
            INSERT INTO companies (company_id, user_id, name, industry, hq_location, website_url,
                public_private, estimated_revenue, estimated_headcount, wfh_policy,
                ai_description, ai_match_reasoning, match_quality_score, user_priority,
                user_notes, status, is_blacklisted, added_at, updated_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
        """, (
            cid, user_id, data["name"], data.get("industry"), data.get("hq_location"),
            data.get("website_url"), data.get("public_private"),
            data.get("estimated_revenue"), data.get("estimated_headcount"),
            data.get("wfh_policy"), data.get("ai_description"),
            data.get("ai_match_reasoning"), data.get("match_quality_score"),
            data.get("user_priority"), data.get("user_notes"),
            data.get("status", "active"), 1 if data.get("is_blacklisted") else 0,
            now, now,
        ))
        conn.commit()
        row = conn.execute("SELECT * FROM companies WHERE company_id=?", (cid,)).fetchone()
        return dict(row)


def get_company(user_id: str, company_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM companies WHERE company_id=? AND user_id=?", (company_id, user_id)
        ).fetchone()
        return dict(row) if row else None


def find_company_by_name(user_id: str, name: str, case_sensitive: bool = True) -> Optional[dict]:
    """Oldest company of a user with the given name (exact as stored, or ignoring case)."""
    clause = "name=?" if case_sensitive else "lower(name)=lower(?)"
    with get_db_conn() as conn:
        row = conn.execute(
            f"SELECT * FROM companies WHERE user_id=? AND {clause} ORDER BY rowid LIMIT 1",
            (user_id, name),
        ).fetchone()
        return dict(row) if row else None


def list_companies(user_id: str, include_blacklisted: bool = False,
                   status: str = "active", limit: int = 200, offset: int = 0) -> list:
    query = "SELECT * FROM companies WHERE user_id=?"
    params = [user_id]
    if status:
        query += " AND status=?"
        params.append(status)
    if not include_blacklisted:
        query += " AND (is_blacklisted IS NULL OR is_blacklisted=0)"
    query += " ORDER BY updated_at DESC LIMIT ? OFFSET ?"
    params.extend([limit, offset])
    with get_db_conn() as conn:
        return _rows(conn.execute(query, params).fetchall())


def update_company(user_id: str, company_id: str, data: dict) -> Optional[dict]:
    if not get_company(user_id, company_id):
        return None
    data = dict(data, updated_at=now_iso())
    return _safe_update("companies", company_id, data, COMPANY_FIELDS, id_column="company_id")


def blacklist_companies(user_id: str, company_ids: list) -> list:
    """Flag companies as blacklisted. Returns the ids that were updated."""
    if not company_ids:
        return []
    marks = ",".join("?" for _ in company_ids)
    with get_db_conn() as conn:
        rows = conn.execute(
            f"SELECT company_id FROM companies WHERE user_id=? AND company_id IN ({marks})",
            [user_id] + list(company_ids),
        ).fetchall()
        found = [r["company_id"] for r in rows]
        if found:
            found_marks = ",".join("?" for _ in found)
            conn.execute(
                f"UPDATE companies SET is_blacklisted=1, updated_at=? WHERE company_id IN ({found_marks})",
                [now_iso()] + found,
            )
            conn.commit()
        return found


# ─── CONTACTS ───────────────────────────────────────────────────

def create_contact(user_id: str, data: dict) -> dict:
    cid = data.get("contact_id", gen_id("con"))
    now = now_iso()
    with get_db_conn() as conn:
        conn.execute("""
            INSERT INTO contacts (contact_id, user_id, company_id, first_name, last_name, role,
                location, email, linkedin_url, bio_summary, how_i_can_help, user_notes,
                status, added_at, updated_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
        """, (
            cid, user_id, data.get("company_id"), data.get("first_name"),
            data.get("last_name"), data.get("role"), data.get("location"),
            data.get("email"), data.get("linkedin_url"), data.get("bio_summary"),
            data.get("how_i_can_help"), data.get("user_notes"),
            data.get("status", "active"), now, now,
        ))
        conn.commit()
        row = conn.execute("SELECT * FROM contacts WHERE contact_id=?", (cid,)).fetchone()
        return dict(row)


def get_contact(user_id: str, contact_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute("""
            SELECT c.*, co.name as company_name, co.industry as company_industry
            FROM contacts c
            LEFT JOIN companies co ON c.company_id = co.company_id
            WHERE c.contact_id=? AND c.user_id=?
        """, (contact_id, user_id)).fetchone()
        return dict(row) if row else None


def list_contacts(user_id: str, company_id: str = None, status: str = "active",
                  limit: int = 200, offset: int = 0) -> list:
    query = """
        SELECT c.*, co.name as company_name
        FROM contacts c
        LEFT JOIN companies co ON c.company_id = co.company_id
        WHERE c.user_id=?
    """
    params = [user_id]
    if status:
        query += " AND c.status=?"
        params.append(status)
    if company_id:
        query += " AND c.company_id=?"
        params.append(company_id)
    query += " ORDER BY c.updated_at DESC LIMIT ? OFFSET ?"
    params.extend([limit, offset])
    with get_db_conn() as conn:
        return _rows(conn.execute(query, params).fetchall())


def update_contact(user_id: str, contact_id: str, data: dict) -> Optional[dict]:
    if not get_contact(user_id, contact_id):
        return None
    data = dict(data, updated_at=now_iso())
    return _safe_update("contacts", contact_id, data, CONTACT_FIELDS, id_column="contact_id")


# ─── SAVED MESSAGE VERSIONS ─────────────────────────────────────

def create_saved_message_version(user_id: str, data: dict) -> dict:
    mid = data.get("message_version_id", gen_id("msgv"))
    now = now_iso()
    with get_db_conn() as conn:
        conn.execute("""
            INSERT INTO saved_message_versions (message_version_id, user_id, contact_id,
                company_id, version_name, message_text, medium, message_objective,
                message_additional_context, created_at, updated_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?)
        """, (
            mid, user_id, data.get("contact_id"), data.get("company_id"),
            data.get("version_name"), data.get("message_text"), data.get("medium"),
            data.get("message_objective"), data.get("message_additional_context"),
            now, now,
        ))
        conn.commit()
        row = conn.execute(
            "SELECT * FROM saved_message_versions WHERE message_version_id=?", (mid,)
        ).fetchone()
        return dict(row)


def list_saved_message_versions(user_id: str, contact_id: str = None, limit: int = 100) -> list:
    query = "SELECT * FROM saved_message_versions WHERE user_id=?"
    params = [user_id]
    if contact_id:
        query += " AND contact_id=?"
        params.append(contact_id)
    query += " ORDER BY created_at DESC LIMIT ?"
    params.append(limit)
    with get_db_conn() as conn:
        return _rows(conn.execute(query, params).fetchall())


def delete_saved_message_version(user_id: str, message_version_id: str) -> bool:
    with get_db_conn() as conn:
        cur = conn.execute(
            "DELETE FROM saved_message_versions WHERE message_version_id=? AND user_id=?",
            (message_version_id, user_id),
        )
        conn.commit()
        return cur.rowcount > 0


# ─── INTERACTIONS ───────────────────────────────────────────────

def create_interaction(user_id: str, data: dict) -> dict:
    iid = gen_id("int")
    with get_db_conn() as conn:
        conn.execute("""
            INSERT INTO interactions (interaction_id, user_id, contact_id, company_id,
                interaction_type, description, medium, interaction_date,
                follow_up_due_date, follow_up_completed, message_version_id, created_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
        """, (
            iid, user_id, data.get("contact_id"), data.get("company_id"),
            data["interaction_type"], data.get("description"), data.get("medium"),
            data.get("interaction_date") or now_iso(), data.get("follow_up_due_date"),
            1 if data.get("follow_up_completed") else 0,
            data.get("message_version_id"), now_iso(),
        ))
        conn.commit()
        row = conn.execute("SELECT * FROM interactions WHERE interaction_id=?", (iid,)).fetchone()
        return dict(row)


def list_interactions(user_id: str, contact_id: str = None, company_id: str = None,
                      limit: int = 100) -> list:
    """Newest first, with the contact's name and role when one is attached."""
    query = """
        SELECT i.*, c.first_name as contact_first_name, c.last_name as contact_last_name,
               c.role as contact_role
        FROM interactions i
        LEFT JOIN contacts c ON i.contact_id = c.contact_id
        WHERE i.user_id=?
    """
    params = [user_id]
    if contact_id:
        query += " AND i.contact_id=?"
        params.append(contact_id)
    if company_id:
        query += " AND i.company_id=?"
        params.append(company_id)
    query += " ORDER BY i.interaction_date DESC LIMIT ?"
    params.append(limit)
    with get_db_conn() as conn:
        return _rows(conn.execute(query, params).fetchall())


EMPTY_LATEST_UPDATE = {"interaction_id": None, "description": None,
                       "interaction_date": None, "interaction_type": None}
EMPTY_NEXT_FOLLOWUP = {"interaction_id": None, "description": None,
                       "follow_up_due_date": None, "interaction_type": None}


def get_companies_overview(user_id: str) -> list:
    """Every non-blacklisted company with its contacts, latest interaction and next follow-up."""
    companies = list_companies(user_id, status=None, limit=1000)
    now = now_iso()
    with get_db_conn() as conn:
        for company in companies:
            cid = company["company_id"]
            company["contacts"] = _rows(conn.execute(
                "SELECT contact_id, first_name, last_name, role FROM contacts "
                "WHERE company_id=? AND user_id=? ORDER BY rowid",
                (cid, user_id),
            ).fetchall())
            latest = conn.execute(
                "SELECT interaction_id, description, interaction_date, interaction_type "
                "FROM interactions WHERE company_id=? AND user_id=? "
                "ORDER BY interaction_date DESC LIMIT 1",
                (cid, user_id),
            ).fetchone()
            upcoming = conn.execute(
                "SELECT interaction_id, description, follow_up_due_date, interaction_type "
                "FROM interactions WHERE company_id=? AND user_id=? "
                "AND follow_up_due_date IS NOT NULL AND follow_up_due_date >= ? "
                "ORDER BY follow_up_due_date LIMIT 1",
                (cid, user_id, now),
            ).fetchone()
            company["latest_update"] = dict(latest) if latest else dict(EMPTY_LATEST_UPDATE)
            company["next_followup"] = dict(upcoming) if upcoming else dict(EMPTY_NEXT_FOLLOWUP)
    return companies


def delete_interactions_for_companies(user_id: str, company_ids: list) -> int:
    if not company_ids:
        return 0
    marks = ",".join("?" for _ in company_ids)
    with get_db_conn() as conn:
        cur = conn.execute(
            f"DELETE FROM interactions WHERE user_id=? AND company_id IN ({marks})",
            [user_id] + list(company_ids),
        )
        conn.commit()
        return cur.rowcount


# ─── HEALTH ─────────────────────────────────────────────────────

def get_table_counts() -> dict:
    tables = ("guest_user_profiles", "guest_contacts", "guest_saved_messages",
              "user_profiles", "companies", "contacts", "saved_message_versions",
              "interactions")
    with get_db_conn() as conn:
        return {t: conn.execute(f"SELECT COUNT(*) FROM {t}").fetchone()[0] for t in tables}
