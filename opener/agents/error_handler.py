"""
Workflow Error Handler - Captures and logs non-fatal workflow errors.

Instead of silently catching exceptions, edge functions call log_workflow_error()
to record what went wrong. Errors are stored in the workflow_errors table so a
partially transferred guest session can be investigated later.

Usage:
    from opener.agents.error_handler import log_workflow_error, safe_execute

    # Option 1: Manual logging
    try:
        create_summary()
    except Exception as e:
        log_workflow_error(phase="transfer_summary", error=e, session_id=sid)

    # Option 2: Safe execution wrapper
    ok = safe_execute(
        create_summary, args=(uid, data),
        phase="transfer_summary", session_id=sid,
        fallback=None,
    )
"""

import json
import logging
import traceback
from typing import Any, Callable

from opener.db.connection import get_db_conn

logger = logging.getLogger("opener.error_handler")


def log_workflow_error(
    phase: str,
    error: Exception = None,
    error_message: str = None,
    session_id: str = None,
    user_id: str = None,
    function_name: str = None,
    context: dict = None,
    severity: str = "warning",
):
    """Log a non-fatal workflow error to the database and logger. Never raises.

    Args:
        phase: Workflow phase (transfer_summary, transfer_contact, cleanup, ...)
        error: The exception object (optional if error_message provided)
        error_message: Human-readable error description
        session_id: Guest session involved
        user_id: Authenticated user involved
        function_name: Edge function that hit the error
        context: Additional context dict
        severity: "warning", "error", or "critical"
    """
    msg = error_message or (str(error) if error else "Unknown error")
    error_type = type(error).__name__ if error else "UnknownError"

    log_extra = {
        "phase": phase,
        "function_name": function_name or "",
        "session_id": session_id or "",
        "user_id": user_id or "",
    }

    if severity == "critical":
        logger.critical("Workflow error in %s: %s", phase, msg, extra=log_extra)
    elif severity == "error":
        logger.error("Workflow error in %s: %s", phase, msg, extra=log_extra)
    else:
        logger.warning("Workflow error in %s: %s", phase, msg, extra=log_extra)

    try:
        with get_db_conn() as conn:
            conn.execute("""
                INSERT INTO workflow_errors
                    (phase, session_id, user_id, function_name, error_type,
                     error_message, context, severity)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                phase, session_id, user_id, function_name,
                error_type, msg, json.dumps(context or {}, default=str), severity,
            ))
            conn.commit()
    except Exception as db_err:
        logger.error("Failed to log workflow error to DB: %s", db_err)


def safe_execute(
    fn: Callable,
    args: tuple = (),
    kwargs: dict = None,
    phase: str = "unknown",
    function_name: str = None,
    session_id: str = None,
    user_id: str = None,
    fallback: Any = None,
    severity: str = "warning",
    context: dict = None,
) -> Any:
    """Execute a function with automatic error capture.

    If the function raises, the error is logged (with `context` merged into the
    stored context) and the fallback value is returned.
    """
    kwargs = kwargs or {}
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        log_workflow_error(
            phase=phase,
            error=e,
            session_id=session_id,
            user_id=user_id,
            function_name=function_name,
            context={**(context or {}),
                     "function": getattr(fn, "__name__", repr(fn)),
                     "traceback": traceback.format_exc()[-500:]},
            severity=severity,
        )
        return fallback


def get_errors(session_id: str = None, severity: str = None,
               unresolved_only: bool = True) -> list:
    """Get workflow errors, optionally filtered. Returns list of error dicts."""
    query = "SELECT * FROM workflow_errors WHERE 1=1"
    params = []

    if session_id:
        query += " AND session_id=?"
        params.append(session_id)
    if severity:
        query += " AND severity=?"
        params.append(severity)
    if unresolved_only:
        query += " AND resolved=0"

    query += " ORDER BY id DESC"
    try:
        with get_db_conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [dict(r) for r in rows]
    except Exception as e:
        logger.error("Failed to read workflow errors: %s", e)
        return []

