"""
Guest Linker - Moves a guest session's data into a signed-in user's account.

Pipeline (run by link_guest_profile):
    1. resolve_guest_bundle   read-only fetch of the session's guest rows
    2. transfer_guest_bundle  profile (fatal) -> summary -> contacts -> message
    3. cleanup_guest_session  delete guest rows, collecting failures

Retry safety: the profile insert commits together with a linked_user_id marker
on the guest profile, and every later row is stamped with its permanent id once
written. A retry for the same user skips stamped rows; a different user gets a
LinkConflictError.
"""

import logging
from typing import Optional

from opener.agents.error_handler import log_workflow_error, safe_execute
from opener.db import models

logger = logging.getLogger("opener.agents.guest_linker")

FUNCTION_NAME = "link_guest_profile"

SUCCESS_MESSAGE = "Guest profile linked successfully"
NO_GUEST_MESSAGE = "No guest profile found to link"


class LinkConflictError(Exception):
    """The guest session was already claimed by another user."""
    pass


class ProfileTransferError(Exception):
    """Copying the guest profile into user_profiles failed."""
    pass


def empty_transfer() -> dict:
    return {"profile": False, "summary": False, "contacts": 0, "messages": 0}


def no_guest_response() -> dict:
    return {"success": True, "message": NO_GUEST_MESSAGE, "transferred": empty_transfer()}


# ─── STEP 1: RESOLVE ───────────────────────────────────────────

def resolve_guest_bundle(user_id: str, session_id: str) -> Optional[dict]:
    """Fetch everything a guest session owns. Returns None when no guest profile exists."""
    profile = models.get_guest_profile(session_id)
    if not profile:
        logger.info("No guest profile for session", extra={"session_id": session_id, "user_id": user_id})
        return None
    return {
        "profile": profile,
        "summary": models.get_guest_summary(session_id),
        "contacts": models.list_guest_contacts(session_id),
        "selected_message": models.get_selected_guest_message(session_id),
    }


# ─── STEP 2: TRANSFER ──────────────────────────────────────────

def _resolve_company(user_id: str, name: str, cache: dict) -> Optional[str]:
    """Exact-name lookup, else create. The cache keeps one id per name within a transfer."""
    if not name:
        return None
    if name in cache:
        return cache[name]
    company = models.find_company_by_name(user_id, name)
    if not company:
        company = models.create_company(user_id, {"name": name, "status": "active"})
    cache[name] = company["company_id"]
    return cache[name]


def _claim_profile(user_id: str, session_id: str, profile: dict) -> bool:
    owner = profile.get("linked_user_id")
    if owner and owner != user_id:
        raise LinkConflictError(f"Session {session_id} was already linked to another account")
    if owner == user_id:
        logger.info("Guest profile already claimed, resuming transfer",
                    extra={"session_id": session_id, "user_id": user_id})
        return True
    try:
        models.claim_guest_profile(session_id, user_id, profile)
    except Exception as e:
        log_workflow_error(phase="transfer_profile", error=e, session_id=session_id,
                           user_id=user_id, function_name=FUNCTION_NAME, severity="error")
        raise ProfileTransferError(str(e)) from e
    return True


def _copy_summary(user_id: str, session_id: str, summary: dict) -> bool:
    models.create_user_summary(user_id, summary)
    models.mark_guest_summary_linked(session_id)
    return True


def _transfer_summary(user_id: str, session_id: str, summary: Optional[dict]) -> bool:
    if not summary:
        return False
    if summary.get("linked_at"):
        return True
    return safe_execute(_copy_summary, args=(user_id, session_id, summary),
                        phase="transfer_summary", function_name=FUNCTION_NAME,
                        session_id=session_id, user_id=user_id, fallback=False)


def _copy_contact(user_id: str, gc: dict, company_cache: dict) -> tuple:
    """Returns (guest_contact_id, contact_id, company_id) for one guest contact."""
    if gc.get("linked_contact_id"):
        existing = models.get_contact(user_id, gc["linked_contact_id"])
        company_id = existing["company_id"] if existing else None
        return gc["id"], gc["linked_contact_id"], company_id

    company_id = _resolve_company(user_id, gc.get("current_company"), company_cache)
    contact = models.create_contact(user_id, {
        "company_id": company_id,
        "first_name": gc.get("first_name"),
        "last_name": gc.get("last_name"),
        "role": gc.get("role"),
        "location": gc.get("location"),
        "bio_summary": gc.get("bio_summary"),
        "how_i_can_help": gc.get("how_i_can_help"),
        "status": "active",
    })
    models.mark_guest_contact_linked(gc["id"], contact["contact_id"])
    return gc["id"], contact["contact_id"], company_id


def _transfer_contacts(user_id: str, session_id: str, guest_contacts: list) -> list:
    """Returns [(guest_contact_id, contact_id, company_id)] in fetch order."""
    transferred = []
    company_cache = {}
    for gc in guest_contacts:
        row = safe_execute(_copy_contact, args=(user_id, gc, company_cache),
                           phase="transfer_contact", function_name=FUNCTION_NAME,
                           session_id=session_id, user_id=user_id,
                           context={"guest_contact_id": gc.get("id")})
        if row:
            transferred.append(row)
    return transferred


def _copy_message(user_id: str, message: dict, contact_id: str, company_id: Optional[str]) -> int:
    saved = models.create_saved_message_version(user_id, {
        "contact_id": contact_id,
        "company_id": company_id,
        "version_name": message["version_name"],
        "message_text": message["message_text"],
        "medium": message.get("medium"),
        "message_objective": message.get("message_objective"),
        "message_additional_context": message.get("message_additional_context"),
    })
    models.mark_guest_message_linked(message["id"], saved["message_version_id"])
    return 1


def _transfer_message(user_id: str, session_id: str, message: Optional[dict],
                      transferred_contacts: list) -> int:
    if not message or not transferred_contacts:
        return 0
    if message.get("linked_message_version_id"):
        return 1

    # Attach to the contact the message was written for, else the first transferred one
    target = next((t for t in transferred_contacts if t[0] == message.get("guest_contact_id")),
                  transferred_contacts[0])
    _, contact_id, company_id = target
    return safe_execute(_copy_message, args=(user_id, message, contact_id, company_id),
                        phase="transfer_message", function_name=FUNCTION_NAME,
                        session_id=session_id, user_id=user_id, fallback=0,
                        context={"guest_message_id": message.get("id")})


def transfer_guest_bundle(user_id: str, session_id: str, bundle: dict) -> dict:
    """Copy a resolved guest bundle into the permanent tables.

    Raises:
        LinkConflictError: session already claimed by a different user.
        ProfileTransferError: the profile insert failed (nothing else is attempted).
    """
    transferred = empty_transfer()
    transferred["profile"] = _claim_profile(user_id, session_id, bundle["profile"])
    transferred["summary"] = _transfer_summary(user_id, session_id, bundle.get("summary"))

    contacts = _transfer_contacts(user_id, session_id, bundle.get("contacts") or [])
    transferred["contacts"] = len(contacts)
    transferred["messages"] = _transfer_message(
        user_id, session_id, bundle.get("selected_message"), contacts)

    logger.info("Transfer finished: %s", transferred,
                extra={"session_id": session_id, "user_id": user_id, "phase": "transfer"})
    return transferred


# ─── STEP 3: CLEANUP ───────────────────────────────────────────

def cleanup_guest_session(session_id: str, user_id: str = None) -> list:
    """Delete every guest row for the session. Returns error strings, never raises."""
    errors = []
    # Children first so nothing points at a deleted guest contact
    for table in models.GUEST_TABLES:
        try:
            models.delete_guest_rows(table, session_id)
        except Exception as e:
            errors.append(f"Failed to delete {table}: {e}")
            log_workflow_error(phase="cleanup", error=e, session_id=session_id,
                               user_id=user_id, function_name=FUNCTION_NAME,
                               context={"table": table})
    return errors


# ─── ENTRY POINT ───────────────────────────────────────────────

def link_guest_profile(user_id: str, session_id: str) -> dict:
    """Resolve, transfer and clean up a guest session for a user.

    Returns the response body for a successful or no-op link. Fatal failures
    propagate as exceptions (LinkConflictError, ProfileTransferError, or whatever
    the guest fetch raised).
    """
    bundle = resolve_guest_bundle(user_id, session_id)
    if bundle is None:
        return no_guest_response()

    transferred = transfer_guest_bundle(user_id, session_id, bundle)
    cleanup_errors = cleanup_guest_session(session_id, user_id)

    response = {"success": True, "message": SUCCESS_MESSAGE, "transferred": transferred}
    if cleanup_errors:
        response["cleanupErrors"] = cleanup_errors
    return response
