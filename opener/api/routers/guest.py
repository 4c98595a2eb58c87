"""Guest-mode edge functions: profile, contacts, messages, selection, and account linking."""

import logging

from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional

from opener import config
from opener.agents import guest_linker, message_generator, profile_builder
from opener.agents.contact_parser import ContactParseError, parse_contact_bio
from opener.agents.llm_gateway import GeminiError
from opener.api.errors import AppError, bad_request
from opener.api.rate_limit import enforce_rate_limit, identifier_for
from opener.db import models
from opener.logging_config import get_function_logger

router = APIRouter(tags=["guest"])


class LinkGuestProfileRequest(BaseModel):
    userId: Optional[str] = None
    sessionId: Optional[str] = None


class GuestProfileRequest(BaseModel):
    sessionId: Optional[str] = None
    backgroundInput: Optional[str] = None
    linkedinContent: Optional[str] = None
    cvContent: Optional[str] = None
    additionalDetails: Optional[str] = None


class GuestContactRequest(BaseModel):
    sessionId: Optional[str] = None
    linkedin_bio: Optional[str] = None


class GuestMessagesRequest(BaseModel):
    sessionId: Optional[str] = None
    guestContactId: Optional[str] = None
    medium: Optional[str] = None
    objective: Optional[str] = None
    additional_context: Optional[str] = None


class GuestSelectionRequest(BaseModel):
    sessionId: Optional[str] = None
    guestContactId: Optional[str] = None
    selectedVersion: Optional[str] = None


class UpdateGuestSelectionRequest(BaseModel):
    sessionId: Optional[str] = None
    selectedMessage: Optional[str] = None
    selectedVersion: Optional[str] = None
    guestContactId: Optional[str] = None


def check_background_length(*texts):
    for text in texts:
        if text and len(text) > config.BACKGROUND_MAX_CHARS:
            raise bad_request(f"Background content exceeds {config.BACKGROUND_MAX_CHARS} characters")


def check_message_inputs(objective: str, additional_context: str):
    if len(objective) > config.OBJECTIVE_MAX_CHARS:
        raise bad_request(f"Objective exceeds {config.OBJECTIVE_MAX_CHARS} characters")
    if additional_context and len(additional_context) > config.ADDITIONAL_CONTEXT_MAX_CHARS:
        raise bad_request(f"Additional context exceeds {config.ADDITIONAL_CONTEXT_MAX_CHARS} characters")


# ─── LINKING ──────────────────────────────────────────────────

@router.post("/link_guest_profile")
def link_guest_profile(req: LinkGuestProfileRequest):
    logger = get_function_logger("link_guest_profile")
    if not req.userId or not req.sessionId:
        raise bad_request("Missing required fields: sessionId and userId are required")
    enforce_rate_limit("link_guest_profile", identifier_for(user_id=req.userId))

    extra = {"session_id": req.sessionId, "user_id": req.userId}
    logger.info("Linking guest session", extra=extra)
    try:
        result = guest_linker.link_guest_profile(req.userId, req.sessionId)
    except guest_linker.LinkConflictError as e:
        logger.warning("Link conflict: %s", e, extra=extra)
        raise AppError(409, "Guest session already linked", str(e))
    except Exception as e:
        logger.error("Failed to link guest profile: %s", e, extra=extra)
        raise AppError(500, "Failed to link guest profile", str(e))

    logger.info("Link complete: %s", result["transferred"], extra=extra)
    return result


# ─── PROFILE ──────────────────────────────────────────────────

@router.post("/generate_guest_profile")
def generate_guest_profile(req: GuestProfileRequest):
    logger = get_function_logger("generate_guest_profile")
    if not req.sessionId:
        raise bad_request("Missing required field: sessionId")
    if not any([req.backgroundInput, req.linkedinContent, req.cvContent, req.additionalDetails]):
        raise bad_request("No background content provided")
    check_background_length(req.backgroundInput, req.linkedinContent, req.cvContent,
                            req.additionalDetails)
    enforce_rate_limit("generate_guest_profile", identifier_for(session_id=req.sessionId))

    try:
        return profile_builder.generate_guest_profile(
            req.sessionId,
            background_input=req.backgroundInput,
            linkedin_content=req.linkedinContent,
            cv_content=req.cvContent,
            additional_details=req.additionalDetails,
        )
    except (GeminiError, profile_builder.ProfileGenerationError) as e:
        logger.error("Guest profile generation failed: %s", e, extra={"session_id": req.sessionId})
        raise AppError(500, "Failed to generate profile summary", str(e))


# ─── CONTACTS ─────────────────────────────────────────────────

@router.post("/add_guest_contact_by_bio")
def add_guest_contact_by_bio(req: GuestContactRequest):
    logger = get_function_logger("add_guest_contact_by_bio")
    if not req.sessionId or not req.linkedin_bio:
        raise bad_request("Missing required fields: sessionId and linkedin_bio are required")
    check_background_length(req.linkedin_bio)
    enforce_rate_limit("add_contact_by_bio", identifier_for(session_id=req.sessionId))

    try:
        parsed = parse_contact_bio(req.linkedin_bio, models.get_guest_summary(req.sessionId))
    except (GeminiError, ContactParseError) as e:
        logger.error("Bio parsing failed: %s", e, extra={"session_id": req.sessionId})
        raise AppError(500, "Failed to process LinkedIn bio content.", str(e))

    contact = models.create_guest_contact(req.sessionId, dict(parsed, linkedin_bio=req.linkedin_bio))
    return {"status": "success", "contact": contact}


@router.get("/guest_contacts/{session_id}")
def list_guest_contacts(session_id: str):
    return models.list_guest_contacts(session_id)


# ─── MESSAGES ─────────────────────────────────────────────────

@router.post("/generate_guest_messages")
def generate_guest_messages(req: GuestMessagesRequest):
    logger = get_function_logger("generate_guest_messages")
    if not req.sessionId or not req.guestContactId or not req.medium or not req.objective:
        raise bad_request("Missing required fields: sessionId, guestContactId, medium and objective are required")
    check_message_inputs(req.objective, req.additional_context)
    enforce_rate_limit("generate_message", identifier_for(session_id=req.sessionId))

    try:
        result = message_generator.generate_guest_messages(
            req.sessionId, req.guestContactId, req.medium, req.objective, req.additional_context)
    except LookupError as e:
        raise AppError(404, "Guest contact not found", str(e))
    logger.info("Generated %d guest messages", len(result["messages"]),
                extra={"session_id": req.sessionId})
    return {"status": "success", **result}


@router.post("/guest_message_selection")
def guest_message_selection(req: GuestSelectionRequest):
    if not req.sessionId or not req.guestContactId or not req.selectedVersion:
        raise bad_request("Missing required fields: sessionId, guestContactId, or selectedVersion")
    enforce_rate_limit("guest_message_selection", identifier_for(session_id=req.sessionId))

    selected = models.select_guest_message(req.sessionId, req.guestContactId, req.selectedVersion)
    get_function_logger("guest_message_selection").info(
        "Selected %s (%d rows)", req.selectedVersion, selected, extra={"session_id": req.sessionId})
    return {"success": True}


@router.post("/update_guest_message_selection")
def update_guest_message_selection(req: UpdateGuestSelectionRequest):
    if not req.sessionId or not req.selectedMessage or not req.selectedVersion:
        raise bad_request("Missing required fields: sessionId, selectedMessage, selectedVersion")
    enforce_rate_limit("guest_message_selection", identifier_for(session_id=req.sessionId))

    row = models.select_latest_guest_message_version(
        req.sessionId, req.selectedVersion, req.guestContactId)
    if not row:
        raise AppError(404, "Failed to find latest message",
                       f"No message with version '{req.selectedVersion}' for this session")
    return {"success": True, "message": "Message selection updated successfully", "selected": row}


@router.get("/guest_messages/{session_id}")
def list_guest_messages(session_id: str, guest_contact_id: str = None):
    return models.list_guest_messages(session_id, guest_contact_id)
