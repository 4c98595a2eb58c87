"""
Interaction Overview - Short note-style status lines for a company or a contact.

The interaction log is split into past activity (drafts, completed follow-ups,
overdue follow-ups) and planned follow-ups, then Gemini turns it into one or
two terse phrases such as "Awaiting response from initial contact".

Company overviews are written back to companies.interaction_summary.
"""

import logging
from datetime import datetime, timezone

from opener.agents.llm_gateway import get_gateway
from opener.db import models

logger = logging.getLogger("opener.agents.interaction_overview")

NO_COMPANY_INTERACTIONS = "No interactions yet with this company."
NO_CONTACT_INTERACTIONS = "No interactions yet with this contact."
FALLBACK_OVERVIEW = "Unable to generate overview."


def parse_timestamp(value):
    """ISO date or datetime string -> aware datetime (UTC assumed). None if unparseable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def split_interactions(interactions: list, now: datetime = None) -> tuple:
    """Returns (past, planned).

    past: drafts, completed follow-ups, and follow-ups already due.
    planned: open follow-ups due now or later (never drafts).
    """
    now = now or datetime.now(timezone.utc)
    past, planned = [], []
    for i in interactions:
        due = parse_timestamp(i.get("follow_up_due_date"))
        is_draft = i.get("interaction_type") == "message_draft"
        completed = bool(i.get("follow_up_completed"))
        if is_draft or completed or (due and due < now):
            past.append(i)
        elif due and due >= now:
            planned.append(i)
    return past, planned


def _day(value) -> str:
    parsed = parse_timestamp(value)
    return parsed.strftime("%Y-%m-%d") if parsed else "undated"


def _with_contact(i: dict) -> str:
    if not i.get("contact_first_name"):
        return ""
    name = f"{i['contact_first_name']} {i.get('contact_last_name') or ''}".strip()
    role = f", {i['contact_role']}" if i.get("contact_role") else ""
    return f" (with {name}{role})"


def _lines(items: list, date_key: str, show_contact: bool) -> str:
    return "\n".join(
        f"- {_day(i.get(date_key))}: {i.get('interaction_type')} - {i.get('description') or ''}"
        f"{_with_contact(i) if show_contact else ''}"
        for i in items
    )


def build_prompt(subject: str, header: str, past: list, planned: list,
                 examples: tuple, show_contact: bool) -> str:
    example_lines = "\n".join(f'- "{e}"' for e in examples)
    return f"""Summarize interaction history with {subject} in brief, note-like style. Use incomplete sentences and be very concise (1-2 short phrases max):

{header}

Past Interactions ({len(past)}):
{_lines(past, "interaction_date", show_contact)}

Planned Follow-ups ({len(planned)}):
{_lines(planned, "follow_up_due_date", show_contact)}

Write in note-like style with incomplete sentences. Examples:
{example_lines}

Keep it very brief and actionable."""


def _write_overview(prompt: str, stage_name: str, gateway) -> str:
    result = gateway.generate(prompt, stage_name=stage_name, temperature=0.7, max_tokens=150)
    return (result.get("response") or "").strip() or FALLBACK_OVERVIEW


def _overview_response(overview: str, interactions: list, past: list, planned: list) -> dict:
    return {
        "overview": overview,
        "hasInteractions": True,
        "interactionCount": len(interactions),
        "pastCount": len(past),
        "plannedCount": len(planned),
    }


def company_interaction_overview(user_id: str, company_id: str, gateway=None):
    """Overview for one company, stored in its interaction_summary.

    Returns None when the company is not the user's. Gemini errors propagate.
    """
    company = models.get_company(user_id, company_id)
    if not company:
        return None

    interactions = models.list_interactions(user_id, company_id=company_id, limit=500)
    if not interactions:
        models.update_company(user_id, company_id, {"interaction_summary": NO_COMPANY_INTERACTIONS})
        return {"overview": NO_COMPANY_INTERACTIONS, "hasInteractions": False}

    past, planned = split_interactions(interactions)
    prompt = build_prompt(
        company["name"],
        f"Company: {company['name']} ({company.get('industry') or 'Unknown industry'})",
        past, planned,
        ("Early stage, LinkedIn outreach to CDO", "Awaiting response from initial contact",
         "Follow-up due next week", "Active conversation with hiring manager"),
        show_contact=True,
    )
    overview = _write_overview(prompt, "company_overview", gateway or get_gateway())
    models.update_company(user_id, company_id, {"interaction_summary": overview})
    logger.info("Company overview from %d interactions", len(interactions),
                extra={"user_id": user_id})
    return _overview_response(overview, interactions, past, planned)


def contact_interaction_overview(user_id: str, contact_id: str, gateway=None):
    """Overview for one contact. Returns None when the contact is not the user's."""
    contact = models.get_contact(user_id, contact_id)
    if not contact:
        return None

    interactions = models.list_interactions(user_id, contact_id=contact_id, limit=500)
    if not interactions:
        return {"overview": NO_CONTACT_INTERACTIONS, "hasInteractions": False}

    past, planned = split_interactions(interactions)
    name = f"{contact.get('first_name') or ''} {contact.get('last_name') or ''}".strip()
    company_name = contact.get("company_name") or "Unknown Company"
    prompt = build_prompt(
        f"{name} at {company_name}",
        f"Contact: {name} ({contact.get('role') or 'Unknown role'}) at {company_name} "
        f"({contact.get('company_industry') or 'Unknown industry'})",
        past, planned,
        ("Initial LinkedIn outreach sent", "Awaiting response from initial contact",
         "Follow-up due next week", "Active conversation, positive response"),
        show_contact=False,
    )
    overview = _write_overview(prompt, "contact_overview", gateway or get_gateway())
    logger.info("Contact overview from %d interactions", len(interactions),
                extra={"user_id": user_id})
    return _overview_response(overview, interactions, past, planned)
