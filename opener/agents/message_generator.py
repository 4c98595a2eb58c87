"""
Message Generator - Writes three outreach message versions for a contact.

Gemini writes the versions when it is configured and returns usable JSON;
otherwise deterministic template versions are returned so the caller always
gets three messages. Every message is cut to the medium's max length at a
sentence or word boundary where one is close enough.
"""

import logging

from opener.agents.llm_gateway import GeminiError, clean_scalar, get_gateway
from opener.db import models

logger = logging.getLogger("opener.agents.message_generator")

MAX_LENGTHS = {
    "linkedin_connection": 300,
    "linkedin_inmail": 400,
    "linkedin_message": 400,
    "email": 500,
}
DEFAULT_MAX_LENGTH = 400

TEMPLATE_STYLES = (
    ("Professional Focus",
     "This version focuses on professional alignment and specific value the user can provide."),
    ("Common Interest",
     "This version builds rapport through shared interests before asking to connect."),
    ("Direct Value Proposition",
     "A direct approach that clearly states the value proposition and reason for connecting."),
)

GUEST_VERSION_NAMES = ("Version 1", "Version 2", "Version 3")


def max_length_for(medium: str) -> int:
    return MAX_LENGTHS.get(medium, DEFAULT_MAX_LENGTH)


def truncate_cleanly(text: str, limit: int) -> str:
    """Cut text to at most `limit` chars, preferring a sentence end, then a word break."""
    if len(text) <= limit:
        return text
    truncated = text[:limit]
    for end_char in (".\n", ". ", ".\n\n"):
        pos = truncated.rfind(end_char)
        if pos > limit * 0.6:
            return text[:pos + 1].rstrip()
    last_space = truncated.rfind(" ")
    if last_space > limit * 0.7:
        return text[:last_space].rstrip()
    return truncated.rstrip()


def template_messages(first_name: str, company_name: str, objective: str, max_length: int) -> list:
    company = company_name or "your company"
    texts = (
        f"Hello {first_name}, I noticed your work at {company}. Based on my experience, "
        f"I believe I could contribute to what your team is building. "
        f"Would love to connect to discuss {objective}.",
        f"Hi {first_name}, I came across your profile and noticed we share interests in "
        f"similar work. I'd appreciate connecting to learn more about your perspective on {objective}.",
        f"Hello {first_name}, I'm reaching out because my recent work aligns with {company}'s focus. "
        f"I'm interested in {objective} and would value your perspective.",
    )
    return [
        {"version_name": name, "message_text": truncate_cleanly(text, max_length),
         "ai_reasoning": reasoning}
        for (name, reasoning), text in zip(TEMPLATE_STYLES, texts)
    ]


def build_prompt(contact: dict, company_name: str, summary: dict, medium: str,
                 objective: str, additional_context: str, max_length: int) -> str:
    about_me = "N/A"
    if summary:
        about_me = summary.get("overall_blurb") or summary.get("value_proposition_summary") or "N/A"
    names = ", ".join(f'"{n}"' for n, _ in TEMPLATE_STYLES)
    return f"""Write three short outreach messages for job-search networking.

Recipient: {contact.get('first_name')} {contact.get('last_name') or ''}, {contact.get('role') or 'Unknown role'} at {company_name or 'Unknown company'}
Recipient background: {contact.get('bio_summary') or 'N/A'}
How I can help them: {contact.get('how_i_can_help') or 'N/A'}
About me: {about_me}
Medium: {medium} (max {max_length} characters per message)
Objective: {objective}
Additional context: {additional_context or 'None'}

Return JSON:
{{
  "messages": [
    {{"version_name": "one of {names}", "message_text": "string", "ai_reasoning": "why this approach works"}}
  ]
}}"""


def _normalize(items, max_length: int) -> list:
    messages = []
    for item in items or []:
        if not isinstance(item, dict) or not item.get("message_text"):
            continue
        messages.append({
            "version_name": clean_scalar(item.get("version_name")) or TEMPLATE_STYLES[len(messages) % 3][0],
            "message_text": truncate_cleanly(str(item["message_text"]), max_length),
            "ai_reasoning": clean_scalar(item.get("ai_reasoning")) or "",
        })
    return messages[:3]


def generate_messages(contact: dict, medium: str, objective: str, additional_context: str = None,
                      company_name: str = None, summary: dict = None, gateway=None) -> dict:
    """Returns {"messages": [3 versions], "maxLength": int, "source": "ai"|"template"}."""
    max_length = max_length_for(medium)
    gateway = gateway or get_gateway()

    messages = []
    if gateway.available:
        try:
            data = gateway.generate_json(
                build_prompt(contact, company_name, summary, medium, objective,
                             additional_context, max_length),
                stage_name="message_write", temperature=0.8,
            )
            messages = _normalize((data or {}).get("messages"), max_length)
        except GeminiError as e:
            logger.warning("Message generation failed, using templates: %s", e)

    if len(messages) < 3:
        return {
            "messages": template_messages(contact.get("first_name") or "there", company_name,
                                          objective, max_length),
            "maxLength": max_length,
            "source": "template",
        }
    return {"messages": messages, "maxLength": max_length, "source": "ai"}


def generate_guest_messages(session_id: str, guest_contact_id: str, medium: str, objective: str,
                            additional_context: str = None, gateway=None) -> dict:
    """Generate and store three unselected guest versions named "Version 1..3"."""
    contact = models.get_guest_contact(guest_contact_id)
    if not contact or contact["session_id"] != session_id:
        raise LookupError("Guest contact not found for this session")

    result = generate_messages(
        contact, medium, objective, additional_context,
        company_name=contact.get("current_company"),
        summary=models.get_guest_summary(session_id),
        gateway=gateway,
    )
    stored = []
    for version_name, message in zip(GUEST_VERSION_NAMES, result["messages"]):
        stored.append(models.create_guest_message({
            "session_id": session_id,
            "guest_contact_id": guest_contact_id,
            "version_name": version_name,
            "message_text": message["message_text"],
            "ai_reasoning": message["ai_reasoning"],
            "medium": medium,
            "message_objective": objective,
            "message_additional_context": additional_context,
        }))
    logger.info("Stored %d guest messages", len(stored), extra={"session_id": session_id})
    return {"messages": stored, "maxLength": result["maxLength"]}
