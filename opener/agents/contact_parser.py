"""
Contact Parser - Extracts a structured contact from a pasted LinkedIn-style bio.

The user's own summary (when known) is passed to Gemini so "how_i_can_help"
can be phrased from the user's point of view.
"""

import json
import logging

from opener.agents.llm_gateway import clean_scalar, get_gateway

logger = logging.getLogger("opener.agents.contact_parser")

CONTACT_KEYS = ("first_name", "last_name", "role", "current_company", "location",
                "bio_summary", "how_i_can_help")


class ContactParseError(Exception):
    """Gemini output did not describe a contact with at least a first name."""
    pass


def _summary_context(summary: dict) -> str:
    if not summary:
        return "No background summary available."
    parts = [
        f"Overall: {summary.get('overall_blurb') or 'N/A'}",
        f"Experience Highlights: {json.dumps(summary.get('combined_experience_highlights') or [])}",
        f"Key Skills: {json.dumps(summary.get('key_skills') or [])}",
        f"Domain Expertise: {json.dumps(summary.get('domain_expertise') or [])}",
        f"Technical Expertise: {json.dumps(summary.get('technical_expertise') or [])}",
        f"Value Proposition: {summary.get('value_proposition_summary') or 'N/A'}",
    ]
    return "\n".join(parts)


def build_prompt(bio: str, summary: dict = None) -> str:
    return f"""Extract the person described in this LinkedIn bio as a networking contact.

LinkedIn bio:
{bio}

About the user who will reach out to them:
{_summary_context(summary)}

Return a JSON object:
{{
  "first_name": "string",
  "last_name": "string",
  "role": "current job title",
  "current_company": "current employer",
  "location": "location",
  "bio_summary": "2-3 sentence summary of their background",
  "how_i_can_help": "how the user's background could be useful to this person"
}}"""


def parse_contact_bio(bio: str, summary: dict = None, gateway=None) -> dict:
    """Returns the contact dict. Raises ContactParseError when no first_name comes back."""
    gateway = gateway or get_gateway()
    data = gateway.generate_json(build_prompt(bio, summary), stage_name="contact_bio",
                                 temperature=0.3)
    # Some models wrap a single contact in a list
    if isinstance(data, dict) and isinstance(data.get("contacts"), list) and data["contacts"]:
        data = data["contacts"][0]
    if not isinstance(data, dict):
        raise ContactParseError("AI response is not a valid contact object.")

    contact = {k: clean_scalar(data.get(k)) for k in CONTACT_KEYS}
    if not contact["first_name"]:
        raise ContactParseError("AI response is not a valid contact object.")
    if not contact["last_name"]:
        contact["last_name"] = ""
    logger.info("Parsed contact %s %s", contact["first_name"], contact["last_name"])
    return contact
