"""
Profile Builder - Turns pasted background text into a profile and a networking summary.

Two Gemini calls:
    1. extract_profile_fields  name/role/company/location (unparseable -> all null)
    2. generate_summary        narrative summary (unparseable -> ProfileGenerationError)

Used by generate_guest_profile (guest tables, keyed by session id) and
generate_user_profile (permanent tables, keyed by user id).
"""

import logging

from opener.agents.llm_gateway import clean_scalar, get_gateway
from opener.db import models

logger = logging.getLogger("opener.agents.profile_builder")

PROFILE_KEYS = ("first_name", "last_name", "job_role", "current_company", "location")

SUCCESS_MESSAGE = "Profile and summary generated successfully!"


class ProfileGenerationError(Exception):
    """Gemini output for the summary could not be used."""
    pass


def combine_background(background_input: str = None, linkedin_content: str = None,
                       cv_content: str = None, additional_details: str = None) -> str:
    """Join the provided sources into one labelled prompt section. Empty if none given."""
    sections = [
        ("Background Information", background_input),
        ("LinkedIn Profile", linkedin_content),
        ("Additional Details", additional_details),
        ("CV Content", cv_content),
    ]
    return "\n\n".join(f"{label}: {text}" for label, text in sections if text)


def _profile_prompt(content: str) -> str:
    return f"""You are an AI assistant that extracts structured profile information from professional background text.

{content}

Return JSON with exactly these keys:
{{
  "first_name": "First name only",
  "last_name": "Last name only",
  "job_role": "Current or most recent job title",
  "current_company": "Current or most recent company",
  "location": "City, State/Country"
}}
Use null for anything not clearly stated. Return JSON only."""


def _summary_prompt(content: str) -> str:
    return f"""You are helping a professional prepare for job search networking.
Analyze this background and write a structured summary addressed to them ("You are...", "You have..."):

{content}

Return JSON:
{{
  "experience": "Summary of professional experience and career progression",
  "education": "Degrees, certifications, coursework",
  "expertise": "Key areas of expertise",
  "achievements": "Notable, quantified accomplishments",
  "overall_blurb": "2-3 sentence professional summary",
  "combined_experience_highlights": ["5-7 experience highlights"],
  "combined_education_highlights": ["3-5 education highlights"],
  "key_skills": ["10-15 skills"],
  "domain_expertise": ["5-8 industries or domains"],
  "technical_expertise": ["5-10 technical competencies"],
  "value_proposition_summary": "2-3 sentences on the value this person brings"
}}"""


def extract_profile_fields(content: str, gateway=None) -> dict:
    """Step 1. Gemini errors propagate; unusable output gives all-null fields."""
    gateway = gateway or get_gateway()
    data = gateway.generate_json(_profile_prompt(content), stage_name="profile_extract",
                                 temperature=0.3)
    if not data:
        logger.warning("Profile extraction output unparseable, storing empty fields")
        return {k: None for k in PROFILE_KEYS}
    return {k: clean_scalar(data.get(k)) for k in PROFILE_KEYS}


def _as_list(value) -> list:
    if isinstance(value, list):
        items = [clean_scalar(v) for v in value]
        return [v for v in items if v]
    text = clean_scalar(value)
    return [text] if text else []


def generate_summary(content: str, gateway=None) -> dict:
    """Step 2. Raises ProfileGenerationError when the output is not a JSON object."""
    gateway = gateway or get_gateway()
    data = gateway.generate_json(_summary_prompt(content), stage_name="profile_summary",
                                 temperature=0.7)
    if not data:
        raise ProfileGenerationError("Failed to parse AI summary response")
    summary = {k: clean_scalar(data.get(k)) for k in models.SUMMARY_TEXT_FIELDS}
    for k in models.SUMMARY_LIST_FIELDS:
        summary[k] = _as_list(data.get(k))
    return summary


def generate_guest_profile(session_id: str, background_input: str = None,
                           linkedin_content: str = None, cv_content: str = None,
                           additional_details: str = None, gateway=None) -> dict:
    content = combine_background(background_input, linkedin_content, cv_content, additional_details)
    logger.info("Generating guest profile", extra={"session_id": session_id, "phase": "profile_extract"})

    extracted = extract_profile_fields(content, gateway)
    models.upsert_guest_profile(session_id, dict(
        extracted,
        background_input=background_input,
        linkedin_content=linkedin_content,
        cv_content=cv_content,
        additional_details=additional_details,
    ))

    summary = generate_summary(content, gateway)
    models.upsert_guest_summary(session_id, summary)
    return {"success": True, "message": SUCCESS_MESSAGE,
            "summary": summary, "extractedProfile": extracted}


def generate_user_profile(user_id: str, background_input: str = None,
                          linkedin_content: str = None, cv_content: str = None,
                          additional_details: str = None, gateway=None) -> dict:
    content = combine_background(background_input, linkedin_content, cv_content, additional_details)
    logger.info("Generating user profile", extra={"user_id": user_id, "phase": "profile_extract"})

    extracted = extract_profile_fields(content, gateway)
    models.upsert_user_profile(user_id, dict(
        extracted,
        background_input=background_input,
        linkedin_content=linkedin_content,
        cv_content=cv_content,
        additional_details=additional_details,
    ))

    summary = generate_summary(content, gateway)
    models.upsert_user_summary(user_id, summary)
    return {"success": True, "message": SUCCESS_MESSAGE,
            "summary": summary, "extractedProfile": extracted}
