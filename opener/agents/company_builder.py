"""
Company Builder - Creates and enriches target companies from Gemini output.
Removing a company blacklists it and drops its interactions.
"""

import logging
from typing import Optional

from opener.agents.llm_gateway import clean_scalar, get_gateway
from opener.db import models

logger = logging.getLogger("opener.agents.company_builder")

ENRICHED_FIELDS = (
    "industry", "hq_location", "website_url", "public_private", "estimated_revenue",
    "estimated_headcount", "wfh_policy", "ai_description", "ai_match_reasoning",
)
FACT_FIELDS = ENRICHED_FIELDS[:-1]


class CompanyExistsError(Exception):
    def __init__(self, company: dict):
        super().__init__("Company already exists")
        self.company = company


class CompanyEnrichmentError(Exception):
    pass


def _as_score(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def priority_for_score(score) -> str:
    """match_quality_score 3 -> Top, 2 -> Medium, anything else -> Maybe."""
    score = _as_score(score)
    if score == 3:
        return "Top"
    if score == 2:
        return "Medium"
    return "Maybe"


def build_prompt(name: str, profile: dict = None, summary: dict = None) -> str:
    about = "Unknown"
    if profile or summary:
        about = "; ".join(filter(None, [
            profile and profile.get("job_role"),
            profile and profile.get("location"),
            summary and summary.get("overall_blurb"),
        ])) or "Unknown"
    return f"""Research the company "{name}" as a job-search target.

Candidate background: {about}

Return a JSON object:
{{
  "name": "official company name",
  "industry": "string",
  "hq_location": "string",
  "website_url": "string",
  "public_private": "Public or Private",
  "estimated_revenue": "string",
  "estimated_headcount": "string",
  "wfh_policy": "Remote, Hybrid, or In-Office",
  "ai_description": "2 sentence description",
  "ai_match_reasoning": "why this company fits the candidate",
  "match_quality_score": 1
}}
match_quality_score is 1-3, where 3 is the best fit."""


def add_company_by_name(user_id: str, name: str, gateway=None) -> dict:
    """Create an enriched company. Raises CompanyExistsError on a case-insensitive name clash."""
    name = name.strip()
    existing = models.find_company_by_name(user_id, name, case_sensitive=False)
    if existing:
        raise CompanyExistsError(existing)

    gateway = gateway or get_gateway()
    data = gateway.generate_json(
        build_prompt(name, models.get_user_profile(user_id), models.get_user_summary(user_id)),
        stage_name="company_enrich", temperature=0.4,
    )
    if not data:
        raise CompanyEnrichmentError("Failed to parse generated company data")

    score = _as_score(data.get("match_quality_score"))
    record = {k: clean_scalar(data.get(k)) for k in ENRICHED_FIELDS}
    record.update({
        "name": name,
        "match_quality_score": score,
        "user_priority": priority_for_score(score),
        "status": "active",
    })
    company = models.create_company(user_id, record)
    logger.info("Added company %s (%s)", name, company["user_priority"], extra={"user_id": user_id})
    return company


def build_enrich_prompt(name: str) -> str:
    fields = ", ".join(f'"{f}"' for f in FACT_FIELDS)
    return (f'Generate factual information for the company "{name}". Return a single JSON '
            f"object with these exact fields: {fields}. If a value is not available, "
            f"return null for that field.")


def enrich_company(user_id: str, company_id: str, company_name: str, gateway=None) -> Optional[dict]:
    """Fill the factual columns of an existing company from Gemini.

    Returns the updated company, or None when the company is not the user's.
    Fields Gemini leaves null are not overwritten.
    """
    if not models.get_company(user_id, company_id):
        return None

    gateway = gateway or get_gateway()
    data = gateway.generate_json(build_enrich_prompt(company_name), stage_name="company_facts",
                                 temperature=0.2)
    if not data:
        raise CompanyEnrichmentError("Failed to parse generated company data")

    facts = {k: clean_scalar(data.get(k)) for k in FACT_FIELDS}
    updates = {k: v for k, v in facts.items() if v is not None}
    company = models.update_company(user_id, company_id, updates)
    logger.info("Enriched company %s (%d fields)", company_name, len(updates),
                extra={"user_id": user_id})
    return company


def remove_companies(user_id: str, company_ids: list) -> dict:
    """Blacklist companies and drop their interactions."""
    blacklisted = models.blacklist_companies(user_id, company_ids)
    deleted = models.delete_interactions_for_companies(user_id, blacklisted)
    logger.info("Blacklisted %d companies, removed %d interactions", len(blacklisted), deleted,
                extra={"user_id": user_id})
    return {
        "message": f"{len(blacklisted)} companies blacklisted successfully",
        "blacklistedCompanyIds": blacklisted,
    }
