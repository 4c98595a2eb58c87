"""
Duplicate Checker - Flags companies/contacts a user is about to add twice.

Classification is pluggable: a classifier receives the candidate record and the
user's existing records and returns [{id, confidence, reasoning}]. The caller
then keeps only ids that really exist, only high/medium confidence, at most 3.

Classifiers:
- ExactMatchClassifier: case-insensitive name equality, always "high"
- LLMDuplicateClassifier: Gemini judgement (nicknames, job changes, typos),
  falling back to exact matching when Gemini is unavailable or its output
  cannot be parsed
"""

import logging

from opener.agents.llm_gateway import GeminiError, get_gateway
from opener.db import models

logger = logging.getLogger("opener.agents.duplicate_checker")

MAX_DUPLICATES = 3
KEPT_CONFIDENCE = ("high", "medium")
CONFIDENCE_RANK = {"high": 0, "medium": 1, "low": 2}

ID_FIELDS = {"company": "company_id", "contact": "contact_id"}


def record_name(kind: str, record: dict) -> str:
    """Normalized display name used for exact matching."""
    if kind == "company":
        name = record.get("name") or ""
    else:
        name = f"{record.get('first_name') or ''} {record.get('last_name') or ''}"
    return " ".join(name.split()).lower()


# ─── CLASSIFIERS ───────────────────────────────────────────────

class DuplicateClassifier:
    """Interface: classify(candidate, existing) -> [{id, confidence, reasoning}]."""

    def __init__(self, kind: str):
        if kind not in ID_FIELDS:
            raise ValueError(f"Unknown record kind: {kind}")
        self.kind = kind
        self.id_field = ID_FIELDS[kind]

    def classify(self, candidate: dict, existing: list) -> list:
        raise NotImplementedError


class ExactMatchClassifier(DuplicateClassifier):

    def __init__(self, kind: str, reasoning: str = "Exact name match"):
        super().__init__(kind)
        self.reasoning = reasoning

    def classify(self, candidate: dict, existing: list) -> list:
        target = record_name(self.kind, candidate)
        if not target:
            return []
        return [
            {"id": row[self.id_field], "confidence": "high", "reasoning": self.reasoning}
            for row in existing
            if record_name(self.kind, row) == target
        ]


class LLMDuplicateClassifier(DuplicateClassifier):

    def __init__(self, kind: str, gateway=None, fallback: DuplicateClassifier = None):
        super().__init__(kind)
        self.gateway = gateway
        self.fallback = fallback or ExactMatchClassifier(kind, reasoning="Exact name match (fallback)")

    def _describe(self, row: dict) -> str:
        if self.kind == "company":
            return f"{row.get('name')} ({row.get('industry') or 'Unknown Industry'})"
        return (f"{row.get('first_name')} {row.get('last_name') or ''} at "
                f"{row.get('company_name') or 'Unknown Company'} ({row.get('role') or 'Unknown Role'})")

    def build_prompt(self, candidate: dict, existing: list) -> str:
        noun = "companies" if self.kind == "company" else "contacts"
        listing = "\n".join(
            f"- {self._describe(row)} (ID: {row[self.id_field]})" for row in existing
        )
        if self.kind == "company":
            hints = ("- Exact name matches\n"
                     "- Legal suffix variations (Inc, LLC, Corp, Ltd)\n"
                     "- Abbreviations and acronyms\n"
                     "- Parent/subsidiary names and rebrands")
        else:
            hints = ("- Exact name matches (same first and last name)\n"
                     "- Nicknames and short forms (Mike vs Michael)\n"
                     "- Same person at a different company (job change)\n"
                     "- Typos and middle names")
        return f"""You are helping to identify duplicate {noun}. A user wants to add: "{self._describe(candidate)}".

Here are their existing {noun}:
{listing}

Consider:
{hints}

Respond with a JSON object:
{{
  "potentialDuplicates": [
    {{"id": "exact_id_from_list", "confidence": "high|medium|low", "reasoning": "brief explanation"}}
  ]
}}

Only include medium or high confidence matches, at most {MAX_DUPLICATES}, ranked by confidence."""

    def classify(self, candidate: dict, existing: list) -> list:
        gateway = self.gateway or get_gateway()
        try:
            result = gateway.generate_json(
                self.build_prompt(candidate, existing),
                stage_name=f"{self.kind}_duplicates", temperature=0.1,
            )
        except GeminiError as e:
            logger.warning("Duplicate classifier unavailable, using exact match: %s", e)
            return self.fallback.classify(candidate, existing)

        if not result or not isinstance(result.get("potentialDuplicates"), list):
            logger.warning("Unusable duplicate classifier output, using exact match")
            return self.fallback.classify(candidate, existing)

        matches = []
        for item in result["potentialDuplicates"]:
            if not isinstance(item, dict):
                continue
            matches.append({
                "id": item.get("id") or item.get(self.id_field),
                "confidence": str(item.get("confidence", "low")).lower(),
                "reasoning": item.get("reasoning") or "",
            })
        return matches


# ─── CALLER-SIDE FILTERING ─────────────────────────────────────

def filter_matches(matches: list, existing: list, id_field: str) -> list:
    """Drop unknown ids and low confidence, dedupe, rank, cap at MAX_DUPLICATES."""
    by_id = {row[id_field]: row for row in existing}
    kept, seen = [], set()
    for m in matches:
        if m.get("id") not in by_id or m["id"] in seen:
            continue
        if m.get("confidence") not in KEPT_CONFIDENCE:
            continue
        seen.add(m["id"])
        kept.append(m)
    kept.sort(key=lambda m: CONFIDENCE_RANK[m["confidence"]])
    return kept[:MAX_DUPLICATES]


def _company_entry(row: dict, match: dict) -> dict:
    return {
        "company_id": row["company_id"],
        "name": row["name"],
        "industry": row.get("industry"),
        "confidence": match["confidence"],
        "reasoning": match["reasoning"],
    }


def _contact_entry(row: dict, match: dict) -> dict:
    return {
        "contact_id": row["contact_id"],
        "first_name": row["first_name"],
        "last_name": row.get("last_name"),
        "role": row.get("role"),
        "company_name": row.get("company_name"),
        "confidence": match["confidence"],
        "reasoning": match["reasoning"],
    }


def _result(matches: list, existing: list, id_field: str, to_entry) -> dict:
    by_id = {row[id_field]: row for row in existing}
    kept = filter_matches(matches, existing, id_field)
    return {
        "isDuplicate": any(m["confidence"] == "high" for m in kept),
        "potentialDuplicates": [to_entry(by_id[m["id"]], m) for m in kept],
    }


def check_company_duplicates(user_id: str, name: str, industry: str = None,
                             classifier: DuplicateClassifier = None) -> dict:
    existing = models.list_companies(user_id, limit=1000)
    if not existing:
        return {"isDuplicate": False, "potentialDuplicates": []}
    classifier = classifier or LLMDuplicateClassifier("company")
    matches = classifier.classify({"name": name, "industry": industry}, existing)
    return _result(matches, existing, "company_id", _company_entry)


def check_contact_duplicates(user_id: str, first_name: str, last_name: str,
                             role: str = None, company_id: str = None,
                             classifier: DuplicateClassifier = None) -> dict:
    existing = models.list_contacts(user_id, limit=1000)
    if not existing:
        return {"isDuplicate": False, "potentialDuplicates": []}
    company_name = None
    if company_id:
        company = models.get_company(user_id, company_id)
        company_name = company["name"] if company else None
    candidate = {"first_name": first_name, "last_name": last_name,
                 "role": role, "company_name": company_name}
    classifier = classifier or LLMDuplicateClassifier("contact")
    matches = classifier.classify(candidate, existing)
    return _result(matches, existing, "contact_id", _contact_entry)
