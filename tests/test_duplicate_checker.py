"""
Tests for company/contact duplicate detection and its classifiers.
"""

import pytest

from conftest import FakeGateway
from opener.agents import duplicate_checker
from opener.agents.duplicate_checker import (
    DuplicateClassifier,
    ExactMatchClassifier,
    LLMDuplicateClassifier,
    filter_matches,
)
from opener.agents.llm_gateway import GeminiError
from opener.db import models


class RecordingClassifier(DuplicateClassifier):

    def __init__(self, kind, matches):
        super().__init__(kind)
        self.matches = matches
        self.calls = 0

    def classify(self, candidate, existing):
        self.calls += 1
        return self.matches


@pytest.fixture
def companies(test_db):
    return [models.create_company("U1", {"name": n}) for n in ("Acme Corp", "Globex", "Initech", "Umbrella")]


class TestExactMatch:

    def test_case_insensitive_company_match(self):
        existing = [{"company_id": "c1", "name": "Acme"}, {"company_id": "c2", "name": "Other"}]
        matches = ExactMatchClassifier("company").classify({"name": "  ACME "}, existing)
        assert matches == [{"id": "c1", "confidence": "high", "reasoning": "Exact name match"}]

    def test_contact_match_uses_full_name(self):
        existing = [{"contact_id": "p1", "first_name": "Bob", "last_name": "Smith"},
                    {"contact_id": "p2", "first_name": "Bob", "last_name": "Jones"}]
        matches = ExactMatchClassifier("contact").classify(
            {"first_name": "bob", "last_name": "smith"}, existing)
        assert [m["id"] for m in matches] == ["p1"]

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            ExactMatchClassifier("account")


class TestFiltering:

    def test_drops_unknown_ids_and_low_confidence_and_caps_at_three(self):
        existing = [{"company_id": f"c{i}"} for i in range(5)]
        matches = [
            {"id": "ghost", "confidence": "high", "reasoning": ""},
            {"id": "c0", "confidence": "low", "reasoning": ""},
            {"id": "c1", "confidence": "medium", "reasoning": ""},
            {"id": "c2", "confidence": "high", "reasoning": ""},
            {"id": "c3", "confidence": "high", "reasoning": ""},
            {"id": "c4", "confidence": "high", "reasoning": ""},
        ]
        kept = filter_matches(matches, existing, "company_id")
        assert [m["id"] for m in kept] == ["c2", "c3", "c4"]

    def test_duplicate_ids_collapse(self):
        existing = [{"company_id": "c1"}]
        matches = [{"id": "c1", "confidence": "medium", "reasoning": ""},
                   {"id": "c1", "confidence": "high", "reasoning": ""}]
        assert len(filter_matches(matches, existing, "company_id")) == 1


class TestCheckCompanyDuplicates:

    def test_no_existing_rows_skips_classifier(self, test_db):
        classifier = RecordingClassifier("company", [])
        result = duplicate_checker.check_company_duplicates("U1", "Acme", classifier=classifier)
        assert result == {"isDuplicate": False, "potentialDuplicates": []}
        assert classifier.calls == 0

    def test_never_reports_foreign_ids(self, companies):
        other_user = models.create_company("U2", {"name": "Acme Corp"})
        classifier = RecordingClassifier("company", [
            {"id": other_user["company_id"], "confidence": "high", "reasoning": "same"},
        ])
        result = duplicate_checker.check_company_duplicates("U1", "Acme", classifier=classifier)
        assert result == {"isDuplicate": False, "potentialDuplicates": []}

    def test_medium_only_is_not_duplicate(self, companies):
        classifier = RecordingClassifier("company", [
            {"id": companies[1]["company_id"], "confidence": "medium", "reasoning": "similar"},
        ])
        result = duplicate_checker.check_company_duplicates("U1", "Globex Inc", classifier=classifier)
        assert result["isDuplicate"] is False
        assert result["potentialDuplicates"][0]["name"] == "Globex"
        assert result["potentialDuplicates"][0]["confidence"] == "medium"

    def test_blacklisted_companies_are_not_candidates(self, companies):
        models.blacklist_companies("U1", [companies[0]["company_id"]])
        result = duplicate_checker.check_company_duplicates(
            "U1", "acme corp", classifier=ExactMatchClassifier("company"))
        assert result["potentialDuplicates"] == []

    def test_llm_result_is_used(self, companies):
        gw = FakeGateway(responses=[{"potentialDuplicates": [
            {"id": companies[0]["company_id"], "confidence": "high", "reasoning": "suffix variation"},
        ]}])
        result = duplicate_checker.check_company_duplicates(
            "U1", "ACME", classifier=LLMDuplicateClassifier("company", gateway=gw))
        assert result["isDuplicate"] is True
        assert result["potentialDuplicates"][0]["reasoning"] == "suffix variation"
        assert "Acme Corp" in gw.calls[0]["prompt"]

    def test_malformed_llm_output_falls_back_to_exact_match(self, companies):
        gw = FakeGateway(responses=[None])
        result = duplicate_checker.check_company_duplicates(
            "U1", "globex", classifier=LLMDuplicateClassifier("company", gateway=gw))
        assert result["isDuplicate"] is True
        assert result["potentialDuplicates"][0]["reasoning"] == "Exact name match (fallback)"

    def test_gemini_error_falls_back_to_exact_match(self, companies):
        gw = FakeGateway(error=GeminiError("timeout"))
        result = duplicate_checker.check_company_duplicates(
            "U1", "Initech", classifier=LLMDuplicateClassifier("company", gateway=gw))
        assert [d["name"] for d in result["potentialDuplicates"]] == ["Initech"]


class TestCheckContactDuplicates:

    def test_exact_contact_match_with_company_name(self, test_db):
        acme = models.create_company("U1", {"name": "Acme"})
        bob = models.create_contact("U1", {"first_name": "Bob", "last_name": "Smith",
                                           "company_id": acme["company_id"], "role": "CTO"})
        result = duplicate_checker.check_contact_duplicates(
            "U1", "Bob", "Smith", classifier=ExactMatchClassifier("contact"))
        assert result["isDuplicate"] is True
        dup = result["potentialDuplicates"][0]
        assert dup["contact_id"] == bob["contact_id"]
        assert dup["company_name"] == "Acme"
        assert dup["role"] == "CTO"

    def test_default_classifier_without_api_key_uses_fallback(self, test_db):
        models.create_contact("U1", {"first_name": "Ada", "last_name": "King"})
        result = duplicate_checker.check_contact_duplicates("U1", "ada", "king")
        assert result["potentialDuplicates"][0]["reasoning"] == "Exact name match (fallback)"
