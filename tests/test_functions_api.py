"""
Endpoint tests for the authenticated edge functions.
"""

from conftest import count_rows
from opener.db import models

AUTH = {"X-User-Id": "U1"}


class TestAuth:

    def test_missing_user_header_is_401(self, client):
        for path in ("/generate_profile", "/add_contact_by_bio", "/generate_message",
                     "/check_company_duplicates", "/check_contact_duplicates",
                     "/add_company_by_name", "/remove_companies", "/enrich_company",
                     "/generate_company_interaction_overview",
                     "/generate_contact_interaction_overview", "/get_companies_overview"):
            assert client.post(path, json={}).status_code == 401, path


class TestGenerateProfile:

    def test_writes_user_profile_and_summary(self, client, fake_gateway):
        fake_gateway.responses.extend([
            {"first_name": "Ada", "job_role": "Engineer"},
            {"overall_blurb": "You compute.", "key_skills": ["math"]},
        ])
        resp = client.post("/generate_profile", headers=AUTH, json={"backgroundInput": "notes"})
        assert resp.status_code == 200
        assert models.get_user_profile("U1")["first_name"] == "Ada"
        assert models.get_user_summary("U1")["key_skills"] == ["math"]

    def test_second_run_updates_instead_of_duplicating(self, client, fake_gateway):
        fake_gateway.responses.extend([
            {"first_name": "Ada"}, {"overall_blurb": "one"},
            {"first_name": "Ada", "location": "London"}, {"overall_blurb": "two"},
        ])
        client.post("/generate_profile", headers=AUTH, json={"backgroundInput": "a"})
        client.post("/generate_profile", headers=AUTH, json={"backgroundInput": "b"})
        assert count_rows("user_profiles", "U1") == 1
        assert count_rows("user_summaries", "U1") == 1
        assert models.get_user_profile("U1")["location"] == "London"
        assert models.get_user_summary("U1")["overall_blurb"] == "two"

    def test_no_content_is_400(self, client):
        assert client.post("/generate_profile", headers=AUTH, json={}).status_code == 400


class TestAddContactByBio:

    def test_returns_parsed_contact_without_storing(self, client, fake_gateway):
        fake_gateway.responses.append({"first_name": "Grace", "last_name": None, "role": "Admiral"})
        resp = client.post("/add_contact_by_bio", headers=AUTH, json={"linkedin_bio": "Grace..."})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "success"
        assert body["contact"]["first_name"] == "Grace"
        assert body["contact"]["last_name"] == ""
        assert count_rows("contacts") == 0

    def test_missing_bio_is_400(self, client):
        assert client.post("/add_contact_by_bio", headers=AUTH, json={}).status_code == 400


class TestGenerateMessage:

    def test_template_versions_respect_medium_length(self, client, test_db):
        acme = models.create_company("U1", {"name": "Acme"})
        bob = models.create_contact("U1", {"first_name": "Bob", "company_id": acme["company_id"]})
        resp = client.post("/generate_message", headers=AUTH, json={
            "contact_id": bob["contact_id"], "medium": "linkedin_connection",
            "objective": "o" * 500})
        assert resp.status_code == 200
        body = resp.json()
        assert body["maxLength"] == 300
        assert [m["version_name"] for m in body["messages"]] == [
            "Professional Focus", "Common Interest", "Direct Value Proposition"]
        assert all(len(m["message_text"]) == 300 for m in body["messages"])

    def test_unknown_medium_uses_default_length(self, client, test_db):
        bob = models.create_contact("U1", {"first_name": "Bob"})
        resp = client.post("/generate_message", headers=AUTH, json={
            "contact_id": bob["contact_id"], "medium": "carrier_pigeon", "objective": "hi"})
        assert resp.json()["maxLength"] == 400

    def test_ai_versions_used_when_available(self, client, fake_gateway):
        bob = models.create_contact("U1", {"first_name": "Bob"})
        fake_gateway.responses.append({"messages": [
            {"version_name": "Professional Focus", "message_text": "A" * 600, "ai_reasoning": "r1"},
            {"version_name": "Common Interest", "message_text": "Hi Bob", "ai_reasoning": "r2"},
            {"version_name": "Direct Value Proposition", "message_text": "Hey", "ai_reasoning": "r3"},
        ]})
        resp = client.post("/generate_message", headers=AUTH, json={
            "contact_id": bob["contact_id"], "medium": "email", "objective": "coffee"})
        messages = resp.json()["messages"]
        assert len(messages[0]["message_text"]) == 500
        assert messages[1]["message_text"] == "Hi Bob"

    def test_ai_versions_cut_at_word_boundary(self, client, fake_gateway):
        bob = models.create_contact("U1", {"first_name": "Bob"})
        long_text = "Hi Bob, " + "coffee chat " * 40
        fake_gateway.responses.append({"messages": [
            {"version_name": "Professional Focus", "message_text": long_text, "ai_reasoning": ["r"]},
            {"version_name": "Common Interest", "message_text": "Hi Bob", "ai_reasoning": "r2"},
            {"version_name": {"bad": 1}, "message_text": "Hey", "ai_reasoning": None},
        ]})
        resp = client.post("/generate_message", headers=AUTH, json={
            "contact_id": bob["contact_id"], "medium": "linkedin_connection", "objective": "x"})
        messages = resp.json()["messages"]
        assert messages[2]["version_name"] == "Direct Value Proposition"
        assert messages[2]["ai_reasoning"] == ""
        message = messages[0]
        assert len(message["message_text"]) <= 300
        assert message["message_text"].endswith("chat")
        assert long_text.startswith(message["message_text"])
        assert message["ai_reasoning"] == "r"

    def test_truncation_prefers_sentence_end(self):
        from opener.agents.message_generator import truncate_cleanly
        text = "The first sentence is right here. " + "word " * 20
        assert truncate_cleanly(text, 40) == "The first sentence is right here."
        assert truncate_cleanly("short", 40) == "short"
        assert truncate_cleanly("x" * 50, 40) == "x" * 40

    def test_other_users_contact_is_404(self, client, test_db):
        bob = models.create_contact("U2", {"first_name": "Bob"})
        resp = client.post("/generate_message", headers=AUTH, json={
            "contact_id": bob["contact_id"], "medium": "email", "objective": "x"})
        assert resp.status_code == 404

    def test_missing_fields_is_400(self, client):
        resp = client.post("/generate_message", headers=AUTH, json={"medium": "email"})
        assert resp.status_code == 400


class TestDuplicateEndpoints:

    def test_company_duplicates(self, client, test_db):
        models.create_company("U1", {"name": "Acme"})
        resp = client.post("/check_company_duplicates", headers=AUTH, json={"name": "acme"})
        assert resp.status_code == 200
        assert resp.json()["isDuplicate"] is True

    def test_contact_duplicates_requires_both_names(self, client):
        resp = client.post("/check_contact_duplicates", headers=AUTH, json={"first_name": "Bob"})
        assert resp.status_code == 400

    def test_contact_duplicates_empty_for_new_user(self, client):
        resp = client.post("/check_contact_duplicates", headers=AUTH,
                           json={"first_name": "Bob", "last_name": "Smith"})
        assert resp.json() == {"isDuplicate": False, "potentialDuplicates": []}


class TestCompanies:

    def test_add_company_by_name_enriches(self, client, fake_gateway):
        fake_gateway.responses.append({"industry": "Robotics", "match_quality_score": 3,
                                       "ai_description": "Builds robots"})
        resp = client.post("/add_company_by_name", headers=AUTH, json={"name": "Cyberdyne"})
        assert resp.status_code == 200
        company = resp.json()["company"]
        assert company["name"] == "Cyberdyne"
        assert company["industry"] == "Robotics"
        assert company["user_priority"] == "Top"
        assert company["status"] == "active"

    def test_priority_mapping(self):
        from opener.agents.company_builder import priority_for_score
        assert [priority_for_score(s) for s in (3, 2, 1, None, "2")] == [
            "Top", "Medium", "Maybe", "Maybe", "Medium"]

    def test_existing_name_any_case_is_400(self, client, fake_gateway):
        models.create_company("U1", {"name": "Cyberdyne"})
        resp = client.post("/add_company_by_name", headers=AUTH, json={"name": "CYBERDYNE"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Company already exists"
        assert body["company"]["name"] == "Cyberdyne"
        assert fake_gateway.calls == []

    def test_unparseable_enrichment_is_500(self, client, fake_gateway):
        fake_gateway.responses.append(None)
        resp = client.post("/add_company_by_name", headers=AUTH, json={"name": "Nowhere"})
        assert resp.status_code == 500
        assert count_rows("companies") == 0

    def test_remove_companies_blacklists_and_drops_interactions(self, client, test_db):
        keep = models.create_company("U1", {"name": "Keep"})
        drop = models.create_company("U1", {"name": "Drop"})
        models.create_interaction("U1", {"company_id": drop["company_id"], "interaction_type": "note"})
        models.create_interaction("U1", {"company_id": keep["company_id"], "interaction_type": "note"})

        resp = client.post("/remove_companies", headers=AUTH,
                           json={"company_ids": [drop["company_id"]]})
        assert resp.status_code == 200
        assert resp.json() == {"message": "1 companies blacklisted successfully",
                               "blacklistedCompanyIds": [drop["company_id"]]}
        assert [c["name"] for c in models.list_companies("U1")] == ["Keep"]
        assert [i["company_id"] for i in models.list_interactions("U1")] == [keep["company_id"]]

    def test_remove_companies_ignores_other_users(self, client, test_db):
        theirs = models.create_company("U2", {"name": "Theirs"})
        resp = client.post("/remove_companies", headers=AUTH,
                           json={"company_ids": [theirs["company_id"]]})
        assert resp.json()["blacklistedCompanyIds"] == []
        assert models.get_company("U2", theirs["company_id"])["is_blacklisted"] == 0

    def test_remove_companies_requires_ids(self, client):
        assert client.post("/remove_companies", headers=AUTH, json={"company_ids": []}).status_code == 400
