"""
REST CRUD tests for companies, contacts, saved messages, interactions and health.
"""

AUTH = {"X-User-Id": "U1"}
OTHER = {"X-User-Id": "U2"}


class TestHealth:

    def test_health_reports_tables_and_llm(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["tables"]["companies"] == 0
        assert data["llm"]["status"] == "unavailable"

    def test_health_counts_open_workflow_errors(self, client):
        from opener.agents.error_handler import log_workflow_error
        assert client.get("/api/health").json()["workflow_errors"] == 0
        log_workflow_error(phase="cleanup", error_message="locked", session_id="S1")
        assert client.get("/api/health").json()["workflow_errors"] == 1


class TestCompaniesCrud:

    def test_create_get_update(self, client):
        created = client.post("/api/companies", headers=AUTH, json={"name": "Acme", "industry": "Tools"})
        assert created.status_code == 200
        cid = created.json()["company_id"]

        assert client.get(f"/api/companies/{cid}", headers=AUTH).json()["industry"] == "Tools"

        updated = client.patch(f"/api/companies/{cid}", headers=AUTH, json={"user_priority": "Top"})
        assert updated.json()["user_priority"] == "Top"

    def test_companies_are_user_scoped(self, client):
        cid = client.post("/api/companies", headers=AUTH, json={"name": "Acme"}).json()["company_id"]
        assert client.get(f"/api/companies/{cid}", headers=OTHER).status_code == 404
        assert client.get("/api/companies", headers=OTHER).json() == []
        assert client.patch(f"/api/companies/{cid}", headers=OTHER,
                            json={"user_notes": "mine"}).status_code == 404

    def test_empty_update_is_400(self, client):
        cid = client.post("/api/companies", headers=AUTH, json={"name": "Acme"}).json()["company_id"]
        assert client.patch(f"/api/companies/{cid}", headers=AUTH, json={}).status_code == 400

    def test_blank_name_is_400(self, client):
        assert client.post("/api/companies", headers=AUTH, json={"name": "  "}).status_code == 400


class TestContactsCrud:

    def test_create_with_company_and_list(self, client):
        cid = client.post("/api/companies", headers=AUTH, json={"name": "Acme"}).json()["company_id"]
        resp = client.post("/api/contacts", headers=AUTH,
                           json={"first_name": "Bob", "last_name": "Smith", "company_id": cid})
        assert resp.status_code == 200
        contact_id = resp.json()["contact_id"]

        fetched = client.get(f"/api/contacts/{contact_id}", headers=AUTH).json()
        assert fetched["company_name"] == "Acme"

        listed = client.get(f"/api/contacts?company_id={cid}", headers=AUTH).json()
        assert [c["contact_id"] for c in listed] == [contact_id]

    def test_unknown_company_is_404(self, client):
        resp = client.post("/api/contacts", headers=AUTH, json={"first_name": "Bob", "company_id": "comp_x"})
        assert resp.status_code == 404

    def test_update_contact(self, client):
        contact_id = client.post("/api/contacts", headers=AUTH,
                                 json={"first_name": "Bob"}).json()["contact_id"]
        resp = client.patch(f"/api/contacts/{contact_id}", headers=AUTH, json={"role": "CTO"})
        assert resp.json()["role"] == "CTO"

    def test_archived_contacts_hidden_by_default(self, client):
        contact_id = client.post("/api/contacts", headers=AUTH,
                                 json={"first_name": "Bob"}).json()["contact_id"]
        client.patch(f"/api/contacts/{contact_id}", headers=AUTH, json={"status": "archived"})
        assert client.get("/api/contacts", headers=AUTH).json() == []
        assert len(client.get("/api/contacts?status=archived", headers=AUTH).json()) == 1


class TestSavedMessages:

    def test_save_list_delete(self, client):
        cid = client.post("/api/companies", headers=AUTH, json={"name": "Acme"}).json()["company_id"]
        contact_id = client.post("/api/contacts", headers=AUTH,
                                 json={"first_name": "Bob", "company_id": cid}).json()["contact_id"]
        saved = client.post("/api/messages", headers=AUTH, json={
            "contact_id": contact_id, "version_name": "Professional Focus", "message_text": "Hi Bob"})
        assert saved.status_code == 200
        assert saved.json()["company_id"] == cid
        mid = saved.json()["message_version_id"]

        listed = client.get(f"/api/messages?contact_id={contact_id}", headers=AUTH).json()
        assert [m["message_version_id"] for m in listed] == [mid]

        assert client.delete(f"/api/messages/{mid}", headers=AUTH).status_code == 200
        assert client.delete(f"/api/messages/{mid}", headers=AUTH).status_code == 404

    def test_save_for_unknown_contact_is_404(self, client):
        resp = client.post("/api/messages", headers=AUTH, json={
            "contact_id": "con_x", "version_name": "v", "message_text": "t"})
        assert resp.status_code == 404


class TestInteractions:

    def test_log_inherits_contact_company(self, client):
        cid = client.post("/api/companies", headers=AUTH, json={"name": "Acme"}).json()["company_id"]
        contact_id = client.post("/api/contacts", headers=AUTH,
                                 json={"first_name": "Bob", "company_id": cid}).json()["contact_id"]
        resp = client.post("/api/interactions", headers=AUTH, json={
            "interaction_type": "message_sent", "contact_id": contact_id, "medium": "email"})
        assert resp.status_code == 200
        assert resp.json()["company_id"] == cid
        assert resp.json()["interaction_date"]

        listed = client.get(f"/api/interactions?company_id={cid}", headers=AUTH).json()
        assert len(listed) == 1

    def test_unknown_company_is_404(self, client):
        resp = client.post("/api/interactions", headers=AUTH,
                           json={"interaction_type": "note", "company_id": "comp_x"})
        assert resp.status_code == 404
