"""
Shared pytest fixtures for the Opener Studio test suite.
"""

import os

import pytest

# Never reach the real Gemini API from tests
os.environ["GEMINI_API_KEY"] = ""
os.environ["OPENER_JOURNAL_MODE"] = "DELETE"

from starlette.testclient import TestClient

from opener.agents import llm_gateway
from opener.agents.llm_gateway import GeminiClient, LLMGateway
from opener.api.rate_limit import limiter
from opener.db import models
from opener.db.init_db import init_db


class FakeGateway:
    """Stands in for LLMGateway: returns queued JSON values in order."""

    def __init__(self, responses=None, error=None, available=True):
        self.responses = list(responses or [])
        self.error = error
        self.available = available
        self.calls = []

    def status(self):
        return {"provider": "fake", "model": "fake", "status": "ok"}

    def generate_json(self, prompt, stage_name="unknown", temperature=0.3, expect=dict):
        self.calls.append({"stage": stage_name, "prompt": prompt})
        if self.error:
            raise self.error
        return self.responses.pop(0) if self.responses else None

    def generate(self, prompt, stage_name="unknown", **kwargs):
        self.calls.append({"stage": stage_name, "prompt": prompt})
        if self.error:
            raise self.error
        return {"response": self.responses.pop(0) if self.responses else ""}


@pytest.fixture
def test_db(tmp_path, monkeypatch):
    """Create a fresh test database with all migrations applied."""
    db_path = str(tmp_path / "test.db")
    import opener.db.connection as connection
    monkeypatch.setattr(connection, "DB_PATH", db_path)
    monkeypatch.setattr(connection, "DB_JOURNAL_MODE", "DELETE")

    init_db(db_path)
    yield db_path


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh rate-limit windows and an unconfigured Gemini gateway for every test."""
    limiter.reset()
    llm_gateway.set_gateway(LLMGateway(GeminiClient(api_key="")))
    yield
    llm_gateway.set_gateway(None)
    limiter.reset()


@pytest.fixture
def fake_gateway():
    """Install a FakeGateway; queue responses with fake_gateway.responses.append(...)."""
    gw = FakeGateway()
    llm_gateway.set_gateway(gw)
    return gw


@pytest.fixture
def client(test_db):
    from opener.api.app import create_app
    return TestClient(create_app())


@pytest.fixture
def seed_guest(test_db):
    """Factory that builds a guest session.

    contacts: list of guest contact dicts; selected: (contact index, version_name, text)
    """
    def _seed(session_id="S1", profile=None, summary=None, contacts=(), selected=None):
        models.upsert_guest_profile(session_id, profile or {"first_name": "Ada",
                                                            "background_input": "Engineer"})
        if summary:
            models.upsert_guest_summary(session_id, summary)
        created = [models.create_guest_contact(session_id, c) for c in contacts]
        message = None
        if selected:
            idx, version_name, text = selected
            gcid = created[idx]["id"] if idx is not None else None
            message = models.create_guest_message({
                "session_id": session_id, "guest_contact_id": gcid,
                "version_name": version_name, "message_text": text,
                "medium": "linkedin_message",
            })
            models.select_guest_message(session_id, gcid, version_name)
        return {"contacts": created, "message": message}
    return _seed


def count_rows(table: str, user_id: str = None) -> int:
    from opener.db.connection import get_db_conn
    with get_db_conn() as conn:
        if user_id:
            return conn.execute(f"SELECT COUNT(*) FROM {table} WHERE user_id=?", (user_id,)).fetchone()[0]
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
