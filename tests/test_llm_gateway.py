"""
Tests for the Gemini client, the LLM gateway and JSON extraction.
"""

import io
import json
from urllib.error import HTTPError, URLError

import pytest

from opener.agents import llm_gateway
from opener.agents.llm_gateway import (
    ApiKeyMissingError,
    GeminiClient,
    GeminiError,
    LLMGateway,
    clean_scalar,
    extract_json,
)


class FakeResponse:

    def __init__(self, payload):
        self._body = json.dumps(payload).encode()

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr(llm_gateway.time, "sleep", sleeps.append)
    return sleeps


def scripted_urlopen(monkeypatch, outcomes):
    """Each call pops the next outcome: an exception is raised, anything else is the payload."""
    requests = []

    def fake_urlopen(req, timeout=None):
        requests.append(req)
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    monkeypatch.setattr(llm_gateway, "urlopen", fake_urlopen)
    return requests


def http_error(code):
    return HTTPError("https://gemini.test", code, "err", {}, io.BytesIO(b"details"))


class TestExtractJson:

    def test_bare_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_block(self):
        assert extract_json('Here you go:\n```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}

    def test_object_in_prose(self):
        assert extract_json('Sure! {"name": "Acme"} Hope that helps.') == {"name": "Acme"}

    def test_array_when_expected(self):
        assert extract_json('result: [1, 2, 3]', expect=list) == [1, 2, 3]

    def test_wrong_type_or_garbage_is_none(self):
        assert extract_json("[1, 2]") is None
        assert extract_json("not json at all") is None
        assert extract_json("") is None


class TestCleanScalar:

    def test_strings_are_stripped_and_blank_is_none(self):
        assert clean_scalar("  Acme ") == "Acme"
        assert clean_scalar("   ") is None
        assert clean_scalar(None) is None

    def test_numbers_become_strings(self):
        assert clean_scalar(5000) == "5000"
        assert clean_scalar(2.5) == "2.5"
        assert clean_scalar(True) is None

    def test_objects_are_dropped(self):
        assert clean_scalar({"name": "Acme"}) is None

    def test_lists_join_their_scalars(self):
        assert clean_scalar(["Ada"]) == "Ada"
        assert clean_scalar(["CTO", {"x": 1}, "", 3]) == "CTO, 3"
        assert clean_scalar([{"x": 1}]) is None


class TestGeminiClient:

    def test_missing_key_raises_without_request(self, monkeypatch):
        requests = scripted_urlopen(monkeypatch, [])
        with pytest.raises(ApiKeyMissingError):
            GeminiClient(api_key="").generate("hi")
        assert requests == []

    def test_request_shape(self, monkeypatch):
        requests = scripted_urlopen(monkeypatch, [gemini_payload("hello")])
        client = GeminiClient(api_key="k", model="m1", api_base="https://gemini.test/v1beta/")
        result = client.generate("hi", temperature=0.2, response_mime_type="application/json")

        assert result == {"response": "hello", "model": "m1"}
        req = requests[0]
        assert req.full_url == "https://gemini.test/v1beta/models/m1:generateContent"
        assert req.get_header("X-goog-api-key") == "k"
        body = json.loads(req.data)
        assert body["contents"][0]["parts"][0]["text"] == "hi"
        assert body["generationConfig"]["temperature"] == 0.2
        assert body["generationConfig"]["responseMimeType"] == "application/json"

    def test_retries_transient_errors(self, monkeypatch, no_sleep):
        requests = scripted_urlopen(monkeypatch, [
            http_error(503), URLError("reset"), gemini_payload("ok")])
        result = GeminiClient(api_key="k").generate("hi")
        assert result["response"] == "ok"
        assert len(requests) == 3
        assert no_sleep == [2, 4]

    def test_client_error_is_not_retried(self, monkeypatch, no_sleep):
        requests = scripted_urlopen(monkeypatch, [http_error(400)])
        with pytest.raises(GeminiError) as exc:
            GeminiClient(api_key="k").generate("hi")
        assert "HTTP 400" in str(exc.value)
        assert len(requests) == 1
        assert no_sleep == []

    def test_gives_up_after_max_retries(self, monkeypatch, no_sleep):
        scripted_urlopen(monkeypatch, [http_error(500)] * llm_gateway.MAX_RETRIES)
        with pytest.raises(GeminiError) as exc:
            GeminiClient(api_key="k").generate("hi")
        assert "after 3 attempts" in str(exc.value)

    def test_empty_candidates_is_an_error(self, monkeypatch, no_sleep):
        scripted_urlopen(monkeypatch, [{"candidates": []}] * llm_gateway.MAX_RETRIES)
        with pytest.raises(GeminiError):
            GeminiClient(api_key="k").generate("hi")


class TestLLMGateway:

    def test_generate_json_parses_model_output(self, monkeypatch):
        scripted_urlopen(monkeypatch, [gemini_payload('```json\n{"first_name": "Ada"}\n```')])
        gateway = LLMGateway(GeminiClient(api_key="k"))
        assert gateway.generate_json("extract", stage_name="profile_extract") == {"first_name": "Ada"}

    def test_generate_includes_trace_fields(self, monkeypatch):
        scripted_urlopen(monkeypatch, [gemini_payload("text")])
        result = LLMGateway(GeminiClient(api_key="k")).generate("p", stage_name="bio_parse")
        assert result["stage"] == "bio_parse"
        assert result["provider"] == "gemini"
        assert len(result["request_id"]) == 12

    def test_status_reflects_key(self):
        assert LLMGateway(GeminiClient(api_key="")).status()["status"] == "unavailable"
        assert LLMGateway(GeminiClient(api_key="k")).available

    def test_singleton(self):
        llm_gateway.set_gateway(None)
        assert llm_gateway.get_gateway() is llm_gateway.get_gateway()
