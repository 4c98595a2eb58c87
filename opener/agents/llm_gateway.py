"""
Opener Studio - Unified LLM Gateway
Provides a single interface for every Gemini call (profile extraction, summaries,
bio parsing, message writing, duplicate classification, company enrichment).

Features:
- Resilient Gemini REST client with retries and exponential backoff
- Request tracing with stage names
- Logging redaction (prompt previews only, API key never logged)
- JSON extraction helper for model output wrapped in prose or code fences
"""

import json
import logging
import re
import time
import uuid
from typing import Optional
from urllib.request import urlopen, Request
from urllib.error import URLError, HTTPError

from opener.config import GEMINI_API_KEY, GEMINI_MODEL, GEMINI_API_BASE, GEMINI_TIMEOUT

logger = logging.getLogger("opener.agents.llm_gateway")

# Retry config
MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 2  # seconds

# Status codes worth retrying; everything else in 4xx is a caller error
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


# ─── GEMINI CLIENT ─────────────────────────────────────────────

class GeminiError(Exception):
    """Raised when Gemini returns an error or is unreachable."""
    pass


class ApiKeyMissingError(GeminiError):
    """Raised when no GEMINI_API_KEY is configured."""
    pass


class GeminiClient:
    """Resilient Gemini generateContent HTTP client."""

    def __init__(self, api_key: str = None, model: str = None,
                 api_base: str = None, timeout: int = None):
        self.api_key = api_key if api_key is not None else GEMINI_API_KEY
        self.model = model or GEMINI_MODEL
        self.api_base = (api_base or GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout or GEMINI_TIMEOUT

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _endpoint(self, model: str) -> str:
        return f"{self.api_base}/models/{model}:generateContent"

    @staticmethod
    def _extract_text(data: dict) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            raise GeminiError("Gemini response did not include candidates")
        parts = candidates[0].get("content", {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise GeminiError("Gemini returned an empty response")
        return text

    def generate(self, prompt: str, model: str = None, temperature: float = 0.7,
                 max_tokens: int = 2048, response_mime_type: str = None) -> dict:
        """Send a generateContent request with retries.

        Args:
            prompt: The user prompt.
            model: Override model (uses default if None).
            temperature: Sampling temperature.
            max_tokens: Max output tokens.
            response_mime_type: e.g. "application/json" to request JSON output.

        Returns:
            {"response": str, "model": str}

        Raises:
            ApiKeyMissingError: If no API key is configured.
            GeminiError: On unrecoverable failure.
        """
        if not self.api_key:
            raise ApiKeyMissingError("GEMINI_API_KEY is not configured")

        model = model or self.model
        generation_config = {"temperature": temperature, "maxOutputTokens": max_tokens}
        if response_mime_type:
            generation_config["responseMimeType"] = response_mime_type
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        body = json.dumps(payload).encode("utf-8")

        last_error = None
        for attempt in range(MAX_RETRIES):
            try:
                req = Request(
                    self._endpoint(model),
                    data=body,
                    headers={
                        "Content-Type": "application/json",
                        "x-goog-api-key": self.api_key,
                    },
                    method="POST",
                )
                with urlopen(req, timeout=self.timeout) as resp:
                    data = json.loads(resp.read().decode())
                    return {"response": self._extract_text(data), "model": model}

            except HTTPError as e:
                error_body = ""
                try:
                    error_body = e.read().decode()
                except Exception:
                    pass
                last_error = f"HTTP {e.code}: {error_body[:200]}"
                if e.code not in RETRYABLE_STATUS:
                    raise GeminiError(f"Gemini request rejected. {last_error}")
                logger.warning(f"Gemini attempt {attempt + 1}/{MAX_RETRIES} failed: {last_error}")

            except URLError as e:
                last_error = f"Connection error: {e.reason}"
                logger.warning(f"Gemini attempt {attempt + 1}/{MAX_RETRIES} failed: {last_error}")

            except GeminiError as e:
                last_error = str(e)
                logger.warning(f"Gemini attempt {attempt + 1}/{MAX_RETRIES} failed: {last_error}")

            except Exception as e:
                last_error = str(e)
                logger.warning(f"Gemini attempt {attempt + 1}/{MAX_RETRIES} failed: {last_error}")

            # Exponential backoff
            if attempt < MAX_RETRIES - 1:
                sleep_time = RETRY_BACKOFF_BASE ** (attempt + 1)
                logger.info(f"Retrying in {sleep_time}s...")
                time.sleep(sleep_time)

        raise GeminiError(
            f"Gemini failed after {MAX_RETRIES} attempts. Last error: {last_error}. "
            f"Model: {model}."
        )


# ─── LLM GATEWAY (unified interface) ──────────────────────────

class LLMGateway:
    """Unified LLM interface over the Gemini client.

    Usage:
        gateway = get_gateway()
        result = gateway.generate(
            prompt="Extract the profile...",
            stage_name="guest_profile_extract",
            temperature=0.2,
            response_mime_type="application/json",
        )
    """

    def __init__(self, client: GeminiClient = None):
        self.client = client or GeminiClient()

    @property
    def available(self) -> bool:
        return self.client.configured

    def status(self) -> dict:
        return {
            "provider": "gemini",
            "model": self.client.model,
            "status": "ok" if self.available else "unavailable",
        }

    def generate(self, prompt: str, stage_name: str = "unknown",
                 model: str = None, temperature: float = 0.7,
                 max_tokens: int = 2048, response_mime_type: str = None,
                 request_id: str = None) -> dict:
        """Generate text via Gemini.

        Returns:
            {"response": str, "provider": str, "model": str, "request_id": str,
             "stage": str, "duration_ms": int}

        Raises:
            GeminiError: If the call fails.
        """
        request_id = request_id or uuid.uuid4().hex[:12]
        start = time.time()

        prompt_preview = prompt[:80].replace("\n", " ") + ("..." if len(prompt) > 80 else "")
        logger.info(f"[{request_id}] LLM request: stage={stage_name}, prompt='{prompt_preview}'",
                    extra={"request_id": request_id})

        try:
            result = self.client.generate(
                prompt=prompt, model=model, temperature=temperature,
                max_tokens=max_tokens, response_mime_type=response_mime_type,
            )
        except GeminiError as e:
            logger.warning(f"[{request_id}] Gemini failed at stage {stage_name}: {e}",
                           extra={"request_id": request_id})
            raise

        duration_ms = int((time.time() - start) * 1000)
        logger.info(f"[{request_id}] Gemini responded in {duration_ms}ms",
                    extra={"request_id": request_id, "duration_ms": duration_ms})
        return {
            "response": result["response"],
            "provider": "gemini",
            "model": result.get("model", self.client.model),
            "request_id": request_id,
            "stage": stage_name,
            "duration_ms": duration_ms,
        }

    def generate_json(self, prompt: str, stage_name: str = "unknown",
                      temperature: float = 0.3, expect: type = dict):
        """Generate and parse a JSON value. Returns None when the output is not usable JSON."""
        result = self.generate(prompt, stage_name=stage_name, temperature=temperature,
                               response_mime_type="application/json")
        return extract_json(result["response"], expect=expect)


# ─── OUTPUT PARSING ────────────────────────────────────────────

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def extract_json(text: str, expect: type = dict):
    """Parse a JSON object (or array) out of model output.

    Accepts bare JSON, fenced ```json blocks, or JSON embedded in prose.
    Returns None if nothing of the expected type can be parsed.
    """
    if not text:
        return None
    candidates = [text.strip()]
    fence = _FENCE_RE.search(text)
    if fence:
        candidates.append(fence.group(1).strip())
    pattern = _ARRAY_RE if expect is list else _OBJECT_RE
    match = pattern.search(text)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, expect):
            return value
    return None


def clean_scalar(value) -> Optional[str]:
    """A model-provided field as a plain string, or None.

    Numbers become strings, a list of scalars is joined with ", ", and
    objects (or anything else that cannot be stored in a TEXT column) are None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        parts = [clean_scalar(v) for v in value if not isinstance(v, (list, dict))]
        return ", ".join(p for p in parts if p) or None
    return None


# ─── MODULE-LEVEL SINGLETON ───────────────────────────────────

_gateway_instance: Optional[LLMGateway] = None


def get_gateway() -> LLMGateway:
    """Get or create the module-level LLM Gateway singleton."""
    global _gateway_instance
    if _gateway_instance is None:
        _gateway_instance = LLMGateway()
    return _gateway_instance


def set_gateway(gateway: Optional[LLMGateway]):
    """Replace the singleton (None resets it)."""
    global _gateway_instance
    _gateway_instance = gateway
