"""
Centralized Configuration - Single source of truth for all settings.

All environment variables are read here, validated, and exposed as module-level
constants. Other modules import from here instead of reading os.environ directly.

Usage:
    from opener.config import DB_PATH, GEMINI_MODEL, LOG_LEVEL
"""

import os
import sys

# ─── PATHS ───────────────────────────────────────────────────

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ─── DATABASE ────────────────────────────────────────────────

DB_PATH = os.environ.get("OPENER_DB_PATH", os.path.join(PROJECT_ROOT, "opener.db"))
DB_JOURNAL_MODE = os.environ.get("OPENER_JOURNAL_MODE", "WAL")

# ─── GEMINI ──────────────────────────────────────────────────

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash-lite")
GEMINI_API_BASE = os.environ.get("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_TIMEOUT = int(os.environ.get("GEMINI_TIMEOUT_SECONDS", "60"))

# ─── API ─────────────────────────────────────────────────────

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))

DEFAULT_CORS_ORIGINS = (
    "https://openerstudio.com,"
    "https://beta.openerstudio.com,"
    "https://dev-opener-studio.vercel.app,"
    "http://localhost:8080,"
    "http://localhost:8081"
)
CORS_ORIGINS = [
    o.strip() for o in os.environ.get("OPENER_CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if o.strip()
]

RATE_LIMIT_ENABLED = os.environ.get("OPENER_RATE_LIMIT_ENABLED", "true").lower() == "true"

# ─── INPUT LIMITS ────────────────────────────────────────────

BACKGROUND_MAX_CHARS = int(os.environ.get("BACKGROUND_MAX_CHARS", "100000"))
OBJECTIVE_MAX_CHARS = 1000
ADDITIONAL_CONTEXT_MAX_CHARS = 2000

# ─── LOGGING ─────────────────────────────────────────────────

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "text" or "json"
LOG_FILE = os.environ.get("LOG_FILE", "")  # empty = stdout only

# ─── VALIDATION ──────────────────────────────────────────────

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_LOG_FORMATS = {"text", "json"}
_VALID_JOURNAL_MODES = {"WAL", "DELETE", "MEMORY", "OFF"}

_errors = []

if LOG_LEVEL not in _VALID_LOG_LEVELS:
    _errors.append(f"LOG_LEVEL must be one of {_VALID_LOG_LEVELS}, got '{LOG_LEVEL}'")

if LOG_FORMAT not in _VALID_LOG_FORMATS:
    _errors.append(f"LOG_FORMAT must be one of {_VALID_LOG_FORMATS}, got '{LOG_FORMAT}'")

if DB_JOURNAL_MODE not in _VALID_JOURNAL_MODES:
    _errors.append(f"OPENER_JOURNAL_MODE must be one of {_VALID_JOURNAL_MODES}, got '{DB_JOURNAL_MODE}'")

if GEMINI_TIMEOUT < 1:
    _errors.append(f"GEMINI_TIMEOUT_SECONDS must be positive, got {GEMINI_TIMEOUT}")

if BACKGROUND_MAX_CHARS < 1:
    _errors.append(f"BACKGROUND_MAX_CHARS must be positive, got {BACKGROUND_MAX_CHARS}")

if not CORS_ORIGINS:
    _errors.append("OPENER_CORS_ORIGINS is empty; browsers will block every cross-origin call")

if _errors:
    for e in _errors:
        print(f"[config] ERROR: {e}", file=sys.stderr)


def validate(strict: bool = False) -> list:
    """Validate all configuration settings.

    Args:
        strict: If True, raise ValueError on any errors.

    Returns:
        List of error messages (empty if all valid).
    """
    if strict and _errors:
        raise ValueError(f"Configuration errors: {'; '.join(_errors)}")
    return list(_errors)


def print_config():
    """Print current configuration (safe - no secrets)."""
    print("=" * 50)
    print("Opener Studio Configuration")
    print("=" * 50)
    print(f"  DB_PATH:              {DB_PATH}")
    print(f"  DB_JOURNAL_MODE:      {DB_JOURNAL_MODE}")
    print(f"  GEMINI_MODEL:         {GEMINI_MODEL}")
    print(f"  GEMINI_API_KEY set:   {bool(GEMINI_API_KEY)}")
    print(f"  GEMINI_TIMEOUT:       {GEMINI_TIMEOUT}s")
    print(f"  API_HOST:             {API_HOST}")
    print(f"  API_PORT:             {API_PORT}")
    print(f"  CORS_ORIGINS:         {', '.join(CORS_ORIGINS)}")
    print(f"  RATE_LIMIT_ENABLED:   {RATE_LIMIT_ENABLED}")
    print(f"  LOG_LEVEL:            {LOG_LEVEL}")
    print(f"  LOG_FORMAT:           {LOG_FORMAT}")
    print(f"  PROJECT_ROOT:         {PROJECT_ROOT}")
    print("=" * 50)


if __name__ == "__main__":
    print_config()
    sys.exit(1 if validate() else 0)
