"""
Structured Logging Configuration - Single setup for all modules.

Call setup_logging() once at application startup. All modules then use:
    import logging
    logger = logging.getLogger(__name__)

Supports two formats:
- "text": Human-readable with timestamps and module names
- "json": Machine-parseable JSON lines for log aggregation
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Extra fields the edge functions attach via logger.info(..., extra={...})
EXTRA_FIELDS = ("session_id", "user_id", "phase", "function_name",
                "request_id", "duration_ms")


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter for production use."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry)


class TextFormatter(logging.Formatter):
    """Human-readable log formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


_initialized = False


def setup_logging(level: str = None, fmt: str = None, log_file: str = None):
    """Configure logging for the entire application.

    Safe to call multiple times; only the first call has an effect.

    Args:
        level: Log level override (default: from LOG_LEVEL env var or INFO)
        fmt: Format override ("text" or "json", default: from LOG_FORMAT env var)
        log_file: Log file path override (default: from LOG_FILE env var)
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = level or os.environ.get("LOG_LEVEL", "INFO")
    fmt = fmt or os.environ.get("LOG_FORMAT", "text")
    log_file = log_file or os.environ.get("LOG_FILE", "")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    formatter = JSONFormatter() if fmt == "json" else TextFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Quiet down noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger = logging.getLogger("opener")
    logger.info("Logging configured: level=%s, format=%s%s",
                level, fmt, f", file={log_file}" if log_file else "")


def get_function_logger(function_name: str) -> logging.Logger:
    """Get a named logger for one edge function.

    Usage:
        logger = get_function_logger("link_guest_profile")
        logger.info("Linking", extra={"session_id": sid})
    """
    return logging.getLogger(f"opener.functions.{function_name}")
