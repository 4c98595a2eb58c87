"""Error responses for the edge-function endpoints: {"error": ..., "message": ...}."""

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("opener.api")


class AppError(Exception):
    """Raised from a route to return a {error, message} body with the given status.

    Extra keyword payload (e.g. company=...) is merged into the body.
    """

    def __init__(self, status_code: int, error: str, message: Optional[str] = None,
                 headers: Optional[Dict[str, str]] = None, **extra: Any):
        super().__init__(message or error)
        self.status_code = status_code
        self.headers = headers
        self.payload = {"error": error}
        if message is not None:
            self.payload["message"] = message
        self.payload.update(extra)


def bad_request(error: str, **extra) -> AppError:
    return AppError(400, error, **extra)


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload, headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error",
                                                  "message": str(exc)})
