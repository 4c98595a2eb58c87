"""
CORS and security-header middleware.

Preflight OPTIONS requests are answered here with 200. The request Origin is
echoed in Access-Control-Allow-Origin only when it is on the allow-list; other
origins get no CORS header and the browser blocks the response.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("opener.api.middleware")

ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type, x-user-id"
ALLOW_METHODS = "GET, POST, PATCH, DELETE, OPTIONS"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def cors_headers(origin: str, allowed_origins) -> dict:
    headers = {
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Vary": "Origin",
    }
    if origin and origin in allowed_origins:
        headers["Access-Control-Allow-Origin"] = origin
    headers.update(SECURITY_HEADERS)
    return headers


class CORSSecurityMiddleware(BaseHTTPMiddleware):
    """Allow-list CORS plus security headers on every response."""

    def __init__(self, app, allowed_origins=None):
        super().__init__(app)
        self.allowed_origins = frozenset(allowed_origins or ())

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin", "")
        headers = cors_headers(origin, self.allowed_origins)

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)

        if origin and origin not in self.allowed_origins:
            logger.debug("Origin %s not on allow-list", origin)

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response
