"""
Opener Studio - FastAPI Backend
Edge functions for guest mode and account linking, AI generation endpoints,
and REST CRUD for companies, contacts, saved messages and interactions.

Run: uvicorn opener.api.app:app --reload --port 8000
"""

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from opener import config
from opener.agents.error_handler import get_errors
from opener.agents.llm_gateway import get_gateway
from opener.api.errors import AppError, app_error_handler, unhandled_error_handler
from opener.api.middleware import CORSSecurityMiddleware
from opener.api.routers import companies, contacts, functions, guest, interactions, messages
from opener.db import models
from opener.logging_config import setup_logging

logger = logging.getLogger("opener.api")


def create_app(allowed_origins=None) -> FastAPI:
    """Build the app. allowed_origins overrides OPENER_CORS_ORIGINS."""
    setup_logging(level=config.LOG_LEVEL, fmt=config.LOG_FORMAT, log_file=config.LOG_FILE or None)

    app = FastAPI(
        title="Opener Studio",
        description="Job-search networking backend: guest sessions, profile linking and AI outreach.",
        version="1.0.0",
    )
    app.add_middleware(
        CORSSecurityMiddleware,
        allowed_origins=config.CORS_ORIGINS if allowed_origins is None else allowed_origins,
    )
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ─── ROUTERS ─────────────────────────────────────────────────
    app.include_router(guest.router)
    app.include_router(functions.router)
    app.include_router(companies.router)
    app.include_router(contacts.router)
    app.include_router(messages.router)
    app.include_router(interactions.router)

    @app.get("/api/health")
    def health():
        try:
            counts = models.get_table_counts()
        except Exception as e:
            logger.error("Health check failed: %s", e)
            return JSONResponse(status_code=500, content={"status": "unhealthy", "error": str(e)})
        return {
            "status": "healthy",
            "tables": counts,
            "llm": get_gateway().status(),
            "workflow_errors": len(get_errors()),
            "rate_limit_enabled": config.RATE_LIMIT_ENABLED,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
