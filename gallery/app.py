"""
FastAPI application entry point for the caption gallery.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gallery.auth import InMemoryAuthClient
from gallery.config import get_settings
from gallery.db import InMemoryDbClient
from gallery.demo import seed_demo_content
from gallery.dependencies import get_auth_client, get_db_client
from gallery.errors import BackendError
from gallery.pages import router as pages_router
from gallery.routes import router
from gallery.templates import render_template

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="Caption Gallery", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(pages_router)

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError):
        # Raised outside a route body, e.g. while resolving the session.
        logger.error("Backend failure on %s: %s", request.url.path, exc.message)
        if request.url.path.startswith(settings.api_prefix):
            return JSONResponse(status_code=502, content={"detail": exc.message})
        return render_template(
            request, "error.html", {"error": exc.message}, status_code=502
        )

    if settings.demo_email and settings.demo_password:
        db = get_db_client()
        auth = get_auth_client()
        if isinstance(db, InMemoryDbClient) and isinstance(auth, InMemoryAuthClient):
            if settings.demo_email not in auth.users:
                seed_demo_content(db, auth, settings.demo_email, settings.demo_password)
    return app


app = create_app()
