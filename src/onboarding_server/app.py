"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that wires the repository, session manager and service
  - CORS middleware (credentials allowed for the session cookie)
  - Global exception handlers (SessionFailure → 401, ValueError → 4xx)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``onboarding-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from onboarding_db.engine import dispose_engine, get_engine
from onboarding_db.repository import OnboardingRepository
from onboarding_flow.config import FlowSettings, load_flow_settings
from onboarding_flow.errors import SessionFailure
from onboarding_flow.service import OnboardingService
from onboarding_flow.sessions import SessionLifecycleManager

from onboarding_server.config import ServerSettings, load_settings
from onboarding_server.errors import (
    generic_error_handler,
    session_failure_handler,
    value_error_handler,
)
from onboarding_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service at startup, release the DB pool on shutdown."""
    flow_settings: FlowSettings = app.state.flow_settings

    repo = OnboardingRepository()
    sessions = SessionLifecycleManager(repo, flow_settings)
    app.state.service = OnboardingService(repo, sessions)
    logger.info(
        "Onboarding service ready (session_ttl=%s, resume_ttl=%s)",
        flow_settings.session_ttl, flow_settings.resume_ttl,
    )

    yield

    # --- Shutdown ---
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(
    settings: ServerSettings | None = None,
    flow_settings: FlowSettings | None = None,
) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()
    if flow_settings is None:
        flow_settings = load_flow_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Onboarding API Server",
        description="Applicant onboarding progress and resume sessions",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.flow_settings = flow_settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(SessionFailure, session_failure_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity."""
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "ok"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": "database unavailable"}

    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn onboarding_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``onboarding-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "onboarding_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
