"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from onboarding_server.routes.admin import router as admin_router
from onboarding_server.routes.applicants import router as applicants_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(applicants_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
