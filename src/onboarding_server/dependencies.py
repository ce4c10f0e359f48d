"""FastAPI dependency injection — DB sessions, the onboarding service and
the session cookie.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on error;
the repository and the core only ever ``flush()``.
"""

import hmac
from typing import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_db.engine import get_session_factory
from onboarding_flow.config import FlowSettings
from onboarding_flow.errors import SessionFailure
from onboarding_flow.service import OnboardingService

from onboarding_server.config import ServerSettings


# ------------------------------------------------------------------
# Database session: transaction boundary lives here
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error.

    A rejected resume session deletes its row before ``SessionFailure``
    propagates, so that delete is committed even though the request fails.
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except SessionFailure:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# Service & settings: stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_service(request: Request) -> OnboardingService:
    """Return the onboarding service singleton from ``app.state``."""
    return request.app.state.service


def get_settings(request: Request) -> ServerSettings:
    return request.app.state.settings


def get_flow_settings(request: Request) -> FlowSettings:
    return request.app.state.flow_settings


# ------------------------------------------------------------------
# Credentials
# ------------------------------------------------------------------

def get_session_token(request: Request) -> str | None:
    """Read the resume-session token from the configured cookie."""
    settings: ServerSettings = request.app.state.settings
    return request.cookies.get(settings.cookie_name)


async def require_admin_key(
    request: Request,
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> str:
    """Validate the ``X-Admin-Key`` header against ``ADMIN_API_KEY``.

    Raises 403 if admin endpoints are disabled or the key does not match,
    401 if the header is missing.
    """
    expected: str | None = request.app.state.settings.admin_api_key
    if not expected:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not configured)",
        )
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="X-Admin-Key header is required")
    # Constant-time comparison to prevent timing side-channels.
    if not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
    return x_admin_key
