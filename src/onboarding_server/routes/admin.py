"""Admin endpoints — staff result entry, resume issuance, termination and
session cleanup.

Protected by the ``ADMIN_API_KEY`` environment variable.  Every request
must include an ``X-Admin-Key`` header whose value matches the configured
key.  Returns 401 if missing, 403 if wrong.
"""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_flow.config import FlowSettings
from onboarding_flow.models import TrackerContext
from onboarding_flow.service import OnboardingService
from onboarding_flow.stages import FlowOptions

from onboarding_server.config import DEFAULT_CLEANUP_GRACE_DAYS, ServerSettings
from onboarding_server.cookies import set_session_cookie
from onboarding_server.dependencies import (
    get_db,
    get_flow_settings,
    get_service,
    get_settings,
    require_admin_key,
)
from onboarding_server.routes._params import stage_from_path

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_key)],
)


# ------------------------------------------------------------------
# Response models
# ------------------------------------------------------------------

class ResumeSessionResult(BaseModel):
    """Response body for resume-session issuance.

    ``token`` and ``expires_at`` are null when the applicant already
    completed onboarding.
    """
    context: TrackerContext
    token: str | None = None
    expires_at: datetime | None = None


class RevocationResult(BaseModel):
    revoked_sessions: int


class CleanupResult(BaseModel):
    """Response body for cleanup operations."""
    affected_rows: int
    action: str


# ------------------------------------------------------------------
# Applicants
# ------------------------------------------------------------------

@router.post("/applicants/{applicant_id}/resume-session")
async def issue_resume_session(
    applicant_id: uuid.UUID,
    response: Response,
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
    flow_settings: FlowSettings = Depends(get_flow_settings),
) -> ResumeSessionResult:
    """Issue (or reuse) a session once the caller has verified identity.

    Returns 401 with a reason code if the record is missing, terminated
    or past its resume deadline.
    """
    context, issued = await service.resume(db, applicant_id)
    if issued is None:
        return ResumeSessionResult(context=context)
    set_session_cookie(response, issued.token, settings, flow_settings)
    return ResumeSessionResult(
        context=context,
        token=issued.token,
        expires_at=issued.session.expires_at,
    )


@router.patch("/applicants/{applicant_id}/flow-options")
async def set_flow_options(
    applicant_id: uuid.UUID,
    body: FlowOptions,
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
) -> TrackerContext:
    return await service.set_flow_options(db, applicant_id, body)


@router.post("/applicants/{applicant_id}/stages/{stage:path}/complete")
async def complete_stage(
    applicant_id: uuid.UUID,
    stage: str,
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
) -> TrackerContext:
    """Record a staff-entered result (drive test, drug test, training)."""
    return await service.admin_complete_stage(
        db, applicant_id, stage_from_path(stage),
    )


@router.post("/applicants/{applicant_id}/terminate")
async def terminate(
    applicant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
) -> RevocationResult:
    revoked = await service.terminate(db, applicant_id)
    return RevocationResult(revoked_sessions=revoked)


# ------------------------------------------------------------------
# Maintenance
# ------------------------------------------------------------------

@router.post("/cleanup/sessions")
async def cleanup_sessions(
    grace_days: int = Query(DEFAULT_CLEANUP_GRACE_DAYS, ge=0),
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
) -> CleanupResult:
    """Hard-delete revoked sessions and sessions expired more than
    ``grace_days`` ago.
    """
    affected = await service.purge_sessions(db, grace_days=grace_days)
    return CleanupResult(affected_rows=affected, action="purge_sessions")
