"""Applicant-facing endpoints — start, guard, context, stage completion.

Every endpoint except ``POST /applicants`` requires the resume-session
cookie.  Each successful call slides the session and re-sets the cookie;
a rejected session yields 401 with a reason code and clears it.
"""

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_flow.config import FlowSettings
from onboarding_flow.models import GuardResult, TrackerContext
from onboarding_flow.service import OnboardingService
from onboarding_flow.stages import FlowOptions

from onboarding_server.config import ServerSettings
from onboarding_server.cookies import (
    apply_session_cookie,
    clear_session_cookie,
    set_session_cookie,
)
from onboarding_server.dependencies import (
    get_db,
    get_flow_settings,
    get_service,
    get_session_token,
    get_settings,
)
from onboarding_server.routes._params import stage_from_path

router = APIRouter(prefix="/applicants", tags=["applicants"])


@router.post("", status_code=201)
async def start_onboarding(
    response: Response,
    body: FlowOptions | None = None,
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
    flow_settings: FlowSettings = Depends(get_flow_settings),
) -> TrackerContext:
    """Create an applicant at the first stage and set the session cookie."""
    context, issued = await service.start_onboarding(db, body or FlowOptions())
    set_session_cookie(response, issued.token, settings, flow_settings)
    return context


@router.get("/{applicant_id}/guard")
async def guard(
    applicant_id: uuid.UUID,
    response: Response,
    token: str | None = Depends(get_session_token),
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
    flow_settings: FlowSettings = Depends(get_flow_settings),
) -> GuardResult:
    """Report whether the session is usable without failing the request.

    The portal uses this to decide between the wizard and the resume page.
    Returns 404 only when the applicant does not exist.
    """
    result, refreshed = await service.guard(db, applicant_id, token)
    apply_session_cookie(response, refreshed, settings, flow_settings)
    return result


@router.get("/{applicant_id}/context")
async def get_context(
    applicant_id: uuid.UUID,
    response: Response,
    token: str | None = Depends(get_session_token),
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
    flow_settings: FlowSettings = Depends(get_flow_settings),
) -> TrackerContext:
    context, refreshed = await service.get_context(db, applicant_id, token)
    set_session_cookie(response, refreshed, settings, flow_settings)
    return context


@router.post("/{applicant_id}/stages/{stage:path}/complete")
async def complete_stage(
    applicant_id: uuid.UUID,
    stage: str,
    response: Response,
    token: str | None = Depends(get_session_token),
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
    flow_settings: FlowSettings = Depends(get_flow_settings),
) -> TrackerContext:
    """Record that the applicant finished ``stage``.

    Raises 403 if the stage is ahead of the applicant, 400 if it is not
    part of their flow.  When this completes onboarding the cookie is
    cleared, since every session is revoked.
    """
    context, refreshed = await service.complete_stage(
        db, applicant_id, token, stage_from_path(stage),
    )
    apply_session_cookie(response, refreshed, settings, flow_settings)
    return context


@router.post("/{applicant_id}/logout", status_code=204)
async def logout(
    applicant_id: uuid.UUID,
    response: Response,
    token: str | None = Depends(get_session_token),
    db: AsyncSession = Depends(get_db),
    service: OnboardingService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> None:
    await service.logout(db, applicant_id, token)
    clear_session_cookie(response, settings)
