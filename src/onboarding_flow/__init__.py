"""onboarding_flow — stage-flow progress engine and resume-session lifecycle.

Public API:
    StageId, FlowOptions   — stage catalog and eligibility flags
    resolve_flow           — the ordered stages that apply to an applicant
    advance                — new status after a stage completes (drift-safe)
    has_reached            — is the applicant at or past a stage
    has_completed          — is a stage behind the applicant
    build_tracker_context  — prev/next/macro-step summary for the wizard
    SessionLifecycleManager — issue / validate-and-slide / revoke sessions
    OnboardingService      — orchestrates the above over a repository

Errors:
    SessionFailure         — expected session outcome with a reason code
    FlowContractError      — caller bug (stage outside the flow)
"""

from onboarding_flow.config import FlowSettings, load_flow_settings
from onboarding_flow.context import build_tracker_context
from onboarding_flow.errors import (
    FlowContractError,
    SessionFailure,
    SessionFailureReason,
)
from onboarding_flow.interfaces import OnboardingStore
from onboarding_flow.models import (
    ApplicantStatus,
    ApplicantView,
    GuardResult,
    TrackerContext,
)
from onboarding_flow.progress import advance, remap_stage
from onboarding_flow.reachability import has_completed, has_reached, onboarding_expired
from onboarding_flow.service import OnboardingService
from onboarding_flow.sessions import (
    IssuedSession,
    SessionLifecycleManager,
    ValidatedSession,
)
from onboarding_flow.stages import (
    BASE_FLOW,
    MAXIMAL_FLOW,
    FlowOptions,
    StageId,
    index_of,
    is_before,
    is_final,
    maximal_flow,
    next_stage,
    prev_stage,
    resolve_flow,
)

__all__ = [
    # Catalog
    "BASE_FLOW",
    "MAXIMAL_FLOW",
    "FlowOptions",
    "StageId",
    "index_of",
    "is_before",
    "is_final",
    "maximal_flow",
    "next_stage",
    "prev_stage",
    "resolve_flow",
    # Progress
    "ApplicantStatus",
    "ApplicantView",
    "advance",
    "remap_stage",
    "has_completed",
    "has_reached",
    "onboarding_expired",
    "build_tracker_context",
    "GuardResult",
    "TrackerContext",
    # Sessions
    "FlowSettings",
    "load_flow_settings",
    "IssuedSession",
    "SessionLifecycleManager",
    "ValidatedSession",
    "OnboardingStore",
    "OnboardingService",
    # Errors
    "FlowContractError",
    "SessionFailure",
    "SessionFailureReason",
]
