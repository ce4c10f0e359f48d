"""onboarding_db — PostgreSQL persistence for applicants and resume sessions.

Provides the ORM models, the async engine factory and the repository that
implements ``onboarding_flow.interfaces.OnboardingStore``.
"""

from onboarding_db.engine import dispose_engine, get_engine, get_session_factory
from onboarding_db.models.applicant import Applicant
from onboarding_db.models.resume_session import ResumeSession
from onboarding_db.repository import OnboardingRepository

__all__ = [
    "Applicant",
    "ResumeSession",
    "OnboardingRepository",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
]
