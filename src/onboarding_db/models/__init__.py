"""ORM models for onboarding_db."""

from onboarding_db.models.applicant import Applicant
from onboarding_db.models.base import Base
from onboarding_db.models.resume_session import ResumeSession

__all__ = ["Applicant", "Base", "ResumeSession"]
