"""Session and resume-window configuration.

Read from environment variables at startup and injected into the session
manager; nothing in the core reads the environment at call time.
"""

import os
from dataclasses import dataclass
from datetime import timedelta

# Defaults: the sliding session lasts 6 hours, the applicant may resume
# within 30 days of their last completed stage.
DEFAULT_SESSION_TTL_SECONDS = 6 * 60 * 60
DEFAULT_RESUME_TTL_DAYS = 30


@dataclass(frozen=True)
class FlowSettings:
    """Immutable lifecycle settings for resume sessions."""

    # Sliding-window length, pushed forward on every validated use
    session_ttl: timedelta = timedelta(seconds=DEFAULT_SESSION_TTL_SECONDS)
    # Coarse resume deadline owned by the applicant record
    resume_ttl: timedelta = timedelta(days=DEFAULT_RESUME_TTL_DAYS)


def load_flow_settings() -> FlowSettings:
    """Build settings from ``ONBOARDING_*`` environment variables."""
    return FlowSettings(
        session_ttl=timedelta(
            seconds=int(
                os.getenv(
                    "ONBOARDING_SESSION_TTL_SECONDS",
                    str(DEFAULT_SESSION_TTL_SECONDS),
                )
            )
        ),
        resume_ttl=timedelta(
            days=int(
                os.getenv("ONBOARDING_RESUME_TTL_DAYS", str(DEFAULT_RESUME_TTL_DAYS))
            )
        ),
    )
