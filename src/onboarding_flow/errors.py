"""Exception types raised by the onboarding core.

Two families:

* ``SessionFailure`` — an *expected* resume-session outcome (expired,
  revoked, completed, ...).  It always carries a machine-readable reason
  code so the HTTP layer can pick user-facing messaging.
* ``FlowContractError`` — a caller bug, e.g. reporting completion of a
  stage that is not part of the applicant's flow.  Never mapped to a 4xx.

Storage errors are not wrapped; they propagate unchanged.
"""

import enum


class SessionFailureReason(str, enum.Enum):
    """Why a resume session was rejected."""

    INVALID_TOKEN = "invalid_token"
    NOT_FOUND_OR_MISMATCH = "not_found_or_mismatch"
    REVOKED = "revoked"
    EXPIRED = "expired"
    RECORD_NOT_FOUND = "record_not_found"
    TERMINATED = "terminated"
    RECORD_EXPIRED = "record_expired"
    ALREADY_COMPLETED = "already_completed"


# Client-facing wording per reason
FAILURE_MESSAGES: dict[SessionFailureReason, str] = {
    SessionFailureReason.INVALID_TOKEN: "session expired, resume required",
    SessionFailureReason.NOT_FOUND_OR_MISMATCH: "session expired, resume required",
    SessionFailureReason.REVOKED: "session expired, resume required",
    SessionFailureReason.EXPIRED: "session expired, resume required",
    SessionFailureReason.RECORD_NOT_FOUND: "onboarding record not found",
    SessionFailureReason.TERMINATED: "onboarding terminated",
    SessionFailureReason.RECORD_EXPIRED: "onboarding time expired",
    SessionFailureReason.ALREADY_COMPLETED: "onboarding already completed",
}


class SessionFailure(Exception):
    """A resume session could not be used; see ``reason``."""

    def __init__(self, reason: SessionFailureReason) -> None:
        self.reason = reason
        super().__init__(FAILURE_MESSAGES[reason])

    @property
    def message(self) -> str:
        return FAILURE_MESSAGES[self.reason]


class FlowContractError(RuntimeError):
    """The progress engine was called with input that violates its contract."""
