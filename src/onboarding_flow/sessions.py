"""Resume-session lifecycle — issue, validate, slide and revoke.

A resume session binds an opaque token to one applicant record.  Its
expiry slides forward by ``FlowSettings.session_ttl`` on every successful
use.  Validation is fail-closed: once a session is classified as unusable
(revoked, expired, orphaned, or its applicant is finished) the row is
deleted *before* the failure is reported, so the same token can never be
accepted later.

States::

    active ──► expired ──► (row deleted on next use)
      │
      └────► revoked ──► (row deleted on next use / cleanup)

The manager takes its repository, settings and clock explicitly; there is
no module-level singleton.
"""

from __future__ import annotations

import logging
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_flow.config import FlowSettings
from onboarding_flow.errors import SessionFailure, SessionFailureReason
from onboarding_flow.interfaces import OnboardingStore
from onboarding_flow.models import ApplicantView
from onboarding_flow.reachability import onboarding_expired

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# token_urlsafe(32) yields 43 chars; accept a little slack for rotation
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{32,128}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_token() -> str:
    """Generate a fresh opaque session token."""
    return secrets.token_urlsafe(32)


def parse_applicant_id(raw: str | uuid.UUID | None) -> uuid.UUID | None:
    """Coerce ``raw`` to a UUID, or ``None`` if it is not one."""
    if isinstance(raw, uuid.UUID):
        return raw
    if not raw:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


@dataclass(frozen=True)
class IssuedSession:
    """A session row plus the token to hand to the client."""

    session: Any
    token: str


@dataclass(frozen=True)
class ValidatedSession:
    """Result of a successful :meth:`SessionLifecycleManager.validate_and_slide`."""

    record: Any
    view: ApplicantView
    session: Any
    token: str


class SessionLifecycleManager:
    """Issues and validates sliding resume sessions.

    Args:
        repo: storage implementing :class:`OnboardingStore`
        settings: session and resume-window lengths
        clock: returns the current aware datetime; injected for tests
    """

    def __init__(
        self,
        repo: OnboardingStore,
        settings: FlowSettings | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._repo = repo
        self._settings = settings or FlowSettings()
        self._clock = clock

    @property
    def settings(self) -> FlowSettings:
        return self._settings

    def now(self) -> datetime:
        return self._clock()

    def next_resume_deadline(self) -> datetime:
        """Resume deadline granted after a successful stage completion."""
        return self._clock() + self._settings.resume_ttl

    # ==================================================================
    # Issue
    # ==================================================================

    async def create_or_reuse_session(
        self, db: AsyncSession, applicant_id: uuid.UUID,
    ) -> IssuedSession:
        """Create the applicant's session, or refresh the existing one.

        A single atomic upsert keyed by applicant id, so concurrent calls
        converge on one row.  A live row keeps its token; a revoked or
        expired one is re-keyed.
        """
        now = self._clock()
        session = await self._repo.upsert_session(
            db,
            applicant_id=applicant_id,
            token=new_token(),
            expires_at=now + self._settings.session_ttl,
            last_used_at=now,
        )
        logger.info("Issued resume session for applicant %s", applicant_id)
        return IssuedSession(session=session, token=session.token)

    # ==================================================================
    # Validate
    # ==================================================================

    async def validate_and_slide(
        self,
        db: AsyncSession,
        applicant_id: str | uuid.UUID | None,
        token: str | None,
    ) -> ValidatedSession:
        """Check ``token`` for ``applicant_id`` and slide its expiry.

        Raises:
            SessionFailure: with the reason code of the first failed check.
        """
        pk = parse_applicant_id(applicant_id)
        if pk is None or not token or not _TOKEN_RE.match(token):
            raise self._fail(SessionFailureReason.INVALID_TOKEN, applicant_id)

        session = await self._repo.get_session(db, token=token, applicant_id=pk)
        if session is None:
            raise self._fail(SessionFailureReason.NOT_FOUND_OR_MISMATCH, pk)

        now = self._clock()

        if session.revoked:
            await self._repo.delete_session(db, session)
            raise self._fail(SessionFailureReason.REVOKED, pk)

        if session.expires_at <= now:
            await self._repo.delete_session(db, session)
            raise self._fail(SessionFailureReason.EXPIRED, pk)

        record = await self._repo.get_applicant(db, pk)
        if record is None:
            await self._repo.delete_session(db, session)
            raise self._fail(SessionFailureReason.RECORD_NOT_FOUND, pk)

        view = ApplicantView.from_row(record)

        if view.terminated:
            await self._repo.delete_session(db, session)
            raise self._fail(SessionFailureReason.TERMINATED, pk)

        if onboarding_expired(view, now):
            await self._repo.delete_session(db, session)
            raise self._fail(SessionFailureReason.RECORD_EXPIRED, pk)

        if view.status.completed:
            await self._repo.delete_session(db, session)
            raise self._fail(SessionFailureReason.ALREADY_COMPLETED, pk)

        session = await self._repo.touch_session(
            db,
            session,
            expires_at=now + self._settings.session_ttl,
            last_used_at=now,
        )
        return ValidatedSession(
            record=record, view=view, session=session, token=session.token,
        )

    # ==================================================================
    # Revoke
    # ==================================================================

    async def revoke_all(self, db: AsyncSession, applicant_id: uuid.UUID) -> int:
        """Soft-revoke every session of the applicant."""
        affected = await self._repo.revoke_sessions(db, applicant_id)
        logger.info(
            "Revoked %d session(s) for applicant %s", affected, applicant_id,
        )
        return affected

    async def purge_stale(self, db: AsyncSession, *, grace_days: int = 0) -> int:
        """Hard-delete revoked rows and rows expired before the grace cutoff."""
        affected = await self._repo.purge_stale_sessions(
            db, now=self._clock(), grace_days=grace_days,
        )
        logger.info(
            "Purged %d stale session(s) (grace_days=%d)", affected, grace_days,
        )
        return affected

    # ==================================================================
    # Internal
    # ==================================================================

    @staticmethod
    def _fail(reason: SessionFailureReason, applicant_id: Any) -> SessionFailure:
        logger.info(
            "Resume session rejected: reason=%s applicant=%s",
            reason.value, applicant_id,
        )
        return SessionFailure(reason)
