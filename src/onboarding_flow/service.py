"""OnboardingService — ties sessions, progress and persistence together.

Each call loads state through the repository, decides with the pure core
(``advance``, ``has_reached``), persists the outcome and returns a
:class:`TrackerContext`.  No in-memory state is kept between calls.  The
caller's ``AsyncSession`` is passed through so the HTTP layer owns the
transaction.

Applicant-facing calls are gated by a resume session::

    validate_and_slide ──► has_reached(stage) ──► advance ──► save
                                                     │
                                 completed? ──► revoke_all

Admin calls (results filled in by staff) skip the session check but apply
the same progression rules.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_flow.context import build_tracker_context
from onboarding_flow.errors import SessionFailure, SessionFailureReason
from onboarding_flow.interfaces import OnboardingStore
from onboarding_flow.models import ApplicantView, GuardResult, TrackerContext
from onboarding_flow.progress import advance
from onboarding_flow.reachability import has_reached, onboarding_expired
from onboarding_flow.sessions import (
    IssuedSession,
    SessionLifecycleManager,
    parse_applicant_id,
)
from onboarding_flow.stages import FlowOptions, StageId, index_of, resolve_flow

logger = logging.getLogger(__name__)


class OnboardingService:
    """Applicant progression on top of the session lifecycle.

    Args:
        repo: storage implementing :class:`OnboardingStore`
        sessions: a manager built on the same repository
    """

    def __init__(
        self, repo: OnboardingStore, sessions: SessionLifecycleManager,
    ) -> None:
        self._repo = repo
        self._sessions = sessions

    # ==================================================================
    # Start / resume
    # ==================================================================

    async def start_onboarding(
        self, db: AsyncSession, options: FlowOptions,
    ) -> tuple[TrackerContext, IssuedSession]:
        """Create an applicant at the first stage and issue a session."""
        first = resolve_flow(options)[0]
        row = await self._repo.create_applicant(
            db,
            first_stage=first,
            options=options,
            resume_expires_at=self._sessions.next_resume_deadline(),
        )
        issued = await self._sessions.create_or_reuse_session(db, row.id)
        logger.info("Started onboarding for applicant %s", row.id)
        return self._context(row), issued

    async def resume(
        self, db: AsyncSession, applicant_id: uuid.UUID,
    ) -> tuple[TrackerContext, IssuedSession | None]:
        """Issue a session for an applicant whose identity was verified.

        A completed applicant gets their context but no session.

        Raises:
            SessionFailure: record missing, terminated, or past its
                resume deadline
        """
        row = await self._repo.get_applicant(db, applicant_id)
        if row is None:
            raise SessionFailure(SessionFailureReason.RECORD_NOT_FOUND)
        view = ApplicantView.from_row(row)
        if view.terminated:
            raise SessionFailure(SessionFailureReason.TERMINATED)
        if onboarding_expired(view, self._sessions.now()):
            raise SessionFailure(SessionFailureReason.RECORD_EXPIRED)
        if view.status.completed:
            return self._context(row), None

        issued = await self._sessions.create_or_reuse_session(db, applicant_id)
        return self._context(row), issued

    # ==================================================================
    # Applicant-facing (session required)
    # ==================================================================

    async def get_context(
        self, db: AsyncSession, applicant_id: str | uuid.UUID, token: str | None,
    ) -> tuple[TrackerContext, str]:
        """Validate the session and return the context plus refreshed token."""
        validated = await self._sessions.validate_and_slide(db, applicant_id, token)
        return self._context(validated.record), validated.token

    async def complete_stage(
        self,
        db: AsyncSession,
        applicant_id: str | uuid.UUID,
        token: str | None,
        stage: StageId,
    ) -> tuple[TrackerContext, str | None]:
        """Record that the applicant finished ``stage``.

        Returns the new context and the refreshed token, or ``None`` as the
        token once the applicant has completed onboarding (all sessions
        are revoked at that point).

        Raises:
            SessionFailure: the session is unusable
            ValueError: the stage is not applicable or not reached yet
        """
        validated = await self._sessions.validate_and_slide(db, applicant_id, token)
        row = await self._progress(db, validated.record, validated.view, stage)
        if row.completed:
            await self._sessions.revoke_all(db, row.id)
            return self._context(row, current_override=stage), None
        return self._context(row, current_override=stage), validated.token

    async def guard(
        self, db: AsyncSession, applicant_id: str | uuid.UUID, token: str | None,
    ) -> tuple[GuardResult, str | None]:
        """Report session health without raising on ordinary session failures.

        Raises:
            SessionFailure: the session outlived its applicant record
            ValueError: the applicant does not exist
        """
        try:
            validated = await self._sessions.validate_and_slide(
                db, applicant_id, token,
            )
        except SessionFailure as exc:
            # The row is gone; the session delete must still commit
            if exc.reason is SessionFailureReason.RECORD_NOT_FOUND:
                raise
            pk = parse_applicant_id(applicant_id)
            if pk is None:
                raise ValueError(f"Applicant not found: {applicant_id!r}") from exc
            row = await self._load(db, pk)
            return GuardResult(
                session_ok=False,
                completed=bool(row.completed),
                reason=exc.reason.value,
                context=self._context(row),
            ), None

        return GuardResult(
            session_ok=True,
            completed=bool(validated.record.completed),
            context=self._context(validated.record),
        ), validated.token

    async def logout(
        self, db: AsyncSession, applicant_id: str | uuid.UUID, token: str | None,
    ) -> int:
        """Revoke every session of the applicant holding ``token``."""
        validated = await self._sessions.validate_and_slide(db, applicant_id, token)
        return await self._sessions.revoke_all(db, validated.view.id)

    # ==================================================================
    # Admin-facing
    # ==================================================================

    async def admin_complete_stage(
        self, db: AsyncSession, applicant_id: uuid.UUID, stage: StageId,
    ) -> TrackerContext:
        """Mark ``stage`` done on behalf of the applicant (staff result entry).

        Raises:
            ValueError: applicant missing/terminated/already completed, or
                the stage is not applicable or not reached yet
        """
        row = await self._load(db, applicant_id)
        view = ApplicantView.from_row(row)
        if view.terminated:
            raise ValueError(f"Applicant not found: {applicant_id} is terminated")
        if view.status.completed:
            raise ValueError(f"Onboarding already completed: {applicant_id}")

        row = await self._progress(db, row, view, stage)
        if row.completed:
            await self._sessions.revoke_all(db, row.id)
        return self._context(row, current_override=stage)

    async def set_flow_options(
        self, db: AsyncSession, applicant_id: uuid.UUID, options: FlowOptions,
    ) -> TrackerContext:
        """Change the applicant's eligibility flags.

        The stored stage is left untouched; the engine remaps it on the
        next advance if the flow shrank underneath it.
        """
        row = await self._load(db, applicant_id)
        row = await self._repo.save_flow_options(db, row, options)
        logger.info(
            "Applicant %s flow options changed: %s", applicant_id,
            options.model_dump(),
        )
        return self._context(row)

    async def terminate(self, db: AsyncSession, applicant_id: uuid.UUID) -> int:
        """Terminate the applicant and revoke their sessions."""
        row = await self._load(db, applicant_id)
        await self._repo.mark_terminated(db, row, at=self._sessions.now())
        return await self._sessions.revoke_all(db, row.id)

    async def purge_sessions(self, db: AsyncSession, *, grace_days: int = 0) -> int:
        return await self._sessions.purge_stale(db, grace_days=grace_days)

    # ==================================================================
    # Internal
    # ==================================================================

    async def _progress(self, db, row, view: ApplicantView, stage: StageId):
        flow = resolve_flow(view.options)
        if index_of(stage, flow) < 0:
            raise ValueError(
                f"Stage {stage.value} is not applicable for applicant {view.id}"
            )
        if not has_reached(view, stage):
            raise ValueError(
                f"Stage {stage.value} not reached yet by applicant {view.id}"
            )

        status = advance(view.status, stage, view.options, now=self._sessions.now())
        row = await self._repo.save_applicant_status(db, row, status)
        row = await self._repo.extend_resume_deadline(
            db, row, self._sessions.next_resume_deadline(),
        )
        logger.info(
            "Applicant %s completed %s -> current=%s completed=%s",
            view.id, stage.value, status.current_stage, status.completed,
        )
        return row

    async def _load(self, db: AsyncSession, applicant_id: uuid.UUID):
        row = await self._repo.get_applicant(db, applicant_id)
        if row is None:
            raise ValueError(f"Applicant not found: {applicant_id}")
        return row

    def _context(self, row, current_override: StageId | None = None) -> TrackerContext:
        return build_tracker_context(
            ApplicantView.from_row(row),
            now=self._sessions.now(),
            current_override=current_override,
        )
