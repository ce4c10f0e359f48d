"""Async repository for applicants and resume sessions.

Implements :class:`onboarding_flow.interfaces.OnboardingStore` on
PostgreSQL.  Every method takes the caller's ``AsyncSession`` and only
``flush()``es; the caller (the FastAPI ``get_db`` dependency or the
cleanup CLI) owns ``commit()``.

No business rules live here.  Structural invariants (completion timestamp
present iff completed, one session per applicant) are enforced by
constraints on the tables.
"""

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import case, delete, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_flow.interfaces import OnboardingStore
from onboarding_flow.models import ApplicantStatus
from onboarding_flow.stages import FlowOptions, StageId

from onboarding_db.models.applicant import Applicant
from onboarding_db.models.resume_session import ResumeSession


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OnboardingRepository(OnboardingStore):
    """Read/write operations on ``applicants`` and ``resume_sessions``."""

    # ------------------------------------------------------------------
    # Applicants
    # ------------------------------------------------------------------

    async def create_applicant(
        self,
        db: AsyncSession,
        *,
        first_stage: StageId,
        options: FlowOptions,
        resume_expires_at: datetime,
    ) -> Applicant:
        applicant = Applicant(
            current_stage=first_stage.value,
            completed=False,
            needs_flatbed_training=options.needs_flatbed_training,
            resume_expires_at=resume_expires_at,
        )
        db.add(applicant)
        await db.flush()  # populate id and defaults
        return applicant

    async def get_applicant(
        self, db: AsyncSession, applicant_id: uuid.UUID
    ) -> Applicant | None:
        return await db.get(Applicant, applicant_id)

    async def save_applicant_status(
        self, db: AsyncSession, applicant: Applicant, status: ApplicantStatus
    ) -> Applicant:
        """Write the engine's status onto the row.

        ``current_stage`` is stored as its string value.
        """
        stage = status.current_stage
        applicant.current_stage = getattr(stage, "value", stage)
        applicant.completed = status.completed
        applicant.completed_at = status.completed_at
        applicant.updated_at = _now()
        await db.flush()
        return applicant

    async def save_flow_options(
        self, db: AsyncSession, applicant: Applicant, options: FlowOptions
    ) -> Applicant:
        applicant.needs_flatbed_training = options.needs_flatbed_training
        applicant.updated_at = _now()
        await db.flush()
        return applicant

    async def extend_resume_deadline(
        self, db: AsyncSession, applicant: Applicant, resume_expires_at: datetime
    ) -> Applicant:
        applicant.resume_expires_at = resume_expires_at
        applicant.updated_at = _now()
        await db.flush()
        return applicant

    async def mark_terminated(
        self, db: AsyncSession, applicant: Applicant, *, at: datetime
    ) -> Applicant:
        applicant.terminated = True
        applicant.terminated_at = at
        applicant.updated_at = at
        await db.flush()
        return applicant

    # ------------------------------------------------------------------
    # Resume sessions
    # ------------------------------------------------------------------

    async def upsert_session(
        self,
        db: AsyncSession,
        *,
        applicant_id: uuid.UUID,
        token: str,
        expires_at: datetime,
        last_used_at: datetime,
    ) -> ResumeSession:
        """INSERT ... ON CONFLICT (applicant_id) DO UPDATE ... RETURNING.

        One statement, so two concurrent callers for the same applicant
        both end up with the same row and the same token.  A revoked or
        expired row gets the new token: a token once rejected never
        becomes valid again.
        """
        stmt = pg_insert(ResumeSession).values(
            id=uuid.uuid4(),
            applicant_id=applicant_id,
            token=token,
            expires_at=expires_at,
            last_used_at=last_used_at,
            revoked=False,
            created_at=last_used_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ResumeSession.applicant_id],
            set_={
                "token": case(
                    (
                        or_(
                            ResumeSession.revoked.is_(True),
                            ResumeSession.expires_at <= stmt.excluded.last_used_at,
                        ),
                        stmt.excluded.token,
                    ),
                    else_=ResumeSession.token,
                ),
                "expires_at": stmt.excluded.expires_at,
                "last_used_at": stmt.excluded.last_used_at,
                "revoked": False,
            },
        ).returning(ResumeSession)
        result = await db.scalars(
            stmt, execution_options={"populate_existing": True},
        )
        return result.one()

    async def get_session(
        self, db: AsyncSession, *, token: str, applicant_id: uuid.UUID
    ) -> ResumeSession | None:
        stmt = select(ResumeSession).where(
            ResumeSession.token == token,
            ResumeSession.applicant_id == applicant_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_session(self, db: AsyncSession, session: ResumeSession) -> None:
        await db.delete(session)
        await db.flush()

    async def touch_session(
        self,
        db: AsyncSession,
        session: ResumeSession,
        *,
        expires_at: datetime,
        last_used_at: datetime,
    ) -> ResumeSession:
        session.expires_at = expires_at
        session.last_used_at = last_used_at
        await db.flush()
        return session

    async def revoke_sessions(self, db: AsyncSession, applicant_id: uuid.UUID) -> int:
        stmt = (
            update(ResumeSession)
            .where(
                ResumeSession.applicant_id == applicant_id,
                ResumeSession.revoked.is_(False),
            )
            .values(revoked=True)
            .execution_options(synchronize_session="fetch")
        )
        result = await db.execute(stmt)
        await db.flush()
        return result.rowcount

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def purge_stale_sessions(
        self, db: AsyncSession, *, now: datetime, grace_days: int = 0
    ) -> int:
        """Hard-delete revoked sessions and sessions expired before the grace cutoff."""
        cutoff = now - timedelta(days=grace_days)
        stmt = delete(ResumeSession).where(
            or_(
                ResumeSession.revoked.is_(True),
                ResumeSession.expires_at <= cutoff,
            )
        )
        result = await db.execute(stmt)
        await db.flush()
        return result.rowcount
