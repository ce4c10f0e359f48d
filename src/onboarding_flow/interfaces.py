"""Abstract storage contract consumed by the session manager and service.

``onboarding_db.repository.OnboardingRepository`` is the PostgreSQL
implementation; tests use an in-memory one.  Every method takes the
caller's ``AsyncSession`` first so the caller controls the transaction:
implementations ``flush()`` but never ``commit()``.

Rows returned by the store are plain attribute bags.  Applicant rows carry
``id``, ``current_stage``, ``completed``, ``completed_at``,
``needs_flatbed_training``, ``terminated`` and ``resume_expires_at``;
session rows carry ``id``, ``applicant_id``, ``token``, ``expires_at``,
``last_used_at`` and ``revoked``.

Typical request flow::

    manager = SessionLifecycleManager(repo, settings)
    validated = await manager.validate_and_slide(db, applicant_id, token)
    status = advance(view.status, stage, view.options)
    await repo.save_applicant_status(db, validated.record, status)
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_flow.models import ApplicantStatus
from onboarding_flow.stages import FlowOptions, StageId


class OnboardingStore(ABC):
    """Persistence operations required by the onboarding core."""

    # --- Applicant records ---

    @abstractmethod
    async def create_applicant(
        self,
        db: AsyncSession,
        *,
        first_stage: StageId,
        options: FlowOptions,
        resume_expires_at: datetime,
    ) -> Any:
        """Insert a new applicant positioned at ``first_stage``."""
        ...

    @abstractmethod
    async def get_applicant(self, db: AsyncSession, applicant_id: uuid.UUID) -> Any | None:
        """Load an applicant by id, or ``None``."""
        ...

    @abstractmethod
    async def save_applicant_status(
        self, db: AsyncSession, applicant: Any, status: ApplicantStatus,
    ) -> Any:
        """Persist a status computed by the progress engine."""
        ...

    @abstractmethod
    async def save_flow_options(
        self, db: AsyncSession, applicant: Any, options: FlowOptions,
    ) -> Any:
        """Persist changed eligibility flags."""
        ...

    @abstractmethod
    async def extend_resume_deadline(
        self, db: AsyncSession, applicant: Any, resume_expires_at: datetime,
    ) -> Any:
        """Move the applicant's coarse resume deadline."""
        ...

    @abstractmethod
    async def mark_terminated(
        self, db: AsyncSession, applicant: Any, *, at: datetime,
    ) -> Any:
        """Flag the applicant as terminated."""
        ...

    # --- Resume sessions ---

    @abstractmethod
    async def upsert_session(
        self,
        db: AsyncSession,
        *,
        applicant_id: uuid.UUID,
        token: str,
        expires_at: datetime,
        last_used_at: datetime,
    ) -> Any:
        """Atomically insert or refresh the applicant's single session row.

        Must be one conditional write at the storage layer.  When a row
        already exists its token is kept, ``expires_at``/``last_used_at``
        are refreshed and ``revoked`` is cleared.
        """
        ...

    @abstractmethod
    async def get_session(
        self, db: AsyncSession, *, token: str, applicant_id: uuid.UUID,
    ) -> Any | None:
        """Fetch the session matching both ``token`` and ``applicant_id``."""
        ...

    @abstractmethod
    async def delete_session(self, db: AsyncSession, session: Any) -> None:
        """Physically remove one session row."""
        ...

    @abstractmethod
    async def touch_session(
        self,
        db: AsyncSession,
        session: Any,
        *,
        expires_at: datetime,
        last_used_at: datetime,
    ) -> Any:
        """Slide a session's expiry and record its use."""
        ...

    @abstractmethod
    async def revoke_sessions(self, db: AsyncSession, applicant_id: uuid.UUID) -> int:
        """Mark every session of the applicant revoked; return rows affected."""
        ...

    @abstractmethod
    async def purge_stale_sessions(
        self, db: AsyncSession, *, now: datetime, grace_days: int = 0,
    ) -> int:
        """Delete revoked or expired session rows; return rows deleted."""
        ...
