"""Applicant ORM model — one row per onboarding applicant.

Holds the persisted progress status, the eligibility flags the flow is
resolved from, the termination flag and the coarse resume deadline.  Form
payloads live elsewhere; this table only carries what the progress engine
and session lifecycle need.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Index, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from onboarding_flow.stages import StageId

from onboarding_db.models.base import Base


class Applicant(Base):
    """An applicant moving through the onboarding flow."""

    __tablename__ = "applicants"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Progress status ---
    # Furthest stage reached; a plain string so retired stages still load
    current_stage: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default=StageId.PREQUALIFICATIONS.value,
    )
    completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )
    # Written once on first completion
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # --- Eligibility flags (FlowOptions) ---
    needs_flatbed_training: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )

    # --- Termination ---
    terminated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )
    terminated_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # --- Resume window ---
    resume_expires_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    sessions = relationship(
        "ResumeSession",
        back_populates="applicant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # completed_at is present exactly when completed is true
        CheckConstraint(
            "completed = (completed_at IS NOT NULL)",
            name="ck_completed_has_timestamp",
        ),
        CheckConstraint(
            "NOT terminated OR terminated_at IS NOT NULL",
            name="ck_terminated_has_timestamp",
        ),
        Index("ix_applicants_current_stage", "current_stage"),
        Index(
            "ix_applicants_resume_expires_at",
            "resume_expires_at",
            postgresql_where=text("NOT completed AND NOT terminated"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Applicant(id={self.id!s}, stage={self.current_stage!r}, "
            f"completed={self.completed}, terminated={self.terminated})>"
        )
