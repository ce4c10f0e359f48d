"""ResumeSession ORM model — the applicant's sliding resume session.

At most one row per applicant: ``applicant_id`` is unique and is the
conflict target of the session upsert, so concurrent session starts for
the same applicant converge on a single row.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, ForeignKey, Index, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from onboarding_db.models.base import Base


class ResumeSession(Base):
    """One resume session bound to one applicant."""

    __tablename__ = "resume_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    applicant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applicants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    # Opaque credential handed to the client
    token: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    expires_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False
    )
    last_used_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False
    )
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    applicant = relationship("Applicant", back_populates="sessions")

    __table_args__ = (
        # Cleanup scans for expired or revoked rows
        Index("ix_resume_sessions_expires_at", "expires_at"),
        Index(
            "ix_resume_sessions_revoked",
            "revoked",
            postgresql_where=text("revoked"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ResumeSession(id={self.id!s}, applicant={self.applicant_id!s}, "
            f"expires_at={self.expires_at!s}, revoked={self.revoked})>"
        )
