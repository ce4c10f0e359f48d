"""Create applicants and resume_sessions.

``resume_sessions.applicant_id`` is UNIQUE: it is the conflict target of
the session upsert that keeps one row per applicant.

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

revision = "20261017_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "applicants",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("current_stage", sa.String(64), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completed_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "needs_flatbed_training", sa.Boolean(), nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("terminated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("terminated_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("resume_expires_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint(
            "completed = (completed_at IS NOT NULL)",
            name="ck_completed_has_timestamp",
        ),
        sa.CheckConstraint(
            "NOT terminated OR terminated_at IS NOT NULL",
            name="ck_terminated_has_timestamp",
        ),
    )
    op.create_index("ix_applicants_current_stage", "applicants", ["current_stage"])
    op.create_index(
        "ix_applicants_resume_expires_at",
        "applicants",
        ["resume_expires_at"],
        postgresql_where=sa.text("NOT completed AND NOT terminated"),
    )

    op.create_table(
        "resume_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "applicant_id", UUID(as_uuid=True),
            sa.ForeignKey("applicants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("expires_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("last_used_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("applicant_id", name="resume_sessions_applicant_id_key"),
        sa.UniqueConstraint("token", name="resume_sessions_token_key"),
    )
    op.create_index("ix_resume_sessions_expires_at", "resume_sessions", ["expires_at"])
    op.create_index(
        "ix_resume_sessions_revoked",
        "resume_sessions",
        ["revoked"],
        postgresql_where=sa.text("revoked"),
    )


def downgrade() -> None:
    op.drop_index("ix_resume_sessions_revoked", table_name="resume_sessions")
    op.drop_index("ix_resume_sessions_expires_at", table_name="resume_sessions")
    op.drop_table("resume_sessions")
    op.drop_index("ix_applicants_resume_expires_at", table_name="applicants")
    op.drop_index("ix_applicants_current_stage", table_name="applicants")
    op.drop_table("applicants")
