"""Status and view models — the contract between the core and API callers.

These models are intentionally decoupled from the ORM models in
``onboarding_db`` so that callers never see database internals.  Rows are
converted with :meth:`ApplicantView.from_row`, which only reads plain
attributes and therefore also accepts in-memory test doubles.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from onboarding_flow.stages import FlowOptions, StageId, parse_stage


class ApplicantStatus(BaseModel):
    """Persisted progress of one applicant.

    ``completed_at`` is present if and only if ``completed`` is true.
    """

    model_config = ConfigDict(frozen=True)

    # Stored as a raw string so a stage retired from the catalog still loads
    current_stage: StageId | str
    completed: bool = False
    completed_at: datetime | None = None

    @field_validator("current_stage", mode="before")
    @classmethod
    def _coerce_stage(cls, value: Any) -> Any:
        return parse_stage(value) or value

    @model_validator(mode="after")
    def _completion_timestamp(self) -> "ApplicantStatus":
        if self.completed != (self.completed_at is not None):
            raise ValueError(
                "completed_at must be set exactly when completed is true"
            )
        return self


class ApplicantView(BaseModel):
    """Read model of an applicant record, as the predicates consume it."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    status: ApplicantStatus
    options: FlowOptions
    terminated: bool = False
    resume_expires_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "ApplicantView":
        """Build a view from an ``Applicant`` row (or anything shaped like one)."""
        return cls(
            id=row.id,
            status=ApplicantStatus(
                current_stage=row.current_stage,
                completed=bool(row.completed),
                completed_at=row.completed_at,
            ),
            options=FlowOptions(
                needs_flatbed_training=bool(row.needs_flatbed_training),
            ),
            terminated=bool(row.terminated),
            resume_expires_at=row.resume_expires_at,
        )


class TrackerContext(BaseModel):
    """Public-facing progress context used to route the wizard."""

    id: uuid.UUID
    options: FlowOptions
    status: ApplicantStatus
    flow: list[StageId]
    current_stage: StageId | None
    prev_stage: StageId | None
    next_stage: StageId | None
    macro_step: int
    application_percent: int
    resumable: bool


class GuardResult(BaseModel):
    """Outcome of a non-throwing session check."""

    session_ok: bool
    completed: bool
    reason: str | None = None
    context: TrackerContext
