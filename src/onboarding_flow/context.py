"""Tracker context — the minimal progress summary the wizard routes on."""

from __future__ import annotations

from datetime import datetime

from onboarding_flow.models import ApplicantView, TrackerContext
from onboarding_flow.progress import remap_stage
from onboarding_flow.reachability import onboarding_expired
from onboarding_flow.stages import (
    StageId,
    next_stage,
    prev_stage,
    resolve_flow,
    stage_meta,
)


def build_tracker_context(
    record: ApplicantView,
    *,
    now: datetime,
    current_override: StageId | None = None,
) -> TrackerContext:
    """Summarise ``record`` for the wizard.

    ``current_override`` lets a handler report neighbours around the page
    that was just submitted instead of the furthest stage.  A drifted
    stored stage is reported at its remapped position.
    """
    flow = resolve_flow(record.options)
    if current_override is not None:
        current = current_override
    else:
        current = remap_stage(
            record.status.current_stage, flow, completed=record.status.completed,
        ).stage

    if current is None:
        macro_step, percent = 0, 0
        prev, nxt = None, None
    else:
        meta = stage_meta(current)
        macro_step, percent = meta.macro_step, meta.application_percent
        prev, nxt = prev_stage(current, flow), next_stage(current, flow)

    return TrackerContext(
        id=record.id,
        options=record.options,
        status=record.status,
        flow=list(flow),
        current_stage=current,
        prev_stage=prev,
        next_stage=nxt,
        macro_step=macro_step,
        application_percent=percent,
        resumable=not (
            record.terminated
            or record.status.completed
            or onboarding_expired(record, now)
        ),
    )
