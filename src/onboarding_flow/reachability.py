"""Reachability predicates — gate actions on how far an applicant has got.

Both predicates are pure reads over an already-loaded :class:`ApplicantView`
and never raise.  They tolerate drift (a stored stage that is no longer in
the applicant's flow) by comparing positions in the maximal flow, where
every stage has a place.
"""

from __future__ import annotations

from datetime import datetime

from onboarding_flow.models import ApplicantView
from onboarding_flow.stages import (
    StageId,
    index_of,
    is_final,
    maximal_flow,
    next_stage,
    resolve_flow,
)


def has_reached(record: ApplicantView, target: StageId) -> bool:
    """True if the applicant's furthest stage is at or beyond ``target``.

    A stage that does not apply under the applicant's current options is
    never reached.
    """
    flow = resolve_flow(record.options)
    target_idx = index_of(target, flow)
    if target_idx < 0:
        return False

    current = record.status.current_stage
    current_idx = index_of(current, flow)
    if current_idx >= 0:
        return current_idx >= target_idx

    # Drifted: compare both in maximal-flow order
    full = maximal_flow()
    current_idx = index_of(current, full)
    if current_idx >= 0:
        return current_idx >= index_of(target, full)

    # Unknown stage: a completed applicant has reached everything
    return record.status.completed


def has_completed(record: ApplicantView, stage: StageId) -> bool:
    """True if ``stage`` is behind the applicant.

    Equivalent to having reached the successor; the final stage counts as
    completed only once the whole onboarding is.
    """
    flow = resolve_flow(record.options)
    if index_of(stage, flow) < 0:
        return False
    successor = next_stage(stage, flow)
    if successor is not None:
        return has_reached(record, successor)
    return is_final(stage, flow) and record.status.completed


def onboarding_expired(record: ApplicantView, now: datetime) -> bool:
    """True when the applicant's resume deadline is missing or has passed."""
    if record.resume_expires_at is None:
        return True
    return now > record.resume_expires_at
