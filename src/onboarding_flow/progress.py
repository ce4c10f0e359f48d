"""Progress engine — computes an applicant's new status after a stage completes.

The flow an applicant follows can change after they have already made
progress: an eligibility flag may be switched off while the applicant is
sitting in (or past) the optional stage it enabled.  The stored
``current_stage`` is then no longer a member of the resolved flow
("drift").  The engine never resets progress in that case; it remaps the
stored stage onto the nearest earlier stage that still exists by walking
the maximal flow backwards.

Algorithm for ``advance(status, completed_stage, options)``:

  1. Resolve the applicant's flow and the maximal flow.
  2. ``done_idx`` = position of ``completed_stage`` in the flow.  A stage
     outside the flow is a caller bug -> ``FlowContractError``.
  3. Remap the stored ``current_stage`` into the flow (see
     :func:`remap_stage`).
  4. If the stored position is already past ``completed_stage`` (late or
     duplicate completion), keep the remapped position and only re-derive
     the completion fields.  Otherwise move to the successor, or mark the
     applicant completed when ``completed_stage`` is the final stage.
  5. ``completed_at`` is written once (first completion wins) and is
     never emitted while ``completed`` is false.

Everything here is pure: no I/O, the clock is passed in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from onboarding_flow.errors import FlowContractError
from onboarding_flow.models import ApplicantStatus
from onboarding_flow.stages import (
    Flow,
    FlowOptions,
    StageId,
    index_of,
    maximal_flow,
    next_stage,
    resolve_flow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemappedPosition:
    """Where a stored stage lands inside a (possibly smaller) flow.

    ``index`` is ``-1`` when the applicant is unpositioned.  ``drifted`` is
    true when the stored stage was not itself a member of the flow and a
    surviving predecessor was substituted.
    """

    index: int
    stage: StageId | None
    drifted: bool = False


def remap_stage(
    stage: StageId | str | None,
    flow: Flow,
    *,
    completed: bool = False,
) -> RemappedPosition:
    """Locate ``stage`` in ``flow``, walking the maximal flow back on drift.

    a. A member of ``flow`` maps to itself.
    b. Otherwise, starting at its position in the maximal flow, walk
       backwards and take the first stage that survives in ``flow``.
    c. A stage unknown to both flows positions a completed applicant at the
       final stage (completed applicants are never regressed); anyone else
       is unpositioned.
    """
    idx = index_of(stage, flow)
    if idx >= 0:
        return RemappedPosition(index=idx, stage=flow[idx])

    full = maximal_flow()
    max_idx = index_of(stage, full)
    for candidate in reversed(full[: max_idx + 1] if max_idx >= 0 else ()):
        candidate_idx = index_of(candidate, flow)
        if candidate_idx >= 0:
            logger.info(
                "Remapped drifted stage %s onto %s", stage, candidate.value,
            )
            return RemappedPosition(
                index=candidate_idx, stage=candidate, drifted=True,
            )

    if completed and flow:
        return RemappedPosition(index=len(flow) - 1, stage=flow[-1], drifted=True)
    return RemappedPosition(index=-1, stage=None, drifted=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def advance(
    status: ApplicantStatus,
    completed_stage: StageId,
    options: FlowOptions,
    *,
    now: datetime | None = None,
) -> ApplicantStatus:
    """Return the applicant's status after ``completed_stage`` is finished.

    Raises:
        FlowContractError: ``completed_stage`` is not part of the flow
            resolved from ``options``.
    """
    flow = resolve_flow(options)
    done_idx = index_of(completed_stage, flow)
    if done_idx < 0:
        raise FlowContractError(
            f"Stage {completed_stage!r} is not part of the applicant's flow "
            f"(needs_flatbed_training={options.needs_flatbed_training})"
        )

    position = remap_stage(
        status.current_stage, flow, completed=status.completed,
    )

    # A drifted stage sits strictly after its surviving predecessor, so an
    # equal remapped index still means the applicant is past done_idx.
    already_past = position.index > done_idx or (
        position.drifted and position.index >= 0 and position.index == done_idx
    )

    if already_past:
        if status.completed:
            return ApplicantStatus(
                current_stage=position.stage,
                completed=True,
                completed_at=status.completed_at or now or _utcnow(),
            )
        return ApplicantStatus(
            current_stage=position.stage,
            completed=False,
            completed_at=None,
        )

    successor = next_stage(completed_stage, flow)
    if successor is not None:
        return ApplicantStatus(
            current_stage=successor,
            completed=False,
            completed_at=None,
        )

    return ApplicantStatus(
        current_stage=completed_stage,
        completed=True,
        completed_at=status.completed_at or now or _utcnow(),
    )
