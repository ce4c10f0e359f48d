"""Stage catalog and flow resolver.

The onboarding wizard walks an applicant through a fixed sequence of
stages.  One stage (flatbed training) is optional: it is appended to the
end of the flow only when the applicant's eligibility flags ask for it.

Base flow::

    prequalifications
      -> application-form/page-1 .. page-5
      -> policies-consents
      -> drive-test
      -> carriers-edge-training
      -> drug-test

Maximal flow = base flow + ``flatbed-training``.

Every helper in this module is pure and total: unknown stages never raise,
they simply report "not in flow" (index ``-1``, ``None`` neighbours).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict


class StageId(str, enum.Enum):
    """All onboarding stages, valued by their wizard route token."""

    PREQUALIFICATIONS = "prequalifications"
    APPLICATION_PAGE_1 = "application-form/page-1"
    APPLICATION_PAGE_2 = "application-form/page-2"
    APPLICATION_PAGE_3 = "application-form/page-3"
    APPLICATION_PAGE_4 = "application-form/page-4"
    APPLICATION_PAGE_5 = "application-form/page-5"
    POLICIES_CONSENTS = "policies-consents"
    DRIVE_TEST = "drive-test"
    CARRIERS_EDGE_TRAINING = "carriers-edge-training"
    DRUG_TEST = "drug-test"
    FLATBED_TRAINING = "flatbed-training"


class FlowOptions(BaseModel):
    """Eligibility flags that decide which optional stages apply."""

    model_config = ConfigDict(frozen=True)

    needs_flatbed_training: bool = False


Flow = tuple[StageId, ...]

BASE_FLOW: Flow = (
    StageId.PREQUALIFICATIONS,
    StageId.APPLICATION_PAGE_1,
    StageId.APPLICATION_PAGE_2,
    StageId.APPLICATION_PAGE_3,
    StageId.APPLICATION_PAGE_4,
    StageId.APPLICATION_PAGE_5,
    StageId.POLICIES_CONSENTS,
    StageId.DRIVE_TEST,
    StageId.CARRIERS_EDGE_TRAINING,
    StageId.DRUG_TEST,
)

# Optional stages in the order they are appended, keyed to the FlowOptions
# attribute that switches them on.
OPTIONAL_STAGES: tuple[tuple[StageId, str], ...] = (
    (StageId.FLATBED_TRAINING, "needs_flatbed_training"),
)


def resolve_flow(options: FlowOptions) -> Flow:
    """Return the ordered stage list that applies under ``options``."""
    extra = tuple(
        stage for stage, flag in OPTIONAL_STAGES if getattr(options, flag)
    )
    return BASE_FLOW + extra


MAXIMAL_FLOW: Flow = BASE_FLOW + tuple(stage for stage, _ in OPTIONAL_STAGES)


def maximal_flow() -> Flow:
    """The superset flow with every optional stage switched on."""
    return MAXIMAL_FLOW


# ------------------------------------------------------------------
# Flow helpers
# ------------------------------------------------------------------

def index_of(stage: StageId | str | None, flow: Flow) -> int:
    """Position of ``stage`` in ``flow``, or ``-1`` if absent."""
    try:
        return flow.index(stage)
    except ValueError:
        return -1


def is_before(a: StageId, b: StageId, flow: Flow) -> bool:
    """True when both stages are in ``flow`` and ``a`` precedes ``b``."""
    ia, ib = index_of(a, flow), index_of(b, flow)
    return ia >= 0 and ib >= 0 and ia < ib


def is_final(stage: StageId, flow: Flow) -> bool:
    return bool(flow) and index_of(stage, flow) == len(flow) - 1


def next_stage(stage: StageId, flow: Flow) -> StageId | None:
    """Successor of ``stage`` in ``flow``; ``None`` at the end or if absent."""
    idx = index_of(stage, flow)
    if idx < 0 or idx + 1 >= len(flow):
        return None
    return flow[idx + 1]


def prev_stage(stage: StageId, flow: Flow) -> StageId | None:
    """Predecessor of ``stage`` in ``flow``; ``None`` at the start or if absent."""
    idx = index_of(stage, flow)
    if idx <= 0:
        return None
    return flow[idx - 1]


def parse_stage(raw: str | StageId | None) -> StageId | None:
    """Coerce a stored/raw value to ``StageId``; ``None`` if unrecognised."""
    if raw is None:
        return None
    try:
        return StageId(raw)
    except ValueError:
        return None


# ------------------------------------------------------------------
# Per-stage metadata
# ------------------------------------------------------------------

@dataclass(frozen=True)
class StageMeta:
    """Display metadata for one stage."""

    label: str
    # Wizard macro step (1..7) shown in the progress header
    macro_step: int
    # Progress across the application-form pages (0 outside them)
    application_percent: int = 0


STAGE_META: dict[StageId, StageMeta] = {
    StageId.PREQUALIFICATIONS: StageMeta("Pre-qualifications", 1),
    StageId.APPLICATION_PAGE_1: StageMeta("Application form, page 1", 2, 20),
    StageId.APPLICATION_PAGE_2: StageMeta("Application form, page 2", 2, 40),
    StageId.APPLICATION_PAGE_3: StageMeta("Application form, page 3", 2, 60),
    StageId.APPLICATION_PAGE_4: StageMeta("Application form, page 4", 2, 80),
    StageId.APPLICATION_PAGE_5: StageMeta("Application form, page 5", 2, 100),
    StageId.POLICIES_CONSENTS: StageMeta("Policies & consents", 3),
    StageId.DRIVE_TEST: StageMeta("Drive test", 4),
    StageId.CARRIERS_EDGE_TRAINING: StageMeta("Carrier's Edge training", 5),
    StageId.DRUG_TEST: StageMeta("Drug test", 6),
    StageId.FLATBED_TRAINING: StageMeta("Flatbed training", 7),
}


def stage_meta(stage: StageId) -> StageMeta:
    return STAGE_META[stage]
