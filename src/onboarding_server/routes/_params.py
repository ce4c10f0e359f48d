"""Path-parameter helpers shared by the routers."""

from onboarding_flow.stages import StageId, parse_stage


def stage_from_path(raw: str) -> StageId:
    """Resolve a stage route token, e.g. ``application-form/page-2``.

    Raises:
        ValueError: the token names no known stage (mapped to 404)
    """
    stage = parse_stage(raw.strip("/"))
    if stage is None:
        raise ValueError(f"Stage not found: {raw!r}")
    return stage
