"""Tests for the stage catalog, flow resolver and flow helpers."""

import itertools

import pytest

from onboarding_flow.stages import (
    BASE_FLOW,
    MAXIMAL_FLOW,
    OPTIONAL_STAGES,
    STAGE_META,
    FlowOptions,
    StageId,
    index_of,
    is_before,
    is_final,
    next_stage,
    parse_stage,
    prev_stage,
    resolve_flow,
)


ALL_OPTIONS = [
    FlowOptions(**dict(zip([flag for _, flag in OPTIONAL_STAGES], values)))
    for values in itertools.product([False, True], repeat=len(OPTIONAL_STAGES))
]


class TestResolveFlow:

    def test_default_is_base_flow(self):
        assert resolve_flow(FlowOptions()) == BASE_FLOW
        assert StageId.FLATBED_TRAINING not in BASE_FLOW

    def test_flatbed_appended_at_end(self):
        flow = resolve_flow(FlowOptions(needs_flatbed_training=True))
        assert flow[-1] is StageId.FLATBED_TRAINING
        assert flow == MAXIMAL_FLOW

    @pytest.mark.parametrize("options", ALL_OPTIONS)
    def test_removing_optional_stages_never_reorders(self, options):
        """Every resolved flow is the maximal flow with some stages filtered out."""
        flow = resolve_flow(options)
        assert flow == tuple(s for s in MAXIMAL_FLOW if s in flow)
        assert flow[: len(BASE_FLOW)] == BASE_FLOW

    def test_maximal_flow_covers_catalog(self):
        assert set(MAXIMAL_FLOW) == set(StageId)
        assert len(MAXIMAL_FLOW) == len(set(MAXIMAL_FLOW))


class TestHelpers:

    def test_index_of_absent_is_minus_one(self):
        assert index_of(StageId.FLATBED_TRAINING, BASE_FLOW) == -1
        assert index_of("retired-stage", BASE_FLOW) == -1
        assert index_of(None, BASE_FLOW) == -1

    def test_index_of_accepts_raw_value(self):
        assert index_of("drive-test", BASE_FLOW) == BASE_FLOW.index(StageId.DRIVE_TEST)

    def test_neighbours(self):
        assert prev_stage(StageId.PREQUALIFICATIONS, BASE_FLOW) is None
        assert next_stage(StageId.PREQUALIFICATIONS, BASE_FLOW) is StageId.APPLICATION_PAGE_1
        assert next_stage(StageId.DRUG_TEST, BASE_FLOW) is None
        assert next_stage(StageId.DRUG_TEST, MAXIMAL_FLOW) is StageId.FLATBED_TRAINING
        assert prev_stage(StageId.POLICIES_CONSENTS, BASE_FLOW) is StageId.APPLICATION_PAGE_5

    def test_neighbours_of_absent_stage(self):
        assert next_stage(StageId.FLATBED_TRAINING, BASE_FLOW) is None
        assert prev_stage(StageId.FLATBED_TRAINING, BASE_FLOW) is None

    def test_is_final_depends_on_flow(self):
        assert is_final(StageId.DRUG_TEST, BASE_FLOW)
        assert not is_final(StageId.DRUG_TEST, MAXIMAL_FLOW)
        assert is_final(StageId.FLATBED_TRAINING, MAXIMAL_FLOW)
        assert not is_final(StageId.DRUG_TEST, ())

    def test_is_before(self):
        assert is_before(StageId.DRIVE_TEST, StageId.DRUG_TEST, BASE_FLOW)
        assert not is_before(StageId.DRUG_TEST, StageId.DRIVE_TEST, BASE_FLOW)
        assert not is_before(StageId.DRUG_TEST, StageId.FLATBED_TRAINING, BASE_FLOW)

    def test_parse_stage(self):
        assert parse_stage("application-form/page-3") is StageId.APPLICATION_PAGE_3
        assert parse_stage(StageId.DRUG_TEST) is StageId.DRUG_TEST
        assert parse_stage("unknown") is None
        assert parse_stage(None) is None


class TestStageMeta:

    def test_every_stage_has_metadata(self):
        assert set(STAGE_META) == set(StageId)

    def test_macro_steps_follow_flow_order(self):
        steps = [STAGE_META[s].macro_step for s in MAXIMAL_FLOW]
        assert steps == sorted(steps)
        assert steps[0] == 1 and steps[-1] == 7

    def test_application_percentages(self):
        pages = [s for s in MAXIMAL_FLOW if s.value.startswith("application-form/")]
        assert [STAGE_META[s].application_percent for s in pages] == [20, 40, 60, 80, 100]
        others = [s for s in MAXIMAL_FLOW if s not in pages]
        assert all(STAGE_META[s].application_percent == 0 for s in others)
