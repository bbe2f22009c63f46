"""Unit tests for the stage pipeline state machine."""
from types import SimpleNamespace

import pytest

from factory.models.batch import ProductionStage, BatchStatus
from factory.services.stage_pipeline import (
    STAGE_ORDER,
    advance_batch,
    is_forward,
    is_reworkable,
    next_stage,
    requires_full_throughput,
    stage_index,
)


def make_batch(stage: ProductionStage, status: BatchStatus = BatchStatus.IN_PROGRESS):
    return SimpleNamespace(
        batch_number="B-UNIT",
        current_stage=stage.value,
        status=status.value,
        completed_at=None,
    )


class TestStageOrder:

    def test_rework_is_an_ordering_slot_between_quality_and_labeling(self):
        assert stage_index("REWORK") == stage_index("QUALITY_CHECK") + 1
        assert stage_index("LABELING") == stage_index("REWORK") + 1

    def test_next_stage_skips_rework(self):
        assert next_stage(ProductionStage.QUALITY_CHECK) == ProductionStage.LABELING

    def test_next_stage_of_packing_is_none(self):
        assert next_stage("PACKING") is None

    @pytest.mark.parametrize("stage", [s for s in STAGE_ORDER if s != ProductionStage.REWORK][:-1])
    def test_next_stage_always_moves_forward(self, stage):
        assert is_forward(stage, next_stage(stage))

    def test_unknown_stage_is_rejected(self):
        with pytest.raises(ValueError):
            stage_index("DYEING")

    def test_stage_policies(self):
        assert is_reworkable("CUTTING") and is_reworkable("STITCHING")
        assert not is_reworkable("QUALITY_CHECK")
        assert requires_full_throughput("FOLDING")
        assert not requires_full_throughput("CUTTING")


class TestAdvanceBatch:

    def test_pending_batch_becomes_in_progress(self):
        batch = make_batch(ProductionStage.CUTTING, BatchStatus.PENDING)

        transition = advance_batch(batch)

        assert batch.current_stage == "STITCHING"
        assert batch.status == "IN_PROGRESS"
        assert transition.from_stage == "CUTTING"
        assert transition.to_stage == "STITCHING"
        assert not transition.completed

    def test_quality_check_advances_to_labeling(self):
        batch = make_batch(ProductionStage.QUALITY_CHECK)

        advance_batch(batch)

        assert batch.current_stage == "LABELING"

    def test_packing_completes_without_moving(self):
        batch = make_batch(ProductionStage.PACKING)

        transition = advance_batch(batch)

        assert batch.current_stage == "PACKING"
        assert batch.status == "COMPLETED"
        assert batch.completed_at is not None
        assert transition.completed
        assert transition.to_stage is None

    def test_walk_whole_pipeline(self):
        batch = make_batch(ProductionStage.CUTTING, BatchStatus.PENDING)
        visited = [batch.current_stage]

        while batch.status != "COMPLETED":
            advance_batch(batch)
            if batch.current_stage != visited[-1]:
                visited.append(batch.current_stage)

        assert visited == ["CUTTING", "STITCHING", "QUALITY_CHECK", "LABELING", "FOLDING", "PACKING"]
