"""
Production Stage Pipeline

This module is the SINGLE SOURCE OF TRUTH for batch stage transitions.
Stage advancement happens only here, and only as part of approving a
production log.

Pipeline:
    CUTTING -> STITCHING -> QUALITY_CHECK -> [REWORK] -> LABELING -> FOLDING -> PACKING

REWORK is a slot in the ordering but a batch never sits in it: rework is a
side-channel operation against CUTTING/STITCHING defects that leaves
current_stage untouched, so advancing from QUALITY_CHECK skips straight to
LABELING.
"""

from typing import Optional, List
from dataclasses import dataclass

from factory.core.enum_utils import to_enum
from factory.core.time_utils import utc_now
from factory.models.batch import ProductionStage, BatchStatus


# =============================================================================
# STAGE ORDER (Single Source of Truth)
# =============================================================================

STAGE_ORDER: List[ProductionStage] = [
    ProductionStage.CUTTING,
    ProductionStage.STITCHING,
    ProductionStage.QUALITY_CHECK,
    ProductionStage.REWORK,
    ProductionStage.LABELING,
    ProductionStage.FOLDING,
    ProductionStage.PACKING,
]

FIRST_STAGE = STAGE_ORDER[0]
FINAL_STAGE = STAGE_ORDER[-1]

# Slots in the order that a batch is never moved into
ORDERING_ONLY_STAGES = {ProductionStage.REWORK}

# Stages whose defects can be reworked
REWORKABLE_STAGES = [ProductionStage.CUTTING, ProductionStage.STITCHING]

# Stages where no loss is expected: the whole usable pool goes in and comes out
FULL_THROUGHPUT_STAGES = {
    ProductionStage.LABELING,
    ProductionStage.FOLDING,
    ProductionStage.PACKING,
}

# Stages a defect line may name as its origin
DEFECT_ORIGIN_STAGES = {
    ProductionStage.CUTTING,
    ProductionStage.STITCHING,
    ProductionStage.QUALITY_CHECK,
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def stage_index(stage) -> int:
    """Position of a stage in the pipeline order."""
    resolved = to_enum(stage, ProductionStage)
    if resolved is None:
        raise ValueError(f"Unknown production stage: {stage}")
    return STAGE_ORDER.index(resolved)


def next_stage(stage) -> Optional[ProductionStage]:
    """
    Stage a batch moves into after `stage` is approved.

    Ordering-only slots are skipped. Returns None for the final stage.
    """
    for candidate in STAGE_ORDER[stage_index(stage) + 1:]:
        if candidate not in ORDERING_ONLY_STAGES:
            return candidate
    return None


def is_final_stage(stage) -> bool:
    return to_enum(stage, ProductionStage) == FINAL_STAGE


def is_reworkable(stage) -> bool:
    return to_enum(stage, ProductionStage) in REWORKABLE_STAGES


def requires_full_throughput(stage) -> bool:
    return to_enum(stage, ProductionStage) in FULL_THROUGHPUT_STAGES


def is_forward(from_stage, to_stage) -> bool:
    """True when `to_stage` is strictly later in the pipeline than `from_stage`."""
    return stage_index(to_stage) > stage_index(from_stage)


# =============================================================================
# TRANSITION EXECUTOR
# =============================================================================

@dataclass
class StageTransition:
    """Outcome of advancing a batch past its current stage."""
    from_stage: str
    to_stage: Optional[str]
    completed: bool


def advance_batch(batch) -> StageTransition:
    """
    Apply the approval transition rule to a batch.

    - Not the final stage: move current_stage to the next stage, status
      becomes/remains IN_PROGRESS.
    - Final stage (PACKING): status becomes COMPLETED, current_stage stays.

    Must run inside the same transaction that marks the log APPROVED.

    Args:
        batch: Batch model instance (freshly read inside the transaction)

    Returns:
        StageTransition describing what changed
    """
    current = batch.current_stage

    if is_final_stage(current):
        batch.status = BatchStatus.COMPLETED.value
        batch.completed_at = utc_now()
        return StageTransition(from_stage=current, to_stage=None, completed=True)

    target = next_stage(current)
    if not is_forward(current, target):
        raise ValueError(f"Refusing to move batch backwards from {current} to {target.value}")

    batch.current_stage = target.value
    batch.status = BatchStatus.IN_PROGRESS.value
    return StageTransition(from_stage=current, to_stage=target.value, completed=False)
