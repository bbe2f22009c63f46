"""
Rework Accounting.

The rework pool for a (batch, stage) is never stored: it is recomputed from
the append-only defect records minus every rework claim that is still
pending or already approved. Creating a rework record never touches the
batch ledger; that happens only when a manager approves it.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from factory.core.context import AuthContext
from factory.core.enum_utils import get_enum_value
from factory.core.exceptions import ValidationFailed, NotFound
from factory.database import atomic
from factory.models.batch import Batch
from factory.models.production_log import ApprovalStatus
from factory.models.quality import DefectRecord
from factory.models.rework import ReworkRecord
from factory.schemas.rework import ReworkCreate, ReworkResponse
from factory.services import events
from factory.services.events import EventPublisher, notify
from factory.services.guards import (
    lock_batch,
    require_open,
    get_working_operator,
    require_section,
    check_time_window,
    assert_operator_free,
)
from factory.services.stage_pipeline import is_reworkable, REWORKABLE_STAGES


logger = logging.getLogger(__name__)


@dataclass
class ReworkPool:
    batch_id: uuid.UUID
    rework_stage: str
    total_defects: int
    pending_rework: int
    approved_rework: int

    @property
    def available_for_rework(self) -> int:
        return max(0, self.total_defects - self.pending_rework - self.approved_rework)


async def rework_pool(db: AsyncSession, batch_id: uuid.UUID, stage: str) -> ReworkPool:
    """Aggregate defect totals and rework claims for one (batch, stage)."""
    defects_result = await db.execute(
        select(func.coalesce(func.sum(DefectRecord.quantity), 0))
        .where(and_(DefectRecord.batch_id == batch_id, DefectRecord.stage == stage))
    )
    total_defects = defects_result.scalar_one()

    claims_result = await db.execute(
        select(ReworkRecord.approval_status, func.coalesce(func.sum(ReworkRecord.quantity), 0))
        .where(
            and_(
                ReworkRecord.batch_id == batch_id,
                ReworkRecord.rework_stage == stage,
                ReworkRecord.approval_status.in_([
                    ApprovalStatus.PENDING.value,
                    ApprovalStatus.APPROVED.value,
                ]),
            )
        )
        .group_by(ReworkRecord.approval_status)
    )
    claims = {status: int(total) for status, total in claims_result.all()}

    return ReworkPool(
        batch_id=batch_id,
        rework_stage=stage,
        total_defects=int(total_defects),
        pending_rework=claims.get(ApprovalStatus.PENDING.value, 0),
        approved_rework=claims.get(ApprovalStatus.APPROVED.value, 0),
    )


class ReworkService:
    """Creates rework records and answers rework availability queries."""

    def __init__(self, db: AsyncSession, publisher: Optional[EventPublisher] = None):
        self.db = db
        self.publisher = publisher

    async def get_availability(self, batch_id: uuid.UUID, rework_stage) -> ReworkPool:
        stage = get_enum_value(rework_stage)
        if not is_reworkable(stage):
            raise ValidationFailed(
                f"Defects from {stage} cannot be reworked",
                {"reworkable_stages": [s.value for s in REWORKABLE_STAGES]},
            )
        if await self.db.get(Batch, batch_id) is None:
            raise NotFound("Batch not found", {"batch_id": str(batch_id)})
        return await rework_pool(self.db, batch_id, stage)

    async def create_rework(self, data: ReworkCreate, ctx: AuthContext) -> ReworkRecord:
        """
        Queue a rework session for manager approval.

        Raises:
            ValidationFailed: bad split, non-reworkable stage, closed batch,
                or more units than the rework pool holds
            PermissionDenied: operator unverified or not assigned to the stage
            Conflict: operator already busy in that time window
        """
        stage = get_enum_value(data.rework_stage)

        if data.cured_quantity + data.scrapped_quantity != data.quantity:
            raise ValidationFailed(
                "Cured and scrapped quantities must add up to the reworked quantity",
                {
                    "quantity": data.quantity,
                    "cured_quantity": data.cured_quantity,
                    "scrapped_quantity": data.scrapped_quantity,
                },
            )
        if not is_reworkable(stage):
            raise ValidationFailed(
                f"Defects from {stage} cannot be reworked",
                {"reworkable_stages": [s.value for s in REWORKABLE_STAGES]},
            )
        start, end = check_time_window(data.start_time, data.end_time)

        async with atomic(self.db):
            operator = await get_working_operator(self.db, ctx)
            require_section(ctx, stage)

            batch = await lock_batch(self.db, data.batch_id)
            require_open(batch)

            await assert_operator_free(self.db, operator.id, start, end)

            pool = await rework_pool(self.db, batch.id, stage)
            if data.quantity > pool.available_for_rework:
                raise ValidationFailed(
                    f"Only {pool.available_for_rework} {stage} defects are available for rework",
                    {
                        "available_for_rework": pool.available_for_rework,
                        "requested": data.quantity,
                        "total_defects": pool.total_defects,
                        "pending_rework": pool.pending_rework,
                    },
                )

            record = ReworkRecord(
                batch_id=batch.id,
                operator_user_id=operator.id,
                managed_by_user_id=operator.created_by_user_id,
                rework_stage=stage,
                quantity=data.quantity,
                cured_quantity=data.cured_quantity,
                scrapped_quantity=data.scrapped_quantity,
                start_time=start,
                end_time=end,
                approval_status=ApprovalStatus.PENDING.value,
            )
            self.db.add(record)
            await self.db.flush()

        logger.info(
            f"Rework {record.id} queued on batch {batch.batch_number}: "
            f"{record.quantity} {stage} units ({record.cured_quantity} cured, {record.scrapped_quantity} scrapped)"
        )
        await notify(self.publisher, events.APPROVAL_UPDATED, {
            "entity_type": "rework",
            "data": ReworkResponse.payload(record),
        })
        return record
