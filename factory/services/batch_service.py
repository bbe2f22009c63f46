"""
Batch Service.

Batch intake, lookup, cancellation and the quality summary read model.
Stage and ledger changes are NOT made here: they belong to the approval
orchestrator and the quality recorder.
"""
import logging
import uuid
from typing import Optional, List, Tuple, Dict

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from factory.core.context import AuthContext
from factory.core.enum_utils import get_enum_value, status_in
from factory.core.exceptions import NotFound, Conflict
from factory.core.time_utils import utc_now
from factory.database import atomic
from factory.models.batch import Batch, BatchStatus, ProductionStage
from factory.models.quality import DefectRecord
from factory.schemas.batch import BatchCreate, BatchResponse, QualitySummaryResponse
from factory.services import events
from factory.services.events import EventPublisher, notify
from factory.services.guards import lock_batch
from factory.services.quantity_ledger import already_accounted, remaining_capacity
from factory.services.rework_service import rework_pool
from factory.services.stage_pipeline import FIRST_STAGE, REWORKABLE_STAGES


logger = logging.getLogger(__name__)


class BatchService:
    """Service for batch lifecycle outside the approval path."""

    def __init__(self, db: AsyncSession, publisher: Optional[EventPublisher] = None):
        self.db = db
        self.publisher = publisher

    async def create_batch(self, data: BatchCreate, ctx: AuthContext) -> Batch:
        """
        Register a new batch at the first stage with an empty ledger.

        Raises:
            Conflict: if the batch number is already taken
        """
        async with atomic(self.db):
            existing = await self.db.execute(
                select(Batch.id).where(Batch.batch_number == data.batch_number)
            )
            if existing.scalar_one_or_none() is not None:
                raise Conflict(
                    f"Batch number {data.batch_number} already exists",
                    {"batch_number": data.batch_number},
                )

            batch = Batch(
                batch_number=data.batch_number,
                label=data.label,
                total_quantity=data.total_quantity,
                usable_quantity=0,
                defective_quantity=0,
                scrapped_quantity=0,
                current_stage=FIRST_STAGE.value,
                status=BatchStatus.PENDING.value,
                created_by_user_id=ctx.user_id,
            )
            self.db.add(batch)
            try:
                await self.db.flush()
            except IntegrityError:
                logger.warning(f"Concurrent creation of batch {data.batch_number}")
                raise Conflict(
                    f"Batch number {data.batch_number} already exists",
                    {"batch_number": data.batch_number},
                )

        logger.info(f"Batch {batch.batch_number} created with {batch.total_quantity} units")
        return batch

    async def get_batch(self, batch_id: uuid.UUID) -> Batch:
        batch = await self.db.get(Batch, batch_id)
        if batch is None:
            raise NotFound("Batch not found", {"batch_id": str(batch_id)})
        return batch

    async def list_batches(
        self,
        status: Optional[BatchStatus] = None,
        current_stage: Optional[ProductionStage] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Batch], int]:
        """List batches, newest first, with optional status/stage filters."""
        query = select(Batch)
        count_query = select(func.count(Batch.id))

        if status:
            query = query.where(Batch.status == get_enum_value(status))
            count_query = count_query.where(Batch.status == get_enum_value(status))
        if current_stage:
            query = query.where(Batch.current_stage == get_enum_value(current_stage))
            count_query = count_query.where(Batch.current_stage == get_enum_value(current_stage))

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(
            query.order_by(Batch.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def cancel_batch(self, batch_id: uuid.UUID, ctx: AuthContext) -> Batch:
        """
        Cancel a batch that has not finished.

        Raises:
            NotFound: unknown batch
            Conflict: batch already COMPLETED or CANCELLED
        """
        async with atomic(self.db):
            batch = await lock_batch(self.db, batch_id)
            if not status_in(batch.status, BatchStatus.PENDING, BatchStatus.IN_PROGRESS):
                raise Conflict(
                    f"Batch {batch.batch_number} is already {batch.status}",
                    {"batch_status": batch.status},
                )
            batch.status = BatchStatus.CANCELLED.value
            batch.cancelled_at = utc_now()

        logger.info(f"Batch {batch.batch_number} cancelled by {ctx.user_id}")
        await notify(self.publisher, events.BATCH_STATUS_UPDATED, BatchResponse.payload(batch))
        return batch

    async def quality_summary(self, batch_id: uuid.UUID) -> QualitySummaryResponse:
        batch = await self.get_batch(batch_id)

        result = await self.db.execute(
            select(DefectRecord.stage, func.sum(DefectRecord.quantity))
            .where(DefectRecord.batch_id == batch.id)
            .group_by(DefectRecord.stage)
        )
        defects_by_stage: Dict[str, int] = {stage: int(total) for stage, total in result.all()}

        available: Dict[str, int] = {}
        for stage in REWORKABLE_STAGES:
            pool = await rework_pool(self.db, batch.id, stage.value)
            available[stage.value] = pool.available_for_rework

        return QualitySummaryResponse(
            batch_id=batch.id,
            batch_number=batch.batch_number,
            current_stage=batch.current_stage,
            status=batch.status,
            total_quantity=batch.total_quantity,
            usable_quantity=batch.usable_quantity,
            defective_quantity=batch.defective_quantity,
            scrapped_quantity=batch.scrapped_quantity,
            already_inspected=already_accounted(batch),
            remaining_capacity=remaining_capacity(batch),
            defects_by_stage=defects_by_stage,
            available_for_rework=available,
        )
