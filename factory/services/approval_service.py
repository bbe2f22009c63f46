"""
Approval Orchestrator.

The only place where a pending production log or rework record is resolved,
and therefore the only place where a batch advances or its ledger changes
as the result of a manager decision.

Approving a production log, in one transaction:
    1. mark the log APPROVED
    2. CUTTING only: fill the usable pool (quantity ledger)
    3. advance the batch one stage (stage pipeline)
    4. entering QUALITY_CHECK: hand the usable pool to inspection
    5. finishing PACKING: create the batch's box

Approving a rework record applies the rework split to the ledger and never
moves the batch. Rejections only record who, when and why.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from factory.core.context import AuthContext
from factory.core.exceptions import PermissionDenied, NotFound, Conflict
from factory.core.time_utils import utc_now
from factory.database import atomic
from factory.models.batch import Batch, ProductionStage
from factory.models.box import Box
from factory.models.production_log import ProductionLog, ApprovalStatus
from factory.models.rework import ReworkRecord
from factory.models.user import User
from factory.schemas.batch import BatchResponse
from factory.schemas.box import BoxResponse
from factory.schemas.production_log import ProductionLogResponse
from factory.schemas.rework import ReworkResponse
from factory.services import events
from factory.services.box_service import BoxService
from factory.services.events import EventPublisher, notify
from factory.services.guards import lock_batch, require_open, require_section
from factory.services.quantity_ledger import (
    apply_cutting_approval,
    apply_rework_approval,
    open_inspection,
)
from factory.services.stage_pipeline import advance_batch, StageTransition


logger = logging.getLogger(__name__)


@dataclass
class ProductionApproval:
    log: ProductionLog
    batch: Batch
    transition: Optional[StageTransition] = None
    box: Optional[Box] = None


@dataclass
class ReworkApproval:
    rework: ReworkRecord
    batch: Batch


class ApprovalService:
    """Resolves pending production logs and rework records."""

    def __init__(self, db: AsyncSession, publisher: Optional[EventPublisher] = None):
        self.db = db
        self.publisher = publisher

    # ==================== Loading & checks ====================

    async def _load_log(self, log_id: uuid.UUID) -> ProductionLog:
        result = await self.db.execute(
            select(ProductionLog)
            .where(ProductionLog.id == log_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        log = result.scalar_one_or_none()
        if log is None:
            raise NotFound("Production log not found", {"log_id": str(log_id)})
        return log

    async def _load_rework(self, rework_id: uuid.UUID) -> ReworkRecord:
        result = await self.db.execute(
            select(ReworkRecord)
            .where(ReworkRecord.id == rework_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFound("Rework record not found", {"rework_id": str(rework_id)})
        return record

    async def _require_owner_of_operator(self, operator_id: uuid.UUID, ctx: AuthContext) -> None:
        """The approving manager must be the one who created the operator."""
        operator = await self.db.get(User, operator_id)
        if operator is None or operator.created_by_user_id != ctx.user_id:
            raise PermissionDenied(
                "You can only resolve work of operators you manage",
                {"operator_id": str(operator_id)},
            )

    @staticmethod
    def _require_owner_of_rework(record: ReworkRecord, ctx: AuthContext) -> None:
        if record.managed_by_user_id != ctx.user_id:
            raise PermissionDenied(
                "You can only resolve work of operators you manage",
                {"operator_id": str(record.operator_user_id)},
            )

    @staticmethod
    def _require_pending(record, kind: str) -> None:
        if not record.is_pending:
            raise Conflict(
                f"{kind} is already {record.approval_status}",
                {"approval_status": record.approval_status},
            )

    # ==================== Production logs ====================

    async def approve_production_log(self, log_id: uuid.UUID, ctx: AuthContext) -> ProductionApproval:
        """
        Approve a pending production log and advance its batch.

        Raises:
            NotFound: unknown log
            PermissionDenied: caller does not own the operator or is not in the log's section
            Conflict: log already resolved, stale stage, or the batch already has a box
            ValidationFailed: batch COMPLETED or CANCELLED
        """
        async with atomic(self.db):
            log = await self._load_log(log_id)
            await self._require_owner_of_operator(log.operator_user_id, ctx)
            require_section(ctx, log.stage)
            self._require_pending(log, "Production log")

            batch = await lock_batch(self.db, log.batch_id)
            boxes = BoxService(self.db)

            if log.stage == ProductionStage.PACKING.value:
                existing_box = await boxes.get_box_for_batch(batch.id)
                if existing_box is not None:
                    logger.warning(f"Second PACKING approval refused for batch {batch.batch_number}")
                    raise Conflict(
                        f"A box already exists for batch {batch.batch_number}",
                        {"batch_id": str(batch.id), "box_code": existing_box.box_code},
                    )

            require_open(batch)
            if log.stage != batch.current_stage:
                logger.warning(
                    f"Stale approval of {log.stage} log {log.id}: batch {batch.batch_number} is at {batch.current_stage}"
                )
                raise Conflict(
                    f"Log is for {log.stage} but the batch is now at {batch.current_stage}",
                    {"log_stage": log.stage, "current_stage": batch.current_stage},
                )

            log.approval_status = ApprovalStatus.APPROVED.value
            log.approved_by = ctx.user_id
            log.approved_at = utc_now()

            if log.stage == ProductionStage.CUTTING.value:
                apply_cutting_approval(batch)

            transition = advance_batch(batch)
            if transition.to_stage == ProductionStage.QUALITY_CHECK.value:
                open_inspection(batch)

            box = None
            if transition.completed:
                box = await boxes.create_box_for_batch(batch)

            await self.db.flush()

        if transition.completed:
            logger.info(f"Batch {batch.batch_number} completed")
        else:
            logger.info(f"Batch {batch.batch_number} advanced {transition.from_stage} -> {transition.to_stage}")

        await notify(self.publisher, events.APPROVAL_UPDATED, {
            "entity_type": "production_log",
            "data": ProductionLogResponse.payload(log),
        })
        await notify(self.publisher, events.BATCH_STATUS_UPDATED, BatchResponse.payload(batch))
        if box is not None:
            await notify(self.publisher, events.BOX_UPDATED, BoxResponse.payload(box))

        return ProductionApproval(log=log, batch=batch, transition=transition, box=box)

    async def reject_production_log(self, log_id: uuid.UUID, reason: str, ctx: AuthContext) -> ProductionLog:
        """
        Reject a pending production log.

        Only ownership is checked; the section is not. Nothing on the batch
        changes: an inspection's ledger effect stays recorded.
        """
        async with atomic(self.db):
            log = await self._load_log(log_id)
            await self._require_owner_of_operator(log.operator_user_id, ctx)
            self._require_pending(log, "Production log")

            log.approval_status = ApprovalStatus.REJECTED.value
            log.rejected_by = ctx.user_id
            log.rejected_at = utc_now()
            log.rejection_reason = reason
            await self.db.flush()

        logger.info(f"Production log {log.id} rejected by {ctx.user_id}")
        await notify(self.publisher, events.APPROVAL_UPDATED, {
            "entity_type": "production_log",
            "data": ProductionLogResponse.payload(log),
        })
        return log

    # ==================== Rework ====================

    async def approve_rework(self, rework_id: uuid.UUID, ctx: AuthContext) -> ReworkApproval:
        """
        Approve a pending rework record and apply its split to the ledger.

        Raises:
            NotFound: unknown record
            PermissionDenied: caller does not own the operator or is not in the rework stage
            Conflict: record already resolved
            ValidationFailed: batch COMPLETED or CANCELLED
        """
        async with atomic(self.db):
            record = await self._load_rework(rework_id)
            self._require_owner_of_rework(record, ctx)
            require_section(ctx, record.rework_stage)
            self._require_pending(record, "Rework record")

            batch = await lock_batch(self.db, record.batch_id)
            require_open(batch)

            record.approval_status = ApprovalStatus.APPROVED.value
            record.approved_by = ctx.user_id
            record.approved_at = utc_now()

            apply_rework_approval(
                batch,
                record.quantity,
                record.cured_quantity,
                record.scrapped_quantity,
            )
            await self.db.flush()

        logger.info(
            f"Rework {record.id} approved on batch {batch.batch_number}: "
            f"+{record.cured_quantity} usable, +{record.scrapped_quantity} scrapped"
        )
        await notify(self.publisher, events.APPROVAL_UPDATED, {
            "entity_type": "rework",
            "data": ReworkResponse.payload(record),
        })
        await notify(self.publisher, events.BATCH_STATUS_UPDATED, BatchResponse.payload(batch))
        return ReworkApproval(rework=record, batch=batch)

    async def reject_rework(self, rework_id: uuid.UUID, reason: str, ctx: AuthContext) -> ReworkRecord:
        """Reject a pending rework record; its quantity returns to the pool."""
        async with atomic(self.db):
            record = await self._load_rework(rework_id)
            self._require_owner_of_rework(record, ctx)
            self._require_pending(record, "Rework record")

            record.approval_status = ApprovalStatus.REJECTED.value
            record.rejected_by = ctx.user_id
            record.rejected_at = utc_now()
            record.rejection_reason = reason
            await self.db.flush()

        logger.info(f"Rework {record.id} rejected by {ctx.user_id}")
        await notify(self.publisher, events.APPROVAL_UPDATED, {
            "entity_type": "rework",
            "data": ReworkResponse.payload(record),
        })
        return record
