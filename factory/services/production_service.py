"""
Production Log Service.

Validates an operator's log against the batch's current stage and persists
it as PENDING. Creating a log never changes the batch: the stage only moves
when a manager approves the log.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from factory.core.context import AuthContext
from factory.core.exceptions import ValidationFailed, NotFound
from factory.database import atomic
from factory.models.batch import Batch, ProductionStage
from factory.models.machine import Machine
from factory.models.production_log import ProductionLog, ApprovalStatus
from factory.schemas.production_log import ProductionLogCreate, ProductionLogResponse
from factory.services import events
from factory.services.events import EventPublisher, notify
from factory.services.guards import (
    lock_batch,
    require_open,
    get_working_operator,
    require_section,
    check_time_window,
    assert_operator_free,
    assert_machine_free,
)
from factory.services.stage_pipeline import requires_full_throughput


logger = logging.getLogger(__name__)


def validate_stage_quantities(
    batch: Batch,
    stage: str,
    quantity_in: Optional[int],
    quantity_out: Optional[int],
) -> None:
    """
    Per-stage input policy.

    LABELING, FOLDING and PACKING must take in the whole usable pool and
    hand out exactly what came in. CUTTING and STITCHING are free-form apart
    from basic sanity.
    """
    for field, value in (("quantity_in", quantity_in), ("quantity_out", quantity_out)):
        if value is not None and value < 0:
            raise ValidationFailed(f"{field} cannot be negative", {"field": field, "received": value})

    if requires_full_throughput(stage):
        if quantity_in != batch.usable_quantity:
            raise ValidationFailed(
                f"{stage} must process the whole usable quantity",
                {"field": "quantity_in", "expected": batch.usable_quantity, "received": quantity_in},
            )
        if quantity_out != quantity_in:
            raise ValidationFailed(
                f"No loss or gain is allowed at {stage}",
                {"field": "quantity_out", "expected": quantity_in, "received": quantity_out},
            )
        return

    if quantity_in is not None and quantity_out is not None and quantity_out > quantity_in:
        raise ValidationFailed(
            "Output quantity cannot exceed input quantity",
            {"quantity_in": quantity_in, "quantity_out": quantity_out},
        )


class ProductionService:
    """Service for operator production logs."""

    def __init__(self, db: AsyncSession, publisher: Optional[EventPublisher] = None):
        self.db = db
        self.publisher = publisher

    async def create_log(self, data: ProductionLogCreate, ctx: AuthContext) -> ProductionLog:
        """
        Record work done on a batch at its current stage.

        Raises:
            NotFound: unknown batch or machine
            PermissionDenied: operator unverified, inactive or in the wrong section
            ValidationFailed: closed batch, bad times, machine down, quantity policy
            Conflict: operator or machine already busy in that time window
        """
        async with atomic(self.db):
            operator = await get_working_operator(self.db, ctx)
            batch = await lock_batch(self.db, data.batch_id)
            require_open(batch)

            stage = batch.current_stage
            require_section(ctx, stage)
            if stage == ProductionStage.QUALITY_CHECK.value:
                raise ValidationFailed(
                    "Quality check work is recorded as an inspection, not a production log",
                    {"current_stage": stage},
                )

            start, end = check_time_window(data.start_time, data.end_time)

            if data.machine_id is not None:
                machine = await self.db.get(Machine, data.machine_id)
                if machine is None:
                    raise NotFound("Machine not found", {"machine_id": str(data.machine_id)})
                if not machine.is_operational:
                    raise ValidationFailed(
                        f"Machine {machine.machine_code} is not operational",
                        {"machine_id": str(machine.id), "machine_status": machine.status},
                    )

            validate_stage_quantities(batch, stage, data.quantity_in, data.quantity_out)

            await assert_operator_free(self.db, operator.id, start, end)
            if data.machine_id is not None:
                await assert_machine_free(self.db, data.machine_id, start, end)

            log = ProductionLog(
                batch_id=batch.id,
                stage=stage,
                operator_user_id=operator.id,
                machine_id=data.machine_id,
                start_time=start,
                end_time=end,
                quantity_in=data.quantity_in,
                quantity_out=data.quantity_out,
                notes=data.notes,
                approval_status=ApprovalStatus.PENDING.value,
            )
            self.db.add(log)
            await self.db.flush()

        logger.info(f"Production log {log.id} created for batch {batch.batch_number} at {stage}")
        await notify(self.publisher, events.APPROVAL_UPDATED, {
            "entity_type": "production_log",
            "data": ProductionLogResponse.payload(log),
        })
        return log
