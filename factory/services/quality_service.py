"""
Quality/Defect Recorder.

Unlike production logs, an inspection changes the ledger the moment it is
recorded: inspecting discovers how many units are defective. Defect records,
the QUALITY_CHECK log and the ledger update are written in one transaction.
"""
import logging
from dataclasses import dataclass
from typing import Optional, List

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from factory.core.context import AuthContext
from factory.core.enum_utils import get_enum_value, to_enum, is_status
from factory.core.exceptions import ValidationFailed, Conflict
from factory.database import atomic
from factory.models.batch import Batch, BatchStatus, ProductionStage
from factory.models.production_log import ProductionLog, ApprovalStatus
from factory.models.quality import DefectRecord, DefectSeverity
from factory.schemas.batch import BatchResponse
from factory.schemas.production_log import ProductionLogResponse
from factory.schemas.quality import InspectionCreate, DefectLine
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
from factory.services.quantity_ledger import apply_inspection, check_inspection_capacity
from factory.services.stage_pipeline import DEFECT_ORIGIN_STAGES


logger = logging.getLogger(__name__)

QC = ProductionStage.QUALITY_CHECK.value


@dataclass
class InspectionResult:
    log: ProductionLog
    defects: List[DefectRecord]
    batch: Batch


def validate_defect_lines(lines: List[DefectLine], quantity_in: int, defective_quantity: int) -> None:
    if defective_quantity < 0 or defective_quantity > quantity_in:
        raise ValidationFailed(
            "Defective quantity must be between 0 and the inspected quantity",
            {"quantity_in": quantity_in, "defective_quantity": defective_quantity},
        )

    for index, line in enumerate(lines):
        if line.quantity <= 0:
            raise ValidationFailed("Defect quantity must be positive", {"line": index})
        if to_enum(line.severity, DefectSeverity) is None:
            raise ValidationFailed(
                f"Unknown defect severity {line.severity}",
                {"line": index, "allowed": [s.value for s in DefectSeverity]},
            )
        if to_enum(line.stage, ProductionStage) not in DEFECT_ORIGIN_STAGES:
            raise ValidationFailed(
                f"Defects cannot originate from {get_enum_value(line.stage)}",
                {"line": index, "allowed": sorted(s.value for s in DEFECT_ORIGIN_STAGES)},
            )

    lines_total = sum(line.quantity for line in lines)
    if lines_total != defective_quantity:
        raise ValidationFailed(
            "Defect lines must add up to the defective quantity",
            {"expected": defective_quantity, "received": lines_total},
        )


class QualityService:
    """Records inspection sessions at QUALITY_CHECK."""

    def __init__(self, db: AsyncSession, publisher: Optional[EventPublisher] = None):
        self.db = db
        self.publisher = publisher

    async def _pending_inspection(self, batch_id) -> Optional[ProductionLog]:
        result = await self.db.execute(
            select(ProductionLog)
            .where(
                and_(
                    ProductionLog.batch_id == batch_id,
                    ProductionLog.stage == QC,
                    ProductionLog.approval_status == ApprovalStatus.PENDING.value,
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def record_inspection(self, data: InspectionCreate, ctx: AuthContext) -> InspectionResult:
        """
        Record one inspection session and its defects.

        Raises:
            PermissionDenied: operator unverified or not in QUALITY_CHECK
            ValidationFailed: batch not at QUALITY_CHECK or closed, bad defect
                lines, or more units than remain uninspected
            Conflict: another inspection of this batch is still pending, or
                the operator is busy in that window
        """
        validate_defect_lines(data.defects, data.quantity_in, data.defective_quantity)
        start, end = check_time_window(data.start_time, data.end_time)

        async with atomic(self.db):
            operator = await get_working_operator(self.db, ctx)
            require_section(ctx, QC)

            batch = await lock_batch(self.db, data.batch_id)
            require_open(batch)
            if batch.current_stage != QC:
                raise ValidationFailed(
                    f"Batch {batch.batch_number} is at {batch.current_stage}, not {QC}",
                    {"current_stage": batch.current_stage},
                )

            check_inspection_capacity(batch, data.quantity_in)

            pending = await self._pending_inspection(batch.id)
            if pending is not None:
                raise Conflict(
                    "Another inspection of this batch is awaiting approval",
                    {"pending_log_id": str(pending.id)},
                )

            await assert_operator_free(self.db, operator.id, start, end)

            log = ProductionLog(
                batch_id=batch.id,
                stage=QC,
                operator_user_id=operator.id,
                start_time=start,
                end_time=end,
                quantity_in=data.quantity_in,
                quantity_out=data.quantity_in - data.defective_quantity,
                notes=data.notes,
                approval_status=ApprovalStatus.PENDING.value,
            )
            self.db.add(log)
            await self.db.flush()

            defects = [
                DefectRecord(
                    batch_id=batch.id,
                    stage=get_enum_value(line.stage),
                    defect_code=line.defect_code,
                    quantity=line.quantity,
                    severity=get_enum_value(line.severity),
                    production_log_id=log.id,
                    detected_by_user_id=operator.id,
                )
                for line in data.defects
            ]
            self.db.add_all(defects)

            apply_inspection(batch, data.quantity_in, data.defective_quantity)
            if is_status(batch.status, BatchStatus.PENDING):
                batch.status = BatchStatus.IN_PROGRESS.value
            await self.db.flush()

        logger.info(
            f"Inspection {log.id} on batch {batch.batch_number}: {data.quantity_in} inspected, "
            f"{data.defective_quantity} defective ({batch.usable_quantity} usable so far)"
        )
        await notify(self.publisher, events.APPROVAL_UPDATED, {
            "entity_type": "production_log",
            "data": ProductionLogResponse.payload(log),
        })
        await notify(self.publisher, events.BATCH_STATUS_UPDATED, BatchResponse.payload(batch))
        return InspectionResult(log=log, defects=defects, batch=batch)
