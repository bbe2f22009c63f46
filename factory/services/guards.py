"""
Shared preconditions for operations that mutate production state.

Each helper either returns the entity it loaded or raises a
ProductionError subclass; none of them write.
"""
import uuid
from datetime import datetime

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from factory.core.context import AuthContext
from factory.core.enum_utils import is_status
from factory.core.exceptions import ValidationFailed, PermissionDenied, NotFound, Conflict
from factory.core.time_utils import as_utc
from factory.models.batch import Batch
from factory.models.production_log import ProductionLog, ApprovalStatus
from factory.models.rework import ReworkRecord
from factory.models.user import User, UserRoleType


async def lock_batch(db: AsyncSession, batch_id: uuid.UUID) -> Batch:
    """
    Read a batch row for update inside the current transaction.

    populate_existing makes sure an instance already sitting in the
    identity map is refreshed from the locked row instead of reused.
    """
    result = await db.execute(
        select(Batch)
        .where(Batch.id == batch_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    batch = result.scalar_one_or_none()
    if batch is None:
        raise NotFound("Batch not found", {"batch_id": str(batch_id)})
    return batch


def require_open(batch: Batch) -> None:
    if batch.is_closed:
        raise ValidationFailed(
            f"Batch {batch.batch_number} is {batch.status} and accepts no further work",
            {"batch_status": batch.status},
        )


async def get_working_operator(db: AsyncSession, ctx: AuthContext) -> User:
    """Load the calling operator and check they may record work."""
    user = await db.get(User, ctx.user_id)
    if user is None:
        raise NotFound("User not found", {"user_id": str(ctx.user_id)})
    if not is_status(user.role, UserRoleType.OPERATOR):
        raise PermissionDenied("Only operators can record production work")
    if not user.is_active:
        raise PermissionDenied("User account is deactivated")
    if not user.is_verified:
        raise PermissionDenied(
            "Operator is not verified",
            {"verification_status": user.verification_status},
        )
    return user


def require_section(ctx: AuthContext, stage: str) -> None:
    if not ctx.has_section(stage):
        raise PermissionDenied(
            f"Wrong section: this action requires assignment to {stage}",
            {"required_section": stage, "assigned_sections": list(ctx.sections)},
        )


def check_time_window(start_time: datetime, end_time: datetime) -> tuple[datetime, datetime]:
    """Normalize a work window to UTC and check it is ordered."""
    start, end = as_utc(start_time), as_utc(end_time)
    if end < start:
        raise ValidationFailed(
            "End time cannot be before start time",
            {"start_time": start.isoformat(), "end_time": end.isoformat()},
        )
    return start, end


async def assert_operator_free(
    db: AsyncSession,
    operator_id: uuid.UUID,
    start: datetime,
    end: datetime,
) -> None:
    """
    Refuse work that overlaps another non-rejected log or rework session
    of the same operator (existing.start < new.end AND existing.end > new.start).
    """
    not_rejected = ApprovalStatus.REJECTED.value

    log_clash = await db.execute(
        select(ProductionLog.id)
        .where(
            and_(
                ProductionLog.operator_user_id == operator_id,
                ProductionLog.approval_status != not_rejected,
                ProductionLog.start_time < end,
                ProductionLog.end_time > start,
            )
        )
        .limit(1)
    )
    clash_id = log_clash.scalar_one_or_none()
    kind = "production log"

    if clash_id is None:
        rework_clash = await db.execute(
            select(ReworkRecord.id)
            .where(
                and_(
                    ReworkRecord.operator_user_id == operator_id,
                    ReworkRecord.approval_status != not_rejected,
                    ReworkRecord.start_time < end,
                    ReworkRecord.end_time > start,
                )
            )
            .limit(1)
        )
        clash_id = rework_clash.scalar_one_or_none()
        kind = "rework session"

    if clash_id is not None:
        raise Conflict(
            f"Operator already has a {kind} overlapping this time window",
            {"conflicting_id": str(clash_id)},
        )


async def assert_machine_free(
    db: AsyncSession,
    machine_id: uuid.UUID,
    start: datetime,
    end: datetime,
) -> None:
    result = await db.execute(
        select(ProductionLog.id)
        .where(
            and_(
                ProductionLog.machine_id == machine_id,
                ProductionLog.approval_status != ApprovalStatus.REJECTED.value,
                ProductionLog.start_time < end,
                ProductionLog.end_time > start,
            )
        )
        .limit(1)
    )
    clash_id = result.scalar_one_or_none()
    if clash_id is not None:
        raise Conflict(
            "Machine is already booked for an overlapping time window",
            {"machine_id": str(machine_id), "conflicting_id": str(clash_id)},
        )
