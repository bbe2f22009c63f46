"""API endpoints for manager approvals."""
from uuid import UUID

from fastapi import APIRouter

from factory.api.deps import DB, ManagerContext, Publisher
from factory.schemas.approval import RejectRequest, ProductionApprovalResponse, ReworkApprovalResponse
from factory.schemas.batch import BatchResponse
from factory.schemas.box import BoxResponse
from factory.schemas.production_log import ProductionLogResponse
from factory.schemas.rework import ReworkResponse
from factory.services.approval_service import ApprovalService

router = APIRouter()


# ==================== Production Logs ====================

@router.patch("/production/{log_id}/approve", response_model=ProductionApprovalResponse)
async def approve_production_log(
    log_id: UUID,
    db: DB,
    ctx: ManagerContext,
    publisher: Publisher,
):
    """
    Approve a production log.

    Requires owning the operator and being assigned to the log's stage.
    Advances the batch; approving PACKING completes it and packs its box.
    """
    result = await ApprovalService(db, publisher).approve_production_log(log_id, ctx)
    return ProductionApprovalResponse(
        log=ProductionLogResponse.model_validate(result.log),
        batch=BatchResponse.model_validate(result.batch),
        box=BoxResponse.model_validate(result.box) if result.box else None,
    )


@router.patch("/production/{log_id}/reject", response_model=ProductionLogResponse)
async def reject_production_log(
    log_id: UUID,
    data: RejectRequest,
    db: DB,
    ctx: ManagerContext,
    publisher: Publisher,
):
    log = await ApprovalService(db, publisher).reject_production_log(log_id, data.reason, ctx)
    return ProductionLogResponse.model_validate(log)


# ==================== Rework ====================

@router.patch("/rework/{rework_id}/approve", response_model=ReworkApprovalResponse)
async def approve_rework(
    rework_id: UUID,
    db: DB,
    ctx: ManagerContext,
    publisher: Publisher,
):
    """Approve a rework session: cured units become usable, the rest are scrapped."""
    result = await ApprovalService(db, publisher).approve_rework(rework_id, ctx)
    return ReworkApprovalResponse(
        rework=ReworkResponse.model_validate(result.rework),
        batch=BatchResponse.model_validate(result.batch),
    )


@router.patch("/rework/{rework_id}/reject", response_model=ReworkResponse)
async def reject_rework(
    rework_id: UUID,
    data: RejectRequest,
    db: DB,
    ctx: ManagerContext,
    publisher: Publisher,
):
    record = await ApprovalService(db, publisher).reject_rework(rework_id, data.reason, ctx)
    return ReworkResponse.model_validate(record)
