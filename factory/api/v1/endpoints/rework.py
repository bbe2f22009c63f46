"""API endpoints for rework sessions."""
from uuid import UUID

from fastapi import APIRouter, Query, status

from factory.api.deps import DB, CurrentContext, OperatorContext, Publisher
from factory.models.batch import ProductionStage
from factory.schemas.rework import ReworkCreate, ReworkResponse, ReworkAvailability
from factory.services.rework_service import ReworkService

router = APIRouter()


@router.post("", response_model=ReworkResponse, status_code=status.HTTP_201_CREATED)
async def create_rework(
    data: ReworkCreate,
    db: DB,
    ctx: OperatorContext,
    publisher: Publisher,
):
    """Queue a rework session; the ledger changes only on approval."""
    record = await ReworkService(db, publisher).create_rework(data, ctx)
    return ReworkResponse.model_validate(record)


@router.get("/availability", response_model=ReworkAvailability)
async def get_rework_availability(
    db: DB,
    ctx: CurrentContext,
    batch_id: UUID = Query(...),
    rework_stage: ProductionStage = Query(..., description="CUTTING or STITCHING"),
):
    pool = await ReworkService(db).get_availability(batch_id, rework_stage)
    return ReworkAvailability(
        batch_id=pool.batch_id,
        rework_stage=pool.rework_stage,
        total_defects=pool.total_defects,
        pending_rework=pool.pending_rework,
        approved_rework=pool.approved_rework,
        available_for_rework=pool.available_for_rework,
    )
