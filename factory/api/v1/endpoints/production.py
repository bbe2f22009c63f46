"""API endpoints for operator production logs."""
from fastapi import APIRouter, status

from factory.api.deps import DB, OperatorContext, Publisher
from factory.schemas.production_log import ProductionLogCreate, ProductionLogResponse
from factory.services.production_service import ProductionService

router = APIRouter()


@router.post("/logs", response_model=ProductionLogResponse, status_code=status.HTTP_201_CREATED)
async def create_production_log(
    data: ProductionLogCreate,
    db: DB,
    ctx: OperatorContext,
    publisher: Publisher,
):
    """
    Log work on a batch at its current stage.

    The log is created PENDING; the batch only moves when a manager approves it.
    LABELING, FOLDING and PACKING must take in exactly the batch's usable
    quantity and hand out the same amount.
    """
    log = await ProductionService(db, publisher).create_log(data, ctx)
    return ProductionLogResponse.model_validate(log)
