"""API endpoints for quality inspections."""
from fastapi import APIRouter, status

from factory.api.deps import DB, OperatorContext, Publisher
from factory.schemas.batch import BatchResponse
from factory.schemas.production_log import ProductionLogResponse
from factory.schemas.quality import InspectionCreate, InspectionResponse, DefectRecordResponse
from factory.services.quality_service import QualityService

router = APIRouter()


@router.post("/inspections", response_model=InspectionResponse, status_code=status.HTTP_201_CREATED)
async def record_inspection(
    data: InspectionCreate,
    db: DB,
    ctx: OperatorContext,
    publisher: Publisher,
):
    """
    Record an inspection session at QUALITY_CHECK.

    Updates the batch's usable/defective counts immediately and creates a
    PENDING log that a manager approves to move the batch on.
    """
    result = await QualityService(db, publisher).record_inspection(data, ctx)
    return InspectionResponse(
        log=ProductionLogResponse.model_validate(result.log),
        defects=[DefectRecordResponse.model_validate(d) for d in result.defects],
        batch=BatchResponse.model_validate(result.batch),
    )
