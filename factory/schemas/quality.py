from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from factory.models.batch import ProductionStage
from factory.models.quality import DefectSeverity
from factory.schemas.base import BaseResponseSchema, BaseCreateSchema
from factory.schemas.batch import BatchResponse
from factory.schemas.production_log import ProductionLogResponse


class DefectLine(BaseModel):
    """One typed defect found during an inspection session."""
    defect_code: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(..., gt=0)
    severity: DefectSeverity
    stage: ProductionStage = Field(
        ProductionStage.QUALITY_CHECK,
        description="Stage the defect originated from: CUTTING, STITCHING or QUALITY_CHECK"
    )


class InspectionCreate(BaseCreateSchema):
    batch_id: UUID
    start_time: datetime
    end_time: datetime
    quantity_in: int = Field(..., gt=0)
    defective_quantity: int = Field(0, ge=0)
    defects: List[DefectLine] = []
    notes: Optional[str] = Field(None, max_length=2000)


class DefectRecordResponse(BaseResponseSchema):
    id: UUID
    batch_id: UUID
    stage: str
    defect_code: str
    quantity: int
    severity: str
    production_log_id: Optional[UUID] = None
    detected_by_user_id: Optional[UUID] = None
    created_at: datetime


class InspectionResponse(BaseModel):
    log: ProductionLogResponse
    defects: List[DefectRecordResponse]
    batch: BatchResponse
