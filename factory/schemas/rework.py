from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from factory.models.batch import ProductionStage
from factory.schemas.base import BaseResponseSchema, BaseCreateSchema


class ReworkCreate(BaseCreateSchema):
    batch_id: UUID
    rework_stage: ProductionStage
    quantity: int = Field(..., gt=0)
    cured_quantity: int = Field(..., ge=0)
    scrapped_quantity: int = Field(..., ge=0)
    start_time: datetime
    end_time: datetime


class ReworkResponse(BaseResponseSchema):
    id: UUID
    batch_id: UUID
    operator_user_id: UUID
    managed_by_user_id: Optional[UUID] = None
    rework_stage: str
    quantity: int
    cured_quantity: int
    scrapped_quantity: int
    start_time: datetime
    end_time: datetime
    approval_status: str
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[UUID] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime


class ReworkAvailability(BaseModel):
    batch_id: UUID
    rework_stage: str
    total_defects: int
    pending_rework: int
    approved_rework: int
    available_for_rework: int
