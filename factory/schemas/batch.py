from datetime import datetime
from typing import Optional, List, Dict
from uuid import UUID

from pydantic import BaseModel, Field

from factory.schemas.base import BaseResponseSchema, BaseCreateSchema


class BatchCreate(BaseCreateSchema):
    batch_number: str = Field(..., min_length=1, max_length=50)
    label: str = Field(..., min_length=1, max_length=200)
    total_quantity: int = Field(..., gt=0)


class BatchResponse(BaseResponseSchema):
    id: UUID
    batch_number: str
    label: str
    total_quantity: int
    usable_quantity: int
    defective_quantity: int
    scrapped_quantity: int
    current_stage: str
    status: str
    created_by_user_id: Optional[UUID] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class BatchListResponse(BaseModel):
    items: List[BatchResponse]
    total: int


class QualitySummaryResponse(BaseModel):
    """Ledger snapshot plus defect and rework breakdown for one batch."""
    batch_id: UUID
    batch_number: str
    current_stage: str
    status: str
    total_quantity: int
    usable_quantity: int
    defective_quantity: int
    scrapped_quantity: int
    already_inspected: int
    remaining_capacity: int
    defects_by_stage: Dict[str, int]
    available_for_rework: Dict[str, int]
