from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from factory.schemas.base import BaseResponseSchema, BaseCreateSchema


class ProductionLogCreate(BaseCreateSchema):
    """
    Operator's record of work done on a batch at its current stage.

    The stage is not part of the request: it is stamped from the batch.
    """
    batch_id: UUID
    start_time: datetime
    end_time: datetime
    quantity_in: Optional[int] = Field(None, ge=0)
    quantity_out: Optional[int] = Field(None, ge=0)
    machine_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=2000)


class ProductionLogResponse(BaseResponseSchema):
    id: UUID
    batch_id: UUID
    stage: str
    operator_user_id: UUID
    machine_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    quantity_in: Optional[int] = None
    quantity_out: Optional[int] = None
    notes: Optional[str] = None
    approval_status: str
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[UUID] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
