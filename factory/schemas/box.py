from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel

from factory.models.box import BoxStatus
from factory.schemas.base import BaseResponseSchema


class BoxResponse(BaseResponseSchema):
    id: UUID
    box_code: str
    batch_id: UUID
    quantity: int
    status: str
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class BoxListResponse(BaseModel):
    items: List[BoxResponse]
    total: int


class BoxStatusUpdate(BaseModel):
    status: BoxStatus
