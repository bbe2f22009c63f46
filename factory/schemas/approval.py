from typing import Optional

from pydantic import BaseModel, Field

from factory.schemas.batch import BatchResponse
from factory.schemas.box import BoxResponse
from factory.schemas.production_log import ProductionLogResponse
from factory.schemas.rework import ReworkResponse


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ProductionApprovalResponse(BaseModel):
    """Result of resolving a production log."""
    log: ProductionLogResponse
    batch: BatchResponse
    box: Optional[BoxResponse] = None


class ReworkApprovalResponse(BaseModel):
    rework: ReworkResponse
    batch: BatchResponse
