"""API endpoints for shipping boxes."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from factory.api.deps import DB, ShippingContext, Publisher
from factory.models.box import BoxStatus
from factory.schemas.box import BoxResponse, BoxListResponse, BoxStatusUpdate
from factory.services.box_service import BoxService

router = APIRouter()


@router.get("", response_model=BoxListResponse)
async def list_boxes(
    db: DB,
    ctx: ShippingContext,
    status: Optional[BoxStatus] = Query(None, description="PACKED, SHIPPED, DELIVERED"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    items, total = await BoxService(db).list_boxes(status=status, skip=skip, limit=limit)
    return BoxListResponse(
        items=[BoxResponse.model_validate(b) for b in items],
        total=total,
    )


@router.patch("/{box_id}/status", response_model=BoxResponse)
async def update_box_status(
    box_id: UUID,
    data: BoxStatusUpdate,
    db: DB,
    ctx: ShippingContext,
    publisher: Publisher,
):
    """Move a box forward: PACKED -> SHIPPED -> DELIVERED."""
    box = await BoxService(db, publisher).update_status(box_id, data.status, ctx)
    return BoxResponse.model_validate(box)
