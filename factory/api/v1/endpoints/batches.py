"""API endpoints for batch intake and lookup."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from factory.api.deps import DB, CurrentContext, AdminContext, Publisher
from factory.models.batch import BatchStatus, ProductionStage
from factory.schemas.batch import (
    BatchCreate,
    BatchResponse,
    BatchListResponse,
    QualitySummaryResponse,
)
from factory.services.batch_service import BatchService

router = APIRouter()


@router.post("", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(
    data: BatchCreate,
    db: DB,
    ctx: AdminContext,
    publisher: Publisher,
):
    """Register a new batch at CUTTING with an empty ledger."""
    batch = await BatchService(db, publisher).create_batch(data, ctx)
    return BatchResponse.model_validate(batch)


@router.get("", response_model=BatchListResponse)
async def list_batches(
    db: DB,
    ctx: CurrentContext,
    status: Optional[BatchStatus] = Query(None, description="PENDING, IN_PROGRESS, COMPLETED, CANCELLED"),
    current_stage: Optional[ProductionStage] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    items, total = await BatchService(db).list_batches(
        status=status,
        current_stage=current_stage,
        skip=skip,
        limit=limit,
    )
    return BatchListResponse(
        items=[BatchResponse.model_validate(b) for b in items],
        total=total,
    )


@router.get("/{batch_id}", response_model=BatchResponse)
async def get_batch(batch_id: UUID, db: DB, ctx: CurrentContext):
    batch = await BatchService(db).get_batch(batch_id)
    return BatchResponse.model_validate(batch)


@router.post("/{batch_id}/cancel", response_model=BatchResponse)
async def cancel_batch(
    batch_id: UUID,
    db: DB,
    ctx: AdminContext,
    publisher: Publisher,
):
    """Cancel a batch that is still PENDING or IN_PROGRESS."""
    batch = await BatchService(db, publisher).cancel_batch(batch_id, ctx)
    return BatchResponse.model_validate(batch)


@router.get("/{batch_id}/quality-summary", response_model=QualitySummaryResponse)
async def get_quality_summary(batch_id: UUID, db: DB, ctx: CurrentContext):
    """
    Ledger snapshot with inspection progress, defects per origin stage and
    the rework pool left for each reworkable stage.
    """
    return await BatchService(db).quality_summary(batch_id)
