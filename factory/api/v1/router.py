from fastapi import APIRouter

from factory.api.v1.endpoints import (
    batches,
    production,
    quality,
    rework,
    approvals,
    boxes,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(
    batches.router,
    prefix="/batches",
    tags=["Batches"]
)

api_router.include_router(
    production.router,
    prefix="/production",
    tags=["Production Logs"]
)

api_router.include_router(
    quality.router,
    prefix="/quality",
    tags=["Quality"]
)

api_router.include_router(
    rework.router,
    prefix="/rework",
    tags=["Rework"]
)

api_router.include_router(
    approvals.router,
    prefix="/approvals",
    tags=["Approvals"]
)

api_router.include_router(
    boxes.router,
    prefix="/boxes",
    tags=["Boxes"]
)
