"""API Routes module"""
from fastapi import APIRouter

from .statuses import router as statuses_router
from .workflows import router as workflows_router
from .entities import router as entities_router

# Main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(statuses_router, prefix="/statuses", tags=["Statuses"])
api_router.include_router(workflows_router, prefix="/workflows", tags=["Workflows"])
api_router.include_router(entities_router, prefix="/entities", tags=["Entities"])

__all__ = ["api_router"]
