"""Main API router configuration."""

from datetime import datetime, timezone

from fastapi import APIRouter

from oscal_workbench.api.endpoints import (
    comparison,
    documents,
    export,
    resolution,
)
from oscal_workbench.core.config import get_settings

api_router = APIRouter()


# Health check routes
@api_router.get("/health")
async def health() -> dict[str, str]:
    """API health check."""
    return {
        "status": "healthy",
        "service": "api",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# Version and info routes
@api_router.get("/version")
async def version() -> dict[str, str]:
    """Get API version information."""
    settings = get_settings()
    return {
        "version": settings.version,
        "oscal_version": settings.oscal_version,
        "api_version": "v1",
        "service": settings.project_name,
    }


# Include endpoint routers
api_router.include_router(
    documents.router,
    prefix="/documents",
    tags=["Documents"],
    responses={
        413: {"description": "Upload too large"},
        422: {"description": "Document could not be parsed"},
        502: {"description": "Upstream fetch failed"},
    }
)

api_router.include_router(
    resolution.router,
    prefix="/resolution",
    tags=["Resolution"],
    responses={
        422: {"description": "Invalid document or reference"},
        500: {"description": "Server error"},
    }
)

api_router.include_router(
    comparison.router,
    prefix="/comparison",
    tags=["Comparison"],
    responses={
        400: {"description": "Documents are of different types"},
        422: {"description": "Document could not be parsed"},
        500: {"description": "Server error"},
    }
)

api_router.include_router(
    export.router,
    prefix="/export",
    tags=["Export"],
    responses={
        422: {"description": "Document could not be parsed"},
        500: {"description": "Server error"},
    }
)
