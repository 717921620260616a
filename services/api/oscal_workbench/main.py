"""
FastAPI application for the OSCAL Workbench.

Documents arrive as uploads or URLs and leave as summaries, resolved control
sets, diffs or exports. Nothing is stored between requests.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oscal_workbench.api.routes import api_router
from oscal_workbench.core.config import get_settings
from oscal_workbench.core.exceptions import OscalWorkbenchException
from oscal_workbench.core.logging import setup_logging
from oscal_workbench.models.oscal import DocumentType
from oscal_workbench.services.exporter import ExportFormat
from oscal_workbench.services.resolver import close_resolution_service

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the fetch configuration on startup; close the shared HTTP client on shutdown."""
    settings = get_settings()
    logger.info(
        "OSCAL Workbench starting",
        version=settings.version,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
        follow_redirects=settings.follow_redirects,
        rewrite_github_blob_urls=settings.rewrite_github_blob_urls,
    )

    yield

    await close_resolution_service()
    logger.info("OSCAL Workbench stopped")


async def workbench_exception_handler(request: Request, exc: OscalWorkbenchException) -> JSONResponse:
    """Render a workbench error; bad input is a warning, upstream failures are errors."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        error_code=exc.error_code,
        error=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "message": exc.message, "details": exc.details},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred",
            "details": str(exc) if get_settings().debug else None,
        },
    )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    setup_logging()

    app = FastAPI(
        title=settings.project_name,
        description=(
            "Parse, resolve, compare and export OSCAL catalogs, profiles, "
            "component definitions, SSPs, assessment results and POA&Ms, "
            "in JSON or XML."
        ),
        version=settings.version,
        openapi_url=f"{settings.api_v1_str}/openapi.json",
        lifespan=lifespan,
    )

    # Export downloads need Content-Disposition readable from browser code.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    app.add_exception_handler(OscalWorkbenchException, workbench_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(api_router, prefix=settings.api_v1_str)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Service information, including what can be uploaded and exported."""
        return {
            "service": settings.project_name,
            "version": settings.version,
            "document_types": [t.value for t in DocumentType],
            "export_formats": [f.value for f in ExportFormat],
            "openapi_url": app.openapi_url,
        }

    @app.get("/healthz")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("oscal_workbench.main:app", host="0.0.0.0", port=8000, log_config=None)
