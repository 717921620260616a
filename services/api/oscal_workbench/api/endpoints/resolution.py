"""
Resolution endpoints.

Each request resolves against its own document cache.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from oscal_workbench.api.uploads import load_upload
from oscal_workbench.core.logging import get_logger
from oscal_workbench.models.oscal import DocumentType
from oscal_workbench.services.document_cache import DocumentCache
from oscal_workbench.services.resolver import ResolutionService, get_resolution_service

logger = get_logger(__name__)
router = APIRouter()


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.post("/profile", response_model=dict)
async def resolve_profile(
    file: UploadFile = File(..., description="OSCAL profile"),
    base_url: Optional[str] = Form(None, description="URL the profile was loaded from"),
    service: ResolutionService = Depends(get_resolution_service),
) -> JSONResponse:
    """
    Resolve a profile's imports to the controls they select.

    Imports that fail are reported per source; the remaining imports still
    contribute their controls.
    """
    document = await load_upload(file, expected=DocumentType.PROFILE)
    resolved = await service.resolve_profile(document.document, base_url, DocumentCache())

    logger.info(
        "Profile resolution request completed",
        filename=file.filename,
        control_count=len(resolved.controls),
        source_count=len(resolved.sources),
    )
    return JSONResponse(status_code=200, content=_dump(resolved))


@router.post("/ssp", response_model=dict)
async def resolve_ssp(
    file: UploadFile = File(..., description="OSCAL system security plan"),
    base_url: Optional[str] = Form(None, description="URL the SSP was loaded from"),
    service: ResolutionService = Depends(get_resolution_service),
) -> JSONResponse:
    """Resolve an SSP through its profile to the catalog controls."""
    document = await load_upload(file, expected=DocumentType.SYSTEM_SECURITY_PLAN)
    resolved = await service.resolve_ssp(document.document, base_url, DocumentCache())

    logger.info(
        "SSP resolution request completed",
        filename=file.filename,
        control_count=len(resolved.controls),
        error_count=len(resolved.errors),
    )
    return JSONResponse(status_code=200, content=_dump(resolved))


@router.post("/source", response_model=dict)
async def resolve_source(
    href: str = Form(..., description="Source href, e.g. a control implementation source"),
    base_url: Optional[str] = Form(None, description="Base URL for relative hrefs"),
    service: ResolutionService = Depends(get_resolution_service),
) -> JSONResponse:
    """Identify the document behind a single href."""
    resolved = await service.resolve_source(href, base_url, DocumentCache())
    return JSONResponse(status_code=200, content=_dump(resolved))
