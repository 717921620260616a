"""
OSCAL document endpoints.

Parse uploaded documents or fetch them by URL, returning a summary and the
document in OSCAL JSON form.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from oscal_workbench.api.uploads import document_summary, read_upload, serialize_document
from oscal_workbench.core.logging import get_logger
from oscal_workbench.services.document_cache import DocumentCache
from oscal_workbench.services.parser import parse_document_text
from oscal_workbench.services.resolver import ResolutionService, get_resolution_service

logger = get_logger(__name__)
router = APIRouter()


@router.post("/parse", response_model=dict)
async def parse_document(
    file: UploadFile = File(..., description="OSCAL JSON or XML document"),
    source_format: Optional[Literal["json", "xml"]] = Form(
        None, description="Source format; detected from the file when omitted"
    ),
) -> JSONResponse:
    """
    Parse and validate an uploaded OSCAL document.

    Returns 422 with the failing field when the document is unusable.
    """
    text = await read_upload(file)
    result = parse_document_text(text, source_format=source_format, filename=file.filename)

    if not result.success:
        logger.info(
            "Document parse failed",
            filename=file.filename,
            error_code=result.error_code,
            field=result.field,
        )
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": result.error,
                "error_code": result.error_code,
                "field": result.field,
            },
        )

    document = result.document
    logger.info(
        "Document parsed",
        filename=file.filename,
        document_type=document.type.value,
        oscal_version=document.version,
    )
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "summary": document_summary(document),
            "document": serialize_document(document),
        },
    )


@router.post("/fetch", response_model=dict)
async def fetch_document(
    url: str = Form(..., description="Absolute URL of an OSCAL document"),
    service: ResolutionService = Depends(get_resolution_service),
) -> JSONResponse:
    """Fetch an OSCAL document by URL and parse it."""
    resolved_url = service.locate(url)
    document = await service.fetch_document(resolved_url, DocumentCache())

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "resolved_url": resolved_url,
            "summary": document_summary(document),
            "document": serialize_document(document),
        },
    )
