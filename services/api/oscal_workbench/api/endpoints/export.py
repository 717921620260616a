"""Document export endpoint."""

from pathlib import PurePath

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import Response

from oscal_workbench.api.uploads import load_upload
from oscal_workbench.core.logging import get_logger
from oscal_workbench.services.exporter import (
    FILE_EXTENSIONS,
    MEDIA_TYPES,
    ExportFormat,
    export_document,
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("")
async def export(
    file: UploadFile = File(..., description="OSCAL JSON or XML document"),
    export_format: ExportFormat = Form(ExportFormat.JSON, description="json, markdown or csv"),
) -> Response:
    """Render an uploaded document as JSON, Markdown or CSV."""
    document = await load_upload(file)
    content = export_document(document, export_format)

    stem = PurePath(file.filename).stem if file.filename else document.type.value
    filename = f"{stem}.{FILE_EXTENSIONS[export_format]}"

    logger.info(
        "Document exported",
        document_type=document.type.value,
        export_format=export_format.value,
        size_bytes=len(content),
    )
    return Response(
        content=content,
        media_type=MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
