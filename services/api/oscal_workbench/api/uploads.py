"""Helpers shared by endpoints that accept uploaded OSCAL documents."""

from typing import Any, Dict, Optional

from fastapi import HTTPException, UploadFile

from oscal_workbench.core.config import get_settings
from oscal_workbench.core.exceptions import MalformedInputError, UnexpectedDocumentTypeError
from oscal_workbench.models.oscal import DocumentType, OscalDocument
from oscal_workbench.services.controls import count_controls
from oscal_workbench.services.parser import load_document_text


async def read_upload(file: UploadFile) -> str:
    """Read an upload as text, enforcing the configured size limit."""
    settings = get_settings()
    content = await file.read()
    if len(content) > settings.max_upload_size:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds maximum upload size of {settings.max_upload_size} bytes",
        )
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedInputError(
            "Uploaded file is not valid UTF-8 text",
            details={"filename": file.filename},
        ) from e


async def load_upload(
    file: UploadFile,
    source_format: Optional[str] = None,
    expected: Optional[DocumentType] = None,
) -> OscalDocument:
    """Parse an uploaded document, optionally requiring a document type."""
    text = await read_upload(file)
    document = load_document_text(text, source_format=source_format, filename=file.filename)
    if expected is not None and document.type != expected:
        raise UnexpectedDocumentTypeError(expected.value, document.type.value)
    return document


def serialize_document(document: OscalDocument) -> Dict[str, Any]:
    """The document in OSCAL JSON form, under its envelope key."""
    body = document.document.model_dump(mode="json", by_alias=True, exclude_none=True)
    return {document.type.value: body}


def document_summary(document: OscalDocument) -> Dict[str, Any]:
    summary = {
        "type": document.type.value,
        "version": document.version,
        "uuid": document.document.uuid,
        "title": document.title,
        "document_version": document.metadata.version,
        "last_modified": document.metadata.last_modified,
    }
    if document.type == DocumentType.CATALOG:
        summary["control_count"] = count_controls(document.document)
    return summary
