"""Document comparison endpoint."""

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import JSONResponse

from oscal_workbench.api.uploads import load_upload
from oscal_workbench.core.exceptions import DocumentTypeMismatchError
from oscal_workbench.core.logging import get_logger
from oscal_workbench.services.differ import diff_documents

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=dict)
async def compare_documents(
    left: UploadFile = File(..., description="Baseline document"),
    right: UploadFile = File(..., description="Document to compare against the baseline"),
) -> JSONResponse:
    """
    Compare two OSCAL documents of the same type.

    Elements are matched by identifier; the result lists added, removed,
    modified and unchanged entries per section.
    """
    left_doc = await load_upload(left)
    right_doc = await load_upload(right)

    if left_doc.type != right_doc.type:
        raise DocumentTypeMismatchError(left_doc.type.value, right_doc.type.value)

    result = diff_documents(left_doc.type, left_doc.document, right_doc.document)

    logger.info(
        "Documents compared",
        document_type=result.type.value,
        added=result.summary.added,
        removed=result.summary.removed,
        modified=result.summary.modified,
    )
    return JSONResponse(
        status_code=200,
        content=result.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
