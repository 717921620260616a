"""
OSCAL document parsing.

Turns a raw JSON-shaped object (from ``json.loads`` or the XML adapter) into
a typed :class:`OscalDocument`. Only the fields that make a document usable
are enforced; nested content is accepted leniently.
"""

import json
from pathlib import PurePath
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from oscal_workbench.core.exceptions import (
    MalformedInputError,
    MissingRequiredFieldError,
    OscalWorkbenchException,
    UnrecognizedTypeError,
)
from oscal_workbench.models.oscal import DOCUMENT_MODELS, DocumentType, OscalDocument
from oscal_workbench.services.xml_adapter import xml_to_json

logger = structlog.get_logger(__name__)

# Detection order matters when a payload carries more than one envelope key.
DOCUMENT_TYPE_ORDER = (
    DocumentType.CATALOG,
    DocumentType.PROFILE,
    DocumentType.COMPONENT_DEFINITION,
    DocumentType.SYSTEM_SECURITY_PLAN,
    DocumentType.ASSESSMENT_RESULTS,
    DocumentType.PLAN_OF_ACTION_AND_MILESTONES,
)

DOCUMENT_LABELS: Dict[DocumentType, str] = {
    DocumentType.CATALOG: "Catalog",
    DocumentType.PROFILE: "Profile",
    DocumentType.COMPONENT_DEFINITION: "Component definition",
    DocumentType.SYSTEM_SECURITY_PLAN: "SSP",
    DocumentType.ASSESSMENT_RESULTS: "Assessment results",
    DocumentType.PLAN_OF_ACTION_AND_MILESTONES: "POA&M",
}

# Per-type required fields beyond uuid and metadata.
_REQUIRED_OBJECTS: Dict[DocumentType, tuple] = {
    DocumentType.SYSTEM_SECURITY_PLAN: (
        "import-profile",
        "system-characteristics",
        "system-implementation",
        "control-implementation",
    ),
}
_REQUIRED_ARRAYS: Dict[DocumentType, tuple] = {
    DocumentType.PROFILE: ("imports",),
    DocumentType.ASSESSMENT_RESULTS: ("results",),
    DocumentType.PLAN_OF_ACTION_AND_MILESTONES: ("poam-items",),
}


class ParseResult(BaseModel):
    """Outcome of a non-raising parse."""

    success: bool = Field(description="Whether a document was produced")
    document: Optional[OscalDocument] = Field(default=None, description="Parsed document")
    error: Optional[str] = Field(default=None, description="Failure message")
    error_code: Optional[str] = Field(default=None, description="Failure error code")
    field: Optional[str] = Field(default=None, description="Offending field, when known")

    @classmethod
    def failure(cls, exc: OscalWorkbenchException) -> "ParseResult":
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.error_code,
            field=getattr(exc, "field", None),
        )


def _is_object(value: Any) -> bool:
    return isinstance(value, dict)


def _is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def detect_document_type(raw: Any) -> Optional[DocumentType]:
    """Return the first envelope key whose value is an object, or ``None``."""
    if not _is_object(raw):
        return None
    for doc_type in DOCUMENT_TYPE_ORDER:
        if _is_object(raw.get(doc_type.value)):
            return doc_type
    return None


def detect_version(raw: Any) -> str:
    """Return the first ``metadata.oscal-version`` string found, else ``"unknown"``."""
    if not _is_object(raw):
        return "unknown"
    for doc_type in DOCUMENT_TYPE_ORDER:
        body = raw.get(doc_type.value)
        if not _is_object(body):
            continue
        metadata = body.get("metadata")
        if _is_object(metadata) and isinstance(metadata.get("oscal-version"), str):
            return metadata["oscal-version"]
    return "unknown"


def _missing(label: str, field: str, suffix: str = "") -> MissingRequiredFieldError:
    return MissingRequiredFieldError(
        field=field,
        message=f"{label} is missing required field: {field}{suffix}",
    )


def _validate_required(doc_type: DocumentType, body: Dict[str, Any]) -> None:
    label = DOCUMENT_LABELS[doc_type]

    if not _is_non_empty_str(body.get("uuid")):
        raise _missing(label, "uuid")

    metadata = body.get("metadata")
    if not _is_object(metadata):
        raise _missing(label, "metadata")
    if not _is_non_empty_str(metadata.get("title")):
        raise _missing(label, "metadata.title")
    if not _is_non_empty_str(metadata.get("oscal-version")):
        raise _missing(label, "metadata.oscal-version")

    for field in _REQUIRED_ARRAYS.get(doc_type, ()):
        value = body.get(field)
        if not isinstance(value, list) or not value:
            raise _missing(label, field, " (must be a non-empty array)")

    for field in _REQUIRED_OBJECTS.get(doc_type, ()):
        if not _is_object(body.get(field)):
            raise _missing(label, field)


def build_document(raw: Any) -> OscalDocument:
    """Build a typed document from a raw JSON-shaped object.

    Raises:
        UnrecognizedTypeError: no known envelope key holds an object.
        MissingRequiredFieldError: a required field is absent, or a nested
            value has a shape the content models reject.
    """
    doc_type = detect_document_type(raw)
    if doc_type is None:
        raise UnrecognizedTypeError()

    body = raw[doc_type.value]
    _validate_required(doc_type, body)

    model = DOCUMENT_MODELS[doc_type]
    try:
        document = model.model_validate(body)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or doc_type.value
        raise MissingRequiredFieldError(
            field=field,
            message=f"{DOCUMENT_LABELS[doc_type]} has an invalid value at {field}: {error['msg']}",
        ) from e

    return OscalDocument(type=doc_type, version=detect_version(raw), document=document)


def parse_oscal_document(raw: Any) -> ParseResult:
    """Parse a raw object into a :class:`ParseResult`. Never raises."""
    try:
        document = build_document(raw)
    except OscalWorkbenchException as e:
        logger.debug("Document rejected", error_code=e.error_code, error=e.message)
        return ParseResult.failure(e)
    return ParseResult(success=True, document=document)


def detect_source_format(
    text: str,
    source_format: Optional[str] = None,
    filename: Optional[str] = None,
) -> str:
    """Decide between ``json`` and ``xml``: explicit format, extension, first character."""
    if source_format:
        return source_format.lower()
    if filename:
        suffix = PurePath(filename).suffix.lower()
        if suffix in (".json", ".xml"):
            return suffix[1:]
    return "xml" if text.lstrip().startswith("<") else "json"


def load_raw(
    text: str,
    source_format: Optional[str] = None,
    filename: Optional[str] = None,
) -> Any:
    """Decode JSON or XML text into a raw object, raising ``MalformedInputError``."""
    fmt = detect_source_format(text, source_format, filename)
    if fmt == "xml":
        return xml_to_json(text)
    if fmt != "json":
        raise MalformedInputError(f"Unsupported source format: {fmt}")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError(
            f"JSON parse error: {e}",
            details={"format": "json"},
        ) from e


def load_document_text(
    text: str,
    source_format: Optional[str] = None,
    filename: Optional[str] = None,
) -> OscalDocument:
    """Decode and build a document from text, raising the typed exceptions."""
    return build_document(load_raw(text, source_format, filename))


def parse_document_text(
    text: str,
    source_format: Optional[str] = None,
    filename: Optional[str] = None,
) -> ParseResult:
    """Decode and parse document text into a :class:`ParseResult`. Never raises."""
    try:
        raw = load_raw(text, source_format, filename)
    except OscalWorkbenchException as e:
        return ParseResult.failure(e)
    return parse_oscal_document(raw)
