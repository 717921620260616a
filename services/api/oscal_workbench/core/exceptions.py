"""Custom exceptions for the OSCAL Workbench."""

from typing import Any, Optional


class OscalWorkbenchException(Exception):
    """Base exception for all OSCAL Workbench errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class MalformedInputError(OscalWorkbenchException):
    """Raised when JSON or XML input cannot be parsed at all."""

    def __init__(
        self,
        message: str = "Input could not be parsed",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="MALFORMED_INPUT",
            status_code=422,
            details=details,
        )


class UnrecognizedTypeError(OscalWorkbenchException):
    """Raised when the top-level object is not one of the OSCAL document envelopes."""

    def __init__(
        self,
        message: str = (
            "Unrecognized OSCAL document type. Expected top-level key: catalog, profile, "
            "component-definition, system-security-plan, assessment-results, "
            "or plan-of-action-and-milestones"
        ),
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="UNRECOGNIZED_TYPE",
            status_code=422,
            details=details,
        )


class MissingRequiredFieldError(OscalWorkbenchException):
    """Raised when a required document field is absent or has the wrong shape."""

    def __init__(
        self,
        field: str,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.field = field
        super().__init__(
            message=message or f"Missing required field: {field}",
            error_code="MISSING_REQUIRED_FIELD",
            status_code=422,
            details={"field": field, **(details or {})},
        )


class UnresolvableReferenceError(OscalWorkbenchException):
    """Raised when an href cannot be turned into a fetchable URL."""

    def __init__(
        self,
        message: str = "Reference cannot be resolved",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="UNRESOLVABLE_REFERENCE",
            status_code=422,
            details=details,
        )


class FetchFailureError(OscalWorkbenchException):
    """Raised when a document cannot be fetched at the network level."""

    REMEDIATION = "Download the document and load it locally instead."

    def __init__(
        self,
        message: str = "Network error: server unreachable or cross-origin access refused",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="FETCH_FAILURE",
            status_code=502,
            details={"remediation": self.REMEDIATION, **(details or {})},
        )


class HttpError(OscalWorkbenchException):
    """Raised when a fetch returns a non-2xx response."""

    def __init__(
        self,
        status: int,
        reason: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status = status
        super().__init__(
            message=f"HTTP {status}: {reason}",
            error_code="HTTP_ERROR",
            status_code=502,
            details={"status": status, **(details or {})},
        )


class UnexpectedDocumentTypeError(OscalWorkbenchException):
    """Raised when a fetched document parses but has the wrong type for its role."""

    def __init__(
        self,
        expected: str,
        actual: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=f"Expected {expected}, got {actual}",
            error_code="UNEXPECTED_DOCUMENT_TYPE",
            status_code=422,
            details={"expected": expected, "actual": actual, **(details or {})},
        )


class DocumentTypeMismatchError(OscalWorkbenchException):
    """Raised when two documents of different types are compared."""

    def __init__(
        self,
        left: str,
        right: str,
    ) -> None:
        super().__init__(
            message=f"Cannot compare documents of different types: {left} vs {right}",
            error_code="DOCUMENT_TYPE_MISMATCH",
            status_code=400,
            details={"left": left, "right": right},
        )
