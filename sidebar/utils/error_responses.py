"""JSON bodies returned by the sidebar API's exception handlers.

Every body carries the request id from :mod:`sidebar.utils.request_context`
so a failed import or a rejected site can be traced back to its log line.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from sidebar.schemas.error import (
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from sidebar.services.site_registry import ImportFormatError, SidebarError
from sidebar.utils.request_context import get_request_id

__all__ = [
    "build_error_response",
    "build_sidebar_error_response",
    "build_validation_error_response",
    "describe_sidebar_error",
]


def _current_timestamp() -> datetime:
    """Return a timezone-aware timestamp; patched by tests for determinism."""

    return datetime.now(timezone.utc)


def _stamped(**fields) -> dict:
    fields["timestamp"] = _current_timestamp()
    fields["request_id"] = fields.get("request_id") or get_request_id() or None
    return fields


def describe_sidebar_error(exc: SidebarError) -> tuple[ErrorType, str]:
    """Return the error type and headline for a rejected registry operation."""

    if isinstance(exc, ImportFormatError):
        return ErrorType.IMPORT_ERROR, "Import rejected"
    return ErrorType.INVALID_SITE, "Site rejected"


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    return ValidationErrorResponse(
        **_stamped(
            error_type=ErrorType.VALIDATION_ERROR,
            message=message,
            detail=detail,
            status_code=status_code,
            path=path,
            request_id=request_id,
            errors=list(errors),
        )
    )


def build_error_response(
    *,
    error_type: ErrorType,
    message: str,
    detail: str,
    status_code: int,
    path: str,
    request_id: str | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        **_stamped(
            error_type=error_type,
            message=message,
            detail=detail,
            status_code=status_code,
            path=path,
            request_id=request_id,
        )
    )


def build_sidebar_error_response(
    exc: SidebarError, *, path: str, status_code: int = 400
) -> ErrorResponse:
    """Describe a :class:`SidebarError` with the exception text as ``detail``."""

    error_type, message = describe_sidebar_error(exc)
    return build_error_response(
        error_type=error_type,
        message=message,
        detail=str(exc),
        status_code=status_code,
        path=path,
    )
