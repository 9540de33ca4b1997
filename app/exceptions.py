# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors carry a machine-readable code and, where possible, a suggestion
# telling the caller how to fix the problem.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class CaptionStudioException(Exception):
    """
    Base exception for the Caption Studio API.

    All custom exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: str = "CAPTION_STUDIO_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Upload Exceptions
# =============================================================================

class InvalidFileTypeError(CaptionStudioException):
    """Raised when an uploaded image has no declared or an unsupported type."""

    def __init__(self, content_type: str | None, allowed: list[str]):
        super().__init__(
            message=f"Unsupported file type: {content_type or 'unknown'}",
            code="INVALID_FILE_TYPE",
            status_code=400,
            suggestion=f"Use one of: {', '.join(allowed)}",
            details={"content_type": content_type, "allowed_types": allowed}
        )


class FileTooLargeError(CaptionStudioException):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb}MB)",
            code="FILE_TOO_LARGE",
            status_code=413,
            suggestion=f"Upload an image smaller than {max_mb}MB",
            details={"size_mb": size_mb, "max_mb": max_mb}
        )


# =============================================================================
# Pipeline Exceptions
# =============================================================================

class PipelineBusyError(CaptionStudioException):
    """Raised when a caption run is submitted while another is in flight."""

    def __init__(self, user_id: str):
        super().__init__(
            message="A caption run is already in progress",
            code="PIPELINE_BUSY",
            status_code=409,
            suggestion="Wait for the current run to finish (GET /api/v1/pipeline/state)",
            details={"user_id": user_id}
        )


# =============================================================================
# Database Exceptions
# =============================================================================

class DatabaseError(CaptionStudioException):
    """Raised when a Supabase read or write fails."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            message=f"Database {operation} failed: {error}",
            code="DATABASE_ERROR",
            status_code=502,
            suggestion="Try again later; if it persists check your session is still valid",
            details={"operation": operation}
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def caption_studio_exception_handler(
    request: Request,
    exc: CaptionStudioException
) -> JSONResponse:
    """
    Convert CaptionStudioException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
