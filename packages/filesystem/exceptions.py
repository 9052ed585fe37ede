"""Exception classes and handlers for the filesystem package."""

from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

HTTP_422_UNPROCESSABLE = 422


class AppException(Exception):
    """Base application exception."""

    code: str = "ApplicationError"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.detail = detail or {}
        super().__init__(self.message)


class InvalidPayloadFormatError(AppException):
    """Malformed bracket field name or array-rooted payload."""

    code = "InvalidPayloadFormat"

    def __init__(self, field: str | None = None) -> None:
        super().__init__(
            message="Payload format is invalid.",
            status_code=HTTP_422_UNPROCESSABLE,
            detail={"field": field} if field else None,
        )


class UploadMaxFileSizeError(AppException):
    """Total size of the uploaded files exceeds the configured limit."""

    code = "UploadMaxFilesizeLimit"

    def __init__(self, limit: int | None = None) -> None:
        super().__init__(
            message="Payload is too large.",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={"limit": limit} if limit is not None else None,
        )


class FileNotPublicError(AppException):
    """Object requested through the public route is outside the public partition."""

    code = "FileNotPublic"

    def __init__(self) -> None:
        super().__init__(
            message="File is not public.",
            status_code=status.HTTP_403_FORBIDDEN,
        )


class ValidationError(AppException):
    """Validation error exception."""

    code = "ValidationError"

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=HTTP_422_UNPROCESSABLE,
            detail={"errors": errors or []},
        )

    @property
    def errors(self) -> list[dict[str, Any]]:
        return self.detail["errors"]


class DriverMismatchError(AppException):
    """A driver-specific route was hit while another driver is active."""

    code = "DriverMismatch"

    def __init__(self, expected: str) -> None:
        super().__init__(message=f"Filesystem is not using {expected} driver.")


def fail_validation_for_field(field: str, message: str) -> None:
    """Raise a ValidationError carrying a single field error."""
    raise ValidationError(message, errors=[{"field": field, "message": message}])


async def app_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle AppException and return JSON response."""
    if isinstance(exc, AppException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "code": exc.code,
                "detail": exc.detail,
            },
        )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": AppException.code, "detail": {}},
    )
