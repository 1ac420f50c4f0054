"""Application exception types."""

from app.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


def resource_not_found() -> ApiError:
    return ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")


def record_invalid() -> ApiError:
    return ApiError(status_code=500, code="RECORD_INVALID", message="Stored record is malformed")


__all__ = ["ApiError", "record_invalid", "resource_not_found"]
