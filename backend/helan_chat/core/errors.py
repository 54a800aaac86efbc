"""Error handling

Standard error response body and the application exceptions.
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, status
from pydantic import BaseModel


class ErrorPayload(BaseModel):
    """Standard error body"""

    code: str
    message: str
    data: dict[str, Any] | None = None
    timestamp: str


class AppError(HTTPException):
    """Application exception rendered as a standard error body

    Example:
        raise AppError(
            code="page_not_found",
            message="Page does not exist",
            status_code=404,
            data={"url": url},
        )
    """

    def __init__(
        self,
        *,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        data: dict[str, Any] | None = None,
    ):
        self.code = code
        self.error_message = message
        self.data = data
        super().__init__(status_code=status_code, detail=message)


class CrawlInProgressError(RuntimeError):
    """A crawl run was requested while another one is still running"""

    def __init__(self, started_at: datetime | None = None):
        self.started_at = started_at
        super().__init__("A crawl run is already in progress")


def create_error_response(
    code: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the standard error body"""
    return {
        "error": ErrorPayload(
            code=code,
            message=message,
            data=data,
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        ).model_dump()
    }


def raise_not_found(resource: str, resource_id: str | None = None) -> None:
    raise AppError(
        code=f"{resource}_not_found",
        message=f"{resource.capitalize()} does not exist",
        status_code=status.HTTP_404_NOT_FOUND,
        data={"resource": resource, "id": resource_id} if resource_id else {"resource": resource},
    )


def raise_bad_request(code: str, message: str, data: dict[str, Any] | None = None) -> None:
    raise AppError(
        code=code,
        message=message,
        status_code=status.HTTP_400_BAD_REQUEST,
        data=data,
    )


def raise_service_unavailable(
    service: str,
    message: str | None = None,
    *,
    cause: Exception | None = None,
) -> None:
    raise AppError(
        code="feature_disabled",
        message=message or f"{service} is unavailable",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        data={"feature": service},
    ) from cause
