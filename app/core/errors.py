"""
Custom exception hierarchy for the Pulse analytics API.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages. Authorization failures
(401/403) are always distinct from transient ones (5xx).
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class PulseException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotAuthenticatedError(PulseException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"

    def __init__(self, message: str = "A valid X-User-Id header is required."):
        super().__init__(message=message)


class ScopeForbiddenError(PulseException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "SCOPE_FORBIDDEN"

    def __init__(self, scope: str, entity_id: str | None, reason: str):
        super().__init__(
            message=f"Not allowed to read {scope} analytics: {reason}",
            details={"scope": scope, "id": entity_id},
        )


class AdminRequiredError(PulseException):
    """Non-admin caller on an admin-only endpoint. Shares the scope-forbidden wire code."""
    http_status = ScopeForbiddenError.http_status
    code = ScopeForbiddenError.code

    def __init__(self):
        super().__init__(message="This operation is restricted to administrators.")


class EntityNotFoundError(PulseException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "ENTITY_NOT_FOUND"

    def __init__(self, kind: str, entity_id: str):
        super().__init__(
            message=f"{kind.capitalize()} {entity_id} not found.",
            details={"kind": kind, "id": entity_id},
        )


class MissingEntityIdError(PulseException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "MISSING_ENTITY_ID"

    def __init__(self, scope: str):
        super().__init__(
            message=f"An id is required when scope is '{scope}'.",
            details={"scope": scope},
        )


class InvalidDateRangeError(PulseException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DATE_RANGE"

    def __init__(self, start: date, end: date):
        super().__init__(
            message=f"'from' ({start}) must not be later than 'to' ({end}).",
            details={"from": str(start), "to": str(end)},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def pulse_exception_handler(request: Request, exc: PulseException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(
                str(loc) for loc in error["loc"] if loc not in ("body", "query")
            ),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
