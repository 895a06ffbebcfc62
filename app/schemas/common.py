"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ErrorDetail(BaseModel):
    """A single field-level validation error."""
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


# OpenAPI documentation for the errors every analytics route can return.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Missing or unknown X-User-Id."},
    403: {"model": ErrorResponse, "description": "Scope not readable by this caller."},
    404: {"model": ErrorResponse, "description": "Team or user not in the caller's organization."},
    422: {"model": ErrorResponse, "description": "Invalid filters or missing id."},
}
