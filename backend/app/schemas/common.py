"""
Magic Movers Backend — Shared Schemas
=======================================

What:  Base model configuration, error/health response models, and the
       field-level error formatter.
How:   Every API model inherits CamelModel, so Python code uses snake_case
       attribute names while JSON uses camelCase (`weightLimit`,
       `questState`, `missionsCompleted`), matching the public API.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Leading `loc` entries FastAPI adds to say where a value came from
_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


class CamelModel(BaseModel):
    """Base for all API models: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class FieldError(BaseModel):
    """One field-level validation problem."""
    field: str = Field(description="Dotted path of the offending field, e.g. itemIds.0")
    message: str = Field(description="What is wrong with the value")


def field_errors(errors: Iterable[Mapping[str, Any]]) -> List[Dict[str, str]]:
    """
    Convert Pydantic error dicts into a flat list of {"field", "message"}.

    What:  Accepts the output of `pydantic.ValidationError.errors()` or of
           FastAPI's `RequestValidationError.errors()`.
    How:   The request location prefix (body/query/path) is dropped and the
           remaining `loc` parts are joined with dots.

    Example:
        [{"loc": ("body", "itemIds", 1), "msg": "Input should be a valid integer"}]
        → [{"field": "itemIds.1", "message": "Input should be a valid integer"}]
    """
    result = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        result.append({
            "field": ".".join(loc) if loc else "body",
            "message": str(error.get("msg", "Invalid value")),
        })
    return result


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g. "NotFound", "CapacityExceeded")
        message: Human-readable description
        details: Optional extra context (e.g. field errors, weight totals)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "CapacityExceeded",
            "message": "Total weight 11 exceeds the mover's weight limit of 10",
            "details": {"weight_limit": 10, "total_weight": 11},
            "request_id": "3f2a9c1b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class DeleteResponse(CamelModel):
    message: str = Field(description="Human-readable confirmation")
    id: int = Field(description="ID of the deleted resource")


class HealthResponse(CamelModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class PaginationParams(BaseModel):
    """
    Validated query parameters shared by the list endpoints.

    Parameters:
        limit:  Items per page (1..MAX_PAGE_SIZE, default DEFAULT_PAGE_SIZE)
        offset: Number of rows to skip
        order:  Sort direction on id, "asc" or "desc" (newest first)
    """
    limit: int = Field(ge=1)
    offset: int = Field(default=0, ge=0)
    order: str = Field(default="desc")

    @field_validator("order")
    @classmethod
    def validate_order(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"asc", "desc"}:
            raise ValueError(f"Invalid order '{v}'. Must be one of: asc, desc")
        return lower

    @property
    def descending(self) -> bool:
        return self.order == "desc"
