"""
Magic Movers Backend — Item Request/Response Schemas
======================================================

What:  Pydantic models defining the items API contract.
How:   FastAPI validates request bodies against the request models and
       serializes responses through the response models (camelCase JSON).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, model_validator

from app.schemas.common import CamelModel


class ItemCreate(CamelModel):
    """Body of POST /items."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255, description="Unique item name")
    weight: int = Field(gt=0, strict=True, description="Item weight (positive integer)")


class ItemUpdate(CamelModel):
    """Body of PUT /items/{id}; at least one field is required."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    weight: Optional[int] = Field(default=None, gt=0, strict=True)

    @model_validator(mode="after")
    def require_a_field(self) -> "ItemUpdate":
        if self.name is None and self.weight is None:
            raise ValueError("Provide at least one of: name, weight")
        return self


class ItemResponse(CamelModel):
    """Full representation of an item."""
    id: int = Field(description="Item ID")
    name: str = Field(description="Item name")
    weight: int = Field(description="Item weight")
    mover_id: Optional[int] = Field(
        default=None,
        description="ID of the mover holding the item (null when unassigned)",
    )
    created_at: datetime
    updated_at: datetime


class ItemListResponse(CamelModel):
    """Paginated response wrapper for GET /items."""
    total: int = Field(description="Total number of items")
    limit: int = Field(description="Page size used")
    offset: int = Field(description="Number of items skipped")
    items: List[ItemResponse] = Field(description="Page of items")
