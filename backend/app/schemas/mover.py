"""
Magic Movers Backend — Mover Request/Response Schemas
=======================================================

What:  Pydantic models defining the movers API contract.
How:   Request models forbid unknown fields, so `questState` and
       `missionsCompleted` can never be set through create/update. Only the
       quest transitions (load, start-mission, end-mission) change them.

Model Inventory:
    Requests:  MoverCreate, MoverUpdate, LoadItemsRequest
    Responses: MoverResponse (with held items), MoverListItem,
               MoverListResponse, TopMoversResponse
"""

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, StrictInt, field_validator, model_validator

from app.models.mover import QuestState
from app.schemas.common import CamelModel
from app.schemas.item import ItemResponse


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class MoverCreate(CamelModel):
    """Body of POST /movers."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255, description="Unique mover name")
    weight_limit: int = Field(gt=0, strict=True, description="Capacity (positive integer)")
    energy: int = Field(strict=True, description="Energy level")


class MoverUpdate(CamelModel):
    """Body of PUT /movers/{id}; at least one field is required."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    weight_limit: Optional[int] = Field(default=None, gt=0, strict=True)
    energy: Optional[int] = Field(default=None, strict=True)

    @model_validator(mode="after")
    def require_a_field(self) -> "MoverUpdate":
        if self.name is None and self.weight_limit is None and self.energy is None:
            raise ValueError("Provide at least one of: name, weightLimit, energy")
        return self


class LoadItemsRequest(CamelModel):
    """
    Body of POST /movers/{id}/load.

    Rules:
        - itemIds is a non-empty array
        - every id is a positive integer
        - no id appears twice
    """
    model_config = ConfigDict(extra="forbid")

    item_ids: List[StrictInt] = Field(min_length=1, description="IDs of the items to attach")

    @field_validator("item_ids")
    @classmethod
    def validate_item_ids(cls, v: List[int]) -> List[int]:
        if any(item_id <= 0 for item_id in v):
            raise ValueError("Item IDs must be positive integers")
        if len(set(v)) != len(v):
            raise ValueError("Item IDs must be unique")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class MoverListItem(CamelModel):
    """Compact mover representation for list and ranking views (no items)."""
    id: int
    name: str
    weight_limit: int
    energy: int
    quest_state: QuestState
    missions_completed: int
    created_at: datetime
    updated_at: datetime


class MoverResponse(MoverListItem):
    """
    Full representation of a mover, including the items it holds.

    total_weight is the sum of the held item weights; it never exceeds
    weight_limit.
    """
    items: List[ItemResponse] = Field(default_factory=list)
    total_weight: int = Field(default=0, description="Sum of held item weights")


class MoverListResponse(CamelModel):
    """Paginated response wrapper for GET /movers."""
    total: int = Field(description="Total number of movers")
    limit: int = Field(description="Page size used")
    offset: int = Field(description="Number of movers skipped")
    movers: List[MoverListItem] = Field(description="Page of movers")


class TopMoversResponse(CamelModel):
    """Movers ranked by missions completed (most first)."""
    limit: Optional[int] = Field(description="Ranking size; null when every mover is listed")
    movers: List[MoverListItem]
