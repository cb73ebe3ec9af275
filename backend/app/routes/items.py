"""
Magic Movers Backend — Item Route Handlers
============================================

What:  /items endpoints: create, list, get, update, delete.
How:   Delegates to ItemService. Items become held only through
       POST /movers/{id}/load and are released by end-mission.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Path, Response

from app.dependencies import ItemServiceDep, PaginationDep
from app.schemas.common import DeleteResponse, ErrorResponse
from app.schemas.item import ItemCreate, ItemListResponse, ItemResponse, ItemUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/items", tags=["Items"])

ItemId = Annotated[int, Path(description="Item ID", ge=1)]


@router.post(
    "",
    status_code=201,
    response_model=ItemResponse,
    responses={400: {"description": "Invalid input or duplicate name", "model": ErrorResponse}},
    summary="Create an item",
)
async def create_item(payload: ItemCreate, service: ItemServiceDep) -> ItemResponse:
    return await service.create_item(payload)


@router.get(
    "",
    response_model=ItemListResponse,
    summary="List items",
    description="Paginated list ordered by id (descending by default).",
)
async def list_items(
    response: Response,
    page: PaginationDep,
    service: ItemServiceDep,
) -> ItemListResponse:
    result = await service.list_items(
        limit=page.limit, offset=page.offset, descending=page.descending
    )
    response.headers["X-Total-Count"] = str(result.total)
    return result


@router.get(
    "/{item_id}",
    response_model=ItemResponse,
    responses={404: {"description": "Item not found", "model": ErrorResponse}},
    summary="Get an item by ID",
)
async def get_item(item_id: ItemId, service: ItemServiceDep) -> ItemResponse:
    return await service.get_item(item_id)


@router.put(
    "/{item_id}",
    response_model=ItemResponse,
    responses={
        400: {"description": "Invalid input, duplicate name or capacity exceeded", "model": ErrorResponse},
        404: {"description": "Item not found", "model": ErrorResponse},
        409: {"description": "Holder modified concurrently", "model": ErrorResponse},
    },
    summary="Update an item",
    description=(
        "Updates name and/or weight. A held item's new weight must still fit "
        "within its mover's weightLimit."
    ),
)
async def update_item(
    item_id: ItemId,
    payload: ItemUpdate,
    service: ItemServiceDep,
) -> ItemResponse:
    return await service.update_item(item_id, payload)


@router.delete(
    "/{item_id}",
    response_model=DeleteResponse,
    responses={404: {"description": "Item not found", "model": ErrorResponse}},
    summary="Delete an item",
)
async def delete_item(item_id: ItemId, service: ItemServiceDep) -> DeleteResponse:
    return await service.delete_item(item_id)
