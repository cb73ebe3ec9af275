"""
Magic Movers Backend — Item Service (Item Registry)
=====================================================

What:  Create, list, fetch, update and delete items.
How:   Name uniqueness is checked before writes (and backed by the unique
       constraint). Changing the weight of a held item re-checks the
       holder's capacity and bumps the holder's version, so it cannot
       interleave with a concurrent load on the same mover.
Who:   Called by the /items route handlers.
"""

import logging

from app.exceptions import (
    CapacityExceededError,
    ConcurrentModificationError,
    DuplicateNameError,
    NotFoundError,
)
from app.models.item import Item
from app.repositories.base import ItemRepository, MoverRepository
from app.schemas.common import DeleteResponse
from app.schemas.item import ItemCreate, ItemListResponse, ItemResponse, ItemUpdate

logger = logging.getLogger(__name__)


class ItemService:
    """Business logic layer for item operations."""

    def __init__(self, items: ItemRepository, movers: MoverRepository):
        self.items = items
        self.movers = movers

    async def create_item(self, payload: ItemCreate) -> ItemResponse:
        """
        Create an unassigned item.

        Raises:
            DuplicateNameError: Another item already uses the name
        """
        if await self.items.get_by_name(payload.name) is not None:
            raise DuplicateNameError("item", payload.name)

        item = await self.items.add(Item(name=payload.name, weight=payload.weight))
        logger.info("Item created: %s (id=%s, weight=%d)", item.name, item.id, item.weight)
        return ItemResponse.model_validate(item)

    async def list_items(
        self, limit: int, offset: int = 0, descending: bool = True
    ) -> ItemListResponse:
        items, total = await self.items.list(limit=limit, offset=offset, descending=descending)
        return ItemListResponse(
            total=total,
            limit=limit,
            offset=offset,
            items=[ItemResponse.model_validate(i) for i in items],
        )

    async def get_item(self, item_id: int) -> ItemResponse:
        return ItemResponse.model_validate(await self._require_item(item_id))

    async def update_item(self, item_id: int, payload: ItemUpdate) -> ItemResponse:
        """
        Rename an item or change its weight.

        Raises:
            NotFoundError: Item does not exist
            DuplicateNameError: New name belongs to another item
            CapacityExceededError: Item is held and the new weight would push
                                   its mover over the weight limit
            ConcurrentModificationError: The holder changed during the check
        """
        item = await self._require_item(item_id)
        changes = payload.model_dump(exclude_none=True)

        new_name = changes.get("name")
        if new_name is not None and new_name != item.name:
            existing = await self.items.get_by_name(new_name)
            if existing is not None and existing.id != item_id:
                raise DuplicateNameError("item", new_name)

        new_weight = changes.get("weight")
        if new_weight is not None and new_weight != item.weight and item.mover_id is not None:
            await self._check_holder_capacity(item, new_weight)

        item = await self.items.update(item, **changes)
        return ItemResponse.model_validate(item)

    async def delete_item(self, item_id: int) -> DeleteResponse:
        """Delete an item; a held item simply disappears from its mover."""
        item = await self._require_item(item_id)
        if item.mover_id is not None:
            logger.info("Deleting item %d held by mover %d", item_id, item.mover_id)
        await self.items.delete(item)
        return DeleteResponse(message="Item deleted successfully", id=item_id)

    async def _require_item(self, item_id: int) -> Item:
        item = await self.items.get(item_id)
        if item is None:
            raise NotFoundError(resource="item", resource_id=item_id)
        return item

    async def _check_holder_capacity(self, item: Item, new_weight: int) -> None:
        holder = await self.movers.get(item.mover_id)
        if holder is None:
            return
        held = await self.items.held_by(holder.id)
        total = sum(i.weight for i in held if i.id != item.id) + new_weight
        if total > holder.weight_limit:
            raise CapacityExceededError(
                weight_limit=holder.weight_limit,
                total_weight=total,
                context={"mover_id": holder.id, "item_id": item.id},
            )
        # Version bump only: fences off a concurrent load on the same mover
        if not await self.movers.update_if_version(holder.id, holder.version):
            raise ConcurrentModificationError(
                context={"mover_id": holder.id, "item_id": item.id},
            )
