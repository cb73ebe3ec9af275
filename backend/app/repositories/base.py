"""
Magic Movers Backend — Repository Interfaces
==============================================

What:  Abstract persistence interfaces for movers and items.
How:   Services depend on these ABCs only. SqlMoverRepository and
       SqlItemRepository (app/repositories/sql.py) implement them on an
       AsyncSession; the test suite implements them in memory.

Contract:
    - Lookups return None for missing rows; services raise NotFoundError.
    - Every write to a mover row goes through update_if_version(), a
      compare-and-swap on the `version` column. A False return means the
      row changed since it was read and nothing was written.
    - assign() only claims items that are unassigned or already held by the
      same mover and still weigh what the caller validated, and returns how
      many rows it claimed.
    - Unique-name violations raise DuplicateNameError; other storage
      failures raise OperationFailedError.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from app.models.item import Item
from app.models.mover import Mover


class MoverRepository(ABC):
    """Persistence operations for movers."""

    @abstractmethod
    async def get(self, mover_id: int) -> Optional[Mover]:
        """Fetch a fresh copy of the mover, or None."""
        ...

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[Mover]:
        ...

    @abstractmethod
    async def add(self, mover: Mover) -> Mover:
        """Insert a new mover and return it with id and defaults populated."""
        ...

    @abstractmethod
    async def list(
        self, limit: int, offset: int, descending: bool = True
    ) -> Tuple[List[Mover], int]:
        """Return one page of movers ordered by id, plus the total count."""
        ...

    @abstractmethod
    async def top(self, limit: Optional[int]) -> List[Mover]:
        """
        Movers ordered by missions_completed desc, then id asc.

        Args:
            limit: Maximum number of movers; None returns all of them.
        """
        ...

    @abstractmethod
    async def update_if_version(
        self, mover_id: int, expected_version: int, **values: Any
    ) -> bool:
        """
        Compare-and-swap write.

        Applies `values` and increments `version` only if the stored version
        still equals `expected_version`. Returns True when the row was
        written.
        """
        ...


class ItemRepository(ABC):
    """Persistence operations for items."""

    @abstractmethod
    async def get(self, item_id: int) -> Optional[Item]:
        ...

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[Item]:
        ...

    @abstractmethod
    async def get_many(self, item_ids: Sequence[int]) -> List[Item]:
        """Fetch the items that exist among `item_ids` (missing ids are skipped)."""
        ...

    @abstractmethod
    async def held_by(self, mover_id: int) -> List[Item]:
        """Items currently held by the mover, ordered by id."""
        ...

    @abstractmethod
    async def add(self, item: Item) -> Item:
        ...

    @abstractmethod
    async def update(self, item: Item, **values: Any) -> Item:
        """Apply `values` to the item and persist them."""
        ...

    @abstractmethod
    async def delete(self, item: Item) -> None:
        ...

    @abstractmethod
    async def list(
        self, limit: int, offset: int, descending: bool = True
    ) -> Tuple[List[Item], int]:
        ...

    @abstractmethod
    async def assign(self, expected: Mapping[int, int], mover_id: int) -> int:
        """
        Attach items to a mover.

        Args:
            expected: item id → the weight the caller validated capacity with

        A row is claimed only if its mover_id is NULL or already `mover_id`
        and its weight still equals the expected one. Returns the number of
        rows claimed; a value below len(expected) means another mover took
        an item or its weight changed.
        """
        ...

    @abstractmethod
    async def release_all(self, mover_id: int) -> int:
        """Detach every item held by the mover; returns how many were released."""
        ...
