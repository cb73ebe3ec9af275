"""
Magic Movers Backend — SQLAlchemy Repositories
================================================

What:  MoverRepository / ItemRepository on top of an AsyncSession.
How:   Reads use `populate_existing` so a retried compare-and-swap always
       sees the committed row, not the session's identity-map copy.
       Conditional writes are single UPDATE statements whose rowcount tells
       the caller whether the guard held.
Who:   Built per request by app.dependencies; the session's transaction is
       committed or rolled back by get_db_session.

Compare-and-swap (movers):
    UPDATE movers
       SET quest_state = :state, ..., version = version + 1
     WHERE id = :id AND version = :expected

    On PostgreSQL the first writer holds the row lock until commit; a
    concurrent writer re-checks the WHERE clause after the lock is released,
    matches 0 rows, and re-reads.

Conditional claim (items):
    UPDATE items SET mover_id = :mover
     WHERE ((id = :id1 AND weight = :w1) OR ...)
       AND (mover_id IS NULL OR mover_id = :mover)
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import and_, asc, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DuplicateNameError, OperationFailedError
from app.models.item import Item
from app.models.mover import Mover
from app.repositories.base import ItemRepository, MoverRepository

logger = logging.getLogger(__name__)


@contextmanager
def _storage_errors(
    operation: str,
    resource: Optional[str] = None,
    name: Optional[str] = None,
) -> Iterator[None]:
    """
    Translate SQLAlchemy exceptions raised inside the block.

    IntegrityError on a write that carries a name → DuplicateNameError
    (the unique constraint caught a race the service-level check missed).
    Anything else from SQLAlchemy → OperationFailedError, details logged only.
    """
    try:
        yield
    except IntegrityError as e:
        if resource is not None and name is not None:
            raise DuplicateNameError(resource, name) from e
        logger.error("Integrity error during %s: %s", operation, str(e))
        raise OperationFailedError(context={"operation": operation}) from e
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
        raise OperationFailedError(context={"operation": operation}) from e


def _order(column, descending: bool):
    return desc(column) if descending else asc(column)


class SqlMoverRepository(MoverRepository):
    """Movers persisted in the `movers` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, mover_id: int) -> Optional[Mover]:
        with _storage_errors("get mover"):
            return await self.db.get(Mover, mover_id, populate_existing=True)

    async def get_by_name(self, name: str) -> Optional[Mover]:
        with _storage_errors("get mover by name"):
            result = await self.db.execute(select(Mover).where(Mover.name == name))
            return result.scalar_one_or_none()

    async def add(self, mover: Mover) -> Mover:
        with _storage_errors("create mover", resource="mover", name=mover.name):
            self.db.add(mover)
            await self.db.flush()  # Assigns the id without committing
        return mover

    async def list(
        self, limit: int, offset: int, descending: bool = True
    ) -> Tuple[List[Mover], int]:
        with _storage_errors("list movers"):
            result = await self.db.execute(
                select(Mover)
                .order_by(_order(Mover.id, descending))
                .limit(limit)
                .offset(offset)
            )
            movers = list(result.scalars().all())
            count_result = await self.db.execute(select(func.count(Mover.id)))
            total = count_result.scalar() or 0
        return movers, total

    async def top(self, limit: Optional[int]) -> List[Mover]:
        query = select(Mover).order_by(
            Mover.missions_completed.desc(), Mover.id.asc()
        )
        if limit is not None:
            query = query.limit(limit)
        with _storage_errors("rank movers"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def update_if_version(
        self, mover_id: int, expected_version: int, **values: Any
    ) -> bool:
        name = values.get("name")
        with _storage_errors("update mover", resource="mover" if name else None, name=name):
            result = await self.db.execute(
                update(Mover)
                .where(Mover.id == mover_id, Mover.version == expected_version)
                .values(version=Mover.version + 1, **values)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1


class SqlItemRepository(ItemRepository):
    """Items persisted in the `items` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, item_id: int) -> Optional[Item]:
        with _storage_errors("get item"):
            return await self.db.get(Item, item_id, populate_existing=True)

    async def get_by_name(self, name: str) -> Optional[Item]:
        with _storage_errors("get item by name"):
            result = await self.db.execute(select(Item).where(Item.name == name))
            return result.scalar_one_or_none()

    async def get_many(self, item_ids: Sequence[int]) -> List[Item]:
        if not item_ids:
            return []
        with _storage_errors("get items"):
            result = await self.db.execute(
                select(Item)
                .where(Item.id.in_(item_ids))
                .order_by(Item.id)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    async def held_by(self, mover_id: int) -> List[Item]:
        with _storage_errors("get held items"):
            result = await self.db.execute(
                select(Item)
                .where(Item.mover_id == mover_id)
                .order_by(Item.id)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    async def add(self, item: Item) -> Item:
        with _storage_errors("create item", resource="item", name=item.name):
            self.db.add(item)
            await self.db.flush()
        return item

    async def update(self, item: Item, **values: Any) -> Item:
        for field, value in values.items():
            setattr(item, field, value)
        name = values.get("name")
        with _storage_errors("update item", resource="item" if name else None, name=name):
            await self.db.flush()
        return item

    async def delete(self, item: Item) -> None:
        with _storage_errors("delete item"):
            await self.db.delete(item)
            await self.db.flush()

    async def list(
        self, limit: int, offset: int, descending: bool = True
    ) -> Tuple[List[Item], int]:
        with _storage_errors("list items"):
            result = await self.db.execute(
                select(Item)
                .order_by(_order(Item.id, descending))
                .limit(limit)
                .offset(offset)
            )
            items = list(result.scalars().all())
            count_result = await self.db.execute(select(func.count(Item.id)))
            total = count_result.scalar() or 0
        return items, total

    async def assign(self, expected: Mapping[int, int], mover_id: int) -> int:
        if not expected:
            return 0
        # Weight is part of the guard: a concurrent weight change voids the claim
        validated = or_(
            *(and_(Item.id == item_id, Item.weight == weight) for item_id, weight in expected.items())
        )
        with _storage_errors("assign items"):
            result = await self.db.execute(
                update(Item)
                .where(
                    validated,
                    or_(Item.mover_id.is_(None), Item.mover_id == mover_id),
                )
                .values(mover_id=mover_id)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount

    async def release_all(self, mover_id: int) -> int:
        with _storage_errors("release items"):
            result = await self.db.execute(
                update(Item)
                .where(Item.mover_id == mover_id)
                .values(mover_id=None)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount
