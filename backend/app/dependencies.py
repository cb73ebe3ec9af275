"""
Magic Movers Backend — Shared Dependencies
============================================

What:  FastAPI dependency providers that wire services to the request's
       database session, plus the shared list query parameters.
How:   Each request gets one AsyncSession (get_db_session); both repositories
       and therefore both services share it, so a request's writes commit or
       roll back together.
"""

from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db_session
from app.repositories.sql import SqlItemRepository, SqlMoverRepository
from app.schemas.common import PaginationParams
from app.services.item_service import ItemService
from app.services.mover_service import MoverService


def get_mover_service(db: AsyncSession = Depends(get_db_session)) -> MoverService:
    return MoverService(SqlMoverRepository(db), SqlItemRepository(db))


def get_item_service(db: AsyncSession = Depends(get_db_session)) -> ItemService:
    return ItemService(SqlItemRepository(db), SqlMoverRepository(db))


def pagination_params(
    limit: int = Query(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description=f"Page size (max {settings.max_page_size})",
    ),
    offset: int = Query(default=0, ge=0, description="Number of rows to skip"),
    order: str = Query(
        default="desc",
        pattern=r"^(?i:asc|desc)$",
        description="Sort direction on id: 'asc' or 'desc' (any case)",
    ),
) -> PaginationParams:
    return PaginationParams(limit=limit, offset=offset, order=order)


# Type aliases for dependency injection
MoverServiceDep = Annotated[MoverService, Depends(get_mover_service)]
ItemServiceDep = Annotated[ItemService, Depends(get_item_service)]
PaginationDep = Annotated[PaginationParams, Depends(pagination_params)]
