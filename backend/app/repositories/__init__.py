"""
Magic Movers Backend — Repositories Package
=============================================

What:  Persistence access behind an abstract interface.

Inventory:
    - base.py: MoverRepository / ItemRepository ABCs (the contract)
    - sql.py:  SqlMoverRepository / SqlItemRepository on an AsyncSession
"""

from app.repositories.base import ItemRepository, MoverRepository
from app.repositories.sql import SqlItemRepository, SqlMoverRepository

__all__ = [
    "ItemRepository",
    "MoverRepository",
    "SqlItemRepository",
    "SqlMoverRepository",
]
