"""
Magic Movers Backend — Item SQLAlchemy Model
==============================================

What:  ORM model representing the `items` table.
How:   `mover_id` is a nullable foreign key to `movers.id`; NULL means the
       item is unassigned. It is set only by a load and cleared only by a
       mission end (or by deleting the item).
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.mover import _utcnow

if TYPE_CHECKING:
    from app.models.mover import Mover


class Item(Base):
    """A named, weighted unit of cargo."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Display name, unique across items",
    )

    weight: Mapped[int] = mapped_column(Integer, nullable=False)

    mover_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("movers.id"),
        nullable=True,
        default=None,
        comment="Mover currently holding this item; NULL when unassigned",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    mover: Mapped[Optional["Mover"]] = relationship(back_populates="items", lazy="raise")

    # Held-item lookups: SELECT ... WHERE mover_id = :id
    __table_args__ = (
        Index("idx_items_mover_id", "mover_id"),
    )

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name='{self.name}', weight={self.weight}, mover_id={self.mover_id})>"
