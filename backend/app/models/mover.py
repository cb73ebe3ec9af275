"""
Magic Movers Backend — Mover SQLAlchemy Model
===============================================

What:  ORM model representing the `movers` table.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by the SQL repositories for reads and by Alembic for schema management.

Table Design:
    - id: Integer autoincrement primary key
    - name: Unique, enforced by the database as well as by the service
    - weight_limit: Capacity; held item weights never exceed it
    - quest_state: One of QuestState; written only by the quest transitions
    - missions_completed: Incremented by exactly one per ended mission
    - version: Row version for compare-and-swap writes. Every write to a
      mover row is `... WHERE id = :id AND version = :expected` and bumps it.
"""

import enum
from datetime import datetime, timezone
from typing import List, TYPE_CHECKING

from sqlalchemy import DateTime, Enum, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.item import Item


class QuestState(str, enum.Enum):
    """
    Phases of a mover's quest.

    resting → loading → on_a_mission → done, and done → loading again on
    the next load.
    """

    RESTING = "resting"
    LOADING = "loading"
    ON_A_MISSION = "on_a_mission"
    DONE = "done"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Mover(Base):
    """
    A cargo-carrying agent with a weight capacity and a quest state.

    Lifecycle:
        1. Created in `resting` with missions_completed = 0
        2. Items attached by a load → `loading`
        3. Mission started → `on_a_mission` (loads rejected)
        4. Mission ended → `done`, items released, counter + 1
        5. Never deleted
    """

    __tablename__ = "movers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Display name, unique across movers",
    )

    weight_limit: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Maximum total weight of held items",
    )

    energy: Mapped[int] = mapped_column(Integer, nullable=False)

    quest_state: Mapped[QuestState] = mapped_column(
        Enum(
            QuestState,
            name="quest_state",
            values_callable=lambda states: [s.value for s in states],
        ),
        nullable=False,
        default=QuestState.RESTING,
        server_default=text("'resting'"),
    )

    missions_completed: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
        comment="Compare-and-swap token, bumped on every write",
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

    # Never lazy-loaded: repositories query held items explicitly
    items: Mapped[List["Item"]] = relationship(back_populates="mover", lazy="raise")

    # Ranking query for GET /movers/top
    __table_args__ = (
        Index("idx_movers_missions_completed", missions_completed.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Mover(id={self.id}, name='{self.name}', "
            f"quest_state='{self.quest_state}', version={self.version})>"
        )
