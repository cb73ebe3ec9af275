"""Create movers and items tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `quest_state` enum, the `movers` and `items` tables, and
       the indexes used by the ranking and held-item queries.

Rollback: downgrade() drops both tables and the enum (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

quest_state = sa.Enum(
    "resting", "loading", "on_a_mission", "done",
    name="quest_state",
)


def upgrade() -> None:
    op.create_table(
        "movers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "name",
            sa.String(255),
            nullable=False,
            comment="Display name, unique across movers",
        ),
        sa.Column(
            "weight_limit",
            sa.Integer(),
            nullable=False,
            comment="Maximum total weight of held items",
        ),
        sa.Column("energy", sa.Integer(), nullable=False),
        sa.Column(
            "quest_state",
            quest_state,
            nullable=False,
            server_default=sa.text("'resting'"),
        ),
        sa.Column(
            "missions_completed",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        # Compare-and-swap token; every write is conditional on it
        sa.Column(
            "version",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("1"),
            comment="Compare-and-swap token, bumped on every write",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(
        "idx_movers_missions_completed",
        "movers",
        [sa.text("missions_completed DESC")],
    )

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "name",
            sa.String(255),
            nullable=False,
            comment="Display name, unique across items",
        ),
        sa.Column("weight", sa.Integer(), nullable=False),
        sa.Column(
            "mover_id",
            sa.Integer(),
            nullable=True,
            comment="Mover currently holding this item; NULL when unassigned",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["mover_id"], ["movers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("idx_items_mover_id", "items", ["mover_id"])


def downgrade() -> None:
    """Drop both tables and the enum type. All data is lost."""
    op.drop_index("idx_items_mover_id", table_name="items")
    op.drop_table("items")
    op.drop_index("idx_movers_missions_completed", table_name="movers")
    op.drop_table("movers")
    quest_state.drop(op.get_bind(), checkfirst=True)
