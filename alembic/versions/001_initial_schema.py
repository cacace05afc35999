"""Initial schema for maps, strategies, versions and images.

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

Creates the following tables:
- maps: Game maps with a denormalized strategy_count
- strategies: Strategy rows pointing at their current version
- strategy_versions: Immutable content snapshots, unique per (strategy, number)
- strategy_images: Images attached to a strategy and optionally a version

Also installs the trigger that keeps maps.strategy_count in step with
strategy inserts, deletes and moves between maps.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    """Create content tables and the strategy_count trigger."""

    # Create maps table
    op.create_table(
        "maps",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.String(length=500), nullable=True),
        sa.Column(
            "metadata",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
            server_default=sa.text("'{}'"),
        ),
        sa.Column("strategy_count", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_maps_name", "maps", ["name"])

    # Create strategies table
    op.create_table(
        "strategies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("map_id", sa.Uuid(), nullable=False),
        sa.Column("current_version_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["map_id"], ["maps.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_strategies_map_id", "strategies", ["map_id"])
    op.create_index("ix_strategies_updated_at", "strategies", ["updated_at"])

    # Create strategy_versions table
    op.create_table(
        "strategy_versions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("strategy_id", sa.Uuid(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("change_notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["strategy_id"], ["strategies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("strategy_id", "version_number", name="uq_strategy_version_number"),
    )
    op.create_index("ix_strategy_versions_strategy_id", "strategy_versions", ["strategy_id"])

    # Create strategy_images table
    op.create_table(
        "strategy_images",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("strategy_id", sa.Uuid(), nullable=True),
        sa.Column("version_id", sa.Uuid(), nullable=True),
        sa.Column("storage_path", sa.String(length=500), nullable=False),
        sa.Column("bucket_name", sa.String(length=100), nullable=False, server_default="strategy-images"),
        sa.Column("url", sa.String(length=500), nullable=False),
        sa.Column("alt_text", sa.String(length=255), nullable=True),
        sa.Column("position_in_content", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["strategy_id"], ["strategies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["version_id"], ["strategy_versions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_strategy_images_strategy_id", "strategy_images", ["strategy_id"])
    op.create_index("ix_strategy_images_version_id", "strategy_images", ["version_id"])

    # strategy_count trigger (same DDL the ORM metadata installs)
    from stratbook.data.database.models import (
        PG_STRATEGY_COUNT_FUNCTION,
        PG_STRATEGY_COUNT_TRIGGER,
        SQLITE_STRATEGY_COUNT_TRIGGERS,
    )

    if op.get_bind().dialect.name == "postgresql":
        op.execute(PG_STRATEGY_COUNT_FUNCTION)
        op.execute(PG_STRATEGY_COUNT_TRIGGER)
    elif op.get_bind().dialect.name == "sqlite":
        for statement in SQLITE_STRATEGY_COUNT_TRIGGERS:
            op.execute(statement)


def downgrade() -> None:
    """Drop content tables and the strategy_count trigger."""
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TRIGGER IF EXISTS trigger_update_map_strategy_count ON strategies")
        op.execute("DROP FUNCTION IF EXISTS update_map_strategy_count()")

    op.drop_index("ix_strategy_images_version_id", table_name="strategy_images")
    op.drop_index("ix_strategy_images_strategy_id", table_name="strategy_images")
    op.drop_table("strategy_images")

    op.drop_index("ix_strategy_versions_strategy_id", table_name="strategy_versions")
    op.drop_table("strategy_versions")

    op.drop_index("ix_strategies_updated_at", table_name="strategies")
    op.drop_index("ix_strategies_map_id", table_name="strategies")
    op.drop_table("strategies")

    op.drop_index("ix_maps_name", table_name="maps")
    op.drop_table("maps")
