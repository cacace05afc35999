"""SQLAlchemy ORM models for maps, strategies, versions and images."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DDL,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from stratbook.domain import DEFAULT_STRATEGY_BUCKET, utc_now


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class Map(Base):
    """Game map that strategies are organised under.

    ``strategy_count`` is written only by the ``strategies`` triggers
    installed below (and by migration 001 on PostgreSQL).
    """

    __tablename__ = "maps"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    # "metadata" is reserved on declarative classes
    map_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        default=dict,
        nullable=False,
    )
    strategy_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    # Relationships
    strategies: Mapped[list["Strategy"]] = relationship(
        "Strategy",
        back_populates="map",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_maps_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<Map(id={self.id}, name='{self.name}', strategy_count={self.strategy_count})>"


class Strategy(Base):
    """Tactical strategy on a map.

    ``current_version_id`` has no foreign key; the versioning protocol
    keeps it pointing at one of the strategy's own versions.

    ``title`` and ``description`` are legacy fallback columns mirrored from
    the current version.
    """

    __tablename__ = "strategies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    map_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("maps.id", ondelete="CASCADE"),
        nullable=False,
    )
    current_version_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    # Relationships
    map: Mapped["Map"] = relationship("Map", back_populates="strategies")
    versions: Mapped[list["StrategyVersion"]] = relationship(
        "StrategyVersion",
        back_populates="strategy",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StrategyVersion.version_number",
    )
    images: Mapped[list["StrategyImage"]] = relationship(
        "StrategyImage",
        back_populates="strategy",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[StrategyImage.position_in_content, StrategyImage.created_at]",
    )

    __table_args__ = (
        Index("ix_strategies_map_id", "map_id"),
        Index("ix_strategies_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Strategy(id={self.id}, map_id={self.map_id}, current_version_id={self.current_version_id})>"


class StrategyVersion(Base):
    """Immutable content snapshot of a strategy."""

    __tablename__ = "strategy_versions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    strategy_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("strategies.id", ondelete="CASCADE"),
        nullable=False,
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    change_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    # Relationships
    strategy: Mapped["Strategy"] = relationship("Strategy", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("strategy_id", "version_number", name="uq_strategy_version_number"),
        Index("ix_strategy_versions_strategy_id", "strategy_id"),
    )

    def __repr__(self) -> str:
        return f"<StrategyVersion(strategy_id={self.strategy_id}, version_number={self.version_number})>"


class StrategyImage(Base):
    """Stored image attached to a strategy, optionally pinned to a version."""

    __tablename__ = "strategy_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    strategy_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("strategies.id", ondelete="CASCADE"),
        nullable=True,
    )
    version_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("strategy_versions.id", ondelete="CASCADE"),
        nullable=True,
    )
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    bucket_name: Mapped[str] = mapped_column(String(100), default=DEFAULT_STRATEGY_BUCKET, nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    alt_text: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    position_in_content: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    # Relationships
    strategy: Mapped[Optional["Strategy"]] = relationship("Strategy", back_populates="images")

    __table_args__ = (
        Index("ix_strategy_images_strategy_id", "strategy_id"),
        Index("ix_strategy_images_version_id", "version_id"),
    )

    def __repr__(self) -> str:
        return f"<StrategyImage(id={self.id}, version_id={self.version_id}, path='{self.storage_path}')>"


# ---------------------------------------------------------------------------
# strategy_count triggers
# ---------------------------------------------------------------------------

PG_STRATEGY_COUNT_FUNCTION = """
CREATE OR REPLACE FUNCTION update_map_strategy_count()
RETURNS TRIGGER AS $$
BEGIN
  IF TG_OP = 'INSERT' THEN
    UPDATE maps SET strategy_count = strategy_count + 1 WHERE id = NEW.map_id;
    RETURN NEW;
  ELSIF TG_OP = 'DELETE' THEN
    UPDATE maps SET strategy_count = strategy_count - 1 WHERE id = OLD.map_id;
    RETURN OLD;
  ELSIF TG_OP = 'UPDATE' THEN
    IF NEW.map_id != OLD.map_id THEN
      UPDATE maps SET strategy_count = strategy_count - 1 WHERE id = OLD.map_id;
      UPDATE maps SET strategy_count = strategy_count + 1 WHERE id = NEW.map_id;
    END IF;
    RETURN NEW;
  END IF;
  RETURN NULL;
END;
$$ LANGUAGE plpgsql
"""

PG_STRATEGY_COUNT_TRIGGER = """
CREATE TRIGGER trigger_update_map_strategy_count
  AFTER INSERT OR DELETE OR UPDATE ON strategies
  FOR EACH ROW
  EXECUTE FUNCTION update_map_strategy_count()
"""

SQLITE_STRATEGY_COUNT_TRIGGERS = (
    """
    CREATE TRIGGER trg_strategies_count_insert AFTER INSERT ON strategies
    BEGIN
      UPDATE maps SET strategy_count = strategy_count + 1 WHERE id = NEW.map_id;
    END
    """,
    """
    CREATE TRIGGER trg_strategies_count_delete AFTER DELETE ON strategies
    BEGIN
      UPDATE maps SET strategy_count = strategy_count - 1 WHERE id = OLD.map_id;
    END
    """,
    """
    CREATE TRIGGER trg_strategies_count_move AFTER UPDATE OF map_id ON strategies
    WHEN NEW.map_id != OLD.map_id
    BEGIN
      UPDATE maps SET strategy_count = strategy_count - 1 WHERE id = OLD.map_id;
      UPDATE maps SET strategy_count = strategy_count + 1 WHERE id = NEW.map_id;
    END
    """,
)

event.listen(
    Strategy.__table__,
    "after_create",
    DDL(PG_STRATEGY_COUNT_FUNCTION).execute_if(dialect="postgresql"),
)
event.listen(
    Strategy.__table__,
    "after_create",
    DDL(PG_STRATEGY_COUNT_TRIGGER).execute_if(dialect="postgresql"),
)
for _statement in SQLITE_STRATEGY_COUNT_TRIGGERS:
    event.listen(
        Strategy.__table__,
        "after_create",
        DDL(_statement).execute_if(dialect="sqlite"),
    )
