"""Abstract base class for content backends.

A backend is the table-level CRUD surface the service layer talks to. The
SQL implementation lives in ``stratbook.data.database.content_repository``
and the process-local one in ``stratbook.data.memory``; both honour the
same contract so tests can swap one for the other.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from stratbook.domain import (
    ImageRecord,
    MapRecord,
    StrategyDetail,
    StrategyRecord,
    VersionRecord,
)

logger = logging.getLogger(__name__)


class ContentBackend(ABC):
    """Row-level operations on maps, strategies, versions and images.

    Implementations must:
    - keep map names unique (``DuplicateNameError``)
    - keep ``(strategy_id, version_number)`` unique (``VersionConflictError``)
    - cascade map deletes to strategies, and strategy deletes to versions
      and images
    - maintain ``MapRecord.strategy_count`` on insert, delete and re-parenting
    - return images ordered by ``position_in_content``
    """

    name: str = "backend"

    # -------------------------------------------------------------------------
    # Maps
    # -------------------------------------------------------------------------

    @abstractmethod
    def list_maps(self) -> list[MapRecord]:
        """All maps ordered by name."""

    @abstractmethod
    def get_map(self, map_id: UUID) -> Optional[MapRecord]:
        """A single map, or ``None``."""

    @abstractmethod
    def insert_map(
        self,
        name: str,
        description: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        thumbnail_url: Optional[str] = None,
    ) -> MapRecord:
        """Insert a map. Raises ``DuplicateNameError`` for a taken name."""

    @abstractmethod
    def update_map(self, map_id: UUID, **fields: Any) -> Optional[MapRecord]:
        """Update map columns and bump ``updated_at``. ``None`` if missing."""

    @abstractmethod
    def delete_map(self, map_id: UUID) -> bool:
        """Delete a map and everything under it. ``False`` if missing."""

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    @abstractmethod
    def list_strategy_rows(self, map_id: Optional[UUID] = None) -> list[StrategyRecord]:
        """Strategy rows, newest ``updated_at`` first."""

    @abstractmethod
    def search_strategy_rows(self, query: str, map_id: Optional[UUID] = None) -> list[StrategyRecord]:
        """Rows whose current version or legacy fields contain ``query``."""

    @abstractmethod
    def get_strategy_row(self, strategy_id: UUID) -> Optional[StrategyRecord]:
        """A single strategy row, or ``None``."""

    @abstractmethod
    def insert_strategy(
        self,
        map_id: UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> StrategyRecord:
        """Insert a strategy row without any version."""

    @abstractmethod
    def update_strategy_row(self, strategy_id: UUID, **fields: Any) -> Optional[StrategyRecord]:
        """Update strategy columns and bump ``updated_at``. ``None`` if missing."""

    @abstractmethod
    def delete_strategy(self, strategy_id: UUID) -> bool:
        """Delete a strategy with its versions and images. ``False`` if missing."""

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    @abstractmethod
    def insert_version(
        self,
        strategy_id: UUID,
        version_number: int,
        title: str,
        description: str,
        change_notes: Optional[str] = None,
    ) -> VersionRecord:
        """Insert a version row. Raises ``VersionConflictError`` on a taken number."""

    @abstractmethod
    def get_version(self, version_id: UUID) -> Optional[VersionRecord]:
        """A single version, or ``None``."""

    @abstractmethod
    def list_versions(self, strategy_id: UUID) -> list[VersionRecord]:
        """Versions of a strategy, highest number first."""

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    @abstractmethod
    def insert_image(
        self,
        strategy_id: UUID,
        storage_path: str,
        bucket_name: str,
        url: str,
        alt_text: Optional[str] = None,
        position_in_content: int = 0,
        version_id: Optional[UUID] = None,
    ) -> ImageRecord:
        """Insert an image row."""

    @abstractmethod
    def get_image(self, image_id: UUID) -> Optional[ImageRecord]:
        """A single image, or ``None``."""

    @abstractmethod
    def list_images(self, strategy_id: UUID) -> list[ImageRecord]:
        """Every image of a strategy regardless of version."""

    @abstractmethod
    def list_version_images(self, strategy_id: UUID, version_id: Optional[UUID]) -> list[ImageRecord]:
        """Images pinned to ``version_id``; ``None`` selects unversioned images."""

    @abstractmethod
    def update_image(self, image_id: UUID, **fields: Any) -> Optional[ImageRecord]:
        """Update image columns. ``None`` if missing."""

    @abstractmethod
    def delete_image(self, image_id: UUID) -> bool:
        """Delete an image row. ``False`` if missing."""

    # -------------------------------------------------------------------------
    # Aggregated reads
    # -------------------------------------------------------------------------

    @abstractmethod
    def fetch_strategy_aggregate(self, strategy_id: UUID) -> Optional[StrategyDetail]:
        """Strategy + map + images + current version in one round trip.

        Raises ``AggregateQueryError`` when the joined query itself fails.
        """

    @abstractmethod
    def fetch_strategies_aggregate(self, map_id: Optional[UUID] = None) -> list[StrategyDetail]:
        """Joined details for many strategies, newest ``updated_at`` first.

        Raises ``AggregateQueryError`` when the joined query itself fails.
        """

    def health_check(self) -> bool:
        """Return ``True`` if the backend is operational. Override in subclasses."""
        logger.debug("Content backend health check: OK (%s)", self.name)
        return True
