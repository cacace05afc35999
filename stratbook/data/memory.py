"""In-process content backend.

Serves every entity from dictionaries when no database is configured and
doubles as the injectable fake for tests. Behaviour mirrors the SQL schema:
unique map names, unique version numbers per strategy, cascading deletes and
the ``strategy_count`` trigger.
"""

import copy
import logging
import threading
import uuid
from dataclasses import replace
from typing import Any, Optional
from uuid import UUID

from stratbook.data.backend import ContentBackend
from stratbook.domain import (
    ImageRecord,
    MapRecord,
    StrategyDetail,
    StrategyRecord,
    VersionRecord,
    utc_now,
)
from stratbook.errors import DuplicateNameError, NotFoundError, VersionConflictError

logger = logging.getLogger(__name__)

# Maps shown by a fresh process before anything has been created.
DEMO_MAPS: tuple[dict[str, str], ...] = (
    {
        "name": "Desert Storm",
        "description": "A classic desert map perfect for long-range engagements",
    },
    {
        "name": "Urban Warfare",
        "description": "Close-quarters combat in city environments",
    },
)

_MAP_FIELDS = {"name", "description", "thumbnail_url", "metadata"}
_STRATEGY_FIELDS = {"map_id", "current_version_id", "title", "description"}
_IMAGE_FIELDS = {"alt_text", "position_in_content", "version_id", "url"}


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


class InMemoryContentBackend(ContentBackend):
    """Dictionary-backed implementation of :class:`ContentBackend`.

    Records are copied on the way in and out so callers can never mutate
    stored state behind the backend's back.
    """

    name = "memory"

    def __init__(self, seed_demo_maps: bool = False):
        self._lock = threading.RLock()
        self._maps: dict[UUID, MapRecord] = {}
        self._strategies: dict[UUID, StrategyRecord] = {}
        self._versions: dict[UUID, VersionRecord] = {}
        self._images: dict[UUID, ImageRecord] = {}
        if seed_demo_maps:
            for demo in DEMO_MAPS:
                self.insert_map(demo["name"], demo["description"])

    # -------------------------------------------------------------------------
    # Maps
    # -------------------------------------------------------------------------

    def list_maps(self) -> list[MapRecord]:
        with self._lock:
            return [copy.deepcopy(m) for m in sorted(self._maps.values(), key=lambda m: m.name)]

    def get_map(self, map_id: UUID) -> Optional[MapRecord]:
        with self._lock:
            found = self._maps.get(map_id)
            return copy.deepcopy(found) if found else None

    def insert_map(
        self,
        name: str,
        description: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        thumbnail_url: Optional[str] = None,
    ) -> MapRecord:
        with self._lock:
            if any(m.name == name for m in self._maps.values()):
                raise DuplicateNameError(name)
            record = MapRecord(
                id=uuid.uuid4(),
                name=name,
                description=description,
                thumbnail_url=thumbnail_url,
                metadata=copy.deepcopy(metadata or {}),
            )
            self._maps[record.id] = record
            logger.info("Created map id=%s name='%s' (memory)", record.id, name)
            return copy.deepcopy(record)

    def update_map(self, map_id: UUID, **fields: Any) -> Optional[MapRecord]:
        with self._lock:
            record = self._maps.get(map_id)
            if record is None:
                return None
            new_name = fields.get("name")
            if new_name is not None and any(
                m.name == new_name and m.id != map_id for m in self._maps.values()
            ):
                raise DuplicateNameError(new_name)
            for key, value in fields.items():
                if key in _MAP_FIELDS:
                    setattr(record, key, copy.deepcopy(value))
            record.updated_at = utc_now()
            return copy.deepcopy(record)

    def delete_map(self, map_id: UUID) -> bool:
        with self._lock:
            if map_id not in self._maps:
                return False
            for strategy_id in [s.id for s in self._strategies.values() if s.map_id == map_id]:
                self._delete_strategy_locked(strategy_id)
            del self._maps[map_id]
            logger.info("Deleted map id=%s (memory)", map_id)
            return True

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _sorted_rows(self, rows) -> list[StrategyRecord]:
        return [replace(s) for s in sorted(rows, key=lambda s: s.updated_at, reverse=True)]

    def list_strategy_rows(self, map_id: Optional[UUID] = None) -> list[StrategyRecord]:
        with self._lock:
            rows = [s for s in self._strategies.values() if map_id is None or s.map_id == map_id]
            return self._sorted_rows(rows)

    def search_strategy_rows(self, query: str, map_id: Optional[UUID] = None) -> list[StrategyRecord]:
        needle = query.lower()
        with self._lock:
            matches = []
            for row in self._strategies.values():
                if map_id is not None and row.map_id != map_id:
                    continue
                version = self._versions.get(row.current_version_id) if row.current_version_id else None
                texts = [row.title, row.description]
                if version is not None:
                    texts.extend([version.title, version.description])
                if any(_contains(text, needle) for text in texts):
                    matches.append(row)
            return self._sorted_rows(matches)

    def get_strategy_row(self, strategy_id: UUID) -> Optional[StrategyRecord]:
        with self._lock:
            found = self._strategies.get(strategy_id)
            return replace(found) if found else None

    def insert_strategy(
        self,
        map_id: UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> StrategyRecord:
        with self._lock:
            parent = self._maps.get(map_id)
            if parent is None:
                # Mirrors the foreign key on strategies.map_id
                raise NotFoundError("Map", map_id)
            record = StrategyRecord(id=uuid.uuid4(), map_id=map_id, title=title, description=description)
            self._strategies[record.id] = record
            parent.strategy_count += 1
            return replace(record)

    def update_strategy_row(self, strategy_id: UUID, **fields: Any) -> Optional[StrategyRecord]:
        with self._lock:
            record = self._strategies.get(strategy_id)
            if record is None:
                return None
            new_map_id = fields.get("map_id")
            if new_map_id is not None and new_map_id != record.map_id:
                if new_map_id not in self._maps:
                    raise NotFoundError("Map", new_map_id)
                self._maps[record.map_id].strategy_count -= 1
                self._maps[new_map_id].strategy_count += 1
            for key, value in fields.items():
                if key in _STRATEGY_FIELDS:
                    setattr(record, key, value)
            record.updated_at = utc_now()
            return replace(record)

    def _delete_strategy_locked(self, strategy_id: UUID) -> None:
        record = self._strategies.pop(strategy_id)
        for image_id in [i.id for i in self._images.values() if i.strategy_id == strategy_id]:
            del self._images[image_id]
        for version_id in [v.id for v in self._versions.values() if v.strategy_id == strategy_id]:
            del self._versions[version_id]
        parent = self._maps.get(record.map_id)
        if parent is not None:
            parent.strategy_count -= 1

    def delete_strategy(self, strategy_id: UUID) -> bool:
        with self._lock:
            if strategy_id not in self._strategies:
                return False
            self._delete_strategy_locked(strategy_id)
            logger.info("Deleted strategy id=%s (memory)", strategy_id)
            return True

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    def insert_version(
        self,
        strategy_id: UUID,
        version_number: int,
        title: str,
        description: str,
        change_notes: Optional[str] = None,
    ) -> VersionRecord:
        with self._lock:
            if strategy_id not in self._strategies:
                raise NotFoundError("Strategy", strategy_id)
            if any(
                v.strategy_id == strategy_id and v.version_number == version_number
                for v in self._versions.values()
            ):
                raise VersionConflictError(strategy_id, version_number)
            record = VersionRecord(
                id=uuid.uuid4(),
                strategy_id=strategy_id,
                version_number=version_number,
                title=title,
                description=description,
                change_notes=change_notes,
            )
            self._versions[record.id] = record
            return replace(record)

    def get_version(self, version_id: UUID) -> Optional[VersionRecord]:
        with self._lock:
            found = self._versions.get(version_id)
            return replace(found) if found else None

    def list_versions(self, strategy_id: UUID) -> list[VersionRecord]:
        with self._lock:
            rows = [v for v in self._versions.values() if v.strategy_id == strategy_id]
            return [replace(v) for v in sorted(rows, key=lambda v: v.version_number, reverse=True)]

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def _sorted_images(self, rows) -> list[ImageRecord]:
        return [replace(i) for i in sorted(rows, key=lambda i: (i.position_in_content, i.created_at))]

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
        with self._lock:
            if strategy_id not in self._strategies:
                raise NotFoundError("Strategy", strategy_id)
            if version_id is not None and version_id not in self._versions:
                raise NotFoundError("Version", version_id)
            record = ImageRecord(
                id=uuid.uuid4(),
                strategy_id=strategy_id,
                version_id=version_id,
                storage_path=storage_path,
                bucket_name=bucket_name,
                url=url,
                alt_text=alt_text,
                position_in_content=position_in_content,
            )
            self._images[record.id] = record
            return replace(record)

    def get_image(self, image_id: UUID) -> Optional[ImageRecord]:
        with self._lock:
            found = self._images.get(image_id)
            return replace(found) if found else None

    def list_images(self, strategy_id: UUID) -> list[ImageRecord]:
        with self._lock:
            return self._sorted_images(i for i in self._images.values() if i.strategy_id == strategy_id)

    def list_version_images(self, strategy_id: UUID, version_id: Optional[UUID]) -> list[ImageRecord]:
        with self._lock:
            return self._sorted_images(
                i for i in self._images.values()
                if i.strategy_id == strategy_id and i.version_id == version_id
            )

    def update_image(self, image_id: UUID, **fields: Any) -> Optional[ImageRecord]:
        with self._lock:
            record = self._images.get(image_id)
            if record is None:
                return None
            for key, value in fields.items():
                if key in _IMAGE_FIELDS:
                    setattr(record, key, value)
            return replace(record)

    def delete_image(self, image_id: UUID) -> bool:
        with self._lock:
            return self._images.pop(image_id, None) is not None

    # -------------------------------------------------------------------------
    # Aggregated reads
    # -------------------------------------------------------------------------

    def _detail_locked(self, row: StrategyRecord) -> StrategyDetail:
        parent = self._maps.get(row.map_id)
        version = self._versions.get(row.current_version_id) if row.current_version_id else None
        return StrategyDetail(
            strategy=replace(row),
            map=copy.deepcopy(parent) if parent else None,
            images=self._sorted_images(i for i in self._images.values() if i.strategy_id == row.id),
            current_version=replace(version) if version else None,
        )

    def fetch_strategy_aggregate(self, strategy_id: UUID) -> Optional[StrategyDetail]:
        with self._lock:
            row = self._strategies.get(strategy_id)
            return self._detail_locked(row) if row else None

    def fetch_strategies_aggregate(self, map_id: Optional[UUID] = None) -> list[StrategyDetail]:
        with self._lock:
            rows = [s for s in self._strategies.values() if map_id is None or s.map_id == map_id]
            rows.sort(key=lambda s: s.updated_at, reverse=True)
            return [self._detail_locked(row) for row in rows]


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------

_memory_backend: InMemoryContentBackend | None = None
_singleton_lock = threading.Lock()


def get_memory_backend() -> InMemoryContentBackend:
    """Return the process-wide in-memory backend, seeded with the demo maps."""
    global _memory_backend
    if _memory_backend is None:
        with _singleton_lock:
            if _memory_backend is None:
                _memory_backend = InMemoryContentBackend(seed_demo_maps=True)
                logger.warning(
                    "No database configured; serving content from process memory "
                    "(data is lost on restart)"
                )
    return _memory_backend


def reset_memory_backend() -> None:
    """Drop the singleton so the next access starts from the demo maps.

    Intended for test isolation.
    """
    global _memory_backend
    with _singleton_lock:
        _memory_backend = None
    logger.debug("In-memory content backend reset")
