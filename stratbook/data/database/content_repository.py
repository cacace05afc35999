"""SQLAlchemy implementation of the content backend.

Provides methods for:
- Map CRUD (unique names, cascade delete)
- Strategy rows and case-insensitive search
- Version inserts guarded by the (strategy_id, version_number) constraint
- Image rows
- Joined strategy reads (strategy + current version + map + images)

The repository never commits; the session owner (``get_session``) does, so a
whole request commits or rolls back as one unit. Inserts that may violate a
constraint run inside a SAVEPOINT so a failure leaves the outer transaction
usable.
"""

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from stratbook.data.backend import ContentBackend
from stratbook.data.database.models import (
    Map as MapModel,
    Strategy as StrategyModel,
    StrategyImage as StrategyImageModel,
    StrategyVersion as StrategyVersionModel,
)
from stratbook.domain import (
    ImageRecord,
    MapRecord,
    StrategyDetail,
    StrategyRecord,
    VersionRecord,
    utc_now,
)
from stratbook.errors import AggregateQueryError, DuplicateNameError, NotFoundError, VersionConflictError

logger = logging.getLogger(__name__)

_MAP_COLUMNS = {"name", "description", "thumbnail_url"}
_STRATEGY_COLUMNS = {"map_id", "current_version_id", "title", "description"}
_IMAGE_COLUMNS = {"alt_text", "position_in_content", "version_id", "url"}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# -----------------------------------------------------------------------------
# Model -> record conversion
# -----------------------------------------------------------------------------

def map_to_record(model: MapModel) -> MapRecord:
    return MapRecord(
        id=model.id,
        name=model.name,
        description=model.description,
        thumbnail_url=model.thumbnail_url,
        metadata=dict(model.map_metadata or {}),
        strategy_count=model.strategy_count,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def strategy_to_record(model: StrategyModel) -> StrategyRecord:
    return StrategyRecord(
        id=model.id,
        map_id=model.map_id,
        current_version_id=model.current_version_id,
        title=model.title,
        description=model.description,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def version_to_record(model: StrategyVersionModel) -> VersionRecord:
    return VersionRecord(
        id=model.id,
        strategy_id=model.strategy_id,
        version_number=model.version_number,
        title=model.title,
        description=model.description,
        change_notes=model.change_notes,
        created_at=model.created_at,
    )


def image_to_record(model: StrategyImageModel) -> ImageRecord:
    return ImageRecord(
        id=model.id,
        strategy_id=model.strategy_id,
        version_id=model.version_id,
        storage_path=model.storage_path,
        bucket_name=model.bucket_name,
        url=model.url,
        alt_text=model.alt_text,
        position_in_content=model.position_in_content,
        created_at=model.created_at,
    )


class SqlContentBackend(ContentBackend):
    """Content backend over a SQLAlchemy session."""

    name = "sql"

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    # -------------------------------------------------------------------------
    # Maps
    # -------------------------------------------------------------------------

    def _map_query(self):
        # strategy_count is written by a trigger, so always reload it
        return self.session.query(MapModel).populate_existing()

    def _load_map(self, map_id: UUID) -> Optional[MapModel]:
        return self._map_query().filter(MapModel.id == map_id).first()

    def list_maps(self) -> list[MapRecord]:
        models = self._map_query().order_by(MapModel.name).all()
        return [map_to_record(m) for m in models]

    def get_map(self, map_id: UUID) -> Optional[MapRecord]:
        model = self._load_map(map_id)
        return map_to_record(model) if model else None

    def insert_map(
        self,
        name: str,
        description: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        thumbnail_url: Optional[str] = None,
    ) -> MapRecord:
        model = MapModel(
            name=name,
            description=description,
            thumbnail_url=thumbnail_url,
            map_metadata=dict(metadata or {}),
        )
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError as e:
            logger.warning("Map insert rejected for name='%s': %s", name, e.orig)
            raise DuplicateNameError(name) from e
        logger.info("Created map id=%s name='%s'", model.id, name)
        return map_to_record(model)

    def update_map(self, map_id: UUID, **fields: Any) -> Optional[MapRecord]:
        model = self._load_map(map_id)
        if model is None:
            return None
        try:
            with self.session.begin_nested():
                for key, value in fields.items():
                    if key in _MAP_COLUMNS:
                        setattr(model, key, value)
                    elif key == "metadata":
                        model.map_metadata = dict(value or {})
                model.updated_at = utc_now()
                self.session.flush()
        except IntegrityError as e:
            raise DuplicateNameError(fields.get("name", model.name)) from e
        return map_to_record(model)

    def delete_map(self, map_id: UUID) -> bool:
        # ON DELETE CASCADE removes strategies, versions and images
        deleted = self.session.query(MapModel).filter(MapModel.id == map_id).delete()
        if deleted:
            logger.info("Deleted map id=%s", map_id)
        return bool(deleted)

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _load_strategy(self, strategy_id: UUID) -> Optional[StrategyModel]:
        return self.session.query(StrategyModel).filter(StrategyModel.id == strategy_id).first()

    def list_strategy_rows(self, map_id: Optional[UUID] = None) -> list[StrategyRecord]:
        query = self.session.query(StrategyModel)
        if map_id is not None:
            query = query.filter(StrategyModel.map_id == map_id)
        models = query.order_by(StrategyModel.updated_at.desc()).all()
        return [strategy_to_record(s) for s in models]

    def search_strategy_rows(self, query: str, map_id: Optional[UUID] = None) -> list[StrategyRecord]:
        pattern = f"%{_escape_like(query)}%"
        q = self.session.query(StrategyModel).outerjoin(
            StrategyVersionModel,
            StrategyVersionModel.id == StrategyModel.current_version_id,
        ).filter(
            or_(
                StrategyVersionModel.title.ilike(pattern, escape="\\"),
                StrategyVersionModel.description.ilike(pattern, escape="\\"),
                StrategyModel.title.ilike(pattern, escape="\\"),
                StrategyModel.description.ilike(pattern, escape="\\"),
            )
        )
        if map_id is not None:
            q = q.filter(StrategyModel.map_id == map_id)
        models = q.order_by(StrategyModel.updated_at.desc()).all()
        return [strategy_to_record(s) for s in models]

    def get_strategy_row(self, strategy_id: UUID) -> Optional[StrategyRecord]:
        model = self._load_strategy(strategy_id)
        return strategy_to_record(model) if model else None

    def insert_strategy(
        self,
        map_id: UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> StrategyRecord:
        model = StrategyModel(map_id=map_id, title=title, description=description)
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError as e:
            raise NotFoundError("Map", map_id) from e
        logger.info("Created strategy id=%s map_id=%s", model.id, map_id)
        return strategy_to_record(model)

    def update_strategy_row(self, strategy_id: UUID, **fields: Any) -> Optional[StrategyRecord]:
        model = self._load_strategy(strategy_id)
        if model is None:
            return None
        try:
            with self.session.begin_nested():
                for key, value in fields.items():
                    if key in _STRATEGY_COLUMNS:
                        setattr(model, key, value)
                model.updated_at = utc_now()
                self.session.flush()
        except IntegrityError as e:
            raise NotFoundError("Map", fields.get("map_id")) from e
        return strategy_to_record(model)

    def delete_strategy(self, strategy_id: UUID) -> bool:
        deleted = self.session.query(StrategyModel).filter(StrategyModel.id == strategy_id).delete()
        if deleted:
            logger.info("Deleted strategy id=%s", strategy_id)
        return bool(deleted)

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
        if self._load_strategy(strategy_id) is None:
            raise NotFoundError("Strategy", strategy_id)
        model = StrategyVersionModel(
            strategy_id=strategy_id,
            version_number=version_number,
            title=title,
            description=description,
            change_notes=change_notes,
        )
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError as e:
            logger.warning(
                "Version %d of strategy %s already exists", version_number, strategy_id,
            )
            raise VersionConflictError(strategy_id, version_number) from e
        return version_to_record(model)

    def get_version(self, version_id: UUID) -> Optional[VersionRecord]:
        model = self.session.query(StrategyVersionModel).filter(
            StrategyVersionModel.id == version_id
        ).first()
        return version_to_record(model) if model else None

    def list_versions(self, strategy_id: UUID) -> list[VersionRecord]:
        models = self.session.query(StrategyVersionModel).filter(
            StrategyVersionModel.strategy_id == strategy_id
        ).order_by(StrategyVersionModel.version_number.desc()).all()
        return [version_to_record(v) for v in models]

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def _image_query(self):
        return self.session.query(StrategyImageModel).order_by(
            StrategyImageModel.position_in_content,
            StrategyImageModel.created_at,
        )

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
        model = StrategyImageModel(
            strategy_id=strategy_id,
            version_id=version_id,
            storage_path=storage_path,
            bucket_name=bucket_name,
            url=url,
            alt_text=alt_text,
            position_in_content=position_in_content,
        )
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError as e:
            if self._load_strategy(strategy_id) is None:
                raise NotFoundError("Strategy", strategy_id) from e
            raise NotFoundError("Version", version_id) from e
        return image_to_record(model)

    def get_image(self, image_id: UUID) -> Optional[ImageRecord]:
        model = self.session.query(StrategyImageModel).filter(
            StrategyImageModel.id == image_id
        ).first()
        return image_to_record(model) if model else None

    def list_images(self, strategy_id: UUID) -> list[ImageRecord]:
        models = self._image_query().filter(StrategyImageModel.strategy_id == strategy_id).all()
        return [image_to_record(i) for i in models]

    def list_version_images(self, strategy_id: UUID, version_id: Optional[UUID]) -> list[ImageRecord]:
        query = self._image_query().filter(StrategyImageModel.strategy_id == strategy_id)
        if version_id is None:
            query = query.filter(StrategyImageModel.version_id.is_(None))
        else:
            query = query.filter(StrategyImageModel.version_id == version_id)
        return [image_to_record(i) for i in query.all()]

    def update_image(self, image_id: UUID, **fields: Any) -> Optional[ImageRecord]:
        model = self.session.query(StrategyImageModel).filter(
            StrategyImageModel.id == image_id
        ).first()
        if model is None:
            return None
        for key, value in fields.items():
            if key in _IMAGE_COLUMNS:
                setattr(model, key, value)
        self.session.flush()
        return image_to_record(model)

    def delete_image(self, image_id: UUID) -> bool:
        deleted = self.session.query(StrategyImageModel).filter(
            StrategyImageModel.id == image_id
        ).delete()
        return bool(deleted)

    # -------------------------------------------------------------------------
    # Aggregated reads
    # -------------------------------------------------------------------------

    def _aggregate_rows(self, strategy_id: Optional[UUID] = None, map_id: Optional[UUID] = None):
        query = self.session.query(StrategyModel, StrategyVersionModel, MapModel).outerjoin(
            StrategyVersionModel,
            StrategyVersionModel.id == StrategyModel.current_version_id,
        ).outerjoin(
            MapModel,
            MapModel.id == StrategyModel.map_id,
        ).options(
            selectinload(StrategyModel.images),
        ).populate_existing()
        if strategy_id is not None:
            query = query.filter(StrategyModel.id == strategy_id)
        if map_id is not None:
            query = query.filter(StrategyModel.map_id == map_id)
        return query.order_by(StrategyModel.updated_at.desc()).all()

    def _run_aggregate(self, description: str, **filters: Any) -> list[StrategyDetail]:
        try:
            with self.session.begin_nested():
                rows = self._aggregate_rows(**filters)
                return [
                    StrategyDetail(
                        strategy=strategy_to_record(strategy),
                        map=map_to_record(map_model) if map_model else None,
                        images=[image_to_record(i) for i in strategy.images],
                        current_version=version_to_record(version) if version else None,
                    )
                    for strategy, version, map_model in rows
                ]
        except SQLAlchemyError as e:
            logger.error("Aggregated strategy query failed (%s): %s", description, e)
            raise AggregateQueryError(
                f"Aggregated strategy query failed: {description}",
                details={"error": str(e)},
            ) from e

    def fetch_strategy_aggregate(self, strategy_id: UUID) -> Optional[StrategyDetail]:
        details = self._run_aggregate(f"strategy {strategy_id}", strategy_id=strategy_id)
        return details[0] if details else None

    def fetch_strategies_aggregate(self, map_id: Optional[UUID] = None) -> list[StrategyDetail]:
        scope = f"map {map_id}" if map_id else "all strategies"
        return self._run_aggregate(scope, map_id=map_id)

    def health_check(self) -> bool:
        """Run a trivial query through the session."""
        try:
            self.session.query(MapModel.id).limit(1).all()
            return True
        except SQLAlchemyError:
            logger.error("SQL content backend health check failed", exc_info=True)
            return False
