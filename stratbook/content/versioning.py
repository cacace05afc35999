"""Strategy versioning protocol.

Every content edit appends an immutable version and repoints the strategy's
``current_version_id`` at it:

1. read the strategy's current version pointer
2. take that version's number (0 when there is none)
3. insert version ``previous + 1``
4. repoint the strategy and mirror title/description into the legacy columns

Backend failures propagate unchanged. A concurrent writer that took the same
number surfaces as ``VersionConflictError``; nothing is retried.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from stratbook.data.backend import ContentBackend
from stratbook.domain import StrategyRecord, VersionRecord
from stratbook.errors import NotFoundError
from stratbook.utils.logging import get_content_logger

logger = logging.getLogger(__name__)
events = get_content_logger(__name__)


@dataclass
class NewVersion:
    """A freshly created version and the version it superseded."""

    version: VersionRecord
    strategy: StrategyRecord
    previous_version_id: Optional[UUID] = None


def next_version_number(backend: ContentBackend, strategy: StrategyRecord) -> int:
    """Number the next version of ``strategy`` will get.

    A strategy without a current version (or whose pointer no longer
    resolves) starts at 1.
    """
    if strategy.current_version_id is None:
        return 1
    current = backend.get_version(strategy.current_version_id)
    if current is None:
        logger.warning(
            "Strategy %s points at missing version %s; numbering from 1",
            strategy.id, strategy.current_version_id,
        )
        return 1
    return current.version_number + 1


def create_version(
    backend: ContentBackend,
    strategy_id: UUID,
    title: str,
    description: str,
    change_notes: Optional[str] = None,
) -> NewVersion:
    """Append a version to ``strategy_id`` and make it current.

    Raises:
        NotFoundError: The strategy does not exist
        VersionConflictError: The computed version number is already taken
    """
    strategy = backend.get_strategy_row(strategy_id)
    if strategy is None:
        raise NotFoundError("Strategy", strategy_id)

    number = next_version_number(backend, strategy)
    version = backend.insert_version(
        strategy_id=strategy_id,
        version_number=number,
        title=title,
        description=description,
        change_notes=change_notes,
    )
    updated = backend.update_strategy_row(
        strategy_id,
        current_version_id=version.id,
        title=title,
        description=description,
    )
    if updated is None:
        raise NotFoundError("Strategy", strategy_id)

    events.version_created(strategy_id, version.id, number, change_notes=change_notes)
    return NewVersion(
        version=version,
        strategy=updated,
        previous_version_id=strategy.current_version_id,
    )
