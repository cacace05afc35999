"""SQLAlchemy persistence for maps, strategies, versions and images."""

from stratbook.data.database.connection import DatabaseManager, get_db_manager, reset_db_manager
from stratbook.data.database.models import Base, Map, Strategy, StrategyImage, StrategyVersion

__all__ = [
    "Base",
    "DatabaseManager",
    "Map",
    "Strategy",
    "StrategyImage",
    "StrategyVersion",
    "get_db_manager",
    "reset_db_manager",
]
