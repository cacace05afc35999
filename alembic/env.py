"""Alembic environment for the stratbook content schema.

The database URL comes from ``settings.database``; online migrations reuse
the engine built by ``DatabaseManager`` so SQLite runs get the same
foreign-key and transaction setup as the application.
"""

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import get_settings
from stratbook.data.database.connection import DatabaseManager
from stratbook.data.database.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

db_config = get_settings().database
if not db_config.is_configured:
    raise RuntimeError("No database configured; set DB_DSN or DB_HOST before running migrations")


def _configure_options(is_sqlite: bool) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite cannot ALTER most constraints in place
        "render_as_batch": is_sqlite,
    }


def run_migrations_offline() -> None:
    """Emit the migration SQL for ``db_config.url`` without connecting."""
    context.configure(
        url=db_config.url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(db_config.url.startswith("sqlite")),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations over a connection from a dedicated DatabaseManager."""
    manager = DatabaseManager(db_config)
    try:
        with manager.engine.connect() as connection:
            context.configure(connection=connection, **_configure_options(manager.is_sqlite))
            with context.begin_transaction():
                context.run_migrations()
    finally:
        manager.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
