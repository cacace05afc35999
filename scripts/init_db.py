#!/usr/bin/env python3
"""Initialize the content database.

This script:
1. Runs Alembic migrations to create/update tables
2. Optionally seeds the database with the demo maps

Usage:
    python scripts/init_db.py [--seed]

Options:
    --seed              Seed the demo maps ("Desert Storm", "Urban Warfare")
    --skip-migrations   Skip Alembic migrations (use direct table creation)
"""

import argparse
import logging
import subprocess
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import get_settings
from scripts.helpers.logging_setup import setup_script_logging
from stratbook.data.database.connection import get_db_manager
from stratbook.data.database.content_repository import SqlContentBackend
from stratbook.data.memory import DEMO_MAPS

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Initialize the content database")
    parser.add_argument("--seed", action="store_true", help="Seed the demo maps")
    parser.add_argument("--skip-migrations", action="store_true", help="Skip Alembic migrations")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def _print_header() -> None:
    logger.info("=" * 60)
    logger.info("Strategy Book - Database Initialization")
    logger.info("=" * 60)


def check_database_connection() -> bool:
    """Check if database is accessible. Returns True if successful."""
    settings = get_settings()
    if not settings.database.is_configured:
        logger.error("No database configured. Set DB_DSN or DB_HOST (see .env).")
        return False
    try:
        logger.info(
            "Checking database connection to: %s:%s/%s",
            settings.database.host or "(dsn)", settings.database.port, settings.database.name,
        )
        if get_db_manager().health_check():
            logger.info("Database connection successful!")
            return True
        logger.error("Database connection failed!")
        return False
    except Exception as e:
        logger.error("Database connection error: %s", e)
        return False


def _run_alembic_command() -> subprocess.CompletedProcess:
    """Run alembic upgrade command."""
    return subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=project_root,
        capture_output=True,
        text=True,
    )


def run_migrations() -> bool:
    """Run Alembic migrations. Returns True if successful."""
    logger.info("Running Alembic migrations...")
    try:
        result = _run_alembic_command()
        if result.returncode == 0:
            logger.info("Migrations completed successfully!")
            if result.stdout:
                logger.debug(result.stdout)
            return True
        logger.error("Migration failed with error:")
        logger.error(result.stderr)
        return False
    except FileNotFoundError:
        logger.error("Alembic not found. Please install it: pip install alembic")
        return False


def create_tables_directly() -> bool:
    """Create tables directly using SQLAlchemy. Returns True if successful."""
    logger.info("Creating tables directly...")
    try:
        get_db_manager().create_tables()
        logger.info("Tables created successfully!")
        return True
    except Exception as e:
        logger.error("Table creation error: %s", e)
        return False


def seed_demo_maps() -> bool:
    """Insert the demo maps that are not there yet. Returns True if successful."""
    logger.info("Seeding demo maps...")
    try:
        with get_db_manager().get_session() as session:
            backend = SqlContentBackend(session)
            existing = {m.name for m in backend.list_maps()}
            created = 0
            for demo in DEMO_MAPS:
                if demo["name"] in existing:
                    logger.debug("Map already exists: %s", demo["name"])
                    continue
                backend.insert_map(demo["name"], demo["description"])
                created += 1
        logger.info("Seeding completed! Created %d new map(s)", created)
        return True
    except Exception as e:
        logger.error("Seeding error: %s", e)
        return False


def _print_footer() -> None:
    logger.info("=" * 60)
    logger.info("Database initialization completed!")
    logger.info("=" * 60)


def _handle_migrations(args) -> bool:
    """Handle migration or direct table creation. Returns True if successful."""
    if args.skip_migrations:
        return create_tables_directly()

    if run_migrations():
        return True

    logger.warning("Trying direct table creation as fallback...")
    return create_tables_directly()


def main() -> None:
    """Main entry point."""
    args = parse_args()

    setup_script_logging(args.verbose, __name__)

    _print_header()

    if not check_database_connection():
        sys.exit(1)

    if not _handle_migrations(args):
        sys.exit(1)

    if args.seed and not seed_demo_maps():
        sys.exit(1)

    _print_footer()


if __name__ == "__main__":
    main()
