"""SQLite access through aiosqlite.

Every request gets its own connection from the ``get_db`` dependency.
Schema creation and upgrades are delegated to Alembic at startup; the raw
DDL lives in ``schema.sql`` next to this module so tests can load it
directly into an in-memory database.
"""

import json
import logging
from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
from alembic import command
from alembic.config import Config

from microlearn.config import settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


async def connect(path: str | None = None) -> aiosqlite.Connection:
    db = await aiosqlite.connect(path or settings.database_path)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA foreign_keys = ON")
    return db


async def get_db() -> AsyncGenerator:
    """FastAPI dependency that yields a database connection and closes it after the request."""
    db = await connect()
    try:
        yield db
    finally:
        await db.close()


def _run_alembic_upgrade():
    """Run Alembic migrations to head (synchronous, called once at startup)."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{settings.database_path}")
    command.upgrade(alembic_cfg, "head")


async def init_db():
    # Ensure parent directory exists (for Docker volume mounts)
    db_path = Path(settings.database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Using SQLite backend: %s", settings.database_path)

    # Alembic handles all schema creation and migrations
    _run_alembic_upgrade()


def row_to_dict(row: aiosqlite.Row | None, parse_json_fields: list[str] | None = None) -> dict | None:
    """Convert a database row to a dictionary, optionally parsing JSON fields."""
    if row is None:
        return None

    result = dict(row)
    for field in parse_json_fields or ():
        if result.get(field):
            try:
                result[field] = json.loads(result[field])
            except (json.JSONDecodeError, TypeError):
                pass  # Keep the raw text if it is not JSON
    return result
