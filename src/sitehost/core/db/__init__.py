"""Database utilities - engine, session factory, migrations."""

from src.sitehost.core.db.engine import (
    create_engine_from_settings,
    create_session_factory,
    create_tables,
)
from src.sitehost.core.db.migrations import run_migrations_async, run_migrations_sync

__all__ = [
    "create_engine_from_settings",
    "create_session_factory",
    "create_tables",
    "run_migrations_async",
    "run_migrations_sync",
]
