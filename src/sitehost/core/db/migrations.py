"""Alembic runner used by deployments that manage the schema with migrations."""

import asyncio

from alembic import command
from alembic.config import Config


def run_migrations_sync(config_path: str = "alembic.ini", revision: str = "head") -> None:
    command.upgrade(Config(config_path), revision)


async def run_migrations_async(config_path: str = "alembic.ini", revision: str = "head") -> None:
    """Run migrations without blocking the event loop."""
    await asyncio.to_thread(run_migrations_sync, config_path, revision)
