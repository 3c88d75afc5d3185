"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Storage backends and the HTTP client live in tests/integration/conftest.py.
"""

import os
import tempfile

# Set test environment before any app imports (disables rate limiting)
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("DATA_PATH", tempfile.mkdtemp(prefix="sitehost-test-"))
# Cheap hashing keeps registration/login tests fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "8192")

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import AsyncGenerator, Generator

import pytest
from fakeredis import aioredis as fakeredis_aio
from redis.asyncio import Redis

from src.sitehost.core.config import get_settings
from src.sitehost.core.shutdown import deployment_tracker

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_deployment_tracker() -> Generator[None]:
    """The tracker is process-wide; a test that starts shutdown must not leak it."""
    deployment_tracker.reset()
    yield
    deployment_tracker.reset()


# --- Redis Test Fixtures (shared) ---


@pytest.fixture
async def fake_redis() -> AsyncGenerator[Redis]:
    """Provides a fakeredis client for testing.

    Returns an in-memory Redis implementation that behaves like
    a real Redis server but doesn't require external dependencies.
    """
    client = fakeredis_aio.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()
