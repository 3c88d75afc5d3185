"""In-flight deployment tracking for graceful shutdown.

A deployment that is interrupted mid-way rolls back its directories, but a
process that exits while a worker thread is still extracting leaves litter
behind. Uploads register here so the lifespan handler can wait for them.
"""

import asyncio
from collections import Counter
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from src.sitehost.core.exceptions import SiteHostError
from src.sitehost.core.logging import get_logger

logger = get_logger(__name__)


class ShuttingDownError(SiteHostError):
    """Raised when new work is submitted after shutdown started."""

    status_code = 503
    detail = "Server is shutting down"


class DeploymentTracker:
    """Tracks in-flight deployments, keyed by a label such as the site id."""

    def __init__(self) -> None:
        self._active: Counter[str] = Counter()
        self._shutting_down = False
        self._lock = asyncio.Lock()
        self._drain_event = asyncio.Event()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def in_flight_count(self) -> int:
        return sum(self._active.values())

    @property
    def active(self) -> list[str]:
        return sorted(self._active)

    @asynccontextmanager
    async def track(self, label: str) -> AsyncGenerator[None]:
        """Register one unit of work for the duration of the block."""
        async with self._lock:
            if self._shutting_down:
                raise ShuttingDownError()
            self._active[label] += 1
            self._drain_event.clear()
            logger.debug("Deployment started", label=label, in_flight=self.in_flight_count)
        try:
            yield
        finally:
            async with self._lock:
                self._active[label] -= 1
                if self._active[label] <= 0:
                    del self._active[label]
                logger.debug("Deployment finished", label=label, in_flight=self.in_flight_count)
                if not self._active and self._shutting_down:
                    self._drain_event.set()

    async def start_shutdown(self) -> None:
        """Refuse new work and arm the drain event."""
        logger.info("Deployment tracker entering shutdown mode")
        async with self._lock:
            self._shutting_down = True
            if not self._active:
                self._drain_event.set()
            else:
                logger.info("Waiting for in-flight deployments", active=self.active)

    async def wait_for_drain(self, timeout: float) -> bool:
        """Wait until no deployment is running. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            logger.warning(
                "Shutdown timeout with deployments still running",
                timeout=timeout,
                active=self.active,
            )
            return False

    def reset(self) -> None:
        """Reset tracker state. For testing only."""
        self._active.clear()
        self._shutting_down = False
        self._drain_event = asyncio.Event()


deployment_tracker = DeploymentTracker()
