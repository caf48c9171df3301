"""Background purge of expired CSRF tokens.

Validation rejects expired tokens on its own; the sweeper only keeps the
token table from growing without bound.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from tasks_api.db.time import Clock, now_ms
from tasks_api.services.csrf import CsrfConfig
from tasks_api.services.csrf_store import TokenStore, TokenStoreError

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodically deletes tokens older than the configured TTL."""

    def __init__(self, store: TokenStore, config: CsrfConfig, clock: Clock = now_ms) -> None:
        self.store = store
        self.config = config
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        """Delete every expired token and return the number removed."""
        cutoff = self._clock() - self.config.token_ttl_ms
        removed = self.store.delete_older_than(cutoff)
        if removed:
            logger.info("Cleaned up %d expired CSRF tokens", removed)
        else:
            logger.debug("No expired CSRF tokens to clean up")
        return removed

    async def start(self) -> None:
        """Start the background sweep loop."""

        if not self.running:
            self._stopping = asyncio.Event()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""

        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        interval = max(0.1, float(self.config.sweep_interval_seconds))

        while not self._stopping.is_set():
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            if self._stopping.is_set():
                return

            try:
                await asyncio.to_thread(self.sweep_once)
            except TokenStoreError as e:
                logger.warning("ExpirySweeper failed to purge tokens: %s", e)
            except Exception as e:
                logger.error("ExpirySweeper encountered unexpected error: %s", e, exc_info=True)
