"""Periodic eviction of old task records."""
from typing import Optional
import asyncio

from ..core.logging import logger
from .registry import TaskRegistry


class CleanupSweeper:
    """Runs TaskRegistry.sweep() on a fixed interval until stopped."""

    def __init__(self, registry: TaskRegistry, interval: Optional[float] = None):
        self.registry = registry
        self.interval = interval if interval is not None else registry.config.CLEANUP_INTERVAL
        self._task: Optional[asyncio.Task] = None
        self._stopped = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._stopped = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="cleanup-sweeper")
        logger.info(f"Cleanup sweeper started (interval={self.interval}s)")

    async def stop(self):
        if self._task is None:
            return
        self._stopped.set()
        await self._task
        self._task = None
        logger.info("Cleanup sweeper stopped")

    async def _loop(self):
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                self.registry.sweep()
            except Exception as e:
                logger.error(f"Cleanup sweep failed: {e}", exc_info=True)
