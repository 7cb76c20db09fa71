"""
Revocation sweep.

Periodically revokes tokens whose stage has ended. Runs as a background task
on the application's event loop, alongside ordinary issue/resolve/revoke
traffic; the registry's per-token locks keep the two from interleaving on the
same token.
"""

from __future__ import annotations

import asyncio
import logging

from yeahbuddy.auth.tokens import TokenRegistry

logger = logging.getLogger(__name__)


class RevocationSweeper:
    """
    Background task calling ``TokenRegistry.revoke_expired`` every interval.

    Usage:
        sweeper = RevocationSweeper(registry, interval=300)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, registry: TokenRegistry, interval: float):
        self.registry = registry
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="revocation-sweeper")
        logger.info(f"Revocation sweep every {self.interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def sweep_once(self) -> int:
        """Run one sweep now. Returns the number of tokens revoked."""
        return await self.registry.revoke_expired()

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except Exception:
                # Keep sweeping; the next run retries the same tokens.
                logger.exception("Revocation sweep failed")
            await asyncio.sleep(self.interval)
