"""
Interface sync dispatcher.

Activation changes hand the network's full state to the interface driver
without making the triggering request wait. The dispatcher runs those
syncs as background tasks:

- At most SYNC_MAX_WORKERS driver calls run at the same time.
- Syncs for the same network run one after another, in dispatch order.
- A sync that is overtaken by a newer dispatch for the same network before
  it starts (or between retries) is dropped; the newer one carries a more
  recent state.
- A failing driver call is retried with exponential backoff up to
  SYNC_MAX_RETRIES times. The outcome of every sync is recorded per network
  as a SyncResult and logged; it never reaches the request that triggered it.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from locksmith.models.network import NetState
from locksmith.nm.driver.base import Driver
from locksmith.utils.logger import format_traceback, get_logger

logger = get_logger(__name__)


@dataclass
class SyncResult:
    """Outcome of one interface sync."""

    net_id: str
    generation: int
    ok: bool
    attempts: int
    error: str | None
    started_at: datetime
    finished_at: datetime

    def to_dict(self) -> dict:
        return {
            "net_id": self.net_id,
            "generation": self.generation,
            "ok": self.ok,
            "attempts": self.attempts,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
        }


class SyncDispatcher:
    """Runs interface syncs on a bounded pool of background tasks."""

    def __init__(
        self,
        driver: Driver,
        max_workers: int = 4,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
    ):
        self.driver = driver
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

        self._semaphore = asyncio.Semaphore(max_workers)
        self._net_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._generation: dict[str, int] = defaultdict(int)
        self._results: dict[str, SyncResult] = {}
        self._tasks: set[asyncio.Task] = set()

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, net_id: str, state: NetState) -> asyncio.Task:
        """
        Schedule a sync of the network's interface and return immediately.

        The state is copied, so the caller may keep mutating its own object.
        Must be called from a running event loop.
        """
        self._generation[net_id] += 1
        generation = self._generation[net_id]

        task = asyncio.create_task(
            self._run(net_id, generation, state.copy()),
            name=f"sync-{net_id}-{generation}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.debug(f"Dispatched sync #{generation} for network {net_id}")
        return task

    def _superseded(self, net_id: str, generation: int) -> bool:
        return generation < self._generation[net_id]

    async def _run(self, net_id: str, generation: int, state: NetState) -> None:
        async with self._net_locks[net_id]:
            attempts = 0
            started_at = datetime.now()

            while True:
                if self._superseded(net_id, generation):
                    logger.debug(
                        f"Sync #{generation} for network {net_id} superseded, skipping"
                    )
                    return

                attempts += 1
                try:
                    async with self._semaphore:
                        await asyncio.to_thread(self.driver.configure, net_id, state)
                except Exception as e:
                    logger.warning(
                        f"Sync #{generation} for network {net_id} failed "
                        f"(attempt {attempts}/{self.max_retries + 1}): {e}"
                    )
                    if attempts > self.max_retries:
                        logger.error(
                            f"Giving up on sync #{generation} for network {net_id}"
                        )
                        logger.debug(format_traceback(e))
                        self._record(
                            net_id, generation, False, attempts, str(e), started_at
                        )
                        return
                    await asyncio.sleep(self.backoff_seconds * 2 ** (attempts - 1))
                    continue

                self._record(net_id, generation, True, attempts, None, started_at)
                logger.debug(f"Sync #{generation} for network {net_id} complete")
                return

    def _record(
        self,
        net_id: str,
        generation: int,
        ok: bool,
        attempts: int,
        error: str | None,
        started_at: datetime,
    ) -> None:
        self._results[net_id] = SyncResult(
            net_id=net_id,
            generation=generation,
            ok=ok,
            attempts=attempts,
            error=error,
            started_at=started_at,
            finished_at=datetime.now(),
        )

    # =========================================================================
    # Inspection
    # =========================================================================

    def last_result(self, net_id: str) -> SyncResult | None:
        """Result of the most recently finished sync for a network."""
        return self._results.get(net_id)

    def dispatch_count(self, net_id: str) -> int:
        """Number of syncs dispatched for a network since startup."""
        return self._generation.get(net_id, 0)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def drain(self) -> None:
        """Wait for every dispatched sync to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Finish outstanding syncs and release the driver."""
        await self.drain()
        self.driver.close()
