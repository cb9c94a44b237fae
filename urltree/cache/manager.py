"""Time-bounded cache around the fetch-and-build operation."""
from __future__ import annotations

import asyncio
import contextlib
import enum
import time
from typing import AsyncIterator, Awaitable, Callable, Iterable, Optional

import structlog

from urltree.cache.snapshot import CacheSnapshot
from urltree.observability.metrics import MetricsRegistry, record_duration
from urltree.tree.builder import build_tree
from urltree.tree.models import Item, TreeNode

LOGGER = structlog.get_logger(__name__)

DEFAULT_TTL_MS = 60_000

Fetcher = Callable[[], Awaitable[Iterable[Item]]]
Clock = Callable[[], int]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def next_refresh_delay(interval: float, started: float, now: float) -> float:
    """Seconds to wait so refreshes start every ``interval`` regardless of rebuild time."""
    return max(0.0, interval - (now - started))


class CacheState(str, enum.Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


class TreeCache:
    """Serves the latest tree and rebuilds it once it is older than the TTL.

    Rebuilds are serialized: while one is in flight, every other caller
    (requests and the background refresher alike) awaits that same rebuild
    instead of starting its own, so snapshots are published in start order.
    """

    def __init__(
        self,
        fetch: Fetcher,
        *,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._fetch = fetch
        self._ttl_ms = ttl_ms
        self._clock = clock or _now_ms
        self._metrics = metrics or MetricsRegistry()
        self._snapshot: Optional[CacheSnapshot] = None
        self._inflight: Optional[asyncio.Task[CacheSnapshot]] = None
        self._refresher: Optional[asyncio.Task[None]] = None

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    @property
    def snapshot(self) -> Optional[CacheSnapshot]:
        return self._snapshot

    @property
    def state(self) -> CacheState:
        snapshot = self._snapshot
        if snapshot is None:
            return CacheState.EMPTY
        if snapshot.is_fresh(self._clock(), self._ttl_ms):
            return CacheState.FRESH
        return CacheState.STALE

    async def get(self) -> TreeNode:
        """Return the cached tree, rebuilding it first when empty or stale.

        A failed rebuild raises and leaves the previous snapshot in place; a
        stale tree is never returned.
        """
        snapshot = self._snapshot
        if snapshot is not None and snapshot.is_fresh(self._clock(), self._ttl_ms):
            self._metrics.incr("cache_hits")
            LOGGER.info("cache_hit", built_at=snapshot.formatted_built_at())
            return snapshot.tree
        self._metrics.incr("cache_misses")
        LOGGER.info("cache_miss", reason="empty" if snapshot is None else "stale")
        return await self.refresh()

    async def refresh(self) -> TreeNode:
        """Rebuild unconditionally, joining a rebuild that is already running."""
        task = self._inflight
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._rebuild())
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        else:
            self._metrics.incr("rebuild_joins")
        # Cancelling one waiter must not abort the rebuild the others share.
        snapshot = await asyncio.shield(task)
        return snapshot.tree

    def _clear_inflight(self, task: asyncio.Task[CacheSnapshot]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            task.exception()  # marks the exception retrieved when nobody awaited it

    async def _rebuild(self) -> CacheSnapshot:
        self._metrics.incr("rebuilds")
        try:
            with record_duration(self._metrics, "rebuild_duration_ms"):
                items = await self._fetch()
                tree = build_tree(items)
        except Exception:
            self._metrics.incr("rebuild_failures")
            raise
        snapshot = CacheSnapshot(tree=tree, built_at=self._clock())
        self._snapshot = snapshot
        LOGGER.info("cache_updated", built_at=snapshot.formatted_built_at())
        return snapshot

    async def _refresh_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._ttl_ms / 1000
        while True:
            started = loop.time()
            try:
                await self.refresh()
            except Exception:
                LOGGER.exception("cache_update_failed")
            await asyncio.sleep(next_refresh_delay(interval, started, loop.time()))

    def start(self) -> None:
        """Start the background refresher. The first refresh runs immediately."""
        if self._refresher is not None and not self._refresher.done():
            return
        self._refresher = asyncio.get_running_loop().create_task(self._refresh_loop())

    async def stop(self) -> None:
        """Cancel the background refresher and wait for it to finish."""
        refresher, self._refresher = self._refresher, None
        if refresher is None:
            return
        refresher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await refresher

    @contextlib.asynccontextmanager
    async def running(self) -> AsyncIterator["TreeCache"]:
        """Keep the background refresher alive for the duration of the block."""
        self.start()
        try:
            yield self
        finally:
            await self.stop()
