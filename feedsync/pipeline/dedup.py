"""URL deduplication against the store."""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict

import structlog

logger = structlog.get_logger()


class DedupGate:
    """Point lookups against the store, one URL at a time.

    Never preloads a set of known URLs; every check sees inserts made
    earlier in the same run. ``claim`` serializes concurrent workers that
    hold the same URL so check-then-insert is atomic per URL.
    """

    def __init__(self, store):
        self.store = store
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    def exists(self, url: str) -> bool:
        return self.store.exists_by_url(url)

    @asynccontextmanager
    async def claim(self, url: str):
        """Hold the per-URL lock for the duration of the block."""
        lock = self._locks.setdefault(url, asyncio.Lock())
        self._waiters[url] = self._waiters.get(url, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[url] -= 1
            if not self._waiters[url]:
                del self._waiters[url]
                del self._locks[url]

    @property
    def active_claims(self) -> int:
        return len(self._locks)
