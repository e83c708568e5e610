"""Unit tests for the dedup gate."""

import asyncio
from datetime import datetime

from feedsync.pipeline.dedup import DedupGate


class TestDedupGate:
    """Tests for DedupGate."""

    def test_exists_is_a_live_lookup(self, storage):
        """Sees inserts made after the gate was created."""
        gate = DedupGate(storage)
        url = "https://example.com/live"
        assert gate.exists(url) is False

        storage.insert_article(1, "Live", url, datetime(2024, 1, 1), "", None)
        assert gate.exists(url) is True

    async def test_claim_serializes_same_url(self, storage):
        """Only one holder of a URL at a time."""
        gate = DedupGate(storage)
        active = []
        overlap = []

        async def worker():
            async with gate.claim("https://example.com/same"):
                if active:
                    overlap.append(True)
                active.append(1)
                await asyncio.sleep(0.01)
                active.pop()

        await asyncio.gather(*(worker() for _ in range(5)))

        assert overlap == []
        assert gate.active_claims == 0

    async def test_claim_does_not_block_other_urls(self, storage):
        gate = DedupGate(storage)
        entered = asyncio.Event()

        async def holder():
            async with gate.claim("https://example.com/a"):
                await asyncio.wait_for(entered.wait(), timeout=1)

        async def other():
            async with gate.claim("https://example.com/b"):
                entered.set()

        await asyncio.gather(holder(), other())
        assert gate.active_claims == 0

    async def test_check_then_insert_once_under_contention(self, storage):
        """Concurrent workers with the same URL insert it exactly once."""
        gate = DedupGate(storage)
        url = "https://example.com/contended"
        inserted = []

        async def worker(i):
            async with gate.claim(url):
                if gate.exists(url):
                    return
                await asyncio.sleep(0)  # yield between check and insert
                article_id = storage.insert_article(i, f"Copy {i}", url, datetime(2024, 1, 1), "", None)
                inserted.append(article_id)

        await asyncio.gather(*(worker(i) for i in range(4)))

        assert len(inserted) == 1
        assert inserted[0] is not None
        assert storage.count_articles() == 1
