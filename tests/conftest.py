"""Pytest configuration and shared fixtures."""

import pytest
import tempfile
import os
from typing import Dict, List, Optional, Union

from feedsync.exceptions import EmbeddingError, FetchError
from feedsync.ingestion.interfaces import Source


def rss_feed(items: List[dict], title: str = "Test Feed") -> bytes:
    """Build an RSS 2.0 document. Item keys: title, link, guid, description, pubDate."""
    parts = []
    for item in items:
        fields = "".join(
            f"<{tag}>{item[tag]}</{tag}>"
            for tag in ("title", "link", "guid", "description", "pubDate")
            if item.get(tag) is not None
        )
        parts.append(f"<item>{fields}</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{title}</title><link>https://example.com/</link><description>d</description>"
        f"{''.join(parts)}"
        "</channel></rss>"
    ).encode("utf-8")


class FakeFetcher:
    """Serves canned feed bodies by URL; values may be exceptions."""

    def __init__(self, responses: Dict[str, Union[bytes, Exception]]):
        self.responses = responses
        self.calls: List[str] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass

    async def fetch(self, source: Source) -> bytes:
        self.calls.append(source.url)
        response = self.responses.get(source.url)
        if response is None:
            raise FetchError(source.url, status=404)
        if isinstance(response, Exception):
            raise response
        return response


class FakeEmbedder:
    """Returns a fixed-size vector; fails for texts listed in fail_on."""

    model = "fake-embedding"

    def __init__(self, dims: int = 4, max_chars: int = 4000, fail_on: Optional[set] = None):
        self.dims = dims
        self.max_chars = max_chars
        self.fail_on = fail_on or set()
        self.calls: List[str] = []

    async def embed(self, text: Optional[str]) -> List[float]:
        payload = (text or "")[:self.max_chars]
        self.calls.append(payload)
        if text in self.fail_on:
            raise EmbeddingError("upstream unavailable", status=503)
        return [float(len(payload))] + [0.5] * (self.dims - 1)


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def storage(temp_db):
    from feedsync.storage.database import ArticleStorage
    return ArticleStorage(temp_db)


@pytest.fixture
def sample_source():
    """Provide a sample source."""
    return Source(
        id=1,
        name="Daily Planet",
        url="https://planet.example.com/rss.xml",
        bias_label="center",
        country="US",
    )


@pytest.fixture
def other_source():
    return Source(
        id=2,
        name="Gotham Gazette",
        url="https://gazette.example.com/feed",
        bias_label="right",
    )


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()
