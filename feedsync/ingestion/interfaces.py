"""Data types shared by the fetcher, parser, store and pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union


SourceId = Union[int, str]


@dataclass(frozen=True)
class Source:
    """A configured feed origin. Read-only during a run."""
    name: str
    url: str
    id: Optional[SourceId] = None
    bias_label: Optional[str] = None
    country: Optional[str] = None
    enabled: bool = True


@dataclass
class RawEntry:
    """A syndication item as parsed, before validation or storage."""
    link: Optional[str] = None
    title: Optional[str] = None
    published_at: Optional[datetime] = None
    content: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        """Link is the dedup key and title is required for a usable article."""
        return bool(self.link and self.link.strip()) and bool(self.title and self.title.strip())


@dataclass
class Article:
    """A persisted, deduplicated entry."""
    id: Optional[int] = None
    source_id: Optional[SourceId] = None
    title: str = ""
    url: str = ""
    published_at: Optional[datetime] = None
    content: str = ""
    bias: Optional[str] = None
    fetched_at: datetime = field(default_factory=datetime.utcnow)


class ArticleStoreInterface:
    """Store operations the sync pipeline consumes."""

    def exists_by_url(self, url: str) -> bool:
        """Check if an article with this URL exists."""
        raise NotImplementedError

    def insert_article(
        self,
        source_id: Optional[SourceId],
        title: str,
        url: str,
        published_at: datetime,
        content: str,
        bias: Optional[str],
    ) -> Optional[int]:
        """Insert article, return ID or None if the URL already exists."""
        raise NotImplementedError

    def insert_embedding(self, article_id: int, vector: list, model: str = None) -> None:
        """Store the embedding for an article."""
        raise NotImplementedError

    def list_sources(self) -> list:
        """Get all configured sources."""
        raise NotImplementedError
