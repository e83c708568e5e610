"""Data ingestion - fetching and parsing syndication feeds."""

from .interfaces import Source, RawEntry, Article, ArticleStoreInterface
from .fetcher import FeedFetcher
from .parser import ParsedFeed, parse_document, parse_feed

__all__ = [
    "Source", "RawEntry", "Article", "ArticleStoreInterface",
    "FeedFetcher", "ParsedFeed", "parse_document", "parse_feed",
]
