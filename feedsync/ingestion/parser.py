"""Feed parsing into RawEntry sequences."""

import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

import feedparser
import structlog

from .interfaces import RawEntry
from ..exceptions import ParseError

logger = structlog.get_logger()

# Bozo reasons that do not mean the markup is broken
_HARMLESS_BOZO = (feedparser.ThingsNobodyCaresAboutButMe,)


@dataclass
class ParsedFeed:
    """Entries of one document, plus the markup error they were recovered from, if any."""
    entries: List[RawEntry] = field(default_factory=list)
    recovered_error: Optional[str] = None


def parse_feed(content: Union[bytes, str], source_name: str = None) -> List[RawEntry]:
    """Parse raw feed content into entries, in document order.

    Handles RSS 2.0 (items under the channel), RSS 1.0/RDF (items beside
    the channel) and Atom. Missing optional fields become None.

    Raises:
        ParseError: content is not feed markup.
    """
    return parse_document(content, source_name).entries


def parse_document(content: Union[bytes, str], source_name: str = None) -> ParsedFeed:
    """Like parse_feed, but also reports malformed markup that still yielded entries."""
    if isinstance(content, str):
        content = content.encode("utf-8")

    # A stream, so feedparser never treats the body as a path or URL
    parsed = feedparser.parse(io.BytesIO(content))
    entries = parsed.get("entries") or []
    bozo_exc = parsed.get("bozo_exception") if parsed.get("bozo") else None
    broken = bozo_exc is not None and not isinstance(bozo_exc, _HARMLESS_BOZO)

    if not entries and (broken or not parsed.get("version")):
        reason = str(bozo_exc) if bozo_exc else "no feed markup recognized"
        raise ParseError(f"Unparseable feed{f' {source_name}' if source_name else ''}: {reason}")

    recovered_error = None
    if broken:
        # feedparser's loose parser recovered entries from malformed markup
        recovered_error = f"Malformed feed recovered: {bozo_exc}"
        logger.warning("feed_malformed_recovered", feed=source_name, entries=len(entries), error=str(bozo_exc))

    return ParsedFeed(
        entries=[_parse_entry(entry) for entry in entries],
        recovered_error=recovered_error,
    )


def _parse_entry(entry) -> RawEntry:
    """Parse a feedparser entry into a RawEntry."""
    title = entry.get("title")
    if isinstance(title, str):
        title = title.strip() or None

    content = entry.get("summary")
    if not content and entry.get("content"):
        content = entry.content[0].get("value")

    return RawEntry(
        link=_extract_link(entry),
        title=title,
        published_at=_parse_datetime(entry),
        content=content or None,
    )


def _extract_link(entry) -> Optional[str]:
    """Get the entry's URL, whether given as text or as a structured link.

    A <guid> is never a link. feedparser copies a permalink guid into
    ``link`` when the item has no <link>, and flags it with ``guidislink``.
    """
    links = entry.get("links") or []
    if entry.get("guidislink") and not links:
        return None

    link = entry.get("link")
    if isinstance(link, dict):
        link = link.get("href") or link.get("#text") or link.get("value")
    if isinstance(link, str) and link.strip():
        return link.strip()

    # Atom-style <link href="..."/> elements, alternate first
    for rel in ("alternate", None):
        for candidate in links:
            href = candidate.get("href")
            if href and href.strip() and (rel is None or candidate.get("rel", "alternate") == rel):
                return href.strip()
    return None


def _parse_datetime(entry) -> Optional[datetime]:
    """Naive UTC datetime from published, then updated."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6])
            except (TypeError, ValueError):
                pass
    return None
