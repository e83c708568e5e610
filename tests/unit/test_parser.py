"""Unit tests for feed parsing."""

import pytest
from datetime import datetime

from conftest import rss_feed
from feedsync.exceptions import ParseError
from feedsync.ingestion.interfaces import RawEntry
from feedsync.ingestion.parser import parse_document, parse_feed


RDF_FEED = b"""<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#" xmlns="http://purl.org/rss/1.0/">
  <channel rdf:about="https://example.org/">
    <title>Flat Feed</title>
    <link>https://example.org/</link>
    <description>RSS 1.0</description>
  </channel>
  <item rdf:about="https://example.org/a">
    <title>First flat item</title>
    <link>https://example.org/a</link>
    <description>Alpha</description>
  </item>
  <item rdf:about="https://example.org/b">
    <title>Second flat item</title>
    <link>https://example.org/b</link>
  </item>
</rdf:RDF>"""

ATOM_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Feed</title>
  <id>urn:example:feed</id>
  <updated>2024-03-01T10:00:00Z</updated>
  <entry>
    <title>Atom entry</title>
    <link rel="alternate" href="https://atom.example.com/entry-1"/>
    <id>urn:example:1</id>
    <updated>2024-03-01T10:00:00Z</updated>
    <summary>Atom summary</summary>
  </entry>
</feed>"""


class TestParseFeed:
    """Tests for parse_feed."""

    def test_rss2_items_in_document_order(self):
        """Should return channel items in the order they appear."""
        content = rss_feed([
            {"title": "One", "link": "https://example.com/1", "description": "First body"},
            {"title": "Two", "link": "https://example.com/2"},
            {"title": "Three", "link": "https://example.com/3"},
        ])
        entries = parse_feed(content)

        assert [e.link for e in entries] == [
            "https://example.com/1",
            "https://example.com/2",
            "https://example.com/3",
        ]
        assert entries[0].title == "One"
        assert entries[0].content == "First body"

    def test_flat_item_list(self):
        """Should read RSS 1.0 items that sit beside the channel."""
        entries = parse_feed(RDF_FEED)

        assert len(entries) == 2
        assert entries[0].link == "https://example.org/a"
        assert entries[1].title == "Second flat item"

    def test_structured_link(self):
        """Should take the href of an Atom link element."""
        entries = parse_feed(ATOM_FEED)

        assert len(entries) == 1
        assert entries[0].link == "https://atom.example.com/entry-1"
        assert entries[0].content == "Atom summary"

    def test_publication_date_parsed(self):
        """Should convert pubDate to a naive UTC datetime."""
        content = rss_feed([{
            "title": "Dated",
            "link": "https://example.com/dated",
            "pubDate": "Tue, 05 Mar 2024 14:30:00 GMT",
        }])
        entries = parse_feed(content)

        assert entries[0].published_at == datetime(2024, 3, 5, 14, 30, 0)

    def test_missing_optional_fields_are_none(self):
        """Missing date and body should not raise."""
        entries = parse_feed(rss_feed([{"title": "Bare", "link": "https://example.com/bare"}]))

        assert entries[0].published_at is None
        assert entries[0].content is None

    def test_missing_link_kept_as_invalid_entry(self):
        """Entries without a link are returned but flagged invalid."""
        entries = parse_feed(rss_feed([
            {"title": "No link here"},
            {"link": "https://example.com/untitled"},
        ]))

        assert len(entries) == 2
        assert entries[0].link is None
        assert not entries[0].is_valid
        assert entries[1].title is None
        assert not entries[1].is_valid

    def test_guid_is_not_a_link(self):
        """An item with only a <guid> has no link, even a URL-shaped one."""
        entries = parse_feed(rss_feed([
            {"title": "Bare guid", "guid": "12345"},
            {"title": "Permalink guid", "guid": "https://example.com/g"},
        ]))

        assert [e.link for e in entries] == [None, None]
        assert not any(e.is_valid for e in entries)

    def test_link_wins_over_guid(self):
        """Should use <link> whether it comes before or after <guid>."""
        guid_last = rss_feed([{"title": "A", "link": "https://example.com/a", "guid": "a-1"}])
        guid_first = (
            b'<?xml version="1.0"?><rss version="2.0"><channel><title>T</title>'
            b"<item><title>B</title><guid>b-1</guid><link>https://example.com/b</link></item>"
            b"</channel></rss>"
        )

        assert parse_feed(guid_last)[0].link == "https://example.com/a"
        assert parse_feed(guid_first)[0].link == "https://example.com/b"

    def test_recovered_markup_reported(self):
        """Entries recovered from a truncated document come with the markup error."""
        content = rss_feed([{"title": "Kept", "link": "https://example.com/kept"}])
        parsed = parse_document(content[:-len(b"</channel></rss>")])

        assert [e.link for e in parsed.entries] == ["https://example.com/kept"]
        assert parsed.recovered_error is not None

    def test_clean_document_has_no_recovered_error(self):
        parsed = parse_document(rss_feed([{"title": "Fine", "link": "https://example.com/f"}]))
        assert parsed.recovered_error is None

    def test_empty_channel(self):
        """A well-formed feed with no items is not an error."""
        assert parse_feed(rss_feed([])) == []

    def test_accepts_text(self):
        """Should accept str as well as bytes."""
        content = rss_feed([{"title": "Text", "link": "https://example.com/t"}]).decode("utf-8")
        assert len(parse_feed(content)) == 1

    @pytest.mark.parametrize("content", [
        b"this is not a feed",
        b"",
        b'<rss version="2.0"><channel><title>Cut off',
        b"<html><body><p>Not found</p></body></html>",
    ])
    def test_not_feed_markup_raises(self, content):
        """Should raise ParseError for content that is not a feed."""
        with pytest.raises(ParseError):
            parse_feed(content, source_name="Broken")


class TestRawEntry:
    """Tests for RawEntry validation."""

    def test_valid_entry(self):
        assert RawEntry(link="https://example.com/x", title="X").is_valid

    def test_blank_link_or_title_invalid(self):
        assert not RawEntry(link="   ", title="X").is_valid
        assert not RawEntry(link="https://example.com/x", title="  ").is_valid
        assert not RawEntry().is_valid
