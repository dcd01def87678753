"""Unit tests for the unified parser entry points."""

import json
from datetime import UTC, datetime

import pytest

from feedstream.config import ParserConfig
from feedstream.errors import (
    FeedError,
    FeedSyntaxError,
    MalformedFeedError,
    UnknownFeedFormatError,
)
from feedstream.models import ParsedFeed
from feedstream.parser import detect_feed_type, parse_feed, parse_feed_with_format

RSS_DOCUMENT = (
    '<?xml version="1.0"?><rss version="2.0"><channel><title>RSS</title>'
    + "".join(f"<item><guid>r{index}</guid></item>" for index in range(5))
    + "</channel></rss>"
)

ATOM_DOCUMENT = (
    '<feed xmlns="http://www.w3.org/2005/Atom"><title>Atom</title>'
    + "".join(f"<entry><id>a{index}</id></entry>" for index in range(3))
    + "</feed>"
)

JSON_DOCUMENT = json.dumps(
    {
        "version": "https://jsonfeed.org/version/1.1",
        "title": "JSON",
        "items": [{"id": f"j{index}"} for index in range(4)],
    }
)


class TestParseFeedUnit:
    """Unit tests for parse_feed dispatch."""

    @pytest.mark.parametrize(
        "content,title,guids",
        [
            (RSS_DOCUMENT, "RSS", [f"r{index}" for index in range(5)]),
            (ATOM_DOCUMENT, "Atom", [f"a{index}" for index in range(3)]),
            (JSON_DOCUMENT, "JSON", [f"j{index}" for index in range(4)]),
        ],
    )
    def test_detects_and_parses(self, content, title, guids):
        feed = parse_feed(content)

        assert isinstance(feed, ParsedFeed)
        assert feed.title == title
        assert [entry.guid for entry in feed.entries] == guids

    def test_bytes_input(self):
        feed = parse_feed(ATOM_DOCUMENT.encode("utf-8"))
        assert feed.title == "Atom"

    def test_unknown_format(self):
        with pytest.raises(UnknownFeedFormatError, match="Unknown feed format"):
            parse_feed("<html><body>Not a feed</body></html>")

    def test_unknown_format_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_feed("")

    def test_max_entries_truncates(self):
        feed = parse_feed(RSS_DOCUMENT, ParserConfig(max_entries=2))
        assert [entry.guid for entry in feed.entries] == ["r0", "r1"]

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError, match="peek_bytes"):
            parse_feed(RSS_DOCUMENT, ParserConfig(peek_bytes=0))

    def test_detection_only_reads_peek_window(self):
        content = "<!--" + "x" * 100 + "-->" + RSS_DOCUMENT.removeprefix('<?xml version="1.0"?>')

        with pytest.raises(UnknownFeedFormatError):
            parse_feed(content, ParserConfig(peek_bytes=64))
        assert parse_feed(content).title == "RSS"

    def test_detect_feed_type_reexported(self):
        assert detect_feed_type(JSON_DOCUMENT) == "json"


class TestParseFeedWithFormatUnit:
    """Unit tests for explicit-format parsing."""

    def test_parses_undetectable_fragment(self):
        content = "<item><title>Lonely</title></item>"

        assert detect_feed_type(content) == "unknown"
        feed = parse_feed_with_format(content, "rss")
        assert [entry.title for entry in feed.entries] == ["Lonely"]

    def test_unclosed_link_in_bare_item(self):
        content = (
            "<item><title>Post</title><link>http://x.com/1\n"
            "<pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate></item>"
        )

        feed = parse_feed_with_format(content, "rss")

        assert len(feed.entries) == 1
        entry = feed.entries[0]
        assert entry.title == "Post"
        assert entry.link == "http://x.com/1"
        assert entry.pub_date == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def test_atom_document_as_rss_is_malformed(self):
        with pytest.raises(MalformedFeedError) as exc_info:
            parse_feed_with_format(ATOM_DOCUMENT, "rss")
        assert exc_info.value.feed_format == "rss"

    def test_rss_document_as_atom_is_malformed(self):
        with pytest.raises(MalformedFeedError):
            parse_feed_with_format(RSS_DOCUMENT, "atom")

    def test_markup_as_json_is_a_syntax_error(self):
        with pytest.raises(FeedSyntaxError) as exc_info:
            parse_feed_with_format(RSS_DOCUMENT, "json")
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    def test_unsupported_hint(self):
        with pytest.raises(ValueError, match="Unsupported feed format"):
            parse_feed_with_format(RSS_DOCUMENT, "opml")

    def test_errors_share_a_base_class(self):
        for error in (
            UnknownFeedFormatError(),
            MalformedFeedError("x", "rss"),
            FeedSyntaxError("x", "json"),
        ):
            assert isinstance(error, FeedError)
