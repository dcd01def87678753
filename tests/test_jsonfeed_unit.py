"""Unit tests for the JSON Feed parser."""

import json
from datetime import UTC, datetime

import pytest

from feedstream.errors import FeedSyntaxError, MalformedFeedError
from feedstream.jsonfeed import (
    JsonFeedDocument,
    JsonFeedParser,
    is_json_feed,
    parse_json_feed,
)

VERSION = "https://jsonfeed.org/version/1.1"


def _feed(items, **fields) -> str:
    return json.dumps({"version": VERSION, "items": items, **fields})


class TestJsonFeedParserUnit:
    """Unit tests for JSON Feed parsing."""

    def test_feed_metadata(self):
        feed = parse_json_feed(
            _feed(
                [],
                title="  JSON Blog ",
                description="Notes",
                home_page_url="https://example.com/",
                feed_url="https://example.com/feed.json",
                icon="https://example.com/icon.png",
                favicon="https://example.com/favicon.ico",
                hubs=[
                    {"type": "rssCloud", "url": "https://cloud.example.com/"},
                    {"type": "WebSub", "url": "https://websub.example.com/"},
                ],
            )
        )

        assert feed.title == "JSON Blog"
        assert feed.description == "Notes"
        assert feed.site_url == "https://example.com/"
        assert feed.self_url == "https://example.com/feed.json"
        assert feed.icon_url == "https://example.com/favicon.ico"
        assert feed.hub_url == "https://websub.example.com/"
        assert feed.entries == ()

    def test_first_hub_used_without_websub(self):
        feed = parse_json_feed(_feed([], hubs=[{"type": "other", "url": "https://hub.example.com/"}]))
        assert feed.hub_url == "https://hub.example.com/"

    def test_icon_used_without_favicon(self):
        feed = parse_json_feed(_feed([], icon="https://example.com/icon.png"))
        assert feed.icon_url == "https://example.com/icon.png"

    def test_blank_title_is_none(self):
        assert parse_json_feed(_feed([], title="   ")).title is None

    def test_full_item(self):
        feed = parse_json_feed(
            _feed(
                [
                    {
                        "id": "1",
                        "url": "https://example.com/1",
                        "external_url": "https://elsewhere.example.com/1",
                        "title": "First",
                        "content_html": "<p>Hello</p>",
                        "content_text": "Hello",
                        "summary": "Greeting",
                        "date_published": "2024-01-01T10:00:00Z",
                        "date_modified": "2024-01-02T10:00:00Z",
                        "authors": [{"url": "https://example.com/anon"}, {"name": "Jane"}],
                        "author": {"name": "Legacy"},
                    }
                ]
            )
        )
        entry = feed.entries[0]

        assert entry.guid == "1"
        assert entry.link == "https://example.com/1"
        assert entry.title == "First"
        assert entry.content == "<p>Hello</p>"
        assert entry.summary == "Greeting"
        assert entry.author == "Jane"
        assert entry.pub_date == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)

    def test_item_fallbacks(self):
        feed = parse_json_feed(
            _feed(
                [
                    {
                        "id": 42,
                        "external_url": "https://elsewhere.example.com/42",
                        "content_text": "Plain body",
                        "date_modified": "2024-02-01T00:00:00Z",
                        "author": {"name": "Legacy"},
                    }
                ]
            )
        )
        entry = feed.entries[0]

        assert entry.guid == "42"
        assert entry.link == "https://elsewhere.example.com/42"
        assert entry.content == "Plain body"
        assert entry.summary == "Plain body"
        assert entry.author == "Legacy"
        assert entry.pub_date == datetime(2024, 2, 1, tzinfo=UTC)

    def test_wrongly_typed_item_fields_are_ignored(self):
        feed = parse_json_feed(
            _feed([{"id": "x", "title": 7, "url": ["https://a"], "authors": "Jane"}])
        )
        entry = feed.entries[0]

        assert entry.guid == "x"
        assert entry.title is None
        assert entry.link is None
        assert entry.author is None

    def test_non_object_items_are_skipped(self):
        feed = parse_json_feed(_feed([{"id": "a"}, "junk", None, {"id": "b"}]))
        assert [entry.guid for entry in feed.entries] == ["a", "b"]

    def test_items_keep_order(self):
        feed = parse_json_feed(_feed([{"id": str(index)} for index in range(10)]))
        assert [entry.guid for entry in feed.entries] == [str(index) for index in range(10)]

    def test_bytes_with_bom(self):
        content = b"\xef\xbb\xbf" + _feed([{"id": "1"}]).encode("utf-8")
        assert parse_json_feed(content).entries[0].guid == "1"

    def test_version_1_0_is_accepted(self):
        content = json.dumps({"version": "https://jsonfeed.org/version/1", "items": []})
        assert parse_json_feed(content).entries == ()


class TestJsonFeedErrorsUnit:
    """Unit tests for structural and syntax errors."""

    def test_missing_version(self):
        with pytest.raises(MalformedFeedError, match="version") as exc_info:
            parse_json_feed(json.dumps({"items": []}))
        assert exc_info.value.feed_format == "json"

    def test_foreign_version(self):
        with pytest.raises(MalformedFeedError, match="version"):
            parse_json_feed(json.dumps({"version": "1.1", "items": []}))

    def test_missing_items(self):
        with pytest.raises(MalformedFeedError, match="items"):
            parse_json_feed(json.dumps({"version": VERSION}))

    def test_items_not_a_list(self):
        with pytest.raises(MalformedFeedError, match="items"):
            parse_json_feed(json.dumps({"version": VERSION, "items": {"id": "1"}}))

    def test_root_not_an_object(self):
        with pytest.raises(MalformedFeedError, match="object"):
            parse_json_feed("[]")

    @pytest.mark.parametrize("content", ["{", "", "{'version': 1}"])
    def test_invalid_json(self, content):
        with pytest.raises(FeedSyntaxError) as exc_info:
            parse_json_feed(content)
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)


class TestJsonFeedHelpersUnit:
    """Unit tests for validation helpers."""

    def test_is_json_feed(self):
        assert is_json_feed(_feed([])) is True
        assert is_json_feed('{"items": []}') is False
        assert is_json_feed("not json") is False

    def test_validate_builds_document(self):
        document = JsonFeedDocument.validate({"version": VERSION, "items": [{"id": "1"}]})

        assert document.version == VERSION
        assert document.items == [{"id": "1"}]
        assert document.hubs == ()

    def test_parser_metadata_unknown_until_close(self):
        parser = JsonFeedParser()

        assert parser.feed(_feed([{"id": "1"}])[:10]) == []
        assert parser.metadata is None
