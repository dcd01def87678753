"""Unit tests for feed format detection."""

import asyncio

import pytest

from feedstream.detect import detect_feed_type, peek_feed_type
from feedstream.streaming import iter_source


async def _chunks(*parts):
    for part in parts:
        yield part


class TestDetectFeedTypeUnit:
    """Unit tests for detect_feed_type."""

    def test_rss_document(self):
        assert detect_feed_type('<rss version="2.0"><channel><title>X</title></channel></rss>') == "rss"

    def test_rss_with_atom_namespace_is_rss(self):
        content = (
            '<?xml version="1.0"?>\n'
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">'
            '<channel><atom:link rel="self" href="https://example.com/feed"/></channel></rss>'
        )
        assert detect_feed_type(content) == "rss"

    def test_rss_mentioning_feed_tag_is_rss(self):
        content = '<rss version="2.0"><channel><description>&lt;feed&gt;</description><feed >x</feed></channel></rss>'
        assert detect_feed_type(content) == "rss"

    def test_atom_document(self):
        content = '<?xml version="1.0" encoding="utf-8"?>\n<feed xmlns="http://www.w3.org/2005/Atom"></feed>'
        assert detect_feed_type(content) == "atom"

    def test_rdf_document(self):
        content = '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"><channel></channel></rdf:RDF>'
        assert detect_feed_type(content) == "rss"

    def test_bare_channel_is_rss(self):
        assert detect_feed_type("<channel>\n<title>T</title></channel>") == "rss"

    def test_json_document(self):
        assert detect_feed_type('{"version": "https://jsonfeed.org/version/1.1"}') == "json"

    def test_leading_whitespace_and_bom(self):
        assert detect_feed_type('\ufeff\n  {"items": []}') == "json"
        assert detect_feed_type(b"\xef\xbb\xbf<rss version='2.0'>") == "rss"

    def test_case_insensitive_tags(self):
        assert detect_feed_type("<RSS VERSION='2.0'>") == "rss"
        assert detect_feed_type("<FEED>") == "atom"

    def test_tag_prefix_lookalikes_are_unknown(self):
        assert detect_feed_type("<rssfeed><feeds></feeds></rssfeed>") == "unknown"

    @pytest.mark.parametrize("content", ["", "   ", "<html><body>Hi</body></html>", "plain text", b""])
    def test_unknown(self, content):
        assert detect_feed_type(content) == "unknown"


class TestPeekFeedTypeUnit:
    """Unit tests for stream detection with replay."""

    def test_replays_every_chunk(self):
        async def run():
            parts = [b"  ", b"<rss version='2.0'>", b"<channel/>", b"</rss>"]
            detected, replay = await peek_feed_type(_chunks(*parts), 2048)
            return detected, [chunk async for chunk in replay]

        detected, replayed = asyncio.run(run())

        assert detected == "rss"
        assert b"".join(replayed) == b"  <rss version='2.0'><channel/></rss>"

    def test_stops_reading_once_detected(self):
        consumed = []

        async def source():
            for part in [b"<feed>", b"<entry/>", b"</feed>"]:
                consumed.append(part)
                yield part

        async def run():
            detected, replay = await peek_feed_type(source(), 2048)
            read_during_peek = list(consumed)
            rest = [chunk async for chunk in replay]
            return detected, read_during_peek, rest

        detected, read_during_peek, rest = asyncio.run(run())

        assert detected == "atom"
        assert read_during_peek == [b"<feed>"]
        assert rest == [b"<feed>", b"<entry/>", b"</feed>"]

    def test_gives_up_after_peek_window(self):
        async def run():
            content = b"<html>" + b"x" * 100 + b"<rss version='2.0'>"
            detected, replay = await peek_feed_type(iter_source(content, 16), 64)
            await replay.aclose()
            return detected

        assert asyncio.run(run()) == "unknown"

    def test_multibyte_character_split_across_chunks(self):
        async def run():
            content = "<rss><channel><title>café</title></channel></rss>".encode()
            detected, replay = await peek_feed_type(iter_source(content, 1), 2048)
            replayed = b"".join([chunk async for chunk in replay])
            return detected, replayed, content

        detected, replayed, content = asyncio.run(run())

        assert detected == "rss"
        assert replayed == content
