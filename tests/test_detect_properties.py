"""Property-based tests for feed format detection."""

import asyncio

from hypothesis import given
from hypothesis import strategies as st

from feedstream.detect import detect_feed_type, peek_feed_type
from feedstream.streaming import iter_source

documents = st.sampled_from(
    [
        '<rss version="2.0"><channel><title>T</title></channel></rss>',
        '<feed xmlns="http://www.w3.org/2005/Atom"><title>T</title></feed>',
        '{"version": "https://jsonfeed.org/version/1.1", "items": []}',
        "<channel><title>T</title></channel>",
        "<html><body>nothing here</body></html>",
    ]
)

whitespace = st.text(alphabet=" \t\r\n", max_size=10)


class TestDetectFeedTypeProperties:
    """Property-based tests for detect_feed_type."""

    @given(st.text(max_size=200))
    def test_detection_is_pure(self, content):
        """Classifying the same text twice gives the same answer."""
        assert detect_feed_type(content) == detect_feed_type(content)
        assert detect_feed_type(content) in ("rss", "atom", "json", "unknown")

    @given(documents, whitespace, st.booleans())
    def test_leading_whitespace_and_bom_are_ignored(self, document, padding, bom):
        """Padding a document never changes its classification."""
        padded = ("\ufeff" if bom else "") + padding + document
        assert detect_feed_type(padded) == detect_feed_type(document)

    @given(documents)
    def test_bytes_and_text_agree(self, document):
        """Encoded and decoded forms of a document classify the same."""
        assert detect_feed_type(document.encode("utf-8")) == detect_feed_type(document)

    @given(documents, st.integers(min_value=1, max_value=32))
    def test_stream_detection_matches_and_replays_everything(self, document, chunk_size):
        """Peeking a chunked stream agrees with whole-text detection and loses nothing."""
        data = document.encode("utf-8")

        async def run():
            detected, replay = await peek_feed_type(iter_source(data, chunk_size), 2048)
            return detected, b"".join([chunk async for chunk in replay])

        detected, replayed = asyncio.run(run())

        assert detected == detect_feed_type(document)
        assert replayed == data
