"""Unified feed parsing entry points.

Two calling conventions over the same format parsers:

* collect-all: ``parse_feed`` / ``parse_feed_with_format`` return a complete
  ``ParsedFeed``;
* streaming: ``parse_feed_stream`` / ``parse_feed_stream_with_format`` return
  a ``StreamingFeed`` whose metadata is known immediately and whose entries
  are produced lazily while the caller iterates.
"""

from typing import Any

from .atom import AtomParser
from .config import ParserConfig
from .detect import detect_feed_type, peek_feed_type
from .errors import FeedError, UnknownFeedFormatError
from .jsonfeed import JsonFeedParser
from .logging_config import ParseLogger, create_parse_logger
from .models import ParsedFeed
from .opml import generate_opml, is_valid_opml, parse_opml, parse_opml_stream
from .rss import RssParser
from .streaming import EntryParser, StreamingFeed, iter_source, start_stream

__all__ = [
    "collect_feed_stream",
    "detect_feed_type",
    "generate_opml",
    "is_valid_opml",
    "parse_feed",
    "parse_feed_stream",
    "parse_feed_stream_with_format",
    "parse_feed_with_format",
    "parse_opml",
    "parse_opml_stream",
]

_PARSERS = {
    "rss": RssParser,
    "atom": AtomParser,
    "json": JsonFeedParser,
}


def _create_parser(feed_format: str, logger: ParseLogger) -> EntryParser:
    if feed_format not in _PARSERS:
        raise ValueError(
            f"Unsupported feed format {feed_format!r}; expected one of {sorted(_PARSERS)}"
        )
    return _PARSERS[feed_format](logger)


def _unknown_format(logger: ParseLogger, **context) -> UnknownFeedFormatError:
    error = UnknownFeedFormatError()
    logger.error(str(error), **context)
    return error


def _parse_document(
    content: bytes | str, feed_format: str, config: ParserConfig, logger: ParseLogger
) -> ParsedFeed:
    parser = _create_parser(feed_format, logger)
    logger.feed_format = feed_format
    logger.log_parse_start(content_length=len(content))

    try:
        entries = list(parser.feed(content))
        entries.extend(parser.close())
    except FeedError as e:
        logger.log_parse_end(success=False, error=str(e))
        raise

    if config.max_entries is not None:
        entries = entries[: config.max_entries]

    logger.log_parse_end(success=True, entry_count=len(entries))
    return ParsedFeed.from_metadata(parser.metadata, entries)


def parse_feed(content: bytes | str, config: ParserConfig | None = None) -> ParsedFeed:
    """Detect the format of a document and parse it completely.

    Args:
        content: Feed document as text or bytes
        config: Parser limits; defaults apply when omitted

    Returns:
        ParsedFeed with every entry in document order

    Raises:
        UnknownFeedFormatError: If the format cannot be detected
        MalformedFeedError: If the document violates its format's structure
        FeedSyntaxError: If the document cannot be tokenized
    """
    config = (config or ParserConfig()).validate()
    logger = create_parse_logger("parser")

    feed_format = detect_feed_type(content[: config.peek_bytes])
    if feed_format == "unknown":
        raise _unknown_format(logger, content_length=len(content))

    return _parse_document(content, feed_format, config, logger)


def parse_feed_with_format(
    content: bytes | str, feed_format: str, config: ParserConfig | None = None
) -> ParsedFeed:
    """Parse a document as the given format, skipping detection.

    Raises:
        ValueError: If ``feed_format`` is not rss, atom or json
        MalformedFeedError: If the document does not have that format's structure
        FeedSyntaxError: If the document cannot be tokenized
    """
    config = (config or ParserConfig()).validate()
    logger = create_parse_logger("parser")
    return _parse_document(content, feed_format, config, logger)


async def _start(
    chunks, feed_format: str, config: ParserConfig, logger: ParseLogger
) -> StreamingFeed:
    try:
        parser = _create_parser(feed_format, logger)
    except ValueError:
        await chunks.aclose()
        raise

    logger.feed_format = feed_format
    logger.log_parse_start(streaming=True)
    return await start_stream(chunks, parser, config, logger)


async def parse_feed_stream(source: Any, config: ParserConfig | None = None) -> StreamingFeed:
    """Detect the format of a source and start parsing it incrementally.

    Only the first ``config.peek_bytes`` are inspected for detection; those
    bytes are replayed to the parser, nothing is read twice.

    Args:
        source: bytes, str, an (async) iterable of chunks, or an object with
            a sync or async ``read(size)`` method
        config: Parser limits; defaults apply when omitted

    Returns:
        StreamingFeed: feed metadata plus an ``EntryStream`` to iterate

    Raises:
        UnknownFeedFormatError: If the format cannot be detected
        MalformedFeedError: If the document fails before metadata is known
        FeedSyntaxError: If the document cannot be tokenized
    """
    config = (config or ParserConfig()).validate()
    logger = create_parse_logger("streaming")

    feed_format, chunks = await peek_feed_type(
        iter_source(source, config.read_chunk_size), config.peek_bytes
    )
    if feed_format == "unknown":
        await chunks.aclose()
        raise _unknown_format(logger, peek_bytes=config.peek_bytes)

    return await _start(chunks, feed_format, config, logger)


async def parse_feed_stream_with_format(
    source: Any, feed_format: str, config: ParserConfig | None = None
) -> StreamingFeed:
    """Start an incremental parse of a source known to be ``feed_format``."""
    config = (config or ParserConfig()).validate()
    logger = create_parse_logger("streaming")
    chunks = iter_source(source, config.read_chunk_size)
    return await _start(chunks, feed_format, config, logger)


async def collect_feed_stream(
    source: Any,
    config: ParserConfig | None = None,
    feed_format: str | None = None,
) -> ParsedFeed:
    """Stream a source to completion and return the collected feed."""
    if feed_format is None:
        feed = await parse_feed_stream(source, config)
    else:
        feed = await parse_feed_stream_with_format(source, feed_format, config)

    async with feed.entries as entries:
        collected = [entry async for entry in entries]
    return ParsedFeed.from_metadata(feed, collected)
