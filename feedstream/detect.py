"""Feed format detection from a document prefix."""

import codecs
import re
from collections.abc import AsyncIterator

from .models import FeedFormat

_FEED_TAG = re.compile(r"<feed[\s>]", re.IGNORECASE)
_RSS_TAG = re.compile(r"<rss[\s>]", re.IGNORECASE)
_RDF_TAG = re.compile(r"<rdf:RDF[\s>]", re.IGNORECASE)
_CHANNEL_TAG = re.compile(r"<channel[\s>]", re.IGNORECASE)


def _decode_prefix(content: bytes | str) -> str:
    if isinstance(content, str):
        return content
    return content.decode("utf-8", errors="replace")


def detect_feed_type(content: bytes | str) -> FeedFormat:
    """Classify a document (or a prefix of one) as rss, atom, json or unknown.

    Leading whitespace and a byte-order mark are ignored. An opening ``{``
    means JSON Feed. Atom wins only when no ``<rss`` tag is present, so RSS
    documents carrying ``atom:link`` elements are still classified as RSS.

    Args:
        content: Whole document or its first few kilobytes

    Returns:
        Detected format, "unknown" when nothing matched
    """
    text = _decode_prefix(content).lstrip().lstrip("\ufeff").lstrip()
    if not text:
        return "unknown"

    if text.startswith("{"):
        return "json"

    has_rss = _RSS_TAG.search(text) is not None
    has_feed = _FEED_TAG.search(text) is not None

    if has_feed and not has_rss:
        return "atom"
    if has_rss or _RDF_TAG.search(text):
        return "rss"
    if _CHANNEL_TAG.search(text) and not has_feed:
        return "rss"
    return "unknown"


async def peek_feed_type(
    chunks: AsyncIterator[bytes | str], peek_bytes: int
) -> tuple[FeedFormat, AsyncIterator[bytes | str]]:
    """Detect the format of a chunked source without losing any of it.

    Reads chunks until the prefix classifies or ``peek_bytes`` have been
    seen, then returns the format with an iterator replaying every chunk.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffered: list[bytes | str] = []
    prefix = ""
    seen = 0
    detected: FeedFormat = "unknown"

    while seen < peek_bytes:
        try:
            chunk = await anext(chunks)
        except StopAsyncIteration:
            break
        buffered.append(chunk)
        seen += len(chunk)
        prefix += chunk if isinstance(chunk, str) else decoder.decode(chunk)
        detected = detect_feed_type(prefix)
        if detected != "unknown":
            break

    return detected, _replay(buffered, chunks)


async def _replay(
    buffered: list[bytes | str], rest: AsyncIterator[bytes | str]
) -> AsyncIterator[bytes | str]:
    try:
        for chunk in buffered:
            yield chunk
        async for chunk in rest:
            yield chunk
    finally:
        await rest.aclose()
