"""JSON Feed (https://jsonfeed.org) parsing.

The document is decoded whole, validated into a small typed intermediate
form, and only then mapped onto the normalized models, so structural
problems surface before any entry is produced.
"""

import json
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from .dates import parse_date
from .errors import FeedSyntaxError, MalformedFeedError
from .logging_config import ParseLogger, create_parse_logger
from .models import FeedMetadata, ParsedEntry, ParsedFeed

JSON_FEED_VERSION_PREFIX = "https://jsonfeed.org/version/"


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _trimmed(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


@dataclass(frozen=True)
class JsonFeedAuthor:
    name: str | None = None
    url: str | None = None
    avatar: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> "JsonFeedAuthor | None":
        if not isinstance(value, dict):
            return None
        return cls(
            name=_trimmed(value.get("name")),
            url=_string(value.get("url")),
            avatar=_string(value.get("avatar")),
        )


@dataclass(frozen=True)
class JsonFeedHub:
    type: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class JsonFeedItem:
    id: str | None = None
    url: str | None = None
    external_url: str | None = None
    title: str | None = None
    content_html: str | None = None
    content_text: str | None = None
    summary: str | None = None
    date_published: str | None = None
    date_modified: str | None = None
    authors: tuple[JsonFeedAuthor, ...] = ()
    author: JsonFeedAuthor | None = None

    @classmethod
    def from_value(cls, value: dict[str, Any]) -> "JsonFeedItem":
        raw_id = value.get("id")
        # Numeric ids are common in the wild even though the format says string.
        if isinstance(raw_id, (int, float)) and not isinstance(raw_id, bool):
            raw_id = str(raw_id)

        authors = value.get("authors")
        return cls(
            id=_string(raw_id),
            url=_string(value.get("url")),
            external_url=_string(value.get("external_url")),
            title=_trimmed(value.get("title")),
            content_html=_string(value.get("content_html")),
            content_text=_string(value.get("content_text")),
            summary=_string(value.get("summary")),
            date_published=_string(value.get("date_published")),
            date_modified=_string(value.get("date_modified")),
            authors=tuple(
                author
                for author in map(JsonFeedAuthor.from_value, authors)
                if author is not None
            )
            if isinstance(authors, list)
            else (),
            author=JsonFeedAuthor.from_value(value.get("author")),
        )

    def author_name(self) -> str | None:
        for author in self.authors:
            if author.name:
                return author.name
        return self.author.name if self.author else None


@dataclass(frozen=True)
class JsonFeedDocument:
    """A structurally valid JSON Feed; items are validated lazily."""

    version: str
    items: list[Any]
    title: str | None = None
    description: str | None = None
    home_page_url: str | None = None
    feed_url: str | None = None
    icon: str | None = None
    favicon: str | None = None
    hubs: tuple[JsonFeedHub, ...] = ()

    @classmethod
    def validate(cls, data: Any) -> "JsonFeedDocument":
        """Check the top-level shape and build the document.

        Raises:
            MalformedFeedError: If the root, version or items are structurally wrong
        """
        if not isinstance(data, dict):
            raise MalformedFeedError("Invalid JSON Feed: root must be an object", "json")

        version = data.get("version")
        if not isinstance(version, str) or not version.startswith(JSON_FEED_VERSION_PREFIX):
            raise MalformedFeedError("Invalid JSON Feed: missing or invalid version", "json")

        items = data.get("items")
        if not isinstance(items, list):
            raise MalformedFeedError("Invalid JSON Feed: missing items array", "json")

        hubs = data.get("hubs")
        return cls(
            version=version,
            items=items,
            title=_trimmed(data.get("title")),
            description=_trimmed(data.get("description")),
            home_page_url=_string(data.get("home_page_url")),
            feed_url=_string(data.get("feed_url")),
            icon=_string(data.get("icon")),
            favicon=_string(data.get("favicon")),
            hubs=tuple(
                JsonFeedHub(type=_string(hub.get("type")), url=_string(hub.get("url")))
                for hub in hubs
                if isinstance(hub, dict)
            )
            if isinstance(hubs, list)
            else (),
        )

    def hub_url(self) -> str | None:
        for hub in self.hubs:
            if hub.type and hub.type.lower() == "websub" and hub.url:
                return hub.url
        return self.hubs[0].url if self.hubs else None


def decode_document(content: bytes | str) -> Any:
    """Decode JSON text, mapping decoder failures to FeedSyntaxError."""
    if isinstance(content, str):
        content = content.lstrip("\ufeff")
    try:
        return json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FeedSyntaxError(f"Invalid JSON Feed: {e}", "json") from e


def document_metadata(document: JsonFeedDocument) -> FeedMetadata:
    return FeedMetadata(
        title=document.title,
        description=document.description,
        site_url=document.home_page_url,
        icon_url=document.favicon or document.icon,
        hub_url=document.hub_url(),
        self_url=document.feed_url,
    )


def item_entry(item: JsonFeedItem) -> ParsedEntry:
    return ParsedEntry(
        guid=item.id,
        link=item.url or item.external_url,
        title=item.title,
        author=item.author_name(),
        content=item.content_html or item.content_text,
        summary=item.summary or item.content_text,
        pub_date=parse_date(item.date_published) or parse_date(item.date_modified),
    )


class JsonFeedParser:
    """Buffers the document, then yields entries one by one on close."""

    feed_format = "json"

    def __init__(self, logger: ParseLogger | None = None):
        self.logger = logger or create_parse_logger("json")
        self._chunks: list[bytes | str] = []
        self._metadata: FeedMetadata | None = None

    @property
    def metadata(self) -> FeedMetadata | None:
        """Feed metadata, available once the document has been closed."""
        return self._metadata

    def feed(self, data: bytes | str) -> list[ParsedEntry]:
        """Buffer a chunk; JSON entries are only produced by ``close``."""
        if data:
            self._chunks.append(data)
        return []

    def close(self) -> Iterator[ParsedEntry]:
        """Validate the buffered document and return a lazy entry iterator.

        Raises:
            FeedSyntaxError: If the text is not JSON
            MalformedFeedError: If the JSON is not a JSON Feed
        """
        document = JsonFeedDocument.validate(decode_document(self._joined()))
        self._chunks = []
        self._metadata = document_metadata(document)
        self.logger.debug(
            "JSON Feed validated",
            version=document.version,
            item_count=len(document.items),
        )
        return self._entries(document)

    def _joined(self) -> bytes | str:
        if all(isinstance(chunk, str) for chunk in self._chunks):
            return "".join(self._chunks)
        return b"".join(
            chunk.encode("utf-8") if isinstance(chunk, str) else chunk
            for chunk in self._chunks
        )

    def _entries(self, document: JsonFeedDocument) -> Iterator[ParsedEntry]:
        count = 0
        for index, value in enumerate(document.items):
            if not isinstance(value, dict):
                self.logger.log_field_anomaly(
                    "items", index, f"item is {type(value).__name__}, not an object"
                )
                continue

            item = JsonFeedItem.from_value(value)
            for name, raw in (
                ("date_published", item.date_published),
                ("date_modified", item.date_modified),
            ):
                if raw and parse_date(raw) is None:
                    self.logger.log_field_anomaly(name, raw, "unreadable date")

            count += 1
            entry = item_entry(item)
            self.logger.log_entry_emitted(count, entry.guid)
            yield entry


def parse_json_feed(content: bytes | str, logger: ParseLogger | None = None) -> ParsedFeed:
    """Parse a complete JSON Feed document held in memory."""
    parser = JsonFeedParser(logger)
    parser.feed(content)
    entries = list(parser.close())
    return ParsedFeed.from_metadata(parser.metadata, entries)


def is_json_feed(content: bytes | str) -> bool:
    """Return True if the content decodes as a structurally valid JSON Feed."""
    try:
        JsonFeedDocument.validate(decode_document(content))
    except (FeedSyntaxError, MalformedFeedError):
        return False
    return True
