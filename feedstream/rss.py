"""RSS 0.9x / 2.0 and RSS 1.0 (RDF) parsing.

The parser is a small state machine driven by tokenizer events. It tolerates
the usual damage found in the wild: an unclosed field element is committed as
soon as the next recognized element opens, and a new ``<item>`` opening while
another is pending flushes the pending one first. The end tag that the
recovering tokenizer spends on an unclosed field is passed on to the element
that encloses it.
"""

from lxml import etree

from .dates import parse_date
from .errors import MalformedFeedError
from .fields import RankedFields
from .logging_config import ParseLogger, create_parse_logger
from .markup import (
    MarkupTokenizer,
    element_text,
    inner_markup,
    lower_attrib,
    qualified_name,
    text_before,
)
from .models import FeedMetadata, ParsedEntry, ParsedFeed
from .syndication import SyndicationCollector, parse_positive_int

CHANNEL_FIELDS = {
    "title": "in_channel_title",
    "link": "in_channel_link",
    "description": "in_channel_description",
    "ttl": "in_channel_ttl",
    "sy:updateperiod": "in_channel_update_period",
    "sy:updatefrequency": "in_channel_update_frequency",
}

ITEM_FIELDS = {
    "title": "in_item_title",
    "link": "in_item_link",
    "description": "in_item_description",
    "content:encoded": "in_item_content_encoded",
    "guid": "in_item_guid",
    "author": "in_item_author",
    "dc:creator": "in_item_creator",
    "pubdate": "in_item_pubdate",
    "dc:date": "in_item_dc_date",
}

IMAGE_FIELDS = {"url": "in_image_url"}

# Any of these marks the document as RSS.
CONTAINERS = frozenset({"rss", "rdf:rdf", "channel", "item"})

# Opening one of these inside an unclosed field ends that field.
RECOGNIZED = frozenset(
    set(CHANNEL_FIELDS) | set(ITEM_FIELDS) | set(IMAGE_FIELDS) | CONTAINERS
    | {"image", "atom:link"}
)

# Fields whose markup is kept rather than flattened to text.
MARKUP_FIELDS = frozenset({"in_item_description", "in_item_content_encoded"})


class RssParser:
    """Incremental RSS parser: push bytes in, receive finished entries."""

    feed_format = "rss"
    default_prefixes = frozenset({"rss"})
    release_tags = frozenset({"item"})

    def __init__(self, logger: ParseLogger | None = None):
        self.logger = logger or create_parse_logger("rss")
        self._tokenizer = MarkupTokenizer(self, self.feed_format, self.logger)

        self._state = "initial"
        self._is_rdf = False
        self._channel_open = False
        self._image_return_state = "in_channel"
        self._saw_container = False

        self._field_state: str | None = None
        self._field_elem: etree._Element | None = None
        self._unclosed: list[etree._Element] = []

        self._channel = RankedFields()
        self._syndication = SyndicationCollector()
        self._metadata: FeedMetadata | None = None

        self._item: RankedFields | None = None
        self._item_elem: etree._Element | None = None
        self._ready: list[ParsedEntry] = []
        self._entry_count = 0

    @property
    def metadata(self) -> FeedMetadata | None:
        """Channel metadata, available once the first item opens or input ends."""
        return self._metadata

    def feed(self, data: bytes | str) -> list[ParsedEntry]:
        """Consume a chunk and return the entries it completed."""
        self._tokenizer.feed(data)
        return self._take_ready()

    def close(self) -> list[ParsedEntry]:
        """Finish the document and return any entries still waiting."""
        self._tokenizer.close()
        self._snapshot_metadata()
        return self._take_ready()

    def _take_ready(self) -> list[ParsedEntry]:
        ready, self._ready = self._ready, []
        return ready

    # Tokenizer callbacks

    def start(self, name: str, elem: etree._Element) -> None:
        if self._field_state is not None:
            if name not in RECOGNIZED:
                return
            # Unclosed field: keep what was read before this element.
            self._unclosed.append(self._field_elem)
            self._commit_field(text_before(self._field_elem, elem))

        if name in CONTAINERS:
            self._saw_container = True

        if name == "rdf:rdf":
            self._is_rdf = True
        elif name == "channel":
            self._channel_open = True
            if self._state != "in_item":
                self._state = "in_channel"
        elif name == "item":
            self._open_item(elem)
        elif self._state == "in_item":
            self._start_item_field(name, elem)
        elif self._state == "in_image":
            if name in IMAGE_FIELDS:
                self._open_field(IMAGE_FIELDS[name], elem)
        elif self._in_channel_scope():
            self._start_channel_field(name, elem)

    def end(self, name: str, elem: etree._Element) -> None:
        if self._field_elem is not None and elem is self._field_elem:
            if self._field_state in MARKUP_FIELDS:
                self._commit_field(inner_markup(elem))
            else:
                self._commit_field(element_text(elem))
            return

        if any(elem is unclosed for unclosed in self._unclosed):
            self._end_unclosed(elem)
            return

        if name == "item":
            if self._item is not None and elem is self._item_elem:
                self._flush_item()
        elif name == "image" and self._state == "in_image":
            self._state = self._image_return_state
        elif name == "channel":
            self._channel_open = False
            if self._state != "in_item":
                self._state = "initial"

    # State transitions

    def _end_unclosed(self, elem: etree._Element) -> None:
        # Its end tag really closed the parent; libxml2 pops one element per tag.
        self._unclosed = [unclosed for unclosed in self._unclosed if unclosed is not elem]
        parent = elem.getparent()
        if parent is not None:
            self.end(qualified_name(parent, self.default_prefixes), parent)

    def _in_channel_scope(self) -> bool:
        # RSS 1.0 puts image and textinput beside the channel, not inside it.
        return self._state == "in_channel" or (self._state == "initial" and self._is_rdf)

    def _open_field(self, state: str, elem: etree._Element) -> None:
        self._field_state = state
        self._field_elem = elem

    def _start_channel_field(self, name: str, elem: etree._Element) -> None:
        if name == "image":
            self._image_return_state = self._state
            self._state = "in_image"
        elif name == "atom:link":
            self._channel_atom_link(elem)
        elif name == "link" and lower_attrib(elem).get("rel"):
            return
        elif name in CHANNEL_FIELDS:
            self._open_field(CHANNEL_FIELDS[name], elem)

    def _start_item_field(self, name: str, elem: etree._Element) -> None:
        if name == "atom:link":
            attrs = lower_attrib(elem)
            rel = attrs.get("rel", "").strip().lower()
            href = attrs.get("href", "").strip()
            if href and rel in ("", "alternate"):
                self._item.offer("link", href, rank=1)
        elif name in ITEM_FIELDS:
            self._open_field(ITEM_FIELDS[name], elem)

    def _channel_atom_link(self, elem: etree._Element) -> None:
        attrs = lower_attrib(elem)
        rel = attrs.get("rel", "").strip().lower()
        href = attrs.get("href", "").strip() or None
        if rel == "hub":
            self._channel.offer("hub_url", href)
        elif rel == "self":
            self._channel.offer("self_url", href)
        elif rel in ("", "alternate"):
            self._channel.offer("site_url", href, rank=1)

    def _open_item(self, elem: etree._Element) -> None:
        if self._item is not None:
            self._flush_item()
        self._snapshot_metadata()
        self._item = RankedFields()
        self._item_elem = elem
        self._state = "in_item"

    def _flush_item(self) -> None:
        entry = self._item.to_entry()
        self._item = None
        self._item_elem = None
        self._state = "in_channel" if self._channel_open else "initial"

        self._entry_count += 1
        self._ready.append(entry)
        self.logger.log_entry_emitted(self._entry_count, entry.guid)

    def _snapshot_metadata(self) -> None:
        if self._metadata is not None:
            return
        if not self._saw_container:
            raise MalformedFeedError(
                "Invalid RSS: missing rss, rdf:RDF, channel or item element", "rss"
            )
        self._metadata = self._channel.to_metadata(self._syndication.build())

    # Field commits

    def _commit_field(self, text: str | None) -> None:
        state = self._field_state
        self._field_state = None
        self._field_elem = None

        if state.startswith("in_item_"):
            if self._item is not None:
                self._commit_item_field(state, text)
        elif self._metadata is None:
            self._commit_channel_field(state, text)

    def _commit_channel_field(self, state: str, text: str | None) -> None:
        channel = self._channel
        if state == "in_channel_title":
            channel.offer("title", text)
        elif state == "in_channel_link":
            channel.offer("site_url", text, rank=2)
        elif state == "in_channel_description":
            channel.offer("description", text)
        elif state == "in_image_url":
            channel.offer("icon_url", text)
        elif state == "in_channel_ttl":
            ttl = parse_positive_int(text)
            if ttl is None and text:
                self.logger.log_field_anomaly("ttl_minutes", text, "not a positive integer")
            channel.offer("ttl_minutes", ttl)
        elif state == "in_channel_update_period":
            if not self._syndication.set_period(text) and text:
                self.logger.log_field_anomaly("update_period", text, "unknown period")
        elif state == "in_channel_update_frequency":
            if not self._syndication.set_frequency(text) and text:
                self.logger.log_field_anomaly(
                    "update_frequency", text, "not a positive integer"
                )

    def _commit_item_field(self, state: str, text: str | None) -> None:
        item = self._item
        if state == "in_item_title":
            item.offer("title", text)
        elif state == "in_item_link":
            item.offer("link", text, rank=2)
        elif state == "in_item_guid":
            item.offer("guid", text)
        elif state == "in_item_description":
            item.offer("summary", text)
            item.offer("content", text, rank=1)
        elif state == "in_item_content_encoded":
            item.offer("content", text, rank=2)
        elif state == "in_item_author":
            item.offer("author", text, rank=1)
        elif state == "in_item_creator":
            item.offer("author", text, rank=2)
        elif state in ("in_item_pubdate", "in_item_dc_date"):
            pub_date = parse_date(text)
            if pub_date is None and text:
                self.logger.log_field_anomaly("pub_date", text, "unreadable date")
            item.offer("pub_date", pub_date, rank=2 if state == "in_item_pubdate" else 1)


def parse_rss(content: bytes | str, logger: ParseLogger | None = None) -> ParsedFeed:
    """Parse a complete RSS document held in memory.

    Raises:
        FeedSyntaxError: If the markup has no readable elements
        MalformedFeedError: If no RSS container element was found
    """
    parser = RssParser(logger)
    entries = parser.feed(content)
    entries.extend(parser.close())
    return ParsedFeed.from_metadata(parser.metadata, entries)
