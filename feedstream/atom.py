"""Atom 1.0 (and legacy Atom 0.3) parsing."""

from lxml import etree

from .dates import parse_date
from .errors import MalformedFeedError
from .fields import RankedFields
from .logging_config import ParseLogger, create_parse_logger
from .markup import (
    MarkupTokenizer,
    direct_text,
    element_text,
    inner_markup,
    lower_attrib,
    qualified_name,
    text_before,
)
from .models import FeedMetadata, ParsedEntry, ParsedFeed
from .syndication import SyndicationCollector

FEED_FIELDS = {
    "title": "in_feed_title",
    "subtitle": "in_feed_subtitle",
    "tagline": "in_feed_subtitle",
    "icon": "in_feed_icon",
    "logo": "in_feed_logo",
    "sy:updateperiod": "in_feed_update_period",
    "sy:updatefrequency": "in_feed_update_frequency",
}

ENTRY_FIELDS = {
    "id": "in_entry_id",
    "title": "in_entry_title",
    "summary": "in_entry_summary",
    "content": "in_entry_content",
    "published": "in_entry_published",
    "issued": "in_entry_published",
    "updated": "in_entry_updated",
    "modified": "in_entry_updated",
    "dc:creator": "in_entry_creator",
}

CONTAINERS = frozenset({"feed", "entry"})

RECOGNIZED = frozenset(
    set(FEED_FIELDS) | set(ENTRY_FIELDS) | CONTAINERS
    | {"link", "author", "name", "source"}
)

MARKUP_FIELDS = frozenset({"in_entry_summary", "in_entry_content"})

# Link relations that never point at the entry's own page.
_IGNORED_ENTRY_RELS = frozenset({"self", "edit", "enclosure", "hub", "replies"})


class AtomParser:
    """Incremental Atom parser: push bytes in, receive finished entries."""

    feed_format = "atom"
    default_prefixes = frozenset({"atom"})
    release_tags = frozenset({"entry"})

    def __init__(self, logger: ParseLogger | None = None):
        self.logger = logger or create_parse_logger("atom")
        self._tokenizer = MarkupTokenizer(self, self.feed_format, self.logger)

        self._state = "initial"
        self._saw_container = False

        self._field_state: str | None = None
        self._field_elem: etree._Element | None = None
        self._unclosed: list[etree._Element] = []

        self._feed = RankedFields()
        self._syndication = SyndicationCollector()
        self._metadata: FeedMetadata | None = None

        self._entry: RankedFields | None = None
        self._entry_elem: etree._Element | None = None
        self._nested_elem: etree._Element | None = None
        self._author_named = False
        self._ready: list[ParsedEntry] = []
        self._entry_count = 0

    @property
    def metadata(self) -> FeedMetadata | None:
        """Feed metadata, available once the first entry opens or input ends."""
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
            self._unclosed.append(self._field_elem)
            self._commit_field(text_before(self._field_elem, elem))

        if name in CONTAINERS:
            self._saw_container = True

        if name == "entry":
            self._open_entry(elem)
        elif name == "feed":
            if self._state == "initial":
                self._state = "in_feed"
        elif self._state == "in_entry":
            self._start_entry_child(name, elem)
        elif self._state == "in_entry_author":
            if name == "name":
                self._open_field("in_entry_author_name", elem)
        elif self._state == "in_feed":
            self._start_feed_child(name, elem)

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

        if elem is self._nested_elem:
            if self._state == "in_entry_author" and not self._author_named:
                # <author>Name</author> without a <name> child.
                self._entry.offer("author", direct_text(elem), rank=1)
            self._nested_elem = None
            self._state = "in_entry"
        elif name == "entry":
            if self._entry is not None and elem is self._entry_elem:
                self._flush_entry()

    # State transitions

    def _end_unclosed(self, elem: etree._Element) -> None:
        # The end tag spent on an unclosed field belonged to its parent.
        self._unclosed = [unclosed for unclosed in self._unclosed if unclosed is not elem]
        parent = elem.getparent()
        if parent is not None:
            self.end(qualified_name(parent, self.default_prefixes), parent)

    def _open_field(self, state: str, elem: etree._Element) -> None:
        self._field_state = state
        self._field_elem = elem

    def _start_feed_child(self, name: str, elem: etree._Element) -> None:
        if name == "link":
            attrs = lower_attrib(elem)
            rel = attrs.get("rel", "").strip().lower()
            href = attrs.get("href", "").strip() or None
            if rel in ("", "alternate"):
                self._feed.offer("site_url", href)
            elif rel == "hub":
                self._feed.offer("hub_url", href)
            elif rel == "self":
                self._feed.offer("self_url", href)
        elif name in FEED_FIELDS:
            self._open_field(FEED_FIELDS[name], elem)

    def _start_entry_child(self, name: str, elem: etree._Element) -> None:
        if name == "link":
            attrs = lower_attrib(elem)
            rel = attrs.get("rel", "").strip().lower()
            href = attrs.get("href", "").strip() or None
            if rel in ("", "alternate"):
                self._entry.offer("link", href, rank=2)
            elif rel not in _IGNORED_ENTRY_RELS:
                self._entry.offer("link", href, rank=1)
        elif name == "author":
            self._state = "in_entry_author"
            self._nested_elem = elem
            self._author_named = False
        elif name == "source":
            # Metadata of the feed an entry was copied from; not ours.
            self._state = "in_entry_source"
            self._nested_elem = elem
        elif name in ENTRY_FIELDS:
            self._open_field(ENTRY_FIELDS[name], elem)

    def _open_entry(self, elem: etree._Element) -> None:
        if self._entry is not None:
            self._flush_entry()
        self._snapshot_metadata()
        self._entry = RankedFields()
        self._entry_elem = elem
        self._nested_elem = None
        self._state = "in_entry"

    def _flush_entry(self) -> None:
        entry = self._entry.to_entry()
        self._entry = None
        self._entry_elem = None
        self._nested_elem = None
        self._state = "in_feed"

        self._entry_count += 1
        self._ready.append(entry)
        self.logger.log_entry_emitted(self._entry_count, entry.guid)

    def _snapshot_metadata(self) -> None:
        if self._metadata is not None:
            return
        if not self._saw_container:
            raise MalformedFeedError("Invalid Atom: missing feed or entry element", "atom")
        self._metadata = self._feed.to_metadata(self._syndication.build())

    # Field commits

    def _commit_field(self, text: str | None) -> None:
        state = self._field_state
        self._field_state = None
        self._field_elem = None

        if state.startswith("in_entry_"):
            if self._entry is not None:
                self._commit_entry_field(state, text)
        elif self._metadata is None:
            self._commit_feed_field(state, text)

    def _commit_feed_field(self, state: str, text: str | None) -> None:
        feed = self._feed
        if state == "in_feed_title":
            feed.offer("title", text)
        elif state == "in_feed_subtitle":
            feed.offer("description", text)
        elif state == "in_feed_icon":
            feed.offer("icon_url", text, rank=2)
        elif state == "in_feed_logo":
            feed.offer("icon_url", text, rank=1)
        elif state == "in_feed_update_period":
            if not self._syndication.set_period(text) and text:
                self.logger.log_field_anomaly("update_period", text, "unknown period")
        elif state == "in_feed_update_frequency":
            if not self._syndication.set_frequency(text) and text:
                self.logger.log_field_anomaly(
                    "update_frequency", text, "not a positive integer"
                )

    def _commit_entry_field(self, state: str, text: str | None) -> None:
        entry = self._entry
        if state == "in_entry_id":
            entry.offer("guid", text)
        elif state == "in_entry_title":
            entry.offer("title", text)
        elif state == "in_entry_summary":
            entry.offer("summary", text)
            entry.offer("content", text, rank=1)
        elif state == "in_entry_content":
            entry.offer("content", text, rank=2)
        elif state == "in_entry_author_name":
            if text:
                self._author_named = True
            entry.offer("author", text, rank=2)
        elif state == "in_entry_creator":
            entry.offer("author", text, rank=1)
        elif state in ("in_entry_published", "in_entry_updated"):
            pub_date = parse_date(text)
            if pub_date is None and text:
                self.logger.log_field_anomaly("pub_date", text, "unreadable date")
            entry.offer(
                "pub_date", pub_date, rank=2 if state == "in_entry_published" else 1
            )


def parse_atom(content: bytes | str, logger: ParseLogger | None = None) -> ParsedFeed:
    """Parse a complete Atom document held in memory.

    Raises:
        FeedSyntaxError: If the markup has no readable elements
        MalformedFeedError: If no feed or entry element was found
    """
    parser = AtomParser(logger)
    entries = parser.feed(content)
    entries.extend(parser.close())
    return ParsedFeed.from_metadata(parser.metadata, entries)
