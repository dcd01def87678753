"""OPML subscription list parsing and generation."""

from datetime import UTC, datetime
from email.utils import format_datetime
from typing import Any

from lxml import etree

from .config import OpmlConfig, ParserConfig
from .errors import FeedError, MalformedFeedError
from .logging_config import ParseLogger, create_parse_logger
from .markup import MarkupTokenizer, lower_attrib
from .models import OpmlFeed, OpmlMetadata, OpmlSubscription
from .streaming import iter_source

# Outline types that are never folders, even without an xmlUrl.
LEAF_TYPES = frozenset({"rss", "atom", "link", "include", "url"})


def split_category(value: str | None) -> tuple[str, ...] | None:
    """Turn a ``category`` attribute into a folder path.

    ``a/b`` is a path; otherwise the first comma-separated segment is used.
    """
    if not value:
        return None

    if "/" in value:
        parts = tuple(part.strip() for part in value.split("/") if part.strip())
    else:
        first = value.split(",", 1)[0].strip()
        parts = (first,) if first else ()
    return parts or None


class OpmlParser:
    """Incremental OPML parser collecting feeds with their folder paths."""

    feed_format = "opml"
    default_prefixes = frozenset()
    release_tags = frozenset({"outline"})

    def __init__(self, logger: ParseLogger | None = None):
        self.logger = logger or create_parse_logger("opml")
        self._tokenizer = MarkupTokenizer(self, self.feed_format, self.logger)
        self._root_name: str | None = None
        self._saw_body = False
        self._body_depth = 0
        # One slot per open outline: the folder name, or None for non-folders.
        self._folders: list[str | None] = []
        self.feeds: list[OpmlFeed] = []

    def feed(self, data: bytes | str) -> None:
        self._tokenizer.feed(data)

    def close(self) -> list[OpmlFeed]:
        """Finish the document and validate its structure.

        Raises:
            FeedSyntaxError: If the markup has no readable elements
            MalformedFeedError: If the opml root or body element is missing
        """
        self._tokenizer.close()
        if self._root_name != "opml":
            raise MalformedFeedError("Invalid OPML: missing opml element", "opml")
        if not self._saw_body:
            raise MalformedFeedError("Invalid OPML: missing body element", "opml")
        return self.feeds

    def start(self, name: str, elem: etree._Element) -> None:
        if self._root_name is None:
            self._root_name = name

        if name == "body":
            self._saw_body = True
            self._body_depth += 1
        elif name == "outline" and self._body_depth:
            self._open_outline(lower_attrib(elem))

    def end(self, name: str, elem: etree._Element) -> None:
        if name == "body" and self._body_depth:
            self._body_depth -= 1
        elif name == "outline" and self._folders:
            self._folders.pop()

    def _open_outline(self, attrs: dict[str, Any]) -> None:
        text = (attrs.get("text") or "").strip() or None
        title = (attrs.get("title") or "").strip() or None
        xml_url = (attrs.get("xmlurl") or "").strip()

        if xml_url:
            path = tuple(folder for folder in self._folders if folder)
            category = path or split_category(attrs.get("category"))
            html_url = (attrs.get("htmlurl") or "").strip() or None
            self.feeds.append(
                OpmlFeed(
                    xml_url=xml_url,
                    title=text or title,
                    html_url=html_url,
                    category=category,
                )
            )
            self._folders.append(None)
            return

        outline_type = (attrs.get("type") or "").strip().lower()
        if outline_type in LEAF_TYPES:
            self._folders.append(None)
        else:
            self._folders.append(text or title)


def parse_opml(content: bytes | str) -> list[OpmlFeed]:
    """Parse an OPML document held in memory.

    Args:
        content: OPML document text or bytes

    Returns:
        Feeds in document order, each with its folder path as ``category``

    Raises:
        FeedSyntaxError: If the input is not readable XML
        MalformedFeedError: If the opml root or body element is missing
    """
    logger = create_parse_logger("opml")
    logger.log_parse_start(content_length=len(content))
    parser = OpmlParser(logger)
    try:
        parser.feed(content)
        feeds = parser.close()
    except FeedError as e:
        logger.log_parse_end(success=False, error=str(e))
        raise

    logger.log_parse_end(success=True, feed_count=len(feeds))
    return feeds


async def parse_opml_stream(source: Any, config: ParserConfig | None = None) -> list[OpmlFeed]:
    """Parse OPML incrementally from any supported byte or text source."""
    config = (config or ParserConfig()).validate()
    logger = create_parse_logger("opml")
    logger.log_parse_start(streaming=True)
    parser = OpmlParser(logger)
    try:
        async for chunk in iter_source(source, config.read_chunk_size):
            parser.feed(chunk)
        feeds = parser.close()
    except FeedError as e:
        logger.log_parse_end(success=False, error=str(e))
        raise

    logger.log_parse_end(success=True, feed_count=len(feeds))
    return feeds


def is_valid_opml(content: bytes | str) -> bool:
    """Return True if the content parses as OPML."""
    try:
        parse_opml(content)
    except FeedError:
        return False
    return True


def _feed_outline(parent: etree._Element, subscription: OpmlSubscription) -> None:
    outline = etree.SubElement(
        parent,
        "outline",
        type="rss",
        text=subscription.title,
        title=subscription.title,
        xmlUrl=subscription.xml_url,
    )
    if subscription.html_url:
        outline.set("htmlUrl", subscription.html_url)


def _folder_outline(
    body: etree._Element, name: str, subscriptions: list[OpmlSubscription]
) -> None:
    folder = etree.SubElement(body, "outline", text=name, title=name)
    for sub in subscriptions:
        _feed_outline(folder, sub)


def _fill_body(body: etree._Element, subscriptions: list[OpmlSubscription]) -> None:
    if any(sub.tags is not None for sub in subscriptions):
        # Every feed once at top level, then once per tag folder.
        for sub in subscriptions:
            _feed_outline(body, sub)
        tagged: dict[str, list[OpmlSubscription]] = {}
        for sub in subscriptions:
            for tag in dict.fromkeys(sub.tags or ()):
                tagged.setdefault(tag, []).append(sub)
        for tag in sorted(tagged):
            _folder_outline(body, tag, tagged[tag])
        return

    folders: dict[str, list[OpmlSubscription]] = {}
    for sub in subscriptions:
        if sub.folder:
            folders.setdefault(sub.folder, []).append(sub)
        else:
            _feed_outline(body, sub)
    for folder, members in folders.items():
        _folder_outline(body, folder, members)


def generate_opml(
    subscriptions: list[OpmlSubscription],
    metadata: OpmlMetadata | None = None,
    config: OpmlConfig | None = None,
) -> str:
    """Serialize subscriptions to an OPML 2.0 document.

    Subscriptions with a ``folder`` are grouped under one folder outline each.
    If any subscription sets ``tags``, every feed is listed at top level and
    again inside each of its tag folders, sorted by tag name.

    Args:
        subscriptions: Feeds to export
        metadata: Optional document title and owner
        config: Output options (fallback title, indentation)

    Returns:
        OPML XML document

    Raises:
        ValueError: If a title, URL or owner field holds characters XML cannot carry
    """
    config = config or OpmlConfig()
    metadata = metadata or OpmlMetadata()

    opml = etree.Element("opml", version="2.0")

    head = etree.SubElement(opml, "head")
    etree.SubElement(head, "title").text = metadata.title or config.default_title
    etree.SubElement(head, "dateCreated").text = format_datetime(
        datetime.now(UTC), usegmt=True
    )
    if metadata.owner_name:
        etree.SubElement(head, "ownerName").text = metadata.owner_name
    if metadata.owner_email:
        etree.SubElement(head, "ownerEmail").text = metadata.owner_email

    body = etree.SubElement(opml, "body")
    _fill_body(body, subscriptions)

    etree.indent(opml, space=config.indent)
    document = etree.tostring(opml, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{document}\n'
