"""Lenient incremental XML tokenizer shared by the RSS, Atom and OPML parsers.

Bytes are pushed into a recovering lxml pull parser; every start/end event
is replayed to a handler under a normalized ``prefix:local`` lower-case name,
so handlers can match ``content:encoded`` or ``pubdate`` without caring how
the document spelled or declared them.
"""

import re
from typing import Protocol

from lxml import etree

from .errors import FeedSyntaxError
from .logging_config import ParseLogger

# Canonical prefixes for the namespaces the parsers understand.
NAMESPACE_PREFIXES: dict[str, str] = {
    "http://purl.org/rss/1.0/modules/content/": "content",
    "http://purl.org/dc/elements/1.1/": "dc",
    "http://purl.org/dc/terms/": "dcterms",
    "http://purl.org/rss/1.0/modules/syndication/": "sy",
    "http://www.w3.org/2005/Atom": "atom",
    "http://purl.org/atom/ns#": "atom",
    "http://www.w3.org/1999/02/22-rdf-syntax-ns#": "rdf",
    "http://search.yahoo.com/mrss/": "media",
    "http://www.w3.org/1999/xhtml": "xhtml",
    "http://purl.org/rss/1.0/": "rss",
    "http://my.netscape.com/rdf/simple/0.9/": "rss",
}


# Encoding named by an XML declaration at the very start of a document.
_DECLARED_ENCODING = re.compile(r"""^(\ufeff?\s*<\?xml[^>]*?\bencoding\s*=\s*)(["'])[^"']*\2""")


class MarkupHandler(Protocol):
    """What a format state machine exposes to the tokenizer."""

    # Canonical prefixes treated as "no prefix" for this format.
    default_prefixes: frozenset[str]
    # Elements whose subtree can be dropped once their end event is handled.
    release_tags: frozenset[str]

    def start(self, name: str, elem: etree._Element) -> None: ...

    def end(self, name: str, elem: etree._Element) -> None: ...


def qualified_name(elem: etree._Element, default_prefixes: frozenset[str]) -> str:
    """Return ``prefix:local`` (or ``local``) for an element, lower-cased."""
    tag = elem.tag
    if not isinstance(tag, str):
        return ""

    if tag.startswith("{"):
        uri, _, local = tag[1:].partition("}")
        prefix = NAMESPACE_PREFIXES.get(uri)
        if prefix is None:
            prefix = elem.prefix or ""
    elif ":" in tag:
        # Undeclared prefix; the recovering parser keeps the raw qualified name.
        prefix, _, local = tag.partition(":")
    else:
        prefix, local = "", tag

    prefix = prefix.lower()
    local = local.lower()
    if not prefix or prefix in default_prefixes:
        return local
    return f"{prefix}:{local}"


def lower_attrib(elem: etree._Element) -> dict[str, str]:
    """Attributes keyed by lower-cased local name (namespaced ones dropped)."""
    return {
        key.lower(): value
        for key, value in elem.attrib.items()
        if not key.startswith("{")
    }


def element_text(elem: etree._Element) -> str | None:
    """All character data inside ``elem``, stripped; None when blank."""
    text = "".join(elem.itertext()).strip()
    return text or None


def direct_text(elem: etree._Element) -> str | None:
    """Character data of ``elem`` itself, skipping its children's text."""
    parts = [elem.text or ""]
    parts.extend(child.tail or "" for child in elem)
    text = "".join(parts).strip()
    return text or None


def inner_markup(elem: etree._Element) -> str | None:
    """Serialized children of ``elem`` (for xhtml content), stripped."""
    if len(elem) == 0:
        return element_text(elem)

    parts = [elem.text or ""]
    for child in elem:
        parts.append(etree.tostring(child, encoding="unicode", with_tail=True))
    markup = "".join(parts).strip()
    return markup or None


def text_before(parent: etree._Element, child: etree._Element) -> str | None:
    """Character data of ``parent`` that precedes ``child``, stripped."""
    parts = [parent.text or ""]
    for sibling in parent:
        if sibling is child:
            break
        parts.append("".join(sibling.itertext()))
        parts.append(sibling.tail or "")
    text = "".join(parts).strip()
    return text or None


class MarkupTokenizer:
    """Push bytes in, get handler callbacks out, in document order."""

    def __init__(self, handler: MarkupHandler, feed_format: str, logger: ParseLogger):
        self._handler = handler
        self._feed_format = feed_format
        self._logger = logger
        self._parser: etree.XMLPullParser | None = None
        self._saw_element = False
        self._closed = False

    def _create_parser(self, text_input: bool) -> etree.XMLPullParser:
        options = {
            "events": ("start", "end"),
            "recover": True,
            "remove_comments": True,
            "remove_pis": True,
            "resolve_entities": False,
            "no_network": True,
            "huge_tree": True,
        }
        if text_input:
            # Text was re-encoded by us; the declared encoding no longer applies.
            options["encoding"] = "utf-8"
        return etree.XMLPullParser(**options)

    def feed(self, data: bytes | str) -> None:
        """Tokenize another chunk of the document."""
        if self._closed:
            raise RuntimeError("tokenizer already closed")
        if not data:
            return

        if self._parser is None:
            self._parser = self._create_parser(isinstance(data, str))
            if isinstance(data, str):
                data = _DECLARED_ENCODING.sub(r"\1\2utf-8\2", data, count=1)
        if isinstance(data, str):
            data = data.encode("utf-8")

        try:
            self._parser.feed(data)
        except etree.XMLSyntaxError as e:
            raise FeedSyntaxError(
                f"Unreadable {self._feed_format} markup: {e}", self._feed_format
            ) from e
        self._dispatch()

    def close(self) -> None:
        """Flush the parser and replay any events it was holding back."""
        if self._closed:
            return
        self._closed = True

        if self._parser is None:
            raise FeedSyntaxError(
                f"Empty {self._feed_format} document", self._feed_format
            )

        try:
            self._parser.close()
        except etree.XMLSyntaxError as e:
            if not self._saw_element:
                raise FeedSyntaxError(
                    f"Unreadable {self._feed_format} markup: {e}", self._feed_format
                ) from e
            self._logger.warning(
                "Markup recovered with errors", error=str(e)
            )
        self._dispatch()

        if not self._saw_element:
            raise FeedSyntaxError(
                f"No elements found in {self._feed_format} document", self._feed_format
            )

    def _dispatch(self) -> None:
        handler = self._handler
        for event, elem in self._parser.read_events():
            name = qualified_name(elem, handler.default_prefixes)
            if not name:
                continue
            if event == "start":
                self._saw_element = True
                handler.start(name, elem)
            else:
                handler.end(name, elem)
                if name in handler.release_tags:
                    _release(elem)


def _release(elem: etree._Element) -> None:
    """Drop a finished subtree and the siblings handled before it."""
    elem.clear(keep_tail=True)
    parent = elem.getparent()
    if parent is None:
        return
    while elem.getprevious() is not None:
        del parent[0]
