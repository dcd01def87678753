"""Feed auto-discovery from HTML pages and transport content types."""

from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from .models import ExplicitFormat, FeedFormat

FEED_MIME_TYPES: dict[str, FeedFormat] = {
    "application/rss+xml": "rss",
    "application/atom+xml": "atom",
    "application/feed+json": "json",
    "application/json": "json",
    "application/xml": "unknown",
    "text/xml": "unknown",
}

COMMON_FEED_PATHS = (
    "/feed",
    "/feed.xml",
    "/rss",
    "/rss.xml",
    "/atom.xml",
    "/index.xml",
    "/feed.json",
    "/feed/",
    "/rss/",
    "/atom/",
    "/blog/feed",
    "/blog/rss",
    "/blog/feed.xml",
    "/blog/rss.xml",
    "/blog/atom.xml",
    "/.rss",
)


@dataclass(frozen=True)
class DiscoveredFeed:
    """A feed advertised by a page through ``<link rel="alternate">``."""

    url: str
    type: FeedFormat
    title: str | None = None


def _mime_feed_type(content_type: str | None) -> FeedFormat | None:
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    return FEED_MIME_TYPES.get(mime)


def feed_type_from_content_type(content_type: str | None) -> ExplicitFormat | None:
    """Map a Content-Type header to a format hint for ``parse_feed_with_format``.

    Generic XML types give no hint, since they fit both RSS and Atom.
    """
    feed_type = _mime_feed_type(content_type)
    return None if feed_type in (None, "unknown") else feed_type


def _is_alternate(rel) -> bool:
    if not rel:
        return False
    values = rel if isinstance(rel, list) else rel.split()
    return "alternate" in (value.lower() for value in values)


def discover_feeds(html: str, base_url: str) -> list[DiscoveredFeed]:
    """Find the feeds a page advertises in its ``<link>`` elements.

    Args:
        html: Page markup
        base_url: URL the page was fetched from, for resolving relative hrefs

    Returns:
        Feeds in document order, without duplicate URLs
    """
    soup = BeautifulSoup(html, "html.parser")
    feeds: list[DiscoveredFeed] = []
    seen: set[str] = set()

    for link in soup.find_all("link"):
        if not _is_alternate(link.get("rel")):
            continue

        feed_type = _mime_feed_type(link.get("type"))
        if feed_type is None:
            continue

        href = (link.get("href") or "").strip()
        if not href:
            continue
        try:
            url = urljoin(base_url, href)
        except ValueError:
            continue

        if url in seen:
            continue
        seen.add(url)

        feeds.append(DiscoveredFeed(url=url, type=feed_type, title=link.get("title") or None))

    return feeds


def common_feed_urls(base_url: str) -> list[str]:
    """Candidate feed URLs at well-known paths of a site's origin."""
    try:
        parts = urlsplit(base_url)
    except ValueError:
        return []
    if not parts.scheme or not parts.netloc:
        return []

    origin = f"{parts.scheme}://{parts.netloc}"
    return [f"{origin}{path}" for path in COMMON_FEED_PATHS]
