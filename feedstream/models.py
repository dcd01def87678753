"""Data models for the feedstream parsing core."""

from collections.abc import Iterable
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Literal

FeedFormat = Literal["rss", "atom", "json", "unknown"]
ExplicitFormat = Literal["rss", "atom", "json"]
UpdatePeriod = Literal["hourly", "daily", "weekly", "monthly", "yearly"]

UPDATE_PERIODS: tuple[str, ...] = ("hourly", "daily", "weekly", "monthly", "yearly")


@dataclass(frozen=True)
class SyndicationHints:
    """Feed-declared update cadence (RSS/Atom syndication namespace)."""

    update_period: UpdatePeriod | None = None
    update_frequency: int | None = None


@dataclass(frozen=True)
class ParsedEntry:
    """Represents a single syndicated item in normalized form."""

    guid: str | None = None
    link: str | None = None
    title: str | None = None
    author: str | None = None
    content: str | None = None
    summary: str | None = None
    pub_date: datetime | None = None


@dataclass(frozen=True)
class FeedMetadata:
    """Channel-level fields shared by the collected and streaming results."""

    title: str | None = None
    description: str | None = None
    site_url: str | None = None
    icon_url: str | None = None
    hub_url: str | None = None
    self_url: str | None = None
    ttl_minutes: int | None = None
    syndication: SyndicationHints | None = None


@dataclass(frozen=True)
class ParsedFeed(FeedMetadata):
    """A fully materialized feed: metadata plus every entry in document order."""

    entries: tuple[ParsedEntry, ...] = field(default_factory=tuple)

    @classmethod
    def from_metadata(
        cls, metadata: FeedMetadata, entries: Iterable[ParsedEntry]
    ) -> "ParsedFeed":
        """Combine a metadata snapshot with its entries."""
        values = {f.name: getattr(metadata, f.name) for f in fields(FeedMetadata)}
        return cls(**values, entries=tuple(entries))


@dataclass(frozen=True)
class OpmlFeed:
    """One subscription found in an OPML document."""

    xml_url: str
    title: str | None = None
    html_url: str | None = None
    category: tuple[str, ...] | None = None


@dataclass(frozen=True)
class OpmlSubscription:
    """Input record for OPML generation.

    ``folder`` is the legacy single-folder grouping; ``tags`` switches the
    generator to the multi-tag layout when any subscription sets it.
    """

    title: str
    xml_url: str
    html_url: str | None = None
    folder: str | None = None
    tags: tuple[str, ...] | None = None


@dataclass(frozen=True)
class OpmlMetadata:
    """Optional document-level metadata for OPML generation."""

    title: str | None = None
    owner_name: str | None = None
    owner_email: str | None = None
