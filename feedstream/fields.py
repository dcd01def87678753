"""Field accumulation with source preference.

Feeds often carry the same value under several elements (``pubDate`` and
``dc:date``, ``author`` and ``dc:creator``, ``icon`` and ``logo``). Each
source is given a rank; a value is kept if it outranks what is already held,
and among equal ranks the first usable value wins.
"""

from typing import Any

from .models import FeedMetadata, ParsedEntry, SyndicationHints


class RankedFields:
    """Accumulates named values while a feed header or entry is open."""

    def __init__(self):
        self._values: dict[str, Any] = {}
        self._ranks: dict[str, int] = {}

    def offer(self, name: str, value: Any, rank: int = 1) -> bool:
        """Keep ``value`` for ``name`` if it is usable and outranks the current one."""
        if value is None:
            return False
        if self._ranks.get(name, 0) >= rank:
            return False
        self._values[name] = value
        self._ranks[name] = rank
        return True

    def get(self, name: str) -> Any:
        return self._values.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def to_entry(self) -> ParsedEntry:
        return ParsedEntry(**self._values)

    def to_metadata(self, syndication: SyndicationHints | None = None) -> FeedMetadata:
        return FeedMetadata(**self._values, syndication=syndication)
