"""Date/time normalization for feed timestamps.

Feeds carry ISO 8601 / RFC 3339 (Atom, JSON Feed), RFC 822 (RSS) and a long
tail of near-misses. Everything is normalized to an aware UTC datetime; text
that cannot be read yields ``None`` rather than an exception.
"""

import re
import warnings
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

from dateutil import parser as date_parser

# Fixed offsets, in seconds, for the zone names seen in US-published feeds.
US_TIMEZONES: dict[str, int] = {
    "PST": -8 * 3600,
    "PDT": -7 * 3600,
    "MST": -7 * 3600,
    "MDT": -6 * 3600,
    "CST": -6 * 3600,
    "CDT": -5 * 3600,
    "EST": -5 * 3600,
    "EDT": -4 * 3600,
    "GMT": 0,
    "UTC": 0,
    "UT": 0,
    "Z": 0,
}

_HAS_YEAR = re.compile(r"\d{4}")


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _parse_iso(text: str) -> datetime | None:
    try:
        return date_parser.isoparse(text)
    except (ValueError, OverflowError):
        return None


def _parse_rfc822(text: str) -> datetime | None:
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def _parse_loose(text: str) -> datetime | None:
    # Without a year dateutil would fill the gaps from today's date.
    if not _HAS_YEAR.search(text):
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", date_parser.UnknownTimezoneWarning)
            return date_parser.parse(text, tzinfos=US_TIMEZONES)
    except (ValueError, OverflowError):
        return None


_STRATEGIES = (_parse_iso, _parse_rfc822, _parse_loose)


def parse_date(value: str | None) -> datetime | None:
    """Parse a feed date string into an aware UTC datetime.

    Tries ISO 8601 first, then RFC 822/2822 (which also covers the named US
    zones and a missing zone), then a lenient parse with the US zone table.

    Args:
        value: Raw date text from the feed

    Returns:
        Aware datetime in UTC, or None if the text is empty or unreadable
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    for strategy in _STRATEGIES:
        parsed = strategy(text)
        if parsed is not None:
            return _to_utc(parsed)

    return None
