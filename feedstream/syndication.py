"""Syndication namespace hints (sy:updatePeriod / sy:updateFrequency)."""

import re

from .models import UPDATE_PERIODS, SyndicationHints

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def normalize_update_period(value: str | None) -> str | None:
    """Return the lower-cased period if it is one of the recognized values."""
    if not value:
        return None
    normalized = value.strip().lower()
    return normalized if normalized in UPDATE_PERIODS else None


def parse_positive_int(value: str | None) -> int | None:
    """Parse a leading integer the way feeds write it; reject zero and negatives.

    Trailing junk after the digits is tolerated ("60 minutes" -> 60).
    """
    if not value:
        return None

    match = _LEADING_INT.match(value)
    if match is None:
        return None
    parsed = int(match.group(1))
    return parsed if parsed > 0 else None


class SyndicationCollector:
    """Accumulates raw hint text while a feed header is being read."""

    def __init__(self):
        self.update_period: str | None = None
        self.update_frequency: int | None = None

    def set_period(self, raw: str | None) -> bool:
        """Record an update period; returns False when the value is unusable."""
        period = normalize_update_period(raw)
        if period is None:
            return False
        self.update_period = period
        return True

    def set_frequency(self, raw: str | None) -> bool:
        """Record an update frequency; returns False when the value is unusable."""
        frequency = parse_positive_int(raw)
        if frequency is None:
            return False
        self.update_frequency = frequency
        return True

    def build(self) -> SyndicationHints | None:
        """Return the hints, or None when neither element held a usable value."""
        if self.update_period is None and self.update_frequency is None:
            return None
        return SyndicationHints(
            update_period=self.update_period,
            update_frequency=self.update_frequency,
        )
