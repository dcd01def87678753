"""Configuration for the feedstream parsers and OPML generator."""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any


@dataclass
class ParserConfig:
    """Tuning knobs for detection and streaming parses."""

    peek_bytes: int = 2048
    read_chunk_size: int = 65536
    entry_queue_size: int = 64
    max_entries: int | None = None

    def validate(self) -> "ParserConfig":
        """Check that every limit is usable.

        Returns:
            The same config, for chaining

        Raises:
            ValueError: If a limit is zero or negative
        """
        for name in ("peek_bytes", "read_chunk_size", "entry_queue_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

        if self.max_entries is not None and (
            not isinstance(self.max_entries, int) or self.max_entries <= 0
        ):
            raise ValueError(
                f"max_entries must be a positive integer or None, got {self.max_entries!r}"
            )
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParserConfig":
        """Build a config from a mapping, ignoring keys it does not know."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known}).validate()


@dataclass
class OpmlConfig:
    """Configuration for OPML export."""

    default_title: str = "Feedstream Subscriptions"
    indent: str = "  "

