"""Error types surfaced by the feedstream parsers.

Structural and syntax failures abort a parse; field-level anomalies never
reach these types.
"""


class FeedError(ValueError):
    """Base class for every parse failure raised to callers."""


class UnknownFeedFormatError(FeedError):
    """The input could not be classified and no explicit format was given."""

    def __init__(
        self,
        message: str = "Unknown feed format: unable to detect RSS, Atom, or JSON Feed",
    ):
        super().__init__(message)


class MalformedFeedError(FeedError):
    """The input matched a format but violates its minimum structure."""

    def __init__(self, message: str, feed_format: str | None = None):
        super().__init__(message)
        self.feed_format = feed_format


class FeedSyntaxError(FeedError):
    """The underlying markup or JSON could not be tokenized at all.

    The original decoder error is kept as ``__cause__``.
    """

    def __init__(self, message: str, feed_format: str | None = None):
        super().__init__(message)
        self.feed_format = feed_format
