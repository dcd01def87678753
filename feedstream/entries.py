"""Post-processing helpers for parsed entries.

Identity (``derive_guid``), change detection (``content_hash``) and a plain
text preview (``generate_summary``) for applications storing entries.
"""

import hashlib

from bs4 import BeautifulSoup

from .models import ParsedEntry

SUMMARY_MAX_LENGTH = 300


def derive_guid(entry: ParsedEntry) -> str:
    """Return a stable identifier for an entry.

    Uses the entry's guid when present, otherwise its link, otherwise its title.

    Raises:
        ValueError: If the entry has no usable guid, link or title
    """
    for candidate in (entry.guid, entry.link, entry.title):
        if candidate and candidate.strip():
            return candidate.strip()

    raise ValueError("Cannot derive GUID: entry has no guid, link, or title")


def content_hash(entry: ParsedEntry) -> str:
    """SHA-256 of the title and body, used to notice edited entries."""
    title = entry.title or ""
    body = entry.content or entry.summary or ""
    return hashlib.sha256(f"{title}\n{body}".encode()).hexdigest()


def clean_html_content(content: str | None) -> str:
    """Remove HTML tags from content and normalize whitespace.

    Args:
        content: Raw content that may contain HTML

    Returns:
        Clean text content without HTML tags
    """
    if not content:
        return ""

    if "<" not in content and ">" not in content:
        return " ".join(content.split())

    soup = BeautifulSoup(content, "html.parser")

    for element in soup(["script", "style"]):
        element.decompose()

    text = soup.get_text(separator=" ")

    # Stray brackets left over from broken markup
    text = text.replace("<", "").replace(">", "")

    return " ".join(text.split())


def truncate(text: str, max_length: int) -> str:
    """Cut text to ``max_length`` characters, ending with "..." when cut."""
    if len(text) <= max_length:
        return text
    return text[: max(max_length - 3, 0)].rstrip() + "..."


def generate_summary(entry: ParsedEntry, max_length: int = SUMMARY_MAX_LENGTH) -> str:
    """Plain-text preview of an entry's content (or summary), truncated."""
    return truncate(clean_html_content(entry.content or entry.summary), max_length)
