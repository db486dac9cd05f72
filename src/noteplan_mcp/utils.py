"""Utility functions for the NotePlan MCP server."""
import re
from typing import Optional

_UNSAFE_STEM_CHARS = re.compile(r"[^A-Za-z0-9\s\-_]")
_WHITESPACE_RUN = re.compile(r"\s+")

MAX_STEM_LENGTH = 50


def sanitize_filename_stem(title: str, max_length: int = MAX_STEM_LENGTH) -> str:
    """Turn a note title into a filename stem.

    Keeps only ASCII letters, digits, whitespace, hyphens and underscores,
    collapses each run of whitespace into a single hyphen and truncates the
    result.

    Examples:
        "Meeting Notes: Q3/Q4" -> "Meeting-Notes-Q3Q4"
        "  padded   title " -> "-padded-title-"
        "snake_case-title" -> "snake_case-title"

    Args:
        title: The title to sanitize.
        max_length: Maximum length of the returned stem.

    Returns:
        The filesystem-safe stem (may be empty if nothing survives).
    """
    if not title:
        return ""
    stem = _UNSAFE_STEM_CHARS.sub("", title)
    stem = _WHITESPACE_RUN.sub("-", stem)
    return stem[:max_length]


def normalize_date_key(value: Optional[str]) -> Optional[str]:
    """Strip dashes from a date so ``2025-09-29`` compares as ``20250929``."""
    if value is None:
        return None
    return value.strip().replace("-", "")
