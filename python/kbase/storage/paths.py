"""Blob key building utilities.

This module provides the single point of logic for building content keys.
All key construction must go through build_content_key() so the key stays a
pure function of the article id.

Key Invariant:
    - Production: articles/{article_id}.md
    - Prefixed (test isolation): {prefix}/articles/{article_id}.md

Rules:
    - No leading slash
    - Prefix applied exactly once in build_content_key()
"""

import re

CONTENT_KEY_PATTERN = re.compile(r"(?:^|/)articles/(\d+)\.md$")


def _normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip("/")
    return f"{prefix}/" if prefix else ""


def build_content_key(article_id: int, prefix: str = "") -> str:
    """Build the blob key for an article's Markdown content.

    Args:
        article_id: The article id.
        prefix: Optional key prefix (e.g. "test_runs/run-1").

    Returns:
        Blob key such as "articles/42.md".

    Example:
        >>> build_content_key(42)
        'articles/42.md'
    """
    return f"{_normalize_prefix(prefix)}articles/{int(article_id)}.md"


def parse_content_key(key: str) -> int | None:
    """Extract the article id from a content key.

    Returns:
        The article id, or None if the key doesn't match the expected pattern.
    """
    match = CONTENT_KEY_PATTERN.search(key.lstrip("/"))
    if match is None:
        return None
    return int(match.group(1))
