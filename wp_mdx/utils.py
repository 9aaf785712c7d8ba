"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

import re

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
WHITESPACE_PATTERN = re.compile(r"\s+")


def slugify(value: str, fallback: str = "post") -> str:
    """Generate a filesystem-friendly slug using ASCII characters only."""
    normalized = value.encode("ascii", "ignore").decode("ascii")
    normalized = normalized.lower()
    normalized = SLUG_PATTERN.sub("-", normalized).strip("-")
    return normalized or fallback


def collapse_whitespace(value: str) -> str:
    """Collapse runs of whitespace into single spaces and trim the ends."""
    return WHITESPACE_PATTERN.sub(" ", value).strip()


def truncate(value: str, limit: int) -> str:
    """Cut ``value`` to at most ``limit`` characters, marking the cut with an ellipsis."""
    if len(value) <= limit:
        return value
    return value[: limit - 3].rstrip() + "..."


def normalize_site_url(url: str) -> str:
    """Add a scheme to bare hosts and drop the trailing slash."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url.rstrip("/")
