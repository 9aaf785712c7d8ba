"""HTML extraction pipeline for WordPress item bodies."""

from __future__ import annotations

from typing import Any, Mapping, Union

from bs4 import BeautifulSoup

from .metadata import extract_post_meta, rendered_field
from .models import ProcessedContent, ProcessedPost
from .references import extract_image_references, inline_links
from .sanitizer import parse_markup, sanitize
from .structure import analyze_structure
from .utils import collapse_whitespace


def _join_plain_text(soup: BeautifulSoup) -> str:
    """Join text nodes for word counts and summaries."""
    return "\n".join(s for s in soup.stripped_strings)


def process_content(markup: Union[str, bytes, None]) -> ProcessedContent:
    """Sanitize markup and extract images and the block structure.

    Raises :class:`~wp_mdx.errors.MarkupParseError` when the markup cannot be
    parsed; every other irregularity is cleaned up rather than reported.
    """
    soup = parse_markup(markup)
    sanitize(soup)
    images = extract_image_references(soup)
    inline_links(soup)
    structure = analyze_structure(soup)
    return ProcessedContent(
        html=soup.decode(),
        plain_text=_join_plain_text(soup),
        images=images,
        structure=structure,
    )


def process_excerpt(markup: Union[str, bytes, None]) -> str:
    if not markup:
        return ""
    soup = parse_markup(markup)
    sanitize(soup)
    inline_links(soup)
    return collapse_whitespace(soup.get_text())


def process_post(item: Mapping[str, Any]) -> ProcessedPost:
    """Transform one raw REST item into metadata plus processed content."""
    return ProcessedPost(
        meta=extract_post_meta(item),
        content=process_content(rendered_field(item, "content")),
        excerpt=process_excerpt(rendered_field(item, "excerpt")),
    )
