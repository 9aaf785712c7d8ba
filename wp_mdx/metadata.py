"""Normalization of WordPress REST items into :class:`PostMeta` records."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from bs4 import BeautifulSoup

from .models import Author, FeaturedImage, PostMeta, Provenance, Term

logger = logging.getLogger("wp_mdx")

UNKNOWN_AUTHOR = "Unknown Author"
FEATURED_IMAGE_PLACEHOLDER = "Featured Image"
CATEGORY_TAXONOMY = "category"
TAG_TAXONOMY = "post_tag"

RawItem = Mapping[str, Any]


def decode_entities(text: Optional[str]) -> str:
    """Turn rendered HTML (entities, stray tags) into plain text."""
    if not text:
        return ""
    return BeautifulSoup(text, "html.parser").get_text().strip()


def rendered_field(item: RawItem, key: str) -> str:
    """The ``rendered`` text of a REST field, or the raw value if it is not nested."""
    value = item.get(key)
    if isinstance(value, Mapping):
        return value.get("rendered") or ""
    return value or ""


def parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparsable date %r", value)
        return None


def _embedded(item: RawItem) -> Mapping[str, Any]:
    embedded = item.get("_embedded")
    return embedded if isinstance(embedded, Mapping) else {}


def resolve_author(item: RawItem) -> Optional[Author]:
    authors = _embedded(item).get("author") or []
    if authors and isinstance(authors[0], Mapping) and authors[0].get("name"):
        embedded = authors[0]
        return Author(
            id=embedded.get("id"),
            name=embedded["name"],
            slug=embedded.get("slug") or "",
        )
    if item.get("author"):
        return Author(
            id=item["author"],
            name=UNKNOWN_AUTHOR,
            slug="unknown",
            provenance=Provenance.PLACEHOLDER,
        )
    return None


def _term_group(item: RawItem, taxonomy: str) -> Optional[List[Dict[str, Any]]]:
    """The embedded term group whose first element belongs to ``taxonomy``."""
    for group in _embedded(item).get("wp:term") or []:
        if group and isinstance(group[0], Mapping) and group[0].get("taxonomy") == taxonomy:
            return group
    return None


def _placeholder_terms(ids: Iterable[Any], label: str) -> List[Term]:
    return [
        Term(
            id=term_id,
            name=f"{label} {term_id}",
            slug=f"{label.lower()}-{term_id}",
            provenance=Provenance.PLACEHOLDER,
        )
        for term_id in ids
    ]


def resolve_terms(item: RawItem, taxonomy: str, key: str, label: str) -> List[Term]:
    group = _term_group(item, taxonomy)
    if group is not None:
        return [
            Term(id=term.get("id"), name=term.get("name", ""), slug=term.get("slug", ""))
            for term in group
        ]
    return _placeholder_terms(item.get(key) or [], label)


def resolve_featured_image(item: RawItem) -> Optional[FeaturedImage]:
    media = _embedded(item).get("wp:featuredmedia") or []
    if media and isinstance(media[0], Mapping) and media[0].get("source_url"):
        embedded = media[0]
        return FeaturedImage(
            id=embedded.get("id"),
            url=embedded["source_url"],
            alt=embedded.get("alt_text") or "",
            caption=decode_entities(rendered_field(embedded, "caption")),
        )
    if item.get("featured_media"):
        # Only the media id is known; the URL cannot be resolved here.
        return FeaturedImage(
            id=item["featured_media"],
            url="",
            alt=FEATURED_IMAGE_PLACEHOLDER,
            caption=FEATURED_IMAGE_PLACEHOLDER,
            provenance=Provenance.PLACEHOLDER,
        )
    return None


def extract_post_meta(item: RawItem) -> PostMeta:
    """Build normalized metadata, synthesizing placeholders for missing relations."""
    meta = PostMeta(
        id=item.get("id"),
        title=decode_entities(rendered_field(item, "title")),
        slug=item.get("slug") or "",
        status=item.get("status") or "",
        type=item.get("type") or "",
        link=item.get("link") or "",
        date=parse_date(item.get("date")),
        modified=parse_date(item.get("modified")),
        author=resolve_author(item),
        categories=resolve_terms(item, CATEGORY_TAXONOMY, "categories", "Category"),
        tags=resolve_terms(item, TAG_TAXONOMY, "tags", "Tag"),
        featured_image=resolve_featured_image(item),
    )
    if meta.placeholders():
        logger.debug(
            "Post %s: synthesized %s", meta.id, ", ".join(meta.placeholders())
        )
    return meta
