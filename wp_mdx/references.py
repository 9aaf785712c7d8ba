"""Image reference extraction and hyperlink inlining."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Callable, List, Optional, Sequence
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup, NavigableString, Tag

from .models import ImageReference
from .utils import collapse_whitespace, truncate

logger = logging.getLogger("wp_mdx")

IMAGE_INDEX_ATTR = "data-image-index"

MAX_ALT_CHARS = 100
MAX_CONTEXT_CHARS = 200
MAX_CAPTION_CHARS = 300
FILENAME_SEPARATORS = re.compile(r"(?:%20|[-_+.\s])+")

TextStrategy = Callable[[Tag], str]


def _text(tag: Optional[Tag]) -> str:
    if tag is None:
        return ""
    return collapse_whitespace(tag.get_text())


def _figure_caption(img: Tag) -> str:
    figure = img.find_parent("figure")
    if figure is None:
        return ""
    return _text(figure.find("figcaption"))


def _anchor_block(img: Tag) -> Tag:
    """The element whose siblings frame the image in the flow of text."""
    node = img
    while node.parent is not None and node.parent.name in ("a", "p"):
        if _text(node.parent):
            break
        node = node.parent
    return node


def _explicit_alt(img: Tag) -> str:
    return collapse_whitespace(img.get("alt") or "")


def _explicit_title(img: Tag) -> str:
    return collapse_whitespace(img.get("title") or "")


def _caption_alt(img: Tag) -> str:
    return truncate(_figure_caption(img), MAX_ALT_CHARS)


def _context_alt(img: Tag) -> str:
    parent = img.parent
    # At the top level the parent is the whole document, not nearby text.
    if parent is None or isinstance(parent, BeautifulSoup) or parent.name in ("body", "html"):
        return ""
    context = _text(parent)
    if not context or len(context) >= MAX_CONTEXT_CHARS:
        return ""
    return truncate(context, MAX_ALT_CHARS)


def _filename_alt(img: Tag) -> str:
    return filename_text(img.get("src") or "")


def _figcaption(img: Tag) -> str:
    return _figure_caption(img)


def _following_paragraph(img: Tag) -> str:
    sibling = _anchor_block(img).find_next_sibling()
    if sibling is None or sibling.name != "p":
        return ""
    text = _text(sibling)
    if len(text) >= MAX_CAPTION_CHARS:
        return ""
    return text


ALT_STRATEGIES: Sequence[TextStrategy] = (
    _explicit_alt,
    _explicit_title,
    _caption_alt,
    _context_alt,
    _filename_alt,
)

CAPTION_STRATEGIES: Sequence[TextStrategy] = (
    _figcaption,
    _following_paragraph,
)


def first_non_empty(img: Tag, strategies: Sequence[TextStrategy]) -> str:
    """Run ``strategies`` in order and return the first non-empty answer."""
    for strategy in strategies:
        value = strategy(img)
        if value:
            return value
    return ""


def filename_text(src: str) -> str:
    """Readable words derived from an image URL's file name."""
    try:
        path = urlparse(src).path
    except ValueError:
        return ""
    stem, _ = posixpath.splitext(posixpath.basename(unquote(path)))
    return collapse_whitespace(FILENAME_SEPARATORS.sub(" ", stem))


def extract_image_references(soup: BeautifulSoup) -> List[ImageReference]:
    """Collect image references in document order and tag each element.

    Images without a ``src`` are skipped and do not consume an index, so the
    returned indices are always ``0..k-1``. The index is stored on the element
    under ``data-image-index`` for the structure analyzer.
    """
    references: List[ImageReference] = []
    for img in soup.find_all("img"):
        src = (img.get("src") or "").strip()
        if not src:
            continue
        index = len(references)
        img[IMAGE_INDEX_ATTR] = str(index)
        references.append(
            ImageReference(
                index=index,
                source_url=src,
                alt_text=first_non_empty(img, ALT_STRATEGIES),
                caption=first_non_empty(img, CAPTION_STRATEGIES),
                original_alt_text=_explicit_alt(img),
                original_caption=_figure_caption(img),
            )
        )
    logger.debug("Extracted %d image reference(s)", len(references))
    return references


def tagged_index(img: Tag) -> Optional[int]:
    """Index previously assigned by :func:`extract_image_references`."""
    value = img.get(IMAGE_INDEX_ATTR)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def inline_links(soup: BeautifulSoup) -> None:
    """Rewrite anchors into plain ``"text (href)"`` runs.

    Anchors wrapping an image are unwrapped instead so the image survives.
    Anchors without text or href collapse into their contents.
    """
    for anchor in list(soup.find_all("a")):
        href = (anchor.get("href") or "").strip()
        text = collapse_whitespace(anchor.get_text())
        if anchor.find("img") is not None or not href or not text:
            anchor.unwrap()
            continue
        anchor.replace_with(NavigableString(f"{text} ({href})"))
