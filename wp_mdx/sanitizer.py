"""Markup parsing and cleanup for CMS-rendered article bodies."""

from __future__ import annotations

import logging
import re
from typing import Dict, FrozenSet, Iterable, Union

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from bs4.builder import ParserRejectedMarkup
from bs4.element import PageElement, PreformattedString

from .errors import MarkupParseError

logger = logging.getLogger("wp_mdx")

NON_CONTENT_TAGS = ("script", "style", "noscript")
CONTAINER_TAGS = ("div", "span", "section")
WRAPPER_TAGS = ("div", "section", "span", "article")
MEDIA_TAGS = ("img", "picture", "video", "audio", "iframe", "svg", "table")
VERBATIM_TAGS = ("pre", "code")

ALLOWED_ATTRIBUTES: Dict[str, FrozenSet[str]] = {
    "img": frozenset({"src", "alt", "title"}),
    "a": frozenset({"href", "title"}),
    "table": frozenset({"border", "cellpadding", "cellspacing"}),
    "td": frozenset({"colspan", "rowspan"}),
    "th": frozenset({"colspan", "rowspan"}),
    "blockquote": frozenset({"cite"}),
    "code": frozenset({"class"}),
    "pre": frozenset({"class"}),
    "ol": frozenset({"start"}),
}

_SELECTOR = (
    r"(?:[.#*\[:]|(?:html|body|div|span|p|a|h[1-6]|ul|ol|li|img|table|"
    r"section|article|header|footer|nav|main|figure|button|input)\b)[^{}]*"
)
# prop: value; ... with the final semicolon optional
_DECLARATIONS = r"\s*(?:[\w-]+\s*:[^;{}]*;\s*)*(?:[\w-]+\s*:[^;{}]*)?\s*"
_RULE = rf"{_SELECTOR}\{{{_DECLARATIONS}\}}"
_AT_RULE = (
    rf"@[\w-]+[^{{}};]*(?:;|\{{(?:{_DECLARATIONS}|(?:\s*{_RULE})*\s*)\}})"
)
_COMMENT = r"/\*.*?\*/"

# Text made up entirely of rules, at-rules and comments.
CSS_LEAK_PATTERN = re.compile(
    rf"(?:\s*(?:{_COMMENT}|{_AT_RULE}|{_RULE}))+\s*", re.DOTALL
)

PAGE_BUILDER_CLASS = re.compile(
    r"^(?:elementor|et_pb_|vc_|wpb_|fl-|wp-block-group|wp-block-columns?$)"
)


def parse_markup(markup: Union[str, bytes, None]) -> BeautifulSoup:
    """Parse rendered HTML into a mutable tree."""
    if markup is None:
        markup = ""
    if not isinstance(markup, (str, bytes)):
        raise MarkupParseError(
            f"Expected rendered markup as text, got {type(markup).__name__}"
        )
    try:
        return BeautifulSoup(markup, "html.parser")
    except (ParserRejectedMarkup, AssertionError) as exc:
        raise MarkupParseError(f"Markup could not be parsed: {exc}") from exc


def _is_verbatim(node: NavigableString) -> bool:
    return any(parent.name in VERBATIM_TAGS for parent in node.parents)


def looks_like_css_leak(text: str) -> bool:
    """Whether a bare text node is stylesheet text leaked into the body."""
    stripped = text.strip()
    if not stripped:
        return False
    return CSS_LEAK_PATTERN.fullmatch(stripped) is not None


def remove_non_content(soup: BeautifulSoup) -> None:
    """Drop scripts, styles, comments and leaked stylesheet text."""
    for tag in soup(list(NON_CONTENT_TAGS)):
        tag.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    for text in soup.find_all(string=True):
        if _is_verbatim(text):
            continue
        if looks_like_css_leak(str(text)):
            logger.debug("Dropping leaked stylesheet text: %.60r", str(text))
            text.extract()


def _is_page_builder_wrapper(tag: Tag) -> bool:
    if tag.name not in WRAPPER_TAGS:
        return False
    classes = tag.get("class") or []
    return any(PAGE_BUILDER_CLASS.match(name) for name in classes)


def unwrap_page_builder_wrappers(soup: BeautifulSoup) -> None:
    """Replace page-builder layout containers with their children."""
    for tag in list(soup.find_all(_is_page_builder_wrapper)):
        tag.unwrap()


def filter_attributes(soup: BeautifulSoup) -> None:
    """Strip every attribute not on the per-tag allow-list."""
    for tag in soup.find_all(True):
        allowed = ALLOWED_ATTRIBUTES.get(tag.name, frozenset())
        tag.attrs = {
            name: value for name, value in tag.attrs.items() if name in allowed
        }


def _has_media(tag: Tag) -> bool:
    return tag.find(list(MEDIA_TAGS)) is not None


def remove_empty_containers(soup: BeautifulSoup) -> None:
    """Remove div/span/section elements that carry neither text nor media."""
    # Reversed document order visits children before their parents.
    for tag in reversed(soup.find_all(list(CONTAINER_TAGS))):
        if tag.get_text(strip=True):
            continue
        if _has_media(tag):
            continue
        tag.decompose()


def sanitize(soup: BeautifulSoup) -> None:
    """Clean a parsed tree in place.

    Passes run in a fixed order: non-content removal, page-builder unwrapping
    (which needs the class attribute), attribute filtering and finally the
    removal of containers left empty by the earlier passes. Running it again
    on its own output changes nothing.
    """
    remove_non_content(soup)
    unwrap_page_builder_wrappers(soup)
    filter_attributes(soup)
    remove_empty_containers(soup)


def sanitize_markup(markup: Union[str, bytes, None]) -> BeautifulSoup:
    """Parse and sanitize markup in one step."""
    soup = parse_markup(markup)
    sanitize(soup)
    return soup


def iter_top_level(soup: BeautifulSoup) -> Iterable[PageElement]:
    """Yield top-level elements and text runs of a parsed fragment."""
    root = soup.body or soup
    for child in root.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, (Tag, NavigableString)):
            yield child
