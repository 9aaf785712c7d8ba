"""Classification of sanitized markup into typed structure nodes."""

from __future__ import annotations

from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement

from .models import (
    Cell,
    Code,
    Heading,
    ImageNode,
    ListBlock,
    Paragraph,
    Quote,
    StructureNode,
    Table,
)
from .references import tagged_index
from .sanitizer import iter_top_level
from .utils import collapse_whitespace

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
LIST_TAGS = ("ul", "ol")
CODE_TAGS = ("pre", "code")
CELL_TAGS = ("th", "td")
INLINE_TAGS = frozenset({
    "a", "abbr", "b", "bdi", "bdo", "br", "cite", "data", "del", "dfn", "em",
    "i", "img", "ins", "kbd", "mark", "q", "s", "samp", "small", "span",
    "strong", "sub", "sup", "time", "u", "var", "wbr",
})


def _text(tag: Optional[Tag]) -> str:
    if tag is None:
        return ""
    return collapse_whitespace(tag.get_text())


def _span(cell: Tag, name: str) -> int:
    value = str(cell.get(name) or "").strip()
    if value.isdigit() and int(value) > 0:
        return int(value)
    return 1


def _own_rows(table: Tag, scope: Optional[Tag] = None) -> List[Tag]:
    """Rows under ``scope`` that belong to ``table`` rather than a nested table."""
    container = scope if scope is not None else table
    return [
        row
        for row in container.find_all("tr")
        if row.find_parent("table") is table
    ]


def _cells(row: Tag) -> List[Tag]:
    return row.find_all(list(CELL_TAGS), recursive=False)


def parse_table(table: Tag) -> Table:
    """Convert a ``<table>`` element into header and row data.

    Header priority: the first row of ``<thead>``, otherwise the table's first
    row when it is made of ``<th>`` cells only. Data rows come from
    ``<tbody>`` when present, else every row except the header row.
    """
    own_captions = [
        found for found in table.find_all("caption") if found.find_parent("table") is table
    ]
    caption = _text(own_captions[0]) if own_captions else ""
    if not caption and table.parent is not None and table.parent.name == "figure":
        caption = _text(table.parent.find("figcaption"))

    rows = _own_rows(table)
    header_row: Optional[Tag] = None
    thead = table.find("thead")
    if thead is not None and thead.find_parent("table") is table:
        thead_rows = _own_rows(table, thead)
        if thead_rows:
            header_row = thead_rows[0]
    elif rows:
        first_cells = _cells(rows[0])
        if first_cells and all(cell.name == "th" for cell in first_cells):
            header_row = rows[0]

    headers = [_text(cell) for cell in _cells(header_row)] if header_row else []

    bodies = [
        body for body in table.find_all("tbody") if body.find_parent("table") is table
    ]
    if bodies:
        data_rows = [row for body in bodies for row in _own_rows(table, body)]
    else:
        data_rows = [
            row
            for row in rows
            if row is not header_row
            and not (thead is not None and row.find_parent("thead") is thead)
        ]

    parsed_rows = []
    for row in data_rows:
        cells = [
            Cell(
                text=_text(cell),
                colspan=_span(cell, "colspan"),
                rowspan=_span(cell, "rowspan"),
            )
            for cell in _cells(row)
        ]
        if cells:
            parsed_rows.append(cells)
    return Table(caption=caption, headers=headers, rows=parsed_rows)


def hoisted_images(soup: BeautifulSoup) -> List[ImageNode]:
    """Image nodes for every tagged image, wherever it sits in the tree."""
    nodes: List[ImageNode] = []
    for img in soup.find_all("img"):
        index = tagged_index(img)
        if index is None:
            continue
        caption = ""
        figure = img.find_parent("figure")
        if figure is not None:
            caption = _text(figure.find("figcaption"))
        nodes.append(
            ImageNode(
                index=index,
                src=img.get("src", ""),
                alt_text=img.get("alt", ""),
                caption=caption,
            )
        )
    nodes.sort(key=lambda node: node.index)
    return nodes


def _is_image_only(tag: Tag) -> bool:
    """Whether a block holds tagged images and nothing but their captions."""
    images = [img for img in tag.find_all("img") if tagged_index(img) is not None]
    if not images:
        return False
    remaining = tag.get_text()
    for caption in tag.find_all("figcaption"):
        remaining = remaining.replace(caption.get_text(), "", 1)
    return not remaining.strip()


def classify_block(tag: Tag) -> Optional[StructureNode]:
    """Classify one top-level element, or return ``None`` to drop it."""
    name = tag.name
    if name in HEADING_TAGS:
        return Heading(level=int(name[1]), text=_text(tag))
    if name == "img":
        # Already emitted by hoisted_images().
        return None
    if name == "p":
        text = _text(tag)
        return Paragraph(text=text) if text else None
    if name in LIST_TAGS:
        items = [_text(item) for item in tag.find_all("li", recursive=False)]
        return ListBlock(ordered=name == "ol", items=items) if items else None
    if name == "blockquote":
        return Quote(text=_text(tag))
    if name in CODE_TAGS:
        return Code(text=tag.get_text())
    if name == "table":
        table = parse_table(tag)
        return table if table.rows else None
    if name == "figure":
        inner_table = tag.find("table")
        if inner_table is not None:
            table = parse_table(inner_table)
            return table if table.rows else None
    if _is_image_only(tag):
        return None
    text = _text(tag)
    return Paragraph(text=text) if text else None


def _joins_run(node: PageElement, run: List[PageElement]) -> bool:
    """Whether ``node`` continues a run of inline content."""
    if isinstance(node, NavigableString):
        return True
    if node.name in INLINE_TAGS:
        return True
    if node.name == "code":
        # Inline code only when it sits inside running text.
        following = node.next_sibling
        return bool(run) or (
            isinstance(following, NavigableString) and bool(following.strip())
        )
    return False


def _run_text(run: List[PageElement]) -> str:
    parts = []
    for node in run:
        if isinstance(node, NavigableString):
            parts.append(str(node))
        elif node.name == "br":
            parts.append(" ")
        else:
            parts.append(node.get_text())
    return collapse_whitespace("".join(parts))


def analyze_structure(soup: BeautifulSoup) -> List[StructureNode]:
    """Produce the ordered structure sequence for a processed tree.

    Image nodes come first so that images nested anywhere are never lost,
    followed by one node per top-level block in document order. Bare text
    and inline elements between blocks are gathered into paragraphs.
    """
    structure: List[StructureNode] = list(hoisted_images(soup))
    run: List[PageElement] = []

    def flush() -> None:
        text = _run_text(run)
        if text:
            structure.append(Paragraph(text=text))
        run.clear()

    for node in iter_top_level(soup):
        if _joins_run(node, run):
            run.append(node)
            continue
        flush()
        block = classify_block(node)
        if block is not None:
            structure.append(block)
    flush()
    return structure
