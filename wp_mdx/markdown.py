"""Markdown rendering of processed posts and corpus summaries."""

from __future__ import annotations

import datetime as dt
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    Cell,
    Code,
    ContentSummary,
    DownloadedAsset,
    Heading,
    ImageNode,
    ImageReference,
    ListBlock,
    Paragraph,
    ProcessedPost,
    Quote,
    StructureNode,
    Table,
)

UNCATEGORIZED = "Uncategorized"
MAX_SUMMARY_TAGS = 20


@dataclass
class ExportedPost:
    """A processed post together with the images acquired for it."""

    post: ProcessedPost
    assets: List[DownloadedAsset] = field(default_factory=list)


@dataclass
class MarkdownOptions:
    site_name: str = "WordPress Site"
    source_url: str = ""
    include_toc: bool = True
    include_summary: bool = True
    group_by_category: bool = False
    sort_by_title: bool = False


def asset_link(asset: DownloadedAsset) -> str:
    """Path of an asset relative to the export directory."""
    return str(PurePosixPath("images") / asset.file_name)


def _format_date(value: Optional[dt.datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "unknown"


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def _row_cells(cells: Iterable[Cell]) -> List[str]:
    rendered: List[str] = []
    for cell in cells:
        rendered.append(_escape_cell(cell.text))
        rendered.extend("" for _ in range(cell.colspan - 1))
    return rendered


def render_table(table: Table) -> str:
    rows = [_row_cells(row) for row in table.rows]
    width = max([len(table.headers)] + [len(row) for row in rows])
    headers = [_escape_cell(text) for text in table.headers]
    headers += [""] * (width - len(headers))
    lines = []
    if table.caption:
        lines.append(f"*{table.caption}*")
        lines.append("")
    lines.append("| " + " | ".join(headers) + " |")
    lines.append("|" + "|".join(" --- " for _ in range(width)) + "|")
    for row in rows:
        row = row + [""] * (width - len(row))
        lines.append("| " + " | ".join(row) + " |")
    return "\n".join(lines)


def render_image(
    node: ImageNode,
    reference: Optional[ImageReference],
    asset: Optional[DownloadedAsset],
) -> str:
    alt = (reference.alt_text if reference else "") or node.alt_text or f"Image {node.index + 1}"
    caption = (reference.caption if reference else "") or node.caption
    if asset is None:
        placeholder = f"{alt} - {caption}" if caption else alt
        return f"*[Image: {placeholder}]*"
    rendered = f"![{alt}]({asset_link(asset)})"
    if caption:
        rendered += f"\n\n*{caption}*"
    return rendered


def render_node(
    node: StructureNode,
    references: Dict[int, ImageReference],
    assets: Dict[int, DownloadedAsset],
    heading_offset: int = 0,
) -> str:
    if isinstance(node, Heading):
        level = min(6, node.level + heading_offset)
        return f"{'#' * level} {node.text}"
    if isinstance(node, Paragraph):
        return node.text
    if isinstance(node, ListBlock):
        if node.ordered:
            return "\n".join(f"{i}. {item}" for i, item in enumerate(node.items, start=1))
        return "\n".join(f"- {item}" for item in node.items)
    if isinstance(node, Quote):
        return "\n".join(f"> {line}" for line in node.text.splitlines() or [""])
    if isinstance(node, Code):
        body = node.text.strip("\n")
        return f"```\n{body}\n```"
    if isinstance(node, ImageNode):
        return render_image(node, references.get(node.index), assets.get(node.index))
    if isinstance(node, Table):
        return render_table(node)
    raise TypeError(f"Unsupported structure node {node!r}")


def render_post(exported: ExportedPost, number: Optional[int] = None) -> str:
    """Render one post: anchor, title, meta line, and its structure."""
    post = exported.post
    meta = post.meta
    references = {ref.index: ref for ref in post.content.images}
    assets = {asset.index: asset for asset in exported.assets}

    title = meta.title or "(untitled)"
    if number is not None:
        title = f"{number}. {title}"
    author = meta.author.name if meta.author else "Unknown Author"
    lines = [
        f'<a id="post-{meta.id}"></a>',
        "",
        f"### {title}",
        "",
        f"**Date:** {_format_date(meta.date)} | **Author:** {author}",
        "",
    ]
    if meta.categories:
        lines += ["**Categories:** " + ", ".join(term.name for term in meta.categories), ""]
    if meta.tags:
        lines += ["**Tags:** " + ", ".join(term.name for term in meta.tags), ""]

    blocks = [
        render_node(node, references, assets, heading_offset=3)
        for node in post.content.structure
    ]
    lines.append("\n\n".join(block for block in blocks if block))
    lines += ["", "---", ""]
    return "\n".join(lines)


def render_summary(summary: ContentSummary) -> str:
    lines = [
        "## Content summary",
        "",
        f"- **Total posts:** {summary.total_posts}",
        f"- **Total words:** {summary.total_words:,}",
        f"- **Average words per post:** {round(summary.average_words)}",
        f"- **Earliest post:** {_format_date(summary.date_range.earliest)}",
        f"- **Latest post:** {_format_date(summary.date_range.latest)}",
        "",
    ]
    if summary.categories:
        lines += [f"### Categories ({len(summary.categories)})", ""]
        lines += [f"- **{entry.name}** ({entry.count} posts)" for entry in summary.categories]
        lines.append("")
    if summary.tags:
        lines += ["### Popular tags", ""]
        lines += [f"- {entry.name} ({entry.count})" for entry in summary.tags[:MAX_SUMMARY_TAGS]]
        lines.append("")
    if summary.authors:
        lines += ["### Authors", ""]
        lines += [f"- **{entry.name}** ({entry.count} posts)" for entry in summary.authors]
        lines.append("")
    lines += ["---", ""]
    return "\n".join(lines)


def render_table_of_contents(posts: Sequence[ExportedPost]) -> str:
    lines = ["## Table of contents", ""]
    for number, exported in enumerate(posts, start=1):
        meta = exported.post.meta
        lines.append(
            f"{number}. [{meta.title}](#post-{meta.id}) - *{_format_date(meta.date)}*"
        )
    lines += ["", "---", ""]
    return "\n".join(lines)


def sort_posts(posts: Sequence[ExportedPost], by_title: bool = False) -> List[ExportedPost]:
    if by_title:
        return sorted(posts, key=lambda item: item.post.meta.title.lower())
    oldest = dt.datetime.min
    return sorted(
        posts,
        key=lambda item: (item.post.meta.date or oldest).replace(tzinfo=None),
        reverse=True,
    )


def group_by_category(posts: Iterable[ExportedPost]) -> "OrderedDict[str, List[ExportedPost]]":
    """Group posts under their first category, in first-seen order."""
    groups: "OrderedDict[str, List[ExportedPost]]" = OrderedDict()
    for exported in posts:
        categories = exported.post.meta.categories
        name = categories[0].name if categories else UNCATEGORIZED
        groups.setdefault(name, []).append(exported)
    return groups


def compose_markdown(
    posts: Sequence[ExportedPost],
    summary: ContentSummary,
    options: Optional[MarkdownOptions] = None,
) -> str:
    """Generate the full export document including front matter."""
    options = options or MarkdownOptions()
    timestamp = (
        dt.datetime.now(dt.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )
    ordered = sort_posts(posts, by_title=options.sort_by_title)

    front_matter_lines = ["---", f"title: {options.site_name}"]
    if options.source_url:
        front_matter_lines.append(f"source_url: {options.source_url}")
    front_matter_lines.append(f"exported_at: {timestamp}")
    front_matter_lines.append(f"posts: {summary.total_posts}")
    front_matter_lines.append("---\n")

    sections = [
        "\n".join(front_matter_lines),
        f"# {options.site_name}\n",
        f"**Total posts:** {summary.total_posts}\n\n---\n",
    ]
    if options.include_summary:
        sections.append(render_summary(summary))
    if options.include_toc:
        sections.append(render_table_of_contents(ordered))

    sections.append("## Posts\n")
    if options.group_by_category:
        number = 1
        for name, group in group_by_category(ordered).items():
            sections.append(f"## {name}\n")
            for exported in group:
                sections.append(render_post(exported, number))
                number += 1
    else:
        for number, exported in enumerate(ordered, start=1):
            sections.append(render_post(exported, number))

    return "\n".join(sections).rstrip() + "\n"
