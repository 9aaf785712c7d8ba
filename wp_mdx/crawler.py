"""High-level orchestration for fetching posts and producing the Markdown export."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .client import WordPressClient
from .config import DEFAULT_OUTPUT_NAME, ExportConfig
from .content import process_post
from .errors import MarkupParseError
from .images import ImageAcquisitionEngine
from .markdown import ExportedPost, MarkdownOptions, compose_markdown
from .models import ContentSummary, ProcessedPost
from .summary import summarize_posts
from .utils import slugify

logger = logging.getLogger("wp_mdx")


@dataclass
class ExportResult:
    """Outcome of one export run."""

    output_path: Path
    summary: ContentSummary
    processed: int
    failed: int
    images_downloaded: int
    total_seconds: float


def process_items(items: Sequence[Mapping[str, Any]]) -> List[ProcessedPost]:
    """Process raw items, skipping (and logging) any whose markup cannot be parsed."""
    processed: List[ProcessedPost] = []
    for item in items:
        try:
            processed.append(process_post(item))
        except MarkupParseError as exc:
            logger.error("Skipping item %s: %s", item.get("id"), exc)
    return processed


async def acquire_post_images(
    posts: Sequence[ProcessedPost],
    config: ExportConfig,
    engine: Optional[ImageAcquisitionEngine] = None,
) -> List[ExportedPost]:
    """Download the images of each post in turn."""
    exported: List[ExportedPost] = []
    for post in posts:
        if not config.download_images or not post.content.images:
            exported.append(ExportedPost(post=post))
            continue
        post_engine = engine or ImageAcquisitionEngine(
            config.images_dir,
            optimize=config.optimize_images,
            prefix=f"post{post.meta.id}" if post.meta.id is not None else "image",
            config=config.acquisition,
        )
        assets = await post_engine.acquire(post.content.images, config.site_url)
        logger.info(
            "Post %s: %d/%d image(s) downloaded",
            post.meta.id,
            len(assets),
            len(post.content.images),
        )
        exported.append(ExportedPost(post=post, assets=assets))
    return exported


async def run_export(
    config: ExportConfig,
    client: Optional[WordPressClient] = None,
    engine: Optional[ImageAcquisitionEngine] = None,
) -> ExportResult:
    """Fetch every item, process it, download images and write the Markdown file."""
    overall_start = time.perf_counter()
    client = client or WordPressClient(config.site_url, per_page=config.per_page)

    items: List[Dict[str, Any]] = client.fetch_posts()
    if config.include_pages:
        items.extend(client.fetch_pages())
    logger.info("Fetched %d item(s) from %s", len(items), client.site_url)

    posts = process_items(items)
    summary = summarize_posts(posts)
    exported = await acquire_post_images(posts, config, engine)

    site_info = client.site_info() or {}
    options = MarkdownOptions(
        site_name=site_info.get("name") or "WordPress Site",
        source_url=client.site_url,
        include_toc=config.include_toc,
        include_summary=config.include_summary,
        group_by_category=config.group_by_category,
        sort_by_title=config.sort_by_title,
    )
    markdown = compose_markdown(exported, summary, options)

    config.output_root.mkdir(parents=True, exist_ok=True)
    name = config.output_name
    if name.endswith(".md"):
        name = name[: -len(".md")]
    output_path = config.output_root / f"{slugify(name, fallback=DEFAULT_OUTPUT_NAME)}.md"
    output_path.write_text(markdown, encoding="utf-8")
    logger.info("Saved Markdown to %s", output_path)

    return ExportResult(
        output_path=output_path,
        summary=summary,
        processed=len(posts),
        failed=len(items) - len(posts),
        images_downloaded=sum(len(item.assets) for item in exported),
        total_seconds=time.perf_counter() - overall_start,
    )
