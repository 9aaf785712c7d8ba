"""Command-line entry point for the WordPress Markdown exporter."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from .client import WordPressClient
from .config import ExportConfig
from .crawler import run_export
from .errors import WpMdxError
from .utils import normalize_site_url

logger = logging.getLogger("wp_mdx.cli")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-u",
        "--url",
        required=True,
        help="WordPress site URL (for example https://example.com)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_export_arguments(parser: argparse.ArgumentParser) -> None:
    _add_common_arguments(parser)
    parser.add_argument(
        "-o",
        "--output",
        default="wordpress-export",
        help="Name of the Markdown file to write",
    )
    parser.add_argument(
        "-d",
        "--dir",
        default="output",
        type=Path,
        help="Directory where Markdown and images should be written",
    )
    parser.add_argument(
        "--pages",
        action="store_true",
        help="Export pages in addition to posts",
    )
    parser.add_argument(
        "--no-toc",
        action="store_true",
        help="Do not include a table of contents",
    )
    parser.add_argument(
        "--no-summary",
        action="store_true",
        help="Do not include the content summary section",
    )
    parser.add_argument(
        "--group-by-category",
        action="store_true",
        help="Group posts under their first category",
    )
    parser.add_argument(
        "--sort-by-title",
        action="store_true",
        help="Sort posts by title instead of newest first",
    )
    parser.add_argument(
        "--no-images",
        action="store_true",
        help="Do not download embedded images",
    )
    parser.add_argument(
        "--no-optimize",
        action="store_true",
        help="Keep downloaded images as-is instead of writing resized copies",
    )
    parser.add_argument(
        "--per-page",
        type=int,
        default=50,
        help="Items requested per REST API page",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wp-mdx",
        description="Export WordPress posts to a single Markdown document.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser(
        "export", help="Crawl a site and export every post to Markdown"
    )
    _add_export_arguments(export_parser)

    check_parser = subparsers.add_parser(
        "check", help="Check that a site exposes the WordPress REST API"
    )
    _add_common_arguments(check_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    return parser.parse_args(argv)


def _run_export(args: argparse.Namespace) -> int:
    config = ExportConfig(
        site_url=normalize_site_url(args.url),
        output_root=Path(args.dir).resolve(),
        output_name=args.output,
        include_pages=args.pages,
        include_toc=not args.no_toc,
        include_summary=not args.no_summary,
        group_by_category=args.group_by_category,
        sort_by_title=args.sort_by_title,
        download_images=not args.no_images,
        optimize_images=not args.no_optimize,
        per_page=args.per_page,
    )
    client = WordPressClient(config.site_url, per_page=config.per_page)
    if not client.check_api_availability():
        logger.error("The WordPress REST API is not available at %s", config.site_url)
        return 1

    result = asyncio.run(run_export(config, client))
    summary = result.summary
    logger.info(
        "Finished in %.2fs (%d/%d processed, %d image(s))",
        result.total_seconds,
        result.processed,
        result.processed + result.failed,
        result.images_downloaded,
    )
    logger.info(
        "Posts: %d | Words: %d | Categories: %d | Tags: %d | Authors: %d",
        summary.total_posts,
        summary.total_words,
        len(summary.categories),
        len(summary.tags),
        len(summary.authors),
    )
    return 0


def _run_check(args: argparse.Namespace) -> int:
    client = WordPressClient(args.url)
    if not client.check_api_availability():
        logger.error("The WordPress REST API is not available at %s", client.site_url)
        return 1

    info = client.site_info() or {}
    logger.info("Site: %s", info.get("name") or "unknown")
    logger.info("Description: %s", info.get("description") or "-")
    logger.info("URL: %s", info.get("url") or client.site_url)
    total = client.total_posts()
    logger.info("Posts: %s", total if total is not None else "unknown")
    logger.info("Categories: %d", len(client.fetch_categories()))
    logger.info("Tags: %d", len(client.fetch_tags()))
    logger.info("Ready to export: wp-mdx export -u %s", client.site_url)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.command == "export":
            return _run_export(args)
        return _run_check(args)
    except WpMdxError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
