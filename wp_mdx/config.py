"""Configuration objects and constants for the exporter."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 wp-mdx"
)
DEFAULT_CONCURRENCY = 3
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 1.0
DEFAULT_WAVE_PAUSE_SECONDS = 0.5
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_MAX_DIMENSIONS: Tuple[int, int] = (800, 600)
DEFAULT_JPEG_QUALITY = 80
DEFAULT_PER_PAGE = 50
DEFAULT_OUTPUT_NAME = "wordpress-export"


@dataclass
class AcquisitionConfig:
    """Tunables for the image acquisition engine."""

    concurrency: int = DEFAULT_CONCURRENCY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS
    wave_pause_seconds: float = DEFAULT_WAVE_PAUSE_SECONDS
    timeout: float = DEFAULT_FETCH_TIMEOUT
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    max_dimensions: Tuple[int, int] = DEFAULT_MAX_DIMENSIONS
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class ExportConfig:
    """Top-level settings that control crawling and Markdown export."""

    site_url: str
    output_root: Path
    output_name: str = DEFAULT_OUTPUT_NAME
    include_pages: bool = False
    include_toc: bool = True
    include_summary: bool = True
    group_by_category: bool = False
    sort_by_title: bool = False
    download_images: bool = True
    optimize_images: bool = True
    per_page: int = DEFAULT_PER_PAGE
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)

    @property
    def images_dir(self) -> Path:
        return self.output_root / "images"
