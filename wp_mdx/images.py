"""Image acquisition: resolving, downloading and optimizing embedded images."""

from __future__ import annotations

import asyncio
import itertools
import logging
import posixpath
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence
from urllib.parse import unquote, urljoin, urlparse

import requests
from filetype import guess
from PIL import Image

from .config import AcquisitionConfig
from .errors import AcquisitionFailure, OptimizationFailure, UnresolvableAssetError
from .models import DownloadedAsset, ImageReference

logger = logging.getLogger("wp_mdx")

DEFAULT_EXTENSION = ".jpg"
OPTIMIZED_PREFIX = "optimized_"
ALLOWED_IMAGE_TYPES = {"png", "jpg", "jpeg", "gif", "webp", "bmp", "tiff", "svg"}
STREAM_CHUNK_BYTES = 64 * 1024
SNIFF_BYTES = 262

Sleep = Callable[[float], Awaitable[None]]


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def resolve_source_url(src: str, base_url: str) -> str:
    """Turn an image ``src`` into an absolute http(s) URL.

    Protocol-relative and relative sources are resolved against the origin of
    ``base_url``. Data URIs, other schemes and anything that cannot be built
    into a URL with a host raise :class:`UnresolvableAssetError`.
    """
    src = (src or "").strip()
    if not src:
        raise UnresolvableAssetError("Empty image source")
    if src.lower().startswith("data:"):
        raise UnresolvableAssetError("Inline data URI images are not downloadable")
    try:
        parsed = urlparse(src)
        if parsed.scheme:
            if parsed.scheme.lower() in ("http", "https") and parsed.netloc:
                return src
            raise UnresolvableAssetError(f"Unsupported image source {src!r}")
        base = urlparse(base_url or "")
        if base.scheme.lower() not in ("http", "https") or not base.netloc:
            raise UnresolvableAssetError(
                f"Cannot resolve {src!r} against base URL {base_url!r}"
            )
        if src.startswith("//"):
            resolved = f"{base.scheme}:{src}"
        else:
            resolved = urljoin(f"{base.scheme}://{base.netloc}/", src)
        if not urlparse(resolved).netloc:
            raise UnresolvableAssetError(f"Resolved URL {resolved!r} has no host")
    except ValueError as exc:
        raise UnresolvableAssetError(f"Malformed image source {src!r}: {exc}") from exc
    return resolved


def extension_for(url: str) -> str:
    """Image extension taken from the URL path, ``.jpg`` when it has no known one."""
    name = posixpath.basename(unquote(urlparse(url).path))
    ext = posixpath.splitext(name)[1].lower()
    if ext[1:] in ALLOWED_IMAGE_TYPES:
        return ext
    return DEFAULT_EXTENSION


@dataclass
class AcquisitionStats:
    """Counters describing one engine's work so far."""

    waves: int = 0
    attempts: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    in_flight: int = 0
    peak_in_flight: int = 0


class ImageAcquisitionEngine:
    """Download image references with bounded concurrency and retries.

    References are dispatched in waves as wide as the concurrency limit, with
    a semaphore bounding in-flight fetches and a short pause between waves.
    Each fetch is retried with linear backoff; a reference that cannot be
    resolved, or whose retries are exhausted, is logged and left out of the
    result. One failure never cancels its siblings.
    """

    def __init__(
        self,
        images_dir: Path,
        *,
        optimize: bool = True,
        prefix: str = "image",
        config: Optional[AcquisitionConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.images_dir = Path(images_dir)
        self.optimize = optimize
        self.prefix = prefix or "image"
        self.config = config or AcquisitionConfig()
        self.stats = AcquisitionStats()
        self._session = session or requests.Session()
        self._session.max_redirects = self.config.max_redirects
        self._sleep = sleep
        self._run_id = uuid.uuid4().hex[:8]
        self._sequence = itertools.count()
        self._slots: Optional[asyncio.Semaphore] = None

    def _file_name(self, position: int, url: str) -> str:
        token = f"{self._run_id}-{next(self._sequence)}"
        return f"{self.prefix}_{position}_{token}{extension_for(url)}"

    def _fetch_to_file(self, url: str, destination: Path) -> None:
        """Stream ``url`` into ``destination``; runs in a worker thread."""
        headers = {"User-Agent": self.config.user_agent}
        try:
            with self._session.get(
                url, headers=headers, timeout=self.config.timeout, stream=True
            ) as resp:
                resp.raise_for_status()
                if not 200 <= resp.status_code < 300:
                    raise AcquisitionFailure(f"HTTP {resp.status_code} for {url}")
                with destination.open("wb") as handle:
                    for chunk in resp.iter_content(chunk_size=STREAM_CHUNK_BYTES):
                        if chunk:
                            handle.write(chunk)
        except (requests.RequestException, OSError) as exc:
            destination.unlink(missing_ok=True)
            raise AcquisitionFailure(f"Failed to fetch {url}: {exc}") from exc
        except AcquisitionFailure:
            destination.unlink(missing_ok=True)
            raise

    async def _fetch_with_retry(self, url: str, destination: Path) -> None:
        attempts = max(1, self.config.max_attempts)
        for attempt in range(1, attempts + 1):
            self.stats.attempts += 1
            try:
                async with self._slots:
                    self.stats.in_flight += 1
                    self.stats.peak_in_flight = max(
                        self.stats.peak_in_flight, self.stats.in_flight
                    )
                    try:
                        await asyncio.to_thread(self._fetch_to_file, url, destination)
                    finally:
                        self.stats.in_flight -= 1
                return
            except AcquisitionFailure as exc:
                if attempt == attempts:
                    raise
                delay = attempt * self.config.backoff_seconds
                logger.debug(
                    "Attempt %d/%d for %s failed (%s); retrying in %.1fs",
                    attempt,
                    attempts,
                    url,
                    exc,
                    delay,
                )
                await self._sleep(delay)

    def _optimize(self, source: Path) -> Path:
        """Write a downscaled JPEG copy next to ``source`` and return its path."""
        with source.open("rb") as handle:
            head = handle.read(SNIFF_BYTES)
        if detect_image_format(head) is None:
            raise OptimizationFailure(f"{source.name} is not a raster image")
        target = source.with_name(OPTIMIZED_PREFIX + source.name)
        try:
            with Image.open(source) as image:
                # thumbnail() keeps the aspect ratio and never enlarges.
                image.thumbnail(self.config.max_dimensions)
                if image.mode not in ("RGB", "L"):
                    image = image.convert("RGB")
                image.save(target, "JPEG", quality=self.config.jpeg_quality)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            target.unlink(missing_ok=True)
            raise OptimizationFailure(f"Could not re-encode {source.name}: {exc}") from exc
        return target

    async def _acquire_one(
        self,
        position: int,
        reference: ImageReference,
        base_url: str,
    ) -> Optional[DownloadedAsset]:
        try:
            url = resolve_source_url(reference.source_url, base_url)
        except UnresolvableAssetError as exc:
            logger.warning("Skipping image %d: %s", reference.index, exc)
            self.stats.skipped += 1
            return None

        file_name = self._file_name(position, url)
        destination = self.images_dir / file_name
        try:
            await self._fetch_with_retry(url, destination)
        except AcquisitionFailure as exc:
            logger.warning(
                "Dropping image %s after %d attempts: %s",
                url,
                self.config.max_attempts,
                exc,
            )
            self.stats.failed += 1
            return None

        optimized_path = destination
        if self.optimize:
            try:
                optimized_path = await asyncio.to_thread(self._optimize, destination)
            except OptimizationFailure as exc:
                logger.warning("Keeping original for %s: %s", url, exc)

        self.stats.succeeded += 1
        logger.debug("Saved image %d from %s to %s", reference.index, url, optimized_path)
        return DownloadedAsset(
            index=reference.index,
            original_path=str(destination),
            optimized_path=str(optimized_path),
            file_name=optimized_path.name,
            source_url=url,
        )

    async def acquire(
        self,
        references: Sequence[ImageReference],
        base_url: str,
    ) -> List[DownloadedAsset]:
        """Download every reference, returning the assets that succeeded.

        Result order is not significant; join assets to structure nodes by
        their ``index``.
        """
        if not references:
            return []
        self.images_dir.mkdir(parents=True, exist_ok=True)
        width = max(1, self.config.concurrency)
        self._slots = asyncio.Semaphore(width)

        assets: List[DownloadedAsset] = []
        for start in range(0, len(references), width):
            if start:
                await self._sleep(self.config.wave_pause_seconds)
            wave = references[start : start + width]
            self.stats.waves += 1
            logger.debug(
                "Acquiring wave %d of %d (size: %d)",
                self.stats.waves,
                (len(references) + width - 1) // width,
                len(wave),
            )
            results = await asyncio.gather(
                *(
                    self._acquire_one(start + offset, reference, base_url)
                    for offset, reference in enumerate(wave)
                ),
                return_exceptions=True,
            )
            for reference, result in zip(wave, results):
                if isinstance(result, Exception):
                    logger.error(
                        "Unexpected error acquiring image %d",
                        reference.index,
                        exc_info=result,
                    )
                elif isinstance(result, DownloadedAsset):
                    assets.append(result)
        return assets
