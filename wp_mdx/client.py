"""Minimal WordPress REST API client."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from .config import DEFAULT_PER_PAGE, DEFAULT_USER_AGENT
from .errors import SourceFetchError
from .utils import normalize_site_url

logger = logging.getLogger("wp_mdx")

REQUEST_TIMEOUT = 30.0


class WordPressClient:
    """Read posts, pages and taxonomy listings from ``/wp-json/wp/v2``."""

    def __init__(
        self,
        site_url: str,
        session: Optional[requests.Session] = None,
        per_page: int = DEFAULT_PER_PAGE,
        page_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.site_url = normalize_site_url(site_url)
        self.api_url = f"{self.site_url}/wp-json/wp/v2"
        self.per_page = per_page
        self.page_delay = page_delay
        self._sleep = sleep
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", DEFAULT_USER_AGENT)

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self._session.get(url, params=params, timeout=REQUEST_TIMEOUT)

    def _fetch_page(self, endpoint: str, page: int) -> List[Dict[str, Any]]:
        url = f"{self.api_url}/{endpoint}"
        params: Dict[str, Any] = {"page": page, "per_page": self.per_page}
        resp = self._get(url, dict(params, _embed=1))
        if resp.status_code == 400:
            # Some sites reject _embed (or page past the end) with a 400.
            logger.warning("Request with _embed failed for %s page %d; retrying without", endpoint, page)
            resp = self._get(url, params)
        resp.raise_for_status()
        return resp.json()

    def fetch_all(self, endpoint: str = "posts") -> List[Dict[str, Any]]:
        """Collect every item of ``endpoint`` across all pages.

        A failure on the first page raises :class:`SourceFetchError`; a failure
        on a later page stops pagination and keeps what was collected.
        """
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            try:
                batch = self._fetch_page(endpoint, page)
            except (requests.RequestException, ValueError) as exc:
                if page == 1:
                    raise SourceFetchError(f"Cannot fetch {endpoint}: {exc}") from exc
                logger.warning("Stopping %s pagination at page %d: %s", endpoint, page, exc)
                break
            if not batch:
                break
            items.extend(batch)
            logger.info("Fetched %d %s so far", len(items), endpoint)
            page += 1
            self._sleep(self.page_delay)
        return items

    def fetch_posts(self) -> List[Dict[str, Any]]:
        return self.fetch_all("posts")

    def fetch_pages(self) -> List[Dict[str, Any]]:
        return self.fetch_all("pages")

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = self._get(url, params)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Request to %s failed: %s", url, exc)
            return None

    def fetch_categories(self) -> List[Dict[str, Any]]:
        return self._get_json(f"{self.api_url}/categories", {"per_page": 100}) or []

    def fetch_tags(self) -> List[Dict[str, Any]]:
        return self._get_json(f"{self.api_url}/tags", {"per_page": 100}) or []

    def site_info(self) -> Optional[Dict[str, Any]]:
        return self._get_json(f"{self.site_url}/wp-json")

    def total_posts(self) -> Optional[int]:
        """Post count reported by the ``X-WP-Total`` header."""
        try:
            resp = self._get(f"{self.api_url}/posts", {"per_page": 1})
        except requests.RequestException as exc:
            logger.error("Could not read post count: %s", exc)
            return None
        total = resp.headers.get("X-WP-Total")
        return int(total) if total and total.isdigit() else None

    def check_api_availability(self) -> bool:
        try:
            resp = self._get(f"{self.api_url}/posts", {"per_page": 1})
        except requests.RequestException as exc:
            logger.error("Cannot reach the WordPress REST API: %s", exc)
            return False
        return resp.ok
