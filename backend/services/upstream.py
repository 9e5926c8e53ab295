"""Shared plumbing for the Jira and GitHub clients.

Paginated GET requests, the per-client TTL cache with stale fallback, and
translation of HTTP failures into ``services.errors`` types.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

import requests

from services.cache import TTLCache, make_cache_key
from services.errors import UpstreamServerError, error_for_status

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of upstream results. ``total`` is None when not reported."""

    items: list
    total: Optional[int] = None


class UpstreamClient:
    """Base class for a paginated, cached JSON API client.

    Subclasses set ``name`` and ``page_size`` and implement
    ``_page_params`` and ``_parse_page`` for their pagination scheme.
    """

    name = "Upstream"
    page_size = 50
    max_total = 1000

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 cache: Optional[TTLCache] = None, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._owner = threading.get_ident()
        self._local = threading.local()
        self.cache = cache if cache is not None else TTLCache()
        self.timeout = timeout

    def _session(self) -> requests.Session:
        """Session for the calling thread.

        The constructing thread uses ``self.session``. Other threads (fan-out
        workers, request threads) each get their own copy carrying the same
        headers and auth, since a ``requests.Session`` must not be shared
        across threads.
        """
        if threading.get_ident() == self._owner:
            return self.session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.session.headers)
            session.auth = self.session.auth
            self._local.session = session
        return session

    def _request(self, endpoint: str, params: Optional[dict] = None):
        """GET ``endpoint`` and return decoded JSON, raising a MetricsError on failure."""
        try:
            response = self._session().get(
                f"{self.base_url}{endpoint}",
                params=params,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{self.name} request failed: GET {endpoint} ({type(e).__name__})")
            raise error_for_status(None, endpoint, "GET", self.name) from e

        if response.status_code >= 400:
            logger.error(f"{self.name} returned {response.status_code} for GET {endpoint}")
            raise error_for_status(response.status_code, endpoint, "GET", self.name)

        try:
            return response.json()
        except ValueError as e:
            raise error_for_status(response.status_code, endpoint, "GET", self.name) from e

    def _page_params(self, start_at: int, page_size: int) -> dict:
        raise NotImplementedError

    def _parse_page(self, payload) -> Page:
        raise NotImplementedError

    def fetch_page(self, endpoint: str, filters: Optional[dict] = None,
                   start_at: int = 0, page_size: Optional[int] = None) -> Page:
        """Fetch a single page starting at offset ``start_at``."""
        page_size = page_size or self.page_size
        params = dict(filters or {})
        params.update(self._page_params(start_at, page_size))
        return self._parse_page(self._request(endpoint, params))

    def _fetch_all_live(self, endpoint: str, filters: Optional[dict],
                        max_total: int) -> list:
        items = []
        offset = 0

        while True:
            page = self.fetch_page(endpoint, filters, offset, self.page_size)
            items.extend(page.items)
            offset += self.page_size

            if len(items) >= max_total:
                return items[:max_total]
            if page.total is not None and offset >= page.total:
                break
            if len(page.items) < self.page_size:
                break

        return items

    def fetch_all(self, endpoint: str, filters: Optional[dict] = None,
                  max_total: Optional[int] = None) -> list:
        """Fetch every page of ``endpoint``, capped at ``max_total`` items."""
        max_total = max_total or self.max_total
        return self._cached(
            endpoint, dict(filters or {}, _max=max_total),
            lambda: self._fetch_all_live(endpoint, filters, max_total)
        )

    def fetch_one(self, endpoint: str, filters: Optional[dict] = None):
        """Fetch a single, non-paginated JSON document."""
        return self._cached(
            endpoint, dict(filters or {}),
            lambda: self._request(endpoint, filters)
        )

    def _cached(self, endpoint: str, filters: dict, load: Callable):
        key = make_cache_key(self.name, endpoint, **filters)
        entry = self.cache.get(key)
        if entry is not None and self.cache.is_fresh(entry):
            return entry.value

        try:
            value = load()
        except UpstreamServerError as e:
            if entry is None:
                raise
            logger.warning(
                f"Degraded mode: {self.name} returned {e.status_code} for {e.method} {e.endpoint}, "
                f"serving cached data from {self.cache.age(entry):.0f}s ago"
            )
            return entry.value

        self.cache.set(key, value)
        return value


def ordered_fan_out(func: Callable, items: Iterable, max_workers: int = 1) -> List:
    """Apply ``func`` to each item and return results in input order.

    Runs sequentially unless ``max_workers`` > 1, in which case at most that
    many calls are in flight at once. The first exception propagates.
    """
    items = list(items)
    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(func, item) for item in items]
        return [future.result() for future in futures]
