"""
Session cache in front of an ArtworkLookup.

Lookups run on a thread pool. Results are cached per (title, category) for
the lifetime of the cache, and concurrent requests for the same key share a
single in-flight future.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor

from ..exceptions import ArtworkLookupError
from ..interfaces import ArtworkLookup
from ..logging_config import get_logger
from ..models import Category

logger = get_logger("artwork_cache")

CacheKey = tuple[str, Category]


class CachedArtworkLookup:
    """
    Caching, de-duplicating front for an artwork lookup.

    A definitive answer (a URL, or None for "no match") is cached. A failed
    lookup resolves to None but is not cached, so a later request retries.
    """

    def __init__(self, lookup: ArtworkLookup, max_workers: int = 4):
        """
        Initialize cache.

        Args:
            lookup: Underlying (blocking) lookup
            max_workers: Concurrent lookups allowed
        """
        self.lookup = lookup
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="artwork")
        self._cache = dict[CacheKey, str | None]()
        self._in_flight = dict[CacheKey, Future[str | None]]()
        self._lock = threading.Lock()
        self.upstream_calls = 0

    def request(self, title: str, category: Category) -> Future[str | None]:
        """Start (or join) a lookup. Cached keys resolve immediately."""
        key: CacheKey = (title, category)
        with self._lock:
            if key in self._cache:
                done = Future[str | None]()
                done.set_result(self._cache[key])
                return done
            existing = self._in_flight.get(key)
            if existing is not None:
                logger.debug(f"Joining in-flight lookup for '{title}'")
                return existing

            self.upstream_calls += 1
            future = self._executor.submit(self._resolve, key)
            self._in_flight[key] = future
            return future

    def get(self, title: str, category: Category, timeout: float | None = None) -> str | None:
        """Blocking lookup."""
        return self.request(title, category).result(timeout=timeout)

    def _resolve(self, key: CacheKey) -> str | None:
        title, category = key
        try:
            url = self.lookup.lookup(title, category)
        except ArtworkLookupError as e:
            logger.warning(f"Artwork lookup for '{title}' failed: {e}")
            return None
        else:
            with self._lock:
                self._cache[key] = url
            return url
        finally:
            with self._lock:
                _ = self._in_flight.pop(key, None)

    def cached(self, title: str, category: Category) -> bool:
        with self._lock:
            return (title, category) in self._cache

    def close(self) -> None:
        self._executor.shutdown(wait=True)
