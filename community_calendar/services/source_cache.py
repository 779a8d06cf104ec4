"""
In-process cache of per-source fetch results.

Keeps the live ``/api/events/{source_type}`` endpoints from hitting upstream
APIs on every page load. Loads go through an ``alru_cache`` keyed by
``"{source_type}:{identifier}"``, so entries expire after the TTL and
concurrent requests for the same source share one upstream call. Results a
loader marks as uncacheable (failed fetches) are returned but never stored.
"""

from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from async_lru import alru_cache

from community_calendar.utils.logger import setup_logger

logger = setup_logger("source_cache")

T = TypeVar("T")

DEFAULT_MAXSIZE = 512

Loader = Callable[[], Awaitable[tuple[T, bool]]]


class _UncacheableResult(Exception):
    def __init__(self, value):
        super().__init__("result not cached")
        self.value = value


class SourceCache(Generic[T]):
    def __init__(self, ttl_seconds: float, maxsize: int = DEFAULT_MAXSIZE):
        self.ttl_seconds = ttl_seconds
        self._loaders: dict[str, Loader] = {}
        self._cached_load = alru_cache(maxsize=maxsize, ttl=ttl_seconds)(self._run_loader)

    @staticmethod
    def key(source_type: str, identifier: str) -> str:
        return f"{source_type}:{identifier}"

    async def _run_loader(self, key: str) -> T:
        value, cacheable = await self._loaders[key]()
        if not cacheable:
            # alru_cache never stores a call that raised
            raise _UncacheableResult(value)
        return value

    async def get_or_load(self, key: str, loader: Loader) -> T:
        """
        Return the cached value for ``key``, or await ``loader`` for it.

        ``loader`` returns ``(value, cacheable)``; only cacheable values are
        kept for the TTL.
        """
        self._loaders[key] = loader
        try:
            return await self._cached_load(key)
        except _UncacheableResult as e:
            logger.debug(f"Not caching failed load: {key}")
            return e.value
        finally:
            if self._loaders.get(key) is loader:
                del self._loaders[key]

    def invalidate(self, key: str) -> bool:
        return self._cached_load.cache_invalidate(key)

    def clear(self) -> None:
        count = len(self)
        self._cached_load.cache_clear()
        logger.info(f"Cleared {count} cached source result(s)")

    def __len__(self) -> int:
        return self._cached_load.cache_info().currsize

    def stats(self) -> dict[str, int]:
        info = self._cached_load.cache_info()
        return {"entries": info.currsize, "hits": info.hits, "misses": info.misses}
