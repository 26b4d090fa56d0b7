"""
In-memory GET response cache with per-path TTL and prefix invalidation.
"""
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from .core import CacheEntry
from .ttl_policies import CachePolicy

logger = logging.getLogger("cache.manager")


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ResponseCache:
    """
    Signature-keyed store for successful GET responses.

    - One entry per signature; a new store replaces value and timestamp
    - Expiry is lazy: stale entries read as absent and are overwritten by
      the next successful fetch, never purged on their own
    - Values are handed back as stored, not copied
    """

    def __init__(
        self,
        policy: Optional[CachePolicy] = None,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        """
        Args:
            policy: TTL table; defaults to the stock per-path TTLs
            clock: Returns the current time in milliseconds
        """
        self.policy = policy or CachePolicy()
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "stores": 0,
            "invalidated": 0,
            "discarded": 0,
        }
        # Bumped by every clear(); fetches that straddle a clear must not store
        self._generation = 0

    def lookup(self, signature: str, path: str) -> Optional[Any]:
        """Cached value for `signature` if still within its TTL, else None."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(signature)
            if entry is None:
                self._stats["misses"] += 1
                logger.debug(f"CACHE MISS: {signature}")
                return None
            ttl = self.policy.ttl_for(path)
            if not entry.is_valid(now, ttl):
                self._stats["misses"] += 1
                logger.debug(f"CACHE EXPIRED: {signature} [age={entry.age_ms(now):.0f}ms ttl={ttl}ms]")
                return None
            self._stats["hits"] += 1
            logger.debug(f"CACHE HIT: {signature} [age={entry.age_ms(now):.0f}ms]")
            return entry.value

    @property
    def generation(self) -> int:
        """Clear counter; read it before fetching and hand it to store()."""
        with self._lock:
            return self._generation

    def store(
        self,
        signature: str,
        path: str,
        value: Any,
        generation: Optional[int] = None,
    ) -> bool:
        """
        Store or replace the entry for `signature`.

        When `generation` is given and a clear() happened since it was read,
        the value predates that clear and is dropped instead.

        Returns:
            True if the value was stored
        """
        entry = CacheEntry(key=signature, path=path, value=value, stored_at=self._clock())
        with self._lock:
            if generation is not None and generation != self._generation:
                self._stats["discarded"] += 1
                logger.info(f"Discarding fetch for {signature}: cache cleared while in flight")
                return False
            self._entries[signature] = entry
            self._stats["stores"] += 1
        return True

    def clear(self, prefix: Optional[str] = None) -> int:
        """
        Drop entries whose request path starts with `prefix`, or everything.

        Plain string prefix: "/theses" also matches "/thesesArchive".

        Returns:
            Number of entries removed
        """
        with self._lock:
            self._generation += 1
            if prefix is None:
                count = len(self._entries)
                self._entries.clear()
            else:
                doomed = [k for k, e in self._entries.items() if e.path.startswith(prefix)]
                for key in doomed:
                    del self._entries[key]
                count = len(doomed)
            self._stats["invalidated"] += count
        if count:
            logger.info(f"Cleared {count} cache entries" + (f" under '{prefix}'" if prefix else ""))
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, signature: str) -> bool:
        with self._lock:
            return signature in self._entries

    def get_stats(self) -> Dict[str, Any]:
        """Cache statistics."""
        with self._lock:
            lookups = self._stats["hits"] + self._stats["misses"]
            hit_rate = (self._stats["hits"] / lookups * 100) if lookups > 0 else 0
            return {
                "entries": len(self._entries),
                **self._stats,
                "hit_rate_percent": round(hit_rate, 1),
            }


# Application-wide cache, built on first use
_response_cache: Optional[ResponseCache] = None


def get_response_cache() -> ResponseCache:
    """Get or create the shared response cache."""
    global _response_cache
    if _response_cache is None:
        from config.settings import settings

        _response_cache = ResponseCache(
            CachePolicy(
                per_key_ttl=dict(settings.cache_path_ttls_ms),
                default_ttl_ms=settings.cache_default_ttl_ms,
            )
        )
    return _response_cache
