"""
Core cache data structures.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

# Per-call bypass flags; never part of a signature or sent upstream
SKIP_CACHE_PARAMS = ("_skip_cache", "_skipCache")


@dataclass
class CacheEntry:
    """
    A cached GET response.

    `path` is kept next to the signature so prefix invalidation and TTL
    lookup work on the request path rather than the serialized params.
    """
    key: str
    path: str
    value: Any
    stored_at: float  # milliseconds, from the owning cache's clock

    def age_ms(self, now: float) -> float:
        """Milliseconds since the entry was stored."""
        return now - self.stored_at

    def is_valid(self, now: float, ttl_ms: float) -> bool:
        """Servable only while strictly younger than its TTL."""
        return self.age_ms(now) < ttl_ms


def strip_skip_cache(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy of params without the bypass flags (None stays None)."""
    if params is None:
        return None
    return {k: v for k, v in params.items() if k not in SKIP_CACHE_PARAMS}


def make_signature(path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build the cache key for a GET request.

    Params are serialized with sorted keys so that two mappings with the
    same items always produce the same signature, whatever their insertion
    order. Values that JSON can't encode fall back to str().
    """
    cleaned = strip_skip_cache(params)
    if not cleaned:
        return path
    return path + json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)
