"""
GET response caching with per-path TTL, request coalescing and prefix invalidation.
"""
from .core import CacheEntry, make_signature, strip_skip_cache, SKIP_CACHE_PARAMS
from .ttl_policies import (
    DEFAULT_TTL_MS,
    DEFAULT_INVALIDATION_RULES,
    CachePolicy,
    InvalidationRules,
)
from .coalescer import RequestCoalescer
from .manager import ResponseCache, get_response_cache

__all__ = [
    # Core types
    "CacheEntry",
    "make_signature",
    "strip_skip_cache",
    "SKIP_CACHE_PARAMS",
    # TTL policies
    "DEFAULT_TTL_MS",
    "DEFAULT_INVALIDATION_RULES",
    "CachePolicy",
    "InvalidationRules",
    # Coalescing
    "RequestCoalescer",
    # Store
    "ResponseCache",
    "get_response_cache",
]
