"""
Cached API client for the PlagCheck backend.

GETs go through an in-memory response cache with per-path TTLs; writes
always reach the backend and then clear the cached reads they affect.
"""
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from plagcheck.cache import (
    InvalidationRules,
    RequestCoalescer,
    ResponseCache,
    SKIP_CACHE_PARAMS,
    get_response_cache,
    make_signature,
    strip_skip_cache,
)
from plagcheck.errors import PlagCheckError
from plagcheck.session import SessionStore
from plagcheck.transport import ApiResponse, HttpTransport
from config.settings import Settings, settings

load_dotenv()

logger = logging.getLogger("api_client")


def _wants_skip(params: Optional[Dict[str, Any]]) -> bool:
    """True when a bypass flag rides along in the query params."""
    if not params:
        return False
    return any(params.get(flag) for flag in SKIP_CACHE_PARAMS)


class CachedApiClient:
    """
    Backend client with GET caching.

    - GET: served from cache while fresh, otherwise fetched (identical
      concurrent fetches share one request) and stored
    - POST/PUT/PATCH/DELETE: never touch cached values; on success the
      prefixes given by the invalidation rules are cleared
    - Transport errors pass through untouched and are never cached
    """

    def __init__(
        self,
        transport: HttpTransport,
        cache: Optional[ResponseCache] = None,
        invalidation: Optional[InvalidationRules] = None,
        coalescer: Optional[RequestCoalescer] = None,
        cache_enabled: bool = True,
        health_timeout: float = 5.0,
    ):
        self.transport = transport
        self.cache = cache if cache is not None else ResponseCache()
        self.invalidation = invalidation if invalidation is not None else InvalidationRules()
        self._coalescer = coalescer if coalescer is not None else RequestCoalescer()
        self.cache_enabled = cache_enabled
        self.health_timeout = health_timeout

    # ===== READS =====

    def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        skip_cache: bool = False,
        **options: Any,
    ) -> ApiResponse:
        """
        GET `path`, answering from cache when possible.

        Args:
            path: Resource path, e.g. "/theses"
            params: Query parameters; `_skip_cache`/`_skipCache` here acts like
                `skip_cache=True` and is never sent upstream
            skip_cache: Skip the cache read; the fresh result is still stored
            **options: Passed to the transport (timeout, headers, ...)

        Returns:
            The backend response. A cached response is the stored object
            itself, so callers must not mutate it.
        """
        bypass = skip_cache or _wants_skip(params) or not self.cache_enabled
        query = strip_skip_cache(params)
        signature = make_signature(path, query)

        if not bypass:
            cached = self.cache.lookup(signature, path)
            if cached is not None:
                return cached
        else:
            logger.debug(f"CACHE BYPASS: {signature}")

        def fetch() -> ApiResponse:
            generation = self.cache.generation
            response = self.transport.request("GET", path, params=query, **options)
            if self.cache_enabled:
                # Skipped if a write cleared the cache while this was in flight
                self.cache.store(signature, path, response, generation=generation)
            return response

        logger.info(f"Fetching {signature}")
        return self._coalescer.get_or_fetch(signature, fetch)

    # ===== WRITES =====

    def _write(self, method: str, path: str, **options: Any) -> ApiResponse:
        response = self.transport.request(method, path, **options)
        for prefix in self.invalidation.prefixes_for(path):
            self.cache.clear(prefix)
        return response

    def post(self, path: str, json: Any = None, **options: Any) -> ApiResponse:
        return self._write("POST", path, json=json, **options)

    def put(self, path: str, json: Any = None, **options: Any) -> ApiResponse:
        return self._write("PUT", path, json=json, **options)

    def patch(self, path: str, json: Any = None, **options: Any) -> ApiResponse:
        return self._write("PATCH", path, json=json, **options)

    def delete(self, path: str, **options: Any) -> ApiResponse:
        return self._write("DELETE", path, **options)

    # ===== CACHE CONTROL =====

    def clear_cache(self, prefix: Optional[str] = None) -> int:
        """Drop cached GETs under `prefix` (plain string prefix), or all of them."""
        return self.cache.clear(prefix)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Cache and coalescer statistics."""
        stats = self.cache.get_stats()
        stats["coalescer"] = self._coalescer.get_stats()
        stats["backend_down"] = self.transport.status.is_down
        return stats

    # ===== HEALTH =====

    def health_check(self) -> Dict[str, Any]:
        """
        Check the backend's /health endpoint.

        Skips the request entirely while the backend was marked down within
        the recheck interval.
        """
        status = self.transport.status
        if status.recently_down():
            return {"status": "down", "message": "Backend is currently unavailable"}

        try:
            response = self.transport.request("GET", "/health", timeout=self.health_timeout)
        except PlagCheckError as e:
            status.mark_down()
            logger.warning(f"Health check failed: {e}")
            return {
                "status": "down",
                "message": "Backend is currently unavailable",
                "error": str(e),
            }

        status.mark_up()
        return {"status": "up", "data": response.data}


def create_api_client(config: Settings = settings) -> CachedApiClient:
    """Build a client wired from settings."""
    transport = HttpTransport(
        base_url=config.base_url,
        timeout=config.request_timeout_seconds,
        session_store=SessionStore(config.session_file),
    )
    transport.status.recheck_interval = config.backend_recheck_interval_seconds
    logger.info(f"API URL configured as: {transport.base_url}")
    return CachedApiClient(
        transport=transport,
        cache=get_response_cache(),
        coalescer=RequestCoalescer(timeout=config.coalesce_timeout_seconds),
        cache_enabled=config.cache_enabled,
        health_timeout=config.health_timeout_seconds,
    )


# Application-wide client, built on first use
_api_client: Optional[CachedApiClient] = None


def get_api_client() -> CachedApiClient:
    """Get or create the shared API client."""
    global _api_client
    if _api_client is None:
        _api_client = create_api_client()
    return _api_client
