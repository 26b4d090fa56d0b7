"""
Request coalescing for identical in-flight GETs.

When several callers ask for the same signature while a fetch is still
running, only the first one reaches the backend; the rest wait for it and
share its response or its exception.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("cache.coalescer")


@dataclass
class PendingFetch:
    """A fetch that has started but not settled."""
    done: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[BaseException] = None
    followers: int = 0


class RequestCoalescer:
    """
    Shares one upstream call between concurrent callers of the same key.

    The pending marker is dropped as soon as the fetch settles, success or
    failure, so the next caller after that starts a new fetch.

    Usage:
        coalescer = RequestCoalescer()
        response = coalescer.get_or_fetch(
            "/theses/stats",
            lambda: transport.request("GET", "/theses/stats"),
        )
    """

    def __init__(self, timeout: float = 30.0):
        """
        Args:
            timeout: Max seconds a follower waits for the leader's fetch
        """
        self._pending: Dict[str, PendingFetch] = {}
        self._lock = threading.Lock()
        self._timeout = timeout

    def get_or_fetch(self, key: str, fetch_fn: Callable[[], Any]) -> Any:
        """
        Run `fetch_fn`, or join a fetch already running for `key`.

        Raises:
            TimeoutError: A follower gave up waiting on the leader
            Exception: Whatever `fetch_fn` raised, re-raised to every caller
        """
        with self._lock:
            pending = self._pending.get(key)
            if pending is None:
                pending = PendingFetch()
                self._pending[key] = pending
                leader = True
            else:
                pending.followers += 1
                leader = False

        if leader:
            logger.debug(f"Fetching {key}")
            try:
                pending.result = fetch_fn()
            except BaseException as e:
                pending.error = e
                raise
            finally:
                with self._lock:
                    self._pending.pop(key, None)
                pending.done.set()
            return pending.result

        logger.debug(f"Joining in-flight fetch for {key} (followers: {pending.followers})")
        if not pending.done.wait(timeout=self._timeout):
            logger.error(f"Timed out waiting on in-flight fetch: {key}")
            raise TimeoutError(f"Fetch for {key} still pending after {self._timeout}s")

        if pending.error is not None:
            raise pending.error
        return pending.result

    @property
    def active_requests(self) -> int:
        """Number of fetches currently in flight."""
        with self._lock:
            return len(self._pending)

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of in-flight keys."""
        with self._lock:
            return {
                "active_requests": len(self._pending),
                "active_keys": list(self._pending.keys()),
            }
