"""
Shared test doubles: a scripted transport and a hand-driven clock.
"""
import pytest

from plagcheck.api_client import CachedApiClient
from plagcheck.cache import CachePolicy, ResponseCache
from plagcheck.transport import ApiResponse, BackendStatus


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeTransport:
    """
    Records every request and answers from a script.

    Queue responses (or exceptions) per (method, path) with `respond`;
    anything unscripted gets a fresh 200 whose data names the call.
    """

    def __init__(self):
        self.calls = []
        self.status = BackendStatus(recheck_interval=30.0)
        self._script = {}

    def respond(self, method, path, *results):
        self._script.setdefault((method, path), []).extend(results)

    def count(self, method=None, path=None):
        return sum(
            1 for m, p, _ in self.calls
            if (method is None or m == method) and (path is None or p == path)
        )

    def request(self, method, path, **kwargs):
        self.calls.append((method, path, kwargs))
        queue = self._script.get((method, path))
        result = queue.pop(0) if queue else None
        if isinstance(result, BaseException):
            raise result
        if result is None:
            result = {"method": method, "path": path, "call": len(self.calls)}
        if isinstance(result, ApiResponse):
            return result
        return ApiResponse(data=result, status=200, headers={})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def cache(clock):
    policy = CachePolicy(
        per_key_ttl={"/theses": 60_000, "/theses/stats": 120_000},
        default_ttl_ms=30_000,
    )
    return ResponseCache(policy, clock=clock)


@pytest.fixture
def client(transport, cache):
    return CachedApiClient(transport=transport, cache=cache)
