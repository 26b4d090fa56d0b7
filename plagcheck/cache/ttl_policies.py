"""
TTL configuration and write-invalidation rules.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from config.settings import DEFAULT_PATH_TTLS_MS

DEFAULT_TTL_MS = 30_000  # 30 seconds


def _matching_prefixes(path: str, prefixes) -> List[str]:
    """Prefixes of `path`, longest first."""
    return sorted((p for p in prefixes if path.startswith(p)), key=len, reverse=True)


@dataclass
class CachePolicy:
    """
    Per-path time-to-live table.

    A path takes the TTL of the longest configured prefix it starts with,
    so "/theses/stats" beats "/theses" for the stats endpoint.
    """
    per_key_ttl: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_PATH_TTLS_MS))
    default_ttl_ms: int = DEFAULT_TTL_MS

    def ttl_for(self, path: str) -> int:
        """TTL in milliseconds for a request path."""
        matches = _matching_prefixes(path, self.per_key_ttl)
        if matches:
            return self.per_key_ttl[matches[0]]
        return self.default_ttl_ms


# Mutating-route prefix -> GET-cache prefixes it makes stale
DEFAULT_INVALIDATION_RULES: Dict[str, Tuple[str, ...]] = {
    "/theses": ("/theses", "/activities"),
    "/users": ("/users", "/activities"),
    "/config": ("/config",),
    "/notifications": ("/notifications",),
    "/activities": ("/activities",),
}


class InvalidationRules:
    """
    Declarative map of which cached reads a write makes stale.

    Usage:
        rules = InvalidationRules({"/theses": ("/theses",)})
        rules.prefixes_for("/theses/42/approve")  # ["/theses"]
    """

    def __init__(self, rules: Optional[Mapping[str, Tuple[str, ...]]] = None):
        self._rules: Dict[str, Tuple[str, ...]] = dict(
            DEFAULT_INVALIDATION_RULES if rules is None else rules
        )

    def prefixes_for(self, path: str) -> List[str]:
        """All cache prefixes to clear after a successful write to `path`."""
        targets: List[str] = []
        for source in _matching_prefixes(path, self._rules):
            for target in self._rules[source]:
                if target not in targets:
                    targets.append(target)
        return targets

    def add(self, source: str, *targets: str) -> None:
        """Register extra prefixes to clear for writes under `source`."""
        existing = self._rules.get(source, ())
        self._rules[source] = existing + tuple(t for t in targets if t not in existing)
