"""
Persisted login session.

Holds the logged-in user object (including its bearer token) in a small
JSON file so the client stays authenticated across runs.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("plagcheck.session")


class SessionStore:
    """JSON-file backed store for the current user."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> Optional[Dict[str, Any]]:
        """Stored user, or None when logged out or the file is unreadable."""
        with self._lock:
            if not self.path.exists():
                return None
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    user = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
                return None
        return user if isinstance(user, dict) else None

    def save(self, user: Dict[str, Any]) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(user, f)

    def clear(self) -> None:
        with self._lock:
            if self.path.exists():
                self.path.unlink()

    @property
    def token(self) -> Optional[str]:
        user = self.load()
        if user:
            return user.get("token") or None
        return None
