"""
Error types raised by the HTTP transport, plus user-facing messages.

The cache layer never raises these itself; it passes them through as-is.
"""
import logging
from typing import Any, Callable, List, Optional

logger = logging.getLogger("plagcheck.errors")


class PlagCheckError(Exception):
    """Base class for client errors."""
    pass


class TransportError(PlagCheckError):
    """A request did not produce a successful response."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status: Optional[int] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.url = url
        self.status = status
        self.response = response


class RequestTimeout(TransportError):
    """The backend took too long to answer (or the request was aborted)."""
    pass


class BackendUnavailable(TransportError):
    """No response at all: connection refused, DNS failure, reset."""
    pass


class HTTPStatusError(TransportError):
    """The backend answered with a non-2xx status."""

    @property
    def detail(self) -> Optional[str]:
        """Backend's own error message, when the body carries one."""
        body = getattr(self.response, "data", None)
        if isinstance(body, dict):
            return body.get("message") or body.get("error")
        return None


# ===== TIMEOUT NOTIFICATION =====

TimeoutListener = Callable[[str, float], None]

_timeout_listeners: List[TimeoutListener] = []


def on_api_timeout(listener: TimeoutListener) -> Callable[[], None]:
    """
    Subscribe to request timeouts.

    The listener gets (url, timestamp). Returns a function that unsubscribes.
    """
    _timeout_listeners.append(listener)

    def unsubscribe() -> None:
        if listener in _timeout_listeners:
            _timeout_listeners.remove(listener)

    return unsubscribe


def notify_api_timeout(url: str, timestamp: float) -> None:
    """Tell every timeout listener that `url` timed out."""
    logger.warning(f"API timeout for: {url}")
    for listener in list(_timeout_listeners):
        try:
            listener(url, timestamp)
        except Exception as e:
            logger.error(f"Timeout listener failed for {url}: {e}")


def describe_error(error: BaseException) -> str:
    """Message suitable for showing to an end user."""
    if isinstance(error, (RequestTimeout, TimeoutError)):
        return "The connection to the server timed out. Please try again later."
    if isinstance(error, HTTPStatusError):
        if error.status in (408, 504):
            return f"The server is responding too slowly ({error.status}). Please try again later."
        return f"Server error: {error.status}"
    if isinstance(error, BackendUnavailable):
        return "No response was received from the server."
    return "Something went wrong. Please try again later."
