"""
HTTP transport for the PlagCheck backend.

Thin layer over requests.Session: resolves paths against the base URL,
attaches the bearer token from the persisted session, maps failures onto
the error types in plagcheck.errors and keeps track of whether the
backend looks reachable.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

from plagcheck.errors import (
    BackendUnavailable,
    HTTPStatusError,
    RequestTimeout,
    TransportError,
    notify_api_timeout,
)
from plagcheck.session import SessionStore

logger = logging.getLogger("transport")


@dataclass
class ApiResponse:
    """A successful backend response."""
    data: Any
    status: int
    headers: Dict[str, str] = field(default_factory=dict)


def _decode_body(response: requests.Response) -> Any:
    """JSON body if there is one, else the raw text (None when empty)."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class BackendStatus:
    """
    Tracks whether the backend is reachable.

    A 502, a timeout or a request with no response marks it down. Any successful
    response brings it back up, and after `recheck_interval` seconds the
    down flag is dropped so the next request gets a fresh chance.
    """

    def __init__(
        self,
        recheck_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.recheck_interval = recheck_interval
        self._clock = clock
        self._lock = threading.Lock()
        self.is_down = False
        self.last_check = 0.0

    def mark_down(self) -> None:
        with self._lock:
            self.is_down = True
            self.last_check = self._clock()

    def mark_up(self) -> None:
        with self._lock:
            if self.is_down:
                logger.info("Backend connection restored")
            self.is_down = False

    def recently_down(self) -> bool:
        """Down, and marked so within the recheck interval."""
        with self._lock:
            return self.is_down and self._clock() - self.last_check <= self.recheck_interval

    def expire(self) -> None:
        """Forget a down mark older than the recheck interval."""
        with self._lock:
            if self.is_down and self._clock() - self.last_check > self.recheck_interval:
                self.is_down = False


class HttpTransport:
    """
    Issues authenticated requests against the backend API.

    Usage:
        transport = HttpTransport("https://backend.example.com/api")
        response = transport.request("GET", "/theses", params={"page": 1})
        response.data
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session_store: Optional[SessionStore] = None,
        status: Optional[BackendStatus] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session_store = session_store
        self.status = status or BackendStatus()
        self._http = http or requests.Session()

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, extra: Optional[Dict[str, str]], multipart: bool) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if not multipart:
            headers["Content-Type"] = "application/json"
        token = self.session_store.token if self.session_store else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Any = None,
        files: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse:
        """
        Send one request.

        Raises:
            RequestTimeout: No answer within the timeout
            BackendUnavailable: Connection could not be made or was dropped
            HTTPStatusError: Non-2xx response
            TransportError: Any other request failure
        """
        self.status.expire()
        url = self.url_for(path)
        logger.debug(f"API Request: {method.upper()} {url}")

        try:
            response = self._http.request(
                method.upper(),
                url,
                params=params,
                json=json,
                data=data,
                files=files,
                headers=self._headers(headers, multipart=files is not None),
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.Timeout as e:
            logger.error(f"Request timeout. The server took too long to respond: {url}")
            self.status.mark_down()
            notify_api_timeout(url, time.time())
            raise RequestTimeout(str(e), url=url) from e
        except requests.ConnectionError as e:
            logger.error(f"No response received from the backend server: {url}")
            self.status.mark_down()
            raise BackendUnavailable(str(e), url=url) from e
        except requests.RequestException as e:
            # Anything else requests can raise
            logger.error(f"Request to {url} failed: {e}")
            raise TransportError(str(e), url=url) from e

        result = ApiResponse(
            data=_decode_body(response),
            status=response.status_code,
            headers=dict(response.headers),
        )

        if response.status_code >= 400:
            if response.status_code == 502:
                logger.error("Backend server unavailable (502 Bad Gateway)")
                self.status.mark_down()
            elif response.status_code == 504:
                logger.error("Gateway timeout (504). The server took too long to respond.")
            else:
                logger.warning(f"{method.upper()} {url} failed with {response.status_code}")
            raise HTTPStatusError(
                f"{method.upper()} {url} returned {response.status_code}",
                url=url,
                status=response.status_code,
                response=result,
            )

        self.status.mark_up()
        return result
