"""
Tests for HttpTransport: URL building, auth headers, body decoding, error
mapping and backend status tracking. requests.Session is replaced by a stub.
"""
import json

import pytest
import requests

from plagcheck.api_client import CachedApiClient
from plagcheck.errors import (
    BackendUnavailable,
    HTTPStatusError,
    RequestTimeout,
    TransportError,
    describe_error,
    on_api_timeout,
)
from plagcheck.session import SessionStore
from plagcheck.transport import BackendStatus, HttpTransport


def make_response(status=200, body=None, text=None):
    response = requests.Response()
    response.status_code = status
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    elif text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = b""
    return response


class StubHttp:
    """Stands in for requests.Session."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class StepClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def session_store(tmp_path):
    return SessionStore(tmp_path / "session.json")


# =============================================================================
# Requests
# =============================================================================

class TestRequest:
    def test_url_and_default_timeout(self):
        http = StubHttp(make_response(body=[1, 2]))
        transport = HttpTransport("https://backend.test/api/", timeout=30, http=http)
        response = transport.request("get", "/theses", params={"page": 1})

        method, url, kwargs = http.calls[0]
        assert method == "GET"
        assert url == "https://backend.test/api/theses"
        assert kwargs["params"] == {"page": 1}
        assert kwargs["timeout"] == 30
        assert response.data == [1, 2]
        assert response.status == 200
        assert response.headers["Content-Type"] == "application/json"

    def test_timeout_override(self):
        http = StubHttp(make_response(body={}))
        transport = HttpTransport("https://backend.test/api", http=http)
        transport.request("GET", "/health", timeout=5)
        assert http.calls[0][2]["timeout"] == 5

    def test_bearer_token_from_session(self, session_store):
        session_store.save({"_id": "u1", "token": "abc"})
        http = StubHttp(make_response(body={}))
        transport = HttpTransport("https://backend.test/api", session_store=session_store, http=http)
        transport.request("GET", "/users")
        headers = http.calls[0][2]["headers"]
        assert headers["Authorization"] == "Bearer abc"
        assert headers["Content-Type"] == "application/json"

    def test_no_token_no_auth_header(self, session_store):
        http = StubHttp(make_response(body={}))
        transport = HttpTransport("https://backend.test/api", session_store=session_store, http=http)
        transport.request("GET", "/users")
        assert "Authorization" not in http.calls[0][2]["headers"]

    def test_multipart_leaves_content_type_to_requests(self):
        http = StubHttp(make_response(body={"_id": "t1"}))
        transport = HttpTransport("https://backend.test/api", http=http)
        transport.request("POST", "/theses/upload", data={"title": "T"}, files={"file": ("a.pdf", b"%PDF")})
        assert "Content-Type" not in http.calls[0][2]["headers"]

    def test_non_json_and_empty_bodies(self):
        http = StubHttp(make_response(text="pong"), make_response(status=204))
        transport = HttpTransport("https://backend.test/api", http=http)
        assert transport.request("GET", "/ping").data == "pong"
        assert transport.request("DELETE", "/theses/1").data is None


# =============================================================================
# Error mapping
# =============================================================================

class TestErrors:
    def test_http_error_status(self):
        http = StubHttp(make_response(status=404, body={"message": "Thesis not found"}))
        transport = HttpTransport("https://backend.test/api", http=http)
        with pytest.raises(HTTPStatusError) as excinfo:
            transport.request("GET", "/theses/x")
        assert excinfo.value.status == 404
        assert excinfo.value.detail == "Thesis not found"
        assert excinfo.value.url == "https://backend.test/api/theses/x"
        assert not transport.status.is_down

    def test_timeout_notifies_listeners(self):
        seen = []
        unsubscribe = on_api_timeout(lambda url, ts: seen.append(url))
        try:
            http = StubHttp(requests.ReadTimeout("read timed out"))
            transport = HttpTransport("https://backend.test/api", http=http)
            with pytest.raises(RequestTimeout):
                transport.request("GET", "/theses")
        finally:
            unsubscribe()
        assert seen == ["https://backend.test/api/theses"]

    def test_connect_timeout_is_a_timeout(self):
        http = StubHttp(requests.ConnectTimeout("connect timed out"))
        transport = HttpTransport("https://backend.test/api", http=http)
        with pytest.raises(RequestTimeout):
            transport.request("GET", "/theses")

    def test_timeout_marks_backend_down(self):
        http = StubHttp(requests.ReadTimeout("slow"))
        transport = HttpTransport("https://backend.test/api", http=http)
        with pytest.raises(RequestTimeout):
            transport.request("GET", "/theses")
        assert transport.status.is_down

    @pytest.mark.parametrize("error", [
        requests.exceptions.ChunkedEncodingError("broken"),
        requests.exceptions.ContentDecodingError("bad gzip"),
        requests.TooManyRedirects("loop"),
        requests.exceptions.InvalidURL("no host"),
    ])
    def test_other_request_failures_become_transport_errors(self, error):
        http = StubHttp(error)
        transport = HttpTransport("https://backend.test/api", http=http)
        with pytest.raises(TransportError) as excinfo:
            transport.request("GET", "/theses")
        assert excinfo.value.url == "https://backend.test/api/theses"
        assert type(excinfo.value) is TransportError
        assert excinfo.value.__cause__ is error

    def test_connection_error_marks_backend_down(self):
        http = StubHttp(requests.ConnectionError("refused"))
        transport = HttpTransport("https://backend.test/api", http=http)
        with pytest.raises(BackendUnavailable):
            transport.request("GET", "/theses")
        assert transport.status.is_down

    def test_bad_gateway_marks_down_and_success_restores(self):
        http = StubHttp(make_response(status=502), make_response(body={}))
        transport = HttpTransport("https://backend.test/api", http=http)
        with pytest.raises(HTTPStatusError):
            transport.request("GET", "/theses")
        assert transport.status.is_down
        transport.request("GET", "/theses")
        assert not transport.status.is_down

    def test_gateway_timeout_does_not_mark_down(self):
        http = StubHttp(make_response(status=504))
        transport = HttpTransport("https://backend.test/api", http=http)
        with pytest.raises(HTTPStatusError):
            transport.request("GET", "/theses")
        assert not transport.status.is_down


class TestBackendStatus:
    def test_down_mark_expires_after_interval(self):
        clock = StepClock()
        status = BackendStatus(recheck_interval=30, clock=clock)
        status.mark_down()
        clock.now += 30
        assert status.recently_down()
        status.expire()
        assert status.is_down
        clock.now += 1
        assert not status.recently_down()
        status.expire()
        assert not status.is_down


class TestDescribeError:
    def test_messages(self):
        assert "timed out" in describe_error(RequestTimeout("x"))
        assert "(504)" in describe_error(HTTPStatusError("x", status=504))
        assert "(408)" in describe_error(HTTPStatusError("x", status=408))
        assert describe_error(HTTPStatusError("x", status=500)) == "Server error: 500"
        assert "No response" in describe_error(BackendUnavailable("x"))
        assert "Something went wrong" in describe_error(ValueError("x"))


class TestHealthCheckFailures:
    def test_broken_stream_reports_down(self):
        http = StubHttp(requests.exceptions.ChunkedEncodingError("broken"))
        client = CachedApiClient(transport=HttpTransport("https://backend.test/api", http=http))
        result = client.health_check()
        assert result["status"] == "down"
        assert result["error"] == "broken"
        assert client.transport.status.is_down
