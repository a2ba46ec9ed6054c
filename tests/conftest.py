"""
pytest configuration and fixtures.
"""

import http.client
import socket
import threading
import time
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sloth import API, APIConfig, ServerConfig
from sloth.http import HTTPRequest, ResponseWriter, parse_request


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_form_request() -> bytes:
    """Sample HTTP POST request with an urlencoded body."""
    body = b"name=sloth&legs=four"
    return (
        b"POST /api/animals?source=zoo HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def server_config() -> ServerConfig:
    """Small, quiet server configuration for live tests."""
    return ServerConfig(
        host="127.0.0.1",
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def make_request(method: str, target: str = "/", headers: Optional[dict] = None, body: bytes = b"") -> HTTPRequest:
    """Build an HTTPRequest the way the server would, from raw bytes."""
    lines = [f"{method} {target} HTTP/1.1", "Host: test"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    raw = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body
    return parse_request(raw, ("127.0.0.1", 50000))


def serve(handler, request: HTTPRequest) -> ResponseWriter:
    """Run a handler against a fresh ResponseWriter."""
    writer = ResponseWriter()
    handler(writer, request)
    return writer


class LiveServer:
    """Runs API.start() in a background thread."""

    def __init__(self, api: API):
        self.api = api
        self.port: int = 0
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    def _run(self):
        try:
            self.api.start(0)
        except BaseException as e:
            self.error = e

    def start(self):
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        # Wait for server to be ready
        for _ in range(100):  # 5 seconds max
            server = self.api._server
            if server is not None and server.wait_until_listening(0.05):
                self.port = self.api.address[1]
                return
            if self.error is not None:
                raise self.error
            time.sleep(0.05)

        raise RuntimeError("Server failed to start")

    def stop(self):
        self.api.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(
        self,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        headers: Optional[dict] = None,
    ) -> http.client.HTTPResponse:
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5)
        conn.request(method, path, body=body, headers=dict(headers or {}, Connection="close"))
        response = conn.getresponse()
        response.body = response.read()
        conn.close()
        return response


@pytest.fixture
def live_api(server_config: ServerConfig) -> API:
    """An API with test-friendly server settings; add resources, then use live_server."""
    return API(APIConfig(), server_config)


@pytest.fixture
def live_server(live_api: API) -> Generator[callable, None, None]:
    """
    Factory starting live_api once its resources are registered.

        def test_x(live_api, live_server):
            live_api.add_resource(Hello(), "/hello")
            server = live_server()
            response = server.request("GET", "/hello")
    """
    servers = []

    def start() -> LiveServer:
        server = LiveServer(live_api)
        server.start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.stop()
