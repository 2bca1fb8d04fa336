"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Generator, List, Optional

import pytest

from helloweb import HTTPServer, ServerConfig
from helloweb.http import HTTPRequest, ResponseWriter, Router


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request with a query string."""
    return (
        b"GET /sum?a=3&b=4 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "Ada"}'
    return (
        b"POST /hello HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


def make_request(method: str, target: str, **kwargs) -> HTTPRequest:
    """Request for target ("/sum?a=1"), as if it came off the wire."""
    return HTTPRequest.from_target(method, target, **kwargs)


def record(handler, target: str, method: str = "GET") -> ResponseWriter:
    """
    Invoke a handler directly with a fresh writer (no router, no server)
    and return the writer for inspection.
    """
    writer = ResponseWriter()
    request = make_request(method, target)
    if hasattr(handler, "serve"):
        handler.serve(request, writer)
    else:
        handler(request, writer)
    return writer


# =============================================================================
# LIVE SERVER HELPERS
# =============================================================================

@dataclass
class RawResponse:
    """A response read straight off a socket."""

    status: int
    reason: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


def parse_raw_response(raw: bytes) -> RawResponse:
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    _, status, reason = lines[0].split(" ", 2)
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return RawResponse(status=int(status), reason=reason, headers=headers, body=body)


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send bytes, then read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        chunks: List[bytes] = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def http_request(
    port: int,
    target: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
) -> RawResponse:
    """One request on its own connection (Connection: close)."""
    lines = [f"{method} {target} HTTP/1.1", "Host: 127.0.0.1", "Connection: close"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    data = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")
    return parse_raw_response(send_raw(port, data))


class LiveServer:
    """HTTPServer running in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.bound_address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def get(self, target: str, **kwargs) -> RawResponse:
        return http_request(self.port, target, **kwargs)


@pytest.fixture
def live_server(config: ServerConfig) -> Generator[Callable[[Router], LiveServer], None, None]:
    """
    Factory fixture: live_server(router) starts a server for that router.
    Every server started is stopped at teardown.
    """
    started: List[LiveServer] = []

    def start(router: Router, **config_overrides) -> LiveServer:
        for name, value in config_overrides.items():
            setattr(config, name, value)
        live = LiveServer(HTTPServer(config, router=router))
        live.start()
        started.append(live)
        return live

    yield start

    for live in started:
        live.stop()
