"""
=============================================================================
HTTP RESPONSES
=============================================================================

Two ways to produce a response live here:

    1. HTTPResponse / ResponseBuilder
       The finished value the server serializes. The router builds these
       for its own answers (404, 405, redirects) and the server builds them
       for protocol errors (400, 408, 500, 503).

    2. ResponseWriter
       The writable sink a handler receives. Handlers never construct an
       HTTPResponse themselves; they write text into the sink and the
       router turns the sink into an HTTPResponse afterwards.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ STATUS LINE ──────────────────────────────────────────────────┐ │
    │  │    HTTP/1.1 200 OK\r\n                                         │ │
    │  │    ────┬─── ─┬─ ─┬─                                            │ │
    │  │    Version  Code Phrase                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Content-Type: text/plain; charset=utf-8\r\n                 │ │
    │  │    Content-Length: 11\r\n                                      │ │
    │  │    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n                     │ │
    │  │    Server: helloweb/1.0\r\n                                    │ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    Hello World                                                  │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE RESPONSE WRITER
=============================================================================

    handler(request, writer)
        │
        ├── writer.set_header("X-Sample", "sum")     optional
        ├── writer.write_header(201)                  optional, first wins
        └── writer.write("7")                         commits 200 if unset
                │
                ▼
    writer.to_response()  →  HTTPResponse(status, headers, body)

    If the handler wrote a body but never chose a Content-Type, the
    response is labelled "text/plain; charset=utf-8".

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json
import logging

from .status_codes import HTTPStatus

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    A plain data container. Use ResponseBuilder or the convenience
    functions at the bottom of this module to construct one.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Router returns           to_bytes()              Socket sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes
            │                       │                        │
        HTTPResponse(            b"HTTP/1.1 200 OK\r\n   socket.sendall(
          status=200,              Content-Type: ...\r\n     response_bytes
          headers={...},           \r\n                    )
          body=b"Hello"            Hello"
        )

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8")

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header. Returns self for chaining:

            response.set_header("Connection", "close").set_header("X-A", "b")
        """
        self.headers[name] = value
        return self

    def to_bytes(
        self,
        server_name: str = "helloweb/1.0",
        include_body: bool = True
    ) -> bytes:
        """
        Serialize the response to bytes for sending over a socket.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\r\n               ← Status line
            Content-Type: text/plain; ...\r\n
            Content-Length: 11\r\n            ← Auto-calculated
            Date: Mon, 19 Oct 2026 ...\r\n    ← Auto-added
            Server: helloweb/1.0\r\n          ← Auto-added
            \r\n                              ← Empty line (separator)
            Hello World                       ← Body bytes

        =====================================================================

        Args:
            server_name: Value for the Server header.
            include_body: False for HEAD requests. Content-Length still
                          reports the size the body WOULD have.

        Returns:
            Complete HTTP response bytes ready for socket.sendall()
        """
        response_headers = dict(self.headers)

        if self.get_header("Content-Length") is None:
            response_headers["Content-Length"] = str(len(self.body))

        if self.get_header("Date") is None:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if self.get_header("Server") is None:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"

        if not include_body:
            return header_bytes
        return header_bytes + self.body


class ResponseWriter:
    """
    Writable response sink handed to every handler.

    ==========================================================================
    SEMANTICS
    ==========================================================================

        write(data)          Appends str (UTF-8 encoded) or bytes to the
                             body and returns the number of bytes added.
                             The first write commits status 200 if no
                             status was chosen yet.

        write_header(code)   Chooses the status. Only the first call counts;
                             later calls are logged as a warning and ignored.

        set_header(n, v)     Sets a response header.

        to_response()        Freezes the sink into an HTTPResponse.

    ==========================================================================

    Example (recorder-style test, no server involved):

        writer = ResponseWriter()
        hello_world(HTTPRequest.from_target("GET", "/"), writer)
        assert writer.body == b"Hello World"
    """

    def __init__(self):
        self._status: Optional[HTTPStatus] = None
        self._headers: Dict[str, str] = {}
        self._chunks: list[bytes] = []

    @property
    def status(self) -> HTTPStatus:
        """Committed status, 200 if the handler never chose one."""
        return self._status if self._status is not None else HTTPStatus.OK

    @property
    def wrote_header(self) -> bool:
        return self._status is not None

    @property
    def headers(self) -> Dict[str, str]:
        return self._headers

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def set_header(self, name: str, value: str) -> None:
        self._headers[name] = value

    def write_header(self, status: int) -> None:
        """
        Commit the response status.

        Raises:
            ValueError: If status is not a code HTTPStatus knows.
        """
        if self._status is not None:
            logger.warning(
                f"Superfluous write_header({status}): status already {self._status.value}"
            )
            return
        self._status = HTTPStatus(status)

    def write(self, data: Union[str, bytes]) -> int:
        """
        Append data to the body.

        Returns:
            Number of bytes appended.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self._status is None:
            self._status = HTTPStatus.OK
        self._chunks.append(data)
        return len(data)

    def to_response(self) -> HTTPResponse:
        """Build the HTTPResponse this sink describes."""
        headers = dict(self._headers)
        body = self.body

        has_content_type = any(name.lower() == "content-type" for name in headers)
        if body and not has_content_type:
            headers["Content-Type"] = DEFAULT_CONTENT_TYPE

        return HTTPResponse(status=self.status, headers=headers, body=body)


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    Each method returns `self`, so calls chain:

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .json({"error": "Not Found"})
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        Serialize data as JSON and set Content-Type.

        ensure_ascii=False keeps non-ASCII characters readable.
        """
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """
        301 Moved Permanently when permanent, otherwise 302 Found.

        The router's trailing-slash and path-cleaning redirects are
        permanent.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 12:00:00 GMT

    HTTP dates are always GMT, never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the responses the router and server produce on their own:
#
#     return not_found(f"No route matches {path}")
#     return redirect(path + "/", permanent=True)
#     return error_response(HTTPStatus.REQUEST_TIMEOUT)
#
# =============================================================================

def redirect(location: str, permanent: bool = False) -> HTTPResponse:
    """Create a 301 (permanent) or 302 redirect to location."""
    return ResponseBuilder().redirect(location, permanent).build()


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """
    Create a JSON error response for any status.

    The body is {"error": message}, message defaulting to the phrase.
    """
    return (ResponseBuilder()
        .status(status)
        .json({"error": message or status.phrase})
        .build())


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """
    Create a 405 Method Not Allowed response.

    Includes the Allow header listing valid methods (RFC 7231 requirement).
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": allowed_methods})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """Create a 500 response. Never put exception details in message."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def service_unavailable(message: str = "Server overloaded") -> HTTPResponse:
    return error_response(HTTPStatus.SERVICE_UNAVAILABLE, message)
