"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects.
Implements the parts of RFC 7230 a routing exercise needs.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    GET /sum?a=3&b=4 HTTP/1.1\r\n                               │ │
    │  │    ─┬─ ──────┬──────  ────┬────                                │ │
    │  │     │        │            │                                     │ │
    │  │   Method    URI        Version                                  │ │
    │  │              │                                                  │ │
    │  │        ┌─────┴──────┐                                          │ │
    │  │        │            │                                           │ │
    │  │      Path     Query String                                      │ │
    │  │      /sum       a=3&b=4                                         │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Host: localhost:8080\r\n                                    │ │
    │  │    User-Agent: curl/8.0\r\n                                    │ │
    │  │    \r\n                      ← blank line ends the headers     │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (optional, Content-Length bytes) ────────────────────────┐ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUERY STRINGS
=============================================================================

Every sample handler reads its input from the query string, so its shape
matters:

    ?a=3&b=4        → {"a": ["3"], "b": ["4"]}
    ?a=1&a=2        → {"a": ["1", "2"]}      (multiple values per key)
    ?name=          → {"name": [""]}          (blank values are kept)
    ?flag           → {"flag": [""]}          (bare keys are kept too)
    ?q=hello%20world → {"q": ["hello world"]} (percent-decoded)

Handlers that only care about one value per key take the FIRST one.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlsplit, unquote
import re


# Decoded CR, LF and the rest of C0 plus DEL
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code the server should answer with:

        400 Bad Request                - Malformed request syntax
        405 Method Not Allowed         - Unknown method
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         GET, POST, HEAD, ...
        path:           Decoded path WITHOUT query string ("/sum")
        query_string:   Raw query string as received ("a=3&b=4")
        query_params:   Parsed query string, key → list of values
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header names lowercased
        body:           Raw body bytes (Content-Length)
        client_address: (ip, port) of the peer
        raw:            The unparsed request bytes

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    query_string: str = ""
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    @classmethod
    def from_target(cls, method: str, target: str, **kwargs: Any) -> "HTTPRequest":
        """
        Build a request from a method and a request target.

        Splits the target into path and query string the same way the
        parser does. Handy for exercising routers and handlers without
        a socket:

            HTTPRequest.from_target("GET", "/sum?a=3&b=4")
        """
        path, query_string, query_params = split_target(target)
        return cls(
            method=method.upper(),
            path=path,
            query_string=query_string,
            query_params=query_params,
            **kwargs,
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, lowercased."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        """Content-Length as integer, 0 if missing or invalid."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection should stay open after this request.

            HTTP/1.1: keep alive unless "Connection: close"
            HTTP/1.0: close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Example:
            # URL: /hello?name=Ada&name=Grace
            request.get_query("name")        # "Ada"
            request.get_query("missing", "") # ""
        """
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> list[str]:
        """All values of a query parameter (empty list if absent)."""
        return self.query_params.get(name, [])


def split_target(target: str) -> tuple[str, str, Dict[str, list[str]]]:
    """
    Split a request target into (path, query_string, query_params).

    The path is percent-decoded and defaults to "/". Blank values and
    bare keys are kept, so "?name=" and "?name" both yield {"name": [""]}.

    An origin-form target ("/a//b?x=1") is split at the first "?" only,
    so a leading "//" stays part of the path instead of naming a host.
    """
    if target.startswith("/") or target.startswith("?"):
        raw_path, _, query_string = target.partition("?")
    else:
        parsed = urlsplit(target)
        raw_path, query_string = parsed.path, parsed.query

    path = unquote(raw_path) or "/"
    query_params = parse_qs(query_string, keep_blank_values=True)
    return path, query_string, query_params


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        1. Size check              too large?  → HTTPParseError(413)
        2. Find \r\n\r\n            missing?    → HTTPParseError(400)
        3. Request line            malformed?  → HTTPParseError(400/405/505)
        4. Path                    ".." or control characters?  → HTTPParseError(400)
        5. Headers                 "Name: Value", names lowercased
        6. Body                    exactly Content-Length bytes
        7. HTTPRequest

    ==========================================================================
    """

    VALID_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"})
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    REQUEST_LINE_PATTERN = re.compile(r"([A-Z]+) (\S+) (HTTP/\d\.\d)")

    def __init__(self, max_request_size: int = 1024 * 1024):
        """
        Args:
            max_request_size: Requests larger than this are rejected with
                              413 Payload Too Large.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Turn the bytes Connection.read_request() produced into an HTTPRequest.

        Args:
            data: One complete request (head, blank line, body).
            client_address: Peer (ip, port), carried along for the access log.

        Raises:
            HTTPParseError: With the status code the client should receive.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request is {len(data)} bytes, limit is {self.max_request_size}",
                status_code=413
            )

        head, separator, body = data.partition(b"\r\n\r\n")
        if not separator:
            raise HTTPParseError("Request head is not terminated by a blank line")

        request_line, *header_lines = head.decode("utf-8", errors="replace").split("\r\n")

        method, target, version = self._parse_request_line(request_line)
        path, query_string, query_params = split_target(target)

        # "GET /../../etc/passwd" never reaches the router
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..", status_code=400)
        if CONTROL_CHARS.search(path):
            raise HTTPParseError("Invalid path: contains control characters", status_code=400)

        headers = self._parse_headers(header_lines)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            query_string=query_string,
            body=self._take_body(body, headers.get("content-length")),
            client_address=client_address,
            raw=data,
        )

    @staticmethod
    def _take_body(received: bytes, declared: Optional[str]) -> bytes:
        """Exactly Content-Length bytes of received; no header means no body."""
        if declared is None:
            return b""

        if not declared.isdigit():
            raise HTTPParseError(f"Invalid Content-Length: {declared!r}")

        length = int(declared)
        if len(received) < length:
            raise HTTPParseError(
                f"Body shorter than Content-Length ({len(received)} of {length} bytes)"
            )
        return received[:length]

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split "GET /sum?a=3 HTTP/1.1" into ("GET", "/sum?a=3", "HTTP/1.1").

        Raises:
            HTTPParseError: 400 for a malformed line, 405 for a method
                            outside VALID_METHODS, 505 for any version
                            but 1.0 and 1.1.
        """
        match = self.REQUEST_LINE_PATTERN.fullmatch(line)
        if match is None:
            raise HTTPParseError(f"Malformed request line: {line!r}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Method {method} is not supported", status_code=405)
        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"{version} is not supported", status_code=505)

        return method, target, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Header lines to a dict keyed by lowercase name.

            Accept: text/plain          {"accept": "text/plain, text/html",
            Accept: text/html      →     "x-long": "first second"}
            X-Long: first
              second

        A repeated name joins its values with ", ", an indented line
        continues the previous header, and a line without a colon is
        dropped.
        """
        headers: Dict[str, str] = {}
        previous: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in " \t":
                if previous is not None:
                    headers[previous] = f"{headers[previous]} {line.strip()}"
                continue

            name, colon, value = line.partition(":")
            if not colon or not name.strip():
                continue

            previous = name.strip().lower()
            value = value.strip()
            headers[previous] = f"{headers[previous]}, {value}" if previous in headers else value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
