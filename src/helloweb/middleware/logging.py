"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

Writes one record per request to the "helloweb.access" logger and tags
the response with an X-Request-ID header carrying the same id.

Text lines look like a common-log entry with the elapsed time appended:

    127.0.0.1 - - [19/Oct/2026:12:00:00 +0000] "GET /sum?a=3&b=4" 200 1 0.21ms
    ─────┬───       ───────────┬────────────   ──────┬─────────  ─┬─ ┬ ──┬───
      client                 when                 request      status│ elapsed
                                                                  body bytes

JSON lines carry the same fields under their RequestLog names:

    {"request_id": "1f3a9c2e", "method": "GET", "path": "/sum", "query": "a=3&b=4", ...}

The logger has its own name so the access stream can be sent elsewhere
without touching the server's diagnostics:

    access = logging.getLogger("helloweb.access")
    access.addHandler(logging.FileHandler("access.log"))
    access.propagate = False

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, asdict
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse

logger = logging.getLogger("helloweb.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """
    One access record.

    request_id:     Echoed to the client in X-Request-ID
    method, path:   From the request line, path without the query
    query:          Raw query string, "" if there was none
    client_ip:      Peer address ("" when unknown)
    user_agent:     "-" when the client sent none
    status_code:    Status the client received
    content_length: Body bytes the client received
    duration_ms:    Time spent below this layer
    timestamp:      Local time, common-log style
    """

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    @property
    def target(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

    def to_dict(self) -> dict:
        record = asdict(self)
        record["duration_ms"] = round(self.duration_ms, 2)
        return record

    def to_text(self) -> str:
        client = self.client_ip or "-"
        return (
            f'{client} - - [{self.timestamp}] "{self.method} {self.target}" '
            f"{self.status_code} {self.content_length} {self.duration_ms:.2f}ms"
        )


class LoggingMiddleware(Middleware):
    """
    Access log layer. Add it before anything else so it times the whole
    chain and sees the responses other layers produce:

        server.use(LoggingMiddleware(log_format="json"))

    When a lower layer raises, the failure is logged at ERROR and the
    exception keeps propagating; the server answers 500.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            include_request_id: Set X-Request-ID on every response.
            log_level: Level the access records are logged at.
            skip_paths: Exact request paths left out of the log.

        Raises:
            ValueError: For an unknown log_format.
        """
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")

        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = frozenset(skip_paths or ())

    def __call__(self, request: HTTPRequest, call_next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.path} raised "
                f"{type(e).__name__}: {e} after {elapsed_ms:.2f}ms"
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        if request.path not in self.skip_paths:
            self._emit(self._record(request_id, request, response, elapsed_ms))

        return response

    def _record(
        self,
        request_id: str,
        request: HTTPRequest,
        response: HTTPResponse,
        elapsed_ms: float,
    ) -> RequestLog:
        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=request.query_string,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=elapsed_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def _emit(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
