"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between raw bytes and a handler call:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP Request-Response Cycle                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   bytes ──► RequestParser ──► HTTPRequest                           │
    │                                    │                                 │
    │                                    ▼                                 │
    │                 Router.handle(request)                               │
    │                   │                                                  │
    │                   ├── handler.serve(request, ResponseWriter)         │
    │                   ▼                                                  │
    │              HTTPResponse ──► to_bytes() ──► bytes                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ResponseWriter,
    # Convenience functions for common responses
    redirect,            # 301/302 Redirect
    error_response,      # Any status, JSON body
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
    service_unavailable, # 503 Service Unavailable
)
from .router import Router, Route, Handler, HandlerFunc, as_handler, clean_path
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ResponseWriter",
    "redirect",
    "error_response",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "service_unavailable",

    # Routing
    "Router",
    "Route",
    "Handler",
    "HandlerFunc",
    "as_handler",
    "clean_path",

    # Status codes
    "HTTPStatus",
]
