"""
=============================================================================
GREETING HANDLERS
=============================================================================

The same "Hello World" answer written three ways, plus a greeting that
reads a query parameter.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Form                 │ Registered as                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │ plain function       │ router.add_route("/", hello_world)            │
    │                      │ (the router wraps it in HandlerFunc)          │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Handler subclass     │ router.add_route("/", HelloWorldHandler())    │
    ├─────────────────────────────────────────────────────────────────────┤
    │ adapted function     │ router.add_route("/", get_home)               │
    │                      │ (already a HandlerFunc value)                 │
    └─────────────────────────────────────────────────────────────────────┘

All three produce byte-identical responses.

=============================================================================
"""

from ..http.request import HTTPRequest
from ..http.response import ResponseWriter
from ..http.router import Handler, HandlerFunc

GREETING = "Hello World"


def hello_world(request: HTTPRequest, writer: ResponseWriter) -> None:
    """Write "Hello World", ignoring the request entirely."""
    writer.write(GREETING)


class HelloWorldHandler(Handler):
    """Handler object form of hello_world."""

    def serve(self, request: HTTPRequest, writer: ResponseWriter) -> None:
        writer.write(GREETING)


def _home(request: HTTPRequest, writer: ResponseWriter) -> None:
    writer.write(GREETING)


get_home = HandlerFunc(_home, name="get_home")


def hello_name(request: HTTPRequest, writer: ResponseWriter) -> None:
    """
    Write "Hello " followed by the first `name` query value.

        /hello?name=Ada          → "Hello Ada"
        /hello?name=Ada&name=Bo  → "Hello Ada"
        /hello                   → "Hello "
    """
    name = request.get_query("name", "")
    writer.write(f"Hello {name}")
