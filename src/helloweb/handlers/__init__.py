"""
=============================================================================
SAMPLE HANDLERS
=============================================================================

Every handler here has the same shape:

    handler(request, writer)            plain function
    handler.serve(request, writer)      Handler object

It reads what it needs from the request (at most the query string) and
writes text into the ResponseWriter. Status and Content-Type default to
200 and text/plain.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Handler              │ Output                                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │ hello_world          │ Hello World                                  │
    │ HelloWorldHandler    │ Hello World                                  │
    │ get_home             │ Hello World                                  │
    │ hello_name           │ Hello <name>                                 │
    │ dump_params          │ key:value lines                              │
    │ sum_params           │ sum of integer values                        │
    │ literal(text)        │ text                                         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .greeting import GREETING, hello_world, HelloWorldHandler, get_home, hello_name
from .params import dump_params, sum_params, parse_int, literal, LiteralHandler

__all__ = [
    "GREETING",
    "hello_world",
    "HelloWorldHandler",
    "get_home",
    "hello_name",
    "dump_params",
    "sum_params",
    "parse_int",
    "literal",
    "LiteralHandler",
]
