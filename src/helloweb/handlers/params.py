"""
=============================================================================
QUERY PARAMETER HANDLERS
=============================================================================

Handlers that treat the whole query string as their input.

    GET /params?x=1&y=2        GET /sum?a=3&b=4&c=foo
    ───────────────────        ──────────────────────
    x:1                        7
    y:2

Only the FIRST value of a repeated key is used:

    /params?x=1&x=9   → "x:1\\n"
    /sum?a=3&a=100    → "3"

=============================================================================
INTEGER PARSING
=============================================================================

Values are decimal integers with an optional sign and nothing else:

    "42"  → 42        "+7"  → 7         "-3"  → -3
    "4.5" → 0         " 1"  → 0         "1_0" → 0
    ""    → 0         "foo" → 0         "٣"   → 0   (ASCII digits only)

Anything that does not parse counts as 0.

Values and sums are unbounded Python integers. Go's strconv.Atoi instead
saturates an out-of-range value at the int64 limits, and a Go int sum
can wrap. Here neither happens:

    /sum?a=99999999999999999999&b=1
        Go:        9223372036854775807 + 1 → -9223372036854775808
        helloweb:  100000000000000000000

=============================================================================
"""

import re

from ..http.request import HTTPRequest
from ..http.response import ResponseWriter
from ..http.router import Handler

INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def parse_int(value: str) -> int:
    """
    Parse a decimal integer, returning 0 for anything malformed.

    Out-of-range values are not clamped to 64 bits; see the module notes.
    """
    if not INTEGER_PATTERN.fullmatch(value):
        return 0
    return int(value)


def dump_params(request: HTTPRequest, writer: ResponseWriter) -> None:
    """Write one "key:first_value" line per query parameter."""
    lines = []
    for key, values in request.query_params.items():
        if values:
            lines.append(f"{key}:{values[0]}\n")
    writer.write("".join(lines))


def sum_params(request: HTTPRequest, writer: ResponseWriter) -> None:
    """Write the exact (never wrapped) decimal sum of every parameter's first value."""
    total = sum(
        parse_int(values[0])
        for values in request.query_params.values()
        if values
    )
    writer.write(str(total))


class LiteralHandler(Handler):
    """
    Writes the same text for every request.

        router.add_route("/sum/", LiteralHandler("sum"))
    """

    def __init__(self, text: str):
        self.text = text

    @property
    def name(self) -> str:
        return repr(self.text)

    def serve(self, request: HTTPRequest, writer: ResponseWriter) -> None:
        writer.write(self.text)

    def __repr__(self) -> str:
        return f"LiteralHandler({self.text!r})"


def literal(text: str) -> LiteralHandler:
    return LiteralHandler(text)
