"""
=============================================================================
URL ROUTER
=============================================================================

Maps request paths to handlers. Two kinds of pattern exist:

- Exact paths:    /sum        matches /sum and nothing else
- Subtree paths:  /sum/       matches /sum/, /sum/x, /sum/x/y, ...

A pattern is a subtree pattern exactly when it ends with "/". The pattern
"/" is therefore the catch-all.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /sum/hello                                                     │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER                                                      │   │
    │   │                                                              │   │
    │   │  Registered Patterns:                                        │   │
    │   │  ┌────────────────────────────────────────────────────────┐ │   │
    │   │  │ /params      → dump_params                             │ │   │
    │   │  │ /sum         → sum_params                              │ │   │
    │   │  │ /sum/        → literal("sum")     covers, len 5        │ │   │
    │   │  │ /sum/hello   → literal("Hello")   covers, len 10 ← WIN │ │   │
    │   │  │ /            → literal("Hello")   covers, len 1        │ │   │
    │   │  └────────────────────────────────────────────────────────┘ │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   handler.serve(request, writer)                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PATTERN PRECEDENCE
=============================================================================

The LONGEST pattern covering the path wins. Registration order never
matters:

    Path            Covering patterns            Winner
    ─────────────   ─────────────────────────    ──────────
    /sum            /sum, /                      /sum
    /sum/hello      /sum/hello, /sum/, /         /sum/hello
    /sum/other      /sum/, /                     /sum/
    /nothing        /                            /

An exact pattern covering a path is always at least as long as any
subtree pattern covering it, so exact beats prefix automatically.

=============================================================================
BEFORE MATCHING
=============================================================================

1. Unclean paths are redirected:

       /sum//hello   → 301 Location: /sum/hello
       /./params     → 301 Location: /params

2. A path that is only registered with a trailing slash is redirected:

       /docs  (only /docs/ registered)  → 301 Location: /docs/

   The query string rides along in both cases.

=============================================================================
INTERVIEW QUESTIONS ABOUT ROUTING
=============================================================================

Q: "Why longest-match instead of first-match?"
A: "First-match makes the table order-sensitive: register / first and it
   swallows everything. Longest-match gives the most specific handler no
   matter how the routes were added."

Q: "What's the time complexity of matching?"
A: "O(R × P): R patterns, each a string comparison of up to P chars.
   A trie would make it O(P), but five routes don't need one."

=============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Dict, List, Union
from urllib.parse import quote
import logging

from .request import HTTPRequest
from .response import (
    HTTPResponse,
    ResponseWriter,
    not_found,
    method_not_allowed,
    redirect,
)

logger = logging.getLogger(__name__)

# Path characters left unescaped in a redirect Location
LOCATION_SAFE = "/:@!$&'()*+,;=-._~"


# =============================================================================
# HANDLER INTERFACE
# =============================================================================

class Handler(ABC):
    """
    Anything that can answer a request.

    One method, nothing else:

        class Greeter(Handler):
            def serve(self, request, writer):
                writer.write("Hello World")

    The handler writes into `writer`; whatever it returns is ignored.
    """

    @abstractmethod
    def serve(self, request: HTTPRequest, writer: ResponseWriter) -> None:
        """Write the response for request into writer."""
        pass


HandlerFunction = Callable[[HTTPRequest, ResponseWriter], None]


class HandlerFunc(Handler):
    """
    Adapts a plain function into a Handler.

        def greet(request, writer):
            writer.write("Hello World")

        router.add_route("/", HandlerFunc(greet))

    Plain functions passed to add_route are wrapped automatically; wrap
    them by hand when a Handler object is needed elsewhere.
    """

    def __init__(self, func: HandlerFunction, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def serve(self, request: HTTPRequest, writer: ResponseWriter) -> None:
        self._func(request, writer)

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"HandlerFunc({self._name})"


def as_handler(handler: Union[Handler, HandlerFunction]) -> Handler:
    """
    Coerce a registration argument into a Handler.

    Objects with a callable `serve` are used as they are; other callables
    are wrapped in HandlerFunc.

    Raises:
        TypeError: If handler is neither.
    """
    if isinstance(handler, Handler):
        return handler
    if callable(getattr(handler, "serve", None)):
        return handler  # type: ignore[return-value]
    if callable(handler):
        return HandlerFunc(handler)
    raise TypeError(
        f"Handler must be a function or have a serve() method, got {type(handler).__name__}"
    )


# =============================================================================
# ROUTES
# =============================================================================

@dataclass
class Route:
    """
    A registered route.

        Route(
            pattern="/sum/",          # URL pattern
            method=None,              # None = any method
            handler=<literal sum>,    # Handler
            name="sum-subtree",       # Optional label
        )
    """

    pattern: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None

    @property
    def subtree(self) -> bool:
        """True for patterns ending in "/" (they cover everything below)."""
        return self.pattern.endswith("/")

    def covers(self, path: str) -> bool:
        if self.subtree:
            return path.startswith(self.pattern)
        return path == self.pattern


def clean_path(path: str) -> str:
    """
    Canonical form of a request path.

    Collapses repeated slashes, drops "." segments, resolves ".." segments
    and keeps a trailing slash when the original had one:

        clean_path("/sum//hello")  → "/sum/hello"
        clean_path("/a/./b/")      → "/a/b/"
        clean_path("")             → "/"
    """
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path

    segments: List[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)

    cleaned = "/" + "/".join(segments)
    if path.endswith("/") and cleaned != "/":
        cleaned += "/"
    return cleaned


class Router:
    """
    HTTP request router with exact and subtree patterns.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()

        router.add_route("/sum", sum_params)
        router.add_route("/sum/", literal("sum"))

        @router.get("/hello")
        def hello_name(request, writer):
            writer.write("Hello " + (request.get_query("name") or ""))

        response = router.handle(request)

    ==========================================================================
    REGISTRATION RULES
    ==========================================================================

    - Patterns are non-empty and start with "/" (ValueError otherwise).
    - Registering the same (pattern, method) again replaces the handler.
    - method=None registers the handler for every method. A specific
      method takes priority over the any-method handler of the same
      pattern.

    ==========================================================================
    """

    def __init__(self):
        # pattern → method (None = any) → Route
        self._routes: Dict[str, Dict[Optional[str], Route]] = {}

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        pattern: str,
        handler: Union[Handler, HandlerFunction],
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a handler for a pattern.

        Args:
            pattern: "/exact" or "/subtree/"
            handler: Handler object or plain function (request, writer)
            method: HTTP method, or None for any method
            name: Optional label shown by print_routes()

        Returns:
            The registered Route

        Raises:
            ValueError: If the pattern is empty or lacks a leading "/".
            TypeError: If handler cannot be used as a Handler.
        """
        if not pattern:
            raise ValueError("Route pattern must not be empty")
        if not pattern.startswith("/"):
            raise ValueError(f"Route pattern must start with '/': {pattern!r}")

        route = Route(
            pattern=pattern,
            method=method.upper() if method else None,
            handler=as_handler(handler),
            name=name,
        )

        by_method = self._routes.setdefault(pattern, {})
        if route.method in by_method:
            logger.debug(f"Replacing handler for {route.method or 'ANY'} {pattern}")
        by_method[route.method] = route
        return route

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match_pattern(self, path: str) -> Optional[str]:
        """
        Most specific registered pattern covering path, or None.
        """
        best: Optional[str] = None
        for by_method in self._routes.values():
            route = next(iter(by_method.values()))
            if route.covers(path) and (best is None or len(route.pattern) > len(best)):
                best = route.pattern
        return best

    def match(self, method: str, path: str) -> Optional[Route]:
        """
        Find the route that serves method on path.

        HEAD falls back to a GET registration. Returns None when no
        pattern covers the path or the best pattern lacks the method.
        """
        pattern = self.match_pattern(path)
        if pattern is None:
            return None
        return self._route_for_method(self._routes[pattern], method.upper())

    def get_allowed_methods(self, path: str) -> List[str]:
        """
        Methods registered on the best pattern for path.

        Used for the Allow header of 405 responses. Empty if nothing
        covers the path.
        """
        pattern = self.match_pattern(path)
        if pattern is None:
            return []
        methods = set(m for m in self._routes[pattern] if m is not None)
        if "GET" in methods:
            methods.add("HEAD")
        return sorted(methods)

    def _route_for_method(
        self,
        by_method: Dict[Optional[str], Route],
        method: str
    ) -> Optional[Route]:
        route = by_method.get(method)
        if route is None and method == "HEAD":
            route = by_method.get("GET")
        if route is None:
            route = by_method.get(None)
        return route

    def _redirect_target(self, request: HTTPRequest) -> Optional[str]:
        """
        Location to redirect request to, or None to route it normally.

        The path is re-escaped, so a decoded "?" or CR/LF cannot leave
        the path part of the Location header.
        """
        path = request.path

        cleaned = clean_path(path)
        if cleaned != path:
            target = cleaned
        elif (
            not path.endswith("/")
            and path not in self._routes
            and path + "/" in self._routes
        ):
            target = path + "/"
        else:
            return None

        target = quote(target, safe=LOCATION_SAFE)
        if request.query_string:
            target += "?" + request.query_string
        return target

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler and return the response.

        1. Redirect unclean or slash-less subtree paths (301)
        2. Pick the longest covering pattern (404 if none)
        3. Pick the route for the method (405 if none)
        4. Run handler.serve() against a fresh ResponseWriter

        Exceptions raised by the handler propagate to the caller.
        """
        location = self._redirect_target(request)
        if location is not None:
            return redirect(location, permanent=True)

        pattern = self.match_pattern(request.path)
        if pattern is None:
            return not_found(f"No route matches {request.path}")

        route = self._route_for_method(self._routes[pattern], request.method.upper())
        if route is None:
            return method_not_allowed(self.get_allowed_methods(request.path))

        writer = ResponseWriter()
        route.handler.serve(request, writer)
        return writer.to_response()

    __call__ = handle

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================
    #
    #     @router.route("/params")
    #     def dump_params(request, writer):
    #         ...
    #
    # is equivalent to router.add_route("/params", dump_params).
    #
    # =========================================================================

    def route(
        self,
        pattern: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[HandlerFunction], HandlerFunction]:
        """Decorator form of add_route(); returns the function unchanged."""
        def decorator(handler: HandlerFunction) -> HandlerFunction:
            self.add_route(pattern, handler, method, name)
            return handler
        return decorator

    def get(self, pattern: str, name: Optional[str] = None) -> Callable[[HandlerFunction], HandlerFunction]:
        return self.route(pattern, "GET", name)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, sorted by pattern then method."""
        all_routes = [
            route
            for by_method in self._routes.values()
            for route in by_method.values()
        ]
        return sorted(all_routes, key=lambda r: (r.pattern, r.method or ""))

    def __len__(self) -> int:
        return sum(len(by_method) for by_method in self._routes.values())

    def print_routes(self) -> None:
        """
        Print the route table, e.g.:

            Registered Routes:
            ------------------------------------------------------------
              ANY      /            Hello
              ANY      /params      dump_params
            ------------------------------------------------------------
        """
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self.routes():
            method = route.method or "ANY"
            label = route.name or getattr(route.handler, "name", type(route.handler).__name__)
            print(f"  {method:8} {route.pattern:12} {label}")
        print("-" * 60)
