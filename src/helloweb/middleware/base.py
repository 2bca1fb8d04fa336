"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

A middleware layer sits between the server and the sample router. It gets
the parsed request plus a callable for "everything below me", and returns
the HTTPResponse that travels back up:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   server.handle_request(request)                                     │
    │        │                                                             │
    │        ▼                                                             │
    │   LoggingMiddleware ── starts the clock                              │
    │        │                                                             │
    │        ▼                                                             │
    │   <your layer>      ── may answer by itself and skip the router      │
    │        │                                                             │
    │        ▼                                                             │
    │   router.handle     ── /sum?a=3&b=4 → sum_params → "7"               │
    │        │                                                             │
    │        ▲ response climbs back through the same layers               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Layers are stacked in the order they were added, first added on the
outside. A layer is a Middleware subclass, or a plain function
(request, call_next) -> response decorated with @function_middleware:

    @function_middleware
    def tag_sample(request, call_next):
        response = call_next(request)
        response.set_header("X-Sample", "query-params")
        return response

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse

logger = logging.getLogger(__name__)


# Whatever sits below a layer: another layer or, at the bottom, router.handle
NextHandler = Callable[[HTTPRequest], HTTPResponse]

MiddlewareFunction = Callable[[HTTPRequest, NextHandler], HTTPResponse]


class Middleware(ABC):
    """
    One layer of the pipeline.

        class ServedBy(Middleware):
            def __call__(self, request, call_next):
                response = call_next(request)
                response.set_header("X-Served-By", "helloweb")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, call_next: NextHandler) -> HTTPResponse:
        """
        Produce the response for request.

        Call call_next(request) to reach the layers below; return a
        response without calling it to answer here.
        """

    @property
    def name(self) -> str:
        return type(self).__name__


class MiddlewarePipeline:
    """
    The stack of layers the server puts in front of its router.

        pipeline = MiddlewarePipeline().use(LoggingMiddleware())
        handle = pipeline.wrap(build_router("hello-name").handle)
        response = handle(HTTPRequest.from_target("GET", "/hello?name=Ada"))
    """

    def __init__(self):
        self._layers: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Push a layer below the ones already added."""
        self._layers.append(middleware)
        logger.debug(f"Middleware layer {len(self._layers)}: {middleware.name}")
        return self

    def use(self, *layers: Middleware) -> "MiddlewarePipeline":
        for layer in layers:
            self.add(layer)
        return self

    def wrap(self, endpoint: NextHandler) -> NextHandler:
        """
        Return a callable that runs request → layers → endpoint.

        Built from the inside out: the endpoint first, then each layer
        around it, ending with the first one added. An empty pipeline
        returns the endpoint itself.
        """
        chain = endpoint
        for layer in self._layers[::-1]:
            chain = self._link(layer, chain)
        return chain

    @staticmethod
    def _link(layer: Middleware, below: NextHandler) -> NextHandler:
        def call(request: HTTPRequest) -> HTTPResponse:
            return layer(request, below)
        return call

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._layers)


class FunctionMiddleware(Middleware):
    """A layer backed by a plain (request, call_next) -> response function."""

    def __init__(self, func: MiddlewareFunction, name: Optional[str] = None):
        self._func = func
        self._label = name or getattr(func, "__name__", type(func).__name__)

    def __call__(self, request: HTTPRequest, call_next: NextHandler) -> HTTPResponse:
        return self._func(request, call_next)

    @property
    def name(self) -> str:
        return self._label


def function_middleware(func: MiddlewareFunction) -> FunctionMiddleware:
    """Decorator turning a function into a FunctionMiddleware."""
    return FunctionMiddleware(func)
