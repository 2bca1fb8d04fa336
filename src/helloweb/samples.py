"""
=============================================================================
SAMPLE ROUTERS
=============================================================================

Each sample is a function that builds a fresh Router. The server takes
the router by reference; nothing is registered globally.

    ┌───────────────┬─────────────────────────────────────────────────────┐
    │ Sample        │ Routes                                              │
    ├───────────────┼─────────────────────────────────────────────────────┤
    │ hello-world   │ /            → hello_world        (plain function)  │
    │ hello-handler │ /            → HelloWorldHandler  (Handler object)  │
    │ hello-func    │ /            → get_home           (HandlerFunc)     │
    │ hello-name    │ /hello       → hello_name                           │
    │ query-params  │ /params      → dump_params                          │
    │               │ /sum         → sum_params                           │
    │               │ /sum/        → "sum"                                │
    │               │ /sum/hello   → "Hello"                              │
    │               │ /            → "Hello"                              │
    └───────────────┴─────────────────────────────────────────────────────┘

Usage:
    router = build_router("query-params")
    server = HTTPServer(config, router=router)

=============================================================================
"""

from typing import Callable, Dict, List

from .http.router import Router
from .handlers import (
    hello_world,
    HelloWorldHandler,
    get_home,
    hello_name,
    dump_params,
    sum_params,
    literal,
)

DEFAULT_SAMPLE = "query-params"


def hello_world_router() -> Router:
    router = Router()
    router.add_route("/", hello_world)
    return router


def hello_handler_router() -> Router:
    router = Router()
    router.add_route("/", HelloWorldHandler())
    return router


def hello_func_router() -> Router:
    router = Router()
    router.add_route("/", get_home)
    return router


def hello_name_router() -> Router:
    router = Router()
    router.add_route("/hello", hello_name)
    return router


def query_params_router() -> Router:
    """
    Five routes whose precedence is the point of the exercise:

        /sum/hello → "Hello"    exact beats the /sum/ subtree
        /sum/xyz   → "sum"      /sum/ subtree beats /
        /sum       → sum        exact, no redirect to /sum/
        /anything  → "Hello"    / catches the rest
    """
    router = Router()
    router.add_route("/params", dump_params)
    router.add_route("/sum", sum_params)
    router.add_route("/sum/", literal("sum"))
    router.add_route("/sum/hello", literal("Hello"))
    router.add_route("/", literal("Hello"))
    return router


SAMPLES: Dict[str, Callable[[], Router]] = {
    "hello-world": hello_world_router,
    "hello-handler": hello_handler_router,
    "hello-func": hello_func_router,
    "hello-name": hello_name_router,
    "query-params": query_params_router,
}


def sample_names() -> List[str]:
    return list(SAMPLES)


def build_router(name: str = DEFAULT_SAMPLE) -> Router:
    """
    Build the router for a sample.

    Raises:
        ValueError: If name is not a known sample.
    """
    try:
        builder = SAMPLES[name]
    except KeyError:
        raise ValueError(
            f"Unknown sample {name!r}. Available: {', '.join(sample_names())}"
        ) from None
    return builder()
