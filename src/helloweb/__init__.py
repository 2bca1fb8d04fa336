"""
=============================================================================
HELLOWEB - Minimal HTTP Routing Samples
=============================================================================

A handful of introductory HTTP exercises served by a small HTTP/1.1
server written on raw sockets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   samples.py      build_router("query-params")                      │
    │        │                                                             │
    │        ▼                                                             │
    │   http/router.py  Router: exact + subtree patterns, longest wins     │
    │        │                                                             │
    │        ▼                                                             │
    │   handlers/       handler(request, writer) → writes text            │
    │                                                                      │
    │   server.py       HTTPServer: socket → pool → parse → route → send  │
    │   core/           SocketServer, Connection, ThreadPool               │
    │   middleware/     pipeline + access log                             │
    │   config.py       ServerConfig (defaults, env, validation)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    $ python -m helloweb --sample query-params
    $ curl 'localhost:8080/sum?a=3&b=4'
    7

    from helloweb import HTTPServer, ServerConfig, build_router

    server = HTTPServer(ServerConfig(port=8080), router=build_router("hello-name"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer, create_app
from .samples import SAMPLES, build_router

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "create_app",
    "SAMPLES",
    "build_router",
    "__version__",
]
