"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the router:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer   listening socket, accept loop, signal handling      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ one Connection per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  ThreadPool     bounded workers and task queue (503 when full)      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ a worker owns the connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Connection     buffered request reads, keep-alive, graceful close │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
