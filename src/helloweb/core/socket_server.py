"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept loop. Knows nothing about HTTP:
every accepted client socket is wrapped in a Connection and passed to a
callback, which in practice queues it on the worker pool.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Lifecycle                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(callback)                                                   │
    │        ├──► socket()  SO_REUSEADDR, TCP_NODELAY, 1s accept timeout  │
    │        ├──► bind()    failure → logged at ERROR and re-raised        │
    │        ├──► listen()  ready event set, bound_address known          │
    │        ├──► signals   SIGINT/SIGTERM → shutdown() (main thread only)│
    │        └──► accept loop until shutdown()                            │
    │                 └──► callback(Connection(...))                       │
    │                                                                      │
    │    shutdown()   flag + event, accept loop exits within ~1s          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The 1 second accept timeout is what makes shutdown() work from another
thread: accept() returns periodically and the loop re-checks its flag.

Python only lets the main thread install signal handlers. When the server
runs in a background thread (as the test suite does) the handlers are
skipped and shutdown() is the only way out.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection

logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def on_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(on_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Supplies host, port, backlog and the per-connection
                    buffer, timeout and size limits.

        The socket is not created until start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_address(self) -> Tuple[str, int]:
        """
        Address actually bound. With port 0 this carries the port the OS
        picked; before start() it falls back to the configured address.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with its options set."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting right after a stop would otherwise hit TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Small responses go out immediately instead of waiting on Nagle
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """
        Route SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) to shutdown().

        Skipped off the main thread, where signal.signal() raises.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"{signal_name} received, stopping listener")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop. Blocks until shutdown().

        Args:
            connection_handler: Called with each accepted Connection.

        Raises:
            OSError: If the address cannot be bound (in use, privileged
                     port, unknown host).
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Cannot listen on {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept clients until shutdown.

            while running:
                accept()            (returns at least once per second)
                wrap in Connection
                connection_handler(conn)
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"accept() failed, leaving the accept loop: {e}")
                break

            logger.debug(f"accept() → {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """
        Stop accepting. Safe to call from any thread, and more than once.
        """
        if self._running:
            logger.info("Listener stopping")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Listener closed")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the socket is listening.

        Returns:
            True once listening, False on timeout.
        """
        return self._ready_event.wait(timeout)
