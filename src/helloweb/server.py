"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: a SocketServer accepts connections, a ThreadPool
worker owns each one, RequestParser turns bytes into an HTTPRequest, and
the middleware-wrapped Router produces the HTTPResponse.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept() ──► pool.submit(block=False) ──full──► 503, close         │
    │                     │ waited > config.timeout ──► 503, close         │
    │                     ▼  (worker thread)                               │
    │   ┌──────────── keep-alive loop ─────────────────────────────────┐   │
    │   │  conn.read_request()     timeout → 408, too large → 413      │   │
    │   │  parser.parse()          HTTPParseError → its status, close  │   │
    │   │  middleware → router     exception → logged, 500             │   │
    │   │  response.to_bytes()     HEAD → headers only                 │   │
    │   │  Connection: close?      → leave the loop                    │   │
    │   └──────────────────────────────────────────────────────────────┘   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
USAGE
=============================================================================

    from helloweb import HTTPServer, ServerConfig
    from helloweb.samples import build_router

    server = HTTPServer(ServerConfig(port=8080), router=build_router("hello-name"))
    server.use(LoggingMiddleware())
    server.run()        # blocks until Ctrl+C / SIGTERM / server.stop()

=============================================================================
"""

import logging
from typing import Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RequestTooLarge
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus,
    error_response, internal_error, service_unavailable,
    Router,
)
from .middleware import MiddlewarePipeline, Middleware

logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server around a single Router.

    The router is built beforehand (see helloweb.samples) and passed in.
    Routes can also be added through the decorator shortcuts, which
    delegate to that router:

        server = HTTPServer()

        @server.get("/ping")
        def ping(request, writer):
            writer.write("pong")
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        router: Optional[Router] = None,
    ):
        """
        Args:
            config: Server configuration; defaults to ServerConfig().
            router: The routing table; defaults to an empty Router.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = router if router is not None else Router()
        self._middleware = MiddlewarePipeline()

        # middleware.wrap(router.handle), built on first use
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. First added is outermost."""
        self._middleware.add(middleware)
        self._handler = None
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def bound_address(self) -> Tuple[str, int]:
        """(host, port) actually listened on; resolves port 0."""
        return self._socket_server.bound_address

    @property
    def is_running(self) -> bool:
        return self._running

    def route(self, path: str, method: Optional[str] = None, **kwargs):
        return self._router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start serving. Blocks until stop(), SIGINT or SIGTERM.

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()
        self._running = True

        logger.info(f"{self.config.server_name} starting on {self.config.host}:{self.config.port}")
        logger.debug(f"{len(self._router)} routes, {len(self._middleware)} middleware")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self._shutdown()

    def stop(self):
        """Stop accepting connections; run() returns shortly after."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up (for tests and embedding)."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure the root logger from config.log_level."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("helloweb").setLevel(level)

    def _shutdown(self):
        """Stop the workers; in-flight connections get up to 30s."""
        logger.info("Draining workers")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle_request(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one request through middleware and router.

        A handler exception is logged with its traceback and answered
        with 500; the client never sees the exception text.
        """
        if self._handler is None:
            self._handler = self._middleware.wrap(self._router.handle)

        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"{request.method} {request.path} failed: {e}")
            return internal_error()

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection on the pool. A full queue, or a wait longer
        than config.timeout, is answered with 503.
        """
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            max_wait=self.config.timeout,
            on_drop=self._reject_connection,
            block=False,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] No worker free for {conn.address[0]}, answering 503")
            self._reject_connection(conn)

    def _reject_connection(self, conn: Connection):
        with conn:
            self._send_error(conn, service_unavailable())

    def _process_connection(self, conn: Connection):
        """Worker thread body: serve requests until the connection ends."""
        with conn:
            while self._running and self._serve_next(conn):
                conn.set_keep_alive()

    def _serve_next(self, conn: Connection) -> bool:
        """
        Read, route and answer one request.

        Returns:
            True if the connection should stay open for another request.
        """
        request = self._read_next(conn)
        if request is None:
            return False

        response = self.handle_request(request)
        keep_alive = self.config.keep_alive and request.is_keep_alive

        if keep_alive:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault(
                "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
            )
        else:
            response.headers["Connection"] = "close"

        payload = response.to_bytes(
            self.config.server_name,
            include_body=request.method != "HEAD",
        )
        return conn.send_response(payload) and keep_alive

    def _read_next(self, conn: Connection) -> Optional[HTTPRequest]:
        """
        Next parsed request, or None once the connection is done.

        Protocol errors are answered here (408, 413, or the parser's
        status) and also end the connection.
        """
        try:
            raw = conn.read_request()
            if raw is None:
                return None
            return self._parser.parse(raw, conn.address)
        except TimeoutError:
            self._send_error(conn, error_response(HTTPStatus.REQUEST_TIMEOUT))
        except RequestTooLarge as e:
            self._send_error(conn, error_response(HTTPStatus.PAYLOAD_TOO_LARGE, str(e)))
        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] Rejected with {e.status_code}: {e}")
            self._send_error(conn, error_response(HTTPStatus(e.status_code), str(e)))
        return None

    def _send_error(self, conn: Connection, response: HTTPResponse):
        """Send a response produced outside the router, then the caller closes."""
        response.set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))


def create_app(
    config: Optional[ServerConfig] = None,
    router: Optional[Router] = None,
) -> HTTPServer:
    """
    Factory for a server instance:

        app = create_app(ServerConfig(port=3000), router=build_router("hello-world"))
        app.run()
    """
    return HTTPServer(config, router=router)
