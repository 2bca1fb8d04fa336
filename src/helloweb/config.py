"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every knob the serving layer reads lives in one dataclass. The samples
themselves have nothing to configure: a router is built once, handed to
the server, and never touched again.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m helloweb --port 3000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HELLOWEB_PORT=3000 python -m helloweb                     │
    │                                                                      │
    │   3. Dataclass defaults                                             │
    │      └── 127.0.0.1:8080, 4-16 workers                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validation happens once, when HTTPServer is constructed. A bad port or an
inverted worker range is a ValueError at startup, never a surprise on the
first request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers, queue_size

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port;
    SocketServer.bound_address reports the real one after binding.
    """

    backlog: int = 128
    """Maximum number of queued connections waiting for accept()."""

    buffer_size: int = 8192
    """Size of each recv() call in bytes."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds for the first request on a connection.
    None = blocking (infinite wait).
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow multiple requests on the same TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a keep-alive connection is closed."""

    max_request_size: int = 1024 * 1024  # 1 MB
    """
    Maximum allowed request size in bytes. The samples only read the
    query string, so this is generous.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on worker threads under load."""

    queue_size: int = 100
    """
    Connections that may wait for a free worker. Beyond this the server
    answers 503 Service Unavailable.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "helloweb/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HELLOWEB_HOST       Server host (default: 127.0.0.1)
        HELLOWEB_PORT       Server port (default: 8080)
        HELLOWEB_WORKERS    Max worker threads (default: 16)
        HELLOWEB_TIMEOUT    Request timeout in seconds (default: 30)
        HELLOWEB_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("HELLOWEB_HOST", "127.0.0.1"),
            port=int(os.getenv("HELLOWEB_PORT", "8080")),
            max_workers=int(os.getenv("HELLOWEB_WORKERS", "16")),
            timeout=float(os.getenv("HELLOWEB_TIMEOUT", "30")),
            log_level=os.getenv("HELLOWEB_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid field.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
