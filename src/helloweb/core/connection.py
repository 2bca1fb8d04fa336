"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket for the worker that owns it.

TCP is a byte stream, not a message stream. One recv() may return half a
request, or one and a half requests. Connection buffers bytes until a full
request (headers plus Content-Length body) is available, hands it out,
and keeps whatever came after it for the next call.

    recv() chunks:   "GET /sum?a=3 HT"  "TP/1.1\r\nHost: x\r\n\r\nGET /"
                     ────────────────────────────────────────── ──────
                                    request #1                  kept in
                                                                _buffer

=============================================================================
TIMEOUTS
=============================================================================

    First request on a connection   config.timeout (30s)
        nothing arrives → TimeoutError → server answers 408

    Later requests (keep-alive)     config.keep_alive_timeout (5s)
        nothing arrives → read_request() returns None → quiet close

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

logger = logging.getLogger(__name__)

# Upper bounds on reading leftover input while closing
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class RequestTooLarge(ValueError):
    """The buffered request grew past max_request_size."""


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One accepted client socket plus the bytes read from it so far.

    Attributes:
        socket: The accepted socket.
        address: Peer (ip, port).
        id: Eight hex digits tagging this connection's log lines.
        state: Where the owning worker is in the request cycle.
        requests_handled: Requests handed out by read_request() so far.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)
    _opened_at: float = field(default_factory=time.monotonic, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    @property
    def pending_bytes(self) -> int:
        """Bytes received beyond the last request handed out."""
        return len(self._buffer)

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Cut the next complete request off the stream.

            1. recv() until the buffer holds "\\r\\n\\r\\n"
            2. read Content-Length out of that header block
            3. recv() until the body is in (or the peer stops sending)
            4. hand out head + body, keep any surplus for the next call

        Returns:
            Raw request bytes, or None when the peer closed, or went quiet
            between keep-alive requests.

        Raises:
            TimeoutError: Nothing complete arrived within `timeout`.
            RequestTooLarge: The buffer outgrew max_request_size.
        """
        self.state = ConnectionState.READING
        if self.requests_handled:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            head_end = self._buffer.find(b"\r\n\r\n")
            while head_end < 0:
                if not self._read_more():
                    if self._buffer:
                        logger.debug(f"[{self.id}] Peer hung up mid-request")
                    return None
                head_end = self._buffer.find(b"\r\n\r\n")

            body_start = head_end + 4
            request_end = body_start + self._declared_length(self._buffer[:head_end])

            while len(self._buffer) < request_end:
                if not self._read_more():
                    # short body, RequestParser turns it into a 400
                    break
        except socket.timeout:
            if self.requests_handled and not self._buffer:
                logger.debug(f"[{self.id}] Idle for {self.keep_alive_timeout}s, closing")
                return None
            raise TimeoutError(f"No complete request within {self.socket.gettimeout()}s")
        finally:
            self.socket.settimeout(self.timeout)
            self.state = ConnectionState.PROCESSING

        request, self._buffer = self._buffer[:request_end], self._buffer[request_end:]
        self.requests_handled += 1
        return request

    def _read_more(self) -> bool:
        """Append one recv() to the buffer. False once the peer is gone."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            chunk = b""
        if not chunk:
            return False

        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(
                f"Request exceeds {self.max_request_size} bytes ({len(self._buffer)} buffered)"
            )
        return True

    @staticmethod
    def _declared_length(head: bytes) -> int:
        """
        Content-Length found in a raw header block; 0 if missing or junk.

        Only framing depends on it. RequestParser validates the header
        properly afterwards.
        """
        for line in head.split(b"\r\n")[1:]:
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                try:
                    return max(0, int(value.strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        sendall() the serialized response.

        Returns:
            False if the peer went away before it was written.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Could not write response: {e}")
            return False
        return True

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Half-close, drain, then close.

            Server                              Client
               │   FIN ──────────────────────────► │   shutdown(SHUT_WR)
               │ ◄───────────────────────── data  │   read and dropped
               │ ◄───────────────────────── FIN   │
            close()

        Closing with unread input would make the kernel send RST, and the
        client could lose the response it has not read yet.
        """
        if self.is_closed:
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self._drain()
        except OSError:
            # already reset or timed out draining; close regardless
            pass
        finally:
            self.socket.close()

        self.state = ConnectionState.CLOSED
        lifetime = time.monotonic() - self._opened_at
        logger.debug(
            f"[{self.id}] Closed after {self.requests_handled} request(s), {lifetime:.2f}s"
        )

    def _drain(self):
        """Read and drop input until EOF, DRAIN_TIMEOUT or DRAIN_LIMIT bytes."""
        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0

        while drained < DRAIN_LIMIT:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self.socket.settimeout(remaining)
            chunk = self.socket.recv(self.buffer_size)
            if not chunk:
                break
            drained += len(chunk)

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
