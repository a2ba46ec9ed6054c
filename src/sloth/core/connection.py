"""
=============================================================================
CLIENT CONNECTION
=============================================================================

One accepted socket, seen as a sequence of raw HTTP requests.

TCP hands over bytes in whatever chunks the network produced, so the
connection keeps a receive buffer and cuts one request at a time out of it:

    buffer:  GET /a HTTP/1.1\\r\\n...\\r\\n\\r\\n│POST /b HTTP/1.1\\r\\n...
             └──────────── request 1 ──────────┘└── stays buffered ──►

    1. receive until the buffer holds "\\r\\n\\r\\n"
    2. read Content-Length from the header block
    3. receive until the body is complete
    4. return header block + body, keep the remainder (pipelining)

=============================================================================
TIMEOUTS
=============================================================================

    first request       timeout             → TimeoutError (server sends 408)
    later requests      keep_alive_timeout  → None (idle client, just close)

=============================================================================
"""

import logging
import re
import socket
import time
import uuid
from enum import Enum
from typing import Optional

from ..http.request import HTTPParseError


logger = logging.getLogger(__name__)

_CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*(\d+)[ \t]*\r?$", re.IGNORECASE | re.MULTILINE)
_HEADER_END = b"\r\n\r\n"


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    IDLE = "idle"
    CLOSED = "closed"


class Connection:
    """
    A client socket plus its receive buffer.

    Args:
        socket: Accepted client socket.
        address: Client (ip, port).
        buffer_size: Bytes asked for per recv().
        timeout: Seconds to wait for the first request (None: forever).
        keep_alive_timeout: Seconds an idle keep-alive client may wait.
        max_request_size: Largest request (headers + body) accepted.
    """

    def __init__(
        self,
        socket: socket.socket,
        address: tuple[str, int],
        buffer_size: int = 8192,
        timeout: Optional[float] = 30.0,
        keep_alive_timeout: float = 5.0,
        max_request_size: int = 10 * 1024 * 1024,
    ):
        self.socket = socket
        self.address = address
        self.buffer_size = buffer_size
        self.timeout = timeout
        self.keep_alive_timeout = keep_alive_timeout
        self.max_request_size = max_request_size

        self.id = uuid.uuid4().hex[:8]
        self.state = ConnectionState.NEW
        self.requests_read = 0
        self.opened_at = time.monotonic()
        self._buffer = bytearray()

        self.socket.settimeout(timeout)

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Cut the next complete request out of the stream.

        Returns:
            Raw request bytes, or None when the peer closed the connection
            or an idle keep-alive client timed out.

        Raises:
            TimeoutError: If the first request did not arrive in time.
            HTTPParseError: (413) If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        if self.requests_read:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            header_end = self._buffer.find(_HEADER_END)
            while header_end < 0:
                if not self._fill():
                    return None
                header_end = self._buffer.find(_HEADER_END)

            body_start = header_end + len(_HEADER_END)
            total = body_start + self._content_length(bytes(self._buffer[:header_end]))
            if total > self.max_request_size:
                raise HTTPParseError(f"Request too large: {total} bytes", status_code=413)

            # A short body is left for the parser to reject
            while len(self._buffer) < total and self._fill():
                pass

        except socket.timeout:
            if self.requests_read:
                logger.debug(f"[{self.id}] Idle keep-alive connection timed out")
                return None
            raise TimeoutError("Timed out waiting for the request")
        finally:
            if self.state is not ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout)

        request = bytes(self._buffer[:total])
        del self._buffer[:total]
        self.requests_read += 1
        return request

    def _fill(self) -> bool:
        """Receive one chunk into the buffer; False once the peer is gone."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False
        if not chunk:
            return False

        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(self._buffer)} bytes", status_code=413)
        return True

    @staticmethod
    def _content_length(header_block: bytes) -> int:
        """Declared body size; 0 when absent or unparseable (the parser decides)."""
        match = _CONTENT_LENGTH.search(header_block)
        return int(match.group(1)) if match else 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """sendall() the serialized response; False when the client is gone."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Could not send response: {e}")
            return False
        return True

    def set_keep_alive(self):
        self.state = ConnectionState.IDLE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Half-close, drain what the client still sends, release the socket.

        Closing with unread input makes the kernel send RST, which can
        destroy a response the client has not read yet.
        """
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(self.buffer_size):
                pass
        except OSError:
            pass
        finally:
            self.socket.close()

        logger.debug(
            f"[{self.id}] Closed after {self.requests_read} requests "
            f"({time.monotonic() - self.opened_at:.2f}s)"
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.address[0]}:{self.address[1]} {self.state.value}>"
