"""
=============================================================================
HTTP SERVER
=============================================================================

The process-level server behind API.start(). It knows nothing about
resources: it turns bytes into an HTTPRequest, calls ONE handler with a
fresh ResponseWriter, and turns the writer back into bytes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer ── accept() ──► Connection                            │
    │                                    │                                 │
    │                                    ▼                                 │
    │                      ThreadPool.try_submit()                         │
    │                         │                      │                     │
    │                       queued               queue full                │
    │                         │                      └──► 503, close       │
    │                         ▼                                            │
    │   worker: read_request() → RequestParser.parse()                     │
    │                         │           └── HTTPParseError ──► status,   │
    │                         ▼                                   close    │
    │           handler(ResponseWriter(), request)                         │
    │                         │           └── exception ──► 500 (logged)   │
    │                         ▼                                            │
    │           writer.to_bytes() ──► sendall() ──► keep-alive? loop       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Error responses produced here carry no body, same as the dispatcher's.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool
from .http.headers import Headers
from .http.request import HTTPParseError, HTTPRequest, RequestParser
from .http.response import ResponseWriter
from .http.router import Handler
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server calling a single handler.

    Example:
        server = HTTPServer(ServerConfig(), router.serve)
        server.run(8080)            # blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: Optional[ServerConfig], handler: Handler):
        self.config = config or ServerConfig()
        self.config.validate()
        self.handler = handler

        self._socket_server: Optional[SocketServer] = None
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._running = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, port: int) -> None:
        """
        Serve on (config.host, port). Blocks.

        Raises:
            OSError: If binding fails or the listener dies.
        """
        self._setup_logging()
        self._socket_server = SocketServer(self.config, port)
        self._running = True
        self._thread_pool.start()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Stop accepting connections; run() returns shortly after."""
        self._running = False
        if self._socket_server is not None:
            self._socket_server.shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        if self._socket_server is None:
            return False
        return self._socket_server.wait_until_listening(timeout)

    @property
    def address(self) -> Optional[tuple[str, int]]:
        if self._socket_server is None:
            return None
        return self._socket_server.address

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("sloth").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(timeout=self.config.keep_alive_timeout)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a connection for a worker, or answer 503 when the queue is full."""
        if not self._thread_pool.try_submit(self._process_connection, conn):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs in a worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.debug(f"[{conn.id}] Bad request: {e}")
                        self._send_error(conn, e.status_code)
                        break

                    conn.state = ConnectionState.PROCESSING
                    writer = self._serve(conn, request)

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    response = writer.to_bytes(
                        self.config.server_name,
                        include_body=request.method != "HEAD",
                        extra_headers=self._connection_headers(keep_alive),
                    )
                    if not conn.send_response(response):
                        break

                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except HTTPParseError as e:
                    self._send_error(conn, e.status_code)
                    break

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    break

                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _serve(self, conn: Connection, request: HTTPRequest) -> ResponseWriter:
        """Run the handler; an exception becomes an empty 500."""
        writer = ResponseWriter(version="HTTP/1.1")
        try:
            self.handler(writer, request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error on {request.method} {request.path}: {e}")
            writer = ResponseWriter(version="HTTP/1.1")
            writer.write_header(HTTPStatus.INTERNAL_SERVER_ERROR)
        return writer

    def _connection_headers(self, keep_alive: bool) -> Headers:
        headers = Headers()
        if keep_alive:
            headers.set("Connection", "keep-alive")
            headers.set("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
        else:
            headers.set("Connection", "close")
        return headers

    def _send_error(self, conn: Connection, status: int):
        """Bare status response for failures before a handler runs."""
        writer = ResponseWriter()
        writer.write_header(status)
        conn.send_response(writer.to_bytes(
            self.config.server_name,
            extra_headers=self._connection_headers(keep_alive=False),
        ))
