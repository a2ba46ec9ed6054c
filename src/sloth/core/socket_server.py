"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept loop. Each accepted client is
wrapped in a Connection and passed to a callback; scheduling and HTTP are
the HTTP server's business.

    bind() ─► listen() ─► ┌──────── accept loop ────────┐ ─► close()
                          │ accept() → Connection → cb  │
                          │ 1s timeout → check running  │
                          └─────────────────────────────┘

The listening socket times out every second so the loop notices shutdown()
without a client having to connect.

=============================================================================
SHUTDOWN
=============================================================================

    SIGINT / SIGTERM ──┐
                       ├──► shutdown() ──► loop exits ──► socket closed
    API.stop() ────────┘

Python only lets the main thread install signal handlers. When serving from
another thread (tests, embedding programs) signals are left untouched and
shutdown() is the only way to stop; otherwise the previous handlers are put
back once the loop exits.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Dict, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ConnectionCallback = Callable[[Connection], None]

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SocketServer:
    """
    Accepts TCP clients on (config.host, port).

    Example:
        listener = SocketServer(config, port=8080)
        listener.start(on_connection)    # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig, port: int):
        self.config = config
        self.port = port
        self._sock: Optional[socket.socket] = None
        self._running = False
        self._listening = threading.Event()
        self._stopped = threading.Event()
        self._previous_signal_handlers: Dict[int, object] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """(host, port) actually bound; resolves port 0 once listening."""
        if self._sock is None:
            return self.config.host, self.port
        host, port = self._sock.getsockname()[:2]
        return host, port

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, on_connection: ConnectionCallback):
        """
        Bind, listen, then accept until shutdown(). Blocks.

        Raises:
            OSError: If binding fails, or accept() fails while running.
        """
        self._sock = self._listen()
        self._running = True
        self._stopped.clear()
        self._trap_signals()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")
        self._listening.set()

        try:
            self._serve_forever(on_connection)
        finally:
            self._close()

    def _listen(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.settimeout(1.0)
            sock.bind((self.config.host, self.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {self.config.host}:{self.port}: {e}")
            sock.close()
            raise
        return sock

    def _serve_forever(self, on_connection: ConnectionCallback):
        while self._running:
            try:
                client, address = self._sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                logger.error(f"accept() failed: {e}")
                raise

            logger.debug(f"Client connected from {address[0]}:{address[1]}")
            on_connection(Connection(
                socket=client,
                address=address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            ))

    def shutdown(self):
        """Ask the accept loop to stop. Safe from any thread, and to repeat."""
        if self._running:
            logger.info("Stopping listener...")
        self._running = False
        self._stopped.set()

    def _close(self):
        self._restore_signals()
        self._listening.clear()
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        logger.info("Listener closed")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until accepting connections; False on timeout."""
        return self._listening.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _trap_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Serving outside the main thread, signals not trapped")
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for signum in _STOP_SIGNALS:
            self._previous_signal_handlers[signum] = signal.signal(signum, on_signal)

    def _restore_signals(self):
        while self._previous_signal_handlers:
            signum, handler = self._previous_signal_handlers.popitem()
            signal.signal(signum, handler)
