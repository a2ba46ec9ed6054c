"""
=============================================================================
NETWORKING CORE
=============================================================================

The transport underneath sloth.server:

    SocketServer   listening socket and accept loop
    Connection     one client socket, buffered request reads, keep-alive
    ThreadPool     worker threads that serve connections

Nothing in here knows about resources or routing.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
