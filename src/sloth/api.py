"""
=============================================================================
API: ROUTER FACADE AND SERVER LIFECYCLE
=============================================================================

API is the object an application builds: it owns the configuration, the
router slot and the dispatcher, and finally starts the server.

    api = API()
    api.add_resource(Users(), "/users", "/users/:id")
    api.add_resource_with_wrapper(Reports(), CompressionMiddleware(), "/reports")
    api.start(8080)                                   # blocks

=============================================================================
THE ROUTER SLOT
=============================================================================

The router is held in a write-once cell:

    ┌─────────────┐   router() / add_resource()   ┌──────────────────┐
    │   EMPTY     │ ────────────────────────────► │ FILLED (Router)  │
    │             │                               │                  │
    │             │   set_router(custom)          │ FILLED (custom)  │
    │             │ ────────────────────────────► │                  │
    └─────────────┘                               └────────┬─────────┘
                                                           │
                                      set_router(...) ─────┘
                                      → RouterAlreadySetError,
                                        the first router stays

start() refuses to run with an EMPTY slot (NoResourceError).

Setup (add_resource, set_router, set_default_*) is meant to happen in one
thread before start(). Nothing here is locked.

=============================================================================
"""

from typing import Any, Callable, Optional
import logging

from .config import APIConfig, ServerConfig, validate_port
from .dispatcher import Dispatcher
from .errors import NoResourceError, RouterAlreadySetError
from .http.router import Handler, Mux, Router
from .server import HTTPServer


logger = logging.getLogger(__name__)


# Wrapper: transforms a handler at registration time (compression, logging)
Wrapper = Callable[[Handler], Handler]


class RouterSlot:
    """Write-once cell holding the router."""

    def __init__(self):
        self._router: Optional[Mux] = None

    @property
    def is_set(self) -> bool:
        return self._router is not None

    def get(self) -> Optional[Mux]:
        return self._router

    def set(self, router: Mux) -> None:
        """
        Fill the slot.

        Raises:
            RouterAlreadySetError: If the slot is already filled.
        """
        if self._router is not None:
            raise RouterAlreadySetError("router already initialized")
        self._router = router


class API:
    """
    Binds resources to paths and serves them.

    Args:
        config: Dispatch settings (form parsing, default Content-Type).
        server_config: Settings for the server started by start().
    """

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        server_config: Optional[ServerConfig] = None,
    ):
        self.config = config or APIConfig()
        self.config.validate()
        self.server_config = server_config or ServerConfig()
        self.server_config.validate()

        self._slot = RouterSlot()
        self._dispatcher = Dispatcher(self.config)
        self._server = None

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def set_default_content_type(self, content_type: str) -> None:
        """Content-Type for structured payloads; "" disables it."""
        self.config.default_content_type = content_type
        self.config.validate()

    def set_default_parse_form(self, parse_form: bool) -> None:
        self.config.parse_form = parse_form

    # =========================================================================
    # ROUTER
    # =========================================================================

    def router(self) -> Mux:
        """The router, created on first use."""
        if not self._slot.is_set:
            self._slot.set(Router())
            logger.debug("Default router initialized")
        return self._slot.get()

    def set_router(self, router: Mux) -> None:
        """
        Install a custom router.

        Raises:
            RouterAlreadySetError: If a router was already set or created.
        """
        self._slot.set(router)

    # =========================================================================
    # RESOURCES
    # =========================================================================

    def add_resource(self, resource: Any, *paths: str) -> None:
        """Serve resource at every path in paths."""
        for path in paths:
            self.router().handle_func(path, self._dispatcher.handler_for(resource))
            logger.debug("Bound %s to %s", type(resource).__name__, path)

    def add_resource_with_wrapper(self, resource: Any, wrapper: Wrapper, *paths: str) -> None:
        """Like add_resource(), with each handler passed through wrapper first."""
        for path in paths:
            handler = wrapper(self._dispatcher.handler_for(resource))
            self.router().handle_func(path, handler)
            logger.debug("Bound %s to %s (wrapped)", type(resource).__name__, path)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, port: int) -> None:
        """
        Serve on port until shutdown. Blocks.

        Raises:
            NoResourceError: If no resource was added and no router set.
                No socket is opened in that case.
            ValueError: If port is out of range.
            OSError: If binding fails or the listener dies.
        """
        router = self._slot.get()
        if router is None:
            raise NoResourceError("no resource registered")
        validate_port(port)

        self._server = HTTPServer(self.server_config, router.serve)
        try:
            self._server.run(port)
        finally:
            self._server = None

    def stop(self) -> None:
        """Ask a running start() to shut down. No-op when not serving."""
        server = self._server
        if server is not None:
            server.shutdown()

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """(host, port) the server is bound to, None when not listening."""
        server = self._server
        if server is None:
            return None
        return server.address
