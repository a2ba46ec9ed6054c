"""
=============================================================================
HTTP ROUTER
=============================================================================

The router maps URL paths to handlers. sloth only needs two things from a
router, captured by the Mux protocol:

    handle_func(pattern, handler)    bind a path pattern to a handler
    serve(writer, request)           forward a request to its handler

Anything implementing those two methods can be installed with
API.set_router(). Router is the default implementation.

=============================================================================
PATH PATTERNS
=============================================================================

    ┌────────────────────┬──────────────────┬───────────────────────────┐
    │ Pattern            │ Path             │ request.path_params       │
    ├────────────────────┼──────────────────┼───────────────────────────┤
    │ /users             │ /users           │ {}                        │
    │ /users             │ /users/          │ {}   (trailing / ignored) │
    │ /users/:id         │ /users/42        │ {"id": "42"}              │
    │ /users/:id         │ /users/42/posts  │ no match                  │
    │ /files/*path       │ /files/a/b.txt   │ {"path": "a/b.txt"}       │
    └────────────────────┴──────────────────┴───────────────────────────┘

Routes are tried in registration order and the FIRST match wins, so
registering the same pattern twice leaves the first handler active.

Unlike a method-aware router, Router matches on the path only: which HTTP
methods a path answers is decided by the resource bound to it.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable
import re

from .request import HTTPRequest
from .response import ResponseWriter


# =============================================================================
# TYPE ALIASES
# =============================================================================

# Handler: writes a response for a request, returns nothing
Handler = Callable[[ResponseWriter, HTTPRequest], None]


@runtime_checkable
class Mux(Protocol):
    """The router abstraction sloth binds resources against."""

    def handle_func(self, pattern: str, handler: Handler) -> None:
        ...

    def serve(self, writer: ResponseWriter, request: HTTPRequest) -> None:
        ...


@dataclass
class Route:
    """A registered pattern and the handler bound to it."""

    path: str
    handler: Handler

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


def not_found(writer: ResponseWriter, request: HTTPRequest) -> None:
    """Plain-text 404, used when no route matches."""
    writer.headers.set("Content-Type", "text/plain; charset=utf-8")
    writer.headers.set("X-Content-Type-Options", "nosniff")
    writer.write_header(404)
    writer.write(b"404 page not found\n")


def normalize_path(path: str) -> str:
    """Ensure a leading slash and drop a trailing one ("/users/" → "/users")."""
    return "/" + path.strip("/") if path != "/" else "/"


class Router:
    """
    Path router with :param and *wildcard segments.

    Example:
        router = Router()
        router.handle_func("/users/:id", show_user)
        router.serve(writer, request)       # request.path == "/users/42"
                                            # → show_user(writer, request)
                                            #   request.path_params == {"id": "42"}
    """

    def __init__(self, not_found_handler: Handler = not_found):
        self._routes: List[Route] = []
        self.not_found_handler = not_found_handler

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def handle_func(self, pattern: str, handler: Handler) -> None:
        """
        Bind pattern to handler.

        Raises:
            ValueError: If the pattern does not start with "/".
        """
        if not pattern.startswith("/"):
            raise ValueError(f"Route pattern must start with '/': {pattern!r}")

        compiled, param_names = self._compile_pattern(pattern)
        self._routes.append(Route(
            path=pattern,
            handler=handler,
            _pattern=compiled,
            _param_names=param_names,
        ))

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a path pattern into an anchored regex.

        =====================================================================
        PATTERN COMPILATION
        =====================================================================

        Input:  "/users/:id/files/*rest"

            "users"  → /users               (static, re.escape'd)
            ":id"    → /(?P<id>[^/]+)       (one segment)
            "files"  → /files               (static)
            "*rest"  → /(?P<rest>.*)        (everything left, then stop)

        Output: ^/users/(?P<id>[^/]+)/files/(?P<rest>.*)$

        =====================================================================
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")

            elif segment.startswith("*"):
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break

            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")

        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, path: str) -> Optional[tuple[Route, Dict[str, str]]]:
        """First route matching path and its captured parameters, or None."""
        path = normalize_path(path)

        for route in self._routes:
            if route._pattern:
                match = route._pattern.match(path)
                if match:
                    return route, match.groupdict()

        return None

    def serve(self, writer: ResponseWriter, request: HTTPRequest) -> None:
        """Forward request to the handler of the first matching route."""
        found = self.match(request.path)

        if found is None:
            self.not_found_handler(writer, request)
            return

        route, params = found
        request.path_params = params
        route.handler(writer, request)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """Registered routes in matching order."""
        return list(self._routes)

    def print_routes(self) -> None:
        """Print registered routes (debugging aid)."""
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self._routes:
            name = getattr(route.handler, "__qualname__", type(route.handler).__name__)
            print(f"  {route.path:<40} → {name}")
        print("-" * 60)
