"""
=============================================================================
HANDLER WRAPPERS
=============================================================================

API.add_resource_with_wrapper() accepts any callable that turns a handler
into another handler:

    Wrapper = Callable[[Handler], Handler]

Middleware is the class-based way to write one. A subclass implements
handle(), which receives the response writer, the request and the next
handler in the chain:

    class Timing(Middleware):
        def handle(self, writer, request, next):
            start = time.perf_counter()
            next(writer, request)
            log(time.perf_counter() - start)

    api.add_resource_with_wrapper(Users(), Timing(), "/users")

=============================================================================
CHAINING
=============================================================================

MiddlewarePipeline composes several wrappers into one, first added being
the outermost:

    ┌─────────────────────────────────────────────────────────┐
    │  LoggingMiddleware                                      │
    │  ┌───────────────────────────────────────────────────┐  │
    │  │  CompressionMiddleware                            │  │
    │  │  ┌─────────────────────────────────────────────┐  │  │
    │  │  │            dispatcher handler               │  │  │
    │  │  └─────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────┘

    api.add_resource_with_wrapper(
        Users(), chain(LoggingMiddleware(), CompressionMiddleware()), "/users"
    )

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import functools
import logging

from ..http.request import HTTPRequest
from ..http.response import ResponseWriter
from ..http.router import Handler


logger = logging.getLogger(__name__)


Wrapper = Callable[[Handler], Handler]


class Middleware(ABC):
    """
    Base class for class-based wrappers.

    Instances are Wrappers: calling one with a handler returns the wrapped
    handler.
    """

    @abstractmethod
    def handle(self, writer: ResponseWriter, request: HTTPRequest, next: Handler) -> None:
        """
        Process one request.

        Call next(writer, request) to continue the chain, or write a
        response to writer and return to short-circuit.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def __call__(self, handler: Handler) -> Handler:
        @functools.wraps(handler)
        def wrapped(writer: ResponseWriter, request: HTTPRequest) -> None:
            self.handle(writer, request, handler)

        return wrapped


class MiddlewarePipeline:
    """
    Several wrappers applied as one.

    Wrapping happens in reverse order so the first added is outermost:
    [A, B, C] wraps handler as A(B(C(handler))).
    """

    def __init__(self, *wrappers: Wrapper):
        self._wrappers: List[Wrapper] = []
        self.use(*wrappers)

    def add(self, wrapper: Wrapper) -> "MiddlewarePipeline":
        self._wrappers.append(wrapper)
        logger.debug(f"Added middleware: {getattr(wrapper, 'name', wrapper)}")
        return self

    def use(self, *wrappers: Wrapper) -> "MiddlewarePipeline":
        for wrapper in wrappers:
            self.add(wrapper)
        return self

    def wrap(self, handler: Handler) -> Handler:
        current = handler
        for wrapper in reversed(self._wrappers):
            current = wrapper(current)
        return current

    def __call__(self, handler: Handler) -> Handler:
        return self.wrap(handler)

    def __len__(self) -> int:
        return len(self._wrappers)


def chain(*wrappers: Wrapper) -> MiddlewarePipeline:
    """Compose wrappers, first one outermost."""
    return MiddlewarePipeline(*wrappers)
