"""
=============================================================================
WRAPPERS FOR add_resource_with_wrapper()
=============================================================================

    Middleware              base class: implement handle(writer, request, next)
    MiddlewarePipeline      several wrappers as one (first = outermost)
    chain(...)              shorthand for MiddlewarePipeline(...)
    CompressionMiddleware   gzip for clients that accept it
    LoggingMiddleware       access log on "sloth.access" + X-Request-ID

Plain functions work too: any Callable[[Handler], Handler] is a wrapper.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, Wrapper, chain
from .compression import CompressionMiddleware
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "Wrapper",
    "chain",
    "CompressionMiddleware",
    "LoggingMiddleware",
    "RequestLog",
]
