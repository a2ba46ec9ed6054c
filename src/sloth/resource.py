"""
=============================================================================
RESOURCE CAPABILITIES
=============================================================================

A resource is any object. What it can answer is decided by which of six
single-method protocols it happens to satisfy:

    ┌──────────┬──────────────────┬──────────────────────────────────────┐
    │ Verb     │ Protocol         │ Method                               │
    ├──────────┼──────────────────┼──────────────────────────────────────┤
    │ GET      │ GetSupported     │ get(request)    → (status, payload,  │
    │ POST     │ PostSupported    │ post(request)      headers)          │
    │ PUT      │ PutSupported     │ put(request)                         │
    │ DELETE   │ DeleteSupported  │ delete(request)                      │
    │ HEAD     │ HeadSupported    │ head(request)                        │
    │ PATCH    │ PatchSupported   │ patch(request)                       │
    └──────────┴──────────────────┴──────────────────────────────────────┘

No base class, no registration. This is enough to be a GET-only resource:

    class Hello:
        def get(self, request):
            return 200, "hello", None

The protocols are independent on purpose: a resource missing put() has no
put() at all, so a PUT is answered 405 instead of reaching an inherited
no-op.

=============================================================================
"""

from typing import (
    Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable,
)

from .http.headers import Headers
from .http.request import HTTPRequest


HeadersLike = Union[Headers, Mapping[str, Union[str, List[str]]], None]

# (status code, payload, headers)
DispatchResult = Tuple[int, Any, HeadersLike]


@runtime_checkable
class GetSupported(Protocol):
    def get(self, request: HTTPRequest) -> DispatchResult:
        ...


@runtime_checkable
class PostSupported(Protocol):
    def post(self, request: HTTPRequest) -> DispatchResult:
        ...


@runtime_checkable
class PutSupported(Protocol):
    def put(self, request: HTTPRequest) -> DispatchResult:
        ...


@runtime_checkable
class DeleteSupported(Protocol):
    def delete(self, request: HTTPRequest) -> DispatchResult:
        ...


@runtime_checkable
class HeadSupported(Protocol):
    def head(self, request: HTTPRequest) -> DispatchResult:
        ...


@runtime_checkable
class PatchSupported(Protocol):
    def patch(self, request: HTTPRequest) -> DispatchResult:
        ...


# Verb → protocol, in the order used for Allow headers
CAPABILITIES: Dict[str, type] = {
    "GET": GetSupported,
    "POST": PostSupported,
    "PUT": PutSupported,
    "DELETE": DeleteSupported,
    "HEAD": HeadSupported,
    "PATCH": PatchSupported,
}


def capability_for(
    resource: Any, method: str
) -> Optional[Callable[[HTTPRequest], DispatchResult]]:
    """
    Bound capability method of resource for an HTTP method, or None.

    The method is matched case-sensitively ("get" is not GET). Unknown verbs
    and verbs the resource does not implement both give None; this never
    raises.
    """
    protocol = CAPABILITIES.get(method)
    if protocol is None or not isinstance(resource, protocol):
        return None

    handler = getattr(resource, method.lower(), None)
    return handler if callable(handler) else None


def supported_methods(resource: Any) -> List[str]:
    """Verbs resource answers, e.g. ["GET", "HEAD"]."""
    return [method for method in CAPABILITIES if capability_for(resource, method)]
