"""
=============================================================================
SLOTH EXCEPTIONS
=============================================================================

Two kinds of failure exist in sloth, and they surface differently:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ERROR TAXONOMY                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SETUP ERRORS (raised to the embedding program)                    │
    │     RouterAlreadySetError  - set_router() after initialization      │
    │     NoResourceError        - start() before any router exists       │
    │                                                                      │
    │   PER-REQUEST ERRORS (become a bare status code)                    │
    │     FormParseError         - malformed form          → 400          │
    │     (no capability)        - method not supported    → 405          │
    │     EncodingError          - payload not serializable → 500         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Per-request errors never leak their message into the response body; the
message only reaches the logs.

FormParseError lives next to the parser in sloth.http.request because it is
a specialization of HTTPParseError.

=============================================================================
"""


class SlothError(Exception):
    """Base class for every error raised by sloth itself."""


class RouterAlreadySetError(SlothError):
    """
    Raised when a router is installed into an API that already has one.

    The router slot of an API is write-once: it is filled either lazily by
    the first add_resource() call or explicitly by set_router(). Any later
    attempt to fill it fails, and the router installed first stays active.
    """


class NoResourceError(SlothError):
    """Raised by API.start() when no router was ever initialized."""


class EncodingError(SlothError):
    """
    Raised when a structured payload cannot be serialized.

    Typical causes: objects JSON has no representation for, NaN or
    Infinity floats, circular references.
    """
