"""
=============================================================================
HTTP PRIMITIVES
=============================================================================

The HTTP/1.1 building blocks the dispatcher is written against.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Raw bytes → HTTPRequest, plus on-demand form parsing                │
    │                                                                      │
    │   request.parse_form()  → request.form / request.post_form          │
    │   malformed form        → FormParseError (the dispatcher's 400)     │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ HEADERS (headers.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Case-insensitive multimap: one name, many values                    │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE (response.py)                                              │
    │ ─────────────────────────────────────────────────────────────────── │
    │ ResponseWriter: the mutable sink every handler writes into          │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ROUTER (router.py)                                                  │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Mux protocol + default Router (:param and *wildcard patterns)       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES (status_codes.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ HTTPStatus enum and reason phrases for arbitrary codes              │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .headers import Headers, canonical_name
from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    FormParseError,
    parse_request,
    parse_query,
)
from .response import ResponseWriter, format_http_date
from .router import Router, Route, Mux, Handler
from .status_codes import HTTPStatus, status_phrase

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "FormParseError",
    "parse_request",
    "parse_query",

    # Headers
    "Headers",
    "canonical_name",

    # Responses
    "ResponseWriter",
    "format_http_date",

    # Routing
    "Router",
    "Route",
    "Mux",
    "Handler",

    # Status codes
    "HTTPStatus",
    "status_phrase",
]
