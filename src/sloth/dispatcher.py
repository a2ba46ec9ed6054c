"""
=============================================================================
DISPATCHER
=============================================================================

Turns a resource into a handler. One handler is built per registered path;
the resource itself is only referenced, never copied.

=============================================================================
PER-REQUEST PIPELINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request                                                            │
    │      │                                                               │
    │      ▼                                                               │
    │   1. parse_form()  (if config.parse_form) ── FormParseError ──► 400  │
    │      │                                                               │
    │      ▼                                                               │
    │   2. capability_for(resource, method) ────── None ────────────► 405  │
    │      │                                                               │
    │      ▼                                                               │
    │   3. status, payload, headers = capability(request)                  │
    │      │                                                               │
    │      ▼                                                               │
    │   4. encode(payload) ─────────────────────── EncodingError ────► 500  │
    │      │                                                               │
    │      ▼                                                               │
    │   5. default Content-Type (structured payload, handler left it unset)│
    │      │                                                               │
    │      ▼                                                               │
    │   6. headers → writer, write_header(status), write(body)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The three short-circuits write a bare status with no body. Their cause only
reaches the log, never the client.

=============================================================================
"""

from typing import Any
import logging

from .config import APIConfig
from .encoding import encode
from .errors import EncodingError
from .http.headers import Headers
from .http.request import FormParseError, HTTPRequest
from .http.response import ResponseWriter
from .http.router import Handler
from .http.status_codes import HTTPStatus
from .resource import capability_for, supported_methods


logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Builds request handlers for resources.

    The config is read on every request, so changes made through the API
    before serving starts apply to resources registered earlier.
    """

    def __init__(self, config: APIConfig):
        self.config = config

    def handler_for(self, resource: Any) -> Handler:
        """Handler answering requests with resource."""

        def handler(writer: ResponseWriter, request: HTTPRequest) -> None:
            self.dispatch(resource, writer, request)

        handler.__qualname__ = f"{type(resource).__name__}.dispatch"
        return handler

    def dispatch(self, resource: Any, writer: ResponseWriter, request: HTTPRequest) -> None:
        """Answer one request with resource, writing exactly one response."""
        # ─────────────────────────────────────────────────────────────────
        # 1. FORM PARSING
        # ─────────────────────────────────────────────────────────────────
        if self.config.parse_form:
            try:
                request.parse_form()
            except FormParseError as e:
                logger.debug("Malformed form on %s %s: %s", request.method, request.path, e)
                writer.write_header(HTTPStatus.BAD_REQUEST)
                return

        # ─────────────────────────────────────────────────────────────────
        # 2. CAPABILITY LOOKUP
        # ─────────────────────────────────────────────────────────────────
        capability = capability_for(resource, request.method)
        if capability is None:
            logger.debug(
                "%s does not support %s %s",
                type(resource).__name__, request.method, request.path,
            )
            allowed = supported_methods(resource)
            if allowed:
                writer.headers.set("Allow", ", ".join(allowed))
            writer.write_header(HTTPStatus.METHOD_NOT_ALLOWED)
            return

        # ─────────────────────────────────────────────────────────────────
        # 3. INVOCATION
        # ─────────────────────────────────────────────────────────────────
        status, payload, returned_headers = capability(request)
        headers = Headers.coerce(returned_headers)

        # ─────────────────────────────────────────────────────────────────
        # 4. ENCODING
        # ─────────────────────────────────────────────────────────────────
        try:
            body, structured = encode(payload)
        except EncodingError as e:
            logger.debug("Encoding failed on %s %s: %s", request.method, request.path, e)
            writer.write_header(HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        # ─────────────────────────────────────────────────────────────────
        # 5. DEFAULT CONTENT-TYPE (explicit handler value wins)
        # ─────────────────────────────────────────────────────────────────
        if structured and self.config.default_content_type and "Content-Type" not in headers:
            headers.set("Content-Type", self.config.default_content_type)

        # ─────────────────────────────────────────────────────────────────
        # 6. WRITE
        # ─────────────────────────────────────────────────────────────────
        writer.headers.extend(headers)
        writer.write_header(status)
        writer.write(body)
