"""
=============================================================================
GZIP COMPRESSION WRAPPER
=============================================================================

Compresses response bodies for clients sending "Accept-Encoding: gzip".

The wrapped handler writes into a private buffer writer; once it returns,
the buffered response is inspected, compressed when worthwhile, and copied
to the real writer.

    handler ──► buffer ResponseWriter ──► gzip? ──► real ResponseWriter

A body is compressed only when ALL of these hold:
    - the client accepts gzip
    - the status allows a body and it has at least min_size bytes
    - its Content-Type is text-like (COMPRESSIBLE_TYPES)
    - it carries no Content-Encoding yet
    - the gzip output is actually smaller

Typical use, with the dispatcher's JSON output:

    api.add_resource_with_wrapper(Reports(), CompressionMiddleware(), "/reports")

=============================================================================
"""

import gzip
from typing import Optional, Set

from .base import Middleware
from ..http.request import HTTPRequest
from ..http.response import ResponseWriter
from ..http.router import Handler
from ..http.status_codes import body_allowed


class CompressionMiddleware(Middleware):
    """
    Gzip response compression.

    Args:
        min_size: Smallest body worth compressing, in bytes.
        level: gzip level, 1 (fastest) to 9 (smallest).
        compressible_types: Media types to compress (parameters ignored).
    """

    COMPRESSIBLE_TYPES: Set[str] = {
        "text/html",
        "text/css",
        "text/plain",
        "text/xml",
        "text/javascript",
        "application/json",
        "application/javascript",
        "application/xml",
        "application/xhtml+xml",
        "image/svg+xml",
    }

    def __init__(
        self,
        min_size: int = 1024,
        level: int = 6,
        compressible_types: Optional[Set[str]] = None,
    ):
        if not 1 <= level <= 9:
            raise ValueError(f"Invalid gzip level: {level}")
        self.min_size = min_size
        self.level = level
        self.compressible_types = compressible_types or self.COMPRESSIBLE_TYPES

    def handle(self, writer: ResponseWriter, request: HTTPRequest, next: Handler) -> None:
        buffer = ResponseWriter(version=writer.version)
        buffer.headers = writer.headers.copy()

        next(buffer, request)

        if not buffer.wrote_header:
            buffer.write_header(200)

        headers = buffer.sent_headers
        body = buffer.body

        accepts_gzip = "gzip" in request.get_header("accept-encoding").lower()
        if accepts_gzip and self._should_compress(buffer.status, headers, body):
            compressed = gzip.compress(body, compresslevel=self.level)
            if len(compressed) < len(body):
                body = compressed
                headers.set("Content-Encoding", "gzip")
                headers.delete("Content-Length")
                vary = headers.get("Vary", "")
                if "accept-encoding" not in vary.lower():
                    headers.set("Vary", f"{vary}, Accept-Encoding".lstrip(", "))

        writer.headers = headers
        writer.write_header(buffer.status)
        if body:
            writer.write(body)

    def _should_compress(self, status: int, headers, body: bytes) -> bool:
        if not body_allowed(status):
            return False

        if "Content-Encoding" in headers:
            return False

        if len(body) < self.min_size:
            return False

        content_type = headers.get("Content-Type", "")
        base_type = content_type.split(";")[0].strip().lower()
        return base_type in self.compressible_types
