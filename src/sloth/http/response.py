"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Handlers do not return responses; they WRITE them into a ResponseWriter
that the server hands to them, and the server serializes the writer once the
handler returns.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    RESPONSE WRITER LIFECYCLE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   writer.headers.add(...)      ◄── free to change                   │
    │          │                                                           │
    │          ▼                                                           │
    │   writer.write_header(201)     ◄── status fixed, headers SNAPSHOT   │
    │          │                                                           │
    │          ▼                                                           │
    │   writer.write(b"...")         ◄── appends to the body              │
    │   writer.write(b"...")             (implies write_header(200)       │
    │          │                          when it was never called)       │
    │          ▼                                                           │
    │   writer.to_bytes()            ◄── server side: status line,        │
    │                                    headers, Content-Length, body    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Headers changed after write_header() are ignored, exactly like on the wire:
once the status line is out, the header block is out too.

=============================================================================
"""

from datetime import datetime, timezone
from typing import Optional, Union
import logging

from .headers import Headers
from .status_codes import body_allowed, status_phrase


logger = logging.getLogger(__name__)


class ResponseWriter:
    """
    Mutable response sink passed to every handler.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        headers:        Headers to send; mutable until write_header()
        status:         Status code, None until write_header()
        body:           Bytes written so far
        wrote_header:   True once the status is fixed

    =========================================================================
    """

    def __init__(self, version: str = "HTTP/1.1"):
        self.version = version
        self.headers = Headers()
        self.status: Optional[int] = None
        self._sent_headers: Optional[Headers] = None
        self._body = bytearray()

    @property
    def wrote_header(self) -> bool:
        return self.status is not None

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    @property
    def sent_headers(self) -> Headers:
        """Headers as they were when the status was written."""
        if self._sent_headers is None:
            return self.headers.copy()
        return self._sent_headers.copy()

    def write_header(self, status: int) -> None:
        """
        Fix the status code and freeze the headers.

        Only the first call counts; later calls are logged and ignored.

        Raises:
            ValueError: If status is not a three-digit code (100-999).
        """
        status = int(status)
        if not 100 <= status <= 999:
            raise ValueError(f"Invalid status code: {status}")
        if self.wrote_header:
            logger.warning(
                "Superfluous write_header(%d), status already %d", status, self.status
            )
            return
        self.status = status
        self._sent_headers = self.headers.copy()

    def write(self, data: Union[bytes, bytearray, memoryview, str]) -> int:
        """
        Append data to the body and return the number of bytes written.

        Writing before write_header() sends 200 OK.
        """
        if not self.wrote_header:
            self.write_header(200)
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._body += data
        return len(data)

    @property
    def status_line(self) -> str:
        """Status line, e.g. HTTP/1.1 404 Not Found."""
        status = self.status if self.status is not None else 200
        return f"{self.version} {status} {status_phrase(status)}"

    def to_bytes(
        self,
        server_name: str = "sloth/1.0",
        include_body: bool = True,
        extra_headers: Optional[Headers] = None,
    ) -> bytes:
        """
        Serialize the response for socket.sendall().

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\\r\\n
            <handler headers>\\r\\n
            Content-Length: 5\\r\\n        ← unless status forbids a body
            Date: Thu, 01 Jan 2026 ...\\r\\n
            Server: sloth/1.0\\r\\n
            <extra headers>\\r\\n          ← connection management
            \\r\\n
            hello                         ← omitted for HEAD

        =====================================================================

        Args:
            server_name: Value of the Server header when not already set.
            include_body: False for HEAD requests. Content-Length still
                reports the size the body would have had.
            extra_headers: Headers owned by the connection layer
                ("Connection", "Keep-Alive"), they replace handler values.
        """
        if not self.wrote_header:
            self.write_header(200)

        headers = self.sent_headers
        status = self.status
        body = bytes(self._body)

        if body_allowed(status):
            headers.setdefault("Content-Length", str(len(body)))
        else:
            headers.delete("Content-Length")
            body = b""

        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)

        if extra_headers is not None:
            for name in extra_headers:
                headers.delete(name)
            headers.extend(extra_headers)

        lines = [self.status_line]
        for name, value in headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        head = "\r\n".join(lines).encode("latin-1", errors="replace") + b"\r\n"
        return head + body if include_body else head

    def __repr__(self) -> str:
        return f"<ResponseWriter status={self.status} body={len(self._body)} bytes>"


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Always GMT: "Thu, 01 Jan 2026 12:00:00 GMT".
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
