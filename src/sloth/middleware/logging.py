"""
=============================================================================
ACCESS LOG WRAPPER
=============================================================================

Logs one line per request on the "sloth.access" logger, in Apache-style
text or JSON:

    127.0.0.1 - - [15/Oct/2026:10:04:31 +0000] "GET /users" 200 27 0.84ms
    {"request_id": "4f2a9c1e", "method": "GET", "path": "/users", ...}

Each request also gets a short X-Request-ID response header. It is set
BEFORE the wrapped handler runs, because the headers of a ResponseWriter are
frozen as soon as the status is written.

Put it outermost so the timing covers everything else:

    chain(LoggingMiddleware(), CompressionMiddleware())

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Iterable, Optional
from dataclasses import dataclass, asdict

from .base import Middleware
from ..http.request import HTTPRequest
from ..http.response import ResponseWriter
from ..http.router import Handler


logger = logging.getLogger("sloth.access")


@dataclass
class RequestLog:
    """One access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return dict(asdict(self), duration_ms=round(self.duration_ms, 2))

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] "{self.method} {target}" '
            f"{self.status_code} {self.content_length} {self.duration_ms:.2f}ms"
        )


class LoggingMiddleware(Middleware):
    """
    Access logging.

    Args:
        log_format: "text" (Apache style) or "json".
        include_request_id: Add an X-Request-ID response header.
        log_level: Level the lines are logged at.
        skip_paths: Paths never logged, e.g. ["/health"].
    """

    FORMATS = ("text", "json")

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in self.FORMATS:
            raise ValueError(f"Invalid log_format: {log_format!r} (expected text or json)")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = frozenset(skip_paths or ())

    def handle(self, writer: ResponseWriter, request: HTTPRequest, next: Handler) -> None:
        request_id = uuid.uuid4().hex[:8]
        if self.include_request_id:
            writer.headers.set("X-Request-ID", request_id)

        started = time.perf_counter()
        try:
            next(writer, request)
        except Exception as e:
            logger.error(
                f"{request.method} {request.path} failed after "
                f"{_elapsed_ms(started):.2f}ms: {type(e).__name__}: {e}"
            )
            raise

        if request.path in self.skip_paths:
            return

        entry = self._entry(request_id, writer, request, _elapsed_ms(started))
        line = json.dumps(entry.to_dict()) if self.log_format == "json" else entry.to_text()
        logger.log(self.log_level, line)

    @staticmethod
    def _entry(request_id: str, writer: ResponseWriter, request: HTTPRequest, duration_ms: float) -> RequestLog:
        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=request.query_string,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=writer.status if writer.wrote_header else 200,
            content_length=len(writer.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
