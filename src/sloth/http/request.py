"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects, and parses
form data on demand.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    POST /users?notify=1 HTTP/1.1\r\n        ← request line          │
    │    Host: localhost:8080\r\n                 ← headers               │
    │    Content-Type: application/x-www-form-urlencoded\r\n             │
    │    Content-Length: 20\r\n                                           │
    │    \r\n                                     ← blank line            │
    │    name=sloth&legs=four                     ← body                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FORM PARSING
=============================================================================

parse_form() is a separate step from parse(): the dispatcher runs it before
every request when APIConfig.parse_form is on, and a FormParseError there
turns into 400 Bad Request.

    request.form        query values AND urlencoded body values
                        (body values first)
    request.post_form   urlencoded body values only

Bodies are only read as forms for POST, PUT and PATCH with
Content-Type application/x-www-form-urlencoded. The query string is always
parsed.

A form is malformed when:
    - a pair is separated with ";" instead of "&"
    - a percent escape is incomplete or not hex ("%zz", "%4")
    - the Content-Type of a POST/PUT/PATCH body is not a valid media type
    - a urlencoded body exceeds MAX_FORM_SIZE

A key without "=" is NOT an error: "flag&x=1" gives {"flag": [""], "x": ["1"]}.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from urllib.parse import parse_qs, urlsplit, unquote, unquote_plus
import re
import json


# Largest urlencoded body parse_form() will accept
MAX_FORM_SIZE = 10 * 1024 * 1024

FORM_METHODS = frozenset({"POST", "PUT", "PATCH"})

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_MEDIA_TYPE = re.compile(rf"^{_TOKEN}/{_TOKEN}$")


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code that should be returned to the client:

        400 Bad Request                 - malformed syntax
        413 Payload Too Large           - request exceeds size limit
        501 Not Implemented             - body sent with Transfer-Encoding
        505 HTTP Version Not Supported  - unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class FormParseError(HTTPParseError):
    """Raised by HTTPRequest.parse_form() on malformed form data."""


def parse_query(query: str) -> Dict[str, List[str]]:
    """
    Strictly parse an application/x-www-form-urlencoded string.

    Unlike urllib.parse.parse_qs, invalid escapes and ";" separators are
    errors rather than silently passed through.

    Raises:
        FormParseError: On the first malformed pair.
    """
    values: Dict[str, List[str]] = {}
    for pair in query.split("&"):
        if ";" in pair:
            raise FormParseError("invalid semicolon separator in query")
        if not pair:
            continue
        key, _, value = pair.partition("=")
        values.setdefault(_unescape(key), []).append(_unescape(value))
    return values


def _unescape(text: str) -> str:
    match = _BAD_ESCAPE.search(text)
    if match:
        raise FormParseError(f"invalid URL escape {text[match.start():match.start() + 3]!r}")
    return unquote_plus(text)


def _check_media_type(content_type: str) -> str:
    """Return the lowercased media type, or raise FormParseError."""
    media_type, _, params = content_type.partition(";")
    media_type = media_type.strip().lower()
    if not _MEDIA_TYPE.match(media_type):
        raise FormParseError(f"invalid media type: {content_type!r}")
    for param in params.split(";"):
        if param.strip() and "=" not in param:
            raise FormParseError(f"invalid media parameter: {param.strip()!r}")
    return media_type


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         HTTP method, always uppercase ("GET", "PATCH", ...)
        path:           Request path without query string
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header dict with LOWERCASE keys
        query_string:   Raw query string ("a=1&b=2"), still escaped
        query_params:   Leniently parsed query string, dict of lists
        body:           Raw body bytes
        path_params:    Values captured by the router (":id" → "123")
        form:           Filled by parse_form(): body + query values
        post_form:      Filled by parse_form(): body values only
        client_address: (ip, port) of the client

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_string: str = ""
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    # Router-injected parameters
    path_params: Dict[str, str] = field(default_factory=dict)

    # Filled by parse_form()
    form: Dict[str, List[str]] = field(default_factory=dict)
    post_form: Dict[str, List[str]] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    _form_parsed: bool = field(default=False, repr=False)
    _body_json: Optional[Any] = field(default=None, repr=False)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, lowercased ("application/json")."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def json(self) -> Any:
        """
        Parse the body as JSON (cached after the first access).

        Raises:
            HTTPParseError: If the body is not valid JSON.
        """
        if self._body_json is None and self.body:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps connections alive unless "Connection: close".
        HTTP/1.0 closes them unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def form_value(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        First form value for name (body values win over query values).

        Parses the form on first use, so it may raise FormParseError when
        form parsing was not already done by the dispatcher.
        """
        self.parse_form()
        values = self.form.get(name, [])
        return values[0] if values else default

    # =========================================================================
    # FORM PARSING
    # =========================================================================

    def parse_form(self) -> None:
        """
        Populate form and post_form.

        Idempotent: only the first call does any work. After a failure the
        values parsed before the error are kept and later calls do nothing.

        Raises:
            FormParseError: If the query string or body is malformed.
        """
        if self._form_parsed:
            return
        self._form_parsed = True

        # ─────────────────────────────────────────────────────────────────
        # BODY (POST/PUT/PATCH only)
        # ─────────────────────────────────────────────────────────────────
        if self.method in FORM_METHODS:
            self.post_form = self._parse_post_form()

        # ─────────────────────────────────────────────────────────────────
        # MERGE: body values first, then query values
        # ─────────────────────────────────────────────────────────────────
        self.form = {name: list(values) for name, values in self.post_form.items()}
        for name, values in parse_query(self.query_string).items():
            self.form.setdefault(name, []).extend(values)

    def _parse_post_form(self) -> Dict[str, List[str]]:
        content_type = self.headers.get("content-type", "") or "application/octet-stream"
        media_type = _check_media_type(content_type)

        if media_type != "application/x-www-form-urlencoded":
            return {}

        if len(self.body) > MAX_FORM_SIZE:
            raise FormParseError("form body too large", status_code=413)

        return parse_query(self.body.decode("utf-8", errors="replace"))


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    =========================================================================
    PARSING ALGORITHM
    =========================================================================

        1. Size check              too large   → HTTPParseError(413)
        2. Find \\r\\n\\r\\n          missing     → HTTPParseError(400)
        3. Parse request line      malformed   → HTTPParseError(400/505)
        4. Parse headers           lowercase names, repeats joined by ", "
        5. Transfer-Encoding       present     → HTTPParseError(501), or 400
                                   together with Content-Length
        6. Slice body              exactly Content-Length bytes

    Any method token is accepted here. Whether a method means anything is
    decided later by the resource it is dispatched to.

    =========================================================================
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([!#$%&'*+.^_`|~0-9A-Z-]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s][^:]*):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_string, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # Bodies are framed by Content-Length only
        if "transfer-encoding" in headers:
            if "content-length" in headers:
                raise HTTPParseError("Both Transfer-Encoding and Content-Length sent")
            raise HTTPParseError(
                f"Unsupported Transfer-Encoding: {headers['transfer-encoding']}",
                status_code=501,
            )

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_string=query_string,
            query_params=parse_qs(query_string, keep_blank_values=True),
            body=body[:content_length],
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str]:
        """
        Split "METHOD SP REQUEST-URI SP HTTP-VERSION".

        Returns:
            (method, decoded path, raw query string, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlsplit(uri)
        path = unquote(parsed.path) or "/"

        # Path traversal: "GET /../../etc/passwd"
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..")

        return method, path, parsed.query, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Obsolete line folding (a line starting with whitespace) continues the
        previous header. Repeated headers are joined with ", ".
        """
        headers: Dict[str, str] = {}
        current: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in " \t":
                if current is None:
                    raise HTTPParseError("Header continuation without a header")
                headers[current] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Invalid header line: {line!r}")

            name = match.group(1).strip().lower()
            value = match.group(2).strip()

            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value
            current = name

        return headers


def parse_request(data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
    """Parse with a default RequestParser."""
    return RequestParser().parse(data, client_address)
