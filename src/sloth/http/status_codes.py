"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes are grouped by their first digit:

    1xx  Informational   - request received, continuing
    2xx  Success         - request understood and accepted
    3xx  Redirection     - further action needed
    4xx  Client Error    - the request is wrong
    5xx  Server Error    - the server failed a valid request

sloth itself only ever chooses three codes, all on short-circuit paths:

    400 Bad Request            malformed form data
    405 Method Not Allowed     resource lacks the capability
    500 Internal Server Error  payload could not be encoded

Everything else comes straight from resource handlers, which may return any
integer. status_phrase() therefore tolerates codes outside the enum.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by sloth and its built-in resources.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.METHOD_NOT_ALLOWED.phrase
        'Method Not Allowed'
    """

    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101

    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204
    PARTIAL_CONTENT = 206

    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    IM_A_TEAPOT = 418
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line ("HTTP/1.1 404 Not Found")."""
        return _PHRASES.get(self, self.name.replace("_", " ").title())

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        return self >= 400


# Phrases that do not follow mechanically from the member name
_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.IM_A_TEAPOT: "I'm a teapot",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def status_phrase(code: int) -> str:
    """
    Reason phrase for any integer status code.

    Unknown codes get a generic phrase instead of failing, because resources
    are free to answer with codes sloth has never heard of.
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return f"status code {code}"


def body_allowed(code: int) -> bool:
    """1xx, 204 and 304 responses never carry a body (RFC 7230 §3.3.3)."""
    return not (100 <= code < 200 or code in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED))
