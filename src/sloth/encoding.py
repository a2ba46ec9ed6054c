"""
=============================================================================
PAYLOADS AND RESPONSE ENCODING
=============================================================================

Every resource method returns a payload, and the payload decides how the
response body is produced:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       PAYLOAD → BODY                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Text("hello")         → b"hello"            (UTF-8)               │
    │   Bytes(b"\\x89PNG...")   → b"\\x89PNG..."       (verbatim)            │
    │   Structured({"a": 1})  → b'{\\n  "a": 1\\n}'   (indented JSON)       │
    │                           + default Content-Type applies            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Resources may return the variants explicitly, or a bare value that
as_payload() wraps once:

    str                            → Text
    bytes / bytearray / memoryview → Bytes
    anything else (None included)  → Structured

Values JSON has no representation for, NaN/Infinity floats, circular
references and lone surrogates ("\\ud800") in text all raise EncodingError,
which the dispatcher answers with 500.

=============================================================================
"""

from dataclasses import dataclass, asdict, is_dataclass
from typing import Any, Union
import json

from .errors import EncodingError


@dataclass(frozen=True)
class Text:
    """Textual payload, sent as UTF-8."""

    value: str


@dataclass(frozen=True)
class Bytes:
    """Raw payload, sent verbatim."""

    value: bytes


@dataclass(frozen=True)
class Structured:
    """Arbitrary value, serialized as indented JSON."""

    value: Any


Payload = Union[Text, Bytes, Structured]


def as_payload(value: Any) -> Payload:
    """Wrap a bare handler result in its payload variant."""
    if isinstance(value, (Text, Bytes, Structured)):
        return value
    if isinstance(value, str):
        return Text(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Bytes(bytes(value))
    return Structured(value)


def _json_default(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode(payload: Any) -> tuple[bytes, bool]:
    """
    Encode a payload into body bytes.

    Returns:
        (body, default_content_type_applies). The flag is True only for
        Structured payloads.

    Raises:
        EncodingError: If a Structured value cannot be serialized, or a
            string holds a lone surrogate UTF-8 cannot represent.
    """
    payload = as_payload(payload)

    if isinstance(payload, Text):
        try:
            return payload.value.encode("utf-8"), False
        except UnicodeEncodeError as e:
            raise EncodingError(f"Cannot encode text payload: {e}") from e

    if isinstance(payload, Bytes):
        return bytes(payload.value), False

    try:
        body = json.dumps(
            payload.value,
            indent=2,
            ensure_ascii=False,
            allow_nan=False,
            default=_json_default,
        ).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise EncodingError(f"Cannot encode {type(payload.value).__name__} payload: {e}") from e

    return body, True
