"""
=============================================================================
HTTP HEADER MULTIMAP
=============================================================================

HTTP allows a header name to appear more than once:

    Set-Cookie: session=abc
    Set-Cookie: theme=dark
    Vary: Accept-Encoding

so a plain ``dict[str, str]`` loses information. Headers stores an ordered
list of values per name.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Headers                                                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   "Content-Type"  →  ["application/json"]                           │
    │   "Set-Cookie"    →  ["session=abc", "theme=dark"]                  │
    │   "X-Request-Id"  →  ["4f2a9c1e"]                                   │
    │                                                                      │
    │   Keys are stored in CANONICAL form so that "content-type",         │
    │   "CONTENT-TYPE" and "Content-Type" all address the same entry.    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Canonical form capitalizes the first letter and every letter following a
hyphen, lowercasing the rest: "x-request-id" → "X-Request-Id".

Values are stored on a single line: CR and LF become spaces, so a value can
never end the header block or start a header of its own. Names containing
CR, LF, colons or whitespace are refused.

=============================================================================
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Dict, List, Optional, Tuple, Union


HeaderValues = Union[str, Iterable[str]]

_NEWLINES = str.maketrans("\r\n", "  ")
_BAD_NAME_CHARS = frozenset(":\r\n \t")


def canonical_name(name: str) -> str:
    """
    Canonicalize a header name.

        >>> canonical_name("content-type")
        'Content-Type'
        >>> canonical_name("X-REQUEST-ID")
        'X-Request-Id'
    """
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.strip().split("-"))


def _field_name(name: str) -> str:
    key = canonical_name(name)
    if not key or _BAD_NAME_CHARS.intersection(key):
        raise ValueError(f"Invalid header name: {name!r}")
    return key


def _field_value(value: object) -> str:
    return str(value).translate(_NEWLINES)


class Headers:
    """
    Ordered, case-insensitive multimap of header name to values.

    ``get`` returns the first value, ``get_list`` all of them. ``add``
    appends a value, ``set`` replaces every existing value.
    """

    __slots__ = ("_values",)

    def __init__(self, initial: Optional[Mapping[str, HeaderValues]] = None):
        self._values: Dict[str, List[str]] = {}
        if initial:
            for name, values in initial.items():
                if isinstance(values, str):
                    self.add(name, values)
                else:
                    for value in values:
                        self.add(name, value)

    @classmethod
    def coerce(cls, value: Union["Headers", Mapping[str, HeaderValues], None]) -> "Headers":
        """
        Build a Headers from whatever a resource handler returned.

        Accepts None (no headers), an existing Headers (copied), or a
        mapping of name to a string or list of strings.
        """
        if value is None:
            return cls()
        if isinstance(value, Headers):
            return value.copy()
        if isinstance(value, Mapping):
            return cls(value)
        raise TypeError(f"Cannot use {type(value).__name__} as headers")

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add(self, name: str, value: str) -> None:
        """Append a value for name, keeping values already present."""
        self._values.setdefault(_field_name(name), []).append(_field_value(value))

    def set(self, name: str, value: str) -> None:
        """Replace all values for name with a single value."""
        self._values[_field_name(name)] = [_field_value(value)]

    def setdefault(self, name: str, value: str) -> str:
        """Set name to value only when it has no value yet; return the first value."""
        key = _field_name(name)
        if not self._values.get(key):
            self._values[key] = [_field_value(value)]
        return self._values[key][0]

    def delete(self, name: str) -> None:
        self._values.pop(canonical_name(name), None)

    def extend(self, other: "Headers") -> None:
        """Add every value of other, preserving multiple values per name."""
        for name, value in other.items():
            self.add(name, value)

    # =========================================================================
    # ACCESS
    # =========================================================================

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self._values.get(canonical_name(name))
        return values[0] if values else default

    def get_list(self, name: str) -> List[str]:
        return list(self._values.get(canonical_name(name), []))

    def items(self) -> Iterator[Tuple[str, str]]:
        """Yield (name, value) once per value, in insertion order."""
        for name, values in self._values.items():
            for value in values:
                yield name, value

    def copy(self) -> "Headers":
        clone = Headers()
        clone._values = {name: list(values) for name, values in self._values.items()}
        return clone

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return bool(self._values.get(canonical_name(name)))

    def __getitem__(self, name: str) -> str:
        values = self._values.get(canonical_name(name))
        if not values:
            raise KeyError(name)
        return values[0]

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        if canonical_name(name) not in self._values:
            raise KeyError(name)
        self.delete(name)

    def __iter__(self) -> Iterator[str]:
        return (name for name, values in self._values.items() if values)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"
