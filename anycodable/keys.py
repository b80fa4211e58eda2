"""Mapping keys that may come from either strings or integers."""

from __future__ import annotations

import re
from typing import Union

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class AnyKey:
    """A dictionary key unifying string and integer forms.

    The string form is always present. The integer form is present when the
    key was built from an integer, or from a string holding a base-10 integer
    literal. Equality and hashing look at the string form only, so a key
    built from ``123`` and one built from ``"123"`` are the same key.
    """

    __slots__ = ("_string", "_int")

    def __init__(self, string_value: str, int_value: int | None = None):
        object.__setattr__(self, "_string", string_value)
        object.__setattr__(self, "_int", int_value)

    @classmethod
    def from_string(cls, value: str) -> "AnyKey":
        if _INTEGER_RE.fullmatch(value):
            return cls(value, int(value))
        return cls(value)

    @classmethod
    def from_int(cls, value: int) -> "AnyKey":
        return cls(str(value), int(value))

    @classmethod
    def coerce(cls, key: Union["AnyKey", str, int]) -> "AnyKey":
        """Build a key from an ``AnyKey``, ``str`` or ``int``."""
        if isinstance(key, AnyKey):
            return key
        if isinstance(key, str):
            return cls.from_string(key)
        if isinstance(key, int) and not isinstance(key, bool):
            return cls.from_int(key)
        raise TypeError(f"Unsupported key type: {type(key).__name__}")

    @property
    def string_value(self) -> str:
        return self._string

    @property
    def int_value(self) -> int | None:
        return self._int

    def __setattr__(self, name, value):
        raise AttributeError("AnyKey is immutable")

    def __eq__(self, other) -> bool:
        if isinstance(other, AnyKey):
            return self._string == other._string
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._string)

    def __repr__(self) -> str:
        return self._string

    def __str__(self) -> str:
        return self._string

    def __reduce__(self):
        return (AnyKey, (self._string, self._int))
