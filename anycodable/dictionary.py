"""A string-keyed mutable mapping of ``AnyValue`` with typed getters and setters."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any, Callable, Iterator

import numpy as np

from .codec import Decoder, decode_as
from .value import AnyValue, Kind


def _convert(obj: Any) -> AnyValue:
    if isinstance(obj, AnyValue):
        return obj
    if isinstance(obj, AnyDictionary):
        return obj.to_value()
    if isinstance(obj, bool):
        return AnyValue.bool(obj)
    if isinstance(obj, str):
        return AnyValue.string(obj)
    if isinstance(obj, int):
        return AnyValue.integer(obj)
    if isinstance(obj, (float, np.floating)):
        return AnyValue.double(float(obj))
    if isinstance(obj, list):
        items = [_convert_item(item) for item in obj]
        return AnyValue.array(items)
    return AnyValue.string(str(obj))


def _convert_item(obj: Any) -> AnyValue:
    value = AnyValue.from_native(obj)
    if value is None:
        return AnyValue.string(str(obj))
    return value


class AnyDictionary(MutableMapping):
    """Configuration-style dictionary: ``str`` keys, ``AnyValue`` values.

    Plain Python values are converted on the way in (``int`` to integer,
    ``float`` to double, anything unrecognised to its ``str()`` text).
    """

    def __init__(self, values: Mapping | None = None):
        self._values: dict[str, AnyValue] = {}
        if values is not None:
            for key, value in values.items():
                self[key] = value

    def __getitem__(self, key: str) -> AnyValue:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[str(key)] = _convert(value)

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        if isinstance(other, AnyDictionary):
            return self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"AnyDictionary({self._values!r})"

    # -- Typed access ---------------------------------------------------------

    def get_string(self, key: str) -> str | None:
        value = self._values.get(key)
        return None if value is None else value.string_value

    def get_integer(self, key: str) -> int | None:
        value = self._values.get(key)
        number = None if value is None else value.integer_value
        return None if number is None else int(number)

    def get_double(self, key: str) -> float | None:
        value = self._values.get(key)
        number = None if value is None else value.double_value
        return None if number is None else float(number)

    def get_bool(self, key: str) -> bool | None:
        value = self._values.get(key)
        return None if value is None else value.bool_value

    def _set(self, key: str, value: AnyValue | None) -> None:
        if value is None:
            self._values.pop(key, None)
        else:
            self._values[key] = value

    def set_string(self, key: str, value: str | None) -> None:
        self._set(key, None if value is None else AnyValue.string(value))

    def set_integer(self, key: str, value: int | None) -> None:
        self._set(key, None if value is None else AnyValue.integer(value))

    def set_double(self, key: str, value: float | None) -> None:
        self._set(key, None if value is None else AnyValue.double(value))

    def set_bool(self, key: str, value: bool | None) -> None:
        self._set(key, None if value is None else AnyValue.bool(value))

    # -- Merging --------------------------------------------------------------

    def merging(
        self,
        other: Mapping,
        combine: Callable[[AnyValue, AnyValue], AnyValue] | None = None,
    ) -> "AnyDictionary":
        """Return a copy with *other* merged in.

        On key collisions ``combine(current, new)`` picks the result; without
        it the value from *other* wins.
        """
        merged = AnyDictionary(self._values)
        merged.merge(other, combine)
        return merged

    def merge(
        self,
        other: Mapping,
        combine: Callable[[AnyValue, AnyValue], AnyValue] | None = None,
    ) -> None:
        for key, value in other.items():
            new = _convert(value)
            key = str(key)
            if key in self._values and combine is not None:
                new = _convert(combine(self._values[key], new))
            self._values[key] = new

    # -- Coding ---------------------------------------------------------------

    @classmethod
    def decode(cls, decoder: Decoder) -> "AnyDictionary":
        return cls(decode_as(dict[str, AnyValue], decoder))

    def to_value(self) -> AnyValue:
        return AnyValue(Kind.DICTIONARY, self._values)
