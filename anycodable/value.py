"""AnyValue: a closed tagged union over every primitive a structured format can carry.

Variants (``Kind``):

- date: naive ``datetime`` in UTC
- bool, string, data (``bytes``)
- double / float: ``numpy.float64`` / ``numpy.float32``
- integer, integer8..integer64: ``numpy.intp``, ``numpy.int8``..``numpy.int64``
- unsigned_integer, unsigned_integer8..64: ``numpy.uintp``, ``numpy.uint8``..``numpy.uint64``
- dictionary: ``AnyKey`` -> ``AnyValue``
- array: ordered ``AnyValue`` elements

Decoding tries the variants in a fixed order (see ``AnyValue.decode``) so the
same document always produces the same variants for a given format.

Usage:
    from anycodable import AnyValue

    value = AnyValue.from_native({"name": "Joe", "age": 36})
    value["age"].integer_value      # numpy.intp(36)
    value["age"].double_value       # numpy.float64(36.0)
    value["name"].integer_value     # None
    repr(value["age"])              # '.integer(36)'
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterator

import numpy as np

from .errors import TypeMismatchError, UnsupportedTypeError
from .keys import AnyKey

if TYPE_CHECKING:
    from .codec import Decoder, Encoder


class Kind(Enum):
    DATE = "date"
    BOOL = "bool"
    STRING = "string"
    DOUBLE = "double"
    FLOAT = "float"
    INTEGER = "integer"
    INTEGER8 = "integer8"
    INTEGER16 = "integer16"
    INTEGER32 = "integer32"
    INTEGER64 = "integer64"
    UNSIGNED_INTEGER = "unsigned_integer"
    UNSIGNED_INTEGER8 = "unsigned_integer8"
    UNSIGNED_INTEGER16 = "unsigned_integer16"
    UNSIGNED_INTEGER32 = "unsigned_integer32"
    UNSIGNED_INTEGER64 = "unsigned_integer64"
    DATA = "data"
    DICTIONARY = "dictionary"
    ARRAY = "array"


NUMERIC_DTYPES = {
    Kind.DOUBLE: np.float64,
    Kind.FLOAT: np.float32,
    Kind.INTEGER: np.intp,
    Kind.INTEGER8: np.int8,
    Kind.INTEGER16: np.int16,
    Kind.INTEGER32: np.int32,
    Kind.INTEGER64: np.int64,
    Kind.UNSIGNED_INTEGER: np.uintp,
    Kind.UNSIGNED_INTEGER8: np.uint8,
    Kind.UNSIGNED_INTEGER16: np.uint16,
    Kind.UNSIGNED_INTEGER32: np.uint32,
    Kind.UNSIGNED_INTEGER64: np.uint64,
}

FLOAT_KINDS = (Kind.FLOAT, Kind.DOUBLE)

UNSIGNED_KINDS = (
    Kind.UNSIGNED_INTEGER8,
    Kind.UNSIGNED_INTEGER16,
    Kind.UNSIGNED_INTEGER32,
    Kind.UNSIGNED_INTEGER64,
    Kind.UNSIGNED_INTEGER,
)

SIGNED_KINDS = (
    Kind.INTEGER8,
    Kind.INTEGER16,
    Kind.INTEGER32,
    Kind.INTEGER64,
    Kind.INTEGER,
)

INTEGER_KINDS = UNSIGNED_KINDS + SIGNED_KINDS

CONTAINER_KINDS = (Kind.DICTIONARY, Kind.ARRAY)

# Order in which scalar nodes are tried once they are known not to be containers.
SCALAR_TRIAL_ORDER = (
    (Kind.DATE, Kind.DATA, Kind.BOOL)
    + FLOAT_KINDS
    + UNSIGNED_KINDS
    + SIGNED_KINDS
    + (Kind.STRING,)
)

# Width-specific kinds are registered last so that e.g. numpy.int64 maps to
# integer64 rather than the platform-width integer sharing its dtype.
KIND_BY_DTYPE = {
    np.dtype(dtype): kind
    for kind, dtype in sorted(
        NUMERIC_DTYPES.items(),
        key=lambda item: item[0] in (Kind.INTEGER, Kind.UNSIGNED_INTEGER),
        reverse=True,
    )
}


def integer_fits(kind: Kind, value: int) -> bool:
    """Return True if *value* is representable by the integer *kind*."""
    info = np.iinfo(NUMERIC_DTYPES[kind])
    return int(info.min) <= value <= int(info.max)


def normalize_date(value: datetime) -> datetime:
    """Convert aware datetimes to naive UTC; naive datetimes are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _as_value(obj: Any) -> "AnyValue":
    value = AnyValue.from_native(obj)
    if value is None:
        raise TypeError(f"Cannot represent {type(obj).__name__} as AnyValue")
    return value


def _normalize(kind: Kind, payload: Any) -> Any:
    if kind is Kind.DICTIONARY:
        if not isinstance(payload, Mapping):
            raise TypeError(f"dictionary payload must be a mapping, got {type(payload).__name__}")
        return {AnyKey.coerce(key): _as_value(child) for key, child in payload.items()}
    if kind is Kind.ARRAY:
        if isinstance(payload, (str, bytes, Mapping)):
            raise TypeError(f"array payload must be a sequence, got {type(payload).__name__}")
        return tuple(_as_value(child) for child in payload)
    if kind is Kind.DATE:
        if not isinstance(payload, datetime):
            raise TypeError(f"date payload must be a datetime, got {type(payload).__name__}")
        return normalize_date(payload)
    if kind is Kind.BOOL:
        if not isinstance(payload, (bool, np.bool_)):
            raise TypeError(f"bool payload must be a bool, got {type(payload).__name__}")
        return bool(payload)
    if kind is Kind.STRING:
        if not isinstance(payload, str):
            raise TypeError(f"string payload must be a str, got {type(payload).__name__}")
        return str(payload)
    if kind is Kind.DATA:
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise TypeError(f"data payload must be bytes, got {type(payload).__name__}")
        return bytes(payload)
    if kind in FLOAT_KINDS:
        if isinstance(payload, (bool, np.bool_)) or not isinstance(payload, (int, float, np.number)):
            raise TypeError(f"{kind.value} payload must be a number, got {type(payload).__name__}")
        with np.errstate(over="ignore"):
            return NUMERIC_DTYPES[kind](payload)
    if kind in INTEGER_KINDS:
        if isinstance(payload, (bool, np.bool_)) or not isinstance(payload, (int, np.integer)):
            raise TypeError(f"{kind.value} payload must be an integer, got {type(payload).__name__}")
        if not integer_fits(kind, int(payload)):
            raise OverflowError(f"{payload} is out of range for {kind.value}")
        return NUMERIC_DTYPES[kind](int(payload))
    raise TypeError(f"Unsupported kind: {kind!r}")


def _render(kind: Kind, payload: Any) -> str:
    if kind is Kind.DICTIONARY:
        if not payload:
            return "[:]"
        return "[" + ", ".join(f"{key!r}: {child!r}" for key, child in payload.items()) + "]"
    if kind is Kind.ARRAY:
        return "[" + ", ".join(repr(child) for child in payload) + "]"
    if kind is Kind.DATE:
        return payload.isoformat(sep=" ", timespec="seconds") + " +0000"
    if kind is Kind.BOOL:
        return "true" if payload else "false"
    if kind is Kind.DATA:
        return f"{len(payload)} bytes"
    if kind is Kind.DOUBLE:
        return repr(float(payload))
    if kind is Kind.FLOAT:
        return str(payload)
    if kind in INTEGER_KINDS:
        return str(int(payload))
    return payload


class AnyValue:
    """An immutable value holding exactly one ``Kind`` and its payload.

    Equality is variant-exact: ``AnyValue.double(1.0) != AnyValue.integer64(1)``.
    Hashing combines the kind with the payload, so equal values hash equally
    and values can be used as dict keys or set members. NaN payloads follow
    IEEE rules: ``AnyValue.double(nan)`` is not equal to another NaN value.
    """

    __slots__ = ("_kind", "_payload")

    def __init__(self, kind: Kind, payload: Any):
        object.__setattr__(self, "_kind", kind)
        object.__setattr__(self, "_payload", _normalize(kind, payload))

    def __setattr__(self, name, value):
        raise AttributeError("AnyValue is immutable")

    def __reduce__(self):
        return (AnyValue, (self._kind, self._payload))

    # -- Identity -----------------------------------------------------------

    @property
    def kind(self) -> Kind:
        return self._kind

    @property
    def value(self) -> Any:
        """The raw payload of the active variant."""
        if self._kind is Kind.DICTIONARY:
            return MappingProxyType(self._payload)
        return self._payload

    @property
    def is_numeric(self) -> bool:
        return self._kind in NUMERIC_DTYPES

    def __eq__(self, other) -> bool:
        if not isinstance(other, AnyValue):
            return NotImplemented
        if self._kind is not other._kind:
            return False
        return bool(self._payload == other._payload)

    def __hash__(self) -> int:
        if self._kind is Kind.DICTIONARY:
            return hash((self._kind, frozenset(self._payload.items())))
        return hash((self._kind, self._payload))

    def __repr__(self) -> str:
        return f".{self._kind.value}({_render(self._kind, self._payload)})"

    # -- Container access ---------------------------------------------------

    def __getitem__(self, key):
        if self._kind is Kind.DICTIONARY:
            return self._payload[AnyKey.coerce(key)]
        if self._kind is Kind.ARRAY:
            return self._payload[key]
        raise TypeError(f"{self._kind.value} value is not subscriptable")

    def __iter__(self) -> Iterator:
        if self._kind in CONTAINER_KINDS:
            return iter(self._payload)
        raise TypeError(f"{self._kind.value} value is not iterable")

    def __contains__(self, item) -> bool:
        if self._kind is Kind.DICTIONARY:
            return AnyKey.coerce(item) in self._payload
        if self._kind is Kind.ARRAY:
            return item in self._payload
        raise TypeError(f"{self._kind.value} value is not a container")

    def get(self, key, default=None):
        """Dictionary lookup returning *default* for missing keys or non-dictionaries."""
        if self._kind is not Kind.DICTIONARY:
            return default
        return self._payload.get(AnyKey.coerce(key), default)

    # -- Typed accessors ----------------------------------------------------

    def _exact(self, kind: Kind) -> Any:
        return self._payload if self._kind is kind else None

    def _numeric(self, kind: Kind) -> Any:
        if self._kind is kind:
            return self._payload
        if self._kind not in NUMERIC_DTYPES:
            return None
        with np.errstate(all="ignore"):
            return np.asarray(self._payload).astype(NUMERIC_DTYPES[kind])[()]

    @property
    def date_value(self) -> datetime | None:
        return self._exact(Kind.DATE)

    @property
    def bool_value(self) -> bool | None:
        return self._exact(Kind.BOOL)

    @property
    def string_value(self) -> str | None:
        return self._exact(Kind.STRING)

    @property
    def data_value(self) -> bytes | None:
        return self._exact(Kind.DATA)

    @property
    def dictionary_value(self) -> Mapping[AnyKey, "AnyValue"] | None:
        if self._kind is not Kind.DICTIONARY:
            return None
        return MappingProxyType(self._payload)

    @property
    def array_value(self) -> tuple["AnyValue", ...] | None:
        return self._exact(Kind.ARRAY)

    @property
    def double_value(self) -> np.float64 | None:
        return self._numeric(Kind.DOUBLE)

    @property
    def float_value(self) -> np.float32 | None:
        return self._numeric(Kind.FLOAT)

    @property
    def integer_value(self) -> np.intp | None:
        return self._numeric(Kind.INTEGER)

    @property
    def integer8_value(self) -> np.int8 | None:
        return self._numeric(Kind.INTEGER8)

    @property
    def integer16_value(self) -> np.int16 | None:
        return self._numeric(Kind.INTEGER16)

    @property
    def integer32_value(self) -> np.int32 | None:
        return self._numeric(Kind.INTEGER32)

    @property
    def integer64_value(self) -> np.int64 | None:
        return self._numeric(Kind.INTEGER64)

    @property
    def unsigned_integer_value(self) -> np.uintp | None:
        return self._numeric(Kind.UNSIGNED_INTEGER)

    @property
    def unsigned_integer8_value(self) -> np.uint8 | None:
        return self._numeric(Kind.UNSIGNED_INTEGER8)

    @property
    def unsigned_integer16_value(self) -> np.uint16 | None:
        return self._numeric(Kind.UNSIGNED_INTEGER16)

    @property
    def unsigned_integer32_value(self) -> np.uint32 | None:
        return self._numeric(Kind.UNSIGNED_INTEGER32)

    @property
    def unsigned_integer64_value(self) -> np.uint64 | None:
        return self._numeric(Kind.UNSIGNED_INTEGER64)

    # -- Decode / encode ----------------------------------------------------

    @classmethod
    def decode(cls, decoder: "Decoder") -> "AnyValue":
        """Decode the node under *decoder*, trying each variant in turn.

        Containers are recognised first (dictionary, then array). Scalars are
        tried as date, data, bool, float, double, the unsigned integers from
        narrowest to widest, the signed integers from narrowest to widest and
        finally string. The first trial that succeeds wins, so non-negative
        integers land on the narrowest unsigned width and negative ones on
        the narrowest signed width.
        """
        if decoder.is_keyed():
            return cls(
                Kind.DICTIONARY,
                {key: cls.decode(decoder.child(key)) for key in decoder.keys()},
            )
        if decoder.is_ordered():
            return cls(Kind.ARRAY, [cls.decode(element) for element in decoder.elements()])

        for kind in SCALAR_TRIAL_ORDER:
            try:
                payload = decoder.decode_scalar(kind)
            except TypeMismatchError:
                continue
            return cls(kind, payload)

        raise UnsupportedTypeError(
            f"No variant matches {decoder.describe()}", decoder.path
        )

    def encode(self, encoder: "Encoder") -> Any:
        """Encode through *encoder*, dispatching on the active variant."""
        if self._kind is Kind.DICTIONARY:
            return encoder.encode_mapping(
                [(key, child.encode(encoder)) for key, child in self._payload.items()]
            )
        if self._kind is Kind.ARRAY:
            return encoder.encode_sequence([child.encode(encoder) for child in self._payload])
        return encoder.encode_scalar(self._kind, self._payload)

    # -- Construction -------------------------------------------------------

    @classmethod
    def from_native(cls, obj: Any) -> "AnyValue | None":
        """Wrap a Python or numpy object in the variant matching its type.

        Returns None for ``None`` and for objects with no matching variant.
        """
        if isinstance(obj, AnyValue):
            return obj
        if isinstance(obj, (bool, np.bool_)):
            return cls(Kind.BOOL, obj)
        if isinstance(obj, np.generic):
            kind = KIND_BY_DTYPE.get(obj.dtype)
            if kind is not None:
                return cls(kind, obj)
        if isinstance(obj, int):
            for kind in (Kind.INTEGER, Kind.UNSIGNED_INTEGER):
                if integer_fits(kind, obj):
                    return cls(kind, obj)
            return None
        if isinstance(obj, float):
            return cls(Kind.DOUBLE, obj)
        if isinstance(obj, str):
            return cls(Kind.STRING, obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls(Kind.DATA, obj)
        if isinstance(obj, datetime):
            return cls(Kind.DATE, obj)
        if isinstance(obj, Mapping):
            entries = {}
            for key, child in obj.items():
                child_value = cls.from_native(child)
                if child_value is None or not isinstance(key, (AnyKey, str, int)) or isinstance(key, bool):
                    return None
                entries[AnyKey.coerce(key)] = child_value
            return cls(Kind.DICTIONARY, entries)
        if isinstance(obj, (list, tuple)):
            items = [cls.from_native(child) for child in obj]
            if any(item is None for item in items):
                return None
            return cls(Kind.ARRAY, items)
        return None

    # One factory per variant. Defined last so the builtin names they shadow
    # inside the class body are not needed afterwards.

    @classmethod
    def date(cls, value: datetime) -> "AnyValue":
        return cls(Kind.DATE, value)

    @classmethod
    def bool(cls, value) -> "AnyValue":
        return cls(Kind.BOOL, value)

    @classmethod
    def string(cls, value: str) -> "AnyValue":
        return cls(Kind.STRING, value)

    @classmethod
    def double(cls, value) -> "AnyValue":
        return cls(Kind.DOUBLE, value)

    @classmethod
    def float(cls, value) -> "AnyValue":
        return cls(Kind.FLOAT, value)

    @classmethod
    def integer(cls, value) -> "AnyValue":
        return cls(Kind.INTEGER, value)

    @classmethod
    def integer8(cls, value) -> "AnyValue":
        return cls(Kind.INTEGER8, value)

    @classmethod
    def integer16(cls, value) -> "AnyValue":
        return cls(Kind.INTEGER16, value)

    @classmethod
    def integer32(cls, value) -> "AnyValue":
        return cls(Kind.INTEGER32, value)

    @classmethod
    def integer64(cls, value) -> "AnyValue":
        return cls(Kind.INTEGER64, value)

    @classmethod
    def unsigned_integer(cls, value) -> "AnyValue":
        return cls(Kind.UNSIGNED_INTEGER, value)

    @classmethod
    def unsigned_integer8(cls, value) -> "AnyValue":
        return cls(Kind.UNSIGNED_INTEGER8, value)

    @classmethod
    def unsigned_integer16(cls, value) -> "AnyValue":
        return cls(Kind.UNSIGNED_INTEGER16, value)

    @classmethod
    def unsigned_integer32(cls, value) -> "AnyValue":
        return cls(Kind.UNSIGNED_INTEGER32, value)

    @classmethod
    def unsigned_integer64(cls, value) -> "AnyValue":
        return cls(Kind.UNSIGNED_INTEGER64, value)

    @classmethod
    def data(cls, value: bytes) -> "AnyValue":
        return cls(Kind.DATA, value)

    @classmethod
    def dictionary(cls, value: Mapping) -> "AnyValue":
        return cls(Kind.DICTIONARY, value)

    @classmethod
    def array(cls, value) -> "AnyValue":
        return cls(Kind.ARRAY, value)
