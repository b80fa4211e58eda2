"""Decode/encode cursors connecting the value model to concrete formats.

A ``Decoder`` sits on one node of an already-parsed document and answers
three kinds of question: is the node a keyed container, an ordered
container or neither; what are its keys/elements; and "decode this node as
kind X", which raises ``TypeMismatchError`` when the node's representation
does not match. ``AnyValue.decode`` and ``decode_as`` are written against
that surface only, so any format that can provide it works.

Two decoders are provided:

- ``NativeDecoder`` walks the plain Python trees produced by ``json`` and
  ``plistlib``. What it accepts for each kind is governed by ``FormatTraits``.
- ``ValueDecoder`` walks an ``AnyValue`` tree whose nodes already carry an
  explicit kind (the rich archive format); a trial only succeeds for the
  node's own kind.
"""

from __future__ import annotations

import base64
import dataclasses
import inspect
import math
import types
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Union, get_args, get_origin, get_type_hints

import numpy as np

from .config import DEFAULT_MAX_DEPTH, UNIX_EPOCH
from .errors import (
    DecodeError,
    DepthExceededError,
    EncodeError,
    KeyNotFoundError,
    TypeMismatchError,
)
from .keys import AnyKey
from .value import (
    FLOAT_KINDS,
    INTEGER_KINDS,
    KIND_BY_DTYPE,
    NUMERIC_DTYPES,
    AnyValue,
    Kind,
    integer_fits,
    normalize_date,
)

FLOAT32_MAX = float(np.finfo(np.float32).max)


@dataclass(frozen=True)
class FormatTraits:
    """Which native types a format has and how it treats 32-bit floats.

    ``float32_policy`` is ``"range"`` (any finite float within float32 range
    decodes as float) or ``"exact"`` (only floats that survive a float32
    round trip). Formats without native dates write them as seconds since
    ``date_epoch``; formats without native data write base64 text.
    """

    name: str
    native_dates: bool
    native_data: bool
    float32_policy: str = "range"
    date_epoch: datetime = UNIX_EPOCH


# =============================================================================
# Decoding
# =============================================================================


class Decoder:
    """A cursor positioned at one node of a decoded document."""

    def __init__(self, path: tuple = (), max_depth: int = DEFAULT_MAX_DEPTH):
        if len(path) > max_depth:
            raise DepthExceededError(max_depth, path)
        self.path = tuple(path)
        self.max_depth = max_depth

    # -- Structure (format specific) -----------------------------------------

    def is_keyed(self) -> bool:
        raise NotImplementedError

    def is_ordered(self) -> bool:
        raise NotImplementedError

    def is_null(self) -> bool:
        return False

    def keys(self) -> list[AnyKey]:
        raise NotImplementedError

    def contains(self, key) -> bool:
        raise NotImplementedError

    def child(self, key) -> "Decoder":
        raise NotImplementedError

    def elements(self) -> list["Decoder"]:
        raise NotImplementedError

    def decode_scalar(self, kind: Kind) -> Any:
        """Return the node's payload as *kind* or raise ``TypeMismatchError``."""
        raise NotImplementedError

    def describe(self) -> str:
        """Short description of the node, used in error messages."""
        raise NotImplementedError

    # -- Helpers --------------------------------------------------------------

    def mismatch(self, expected: str) -> TypeMismatchError:
        return TypeMismatchError(f"Expected {expected}, found {self.describe()}", self.path)

    def decode(self, target: Any, key=None) -> Any:
        """Decode this node (or its child under *key*) as *target*."""
        node = self if key is None else self.child(key)
        return decode_as(target, node)

    def decode_instances(self, target: Any, key=None):
        """Collect every *target* instance under this node (or under *key*)."""
        node = self if key is None else self.child(key)
        origin = _instances_type()
        return origin.decode(node, target)


def _instances_type():
    from .instances import InstancesOf

    return InstancesOf


class NativeDecoder(Decoder):
    """Cursor over the plain Python tree produced by ``json`` or ``plistlib``."""

    def __init__(
        self,
        node: Any,
        traits: FormatTraits,
        path: tuple = (),
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        super().__init__(path, max_depth)
        self.node = node
        self.traits = traits

    def is_keyed(self) -> bool:
        return isinstance(self.node, dict)

    def is_ordered(self) -> bool:
        return isinstance(self.node, list)

    def is_null(self) -> bool:
        return self.node is None

    def keys(self) -> list[AnyKey]:
        if not self.is_keyed():
            raise self.mismatch("keyed container")
        return [AnyKey.coerce(key) for key in self.node]

    def contains(self, key) -> bool:
        return self.is_keyed() and AnyKey.coerce(key).string_value in self.node

    def child(self, key) -> "NativeDecoder":
        key = AnyKey.coerce(key)
        if not self.is_keyed():
            raise self.mismatch("keyed container")
        try:
            node = self.node[key.string_value]
        except KeyError:
            raise KeyNotFoundError(key, self.path) from None
        return NativeDecoder(node, self.traits, self.path + (key,), self.max_depth)

    def elements(self) -> list["NativeDecoder"]:
        if not self.is_ordered():
            raise self.mismatch("ordered container")
        return [
            NativeDecoder(node, self.traits, self.path + (index,), self.max_depth)
            for index, node in enumerate(self.node)
        ]

    def describe(self) -> str:
        if self.node is None:
            return "null"
        return type(self.node).__name__

    def _fits_float32(self, value: float) -> bool:
        if not math.isfinite(value):
            return True
        if self.traits.float32_policy == "exact":
            with np.errstate(over="ignore"):
                return float(np.float32(value)) == value
        return abs(value) <= FLOAT32_MAX

    def decode_scalar(self, kind: Kind) -> Any:
        node = self.node
        if kind is Kind.DATE:
            if self.traits.native_dates and isinstance(node, datetime):
                return normalize_date(node)
        elif kind is Kind.DATA:
            if self.traits.native_data and isinstance(node, (bytes, bytearray)):
                return bytes(node)
        elif kind is Kind.BOOL:
            if isinstance(node, bool):
                return node
        elif kind is Kind.STRING:
            if isinstance(node, str):
                return node
        elif kind in FLOAT_KINDS:
            if isinstance(node, float) and (kind is Kind.DOUBLE or self._fits_float32(node)):
                with np.errstate(over="ignore"):
                    return NUMERIC_DTYPES[kind](node)
        elif kind in INTEGER_KINDS:
            if isinstance(node, int) and not isinstance(node, bool) and integer_fits(kind, node):
                return NUMERIC_DTYPES[kind](node)
        raise self.mismatch(kind.value)


class ValueDecoder(Decoder):
    """Cursor over an ``AnyValue`` tree; each node only decodes as its own kind."""

    def __init__(self, value: AnyValue, path: tuple = (), max_depth: int = DEFAULT_MAX_DEPTH):
        super().__init__(path, max_depth)
        self.value = value

    def is_keyed(self) -> bool:
        return self.value.kind is Kind.DICTIONARY

    def is_ordered(self) -> bool:
        return self.value.kind is Kind.ARRAY

    def keys(self) -> list[AnyKey]:
        if not self.is_keyed():
            raise self.mismatch("keyed container")
        return list(self.value.dictionary_value)

    def contains(self, key) -> bool:
        return self.is_keyed() and AnyKey.coerce(key) in self.value.dictionary_value

    def child(self, key) -> "ValueDecoder":
        key = AnyKey.coerce(key)
        if not self.is_keyed():
            raise self.mismatch("keyed container")
        try:
            child = self.value.dictionary_value[key]
        except KeyError:
            raise KeyNotFoundError(key, self.path) from None
        return ValueDecoder(child, self.path + (key,), self.max_depth)

    def elements(self) -> list["ValueDecoder"]:
        if not self.is_ordered():
            raise self.mismatch("ordered container")
        return [
            ValueDecoder(child, self.path + (index,), self.max_depth)
            for index, child in enumerate(self.value.array_value)
        ]

    def describe(self) -> str:
        return self.value.kind.value

    def decode_scalar(self, kind: Kind) -> Any:
        if kind in (Kind.DICTIONARY, Kind.ARRAY) or self.value.kind is not kind:
            raise self.mismatch(kind.value)
        return self.value.value


def _decode_first(decoder: Decoder, kinds: Iterable[Kind], expected: str) -> Any:
    for kind in kinds:
        try:
            return decoder.decode_scalar(kind)
        except TypeMismatchError:
            continue
    raise decoder.mismatch(expected)


def _is_decodable(target: Any) -> bool:
    try:
        attr = inspect.getattr_static(target, "decode")
    except AttributeError:
        return False
    return isinstance(attr, classmethod)


def _is_optional(target: Any) -> bool:
    return get_origin(target) in (Union, types.UnionType) and type(None) in get_args(target)


def _decode_union(args: tuple, decoder: Decoder) -> Any:
    if decoder.is_null() and type(None) in args:
        return None
    for option in args:
        if option is type(None):
            continue
        try:
            return decode_as(option, decoder)
        except DecodeError:
            continue
    names = ", ".join(getattr(option, "__name__", repr(option)) for option in args)
    raise decoder.mismatch(f"one of ({names})")


def _decode_dataclass(cls: type, decoder: Decoder) -> Any:
    if not decoder.is_keyed():
        raise decoder.mismatch(f"keyed container for {cls.__name__}")
    hints = get_type_hints(cls)
    kwargs = {}
    for field in dataclasses.fields(cls):
        if not field.init:
            continue
        target = hints.get(field.name, Any)
        if decoder.contains(field.name):
            child = decoder.child(field.name)
            if child.is_null() and _is_optional(target):
                kwargs[field.name] = None
            else:
                kwargs[field.name] = decode_as(target, child)
        elif field.default is not dataclasses.MISSING or field.default_factory is not dataclasses.MISSING:
            continue
        elif _is_optional(target):
            kwargs[field.name] = None
        else:
            raise KeyNotFoundError(field.name, decoder.path)
    return cls(**kwargs)


def _decode_key(key_type: Any, key: AnyKey, decoder: Decoder) -> Any:
    if key_type in (Any, AnyKey):
        return key
    if key_type is str:
        return key.string_value
    if key_type is int:
        if key.int_value is None:
            raise TypeMismatchError(f"Expected integer key, found '{key}'", decoder.path)
        return key.int_value
    raise TypeError(f"Unsupported dictionary key type: {key_type!r}")


def _decode_generic(origin: Any, args: tuple, decoder: Decoder) -> Any:
    if origin in (Union, types.UnionType):
        return _decode_union(args, decoder)
    if origin is list:
        if not decoder.is_ordered():
            raise decoder.mismatch("ordered container")
        item_type = args[0] if args else AnyValue
        return [decode_as(item_type, element) for element in decoder.elements()]
    if origin is tuple:
        if not decoder.is_ordered():
            raise decoder.mismatch("ordered container")
        elements = decoder.elements()
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(decode_as(args[0], element) for element in elements)
        if len(args) != len(elements):
            raise decoder.mismatch(f"ordered container of {len(args)} elements")
        return tuple(decode_as(item_type, element) for item_type, element in zip(args, elements))
    if origin in (dict, Mapping):
        if not decoder.is_keyed():
            raise decoder.mismatch("keyed container")
        key_type, value_type = args if args else (AnyKey, AnyValue)
        return {
            _decode_key(key_type, key, decoder): decode_as(value_type, decoder.child(key))
            for key in decoder.keys()
        }
    if _is_decodable(origin):
        return origin.decode(decoder, *args)
    raise TypeError(f"Cannot decode values of type {origin!r}")


def decode_as(target: Any, decoder: Decoder) -> Any:
    """Decode the node under *decoder* as an instance of *target*.

    *target* may be ``AnyValue``, any class with a ``decode(decoder)``
    classmethod, a builtin scalar type, a numpy scalar type, a dataclass, or
    a parameterised ``list``/``tuple``/``dict``/``Optional``/``InstancesOf``.
    """
    if target is Any:
        target = AnyValue
    origin = get_origin(target)
    if origin is not None:
        return _decode_generic(origin, get_args(target), decoder)
    if target is bool:
        return decoder.decode_scalar(Kind.BOOL)
    if target is str:
        return decoder.decode_scalar(Kind.STRING)
    if target is bytes:
        return decoder.decode_scalar(Kind.DATA)
    if target is datetime:
        return decoder.decode_scalar(Kind.DATE)
    if target is int:
        return int(_decode_first(decoder, (Kind.INTEGER,) + INTEGER_KINDS, "integer"))
    if target is float:
        return float(_decode_first(decoder, (Kind.DOUBLE, Kind.FLOAT) + INTEGER_KINDS, "number"))
    if isinstance(target, type) and issubclass(target, np.generic):
        if issubclass(target, np.bool_):
            return np.bool_(decoder.decode_scalar(Kind.BOOL))
        kind = KIND_BY_DTYPE.get(np.dtype(target))
        if kind is None:
            raise TypeError(f"Unsupported numpy type: {target!r}")
        return decoder.decode_scalar(kind)
    if _is_decodable(target):
        return target.decode(decoder)
    if dataclasses.is_dataclass(target):
        return _decode_dataclass(target, decoder)
    raise TypeError(f"Cannot decode values of type {target!r}")


# =============================================================================
# Encoding
# =============================================================================


class Encoder:
    """Builds a format node from kinds and payloads."""

    def encode_scalar(self, kind: Kind, payload: Any) -> Any:
        raise NotImplementedError

    def encode_mapping(self, entries: list[tuple[AnyKey, Any]]) -> Any:
        raise NotImplementedError

    def encode_sequence(self, items: list[Any]) -> Any:
        raise NotImplementedError


def seconds_since(value: datetime, epoch: datetime) -> int | float:
    """Seconds between *epoch* and *value*; whole seconds come back as an int."""
    delta = value - epoch
    if delta.microseconds == 0:
        return delta.days * 86400 + delta.seconds
    return delta / timedelta(seconds=1)


class NativeEncoder(Encoder):
    """Builds the plain Python trees accepted by ``json`` and ``plistlib``."""

    def __init__(self, traits: FormatTraits):
        self.traits = traits

    def encode_scalar(self, kind: Kind, payload: Any) -> Any:
        if kind is Kind.DATE:
            if self.traits.native_dates:
                return payload
            return seconds_since(payload, self.traits.date_epoch)
        if kind is Kind.DATA:
            if self.traits.native_data:
                return payload
            return base64.b64encode(payload).decode("ascii")
        if kind is Kind.BOOL:
            return bool(payload)
        if kind is Kind.STRING:
            return payload
        if kind is Kind.FLOAT:
            if self.traits.float32_policy == "range":
                # Shortest text that reads back as the same float32.
                return float(str(payload))
            return float(payload)
        if kind is Kind.DOUBLE:
            return float(payload)
        if kind in INTEGER_KINDS:
            return int(payload)
        raise EncodeError(f"Cannot encode {kind.value} as a scalar")

    def encode_mapping(self, entries: list[tuple[AnyKey, Any]]) -> dict:
        return {key.string_value: node for key, node in entries}

    def encode_sequence(self, items: list[Any]) -> list:
        return list(items)


def to_value(obj: Any) -> AnyValue:
    """Convert *obj* into an ``AnyValue`` ready for encoding.

    Handles everything ``AnyValue.from_native`` does plus dataclasses (None
    fields are omitted), nested mappings/sequences of those, and objects
    providing a ``to_value()`` method.
    """
    if isinstance(obj, AnyValue):
        return obj
    convert = getattr(obj, "to_value", None)
    if callable(convert) and not isinstance(obj, type):
        return convert()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return AnyValue.dictionary(
            {
                field.name: to_value(getattr(obj, field.name))
                for field in dataclasses.fields(obj)
                if getattr(obj, field.name) is not None
            }
        )
    if isinstance(obj, Mapping):
        entries = {}
        for key, child in obj.items():
            try:
                entries[AnyKey.coerce(key)] = to_value(child)
            except TypeError as exc:
                raise EncodeError(str(exc)) from exc
        return AnyValue.dictionary(entries)
    if isinstance(obj, (list, tuple)):
        return AnyValue.array([to_value(child) for child in obj])
    value = AnyValue.from_native(obj)
    if value is None:
        raise EncodeError(f"Cannot encode object of type {type(obj).__name__}")
    return value
