"""Extract every instance of a known type from an otherwise unmodelled tree.

Usage:
    from dataclasses import dataclass
    from anycodable import InstancesOf, json_format

    @dataclass
    class Item:
        number: int
        title: str

    items = json_format.loads(text, InstancesOf[Item])
    [item.number for item in items]

``InstancesOf[Item]`` can also be used as a dataclass field type, in which
case the field's subtree is searched.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from .codec import Decoder, decode_as, to_value
from .errors import DecodeError, format_path
from .value import AnyValue

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InstancesOf(Sequence, Generic[T]):
    """Immutable sequence of the ``T`` instances found in a subtree, in pre-order.

    A node that decodes as ``T`` is recorded and its children are not
    searched. A node that does not is searched through: mapping entries in
    decode order, then sequence elements by index. Scalars that are not a
    ``T`` are skipped.
    """

    __slots__ = ("_items",)

    def __init__(self, items=()):
        self._items = tuple(items)

    @classmethod
    def decode(cls, decoder: Decoder, target: Any = None) -> "InstancesOf":
        if target is None:
            raise TypeError("InstancesOf needs a target type, e.g. InstancesOf[Item]")

        found = []
        stack = [decoder]
        while stack:
            node = stack.pop()
            try:
                found.append(decode_as(target, node))
                continue
            except DecodeError as exc:
                logger.debug("Skipping %s: %s", format_path(node.path), exc)

            if node.is_keyed():
                children = [node.child(key) for key in node.keys()]
            elif node.is_ordered():
                children = node.elements()
            else:
                continue
            stack.extend(reversed(children))

        return cls(found)

    def to_value(self) -> AnyValue:
        return AnyValue.array([to_value(item) for item in self._items])

    def __getitem__(self, index):
        if isinstance(index, slice):
            return InstancesOf(self._items[index])
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other) -> bool:
        if isinstance(other, InstancesOf):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return self._items == tuple(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"InstancesOf({list(self._items)!r})"
