"""Exception types raised by anycodable."""

from __future__ import annotations

from typing import Any


def format_path(path: tuple) -> str:
    """Render a decoder path as ``root/key/0/...``."""
    if not path:
        return "root"
    return "root/" + "/".join(str(part) for part in path)


class AnyCodableError(Exception):
    """Base class for every error raised by this package."""


class DecodeError(AnyCodableError):
    """A node could not be decoded as the requested type."""

    def __init__(self, message: str, path: tuple = ()):
        self.path = tuple(path)
        super().__init__(f"{message} (at {format_path(self.path)})")


class TypeMismatchError(DecodeError):
    """A trial decode failed: the node's representation is not the attempted type."""


class KeyNotFoundError(DecodeError):
    """A keyed container lacks a key that the target type requires."""

    def __init__(self, key: Any, path: tuple = ()):
        self.key = key
        super().__init__(f"No value for key '{key}'", path)


class UnsupportedTypeError(DecodeError):
    """No variant's trial decode matched the node."""


class DepthExceededError(AnyCodableError):
    """A document nests deeper than the configured maximum."""

    def __init__(self, max_depth: int, path: tuple = ()):
        self.max_depth = max_depth
        self.path = tuple(path)
        super().__init__(
            f"Document exceeds maximum depth {max_depth} (at {format_path(self.path)})"
        )


class EncodeError(AnyCodableError):
    """An object has no representation in the value model."""


class ParseError(AnyCodableError):
    """Error during archive parsing."""

    def __init__(self, message: str, offset: int = None, context: str = None):
        self.offset = offset
        self.context = context
        full_msg = message
        if offset is not None:
            full_msg = f"Offset {offset}: {message}"
        if context:
            full_msg += f" (in {context})"
        super().__init__(full_msg)
