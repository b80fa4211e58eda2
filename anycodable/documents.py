"""Load and save documents, picking the format from the file extension.

File extensions:
- .json: JSON
- .plist: property list (XML or binary flavour on read; ``plist_format`` on write)
- .anyc, .bin: binary archive

Usage:
    from anycodable import documents

    value = documents.load("config.json")
    documents.dump(value, "config.anyc")
    documents.convert("config.json", "config.plist")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Union

from . import archive, json_format, plist_format
from .config import Settings
from .value import AnyValue

logger = logging.getLogger(__name__)

FORMATS = {
    "json": json_format,
    "plist": plist_format,
    "archive": archive,
}

SUFFIXES = {
    ".json": "json",
    ".plist": "plist",
    ".anyc": "archive",
    ".bin": "archive",
}


def detect_format(path: Union[str, Path]) -> str:
    """Return the format name for *path* based on its suffix."""
    suffix = Path(path).suffix.lower()
    try:
        name = SUFFIXES[suffix]
    except KeyError:
        known = ", ".join(sorted(SUFFIXES))
        raise ValueError(f"Cannot detect format of '{path}' (expected one of {known})") from None
    logger.debug("Detected %s format for %s", name, path)
    return name


def _module(path: Union[str, Path], format: str | None):
    name = format or detect_format(path)
    try:
        return FORMATS[name]
    except KeyError:
        raise ValueError(f"Unknown format: {name!r}") from None


def load(
    path: Union[str, Path],
    target: Any = AnyValue,
    format: str | None = None,
    *,
    settings: Settings | None = None,
) -> Any:
    """Load *path* and decode it as *target*."""
    return _module(path, format).load(path, target, settings=settings)


def dump(
    obj: Any,
    path: Union[str, Path],
    format: str | None = None,
    *,
    settings: Settings | None = None,
) -> None:
    """Write *obj* to *path* in the format named by *format* or its suffix."""
    _module(path, format).dump(obj, path, settings=settings)


def convert(
    source: Union[str, Path],
    dest: Union[str, Path],
    *,
    settings: Settings | None = None,
) -> AnyValue:
    """Re-encode *source* as *dest*; returns the value that was written."""
    value = load(source, settings=settings)
    logger.debug("Converting %s to %s", source, dest)
    dump(value, dest, settings=settings)
    return value
