"""Property-list support (XML and binary) through ``plistlib``.

Property lists carry dates and binary data natively. Floats read as the
32-bit ``float`` variant only when they survive a float32 round trip
unchanged (``plist_float32_policy = "exact"``), so doubles stay doubles.

XML property lists store dates to the second: microseconds are dropped on
the XML round trip. The binary flavour keeps them.

Usage:
    from anycodable import AnyValue, plist_format

    blob = plist_format.dumps(AnyValue.dictionary({"when": AnyValue.date(when)}))
    plist_format.loads(blob)["when"]            # .date(...)
"""

from __future__ import annotations

import plistlib
from pathlib import Path
from typing import Any, BinaryIO, Union

from .codec import FormatTraits, NativeDecoder, NativeEncoder, decode_as, to_value
from .config import Settings
from .value import AnyValue

PLIST_FORMATS = {"xml": plistlib.FMT_XML, "binary": plistlib.FMT_BINARY}


def traits(settings: Settings | None = None) -> FormatTraits:
    settings = settings or Settings()
    return FormatTraits(
        "plist",
        native_dates=True,
        native_data=True,
        float32_policy=settings.plist_float32_policy,
    )


def decoder_for(data: bytes, settings: Settings | None = None) -> NativeDecoder:
    """Parse *data* (either flavour) and return a decoder positioned at its root."""
    settings = settings or Settings()
    return NativeDecoder(plistlib.loads(data), traits(settings), max_depth=settings.max_depth)


def loads(data: bytes, target: Any = AnyValue, *, settings: Settings | None = None) -> Any:
    """Parse a property list and decode it as *target* (``AnyValue`` by default)."""
    return decode_as(target, decoder_for(data, settings))


def dumps(obj: Any, *, settings: Settings | None = None) -> bytes:
    """Serialize *obj* as a property list in the configured flavour."""
    settings = settings or Settings()
    node = to_value(obj).encode(NativeEncoder(traits(settings)))
    return plistlib.dumps(node, fmt=PLIST_FORMATS[settings.plist_format], sort_keys=False)


def load(source: Union[str, Path, BinaryIO], target: Any = AnyValue, *, settings: Settings | None = None) -> Any:
    if isinstance(source, (str, Path)):
        data = Path(source).read_bytes()
    else:
        data = source.read()
    return loads(data, target, settings=settings)


def dump(obj: Any, dest: Union[str, Path, BinaryIO], *, settings: Settings | None = None) -> None:
    data = dumps(obj, settings=settings)
    if isinstance(dest, (str, Path)):
        Path(dest).write_bytes(data)
    else:
        dest.write(data)
