"""JSON support: only strings, numbers, booleans, arrays and objects.

JSON has no dates or binary blobs. Dates are written as seconds since the
configured epoch and data as base64 text, so they read back as an integer
(or double) and a string respectively. The default epoch is 1970-01-01
UTC; set ``json_date_epoch = "reference"`` for seconds since 2001-01-01 UTC,
the reference date Foundation's JSON coders use.

Usage:
    from anycodable import AnyValue, json_format

    value = json_format.loads('{"key": 123, "nested": [1, 2, 3]}')
    value["key"]                                # .unsigned_integer8(123)
    json_format.dumps(AnyValue.string("x"))     # '"x"'

    decoded = json_format.loads(text, dict[str, AnyValue])
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TextIO, Union

from .codec import FormatTraits, NativeDecoder, NativeEncoder, decode_as, to_value
from .config import Settings
from .value import AnyValue


def traits(settings: Settings | None = None) -> FormatTraits:
    settings = settings or Settings()
    return FormatTraits(
        "json",
        native_dates=False,
        native_data=False,
        float32_policy=settings.json_float32_policy,
        date_epoch=settings.json_epoch,
    )


def decoder_for(text: Union[str, bytes], settings: Settings | None = None) -> NativeDecoder:
    """Parse *text* and return a decoder positioned at its root."""
    settings = settings or Settings()
    return NativeDecoder(json.loads(text), traits(settings), max_depth=settings.max_depth)


def loads(text: Union[str, bytes], target: Any = AnyValue, *, settings: Settings | None = None) -> Any:
    """Parse JSON text and decode it as *target* (``AnyValue`` by default)."""
    return decode_as(target, decoder_for(text, settings))


def dumps(obj: Any, *, settings: Settings | None = None) -> str:
    """Serialize *obj* (anything ``to_value`` accepts) as JSON text."""
    settings = settings or Settings()
    node = to_value(obj).encode(NativeEncoder(traits(settings)))
    return json.dumps(node, indent=settings.json_indent)


def load(source: Union[str, Path, TextIO], target: Any = AnyValue, *, settings: Settings | None = None) -> Any:
    """Load a JSON file (path or text file object)."""
    if isinstance(source, (str, Path)):
        text = Path(source).read_text(encoding="utf-8")
    else:
        text = source.read()
    return loads(text, target, settings=settings)


def dump(obj: Any, dest: Union[str, Path, TextIO], *, settings: Settings | None = None) -> None:
    text = dumps(obj, settings=settings)
    if isinstance(dest, (str, Path)):
        Path(dest).write_text(text, encoding="utf-8")
    else:
        dest.write(text)
