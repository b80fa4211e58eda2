"""anycodable: schema-free values that round-trip through JSON, property lists and a binary archive."""

from . import archive, documents, json_format, plist_format
from .codec import Decoder, Encoder, FormatTraits, NativeDecoder, NativeEncoder, ValueDecoder, decode_as, to_value
from .config import Settings, load_config, load_settings
from .dictionary import AnyDictionary
from .errors import (
    AnyCodableError,
    DecodeError,
    DepthExceededError,
    EncodeError,
    KeyNotFoundError,
    ParseError,
    TypeMismatchError,
    UnsupportedTypeError,
)
from .instances import InstancesOf
from .keys import AnyKey
from .value import AnyValue, Kind

__all__ = [
    "AnyKey",
    "AnyValue",
    "Kind",
    "InstancesOf",
    "AnyDictionary",
    "Decoder",
    "Encoder",
    "FormatTraits",
    "NativeDecoder",
    "NativeEncoder",
    "ValueDecoder",
    "decode_as",
    "to_value",
    "Settings",
    "load_config",
    "load_settings",
    "AnyCodableError",
    "DecodeError",
    "DepthExceededError",
    "EncodeError",
    "KeyNotFoundError",
    "ParseError",
    "TypeMismatchError",
    "UnsupportedTypeError",
    "archive",
    "documents",
    "json_format",
    "plist_format",
]
