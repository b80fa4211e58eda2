"""
archive.py - self-describing binary archive carrying every AnyValue variant

Format:
- Header: uint32 magic (the bytes "ANYC") + uint8 version
- Body: exactly one root value
- Value: uint8 type tag + payload, all numbers little-endian
- Integers and floats: raw bytes of their width (platform-width integers
  are stored as 64 bits)
- date: int64 microseconds since 1970-01-01T00:00:00Z
- string, data: uint64 length + bytes (UTF-8 for strings)
- dictionary: uint64 count + entries of (key tag, key, value); keys are
  either a string (uint64 length + UTF-8) or an int64
- array: uint64 count + values
- packed array: element tag + uint64 count + packed elements; written for
  arrays of two or more values sharing one numeric variant

Unlike JSON or property lists, every integer width and the float/double
split survive a round trip.

Usage:
    from anycodable import AnyValue, archive

    blob = archive.dumps(AnyValue.integer8(-1))
    archive.loads(blob)                 # .integer8(-1)

    archive.dump(value, "data.anyc")
    value = archive.load("data.anyc")
"""

from __future__ import annotations

import io
import struct
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, BinaryIO, Union

import numpy as np

from .codec import ValueDecoder, decode_as, to_value
from .config import DEFAULT_MAX_DEPTH, UNIX_EPOCH, Settings
from .errors import DepthExceededError, ParseError, format_path
from .keys import AnyKey
from .value import NUMERIC_DTYPES, AnyValue, Kind

ARCHIVE_MAGIC = 0x43594E41
ARCHIVE_VERSION = 1

# Value type tags
TYPE_DATE = 0x01
TYPE_BOOL = 0x02
TYPE_STRING = 0x03
TYPE_DOUBLE = 0x04
TYPE_FLOAT = 0x05
TYPE_INTEGER = 0x06
TYPE_INTEGER8 = 0x07
TYPE_INTEGER16 = 0x08
TYPE_INTEGER32 = 0x09
TYPE_INTEGER64 = 0x0A
TYPE_UNSIGNED_INTEGER = 0x0B
TYPE_UNSIGNED_INTEGER8 = 0x0C
TYPE_UNSIGNED_INTEGER16 = 0x0D
TYPE_UNSIGNED_INTEGER32 = 0x0E
TYPE_UNSIGNED_INTEGER64 = 0x0F
TYPE_DATA = 0x10
TYPE_DICTIONARY = 0x11
TYPE_ARRAY = 0x12
TYPE_PACKED_ARRAY = 0x13

# Dictionary key tags
KEY_STRING = 0x01
KEY_INT = 0x02

TAG_BY_KIND = {
    Kind.DATE: TYPE_DATE,
    Kind.BOOL: TYPE_BOOL,
    Kind.STRING: TYPE_STRING,
    Kind.DOUBLE: TYPE_DOUBLE,
    Kind.FLOAT: TYPE_FLOAT,
    Kind.INTEGER: TYPE_INTEGER,
    Kind.INTEGER8: TYPE_INTEGER8,
    Kind.INTEGER16: TYPE_INTEGER16,
    Kind.INTEGER32: TYPE_INTEGER32,
    Kind.INTEGER64: TYPE_INTEGER64,
    Kind.UNSIGNED_INTEGER: TYPE_UNSIGNED_INTEGER,
    Kind.UNSIGNED_INTEGER8: TYPE_UNSIGNED_INTEGER8,
    Kind.UNSIGNED_INTEGER16: TYPE_UNSIGNED_INTEGER16,
    Kind.UNSIGNED_INTEGER32: TYPE_UNSIGNED_INTEGER32,
    Kind.UNSIGNED_INTEGER64: TYPE_UNSIGNED_INTEGER64,
    Kind.DATA: TYPE_DATA,
    Kind.DICTIONARY: TYPE_DICTIONARY,
    Kind.ARRAY: TYPE_ARRAY,
}
KIND_BY_TAG = {tag: kind for kind, tag in TAG_BY_KIND.items()}

# On-disk layout of each numeric variant
STORAGE_DTYPES = {
    Kind.DOUBLE: np.dtype("<f8"),
    Kind.FLOAT: np.dtype("<f4"),
    Kind.INTEGER: np.dtype("<i8"),
    Kind.INTEGER8: np.dtype("<i1"),
    Kind.INTEGER16: np.dtype("<i2"),
    Kind.INTEGER32: np.dtype("<i4"),
    Kind.INTEGER64: np.dtype("<i8"),
    Kind.UNSIGNED_INTEGER: np.dtype("<u8"),
    Kind.UNSIGNED_INTEGER8: np.dtype("<u1"),
    Kind.UNSIGNED_INTEGER16: np.dtype("<u2"),
    Kind.UNSIGNED_INTEGER32: np.dtype("<u4"),
    Kind.UNSIGNED_INTEGER64: np.dtype("<u8"),
}
STRUCT_FORMATS = {
    Kind.DOUBLE: "<d",
    Kind.FLOAT: "<f",
    Kind.INTEGER: "<q",
    Kind.INTEGER8: "<b",
    Kind.INTEGER16: "<h",
    Kind.INTEGER32: "<i",
    Kind.INTEGER64: "<q",
    Kind.UNSIGNED_INTEGER: "<Q",
    Kind.UNSIGNED_INTEGER8: "<B",
    Kind.UNSIGNED_INTEGER16: "<H",
    Kind.UNSIGNED_INTEGER32: "<I",
    Kind.UNSIGNED_INTEGER64: "<Q",
}

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _microseconds_since_epoch(value: datetime) -> int:
    delta = value - UNIX_EPOCH
    return (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds


class ArchiveReader:
    """Reader for the binary archive format.

    Produces an ``AnyValue`` tree whose variants are exactly those written.
    """

    def __init__(self, source: Union[str, Path, BinaryIO], max_depth: int = DEFAULT_MAX_DEPTH):
        if isinstance(source, (str, Path)):
            self._file = open(source, "rb")
            self._owns_file = True
        else:
            self._file = source
            self._owns_file = False
        self._max_depth = max_depth

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        if self._owns_file:
            self._file.close()

    def _remaining(self) -> int:
        """Bytes left between the current position and the end of the source."""
        here = self._file.tell()
        end = self._file.seek(0, io.SEEK_END)
        self._file.seek(here)
        return end - here

    def _read(self, size: int, what: str, path: tuple) -> bytes:
        offset = self._file.tell()
        # Length prefixes come from the file; check them before allocating
        if size > self._remaining():
            raise ParseError(
                f"Unexpected end of archive data while reading {what}",
                offset,
                format_path(path),
            )
        data = self._file.read(size)
        if len(data) < size:
            raise ParseError(
                f"Unexpected end of archive data while reading {what}",
                offset,
                format_path(path),
            )
        return data

    def _unpack(self, fmt: str, what: str, path: tuple) -> Any:
        return struct.unpack(fmt, self._read(struct.calcsize(fmt), what, path))[0]

    def _read_uint8(self, what: str, path: tuple) -> int:
        return self._unpack("<B", what, path)

    def _read_uint64(self, what: str, path: tuple) -> int:
        return self._unpack("<Q", what, path)

    def _read_text(self, what: str, path: tuple) -> str:
        length = self._read_uint64(f"{what} length", path)
        offset = self._file.tell()
        data = self._read(length, what, path)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"Invalid UTF-8 in {what}: {exc.reason}", offset, format_path(path)) from None

    def _read_header(self):
        magic = self._unpack("<I", "magic number", ())
        if magic != ARCHIVE_MAGIC:
            raise ParseError(f"Invalid archive: bad magic number 0x{magic:08X}", 0)
        version = self._read_uint8("version", ())
        if version != ARCHIVE_VERSION:
            raise ParseError(f"Unsupported archive version: {version}", 4)

    def _read_key(self, path: tuple) -> AnyKey:
        offset = self._file.tell()
        key_tag = self._read_uint8("key tag", path)
        if key_tag == KEY_STRING:
            return AnyKey.from_string(self._read_text("key", path))
        if key_tag == KEY_INT:
            return AnyKey.from_int(self._unpack("<q", "key", path))
        raise ParseError(f"Unknown key tag: 0x{key_tag:02X}", offset, format_path(path))

    def _read_packed_array(self, path: tuple) -> AnyValue:
        offset = self._file.tell()
        elem_tag = self._read_uint8("packed element tag", path)
        kind = KIND_BY_TAG.get(elem_tag)
        if kind not in STORAGE_DTYPES:
            raise ParseError(f"Invalid packed element tag: 0x{elem_tag:02X}", offset, format_path(path))
        count = self._read_uint64("packed element count", path)
        dtype = STORAGE_DTYPES[kind]
        data = self._read(count * dtype.itemsize, "packed elements", path)
        values = np.frombuffer(data, dtype=dtype).astype(NUMERIC_DTYPES[kind])
        return AnyValue(Kind.ARRAY, [AnyValue(kind, item) for item in values])

    def read_value(self, path: tuple = ()) -> AnyValue:
        """Read one tagged value (and everything nested in it)."""
        if len(path) > self._max_depth:
            raise DepthExceededError(self._max_depth, path)

        offset = self._file.tell()
        tag = self._read_uint8("type tag", path)

        if tag == TYPE_PACKED_ARRAY:
            return self._read_packed_array(path)

        kind = KIND_BY_TAG.get(tag)
        if kind is None:
            raise ParseError(f"Unknown type tag: 0x{tag:02X}", offset, format_path(path))

        if kind in STRUCT_FORMATS:
            return AnyValue(kind, self._unpack(STRUCT_FORMATS[kind], kind.value, path))
        if kind is Kind.BOOL:
            flag = self._read_uint8("bool", path)
            if flag not in (0, 1):
                raise ParseError(f"Invalid bool byte: {flag}", offset + 1, format_path(path))
            return AnyValue(kind, bool(flag))
        if kind is Kind.STRING:
            return AnyValue(kind, self._read_text("string", path))
        if kind is Kind.DATA:
            length = self._read_uint64("data length", path)
            return AnyValue(kind, self._read(length, "data", path))
        if kind is Kind.DATE:
            micros = self._unpack("<q", "date", path)
            try:
                return AnyValue(kind, UNIX_EPOCH + timedelta(microseconds=micros))
            except OverflowError:
                raise ParseError(f"Date out of range: {micros} microseconds", offset + 1, format_path(path)) from None
        if kind is Kind.ARRAY:
            count = self._read_uint64("array count", path)
            return AnyValue(kind, [self.read_value(path + (index,)) for index in range(count)])

        count = self._read_uint64("dictionary count", path)
        entries = {}
        for _ in range(count):
            key_offset = self._file.tell()
            key = self._read_key(path)
            if key in entries:
                raise ParseError(f"Duplicate key '{key}'", key_offset, format_path(path))
            entries[key] = self.read_value(path + (key,))
        return AnyValue(kind, entries)

    def read_all(self) -> AnyValue:
        """Read the header and the root value; trailing bytes are an error."""
        self._read_header()
        value = self.read_value()
        offset = self._file.tell()
        if self._file.read(1):
            raise ParseError("Trailing data after root value", offset)
        return value


class ArchiveWriter:
    """Writer for the binary archive format."""

    def __init__(self, dest: Union[str, Path, BinaryIO]):
        if isinstance(dest, (str, Path)):
            self._file = open(dest, "wb")
            self._owns_file = True
        else:
            self._file = dest
            self._owns_file = False

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        if self._owns_file:
            self._file.close()

    def _write_header(self):
        self._file.write(struct.pack("<I", ARCHIVE_MAGIC))
        self._file.write(struct.pack("<B", ARCHIVE_VERSION))

    def _write_uint8(self, value: int):
        self._file.write(struct.pack("<B", value))

    def _write_uint64(self, value: int):
        self._file.write(struct.pack("<Q", value))

    def _write_bytes(self, data: bytes):
        self._write_uint64(len(data))
        self._file.write(data)

    def _write_key(self, key: AnyKey):
        number = key.int_value
        if number is not None and str(number) == key.string_value and INT64_MIN <= number <= INT64_MAX:
            self._write_uint8(KEY_INT)
            self._file.write(struct.pack("<q", number))
        else:
            self._write_uint8(KEY_STRING)
            self._write_bytes(key.string_value.encode("utf-8"))

    def _packed_kind(self, items: tuple) -> Kind | None:
        if len(items) < 2:
            return None
        kind = items[0].kind
        if kind not in STORAGE_DTYPES or any(item.kind is not kind for item in items):
            return None
        return kind

    def write_value(self, value: AnyValue):
        """Write one tagged value (and everything nested in it)."""
        kind = value.kind
        payload = value.value

        if kind is Kind.ARRAY:
            packed = self._packed_kind(payload)
            if packed is not None:
                self._write_uint8(TYPE_PACKED_ARRAY)
                self._write_uint8(TAG_BY_KIND[packed])
                self._write_uint64(len(payload))
                array = np.array([item.value for item in payload], dtype=NUMERIC_DTYPES[packed])
                self._file.write(array.astype(STORAGE_DTYPES[packed]).tobytes())
                return

        self._write_uint8(TAG_BY_KIND[kind])

        if kind in STRUCT_FORMATS:
            if kind in (Kind.FLOAT, Kind.DOUBLE):
                self._file.write(struct.pack(STRUCT_FORMATS[kind], float(payload)))
            else:
                self._file.write(struct.pack(STRUCT_FORMATS[kind], int(payload)))
        elif kind is Kind.BOOL:
            self._write_uint8(1 if payload else 0)
        elif kind is Kind.STRING:
            self._write_bytes(payload.encode("utf-8"))
        elif kind is Kind.DATA:
            self._write_bytes(payload)
        elif kind is Kind.DATE:
            self._file.write(struct.pack("<q", _microseconds_since_epoch(payload)))
        elif kind is Kind.ARRAY:
            self._write_uint64(len(payload))
            for item in payload:
                self.write_value(item)
        else:
            self._write_uint64(len(payload))
            for key, item in payload.items():
                self._write_key(key)
                self.write_value(item)

    def write_all(self, value: AnyValue):
        """Write the header followed by *value* as the root."""
        self._write_header()
        self.write_value(value)


# Convenience functions


def load(source: Union[str, Path, BinaryIO], target: Any = AnyValue, *, settings: Settings | None = None) -> Any:
    """Load an archive file and decode it as *target* (``AnyValue`` by default).

    Example:
        value = archive.load("data.anyc")
        config = archive.load("config.anyc", Config)
    """
    settings = settings or Settings()
    with ArchiveReader(source, max_depth=settings.max_depth) as reader:
        tree = reader.read_all()
    return decode_as(target, ValueDecoder(tree, max_depth=settings.max_depth))


def loads(data: bytes, target: Any = AnyValue, *, settings: Settings | None = None) -> Any:
    """Parse an archive from bytes.

    Example:
        archive.loads(archive.dumps(AnyValue.float(1.5)))   # .float(1.5)
    """
    return load(io.BytesIO(data), target, settings=settings)


def dump(obj: Any, dest: Union[str, Path, BinaryIO], *, settings: Settings | None = None):
    """Write *obj* (anything ``to_value`` accepts) to an archive file.

    The whole archive is built in memory first, so a value that fails to
    encode leaves *dest* untouched. *settings* is accepted so every format
    shares one signature; the writer has no options (only ``max_depth``
    matters, and only on read).

    Example:
        archive.dump(value, "data.anyc")
    """
    data = dumps(obj)
    if isinstance(dest, (str, Path)):
        Path(dest).write_bytes(data)
    else:
        dest.write(data)


def dumps(obj: Any, *, settings: Settings | None = None) -> bytes:
    """Serialize *obj* to archive bytes; *settings* is unused, as for ``dump``."""
    buffer = io.BytesIO()
    with ArchiveWriter(buffer) as writer:
        writer.write_all(to_value(obj))
    return buffer.getvalue()
