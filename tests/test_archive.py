"""Tests for the binary archive format."""

import io
import struct
from dataclasses import dataclass
from datetime import datetime

import pytest

from anycodable import AnyKey, AnyValue, DepthExceededError, EncodeError, ParseError, Settings, archive


@dataclass
class Point:
    x: float
    y: float
    label: str = ""


def every_variant():
    return AnyValue.dictionary(
        {
            "date": AnyValue.date(datetime(2025, 1, 10, 8, 0, 38, 123456)),
            "old_date": AnyValue.date(datetime(1900, 6, 1, 12, 0)),
            "bool": AnyValue.bool(True),
            "string": AnyValue.string("héllo"),
            "double": AnyValue.double(12345.6789),
            "float": AnyValue.float(123.456),
            "integer": AnyValue.integer(-7),
            "integer8": AnyValue.integer8(-128),
            "integer16": AnyValue.integer16(-12345),
            "integer32": AnyValue.integer32(2**31 - 1),
            "integer64": AnyValue.integer64(-(2**63)),
            "unsigned_integer": AnyValue.unsigned_integer(7),
            "unsigned_integer8": AnyValue.unsigned_integer8(255),
            "unsigned_integer16": AnyValue.unsigned_integer16(1),
            "unsigned_integer32": AnyValue.unsigned_integer32(2**32 - 1),
            "unsigned_integer64": AnyValue.unsigned_integer64(2**64 - 1),
            "data": AnyValue.data(b"\x00\xff"),
            "array": AnyValue.array([AnyValue.string("a"), AnyValue.integer8(1)]),
            "empty": AnyValue.dictionary({}),
            12345: AnyValue.string("example"),
        }
    )


def test_round_trip_is_variant_identical():
    value = every_variant()
    assert archive.loads(archive.dumps(value)) == value


def test_round_trip_of_scalar_root():
    for value in (AnyValue.integer8(-1), AnyValue.float(1.5), AnyValue.string("")):
        assert archive.loads(archive.dumps(value)) == value


def test_header():
    blob = archive.dumps(AnyValue.bool(False))
    assert blob[:4] == b"ANYC"
    assert blob[4] == archive.ARCHIVE_VERSION
    assert blob[5] == archive.TYPE_BOOL
    assert blob[6] == 0
    assert len(blob) == 7


def test_integer_keys_are_stored_as_integers():
    blob = archive.dumps(AnyValue.dictionary({7: AnyValue.bool(True)}))
    # header, dictionary tag, count, key tag
    assert blob[5] == archive.TYPE_DICTIONARY
    assert blob[14] == archive.KEY_INT
    back = archive.loads(blob)
    (key,) = back.dictionary_value
    assert key.int_value == 7


def test_non_canonical_integer_keys_stay_strings():
    blob = archive.dumps(AnyValue.dictionary({"+7": AnyValue.bool(True)}))
    assert blob[14] == archive.KEY_STRING
    (key,) = archive.loads(blob).dictionary_value
    assert key.string_value == "+7"


class TestPackedArrays:
    def test_uniform_numeric_arrays_are_packed(self):
        value = AnyValue.array([AnyValue.integer16(n) for n in (1, 2, -3)])
        blob = archive.dumps(value)
        assert blob[5] == archive.TYPE_PACKED_ARRAY
        assert blob[6] == archive.TYPE_INTEGER16
        assert struct.unpack("<Q", blob[7:15])[0] == 3
        assert len(blob) == 15 + 3 * 2
        assert archive.loads(blob) == value

    @pytest.mark.parametrize(
        "factory",
        ["double", "float", "integer", "unsigned_integer", "unsigned_integer64", "integer8"],
    )
    def test_packed_round_trip(self, factory):
        value = AnyValue.array([getattr(AnyValue, factory)(n) for n in range(5)])
        assert archive.loads(archive.dumps(value)) == value

    def test_mixed_arrays_are_not_packed(self):
        value = AnyValue.array([AnyValue.integer16(1), AnyValue.integer32(2)])
        blob = archive.dumps(value)
        assert blob[5] == archive.TYPE_ARRAY
        assert archive.loads(blob) == value

    def test_single_element_arrays_are_not_packed(self):
        blob = archive.dumps(AnyValue.array([AnyValue.double(1.0)]))
        assert blob[5] == archive.TYPE_ARRAY


class TestMalformedInput:
    def test_bad_magic(self):
        with pytest.raises(ParseError, match="bad magic"):
            archive.loads(b"JUNK\x01\x02\x00")

    def test_unsupported_version(self):
        with pytest.raises(ParseError, match="version"):
            archive.loads(b"ANYC\x09\x02\x00")

    def test_unknown_tag(self):
        with pytest.raises(ParseError, match="Unknown type tag") as exc_info:
            archive.loads(b"ANYC\x01\x7f")
        assert exc_info.value.offset == 5

    def test_truncated_payload(self):
        blob = archive.dumps(AnyValue.dictionary({"a": AnyValue.string("hello")}))
        with pytest.raises(ParseError, match="Unexpected end") as exc_info:
            archive.loads(blob[:-2])
        assert "root/a" in str(exc_info.value)

    def test_empty_input(self):
        with pytest.raises(ParseError):
            archive.loads(b"")

    def test_trailing_data(self):
        with pytest.raises(ParseError, match="Trailing data"):
            archive.loads(archive.dumps(AnyValue.bool(True)) + b"\x00")

    def test_invalid_bool(self):
        with pytest.raises(ParseError, match="bool"):
            archive.loads(b"ANYC\x01\x02\x05")

    @pytest.mark.parametrize(
        "body",
        [
            bytes([archive.TYPE_STRING]) + struct.pack("<Q", 2**63),
            bytes([archive.TYPE_DATA]) + struct.pack("<Q", 2**64 - 1),
            bytes([archive.TYPE_STRING]) + struct.pack("<Q", 2**40) + b"abc",
            bytes([archive.TYPE_PACKED_ARRAY, archive.TYPE_INTEGER64]) + struct.pack("<Q", 2**62),
            bytes([archive.TYPE_ARRAY]) + struct.pack("<Q", 2**62),
            bytes([archive.TYPE_DICTIONARY, 0x01, 0x00]),
        ],
    )
    def test_huge_length_prefix_in_file(self, tmp_path, body):
        path = tmp_path / "bad.anyc"
        path.write_bytes(b"ANYC\x01" + body)
        with pytest.raises(ParseError, match="Unexpected end"):
            archive.load(path)

    def test_huge_length_prefix_in_memory(self):
        with pytest.raises(ParseError, match="Unexpected end") as exc_info:
            archive.loads(b"ANYC\x01" + bytes([archive.TYPE_STRING]) + struct.pack("<Q", 2**63))
        assert exc_info.value.offset == 14


def test_failed_dump_leaves_no_file(tmp_path):
    path = tmp_path / "out.anyc"
    with pytest.raises(EncodeError):
        archive.dump({"a": object()}, path)
    assert not path.exists()


def test_failed_dump_keeps_existing_file(tmp_path):
    path = tmp_path / "out.anyc"
    archive.dump(AnyValue.string("kept"), path)
    with pytest.raises(EncodeError):
        archive.dump([1, object()], path)
    assert archive.load(path) == AnyValue.string("kept")


def test_depth_limit():
    value = AnyValue.array([AnyValue.array([AnyValue.array([AnyValue.string("deep")])])])
    blob = archive.dumps(value)
    assert archive.loads(blob, settings=Settings(max_depth=3)) == value
    with pytest.raises(DepthExceededError):
        archive.loads(blob, settings=Settings(max_depth=2))


def test_typed_decoding():
    blob = archive.dumps(Point(1.5, -2.0, "p"))
    assert archive.loads(blob, Point) == Point(1.5, -2.0, "p")


def test_files_and_streams(tmp_path):
    path = tmp_path / "data.anyc"
    value = every_variant()
    archive.dump(value, path)
    assert archive.load(path) == value

    buffer = io.BytesIO()
    with archive.ArchiveWriter(buffer) as writer:
        writer.write_all(value)
    buffer.seek(0)
    with archive.ArchiveReader(buffer) as reader:
        assert reader.read_all() == value
    assert not buffer.closed
