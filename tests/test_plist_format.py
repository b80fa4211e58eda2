"""Tests for property-list decoding and encoding."""

from datetime import datetime

import pytest

from anycodable import AnyKey, AnyValue, Kind, Settings, plist_format


def round_trip(value, settings=None):
    return plist_format.loads(plist_format.dumps(value, settings=settings), settings=settings)


@pytest.mark.parametrize("flavour", ["xml", "binary"])
class TestRoundTrip:
    def test_native_dates_and_data(self, flavour):
        settings = Settings(plist_format=flavour)
        value = AnyValue.dictionary(
            {
                "when": AnyValue.date(datetime(2025, 1, 10, 8, 0, 38)),
                "blob": AnyValue.data(b"\x00\x01\x02"),
            }
        )
        assert round_trip(value, settings) == value

    def test_doubles_stay_doubles_and_floats_stay_floats(self, flavour):
        settings = Settings(plist_format=flavour)
        back = round_trip(
            AnyValue.dictionary(
                {"d": AnyValue.double(12345.6789), "f": AnyValue.float(123.456)}
            ),
            settings,
        )
        assert back["d"] == AnyValue.double(12345.6789)
        assert back["f"] == AnyValue.float(123.456)

    def test_integers_narrow_to_the_smallest_width(self, flavour):
        settings = Settings(plist_format=flavour)
        back = round_trip(AnyValue.array([AnyValue.integer64(255), AnyValue.integer(-2)]), settings)
        assert back == AnyValue.array([AnyValue.unsigned_integer8(255), AnyValue.integer8(-2)])

    def test_bools_and_strings(self, flavour):
        settings = Settings(plist_format=flavour)
        value = AnyValue.array([AnyValue.bool(True), AnyValue.string("x")])
        assert round_trip(value, settings) == value


def test_binary_flavour_header():
    assert plist_format.dumps(AnyValue.string("x"), settings=Settings(plist_format="binary")).startswith(b"bplist00")


def test_xml_flavour_header():
    assert plist_format.dumps(AnyValue.string("x")).startswith(b"<?xml")


def test_int_keys_become_string_keys():
    back = round_trip(AnyValue.dictionary({1: AnyValue.string("a")}))
    (key,) = back.dictionary_value
    assert key == AnyKey.from_int(1)
    assert key.int_value == 1


def test_date_kind_is_detected():
    assert round_trip(AnyValue.date(datetime(2020, 5, 6, 7, 8, 9))).kind is Kind.DATE


def test_xml_dates_drop_microseconds():
    when = datetime(2025, 1, 10, 8, 0, 38, 500000)
    back = round_trip(AnyValue.date(when), Settings(plist_format="xml"))
    assert back == AnyValue.date(when.replace(microsecond=0))


def test_binary_dates_keep_microseconds():
    when = datetime(2025, 1, 10, 8, 0, 38, 500000)
    assert round_trip(AnyValue.date(when), Settings(plist_format="binary")) == AnyValue.date(when)


def test_load_and_dump_files(tmp_path):
    path = tmp_path / "doc.plist"
    value = AnyValue.dictionary({"a": AnyValue.data(b"abc")})
    plist_format.dump(value, path)
    assert plist_format.load(path) == value
    with open(path, "rb") as f:
        assert plist_format.load(f) == value
