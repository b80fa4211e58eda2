"""Tests for suffix-based document loading and conversion."""

from datetime import datetime

import pytest

from anycodable import AnyValue, Kind, documents


@pytest.mark.parametrize(
    "name, expected",
    [
        ("a.json", "json"),
        ("a.JSON", "json"),
        ("dir/a.plist", "plist"),
        ("a.anyc", "archive"),
        ("a.bin", "archive"),
    ],
)
def test_detect_format(name, expected):
    assert documents.detect_format(name) == expected


def test_unknown_suffix():
    with pytest.raises(ValueError, match="Cannot detect format"):
        documents.detect_format("a.yaml")


def test_explicit_format_overrides_suffix(tmp_path):
    path = tmp_path / "data.txt"
    documents.dump(AnyValue.integer8(-1), path, format="archive")
    assert documents.load(path, format="archive") == AnyValue.integer8(-1)
    with pytest.raises(ValueError, match="Unknown format"):
        documents.load(path, format="yaml")


def test_convert_json_to_archive_and_plist(tmp_path):
    source = tmp_path / "in.json"
    source.write_text('{"name": "Joe", "values": [1, -2, 0.5]}')

    written = documents.convert(source, tmp_path / "out.anyc")
    assert documents.load(tmp_path / "out.anyc") == written

    documents.convert(tmp_path / "out.anyc", tmp_path / "out.plist")
    back = documents.load(tmp_path / "out.plist")
    assert back["name"] == AnyValue.string("Joe")
    assert back["values"][1] == AnyValue.integer8(-2)


def test_dates_survive_archive_to_plist(tmp_path):
    value = AnyValue.dictionary({"when": AnyValue.date(datetime(2024, 2, 29, 12, 30))})
    documents.dump(value, tmp_path / "a.anyc")
    documents.convert(tmp_path / "a.anyc", tmp_path / "a.plist")
    assert documents.load(tmp_path / "a.plist")["when"].kind is Kind.DATE
