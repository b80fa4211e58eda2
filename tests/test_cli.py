"""Tests for the command line interface."""

import pytest

from anycodable import AnyValue, documents
from anycodable.__main__ import build_parser, main


@pytest.fixture
def sample(tmp_path):
    path = tmp_path / "sample.json"
    path.write_text('{"a": {"number": 1, "title": "x"}, "b": [{"number": 2, "title": "y"}, 3]}')
    return path


def test_show(sample, capsys):
    assert main(["show", str(sample)]) == 0
    out = capsys.readouterr().out
    assert out.startswith(".dictionary([a: .dictionary([number: .unsigned_integer8(1)")


def test_show_tree(sample, capsys):
    assert main(["show", "--tree", str(sample)]) == 0
    out = capsys.readouterr().out
    assert "number: .unsigned_integer8(1)" in out
    assert "b: array (2 elements)" in out


def test_convert(sample, tmp_path):
    dest = tmp_path / "sample.anyc"
    assert main(["convert", str(sample), str(dest)]) == 0
    assert documents.load(dest) == documents.load(sample)


def test_find(sample, capsys):
    assert main(["find", str(sample), "--fields", "number,title"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        ".dictionary([number: .unsigned_integer8(1), title: .string(x)])",
        ".dictionary([number: .unsigned_integer8(2), title: .string(y)])",
    ]


def test_find_single_field(sample, capsys):
    assert main(["find", str(sample), "--fields", "title"]) == 0
    assert len(capsys.readouterr().out.splitlines()) == 2


def test_missing_file(tmp_path, capsys):
    assert main(["show", str(tmp_path / "nope.json")]) == 1
    assert "Error" in capsys.readouterr().err


def test_unknown_suffix(tmp_path, capsys):
    path = tmp_path / "data.yaml"
    path.write_text("a: 1")
    assert main(["show", str(path)]) == 1
    assert "Cannot detect format" in capsys.readouterr().err


def test_corrupt_archive_is_reported(tmp_path, capsys):
    path = tmp_path / "bad.anyc"
    path.write_bytes(b"ANYC\x01\x03" + (2**63).to_bytes(8, "little"))
    assert main(["show", str(path)]) == 1
    assert "Unexpected end of archive data" in capsys.readouterr().err


def test_decode_errors_are_reported(tmp_path, capsys):
    path = tmp_path / "null.json"
    path.write_text('{"a": null}')
    assert main(["show", str(path)]) == 1
    assert "root/a" in capsys.readouterr().err


def test_config_option(sample, tmp_path, capsys):
    config = tmp_path / "settings.toml"
    config.write_text("[codec]\nmax_depth = 1\n")
    assert main(["--config", str(config), "show", str(sample)]) == 1
    assert "maximum depth 1" in capsys.readouterr().err


def test_format_option(tmp_path, capsys):
    path = tmp_path / "data.txt"
    documents.dump(AnyValue.float(1.5), path, format="archive")
    assert main(["show", "--format", "archive", str(path)]) == 0
    assert capsys.readouterr().out == ".float(1.5)\n"


def test_command_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
