"""Tests for anycodable.toml settings."""

from datetime import datetime

import pytest

from anycodable.config import (
    REFERENCE_EPOCH,
    UNIX_EPOCH,
    Settings,
    codec_defaults,
    load_config,
    load_settings,
)


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path) == {}
    assert load_settings(tmp_path) == Settings()


def test_defaults():
    settings = Settings()
    assert settings.max_depth == 256
    assert settings.json_float32_policy == "range"
    assert settings.plist_float32_policy == "exact"
    assert settings.json_epoch == UNIX_EPOCH
    assert settings.json_indent is None
    assert settings.plist_format == "xml"


def test_codec_section_is_read(tmp_path):
    (tmp_path / "anycodable.toml").write_text(
        "[codec]\n"
        "max_depth = 16\n"
        'json_float32_policy = "exact"\n'
        'json_date_epoch = "reference"\n'
        "json_indent = 2\n"
        'plist_format = "binary"\n'
        "\n"
        "[other]\n"
        "ignored = true\n"
    )
    settings = load_settings(tmp_path)
    assert settings == Settings(
        max_depth=16,
        json_float32_policy="exact",
        json_date_epoch="reference",
        json_indent=2,
        plist_format="binary",
    )
    assert settings.json_epoch == REFERENCE_EPOCH == datetime(2001, 1, 1)


def test_explicit_config_path(tmp_path):
    path = tmp_path / "custom.toml"
    path.write_text("[codec]\nmax_depth = 8\n")
    assert codec_defaults(config_path=path) == {"max_depth": 8}
    assert load_settings(config_path=path).max_depth == 8


def test_unknown_keys_are_rejected(tmp_path):
    (tmp_path / "anycodable.toml").write_text("[codec]\nmax_dept = 8\n")
    with pytest.raises(ValueError, match="max_dept"):
        load_settings(tmp_path)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_depth": 0},
        {"max_depth": True},
        {"json_float32_policy": "round"},
        {"plist_float32_policy": "range-ish"},
        {"json_date_epoch": "1970"},
        {"json_indent": "2"},
        {"plist_format": "json"},
    ],
)
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        Settings(**kwargs)


def test_malformed_toml_raises(tmp_path):
    (tmp_path / "anycodable.toml").write_text("[codec\n")
    with pytest.raises(ValueError):
        load_settings(tmp_path)
