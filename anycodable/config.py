"""Codec settings loaded from ``anycodable.toml``.

Example ``anycodable.toml``::

    [codec]
    max_depth = 128
    json_float32_policy = "exact"
    json_date_epoch = "reference"
    json_indent = 2
    plist_format = "binary"
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "anycodable.toml"
DEFAULT_MAX_DEPTH = 256

UNIX_EPOCH = datetime(1970, 1, 1)
REFERENCE_EPOCH = datetime(2001, 1, 1)

DATE_EPOCHS = {"unix": UNIX_EPOCH, "reference": REFERENCE_EPOCH}
FLOAT32_POLICIES = ("range", "exact")
PLIST_FORMATS = ("xml", "binary")

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


@dataclass(frozen=True)
class Settings:
    max_depth: int = DEFAULT_MAX_DEPTH
    json_float32_policy: str = "range"
    plist_float32_policy: str = "exact"
    json_date_epoch: str = "unix"
    json_indent: int | None = None
    plist_format: str = "xml"

    def __post_init__(self) -> None:
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int) or self.max_depth < 1:
            raise ValueError(f"max_depth must be a positive integer, got {self.max_depth!r}")
        for name in ("json_float32_policy", "plist_float32_policy"):
            policy = getattr(self, name)
            if policy not in FLOAT32_POLICIES:
                raise ValueError(f"{name} must be one of {FLOAT32_POLICIES}, got {policy!r}")
        if self.json_date_epoch not in DATE_EPOCHS:
            raise ValueError(
                f"json_date_epoch must be one of {tuple(DATE_EPOCHS)}, got {self.json_date_epoch!r}"
            )
        if self.json_indent is not None and (
            isinstance(self.json_indent, bool) or not isinstance(self.json_indent, int)
        ):
            raise ValueError(f"json_indent must be an integer, got {self.json_indent!r}")
        if self.plist_format not in PLIST_FORMATS:
            raise ValueError(f"plist_format must be one of {PLIST_FORMATS}, got {self.plist_format!r}")

    @property
    def json_epoch(self) -> datetime:
        return DATE_EPOCHS[self.json_date_epoch]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    data = tomllib.loads(raw)
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(Path(config_path))


def codec_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("codec", {})
    return section if isinstance(section, dict) else {}


def load_settings(
    root: Path | None = None, config_path: Path | None = None
) -> Settings:
    """Build ``Settings`` from the ``[codec]`` table; unknown keys are rejected."""
    section = codec_defaults(root=root, config_path=config_path)
    known = {field.name for field in fields(Settings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown [codec] settings: {', '.join(unknown)}")
    return Settings(**section)
