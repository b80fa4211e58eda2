"""Command line tools for anycodable documents.

Usage:
    python -m anycodable show data.json
    python -m anycodable show data.plist --tree
    python -m anycodable convert data.json data.anyc
    python -m anycodable find data.json --fields number,title
    python -m anycodable browse data.anyc
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from . import documents
from .browser import DocumentBrowser, rich_tree
from .codec import Decoder
from .config import load_settings
from .errors import AnyCodableError
from .instances import InstancesOf
from .value import AnyValue

logger = logging.getLogger(__name__)


def field_matcher(names: list[str]) -> type:
    """Build a decodable type matching any mapping that has all *names*."""

    class FieldMatch:
        def __init__(self, fields: dict[str, AnyValue]):
            self.fields = fields

        @classmethod
        def decode(cls, decoder: Decoder) -> "FieldMatch":
            if not decoder.is_keyed():
                raise decoder.mismatch("keyed container")
            return cls({name: decoder.decode(AnyValue, name) for name in names})

        def to_value(self) -> AnyValue:
            return AnyValue.dictionary(self.fields)

    return FieldMatch


def cmd_show(args, settings) -> int:
    value = documents.load(args.file, format=args.format, settings=settings)
    if args.tree:
        Console().print(rich_tree(value, str(args.file)))
    else:
        print(repr(value))
    return 0


def cmd_convert(args, settings) -> int:
    documents.convert(args.source, args.dest, settings=settings)
    logger.info("Wrote %s", args.dest)
    return 0


def cmd_find(args, settings) -> int:
    names = [name.strip() for name in args.fields.split(",") if name.strip()]
    if not names:
        raise ValueError("--fields needs at least one field name")
    matches = documents.load(
        args.file, InstancesOf[field_matcher(names)], format=args.format, settings=settings
    )
    for match in matches:
        print(repr(match.to_value()))
    logger.info("%d matches", len(matches))
    return 0


def cmd_browse(args, settings) -> int:
    value = documents.load(args.file, format=args.format, settings=settings)
    DocumentBrowser(value, source=str(args.file)).run()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect and convert JSON, property list and anycodable archive documents",
        prog="python -m anycodable",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=Path, default=None, help="Path to anycodable.toml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Print the decoded value")
    show.add_argument("file", type=Path)
    show.add_argument("--format", choices=sorted(documents.FORMATS), default=None)
    show.add_argument("--tree", action="store_true", help="Print as an indented tree")
    show.set_defaults(func=cmd_show)

    convert = subparsers.add_parser("convert", help="Re-encode a document in another format")
    convert.add_argument("source", type=Path)
    convert.add_argument("dest", type=Path)
    convert.set_defaults(func=cmd_convert)

    find = subparsers.add_parser("find", help="Print every mapping carrying the given fields")
    find.add_argument("file", type=Path)
    find.add_argument("--fields", required=True, help="Comma separated field names")
    find.add_argument("--format", choices=sorted(documents.FORMATS), default=None)
    find.set_defaults(func=cmd_find)

    browse = subparsers.add_parser("browse", help="Open the document in a terminal browser")
    browse.add_argument("file", type=Path)
    browse.add_argument("--format", choices=sorted(documents.FORMATS), default=None)
    browse.set_defaults(func=cmd_browse)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(config_path=args.config)
        return args.func(args, settings)
    except (AnyCodableError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
