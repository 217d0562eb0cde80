"""Main CLI entry point for togif."""

from __future__ import annotations

import argparse
import sys

from togif import __version__

from .convert_cli import build_convert_parser


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="togif",
        description="Convert PNG images to an animated GIF with a shared palette",
    )
    parser.add_argument("--version", action="version", version=f"togif {__version__}")
    subparsers = parser.add_subparsers(dest="command")
    build_convert_parser(subparsers)
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    return args.func(args)


def cli_entry() -> None:
    sys.exit(main())
