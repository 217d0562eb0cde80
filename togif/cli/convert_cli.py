"""
CLI command for converting image sequences into an animated GIF.

Usage:
    togif convert -i "frames/*.png" -o out.gif
    togif convert -i "frames/^frame[0-9]+\\.png$" -o out.gif --delay 50 --debug
"""

from __future__ import annotations

import argparse
import logging
import sys

from ..converter import convert
from ..exceptions import ToGifError
from ..inputs import expand_input_patterns
from ..progress import NullProgress, ProgressDisplay
from ..types import ConversionConfig, PaletteStrategy

logger = logging.getLogger(__name__)

_PALETTE_MAP = {
    "frequency": PaletteStrategy.FREQUENCY,
    "legacy": PaletteStrategy.LEGACY,
}


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def cmd_convert(args: argparse.Namespace) -> int:
    """Main handler for ``togif convert``."""
    _configure_logging(args.debug)

    config = ConversionConfig(
        delay_ms=args.delay,
        palette_strategy=_PALETTE_MAP[args.palette],
        workers=args.workers,
        debug=args.debug,
    )

    try:
        # Reject bad parameters before touching any file.
        config.validate()
        files = expand_input_patterns(args.input, config.extensions)
        logger.debug("Resolved %d input files.", len(files))

        if args.no_progress:
            convert(files, args.output, config=config, progress=NullProgress())
        else:
            with ProgressDisplay(files, debug=args.debug) as display:
                convert(files, args.output, config=config, progress=display.channel)
    except ToGifError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def build_convert_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``convert`` subcommand and its arguments."""
    p = subparsers.add_parser(
        "convert",
        help="Convert PNG images to a GIF",
        description=(
            "Convert one or more PNG images to a GIF file. Inputs may be glob "
            "patterns (e.g. \"*.png\") or regex patterns (e.g. \"^frame.*\\.png$\")."
        ),
    )
    p.add_argument(
        "-i", "--input", action="append", required=True, metavar="PATTERN",
        help="Input PNG file(s) pattern; may be given several times (required)",
    )
    p.add_argument(
        "-o", "--output", required=True,
        help="Output GIF file path (required)",
    )
    p.add_argument(
        "-d", "--delay", type=int, default=100,
        help="Delay between frames in milliseconds (default: 100)",
    )
    p.add_argument(
        "--palette", choices=sorted(_PALETTE_MAP), default="frequency",
        help="Palette strategy (default: frequency)",
    )
    p.add_argument(
        "--workers", type=int, default=1,
        help="Threads used to quantize frames (default: 1)",
    )
    p.add_argument(
        "--debug", action="store_true",
        help="Enable debug logging and a detailed summary",
    )
    p.add_argument(
        "--no-progress", action="store_true",
        help="Do not show the progress bar",
    )
    p.set_defaults(func=cmd_convert)
