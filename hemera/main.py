"""
Command line entry point.

    hemera expand app/service.py -o build/service.py
    HEMERA_TRACING=1 hemera expand app/service.py
"""

import argparse
import logging
import sys
from pathlib import Path

from hemera.config import settings
from hemera.expand import expand_source

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.WARNING),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERRORS = 1
EXIT_BAD_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hemera",
        description="Instrument attributed functions with execution-time measurement.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    expand = commands.add_parser("expand", help="Print a module with its attributed functions expanded")
    expand.add_argument("path", type=Path, help="Python source file")
    expand.add_argument("-o", "--output", type=Path, help="Write here instead of stdout")
    expand.add_argument(
        "--tracing",
        action=argparse.BooleanOptionalAction,
        default=None,
        help=f"Wrap bodies in a scoped span (default: {settings.tracing_enabled})",
    )
    return parser


def expand_command(args: argparse.Namespace) -> int:
    try:
        source = args.path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot read {args.path}: {e}")
        return EXIT_BAD_INPUT

    try:
        result = expand_source(source, filename=str(args.path), tracing=args.tracing)
    except SyntaxError as e:
        logger.error(f"{args.path} is not valid Python: {e}")
        return EXIT_BAD_INPUT

    for error in result.errors:
        logger.error(str(error))

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(result.source, encoding="utf-8")
    else:
        sys.stdout.write(result.source)

    return EXIT_OK if result.ok else EXIT_CONFIG_ERRORS


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "expand":
        return expand_command(args)
    return EXIT_BAD_INPUT


if __name__ == "__main__":
    sys.exit(main())
