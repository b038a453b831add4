"""Command line entry point: compile a JSON header dump.

::

    ffiwrap zlib.json --so-file libz.so.1 --class-name Zlib -o zlib_ffi.py

The input is the JSON form written by the ``json`` writer (see
:mod:`ffiwrap.writers.json`). ``--so-file`` and ``--class-name`` only apply
to the ``wrapper`` writer.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from ffiwrap.errors import CompileError
from ffiwrap.writers import get_default_writer, get_writer, is_writer_available, list_writers
from ffiwrap.writers.json import header_from_json

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "FFIWRAP_LOG_LEVEL"
WRITER_ENV = "FFIWRAP_WRITER"


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.WARNING
    invalid = None
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        env_level = os.environ.get(LOG_LEVEL_ENV)
        if env_level:
            resolved = logging.getLevelName(env_level.strip().upper())
            if isinstance(resolved, int):
                level = resolved
            else:
                invalid = env_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    if invalid is not None:
        logger.warning("ignoring invalid %s=%r", LOG_LEVEL_ENV, invalid)


def _select_writer(requested: str | None) -> str:
    if requested:
        return requested
    env_writer = os.environ.get(WRITER_ENV)
    if env_writer:
        env_writer = env_writer.strip()
        if is_writer_available(env_writer):
            return env_writer
        logger.warning("ignoring unknown %s=%r", WRITER_ENV, env_writer)
    return get_default_writer()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ffiwrap",
        description="Compile a JSON dump of C declarations into a cffi wrapper module.",
    )
    parser.add_argument("input", help="JSON header dump, or '-' for stdin")
    parser.add_argument("--so-file", default="", help="default shared library path (default: the header path)")
    parser.add_argument(
        "--class-name",
        default="Library",
        help="main class name; a dotted name sets the module's __namespace__ (default: Library)",
    )
    parser.add_argument(
        "-w",
        "--writer",
        default=None,
        help=f"output writer (default: ${WRITER_ENV} or the registry default); one of: {', '.join(list_writers())}",
    )
    parser.add_argument("-o", "--output", default=None, help="output file (default: stdout)")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="log errors only")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose, args.quiet)

    try:
        if args.input == "-":
            text = sys.stdin.read()
        else:
            with open(args.input, encoding="utf-8") as f:
                text = f.read()
    except OSError as e:
        logger.error("cannot read %s: %s", args.input, e)
        return 1

    try:
        header = header_from_json(text)
    except ValueError as e:
        logger.error("invalid header dump %s: %s", args.input, e)
        return 1

    writer_name = _select_writer(args.writer)
    options: dict[str, object] = {}
    if writer_name == "wrapper":
        options = {"so_file": args.so_file, "class_name": args.class_name}
    try:
        writer = get_writer(writer_name, **options)
    except ValueError as e:
        logger.error("%s", e)
        return 2

    logger.info("writing %s with the %s writer", header, writer_name)
    try:
        output = writer.write(header)
    except CompileError as e:
        logger.error("compilation failed: %s", e)
        return 1

    if args.output is None:
        sys.stdout.write(output)
    else:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info("wrote %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
