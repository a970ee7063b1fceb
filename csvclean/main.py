from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .clean import LineCounter, run
from .coordinator import Coordinator
from .errors import ConfigurationError, CsvCleanError, UsageError
from .models import Configuration
from .rules import AUTO_ENCODING, DEFAULT_DELIMITER, DEFAULT_ENCAPSULATION, DEFAULT_ENCODING, DEFAULT_PERMISSIONS

logger = logging.getLogger("csvclean")

DESCRIPTION = "csvclean - simple character separated value escape utility"

EPILOG = """
If -i is specified, outfile may not be specified
If -i is NOT specified, outfile defaults to infile_clean.ext
-t and -p only function without -i
"""

LOG_FORMAT = "%(asctime)s %(message)s"
LOG_DATEFMT = "%Y/%m/%d %H:%M:%S"


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


def parse_permissions(raw: str) -> int:
    """
    Parse an unsigned integer literal; a leading ``0`` means octal.

    >>> oct(parse_permissions("0666"))
    '0o666'
    >>> parse_permissions("420")
    420
    """
    text = raw.strip().lower()
    try:
        if text.startswith(("0x", "0o", "0b")):
            value = int(text, 0)
        elif len(text) > 1 and text.startswith("0"):
            value = int(text, 8)
        else:
            value = int(text, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid permission mask {raw!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid permission mask {raw!r}")
    return value


def create_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="csvclean",
        usage="%(prog)s [options] infile [outfile]",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("infile", help="File to read")
    parser.add_argument("outfile", nargs="?", help="File to write (default: infile_clean.ext)")

    parser.add_argument("-c", dest="comment", default="", metavar="CHAR", help="Character comments are started with")
    parser.add_argument(
        "-d",
        dest="delimiter",
        default=DEFAULT_DELIMITER,
        metavar="CHAR",
        help=f"Character values are separated by (default: {DEFAULT_DELIMITER!r}; \\t for tab)",
    )
    parser.add_argument(
        "-e",
        dest="encapsulation",
        default=DEFAULT_ENCAPSULATION,
        metavar="CHAR",
        help=f"Character to encapsulate values with (default: {DEFAULT_ENCAPSULATION!r})",
    )
    parser.add_argument("-h", dest="header", action="store_true", help="Mark the input file as having a header")
    parser.add_argument("-i", dest="in_place", action="store_true", help="Overwrite source file with updated contents")
    parser.add_argument(
        "-p",
        dest="permissions",
        type=parse_permissions,
        default=DEFAULT_PERMISSIONS,
        metavar="MODE",
        help=f"Output file permission mask (default: {DEFAULT_PERMISSIONS:#o})",
    )
    parser.add_argument("-t", dest="truncate", action="store_true", help="Truncate output file prior to writing")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--encoding",
        default=DEFAULT_ENCODING,
        help=f"Text encoding of infile, or {AUTO_ENCODING!r} to detect it (default: {DEFAULT_ENCODING})",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-help", "--help", action="help", help="Show this help message and exit")
    return parser


def parse_config(parser: argparse.ArgumentParser, argv: Optional[List[str]] = None) -> Configuration:
    """Turn command-line arguments into a validated Configuration. No I/O happens here."""
    args = parser.parse_args(argv)

    if args.in_place and args.outfile:
        raise UsageError("outfile may not be specified with -i")

    return Configuration.build(
        input_path=args.infile,
        output_path=args.outfile,
        delimiter=args.delimiter,
        comment=args.comment,
        encapsulation=args.encapsulation,
        header=args.header,
        in_place=args.in_place,
        permissions=args.permissions,
        truncate=args.truncate,
        verbose=args.verbose,
        encoding=args.encoding,
    )


def setup_logging(verbose: bool) -> None:
    """Send csvclean logs to stdout; -v adds per-record debug output."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    try:
        config = parse_config(parser, argv)
    except UsageError as e:
        print(f"Invalid input provided: {e}")
        parser.print_help()
        return 1
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 1

    setup_logging(config.verbose)
    logger.debug("Using %r as delimiter", config.delimiter)
    logger.debug("Configuration: %s", config.model_dump())

    counter = LineCounter()
    coordinator = Coordinator(counter)
    try:
        coordinator.run(lambda cancel: run(config, cancel, counter))
    except CsvCleanError as e:
        logger.error("Error occurred during execution: %s", e)
        return 1
    except Exception as e:
        logger.error("Unexpected error: %s", e)
        if config.verbose:
            logger.exception("Full traceback:")
        return 1

    logger.debug("Execution finished, %d lines processed", counter.value)
    return 0


def run_cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run_cli()
