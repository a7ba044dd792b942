"""Command line entry points for the LDIF tools.

One console script per tool; the positional argument order is fixed:

* ``ldif-extract <input-file> <attribute>``
* ``ldif-diff <file1> <file2> [<attribute>]``
* ``ldif-dir-diff <input-file> <attribute> <ldap-url> <base-dn> <username> <password>``
* ``ldif-strip <input-file> <output-file> <attr1,attr2,...>``
"""
import argparse
import logging
import sys
from typing import Callable, List, Optional

from ldifutil.config import Config
from ldifutil.core.application import Application
from ldifutil.core.constants import EXIT_DIRECTORY_ERROR, EXIT_IO_ERROR, EXIT_USAGE
from ldifutil.errors import DirectoryError, LdifFileError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def _setup_logging(debug: bool = False) -> logging.Logger:
    """Configure and return the application logger."""

    # Configure only the application logger, not the root logger
    app_logger = logging.getLogger("ldifutil")
    app_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Prevent propagation to the root logger to avoid affecting other modules
    app_logger.propagate = False

    # Clear any existing handlers to avoid duplicate logs
    for h in list(app_logger.handlers):
        app_logger.removeHandler(h)

    formatter = logging.Formatter(
        fmt="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S %d.%m.%y",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    return app_logger


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


class _ArgumentParser(argparse.ArgumentParser):
    """Prints usage on stdout and exits with status 1 on bad arguments."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stdout)
        print(f"{self.prog}: error: {message}", file=sys.stdout)
        self.exit(EXIT_USAGE)


def _parser(prog: str, description: str) -> _ArgumentParser:
    # every argument is positional, so values such as "-s3cret" or "-" are data
    return _ArgumentParser(prog=prog, description=description, prefix_chars="\0", add_help=False)


def _run(action: Callable[[Application], object]) -> int:
    try:
        cfg = Config()
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_USAGE

    logger = _setup_logging(cfg.debug)
    app = Application(config=cfg)

    try:
        action(app)
    except LdifFileError as exc:
        print(f"An error occurred while reading or writing files: {exc}", file=sys.stderr)
        logger.debug("File error details", exc_info=True)
        return EXIT_IO_ERROR
    except DirectoryError as exc:
        print(f"An error occurred while talking to the directory: {exc}", file=sys.stderr)
        logger.debug("Directory error details", exc_info=True)
        return EXIT_DIRECTORY_ERROR
    return 0


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def extract_main(argv: Optional[List[str]] = None) -> int:
    """Print DN and values of one attribute for every entry holding it."""
    parser = _parser("ldif-extract", "Extract one attribute's values from an LDIF file.")
    parser.add_argument("input_file")
    parser.add_argument("attribute")
    args = parser.parse_args(argv)

    return _run(lambda app: app.extract(args.input_file, args.attribute, sys.stdout))


def diff_main(argv: Optional[List[str]] = None) -> int:
    """Print the DNs that differ between two LDIF files."""
    parser = _parser(
        "ldif-diff",
        "Compare two LDIF files, either on every attribute or on a single one.",
    )
    parser.add_argument("file1")
    parser.add_argument("file2")
    parser.add_argument("attribute", nargs="?")
    args = parser.parse_args(argv)

    return _run(lambda app: app.diff(args.file1, args.file2, sys.stdout, attribute=args.attribute))


def directory_diff_main(argv: Optional[List[str]] = None) -> int:
    """Compare one attribute of every LDIF entry with a live directory."""
    parser = _parser(
        "ldif-dir-diff",
        "Compare an attribute from an LDIF file with the same attribute in a directory. "
        "ldaps:// URLs are used without certificate validation.",
    )
    parser.add_argument("input_file")
    parser.add_argument("attribute")
    parser.add_argument("ldap_url")
    parser.add_argument("base_dn")
    parser.add_argument("username")
    parser.add_argument("password")
    args = parser.parse_args(argv)

    return _run(
        lambda app: app.directory_diff(
            args.input_file,
            args.attribute,
            args.ldap_url,
            args.base_dn,
            args.username,
            args.password,
            sys.stdout,
        )
    )


def strip_main(argv: Optional[List[str]] = None) -> int:
    """Copy an LDIF file leaving out the named attributes."""
    parser = _parser("ldif-strip", "Copy an LDIF file without the given attributes.")
    parser.add_argument("input_file")
    parser.add_argument("output_file")
    parser.add_argument("attributes", help="comma separated attribute names")
    args = parser.parse_args(argv)

    return _run(lambda app: app.strip(args.input_file, args.output_file, args.attributes))

