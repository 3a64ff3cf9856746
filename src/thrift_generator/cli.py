"""Command-line interface for generating Python modules and test-data modules from parsed thrift schemas."""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence

from thrift_generator.generator import NameCollisionError
from thrift_generator.loader import SchemaLoadError
from thrift_generator.run import run

logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate Python modules and test data from parsed thrift schemas.")

    parser.add_argument(
        "-p",
        "--paths",
        type=str,
        nargs="+",
        default=["**/*.json"],
        help="path or glob expressions that match JSON schema files; all matches form one file group.",
    )

    parser.add_argument(
        "-e",
        "--excludes",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions to exclude from path matches.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default="",
        help="directory to write the generated modules to; defaults to the working directory.",
    )

    parser.add_argument(
        "-t",
        "--test-data-dir",
        type=str,
        default="",
        help="directory to write the generated test-data modules to; defaults to the output directory.",
    )

    parser.add_argument(
        "-r",
        "--recursive",
        dest="recursive",
        default=False,
        action="store_true",
        help="recursively search for schema files with a given glob expression.",
    )

    parser.add_argument(
        "--no-format",
        dest="no_format",
        default=False,
        action="store_true",
        help="skip formatting of generated modules with ruff.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        default=False,
        action="store_true",
        help="log every generated unit.",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    parser = setup_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    root_directory = os.getcwd()
    logger.info("Working from root directory: %s", root_directory)

    try:
        run(args, root_directory)
    except NameCollisionError as e:
        logger.error("%s", e)
        return 1
    except SchemaLoadError as e:
        logger.error("Invalid schema: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
