"""Top-level module for code generation: loading schemas, generating, and writing the outputs."""

from __future__ import annotations

import argparse
import glob
import logging
import os.path
import subprocess
import sys
import tempfile
from pathlib import Path

from thrift_generator import helper
from thrift_generator.file_group import FileGroup
from thrift_generator.generator import NameCollisionError, resolve_file_group
from thrift_generator.loader import JSON_SUFFIX, load_file_group
from thrift_generator.writer_dto import GeneratedUnit, NamedUnit

logger = logging.getLogger(__name__)

# ruff is a dependency, so it is run from the environment of the generator
RUFF_COMMAND = (sys.executable, "-m", "ruff")


def format_outputs(raw_input: str) -> str:
    """Formats raw input using ruff.

    Args:
        raw_input (str): The unformatted input.

    Returns:
        str: The formatted outputs, or the raw input if formatting fails.
    """
    try:
        # Write to temporary file for ruff to process
        with tempfile.NamedTemporaryFile(mode="w", suffix=helper.PY_SUFFIX, delete=False, encoding="utf-8") as f:
            temp_path = Path(f.name)
            f.write(raw_input)

        try:
            # Sort imports only, the generated code is otherwise lint-clean by construction
            subprocess.run(
                [*RUFF_COMMAND, "check", "--fix", "--select", "I", str(temp_path)],
                capture_output=True,
                check=False,  # Don't raise on non-zero exit
            )

            subprocess.run(
                [*RUFF_COMMAND, "format", "--line-length", "120", str(temp_path)],
                capture_output=True,
                check=True,
            )

            return temp_path.read_text(encoding="utf-8")

        finally:
            temp_path.unlink(missing_ok=True)

    except FileNotFoundError:
        logger.warning("ruff not found, writing unformatted outputs")
        return raw_input
    except subprocess.CalledProcessError as e:
        logger.error(f"Ruff formatting failed: {e}")
        logger.error(f"Stderr: {e.stderr.decode('utf-8', errors='replace')}")
        # Return unformatted output on error
        return raw_input


def write_units(units: list[NamedUnit], output_dir: str, format_code: bool = True) -> list[str]:
    """Writes resolved units below an output directory.

    Args:
        units (list[NamedUnit]): Units with unique output names.
        output_dir (str): The directory to write to.
        format_code (bool): Whether to format the sources with ruff.

    Returns:
        list[str]: The written file names, relative to `output_dir`.
    """
    written = []

    for name, unit in units:
        filename = helper.target_path(name)
        path = os.path.join(output_dir, filename)

        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

        source = unit.dumps_py()
        if format_code:
            source = format_outputs(source)

        with open(path, "w", encoding="utf8") as output_file:
            output_file.write(source)

        written.append(filename)

    logger.info("Wrote %d module(s) to '%s'.", len(written), output_dir)
    return written


def check_output_paths(streams: tuple[list[NamedUnit], ...], outputs: list[str]) -> None:
    """Ensures that no two resolved units are written to the same file.

    Streams may share an output directory, so a unit of one stream can map to the
    file of a unit of another, e.g. a struct `PointTestData` and the test-data module
    of a struct `Point`.

    Raises:
        NameCollisionError: If two units map to the same file.
    """
    claimed: dict[str, GeneratedUnit] = {}

    for units, output_dir in zip(streams, outputs):
        for name, unit in units:
            path = os.path.abspath(os.path.join(output_dir, helper.target_path(name)))
            existing = claimed.get(path)
            if existing is not None:
                logger.error("Both %s and %s would be written to '%s'.", existing.generator, unit.generator, path)
                raise NameCollisionError(name, existing.generator, unit.generator)
            claimed[path] = unit


def generate(file_group: FileGroup, outputs: list[str], format_code: bool = True) -> list[str]:
    """Generates a file group and writes each output stream to its own directory.

    Nothing is written if any stream contains an unresolvable name collision, or if two
    units of different streams would be written to the same file.

    Args:
        file_group (FileGroup): The file group to generate.
        outputs (list[str]): The output directories of the main and the test-data modules.
        format_code (bool): Whether to format the sources with ruff.

    Returns:
        list[str]: The written file names, relative to their output directory.

    Raises:
        NameCollisionError: If two units share an output name and cannot be merged, or share a file.
    """
    streams = resolve_file_group(file_group)

    if len(outputs) != len(streams):
        raise ValueError(f"Expected {len(streams)} output directories, got {len(outputs)}.")

    check_output_paths(streams, outputs)

    written = []
    for units, output_dir in zip(streams, outputs):
        written += write_units(units, output_dir, format_code)

    return written


def find_schema_paths(paths: list[str], excludes: list[str], root_directory: str, recursive: bool) -> list[str]:
    """Collects the JSON schema files that match a set of paths or glob expressions.

    Returns:
        list[str]: The matching paths, sorted, without the excluded ones.
    """
    excluded_paths: set[str] = set()
    for exclude in excludes:
        excluded_paths = excluded_paths.union(glob.glob(os.path.join(root_directory, exclude), recursive=recursive))

    search_paths: set[str] = set()
    for path in paths:
        search_path = os.path.join(root_directory, path)

        # If recursive flag is set and path is a directory, find all schema files recursively
        if recursive and os.path.isdir(search_path):
            for root, _, files in os.walk(search_path):
                for file in files:
                    if file.endswith(JSON_SUFFIX):
                        search_paths.add(os.path.join(root, file))
        elif os.path.isdir(search_path):
            for file in os.listdir(search_path):
                file_path = os.path.join(search_path, file)
                if os.path.isfile(file_path) and file.endswith(JSON_SUFFIX):
                    search_paths.add(file_path)
        else:
            search_paths = search_paths.union(glob.glob(search_path, recursive=recursive))

    return sorted(search_paths - excluded_paths)


def run(args: argparse.Namespace, root_directory: str) -> list[str]:
    """Run the generator on a set of paths that point to JSON schema files.

    All schemas found form one file group.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.
        root_directory (str): The directory, from which the generator is executed.

    Returns:
        list[str]: The written file names.
    """
    valid_paths = find_schema_paths(args.paths, args.excludes, root_directory, args.recursive)

    if not valid_paths:
        logger.warning("No schema files found for %s.", args.paths)
        return []

    file_group = load_file_group(valid_paths)

    output_dir = os.path.join(root_directory, args.output_dir)
    test_data_dir = os.path.join(root_directory, args.test_data_dir or args.output_dir)

    return generate(file_group, [output_dir, test_data_dir], format_code=not args.no_format)
