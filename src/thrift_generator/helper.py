"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import keyword
import os.path
import re

TEST_DATA_SUFFIX = "TestData"
PY_SUFFIX = ".py"
THRIFT_SUFFIX = ".thrift"

_UNDERSCORE_BOUNDARIES = (
    (re.compile(r"([A-Z]+)([A-Z][a-z])"), r"\1_\2"),
    (re.compile(r"([a-z\d])([A-Z])"), r"\1_\2"),
)


def sanitize_name(name: str) -> str:
    """Sanitize a name to avoid Python keywords.

    If the name is a Python keyword, append an underscore.
    E.g. 'from' becomes 'from_', 'class' becomes 'class_'.

    Args:
        name (str): The original name.

    Returns:
        str: The sanitized name.
    """
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def camelize(name: str) -> str:
    """Converts a name to CamelCase, e.g. `my_struct` becomes `MyStruct`.

    Characters after the first one of each part are kept as they are, so that
    `myStruct` becomes `MyStruct` and `HTTPServer` stays `HTTPServer`.

    Args:
        name (str): The original name.

    Returns:
        str: The camelized name.
    """
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


def underscore(name: str) -> str:
    """Converts a CamelCase name to snake_case, e.g. `HTTPServer` becomes `http_server`.

    Args:
        name (str): The original name.

    Returns:
        str: The underscored name.
    """
    for pattern, replacement in _UNDERSCORE_BOUNDARIES:
        name = pattern.sub(replacement, name)
    return name.replace("-", "_").lower()


def split_name(qualified_name: str) -> tuple[str, str]:
    """Splits a qualified schema name `module.Local` into its module and local part.

    Args:
        qualified_name (str): The qualified name, e.g. `tutorial.Color.RED`.

    Returns:
        tuple[str, str]: The module and the rest, e.g. `("tutorial", "Color.RED")`.
    """
    module, _, local = qualified_name.partition(".")
    if not local:
        raise ValueError(f"Name '{qualified_name}' is not qualified with a module.")
    return module, local


def local_name(qualified_name: str) -> str:
    """The last segment of a dotted name."""
    return qualified_name.rsplit(".", 1)[-1]


def class_name(output_name: str) -> str:
    """The name of the class that is generated for an output name, e.g. `Point` for `Geo.Point`."""
    return local_name(output_name)


def module_path(output_name: str) -> str:
    """The importable Python module path for an output name.

    E.g. `MyApp.Geo.PointTestData` becomes `my_app.geo.point_test_data`.

    Args:
        output_name (str): The logical output name.

    Returns:
        str: The dotted module path.
    """
    return ".".join(underscore(segment) for segment in output_name.split("."))


def target_path(output_name: str) -> str:
    """The relative file path an output name is written to.

    E.g. `MyApp.Geo.Point` becomes `my_app/geo/point.py`.

    Args:
        output_name (str): The logical output name.

    Returns:
        str: The relative file path.
    """
    return os.path.join(*module_path(output_name).split(".")) + PY_SUFFIX


def test_data_module_from_data_module(output_name: str) -> str:
    """Derives the name of the companion test-data module of a data module.

    E.g. `Geo.Point` becomes `Geo.PointTestData`.

    Args:
        output_name (str): The output name of the data module.

    Returns:
        str: The output name of the test-data module.
    """
    return f"{output_name}{TEST_DATA_SUFFIX}"


def replace_thrift_suffix(original: str) -> str:
    """If found, removes the .thrift suffix of a file name and converts hyphens to underscores.

    For example, `some-module.thrift` becomes `some_module`.

    Args:
        original (str): The file name.

    Returns:
        str: The module name.
    """
    result = original
    if result.endswith(THRIFT_SUFFIX):
        result = result[: -len(THRIFT_SUFFIX)]

    return result.replace("-", "_")
