"""Pytest configuration and fixtures for thrift generator tests."""

from __future__ import annotations

import contextlib
import importlib
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from types import ModuleType

import pytest

from thrift_generator import helper
from thrift_generator.file_group import FileGroup
from thrift_generator.loader import load_file_group
from thrift_generator.run import generate
from thrift_generator.schema import (
    Constant,
    Field,
    ListType,
    MapType,
    PrimitiveType,
    Schema,
    SetType,
    Struct,
    TypeRef,
    Union,
)

# Test directory structure
TESTS_DIR = Path(__file__).parent
SCHEMAS_DIR = TESTS_DIR / "schemas"
CALC_SCHEMAS_DIR = SCHEMAS_DIR / "calc"
COLLISION_SCHEMAS_DIR = SCHEMAS_DIR / "collision"

logger = logging.getLogger(__name__)


class GeneratedModules:
    """Access to generated modules that were written to a temporary directory."""

    def __init__(self, main_dir: Path, test_data_dir: Path, written: list[str]):
        self.main_dir = main_dir
        self.test_data_dir = test_data_dir
        self.written = written

    def data(self, output_name: str) -> ModuleType:
        return importlib.import_module(helper.module_path(output_name))

    def test_data(self, output_name: str) -> ModuleType:
        return importlib.import_module(helper.module_path(helper.test_data_module_from_data_module(output_name)))


def _is_generated(module: ModuleType, base_dir: Path) -> bool:
    paths = list(getattr(module, "__path__", None) or [])
    module_file = getattr(module, "__file__", None)
    if module_file:
        paths.append(module_file)
    return any(str(path).startswith(str(base_dir)) for path in paths)


@contextlib.contextmanager
def load_generated(file_group: FileGroup, base_dir: Path) -> Iterator[GeneratedModules]:
    """Generates a file group below `base_dir` and makes the outputs importable.

    Generated modules are removed from `sys.modules` afterwards, so that other tests can
    generate modules with the same names.
    """
    main_dir = base_dir / "generated"
    test_data_dir = base_dir / "generated_test_data"
    written = generate(file_group, [str(main_dir), str(test_data_dir)], format_code=False)
    logger.info(f"Generated {len(written)} module(s) below {base_dir}")

    sys.path[:0] = [str(main_dir), str(test_data_dir)]
    importlib.invalidate_caches()

    try:
        yield GeneratedModules(main_dir, test_data_dir, written)
    finally:
        for path in (str(main_dir), str(test_data_dir)):
            if path in sys.path:
                sys.path.remove(path)

        generated_names = [
            name
            for name, module in list(sys.modules.items())
            if module is not None and _is_generated(module, base_dir)
        ]
        for name in generated_names:
            del sys.modules[name]


@pytest.fixture(scope="module")
def generated_loader(tmp_path_factory):
    """Generate file groups into temporary directories and import from them, for one test module."""
    with contextlib.ExitStack() as stack:

        def load(file_group: FileGroup) -> GeneratedModules:
            return stack.enter_context(load_generated(file_group, tmp_path_factory.mktemp("thrift")))

        yield load


@pytest.fixture(scope="session")
def point_schema() -> Schema:
    """`struct Point { 1: required i32 x, 2: optional i32 y = 5 }` in module `geo`."""
    point = Struct(
        name="geo.Point",
        fields=[
            Field(1, "x", PrimitiveType("i32"), required=True),
            Field(2, "y", PrimitiveType("i32"), default=5),
        ],
    )
    return Schema(module="geo", path="geo.thrift", namespace="geo_gen", structs={"Point": point})


@pytest.fixture(scope="session")
def point_file_group(point_schema) -> FileGroup:
    return FileGroup.from_schemas([point_schema])


@pytest.fixture(scope="session")
def calc_file_group() -> FileGroup:
    """The `shared` and `tutorial` schemas, loaded from JSON."""
    return load_file_group([str(CALC_SCHEMAS_DIR / "shared.json"), str(CALC_SCHEMAS_DIR / "tutorial.json")])


@pytest.fixture(scope="session")
def bag_file_group() -> FileGroup:
    """Sets and maps whose elements or keys are containers or structs, in module `bag`.

    `Item` holds a list and is not hashable, `Label` is. The constants of `bag` merge
    into the module of `Bag`.
    """
    i32 = PrimitiveType("i32")
    string = PrimitiveType("string")

    item = Struct("bag.Item", [Field(1, "tags", ListType(i32))])
    label = Struct("bag.Label", [Field(1, "text", string, required=True)])
    bag = Struct(
        "bag.Bag",
        [
            Field(1, "groups", SetType(ListType(i32)), required=True),
            Field(2, "items", SetType(TypeRef("bag.Item")), required=True),
            Field(3, "labels", SetType(TypeRef("bag.Label")), required=True),
            Field(4, "index", MapType(ListType(string), i32), required=True),
            Field(5, "notes", MapType(TypeRef("bag.Item"), string), required=True),
            Field(6, "nested", SetType(SetType(PrimitiveType("i16"))), required=True),
        ],
    )
    constants = {
        "GROUPS": Constant("bag.GROUPS", SetType(ListType(i32)), [[1, 2], [3]]),
        "INDEX": Constant("bag.INDEX", MapType(ListType(string), i32), {("a", "b"): 1}),
    }
    schema = Schema(
        module="bag",
        path="bag.thrift",
        namespace="bag_gen",
        constants=constants,
        structs={"Item": item, "Label": label, "Bag": bag},
    )
    return FileGroup.from_schemas([schema])


@pytest.fixture(scope="session")
def prefs_file_group() -> FileGroup:
    """`union Choice { 1: i32 number, 2: string text = "auto" }` and `struct Flags { 1: bool enabled = true }`."""
    choice = Union(
        "prefs.Choice",
        [Field(1, "number", PrimitiveType("i32")), Field(2, "text", PrimitiveType("string"), default="auto")],
    )
    flags = Struct("prefs.Flags", [Field(1, "enabled", PrimitiveType("bool"), default=True)])
    schema = Schema(
        module="prefs", path="prefs.thrift", namespace="prefs_gen", structs={"Flags": flags}, unions={"Choice": choice}
    )
    return FileGroup.from_schemas([schema])
