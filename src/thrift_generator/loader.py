"""Loading of parsed schemas that are serialized as JSON.

A schema file describes one parsed IDL file::

    {
        "module": "tutorial",
        "namespace": "my.app",
        "includes": ["shared"],
        "typedefs": {"MyInteger": "i32"},
        "enums": [{"name": "Color", "values": {"RED": 1, "GREEN": 2}}],
        "constants": [{"name": "ORIGIN_X", "type": "i32", "value": 0}],
        "structs": [
            {
                "name": "Point",
                "fields": [
                    {"id": 1, "name": "x", "type": "i32", "required": true},
                    {"id": 2, "name": "y", "type": "i32", "default": 5},
                    {"id": 3, "name": "tags", "type": {"list": "string"}},
                    {"id": 4, "name": "color", "type": "Color", "default": {"ref": "Color.RED"}}
                ]
            }
        ],
        "unions": [],
        "exceptions": [],
        "services": [
            {"name": "Geo", "extends": "shared.Base", "functions": [
                {"name": "move", "params": [...], "returns": "Point", "throws": [...], "oneway": false}
            ]}
        ]
    }

Types are primitive names, names of declarations (qualified with an included
module where needed) or `{"list": T}`, `{"set": T}`, `{"map": [K, V]}`.
Values referring to constants or enum members are written as `{"ref": name}`.
"""

from __future__ import annotations

import json
import logging
import os.path
from typing import Any

from thrift_generator import helper
from thrift_generator.file_group import FileGroup
from thrift_generator.schema import (
    Constant,
    Enum,
    Field,
    FieldType,
    Function,
    ListType,
    MapType,
    PrimitiveType,
    Schema,
    Service,
    SetType,
    Struct,
    ThriftException,
    Typedef,
    TypeRef,
    Union,
    ValueRef,
)
from thrift_generator.thrift_types import PRIMITIVE_TYPES

logger = logging.getLogger(__name__)

JSON_SUFFIX = ".json"


class SchemaLoadError(Exception):
    """Raised when a schema file cannot be read or does not describe a valid schema."""

    pass


class _SchemaReader:
    """Reads the declarations of one schema, qualifying names with the right module."""

    def __init__(self, module: str, includes: list[str]):
        self.module = module
        self.includes = includes

    def qualify(self, name: str) -> str:
        first, _, rest = name.partition(".")
        if rest and first in self.includes:
            return name
        return f"{self.module}.{name}"

    def type(self, raw: Any) -> FieldType:
        if isinstance(raw, str):
            if raw in PRIMITIVE_TYPES:
                return PrimitiveType(raw)
            return TypeRef(self.qualify(raw))

        if isinstance(raw, dict) and len(raw) == 1:
            ((container, inner),) = raw.items()
            if container == "list":
                return ListType(self.type(inner))
            if container == "set":
                return SetType(self.type(inner))
            if container == "map" and isinstance(inner, list) and len(inner) == 2:
                return MapType(self.type(inner[0]), self.type(inner[1]))

        raise SchemaLoadError(f"Invalid type {raw!r} in module '{self.module}'.")

    def value(self, raw: Any) -> Any:
        if isinstance(raw, dict):
            if set(raw) == {"ref"}:
                return ValueRef(self.qualify(raw["ref"]))
            return {key: self.value(item) for key, item in raw.items()}

        if isinstance(raw, list):
            return [self.value(item) for item in raw]

        return raw

    def field(self, raw: dict[str, Any]) -> Field:
        try:
            return Field(
                id=raw.get("id", 0),
                name=raw["name"],
                type=self.type(raw["type"]),
                required=bool(raw.get("required", False)),
                default=self.value(raw["default"]) if raw.get("default") is not None else None,
            )
        except KeyError as e:
            raise SchemaLoadError(f"Field in module '{self.module}' is missing {e}.") from e

    def fields(self, raw: list[dict[str, Any]]) -> list[Field]:
        fields = [self.field(item) for item in raw]

        names = [field.name for field in fields]
        if len(names) != len(set(names)):
            raise SchemaLoadError(f"Duplicate field names {names} in module '{self.module}'.")

        return fields

    def function(self, raw: dict[str, Any]) -> Function:
        returns = raw.get("returns")
        return Function(
            name=raw["name"],
            params=self.fields(raw.get("params", [])),
            return_type=self.type(returns) if returns not in (None, "void") else None,
            exceptions=self.fields(raw.get("throws", [])),
            oneway=bool(raw.get("oneway", False)),
        )

    def enum(self, raw: dict[str, Any]) -> Enum:
        values = raw.get("values", {})
        pairs = list(values.items()) if isinstance(values, dict) else [tuple(pair) for pair in values]
        return Enum(name=self.qualify(raw["name"]), values=[(str(name), int(value)) for name, value in pairs])


def load_schema(data: dict[str, Any], path: str = "") -> Schema:
    """Builds a schema from its JSON representation.

    Args:
        data (dict[str, Any]): The decoded JSON document.
        path (str): The path of the document, used to derive a missing module name.

    Returns:
        Schema: The schema, without a file group attached.

    Raises:
        SchemaLoadError: If the document does not describe a valid schema.
    """
    module = data.get("module") or helper.replace_thrift_suffix(os.path.splitext(os.path.basename(path))[0])
    if not module:
        raise SchemaLoadError(f"Schema '{path}' has no module name.")

    includes = list(data.get("includes", []))
    reader = _SchemaReader(module, includes)
    schema = Schema(
        module=module,
        path=data.get("path", f"{module}{helper.THRIFT_SUFFIX}"),
        namespace=data.get("namespace"),
        includes=includes,
    )

    try:
        for alias, aliased in data.get("typedefs", {}).items():
            schema.typedefs[alias] = Typedef(name=reader.qualify(alias), type=reader.type(aliased))

        for key, cls in (("structs", Struct), ("unions", Union), ("exceptions", ThriftException)):
            collection = getattr(schema, key)
            for raw in data.get(key, []):
                collection[raw["name"]] = cls(name=reader.qualify(raw["name"]), fields=reader.fields(raw.get("fields", [])))

        for raw in data.get("enums", []):
            schema.enums[raw["name"]] = reader.enum(raw)

        for raw in data.get("constants", []):
            name = reader.qualify(raw["name"])
            schema.constants[helper.local_name(name)] = Constant(
                name=name, type=reader.type(raw["type"]), value=reader.value(raw["value"])
            )

        for raw in data.get("services", []):
            extends = raw.get("extends")
            schema.services[raw["name"]] = Service(
                name=reader.qualify(raw["name"]),
                functions=[reader.function(function) for function in raw.get("functions", [])],
                extends=reader.qualify(extends) if extends else None,
            )
    except (KeyError, TypeError, ValueError) as e:
        raise SchemaLoadError(f"Invalid schema '{path or module}': {e}") from e

    return schema


def load_schema_file(path: str) -> Schema:
    """Reads a schema from a JSON file."""
    try:
        with open(path, encoding="utf8") as schema_file:
            data = json.load(schema_file)
    except (OSError, json.JSONDecodeError) as e:
        raise SchemaLoadError(f"Cannot read schema '{path}': {e}") from e

    if not isinstance(data, dict):
        raise SchemaLoadError(f"Schema '{path}' must contain a JSON object.")

    return load_schema(data, path)


def load_file_group(paths: list[str]) -> FileGroup:
    """Loads a file group from a list of JSON schema files, in the given order."""
    file_group = FileGroup()

    for path in paths:
        schema = load_schema_file(path)
        if schema.module in file_group.schemas:
            raise SchemaLoadError(f"Module '{schema.module}' is defined more than once.")
        file_group.add(schema)
        logger.info("Loaded schema '%s' from '%s'.", schema.module, path)

    return file_group
