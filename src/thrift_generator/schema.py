"""In-memory representation of a parsed thrift schema.

Entity names are qualified with the module (file) that declares them, e.g.
`tutorial.Point`. References between entities use the same qualified names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from thrift_generator.thrift_types import ThriftElementType

if TYPE_CHECKING:
    from thrift_generator.file_group import FileGroup


@dataclass(frozen=True)
class PrimitiveType:
    """A builtin type such as `i32` or `string`."""

    name: str


@dataclass(frozen=True)
class ListType:
    element: FieldType


@dataclass(frozen=True)
class SetType:
    element: FieldType


@dataclass(frozen=True)
class MapType:
    key: FieldType
    value: FieldType


@dataclass(frozen=True)
class TypeRef:
    """A reference to another declared entity (struct, enum, typedef, ...)."""

    name: str


FieldType = PrimitiveType | ListType | SetType | MapType | TypeRef


@dataclass(frozen=True)
class ValueRef:
    """A literal that refers to a constant (`mod.FOO`) or an enum member (`mod.Color.RED`)."""

    name: str


@dataclass
class Field:
    """A field of a struct, union, exception or function argument list."""

    id: int
    name: str
    type: FieldType
    required: bool = False
    default: Any = None


@dataclass
class Struct:
    name: str
    fields: list[Field] = field(default_factory=list)

    KIND: ClassVar[str] = ThriftElementType.STRUCT


@dataclass
class Union(Struct):
    KIND: ClassVar[str] = ThriftElementType.UNION


@dataclass
class ThriftException(Struct):
    KIND: ClassVar[str] = ThriftElementType.EXCEPTION


@dataclass
class Enum:
    name: str
    values: list[tuple[str, int]] = field(default_factory=list)

    KIND: ClassVar[str] = ThriftElementType.ENUM


@dataclass
class Constant:
    name: str
    type: FieldType
    value: Any

    KIND: ClassVar[str] = ThriftElementType.CONST


@dataclass
class Typedef:
    """An alias `name` for `type`."""

    name: str
    type: FieldType

    KIND: ClassVar[str] = ThriftElementType.TYPEDEF


@dataclass
class Function:
    name: str
    params: list[Field] = field(default_factory=list)
    return_type: FieldType | None = None
    exceptions: list[Field] = field(default_factory=list)
    oneway: bool = False


@dataclass
class Service:
    name: str
    functions: list[Function] = field(default_factory=list)
    extends: str | None = None

    KIND: ClassVar[str] = ThriftElementType.SERVICE


Entity = Struct | Enum | Constant | Typedef | Service


@dataclass
class Schema:
    """The parsed representation of one IDL file.

    Attributes:
        module: The module name of the file, e.g. `tutorial` for `tutorial.thrift`.
        path: The path of the IDL file, only used for generated docstrings.
        namespace: The target namespace, e.g. `my.app`, or None for top-level output.
        includes: Module names of included files.
        file_group: The name-resolution authority, attached before generation.
    """

    module: str
    path: str = ""
    namespace: str | None = None
    includes: list[str] = field(default_factory=list)
    typedefs: dict[str, Typedef] = field(default_factory=dict)
    structs: dict[str, Struct] = field(default_factory=dict)
    unions: dict[str, Union] = field(default_factory=dict)
    exceptions: dict[str, ThriftException] = field(default_factory=dict)
    enums: dict[str, Enum] = field(default_factory=dict)
    constants: dict[str, Constant] = field(default_factory=dict)
    services: dict[str, Service] = field(default_factory=dict)
    file_group: FileGroup | None = field(default=None, repr=False, compare=False)

    def collections(self) -> list[dict[str, Any]]:
        """All entity collections that hold named declarations of this schema."""
        return [
            self.typedefs,
            self.structs,
            self.unions,
            self.exceptions,
            self.enums,
            self.constants,
            self.services,
        ]
