"""Name resolution across the schemas of one file group."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from thrift_generator import helper
from thrift_generator.schema import (
    Constant,
    Entity,
    Enum,
    FieldType,
    ListType,
    MapType,
    PrimitiveType,
    Schema,
    SetType,
    Struct,
    ThriftException,
    Typedef,
    TypeRef,
    ValueRef,
)


class UnresolvedNameError(LookupError):
    """Raised when a qualified name does not point to any declaration of the file group."""

    pass


@dataclass
class FileGroup:
    """A set of schemas that share output naming.

    Attributes:
        schemas: The schemas of the group, keyed by module name.
        current_module: The module whose declarations are being generated.
    """

    schemas: dict[str, Schema] = field(default_factory=dict)
    current_module: str | None = None

    @classmethod
    def from_schemas(cls, schemas: list[Schema]) -> FileGroup:
        """Creates a file group from a list of schemas, keeping their order."""
        return cls(schemas={schema.module: schema for schema in schemas})

    def add(self, schema: Schema) -> None:
        self.schemas[schema.module] = schema

    def set_current_module(self, module: str) -> FileGroup:
        """Returns a copy of this file group that resolves names relative to `module`."""
        return replace(self, current_module=module)

    def _namespace_prefix(self, module: str) -> str:
        schema = self.schemas.get(module)
        if schema is None or not schema.namespace:
            return ""

        return ".".join(helper.camelize(segment) for segment in schema.namespace.split(".")) + "."

    def constants_module(self, module: str) -> str:
        """The output name of the constants module of `module`, e.g. `MyApp.Tutorial`."""
        return f"{self._namespace_prefix(module)}{helper.camelize(module)}"

    def dest_module(self, target: Any) -> str:
        """Resolves the output name a declaration is generated under.

        Args:
            target: An entity, a qualified name (`module.Local`), or the `Constant`
                class itself for the constants module of the current module.

        Returns:
            str: The output name, e.g. `MyApp.Point`.
        """
        if target is Constant:
            if self.current_module is None:
                raise ValueError("The constants module can only be resolved with a current module.")
            return self.constants_module(self.current_module)

        qualified_name = target if isinstance(target, str) else target.name
        module, local = helper.split_name(qualified_name)

        return f"{self._namespace_prefix(module)}{helper.camelize(local)}"

    def resolve(self, qualified_name: str) -> Entity:
        """Finds the declaration of a qualified name.

        Raises:
            UnresolvedNameError: If the name is unknown to this file group.
        """
        module, local = helper.split_name(qualified_name)
        schema = self.schemas.get(module)

        if schema is not None:
            for collection in schema.collections():
                if local in collection:
                    return collection[local]

        raise UnresolvedNameError(f"Cannot resolve '{qualified_name}' in file group.")

    def resolve_type(self, field_type: FieldType) -> FieldType | Entity:
        """Resolves a field type, following typedef chains.

        Returns:
            The entity a `TypeRef` points to (never a `Typedef`), or the type itself
            for primitives and containers.
        """
        seen: set[str] = set()

        while isinstance(field_type, TypeRef):
            if field_type.name in seen:
                raise UnresolvedNameError(f"Typedef cycle through '{field_type.name}'.")
            seen.add(field_type.name)

            entity = self.resolve(field_type.name)
            if not isinstance(entity, Typedef):
                return entity
            field_type = entity.type

        return field_type

    def resolve_value(self, ref: ValueRef) -> tuple[Entity, str | None]:
        """Resolves a value reference to a constant or to the member of an enum.

        Returns:
            The entity, and the enum member name (None for constants).
        """
        module, local = helper.split_name(ref.name)
        schema = self.schemas.get(module)
        if schema is not None and local in schema.constants:
            return schema.constants[local], None

        owner, _, member = local.rpartition(".")
        entity = self.resolve(f"{module}.{owner}") if owner else None
        if isinstance(entity, Enum) and member in dict(entity.values):
            return entity, member

        raise UnresolvedNameError(f"Cannot resolve value '{ref.name}' in file group.")

    def own_constant(self, constant: Constant) -> bool:
        """Whether a constant is declared by the current module, rather than inherited from an include."""
        module, _ = helper.split_name(constant.name)
        return module == self.current_module

    def is_hashable(self, field_type: FieldType, frozen: bool = True, _seen: frozenset[str] = frozenset()) -> bool:
        """Whether values of a type can be set elements or map keys.

        In those positions lists become tuples, sets become frozensets and maps become
        frozensets of their items. Fields of generated structs keep plain containers, so
        a struct is hashable only if none of its fields holds a container. Exceptions
        are never hashable.

        Args:
            field_type (FieldType): The type of the element or key.
            frozen (bool): Whether containers of this type are frozen.

        Returns:
            bool: True if drawn and literal values of the type are hashable.
        """
        resolved = self.resolve_type(field_type)

        if isinstance(resolved, (ListType, SetType)):
            return frozen and self.is_hashable(resolved.element, frozen, _seen)

        if isinstance(resolved, MapType):
            return (
                frozen
                and self.is_hashable(resolved.key, frozen, _seen)
                and self.is_hashable(resolved.value, frozen, _seen)
            )

        if isinstance(resolved, ThriftException):
            return False

        if isinstance(resolved, Struct):
            if resolved.name in _seen:
                return True
            return all(self.is_hashable(member.type, False, _seen | {resolved.name}) for member in resolved.fields)

        return isinstance(resolved, (PrimitiveType, Enum))
