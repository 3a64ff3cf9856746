"""The per-type generator primitive: a hypothesis strategy expression for any field type."""

from __future__ import annotations

from thrift_generator import helper, ir
from thrift_generator.file_group import FileGroup
from thrift_generator.schema import Enum, FieldType, ListType, MapType, PrimitiveType, SetType, Struct
from thrift_generator.thrift_types import INTEGER_RANGES
from thrift_generator.writer import class_ref

CONTEXT = ir.Name("context")


def _primitive_generator(name: str) -> ir.Expr:
    if name in INTEGER_RANGES:
        low, high = INTEGER_RANGES[name]
        return ir.Call(ir.st("integers"), kwargs=(("min_value", ir.Literal(low)), ("max_value", ir.Literal(high))))

    if name == "bool":
        return ir.call(ir.st("booleans"))

    if name == "double":
        return ir.Call(
            ir.st("floats"), kwargs=(("allow_nan", ir.Literal(False)), ("allow_infinity", ir.Literal(False)))
        )

    if name == "string":
        return ir.Call(ir.st("text"), kwargs=(("max_size", ir.Attribute(CONTEXT, "size")),))

    if name == "binary":
        return ir.Call(ir.st("binary"), kwargs=(("max_size", ir.Attribute(CONTEXT, "size")),))

    raise ValueError(f"Unknown primitive type '{name}'.")


def companion_ref(file_group: FileGroup, struct: Struct, attr: str) -> ir.Ref:
    """A reference to a function of the test-data module of a struct."""
    companion = helper.test_data_module_from_data_module(file_group.dest_module(struct))
    return ir.Ref(helper.module_path(companion), attr)


def generator_for(field_type: FieldType, file_group: FileGroup, frozen: bool = False) -> ir.Expr:
    """Builds the expression of a strategy that draws values of a field type.

    The expression refers to a variable `context` that holds the generation context.
    Nested structs are drawn lazily through their own test-data module, one level deeper.

    Set elements and map keys must be hashable. In those positions containers are drawn
    frozen: lists as tuples, sets as frozensets and maps as frozensets of their items.
    Sets of unhashable elements are drawn as lists without repeats, and maps with
    unhashable keys as lists of items.

    Args:
        field_type (FieldType): The declared type.
        file_group (FileGroup): The file group, for resolving references.
        frozen (bool): Whether the value is a set element or map key.

    Returns:
        ir.Expr: The strategy expression.
    """
    resolved = file_group.resolve_type(field_type)

    if isinstance(resolved, PrimitiveType):
        return _primitive_generator(resolved.name)

    if isinstance(resolved, ListType):
        helper_name = "tuple_of" if frozen else "list_of"
        return ir.call(ir.runtime(helper_name), generator_for(resolved.element, file_group, frozen), CONTEXT)

    if isinstance(resolved, SetType):
        if not file_group.is_hashable(resolved.element):
            return ir.call(ir.runtime("unique_list_of"), generator_for(resolved.element, file_group), CONTEXT)

        helper_name = "frozenset_of" if frozen else "set_of"
        return ir.call(ir.runtime(helper_name), generator_for(resolved.element, file_group, frozen=True), CONTEXT)

    if isinstance(resolved, MapType):
        if frozen:
            helper_name = "frozen_items_of"
        elif file_group.is_hashable(resolved.key):
            helper_name = "dict_of"
        else:
            helper_name = "pairs_of"

        return ir.call(
            ir.runtime(helper_name),
            generator_for(resolved.key, file_group, frozen=helper_name != "pairs_of"),
            generator_for(resolved.value, file_group, frozen),
            CONTEXT,
        )

    if isinstance(resolved, Enum):
        return ir.call(ir.st("sampled_from"), class_ref(file_group, resolved))

    if isinstance(resolved, Struct):
        return ir.call(ir.runtime("nested"), companion_ref(file_group, resolved, "get_generator"), CONTEXT)

    raise ValueError(f"Type {field_type!r} cannot be generated.")
