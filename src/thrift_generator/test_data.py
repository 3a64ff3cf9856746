"""Generation of test-data modules.

For every typedef, struct, exception, union and enum of a schema a companion
module is generated. It exposes two functions:

- `get_generator(context)` returns a hypothesis strategy that draws random,
  schema-valid instances.
- `apply_defaults(struct_, context)` returns the instance with declared defaults
  applied to every absent field, recursively.

Per field, a draw expression and a default expression are compiled into the
expression IR and lowered together when the module is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from thrift_generator import helper, ir, strategies
from thrift_generator.schema import Enum, Field, Schema, Struct, Typedef
from thrift_generator.thrift_types import ThriftElementType
from thrift_generator.writer import Writer, class_ref, value_expr
from thrift_generator.writer_dto import GeneratedUnit, NamedUnit

logger = logging.getLogger(__name__)

CONTEXT = strategies.CONTEXT
STRUCT_VAR = ir.Name("struct_")
VALUE_VAR = ir.Name("value")


@dataclass(frozen=True)
class CompiledField:
    """The draw and default expressions of one field.

    Attributes:
        name: The attribute name of the field in the generated class.
        draw: The strategy that draws a value for the field.
        apply_default: The expression that computes the defaulted value of the field of `struct_`.
    """

    name: str
    draw: ir.Expr
    apply_default: ir.Expr


def compile_draw(field: Field, schema: Schema) -> ir.Expr:
    """The draw expression of a field. Fields that are not required may also be drawn absent."""
    generator = strategies.generator_for(field.type, schema.file_group)

    if field.required:
        return generator

    return ir.call(ir.runtime("optional"), generator, CONTEXT)


def compile_default(field: Field, schema: Schema) -> ir.Expr:
    """The default expression of a field.

    The current value is defaulted recursively first. Only if that result is absent,
    the declared default of the field (if any) takes its place.
    """
    current = ir.Attribute(STRUCT_VAR, helper.sanitize_name(field.name))
    defaulted = ir.call(ir.runtime("apply_defaults"), current, CONTEXT)

    if field.default is None:
        return defaulted

    default = value_expr(schema.file_group, field.default, field.type)
    return ir.call(ir.runtime("default_if_absent"), defaulted, default)


def compile_field(field: Field, schema: Schema) -> CompiledField:
    return CompiledField(
        name=helper.sanitize_name(field.name),
        draw=compile_draw(field, schema),
        apply_default=compile_default(field, schema),
    )


def compile_generator(kind: str, constructor: ir.Expr, struct: Struct, schema: Schema) -> ir.Expr:
    """Composes the draws of all fields into one strategy for the whole struct.

    Structs and exceptions draw every field independently and construct the instance
    from all of them. Unions draw exactly one member per instance.
    """
    if not struct.fields:
        return ir.LetAll(constructor)

    if kind == ThriftElementType.UNION:
        members = [
            ir.LetAll(constructor, ((helper.sanitize_name(field.name), strategies.generator_for(field.type, schema.file_group)),))
            for field in struct.fields
        ]
        return ir.call(ir.st("one_of"), *members)

    compiled = [compile_field(field, schema) for field in struct.fields]
    return ir.LetAll(constructor, tuple((field.name, field.draw) for field in compiled))


def compile_apply_defaults(struct: Struct, schema: Schema) -> ir.Expr:
    """Rebuilds `struct_` with every field defaulted, or returns it unchanged if there are no fields.

    Union members are only defaulted recursively. A declared member default is set
    only if no member of the union is set, so that a union never gets a second member.
    """
    if not struct.fields:
        return STRUCT_VAR

    if struct.KIND != ThriftElementType.UNION:
        compiled = [compile_field(field, schema) for field in struct.fields]
        return ir.Rebuild(STRUCT_VAR, tuple((field.name, field.apply_default) for field in compiled))

    members = tuple(
        (
            helper.sanitize_name(field.name),
            ir.call(ir.runtime("apply_defaults"), ir.Attribute(STRUCT_VAR, helper.sanitize_name(field.name)), CONTEXT),
        )
        for field in struct.fields
    )
    defaults = tuple(
        (helper.sanitize_name(field.name), value_expr(schema.file_group, field.default, field.type))
        for field in struct.fields
        if field.default is not None
    )

    rebuilt = ir.Rebuild(STRUCT_VAR, members)
    if not defaults:
        return rebuilt
    return ir.Call(ir.runtime("union_default"), (rebuilt,), defaults)


def _add_functions(
    writer: Writer,
    data_type: str,
    generator: ir.Expr,
    defaults: ir.Expr,
    param: ir.Name,
    description: str,
):
    context_type = writer.expr(ir.runtime("GenerationContext"))
    strategy_type = writer.expr(ir.st("SearchStrategy"))

    writer.add(
        [
            f"def get_generator(context: {context_type}) -> {strategy_type}[{data_type}]:",
            f'    """Returns a strategy that draws random {description}."""',
            f"    return {writer.expr(generator, indent=1)}",
        ]
    )
    writer.add(
        [
            f"def apply_defaults({param.id}: {data_type}, context: {context_type}) -> {data_type}:",
            f'    """Returns `{param.id}` with declared defaults applied to every absent field."""',
            f"    return {writer.expr(defaults, indent=1)}",
        ]
    )


def _gen_struct(kind: str, schema: Schema, writer: Writer, struct: Struct) -> None:
    constructor = class_ref(schema.file_group, struct)
    data_type = writer.expr(constructor)

    generator = compile_generator(kind, constructor, struct, schema)
    defaults = compile_apply_defaults(struct, schema)

    _add_functions(writer, data_type, generator, defaults, STRUCT_VAR, f"`{constructor.attr}` instances")


def _gen_enum(schema: Schema, writer: Writer, enum: Enum) -> None:
    ref = class_ref(schema.file_group, enum)
    data_type = writer.expr(ref)

    if enum.values:
        first_member, _ = enum.values[0]
        generator = ir.call(ir.st("just"), ir.Ref(ref.module, f"{ref.attr}.{first_member}"))
    else:
        generator = ir.call(ir.st("nothing"))

    _add_functions(writer, data_type, generator, STRUCT_VAR, STRUCT_VAR, f"`{ref.attr}` members")


def _gen_typedef(schema: Schema, writer: Writer, typedef: Typedef) -> None:
    data_type = writer.annotation(typedef.type)
    generator = strategies.generator_for(typedef.type, schema.file_group)
    defaults = ir.call(ir.runtime("apply_defaults"), VALUE_VAR, CONTEXT)

    _add_functions(writer, data_type, generator, defaults, VALUE_VAR, f"`{typedef.name}` values")


def generate(schema: Schema, name: str, entity: Typedef | Struct | Enum) -> GeneratedUnit:
    """Generates the test-data module of one entity.

    Args:
        schema (Schema): The schema that declares the entity, with its file group attached.
        name (str): The output name of the data module of the entity.
        entity: The declaration. Its `KIND` selects the companion that is generated.

    Returns:
        GeneratedUnit: The generated test-data unit.
    """
    test_data_name = helper.test_data_module_from_data_module(name)
    writer = Writer(schema.file_group, test_data_name, ThriftElementType.TEST_DATA, source=schema.path)

    if entity.KIND == ThriftElementType.TYPEDEF:
        _gen_typedef(schema, writer, entity)
    elif entity.KIND == ThriftElementType.ENUM:
        _gen_enum(schema, writer, entity)
    else:
        _gen_struct(entity.KIND, schema, writer, entity)

    logger.debug("Generated test data '%s' for %s '%s'.", test_data_name, entity.KIND, name)
    return writer.unit()


def generate_test_data_modules(schema: Schema) -> list[NamedUnit]:
    """Generates the test-data modules of all typedefs, structs, exceptions, unions and enums of a schema.

    The test-data module of a typedef is named after the capitalized alias, as if it
    were an entity of the schema's own module.

    Args:
        schema (Schema): The schema, with its file group attached.

    Returns:
        list[NamedUnit]: The test-data units, with their output names.
    """
    file_group = schema.file_group
    collections = [schema.typedefs, schema.structs, schema.exceptions, schema.unions, schema.enums]

    modules = []
    for collection in collections:
        for key, entity in collection.items():
            if entity.KIND == ThriftElementType.TYPEDEF:
                full_name = file_group.dest_module(f"{schema.module}.{key.capitalize()}")
            else:
                full_name = file_group.dest_module(entity)

            unit = generate(schema, full_name, entity)
            modules.append((unit.name, unit))

    return modules
