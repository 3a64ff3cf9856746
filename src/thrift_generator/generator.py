"""Turns the schemas of a file group into named generated units.

Generation produces two independent streams per schema: the main modules
(enums, constants, structs, unions, exceptions, services, behaviours) and the
test-data modules. Each stream is folded over all schemas of a file group into
one unit per output name before anything is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from thrift_generator import helper, test_data, writer
from thrift_generator.file_group import FileGroup
from thrift_generator.schema import Constant, Schema
from thrift_generator.writer_dto import GeneratedUnit, NamedUnit

logger = logging.getLogger(__name__)


class NameCollisionError(Exception):
    """Raised when two generated units share an output name and cannot be merged."""

    def __init__(self, name: str, first_generator: str, second_generator: str):
        """Initialize the error.

        Args:
            name (str): The output name both units resolve to.
            first_generator (str): The generator of the unit that was seen first.
            second_generator (str): The generator of the colliding unit.
        """
        super().__init__(
            f"Name collision: '{name}' is generated by both a {first_generator} and a {second_generator}. "
            "Rename one of the declarations."
        )
        self.name = name
        self.first_generator = first_generator
        self.second_generator = second_generator


@dataclass(frozen=True)
class NameCollision:
    """Two units with the same output name, neither of which is a constants unit."""

    name: str
    first: GeneratedUnit
    second: GeneratedUnit

    def error(self) -> NameCollisionError:
        return NameCollisionError(self.name, self.first.generator, self.second.generator)


@dataclass
class Resolution:
    """The outcome of resolving name collisions in one output stream.

    Attributes:
        units: The units with unique output names, in encounter order. Empty on collision.
        collision: The first collision that could not be resolved, if any.
    """

    units: list[NamedUnit] = field(default_factory=list)
    collision: NameCollision | None = None

    @property
    def ok(self) -> bool:
        return self.collision is None

    def unwrap(self) -> list[NamedUnit]:
        """Returns the resolved units.

        Raises:
            NameCollisionError: If a collision could not be resolved.
        """
        if self.collision is not None:
            raise self.collision.error()
        return self.units


def merge_units(first: GeneratedUnit, second: GeneratedUnit) -> GeneratedUnit | None:
    """Merges two units of the same name, if exactly one of them defines constants.

    The merged unit keeps the kind, generator and docstring of the type unit, so that
    a later collision with the merged unit is judged by its type. Declarations keep
    their order: those of `first`, then those of `second`.

    Returns:
        GeneratedUnit | None: The merged unit, or None if the units cannot be merged.
    """
    if first.is_constant == second.is_constant:
        return None

    metadata = second if first.is_constant else first

    return replace(
        metadata,
        imports=tuple(dict.fromkeys(first.imports + second.imports)),
        type_checking_imports=tuple(dict.fromkeys(first.type_checking_imports + second.type_checking_imports)),
        body=first.body + second.body,
    )


def resolve_name_collisions(generated: list[NamedUnit]) -> Resolution:
    """Folds a list of named units into one unit per name.

    Args:
        generated (list[NamedUnit]): The units of one output stream, across all schemas.

    Returns:
        Resolution: The resolved units, or the first collision that cannot be resolved.
    """
    resolved: dict[str, GeneratedUnit] = {}

    for name, unit in generated:
        existing = resolved.get(name)
        if existing is None:
            resolved[name] = unit
            continue

        merged = merge_units(existing, unit)
        if merged is None:
            logger.error("Cannot merge %s and %s generated as '%s'.", existing.generator, unit.generator, name)
            return Resolution(collision=NameCollision(name, existing, unit))

        logger.debug("Merged %s into %s for '%s'.", unit.generator, existing.generator, name)
        resolved[name] = merged

    return Resolution(units=list(resolved.items()))


def generate_enum_modules(schema: Schema) -> list[NamedUnit]:
    modules = []
    for enum in schema.enums.values():
        full_name = schema.file_group.dest_module(enum)
        modules.append((full_name, writer.gen_enum(full_name, enum, schema)))
    return modules


def generate_const_modules(schema: Schema) -> list[NamedUnit]:
    """Generates the constants module of a schema.

    Only constants that are declared by the schema itself are generated; if there are
    none, no module is generated at all.
    """
    constants = [constant for constant in schema.constants.values() if schema.file_group.own_constant(constant)]

    if not constants:
        return []

    full_name = schema.file_group.dest_module(Constant)
    return [(full_name, writer.gen_constants(full_name, constants, schema))]


def _generate_struct_like(schema: Schema, entities) -> list[NamedUnit]:
    modules = []
    for entity in entities:
        full_name = schema.file_group.dest_module(entity)
        modules.append((full_name, writer.gen_struct(entity.KIND, schema, full_name, entity)))
    return modules


def generate_struct_modules(schema: Schema) -> list[NamedUnit]:
    return _generate_struct_like(schema, schema.structs.values())


def generate_union_modules(schema: Schema) -> list[NamedUnit]:
    return _generate_struct_like(schema, schema.unions.values())


def generate_exception_modules(schema: Schema) -> list[NamedUnit]:
    return _generate_struct_like(schema, schema.exceptions.values())


def generate_services(schema: Schema) -> list[NamedUnit]:
    return [writer.gen_service(schema, service) for service in schema.services.values()]


def generate_behaviours(schema: Schema) -> list[NamedUnit]:
    return [writer.gen_behaviour(schema, service) for service in schema.services.values()]


def generate_schema(schema: Schema) -> tuple[list[NamedUnit], list[NamedUnit]]:
    """Generates all units of one schema.

    Args:
        schema (Schema): The schema, with the file group it belongs to attached.

    Returns:
        tuple[list[NamedUnit], list[NamedUnit]]: The main units, grouped by kind in the order
            enums, constants, structs, unions, exceptions, services, behaviours; and the
            test-data units.
    """
    if schema.file_group is None:
        raise ValueError(f"Schema '{schema.module}' has no file group attached.")

    schema = replace(schema, file_group=schema.file_group.set_current_module(schema.module))

    modules = [
        *generate_enum_modules(schema),
        *generate_const_modules(schema),
        *generate_struct_modules(schema),
        *generate_union_modules(schema),
        *generate_exception_modules(schema),
        *generate_services(schema),
        *generate_behaviours(schema),
    ]
    test_modules = test_data.generate_test_data_modules(schema)

    logger.info(
        "Generated %d module(s) and %d test-data module(s) for schema '%s'.",
        len(modules),
        len(test_modules),
        schema.module,
    )
    return modules, test_modules


def generate_file_group(file_group: FileGroup) -> tuple[list[NamedUnit], list[NamedUnit]]:
    """Generates every schema of a file group and concatenates the streams, in schema order."""
    modules: list[NamedUnit] = []
    test_modules: list[NamedUnit] = []

    for schema in file_group.schemas.values():
        schema_modules, schema_test_modules = generate_schema(replace(schema, file_group=file_group))
        modules += schema_modules
        test_modules += schema_test_modules

    return modules, test_modules


def resolve_file_group(file_group: FileGroup) -> tuple[list[NamedUnit], list[NamedUnit]]:
    """Generates a file group and resolves the name collisions of each stream.

    Raises:
        NameCollisionError: If any stream contains a collision that cannot be resolved.
    """
    return tuple(resolve_name_collisions(stream).unwrap() for stream in generate_file_group(file_group))


def targets(file_group: FileGroup) -> list[str]:
    """Returns the list of target paths of the main modules that would be generated from a file group."""
    modules, _ = generate_file_group(file_group)
    return list(dict.fromkeys(helper.target_path(name) for name, _ in modules))


def generate_to_string(file_group: FileGroup) -> str:
    """Renders every resolved unit of a file group, main modules first, into one string."""
    modules, test_modules = resolve_file_group(file_group)
    return "\n".join(unit.dumps_py() for _, unit in modules + test_modules)
