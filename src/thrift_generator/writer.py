"""Leaf generators that turn schema entities into generated units of Python code."""

from __future__ import annotations

import logging
from typing import Any

from thrift_generator import helper, ir
from thrift_generator.file_group import FileGroup
from thrift_generator.schema import (
    Constant,
    Entity,
    Enum,
    Field,
    FieldType,
    ListType,
    MapType,
    PrimitiveType,
    Schema,
    Service,
    SetType,
    Struct,
    ValueRef,
)
from thrift_generator.thrift_types import THRIFT_TYPE_TO_PYTHON, ThriftElementType
from thrift_generator.writer_dto import GeneratedUnit, NamedUnit, UnitKind

logger = logging.getLogger(__name__)

HANDLER_SUFFIX = "Handler"


def class_ref(file_group: FileGroup, entity: Entity) -> ir.Ref:
    """A reference to the class that is generated for an entity."""
    output_name = file_group.dest_module(entity)
    return ir.Ref(helper.module_path(output_name), helper.class_name(output_name))


def constant_ref(file_group: FileGroup, constant: Constant) -> ir.Ref:
    """A reference to a generated constant, inside the constants module of its declaring schema."""
    module, local = helper.split_name(constant.name)
    return ir.Ref(helper.module_path(file_group.constants_module(module)), helper.sanitize_name(local))


def _pairs_expr(pairs: tuple[tuple[ir.Expr, ir.Expr], ...]) -> ir.ListExpr:
    return ir.ListExpr(tuple(ir.TupleExpr(pair) for pair in pairs))


def value_expr(file_group: FileGroup, value: Any, field_type: FieldType | None = None, frozen: bool = False) -> ir.Expr:
    """Builds the expression of a literal value of the schema.

    Containers follow the representation `Writer.annotation` declares: set elements and
    map keys are written frozen, sets of unhashable elements as lists, and maps with
    unhashable keys as lists of items.

    Args:
        file_group (FileGroup): The file group, for resolving references.
        value: The literal: a Python literal, a container of literals, or a `ValueRef`.
        field_type (FieldType | None): The declared type of the value, if known.
        frozen (bool): Whether the value is a set element or map key.

    Returns:
        ir.Expr: The expression that evaluates to the value.
    """
    if isinstance(value, ValueRef):
        entity, member = file_group.resolve_value(value)
        if member is None:
            return constant_ref(file_group, entity)
        ref = class_ref(file_group, entity)
        return ir.Ref(ref.module, f"{ref.attr}.{member}")

    resolved = file_group.resolve_type(field_type) if field_type is not None else None

    if isinstance(resolved, Enum) and isinstance(value, int) and not isinstance(value, bool):
        return ir.call(class_ref(file_group, resolved), ir.Literal(value))

    if isinstance(resolved, Struct) and isinstance(value, dict):
        fields = {field.name: field for field in resolved.fields}
        kwargs = tuple(
            (helper.sanitize_name(key), value_expr(file_group, item, fields[key].type if key in fields else None))
            for key, item in value.items()
        )
        return ir.Call(class_ref(file_group, resolved), kwargs=kwargs)

    if isinstance(value, dict):
        key_type, value_type = (resolved.key, resolved.value) if isinstance(resolved, MapType) else (None, None)
        hashable_keys = key_type is None or file_group.is_hashable(key_type)
        pairs = tuple(
            (value_expr(file_group, key, key_type, hashable_keys), value_expr(file_group, item, value_type, frozen))
            for key, item in value.items()
        )

        if frozen:
            return ir.call(ir.Name("frozenset"), _pairs_expr(pairs))
        if hashable_keys:
            return ir.DictExpr(pairs)
        return _pairs_expr(pairs)

    if not isinstance(value, (set, frozenset, list, tuple)):
        if isinstance(resolved, PrimitiveType) and resolved.name == "double" and isinstance(value, int):
            return ir.Literal(float(value))
        return ir.Literal(value)

    element_type = resolved.element if isinstance(resolved, (ListType, SetType)) else None
    is_set = isinstance(resolved, SetType) or (resolved is None and isinstance(value, (set, frozenset)))
    hashable_elements = is_set and (element_type is None or file_group.is_hashable(element_type))

    items = tuple(value_expr(file_group, item, element_type, frozen or hashable_elements) for item in value)
    if isinstance(value, (set, frozenset)):
        items = tuple(sorted(items, key=lambda item: item.lower()))

    if not is_set:
        return ir.TupleExpr(items) if frozen else ir.ListExpr(items)
    if not hashable_elements:
        return ir.ListExpr(items)
    if frozen:
        return ir.call(ir.Name("frozenset"), ir.ListExpr(items))
    return ir.SetExpr(items)


class Writer:
    """A class that builds one generated unit.

    Expressions and annotations are rendered through the writer, which records the
    imports they need relative to the module the unit is written to.
    """

    def __init__(
        self,
        file_group: FileGroup,
        name: str,
        generator: str,
        kind: UnitKind = UnitKind.TYPE_DEFINITION,
        source: str = "",
    ):
        """Initialize the writer for one output module.

        Args:
            file_group (FileGroup): The file group, for resolving references.
            name (str): The output name of the unit.
            generator (str): The name of the leaf generator, stored on the unit.
            kind (UnitKind): Whether the unit declares types or constants.
            source (str): The IDL file the unit is generated from.
        """
        self.file_group = file_group
        self.name = name
        self.module_path = helper.module_path(name)
        self.generator = generator
        self.kind = kind

        if source:
            self.docstring = f"Autogenerated by thrift-generator from `{source}`. Do not edit."
        else:
            self.docstring = "Autogenerated by thrift-generator. Do not edit."

        self._imports: list[str] = []
        self._type_checking_imports: list[str] = []
        self._body: list[str] = []

    def add_import(self, import_line: str):
        if import_line not in self._imports:
            self._imports.append(import_line)

    def add_type_checking_import(self, import_line: str):
        if import_line not in self._type_checking_imports:
            self._type_checking_imports.append(import_line)

    def add(self, declaration: str | list[str]):
        """Add a top-level declaration, either as text or as a list of lines."""
        if isinstance(declaration, list):
            declaration = "\n".join(declaration)
        self._body.append(declaration)

    def expr(self, expr: ir.Expr, indent: int = 0) -> str:
        """Lowers an expression, recording its imports."""
        for import_line in ir.collect_imports([expr], self.module_path):
            self.add_import(import_line)

        return expr.lower(self.module_path, indent)

    def annotation(self, field_type: FieldType, frozen: bool = False) -> str:
        """The Python annotation of a field type.

        References to other modules are imported for type checking only, so that
        generated modules that reference each other never import each other at runtime.
        Set elements and map keys are annotated with the frozen containers they hold.
        """
        file_group = self.file_group
        resolved = file_group.resolve_type(field_type)

        if isinstance(resolved, PrimitiveType):
            return THRIFT_TYPE_TO_PYTHON[resolved.name]

        if isinstance(resolved, ListType):
            element = self.annotation(resolved.element, frozen)
            return f"tuple[{element}, ...]" if frozen else f"list[{element}]"

        if isinstance(resolved, SetType):
            if not file_group.is_hashable(resolved.element):
                return f"list[{self.annotation(resolved.element)}]"
            element = self.annotation(resolved.element, frozen=True)
            return f"frozenset[{element}]" if frozen else f"set[{element}]"

        if isinstance(resolved, MapType):
            value = self.annotation(resolved.value, frozen)
            if frozen:
                return f"frozenset[tuple[{self.annotation(resolved.key, frozen=True)}, {value}]]"
            if file_group.is_hashable(resolved.key):
                return f"dict[{self.annotation(resolved.key, frozen=True)}, {value}]"
            return f"list[tuple[{self.annotation(resolved.key)}, {value}]]"

        ref = class_ref(self.file_group, resolved)
        import_line = ref.import_line(self.module_path)
        if import_line is not None:
            self.add_type_checking_import(import_line)

        return ref.lower(self.module_path)

    def field_lines(self, fields: list[Field]) -> list[str]:
        """Dataclass field declarations. Every field defaults to the absent value."""
        return [f"    {helper.sanitize_name(field.name)}: {self.annotation(field.type)} | None = None" for field in fields]

    def unit(self) -> GeneratedUnit:
        return GeneratedUnit(
            name=self.name,
            kind=self.kind,
            generator=self.generator,
            docstring=self.docstring,
            imports=tuple(self._imports),
            type_checking_imports=tuple(self._type_checking_imports),
            body=tuple(self._body),
        )


def gen_struct(kind: str, schema: Schema, name: str, struct: Struct) -> GeneratedUnit:
    """Generates the dataclass of a struct, union or exception.

    Args:
        kind (str): One of "struct", "union" or "exception".
        schema (Schema): The schema that declares the struct.
        name (str): The output name of the struct.
        struct (Struct): The struct declaration.

    Returns:
        GeneratedUnit: The generated unit.
    """
    writer = Writer(schema.file_group, name, kind, source=schema.path)
    writer.add_import("from dataclasses import dataclass")
    writer.add_import("from typing import ClassVar")

    if kind == ThriftElementType.EXCEPTION:
        header = ["@dataclass", f"class {helper.class_name(name)}(Exception):"]
    else:
        header = ["@dataclass(frozen=True)", f"class {helper.class_name(name)}:"]

    docstring = f'    """Thrift {kind} `{helper.local_name(struct.name)}`.'
    if kind == ThriftElementType.UNION:
        docstring += " At most one field is set."
    docstring += '"""'

    lines = [*header, docstring, "", f'    THRIFT_NAME: ClassVar[str] = "{name}"']
    fields = writer.field_lines(struct.fields)
    if fields:
        lines += ["", *fields]

    writer.add(lines)
    logger.debug("Generated %s '%s' with %d field(s).", kind, name, len(struct.fields))

    return writer.unit()


def gen_enum(name: str, enum: Enum, schema: Schema) -> GeneratedUnit:
    writer = Writer(schema.file_group, name, enum.KIND, source=schema.path)
    writer.add_import("import enum")

    lines = [
        f"class {helper.class_name(name)}(enum.IntEnum):",
        f'    """Thrift enum `{helper.local_name(enum.name)}`."""',
    ]
    if enum.values:
        lines.append("")
        lines += [f"    {helper.sanitize_name(member)} = {value}" for member, value in enum.values]

    writer.add(lines)
    return writer.unit()


def gen_constants(name: str, constants: list[Constant], schema: Schema) -> GeneratedUnit:
    """Generates the module-level constants of a schema, as one declaration block.

    Args:
        name (str): The output name of the constants module.
        constants (list[Constant]): The constants declared by the schema.
        schema (Schema): The schema.

    Returns:
        GeneratedUnit: The generated unit, of kind `UnitKind.CONSTANT_DEFINITION`.
    """
    writer = Writer(
        schema.file_group, name, Constant.KIND, kind=UnitKind.CONSTANT_DEFINITION, source=schema.path
    )

    lines = []
    for constant in constants:
        annotation = writer.annotation(constant.type)
        value = writer.expr(value_expr(schema.file_group, constant.value, constant.type))
        lines.append(f"{helper.sanitize_name(helper.local_name(constant.name))}: {annotation} = {value}")

    writer.add(lines)
    return writer.unit()


def _service_function_classes(writer: Writer, function_prefix: str, params: list[Field], response: list[Field] | None):
    writer.add(
        [
            "@dataclass(frozen=True)",
            f"class {function_prefix}Args:",
            f'    """Arguments of `{function_prefix}`."""',
            *([""] + writer.field_lines(params) if params else []),
        ]
    )

    if response is not None:
        writer.add(
            [
                "@dataclass(frozen=True)",
                f"class {function_prefix}Response:",
                f'    """Result of `{function_prefix}`: the return value or one of the declared exceptions."""',
                "",
                *writer.field_lines(response),
            ]
        )


def gen_service(schema: Schema, service: Service) -> NamedUnit:
    """Generates the argument and response classes of every function of a service.

    Returns:
        NamedUnit: The output name and the generated unit.
    """
    file_group = schema.file_group
    name = file_group.dest_module(service)
    writer = Writer(file_group, name, service.KIND, source=schema.path)
    writer.add_import("from dataclasses import dataclass")

    table = []
    for function in service.functions:
        prefix = helper.camelize(function.name)

        if function.oneway:
            response = None
        else:
            success = [Field(0, "success", function.return_type)] if function.return_type is not None else []
            response = success + function.exceptions

        _service_function_classes(writer, prefix, function.params, response)
        table.append(f'    "{function.name}": ({prefix}Args, {f"{prefix}Response" if response is not None else "None"}),')

    lines = ["FUNCTIONS: dict[str, tuple[type, type | None]] = {", *table, "}"]
    if service.extends:
        lines.append(f'EXTENDS = "{file_group.dest_module(service.extends)}"')
    writer.add(lines)

    return name, writer.unit()


def gen_behaviour(schema: Schema, service: Service) -> NamedUnit:
    """Generates the handler protocol a server implementation of a service satisfies.

    Returns:
        NamedUnit: The output name and the generated unit.
    """
    file_group = schema.file_group
    name = f"{file_group.dest_module(service)}{HANDLER_SUFFIX}"
    writer = Writer(file_group, name, ThriftElementType.BEHAVIOUR, source=schema.path)
    writer.add_import("from typing import Protocol")

    bases = ["Protocol"]
    if service.extends:
        parent = file_group.dest_module(service.extends) + HANDLER_SUFFIX
        bases.insert(0, writer.expr(ir.Ref(helper.module_path(parent), helper.class_name(parent))))

    lines = [
        f"class {helper.class_name(name)}({', '.join(bases)}):",
        f'    """Handler of service `{helper.local_name(service.name)}`."""',
    ]

    for function in service.functions:
        params = ["self"] + [
            f"{helper.sanitize_name(param.name)}: {writer.annotation(param.type)} | None" for param in function.params
        ]
        returns = "None" if function.oneway or function.return_type is None else writer.annotation(function.return_type)
        lines += ["", f"    def {helper.sanitize_name(function.name)}({', '.join(params)}) -> {returns}: ..."]

    writer.add(lines)
    return name, writer.unit()
