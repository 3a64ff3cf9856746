"""Expression trees for generated code.

Draw and default expressions are composed as small trees first and lowered to
Python source text in one pass. Lowering also yields the import statements the
expression needs, so that generators never have to track imports by hand.
"""

from __future__ import annotations

import math
import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

INDENT = "    "

STRATEGIES_MODULE = "hypothesis.strategies"
RUNTIME_MODULE = "thrift_generator.runtime"


@dataclass(frozen=True)
class Expr:
    """Base class of all expression nodes."""

    def children(self) -> tuple[Expr, ...]:
        return ()

    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        """Lowers the expression to Python source.

        Args:
            local_module (str | None): The module the source is written to. References into
                this module are emitted without a module prefix.
            indent (int): The indentation level of the line the expression starts on.

        Returns:
            str: The source text.
        """
        raise NotImplementedError

    def import_line(self, local_module: str | None = None) -> str | None:
        return None

    def walk(self) -> Iterator[Expr]:
        yield self
        for child in self.children():
            yield from child.walk()


@dataclass(frozen=True)
class Name(Expr):
    """A local variable or parameter."""

    id: str

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        return self.id


@dataclass(frozen=True)
class Ref(Expr):
    """An attribute of another module, e.g. `st.integers` or `my_app.point.Point`.

    Attributes:
        module: The dotted path of the module that defines the attribute.
        attr: The (possibly dotted) attribute path inside the module.
        alias: If set, the module is imported as `from parent import last as alias`.
    """

    module: str
    attr: str
    alias: str | None = None

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        if self.module == local_module:
            return self.attr
        return f"{self.alias or self.module}.{self.attr}"

    @override
    def import_line(self, local_module: str | None = None) -> str | None:
        if self.module == local_module:
            return None

        if self.alias:
            parent, _, last = self.module.rpartition(".")
            if parent and last == self.alias:
                return f"from {parent} import {last}"
            if parent:
                return f"from {parent} import {last} as {self.alias}"
            return f"import {self.module} as {self.alias}"

        return f"import {self.module}"


@dataclass(frozen=True)
class Attribute(Expr):
    value: Expr
    attr: str

    @override
    def children(self) -> tuple[Expr, ...]:
        return (self.value,)

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        return f"{self.value.lower(local_module, indent)}.{self.attr}"


@dataclass(frozen=True)
class Literal(Expr):
    """A scalar literal: int, float, str, bytes, bool or None."""

    value: int | float | str | bytes | bool | None

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        if isinstance(self.value, float) and not math.isfinite(self.value):
            return f'float("{self.value}")'
        return repr(self.value)


@dataclass(frozen=True)
class ListExpr(Expr):
    items: tuple[Expr, ...] = ()

    @override
    def children(self) -> tuple[Expr, ...]:
        return self.items

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        return f"[{_join(self.items, local_module, indent)}]"


@dataclass(frozen=True)
class TupleExpr(Expr):
    items: tuple[Expr, ...] = ()

    @override
    def children(self) -> tuple[Expr, ...]:
        return self.items

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        if len(self.items) == 1:
            return f"({self.items[0].lower(local_module, indent)},)"
        return f"({_join(self.items, local_module, indent)})"


@dataclass(frozen=True)
class SetExpr(Expr):
    items: tuple[Expr, ...] = ()

    @override
    def children(self) -> tuple[Expr, ...]:
        return self.items

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        if not self.items:
            return "set()"
        return f"{{{_join(self.items, local_module, indent)}}}"


@dataclass(frozen=True)
class DictExpr(Expr):
    items: tuple[tuple[Expr, Expr], ...] = ()

    @override
    def children(self) -> tuple[Expr, ...]:
        return tuple(node for pair in self.items for node in pair)

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        pairs = ", ".join(
            f"{key.lower(local_module, indent)}: {value.lower(local_module, indent)}" for key, value in self.items
        )
        return f"{{{pairs}}}"


@dataclass(frozen=True)
class Call(Expr):
    """A call `func(*args, **kwargs)`; calls with several keywords are spread over lines."""

    func: Expr
    args: tuple[Expr, ...] = ()
    kwargs: tuple[tuple[str, Expr], ...] = ()

    @override
    def children(self) -> tuple[Expr, ...]:
        return (self.func, *self.args, *(value for _, value in self.kwargs))

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        func = self.func.lower(local_module, indent)

        if len(self.kwargs) <= 1:
            parts = [arg.lower(local_module, indent) for arg in self.args]
            parts += [f"{key}={value.lower(local_module, indent)}" for key, value in self.kwargs]
            return f"{func}({', '.join(parts)})"

        inner = indent + 1
        prefix = INDENT * inner
        lines = [f"{prefix}{arg.lower(local_module, inner)}," for arg in self.args]
        lines += [f"{prefix}{key}={value.lower(local_module, inner)}," for key, value in self.kwargs]
        return f"{func}(\n" + "\n".join(lines) + f"\n{INDENT * indent})"


@dataclass(frozen=True)
class LetAll(Expr):
    """Draws every binding independently, then constructs one value from all of them.

    No binding can observe another binding's drawn value; construction happens only
    after each binding has been drawn.
    """

    constructor: Expr
    bindings: tuple[tuple[str, Expr], ...] = ()

    def desugar(self) -> Call:
        return Call(st("builds"), (self.constructor,), self.bindings)

    @override
    def children(self) -> tuple[Expr, ...]:
        return self.desugar().children()

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        return self.desugar().lower(local_module, indent)


@dataclass(frozen=True)
class Rebuild(Expr):
    """Rebuilds `target` with all given fields replaced in one step."""

    target: Expr
    fields: tuple[tuple[str, Expr], ...] = ()

    def desugar(self) -> Call:
        return Call(Ref("dataclasses", "replace"), (self.target,), self.fields)

    @override
    def children(self) -> tuple[Expr, ...]:
        return self.desugar().children()

    @override
    def lower(self, local_module: str | None = None, indent: int = 0) -> str:
        return self.desugar().lower(local_module, indent)


def _join(items: Iterable[Expr], local_module: str | None, indent: int) -> str:
    return ", ".join(item.lower(local_module, indent) for item in items)


def st(attr: str) -> Ref:
    """A reference to a hypothesis strategy, e.g. `st.integers`."""
    return Ref(STRATEGIES_MODULE, attr, alias="st")


def runtime(attr: str) -> Ref:
    """A reference to a helper of the generated code runtime, e.g. `runtime.optional`."""
    return Ref(RUNTIME_MODULE, attr, alias="runtime")


def call(func: Expr, *args: Expr) -> Call:
    return Call(func, tuple(args))


def collect_imports(exprs: Iterable[Expr], local_module: str | None = None) -> list[str]:
    """Collects the import statements needed by a set of expressions, in encounter order.

    Args:
        exprs (Iterable[Expr]): The expressions that will be lowered.
        local_module (str | None): The module the expressions are written to.

    Returns:
        list[str]: The unique import statements.
    """
    imports: dict[str, None] = {}

    for expr in exprs:
        for node in expr.walk():
            line = node.import_line(local_module)
            if line is not None:
                imports[line] = None

    return list(imports)
