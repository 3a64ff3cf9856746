"""Data transfer objects that are passed between the generators, the collision resolver and the writer."""

from __future__ import annotations

import enum
from dataclasses import dataclass

FUTURE_IMPORT = "from __future__ import annotations"
TYPE_CHECKING_IMPORT = "from typing import TYPE_CHECKING"


class UnitKind(enum.Enum):
    """What a generated unit declares. Only constant definitions can be merged into other units."""

    TYPE_DEFINITION = "type_definition"
    CONSTANT_DEFINITION = "constant_definition"


@dataclass(frozen=True)
class GeneratedUnit:
    """One self-contained block of generated code.

    Attributes:
        name: The output name the unit is written under, e.g. `MyApp.Point`.
        kind: Whether the unit declares types or constants.
        generator: The leaf generator that produced the unit (e.g. "struct", "constant").
        docstring: The module docstring, without quotes.
        imports: Import statements, in order.
        type_checking_imports: Import statements only needed for annotations.
        body: Top-level declarations (classes, functions, assignments), in order.
    """

    name: str
    kind: UnitKind
    generator: str
    docstring: str
    imports: tuple[str, ...] = ()
    type_checking_imports: tuple[str, ...] = ()
    body: tuple[str, ...] = ()

    @property
    def is_constant(self) -> bool:
        return self.kind is UnitKind.CONSTANT_DEFINITION

    def dumps_py(self) -> str:
        """Renders the unit as the source of a Python module.

        Returns:
            str: The module source.
        """
        lines = [f'"""{self.docstring}"""', "", FUTURE_IMPORT, ""]

        imports = [line for line in dict.fromkeys(self.imports) if line != FUTURE_IMPORT]
        type_checking_imports = [line for line in dict.fromkeys(self.type_checking_imports) if line not in imports]

        if type_checking_imports and TYPE_CHECKING_IMPORT not in imports:
            imports.append(TYPE_CHECKING_IMPORT)

        lines += imports

        if type_checking_imports:
            lines += ["", "if TYPE_CHECKING:"]
            lines += [f"    {line}" for line in type_checking_imports]

        for declaration in self.body:
            lines += ["", "", declaration.rstrip("\n")]

        return "\n".join(lines) + "\n"


NamedUnit = tuple[str, GeneratedUnit]
