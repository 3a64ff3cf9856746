"""Runtime support for generated test-data modules.

Generated companion modules import this module as `runtime`. Every helper takes
the `GenerationContext` explicitly, so that nested generators and default
application see the same configuration.
"""

from __future__ import annotations

import enum
import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, fields, replace
from types import ModuleType
from typing import Any, TypeVar

from hypothesis import strategies as st

from thrift_generator import helper

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")
V = TypeVar("V")

THRIFT_NAME_ATTRIBUTE = "THRIFT_NAME"


@dataclass(frozen=True)
class GenerationContext:
    """Configuration that is threaded through every generated call.

    Attributes:
        max_depth: How many nested struct levels may be drawn. Once reached, nullable
            values are always drawn as None and containers are drawn empty, which bounds
            the recursion of self-referential types.
        max_size: The maximal number of elements of drawn containers, strings and binaries.
        depth: The current nesting level.
    """

    max_depth: int = 5
    max_size: int = 4
    depth: int = 0

    @property
    def exhausted(self) -> bool:
        return self.depth >= self.max_depth

    @property
    def size(self) -> int:
        """The maximal container size at the current depth."""
        return 0 if self.exhausted else self.max_size

    def descend(self) -> GenerationContext:
        return replace(self, depth=self.depth + 1)


def optional(strategy: st.SearchStrategy[T], context: GenerationContext) -> st.SearchStrategy[T | None]:
    """Draws either from `strategy` or the absent value, with equal weight."""
    if context.exhausted:
        return st.none()
    return st.one_of(strategy, st.none())


def list_of(elements: st.SearchStrategy[T], context: GenerationContext) -> st.SearchStrategy[list[T]]:
    return st.lists(elements, max_size=context.size)


def set_of(elements: st.SearchStrategy[T], context: GenerationContext) -> st.SearchStrategy[set[T]]:
    return st.sets(elements, max_size=context.size)


def dict_of(
    keys: st.SearchStrategy[K], values: st.SearchStrategy[V], context: GenerationContext
) -> st.SearchStrategy[dict[K, V]]:
    return st.dictionaries(keys, values, max_size=context.size)


def tuple_of(elements: st.SearchStrategy[T], context: GenerationContext) -> st.SearchStrategy[tuple[T, ...]]:
    """Draws a list as a tuple, for lists that are set elements or map keys."""
    return st.lists(elements, max_size=context.size).map(tuple)


def frozenset_of(elements: st.SearchStrategy[T], context: GenerationContext) -> st.SearchStrategy[frozenset[T]]:
    """Draws a set as a frozenset, for sets that are set elements or map keys."""
    return st.frozensets(elements, max_size=context.size)


def frozen_items_of(
    keys: st.SearchStrategy[K], values: st.SearchStrategy[V], context: GenerationContext
) -> st.SearchStrategy[frozenset[tuple[K, V]]]:
    """Draws a map as the frozenset of its items, for maps that are set elements or map keys."""
    return st.dictionaries(keys, values, max_size=context.size).map(lambda drawn: frozenset(drawn.items()))


def unique_list_of(elements: st.SearchStrategy[T], context: GenerationContext) -> st.SearchStrategy[list[T]]:
    """Draws a set of unhashable elements as a list without repeated elements."""
    return st.lists(elements, max_size=context.size, unique_by=repr)


def pairs_of(
    keys: st.SearchStrategy[K], values: st.SearchStrategy[V], context: GenerationContext
) -> st.SearchStrategy[list[tuple[K, V]]]:
    """Draws a map with unhashable keys as a list of items with distinct keys."""
    return st.lists(st.tuples(keys, values), max_size=context.size, unique_by=lambda pair: repr(pair[0]))


def nested(
    get_generator: Callable[[GenerationContext], st.SearchStrategy[T]], context: GenerationContext
) -> st.SearchStrategy[T]:
    """Lazily draws from the generator of another entity, one level deeper."""
    return st.deferred(lambda: get_generator(context.descend()))


def default_if_absent(value: T | None, default: T) -> T:
    """Falls back to a declared default if a value is absent. Both None and False count as absent."""
    if value is None or value is False:
        return default
    return value


def union_default(union: T, /, **defaults: Any) -> T:
    """Sets the first member with a declared default, if no member of a union is set.

    Args:
        union: A generated union instance.
        **defaults: The declared member defaults, in declaration order.

    Returns:
        The union itself if any member is set or there is no default, otherwise a copy
        with exactly the first defaulted member set.
    """
    if not defaults or any(getattr(union, field.name) is not None for field in fields(union)):
        return union

    name, default = next(iter(defaults.items()))
    return replace(union, **{name: default})


def companion_module(thrift_name: str) -> ModuleType:
    """Imports the test-data module of a generated class.

    Args:
        thrift_name (str): The output name of the data module, as stored in `THRIFT_NAME`.

    Returns:
        ModuleType: The imported companion module.
    """
    module_name = helper.module_path(helper.test_data_module_from_data_module(thrift_name))
    logger.debug("Using test-data module '%s' for '%s'.", module_name, thrift_name)
    return importlib.import_module(module_name)


def apply_defaults(value: Any, context: GenerationContext) -> Any:
    """Applies declared defaults to a value, recursing into generated structs and containers.

    Args:
        value: Any value of a generated field.
        context (GenerationContext): The generation context.

    Returns:
        An equivalent value, with defaults applied to every nested struct.
    """
    if value is None or isinstance(value, enum.Enum):
        return value

    thrift_name = getattr(type(value), THRIFT_NAME_ATTRIBUTE, None)
    if thrift_name is not None:
        return companion_module(thrift_name).apply_defaults(value, context)

    if isinstance(value, list):
        return [apply_defaults(element, context) for element in value]

    if isinstance(value, tuple):
        return tuple(apply_defaults(element, context) for element in value)

    if isinstance(value, (set, frozenset)):
        return type(value)(apply_defaults(element, context) for element in value)

    if isinstance(value, dict):
        return {apply_defaults(key, context): apply_defaults(element, context) for key, element in value.items()}

    return value
