"""Types definitions that are common in thrift schemas."""

from __future__ import annotations

THRIFT_TYPE_TO_PYTHON = {
    "bool": "bool",
    "byte": "int",
    "i8": "int",
    "i16": "int",
    "i32": "int",
    "i64": "int",
    "double": "float",
    "string": "str",
    "binary": "bytes",
}

# Inclusive bounds of the integer primitives.
INTEGER_RANGES = {
    "byte": (-(2**7), 2**7 - 1),
    "i8": (-(2**7), 2**7 - 1),
    "i16": (-(2**15), 2**15 - 1),
    "i32": (-(2**31), 2**31 - 1),
    "i64": (-(2**63), 2**63 - 1),
}

PRIMITIVE_TYPES = frozenset(THRIFT_TYPE_TO_PYTHON)


class ThriftElementType:
    """Kinds of top-level thrift declarations, as named by the generators."""

    STRUCT = "struct"
    UNION = "union"
    EXCEPTION = "exception"
    ENUM = "enum"
    CONST = "constant"
    TYPEDEF = "typedef"
    SERVICE = "service"
    BEHAVIOUR = "behaviour"
    TEST_DATA = "test_data"
