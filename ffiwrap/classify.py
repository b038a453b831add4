"""Map IR type nodes to canonical wrapper-type names.

The canonical name is what the generated code is written in terms of:
either one of the native names in :data:`NATIVE_TYPES`, which are passed
through to Python as plain values, or the name of a generated wrapper
class (``"node_t"``, ``"node_t_ptr"``, ``"void_ptr_ptr"``, ...).
"""

from __future__ import annotations

from ffiwrap.errors import UnsupportedTypeError
from ffiwrap.ir import (
    AttributedType,
    BuiltinType,
    ConstantArrayType,
    EnumType,
    FunctionProtoType,
    IncompleteArrayType,
    PointerType,
    RecordType,
    Type,
    TypedefType,
)

INT_TYPES: frozenset[str] = frozenset(
    {
        "char",
        "int",
        "unsigned",
        "unsigned int",
        "long",
        "long long",
        "long int",
        "long long int",
        "int64_t",
        "unsigned long long",
        "unsigned long long int",
        "signed",
        "signed int",
        "signed char",
        "unsigned char",
        "short",
        "short int",
        "unsigned short",
        "unsigned short int",
        "unsigned long",
        "unsigned long int",
        "size_t",
        "ssize_t",
        "intptr_t",
        "uintptr_t",
        "int8_t",
        "int16_t",
        "int32_t",
        "uint8_t",
        "uint16_t",
        "uint32_t",
        "uint64_t",
    }
)

FLOAT_TYPES: frozenset[str] = frozenset({"float", "double", "long double"})

BOOL_TYPES: frozenset[str] = frozenset({"_Bool", "bool"})

# Canonical names that never get a wrapper class.
NATIVE_TYPES: tuple[str, ...] = ("int", "float", "bool", "string", "array")

# Python annotations used in generated signatures for native names.
PYTHON_ANNOTATIONS: dict[str, str] = {
    "int": "int",
    "float": "float",
    "bool": "bool",
    "string": "bytes",
    "array": "list",
}

PTR_SUFFIX = "_ptr"

# Pointer chains over named enums: ``enum color *`` is ``enum_color_ptr``.
ENUM_PREFIX = "enum_"

# Base name of a scalar pointer chain to the cffi spelling of its pointee:
# ``unsigned long *`` classifies as ``unsigned_long_ptr`` typed ``unsigned long*``.
SCALAR_CTYPES: dict[str, str] = {
    name.replace(" ", "_"): name for name in sorted(INT_TYPES | FLOAT_TYPES | BOOL_TYPES) if name != "char"
}

_ATTRIBUTE_KINDS = ("const", "volatile", "extern")


def is_native(canonical: str) -> bool:
    """Whether a canonical name is passed through as a plain Python value."""
    return canonical in NATIVE_TYPES


def primitive_kind(name: str) -> str | None:
    """Return the native canonical name for a primitive spelling, if any."""
    if name in INT_TYPES:
        return "int"
    if name in FLOAT_TYPES:
        return "float"
    if name in BOOL_TYPES:
        return "bool"
    return None


def scalar_base(t: Type) -> str | None:
    """Chain base name for a pointee that is a scalar, or None.

    Pointers to scalars keep the pointee's exact spelling so that memory
    allocated through the wrapper has the C type the library expects.
    """
    if isinstance(t, (BuiltinType, TypedefType)) and t.name != "char" and primitive_kind(t.name) is not None:
        return t.name.replace(" ", "_")
    if isinstance(t, EnumType) and t.decl.name is not None:
        return ENUM_PREFIX + t.decl.name
    return None


def scalar_ctype(base: str) -> str | None:
    """The cffi spelling behind a chain base from :func:`scalar_base`."""
    if base in SCALAR_CTYPES:
        return SCALAR_CTYPES[base]
    if base.startswith(ENUM_PREFIX):
        return "enum " + base[len(ENUM_PREFIX) :]
    return None


def strip_attributes(t: Type) -> Type:
    """Remove any ``const``/``volatile``/``extern`` wrappers around ``t``."""
    while isinstance(t, AttributedType):
        t = t.parent
    return t


def classify_type(t: Type) -> str:
    """Classify a type node into its canonical wrapper-type name.

    Rules, in priority order: typedef references to primitive spellings
    collapse to native names, other typedefs keep their name; ``void`` stays
    ``void``; builtins map to ``int``/``float``/``bool``; enums are ``int``;
    ``char*`` is ``string``; pointers to scalars are named after the
    pointee's spelling (``long*`` is ``long_ptr``); any other pointer appends
    ``_ptr`` to its pointee's name; qualifiers are transparent; named records keep their
    tag name; arrays are ``array``.

    :raises UnsupportedTypeError: For anonymous records, function types and
        unknown builtins.
    """
    if isinstance(t, TypedefType):
        return primitive_kind(t.name) or t.name
    elif isinstance(t, BuiltinType):
        if t.name == "void":
            return "void"
        kind = primitive_kind(t.name)
        if kind is None:
            raise UnsupportedTypeError(f"unsupported builtin type {t.name!r}")
        return kind
    elif isinstance(t, EnumType):
        return "int"
    elif isinstance(t, PointerType):
        pointee = strip_attributes(t.parent)
        if isinstance(pointee, BuiltinType) and pointee.name == "char":
            return "string"
        if isinstance(pointee, (ConstantArrayType, IncompleteArrayType)):
            raise UnsupportedTypeError(f"pointer to array {pointee} is not supported")
        base = scalar_base(pointee)
        if base is not None:
            return base + PTR_SUFFIX
        return classify_type(pointee) + PTR_SUFFIX
    elif isinstance(t, AttributedType):
        if t.kind not in _ATTRIBUTE_KINDS:
            raise UnsupportedTypeError(f"unsupported type attribute {t.kind!r}")
        return classify_type(t.parent)
    elif isinstance(t, RecordType):
        if t.decl.name is None:
            raise UnsupportedTypeError(f"anonymous {t.decl.kind} has no wrapper name")
        return t.decl.name
    elif isinstance(t, (ConstantArrayType, IncompleteArrayType)):
        return "array"
    elif isinstance(t, FunctionProtoType):
        raise UnsupportedTypeError(f"function type {t} is not supported")
    raise UnsupportedTypeError(f"unsupported type node {type(t).__name__}")


def python_annotation(canonical: str) -> str:
    """Annotation text for a canonical name in generated code."""
    if canonical == "void":
        return "None"
    return PYTHON_ANNOTATIONS.get(canonical, canonical)
