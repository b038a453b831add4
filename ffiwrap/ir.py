"""Intermediate Representation (IR) for parsed C declarations.

This module defines the node model that an external C parser produces and
that :mod:`ffiwrap.compiler` consumes to generate cffi wrapper modules.

Design Principles
-----------------
* **Parser-agnostic**: any C front end can build these nodes; the JSON
  writer (:mod:`ffiwrap.writers.json`) gives a stable on-disk form.
* **Tagged unions**: :data:`Type`, :data:`Expr` and :data:`Declaration` are
  ``Union`` aliases over plain dataclasses. Consumers dispatch on the
  concrete class and treat anything else as unsupported.
* **Structural nesting**: pointers, qualifiers and arrays wrap exactly one
  ``parent``. Cycles can only arise through named :class:`TypedefType`
  references.

Type Hierarchy
--------------
* :class:`BuiltinType` - named primitive (``int``, ``unsigned long``, ``void``)
* :class:`TypedefType` - reference to a typedef by name
* :class:`PointerType` - pointer to ``parent``
* :class:`AttributedType` - ``const`` / ``volatile`` / ``extern`` wrapper
* :class:`RecordType` / :class:`EnumType` - tag references
* :class:`ConstantArrayType` / :class:`IncompleteArrayType` - arrays
* :class:`FunctionProtoType` - function type (pointee of function pointers)

Example
-------
::

    from ffiwrap.ir import BuiltinType, FunctionDecl, PointerType

    # int puts(char *s);
    decl = FunctionDecl(
        "puts",
        BuiltinType("int"),
        [PointerType(BuiltinType("char"))],
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

# =============================================================================
# Source Location
# =============================================================================


@dataclass
class SourceLocation:
    """Location in the parsed source, used in error messages.

    :param file: Path to the source file.
    :param line: Line number (1-indexed).
    :param column: Column number (1-indexed), or None if unknown.
    """

    file: str
    line: int
    column: Optional[int] = None

    def __str__(self) -> str:
        if self.column is not None:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


# =============================================================================
# Type Representations
# =============================================================================


@dataclass
class BuiltinType:
    """A named C primitive.

    Multi-word spellings are kept as one name (``"unsigned int"``,
    ``"long double"``).

    :param name: The primitive's spelling.
    """

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class TypedefType:
    """Reference to a typedef by name.

    :param name: The typedef name being referenced.
    """

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class PointerType:
    """Pointer to another type.

    Examples
    --------
    ::

        PointerType(BuiltinType("void"))                 # void*
        PointerType(PointerType(TypedefType("node_t")))  # node_t**
    """

    parent: Type

    def __str__(self) -> str:
        return f"{self.parent}*"


@dataclass
class AttributedType:
    """A qualifier applied to ``parent``.

    :param kind: ``"const"``, ``"volatile"`` or ``"extern"``.
    :param parent: The qualified type.
    """

    kind: str
    parent: Type

    def __str__(self) -> str:
        return f"{self.kind} {self.parent}"


@dataclass
class RecordType:
    """Reference to a struct or union declaration."""

    decl: RecordDecl

    def __str__(self) -> str:
        return str(self.decl)


@dataclass
class EnumType:
    """Reference to an enum declaration."""

    decl: EnumDecl

    def __str__(self) -> str:
        return str(self.decl)


@dataclass
class ConstantArrayType:
    """Fixed-size array ``parent[size]``."""

    parent: Type
    size: int

    def __str__(self) -> str:
        return f"{self.parent}[{self.size}]"


@dataclass
class IncompleteArrayType:
    """Array of unknown size ``parent[]``."""

    parent: Type

    def __str__(self) -> str:
        return f"{self.parent}[]"


@dataclass
class FunctionProtoType:
    """Function type, as found behind a function pointer.

    The classifier does not support function pointers; the node exists so
    that parsers can describe them and the compiler can reject them with a
    precise message.
    """

    return_type: Type
    params: list[Type] = field(default_factory=list)
    is_variadic: bool = False

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        if self.is_variadic:
            params = f"{params}, ..." if params else "..."
        return f"{self.return_type} (*)({params})"


# Type alias for any type node
Type = Union[
    BuiltinType,
    TypedefType,
    PointerType,
    AttributedType,
    RecordType,
    EnumType,
    ConstantArrayType,
    IncompleteArrayType,
    FunctionProtoType,
]


# =============================================================================
# Constant Expressions
# =============================================================================


@dataclass
class IntegerLiteral:
    """Integer literal with its raw source text (suffixes included).

    :param value: Literal text, e.g. ``"42"``, ``"0x10UL"``, ``"0755"``.
    """

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass
class UnaryOperator:
    """Unary operator applied to a sub-expression.

    :param op: One of ``"+"``, ``"-"``, ``"~"``, ``"!"`` (other operators may
        be represented but are not evaluated).
    :param operand: The sub-expression.
    """

    op: str
    operand: Expr

    def __str__(self) -> str:
        return f"{self.op}{self.operand}"


@dataclass
class BinaryOperator:
    """Binary operator. Representable, never evaluated."""

    op: str
    left: Expr
    right: Expr

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


Expr = Union[IntegerLiteral, UnaryOperator, BinaryOperator]


# =============================================================================
# Declarations
# =============================================================================


@dataclass
class EnumField:
    """Single enumeration constant.

    :param name: The constant name.
    :param value: Explicit value expression, or None to follow the previous
        constant.
    """

    name: str
    value: Optional[Expr] = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.name} = {self.value}"
        return self.name


@dataclass
class EnumDecl:
    """Enumeration declaration.

    :param name: Tag name, or None for anonymous enums.
    :param fields: Constants, or None for a forward declaration.
    """

    name: Optional[str]
    fields: Optional[list[EnumField]] = None
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        return f"enum {self.name or '(anonymous)'}"


@dataclass
class RecordField:
    """Struct or union member."""

    name: str
    type: Type

    def __str__(self) -> str:
        return f"{self.type} {self.name}"


@dataclass
class RecordDecl:
    """Struct or union declaration.

    Records are opaque to the compiler: only the tag name matters.
    ``fields`` is kept so the C printer can reproduce complete definitions.

    :param name: Tag name, or None for anonymous aggregates.
    :param fields: Members, or None for an incomplete (opaque) type.
    :param is_union: True for unions.
    """

    name: Optional[str]
    fields: Optional[list[RecordField]] = None
    is_union: bool = False
    location: Optional[SourceLocation] = None

    @property
    def kind(self) -> str:
        return "union" if self.is_union else "struct"

    def __str__(self) -> str:
        return f"{self.kind} {self.name or '(anonymous)'}"


@dataclass
class FunctionDecl:
    """Function prototype.

    ``params`` holds the parameter types in order. A prototype written
    ``f(void)`` is represented as ``[BuiltinType("void")]``.

    Example
    -------
    ::

        # size_t strlen(const char *s);
        FunctionDecl(
            "strlen",
            TypedefType("size_t"),
            [PointerType(AttributedType("const", BuiltinType("char")))],
        )
    """

    name: str
    return_type: Type
    params: list[Type] = field(default_factory=list)
    is_variadic: bool = False
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        if self.is_variadic:
            params = f"{params}, ..." if params else "..."
        return f"{self.return_type} {self.name}({params})"


@dataclass
class TypedefDecl:
    """Type alias declaration."""

    name: str
    type: Type
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        return f"typedef {self.type} {self.name}"


@dataclass
class VarDecl:
    """Global variable declaration."""

    name: str
    type: Type
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        return f"{self.type} {self.name}"


# Type alias for any declaration
Declaration = Union[FunctionDecl, EnumDecl, TypedefDecl, RecordDecl, VarDecl]


# =============================================================================
# Header Container
# =============================================================================


@dataclass
class Header:
    """One parsed C header.

    :param path: Path of the original header.
    :param declarations: Top-level declarations in source order.
    :param defines: Pre-expanded ``#define`` macros, name to literal text,
        in source order.
    """

    path: str
    declarations: list[Declaration] = field(default_factory=list)
    defines: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"Header({self.path}, {len(self.declarations)} declarations)"


def describe(node: object) -> str:
    """Short, human-readable description of an IR node for error messages."""
    location = getattr(node, "location", None)
    text = f"{type(node).__name__} {node}"
    if location is not None:
        text = f"{text} at {location}"
    return text
