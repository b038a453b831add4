"""Render IR declarations back into C source.

The output is the header text handed to ``ffi.cdef()`` by generated
modules, so it sticks to the subset of C that cffi's cdef parser accepts.
"""

from __future__ import annotations

from collections.abc import Iterable

from ffiwrap.errors import UnsupportedExpressionError
from ffiwrap.exprs import evaluate_constant
from ffiwrap.ir import (
    AttributedType,
    BuiltinType,
    ConstantArrayType,
    Declaration,
    EnumDecl,
    EnumField,
    EnumType,
    FunctionDecl,
    FunctionProtoType,
    IncompleteArrayType,
    PointerType,
    RecordDecl,
    RecordType,
    Type,
    TypedefDecl,
    TypedefType,
    VarDecl,
)

INDENT = "    "

# Tag keys ("struct foo", "enum bar") whose bodies have already been
# printed. Bodies are printed once; later references use the bare tag.
SeenTags = set[str]


def _join(base: str, declarator: str) -> str:
    if not declarator:
        return base
    return f"{base} {declarator}"


def _format_params(params: list[Type], is_variadic: bool, seen: SeenTags) -> str:
    """Format a parameter type list, ``void`` when empty."""
    if not params and not is_variadic:
        return "void"
    parts = [type_to_c(p, seen=seen) for p in params]
    if is_variadic:
        parts.append("...")
    return ", ".join(parts)


def _braced(lines: list[str], indent: str) -> str:
    if not lines:
        return "{ }"
    return "{\n" + "\n".join(lines) + f"\n{indent}}}"


def _enumerator(field: EnumField) -> str:
    """Enumerator with its value folded to a decimal literal.

    cffi's cdef only takes literal values, so ``!0`` prints as ``1``.
    """
    if field.value is None:
        return field.name
    try:
        return f"{field.name} = {evaluate_constant(field.value)}"
    except UnsupportedExpressionError:
        # kept as written; compiling the enum reports it against the field
        return str(field)


def _enum_body(decl: EnumDecl, indent: str) -> str:
    return _braced([f"{indent}{INDENT}{_enumerator(field)}," for field in decl.fields or []], indent)


def _record_body(decl: RecordDecl, indent: str, seen: SeenTags) -> str:
    lines = [
        f"{indent}{INDENT}{type_to_c(f.type, f.name, seen, indent + INDENT)};"
        for f in decl.fields or []
    ]
    return _braced(lines, indent)


def _tag_to_c(decl: RecordDecl | EnumDecl, seen: SeenTags, indent: str) -> str:
    """Spell a struct/union/enum reference, printing its body the first time."""
    kind = "enum" if isinstance(decl, EnumDecl) else decl.kind
    head = f"{kind} {decl.name}" if decl.name else kind
    if decl.fields is None:
        return head
    key = head
    if decl.name is not None and key in seen:
        return head
    if decl.name is not None:
        seen.add(key)
    if isinstance(decl, EnumDecl):
        return f"{head} {_enum_body(decl, indent)}"
    return f"{head} {_record_body(decl, indent, seen)}"


def type_to_c(t: Type, name: str = "", seen: SeenTags | None = None, indent: str = "") -> str:
    """Render a type, optionally declaring ``name``, as C text.

    Declarators nest the way C spells them: ``int *p``, ``char buf[16]``,
    ``int (*fn)(int)``, ``int *const p``.
    """
    seen = seen if seen is not None else set()
    declarator = name
    while True:
        if isinstance(t, BuiltinType) or isinstance(t, TypedefType):
            return _join(t.name, declarator)
        elif isinstance(t, RecordType) or isinstance(t, EnumType):
            return _join(_tag_to_c(t.decl, seen, indent), declarator)
        elif isinstance(t, AttributedType):
            if isinstance(t.parent, PointerType):
                # qualifier applies to the pointer itself: int *const p
                declarator = _join(t.kind, declarator)
                t = t.parent
                continue
            return f"{t.kind} {type_to_c(t.parent, declarator, seen, indent)}"
        elif isinstance(t, PointerType):
            if isinstance(t.parent, (ConstantArrayType, IncompleteArrayType, FunctionProtoType)):
                declarator = f"(*{declarator})"
            else:
                declarator = f"*{declarator}"
            t = t.parent
        elif isinstance(t, ConstantArrayType):
            declarator = f"{declarator}[{t.size}]"
            t = t.parent
        elif isinstance(t, IncompleteArrayType):
            declarator = f"{declarator}[]"
            t = t.parent
        elif isinstance(t, FunctionProtoType):
            declarator = f"{declarator}({_format_params(t.params, t.is_variadic, seen)})"
            t = t.return_type
        else:
            raise TypeError(f"cannot print type node {t!r}")


def decl_to_c(decl: Declaration, seen: SeenTags | None = None) -> str | None:
    """Render one declaration as a C statement.

    Returns None for declarations with nothing to print (anonymous records
    and enums without a body, repeated tag bodies).
    """
    seen = seen if seen is not None else set()
    if isinstance(decl, FunctionDecl):
        params = _format_params(decl.params, decl.is_variadic, seen)
        return f"{type_to_c(decl.return_type, f'{decl.name}({params})', seen)};"
    elif isinstance(decl, TypedefDecl):
        return f"typedef {type_to_c(decl.type, decl.name, seen)};"
    elif isinstance(decl, VarDecl):
        return f"{type_to_c(decl.type, decl.name, seen)};"
    elif isinstance(decl, (RecordDecl, EnumDecl)):
        kind = "enum" if isinstance(decl, EnumDecl) else decl.kind
        if decl.name is None:
            if isinstance(decl, EnumDecl) and decl.fields:
                return f"enum {_enum_body(decl, '')};"
            return None
        if decl.fields is not None and f"{kind} {decl.name}" in seen:
            return None
        return f"{_tag_to_c(decl, seen, '')};"
    raise TypeError(f"cannot print declaration {decl!r}")


def _typedefed_anonymous_enums(decls: list[Declaration]) -> set[tuple[str, ...]]:
    """Field names of anonymous enums whose body a typedef prints."""
    keys = set()
    for decl in decls:
        if isinstance(decl, TypedefDecl):
            underlying = decl.type
            while isinstance(underlying, AttributedType):
                underlying = underlying.parent
            if isinstance(underlying, EnumType) and underlying.decl.name is None and underlying.decl.fields:
                keys.add(tuple(f.name for f in underlying.decl.fields))
    return keys


def decls_to_c(decls: Iterable[Declaration]) -> str:
    """Render a declaration list as header text, one statement per line.

    An anonymous enum that a typedef also spells out is printed only
    through the typedef; cffi rejects enumerators declared twice.
    """
    decls = list(decls)
    typedefed = _typedefed_anonymous_enums(decls)
    seen: SeenTags = set()
    lines = []
    for decl in decls:
        if isinstance(decl, EnumDecl) and decl.name is None and decl.fields:
            if tuple(f.name for f in decl.fields) in typedefed:
                continue
        text = decl_to_c(decl, seen)
        if text is not None:
            lines.append(text)
    return "\n".join(lines) + "\n" if lines else ""
