"""Compile C declarations into a cffi wrapper module.

:class:`Compiler` turns a declaration list, a defines mapping and a target
class name into the source of one Python module. The module loads the
library through cffi and exposes:

* a main class with one forwarding method per C function, one class
  constant per ``#define`` and enum field, and ``cast`` / ``make_array`` /
  ``sizeof`` helpers;
* a family of wrapper classes per typedef (and per named record), one class
  per pointer level, so that opaque handles keep their C type.

Example
-------
::

    from ffiwrap.compiler import Compiler
    from ffiwrap.ir import BuiltinType, FunctionDecl

    source = Compiler().compile(
        "libm.so.6",
        [FunctionDecl("cos", BuiltinType("double"), [BuiltinType("double")])],
        {},
        "LibM",
    )
"""

from __future__ import annotations

import keyword
import logging
from collections.abc import Iterable, Mapping
from string import Template

from ffiwrap.classify import (
    PTR_SUFFIX,
    classify_type,
    is_native,
    primitive_kind,
    python_annotation,
    scalar_ctype,
    strip_attributes,
)
from ffiwrap.errors import CompileError, UnsupportedTypeError
from ffiwrap.exprs import evaluate_constant, normalize_define
from ffiwrap.ir import (
    BuiltinType,
    Declaration,
    EnumDecl,
    EnumType,
    FunctionDecl,
    RecordDecl,
    Type,
    TypedefDecl,
    VarDecl,
)
from ffiwrap.printer import decls_to_c
from ffiwrap.resolver import build_resolver

logger = logging.getLogger(__name__)

INDENT = "    "

# Typedef and record families cover T through T****.
MAX_POINTER_DEPTH = 4

# Fixed pointer chains: (canonical base, cffi type of the pointee, native kind
# returned by deref at depth 1). Chains start at depth 1 since the bases
# themselves are native or void. Other scalar chains are emitted on demand.
GENERIC_CHAINS: tuple[tuple[str, str, str | None], ...] = (
    ("void", "void", None),
    ("int", "int", "int"),
    ("float", "float", "float"),
    ("double", "double", "float"),
    ("string", "char*", "string"),
)
GENERIC_CHAIN_DEPTH = 3

_MODULE_TEMPLATE = Template('''\
"""cffi wrapper for $class_name, generated by ffiwrap. Do not edit."""

from __future__ import annotations

import abc

from cffi import FFI
$namespace
SOFILE = $so_file
HEADER_DEF = $header_def

ffi = FFI()
ffi.cdef(HEADER_DEF)


class InvalidCastError(TypeError):
    """Raised when casting to a class outside this wrapper family."""


class InvalidOperandError(TypeError):
    """Raised when an operation does not apply to the given wrapper."""


def _is_null(value):
    if value is None:
        return True
    return isinstance(value, ffi.CData) and ffi.typeof(value).kind == "pointer" and value == ffi.NULL


def _to_string(value):
    if _is_null(value):
        return None
    return ffi.string(value)


def _addressof(data, ctype):
    if isinstance(data, ffi.CData) and ffi.typeof(data).kind in ("struct", "union", "array"):
        return ffi.addressof(data)
    return ffi.new(ctype + " *", data)


class $marker(abc.ABC):
    """Common base of every wrapper class in this module."""

    __slots__ = ()

    @abc.abstractmethod
    def get_data(self):
        """Return the wrapped native handle."""

    @classmethod
    @abc.abstractmethod
    def get_type(cls) -> str:
        """Return the cffi type name of the wrapped value."""
''')

_MAIN_METHODS_TEMPLATE = Template('''\
    def __init__(self, path_to_so_file: str | None = SOFILE) -> None:
        self._lib = ffi.dlopen(path_to_so_file)

    def cast(self, from_: $marker, to: type[$marker]) -> $marker:
        if not (isinstance(to, type) and issubclass(to, $marker)):
            raise InvalidCastError(f"Cannot cast to a non-wrapper type: {to!r}")
        return to(ffi.cast(to.get_type(), from_.get_data()))

    def make_array(self, cls: type[$marker], elements: list) -> $marker:
        ctype = cls.get_type()
        if not ctype.endswith("*"):
            raise InvalidOperandError(f"Cannot make an array of non-pointer type {ctype!r}")
        cdata = ffi.new(f"{ctype[:-1]}[{len(elements)}]")
        for index, raw in enumerate(elements):
            if raw is None:
                continue
            cdata[index] = raw.get_data() if isinstance(raw, $marker) else raw
        return cls(cdata)

    def sizeof(self, class_or_object) -> int:
        if isinstance(class_or_object, $marker):
            data = class_or_object.get_data()
            if isinstance(data, ffi.CData):
                return ffi.sizeof(data)
            return ffi.sizeof(class_or_object.get_type())
        if isinstance(class_or_object, type) and issubclass(class_or_object, $marker):
            return ffi.sizeof(ffi.typeof(class_or_object.get_type()))
        raise InvalidOperandError(f"Unknown class/object passed to sizeof(): {class_or_object!r}")

    def get_ffi(self) -> FFI:
        return ffi

    def get_lib(self):
        return self._lib
''')


def python_name(name: str) -> str:
    """Make a C identifier usable as a Python attribute name."""
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def _native_value(canonical: str, expr: str) -> str:
    """Expression converting a raw cffi value of a native kind."""
    if canonical == "string":
        return f"_to_string({expr})"
    return expr


def _chain_base(canonical: str) -> str:
    while canonical.endswith(PTR_SUFFIX):
        canonical = canonical[: -len(PTR_SUFFIX)]
    return canonical


class Compiler:
    """Compile declarations into the source of a cffi wrapper module.

    The defines mapping and the typedef resolver are per-call state: every
    :meth:`compile` call resets them, so an instance can be reused
    sequentially but must not be shared between concurrent compiles.
    """

    def __init__(self) -> None:
        self._defines: dict[str, str] = {}
        self._resolver: dict[str, str] = {}
        self._emitted_enums: set[object] = set()
        self._referenced: dict[str, str] = {}
        self._typedef_names: set[str] = set()

    def _reset(self, defines: Mapping[str, str], decls: list[Declaration]) -> None:
        self._defines = dict(defines)
        self._emitted_enums = set()
        self._referenced = {}
        self._typedef_names = {d.name for d in decls if isinstance(d, TypedefDecl)}
        self._resolver = build_resolver(decls)

    @property
    def resolver(self) -> dict[str, str]:
        """Typedef name to primitive kind mapping of the current compile."""
        return self._resolver

    def compile(
        self,
        so_file: str,
        decls: Iterable[Declaration],
        defines: Mapping[str, str],
        class_name: str,
    ) -> str:
        """Compile a header's declarations into wrapper module source.

        :param so_file: Default shared library path, embedded verbatim.
        :param decls: All declarations of the header, in source order.
        :param defines: Pre-expanded macros, name to literal text.
        :param class_name: Main class name; a dotted name puts the prefix in
            the module's ``__namespace__``.
        :returns: Python source of the generated module.
        :raises CompileError: If any declaration cannot be compiled. No
            partial output is produced.
        """
        decls = list(decls)
        self._reset(defines, decls)
        namespace, _, class_name = class_name.rpartition(".")
        marker = f"{class_name}CData"

        lines = self.compile_preamble(so_file, decls, class_name, namespace, marker)
        lines.append("")
        lines.append("")
        lines.append(f"class {class_name}:")
        lines.append(f"{INDENT}SOFILE = SOFILE")
        lines.append(f"{INDENT}HEADER_DEF = HEADER_DEF")
        for define, value in self._defines.items():
            lines.append(f"{INDENT}{python_name(define)} = {normalize_define(define, value)}")
        lines.append("")
        lines.append(_MAIN_METHODS_TEMPLATE.substitute(marker=marker).rstrip("\n"))
        lines.extend(self.compile_getattr(decls))
        for decl in decls:
            try:
                body = self.compile_decl(decl)
            except CompileError as e:
                e.with_decl(getattr(decl, "name", None))
                raise
            if body:
                lines.append("")
                lines.extend(body)

        classes: list[str] = []
        emitted: set[str] = set()
        for base, ctype, value_kind in GENERIC_CHAINS:
            classes.extend(
                self.compile_wrapper_family(base, ctype, marker, 1, GENERIC_CHAIN_DEPTH, emitted, value_kind)
            )
        classes.extend(self.compile_scalar_chains(marker, emitted))
        for decl in decls:
            classes.extend(self.compile_decl_class(decl, marker, emitted))
        self._check_references(emitted)

        lines.extend(classes)
        logger.info(
            "compiled %s: %d declarations, %d defines, %d wrapper classes",
            class_name,
            len(decls),
            len(self._defines),
            len(emitted),
        )
        return "\n".join(lines) + "\n"

    def compile_preamble(
        self,
        so_file: str,
        decls: list[Declaration],
        class_name: str,
        namespace: str,
        marker: str,
    ) -> list[str]:
        """Module docstring, imports, embedded header and runtime helpers."""
        module = _MODULE_TEMPLATE.substitute(
            class_name=class_name,
            namespace=f"\n__namespace__ = {namespace!r}\n" if namespace else "",
            so_file=repr(so_file),
            header_def=repr(self.compile_decls_to_code(decls)),
            marker=marker,
        )
        return module.rstrip("\n").split("\n")

    def compile_decls_to_code(self, decls: list[Declaration]) -> str:
        """C text of the declarations, as passed to ``ffi.cdef``."""
        return decls_to_c(decls)

    def compile_getattr(self, decls: list[Declaration]) -> list[str]:
        """``__getattr__`` fallback: wrap variables, defer the rest to the library."""
        lines = ["", f"{INDENT}def __getattr__(self, name: str):"]
        for decl in decls:
            if not isinstance(decl, VarDecl):
                continue
            try:
                lines.extend(f"{INDENT * 2}{case}" for case in self.compile_cases(decl))
            except CompileError as e:
                e.with_decl(decl.name)
                raise
        # _lib itself lands here when read before __init__ has set it
        lines.append(f"{INDENT * 2}if name.startswith(\"_\"):")
        lines.append(f"{INDENT * 3}raise AttributeError(name)")
        lines.append(f"{INDENT * 2}return getattr(self._lib, name)")
        return lines

    def compile_cases(self, decl: VarDecl) -> list[str]:
        """Branch of ``__getattr__`` reading one global variable."""
        canonical = self._classify(decl.type, decl.name)
        read = f"getattr(self._lib, {decl.name!r})"
        lines = [f"if name == {decl.name!r}:"]
        if is_native(canonical):
            lines.append(f"{INDENT}return {_native_value(canonical, read)}")
        else:
            lines.append(f"{INDENT}tmp = {read}")
            lines.append(f"{INDENT}return None if _is_null(tmp) else {canonical}(tmp)")
        return lines

    def _classify(self, t: Type, decl_name: str) -> str:
        canonical = classify_type(t)
        if not is_native(canonical) and canonical != "void":
            self._referenced.setdefault(canonical, decl_name)
        return canonical

    def compile_decl(self, decl: Declaration) -> list[str]:
        """Lines of the main class body contributed by one declaration."""
        if isinstance(decl, FunctionDecl):
            return self.compile_function(decl)
        elif isinstance(decl, EnumDecl):
            constants = self.compile_enum(decl)
            if constants and decl.name is not None:
                return [f"{INDENT}# enum {decl.name}"] + constants
            return constants
        elif isinstance(decl, TypedefDecl):
            underlying = strip_attributes(decl.type)
            if isinstance(underlying, EnumType):
                constants = self.compile_enum(underlying.decl)
                if constants:
                    return [f"{INDENT}# typedef enum {decl.name}"] + constants
        return []

    def compile_parameters(self, params: list[Type], decl_name: str) -> list[str]:
        """Canonical names of a parameter list; ``(void)`` means no parameters."""
        if len(params) == 1:
            only = strip_attributes(params[0])
            if isinstance(only, BuiltinType) and only.name == "void":
                return []
        result = []
        for param in params:
            canonical = self._classify(param, decl_name)
            if canonical == "void":
                raise UnsupportedTypeError("void is only allowed as the sole parameter", decl_name)
            result.append(canonical)
        return result

    def compile_function(self, decl: FunctionDecl) -> list[str]:
        """Forwarding method for one C function."""
        return_type = self._classify(decl.return_type, decl.name)
        params = self.compile_parameters(decl.params, decl.name)
        signature = ["self"]
        call_args = []
        for idx, param in enumerate(params):
            signature.append(f"p{idx}: {python_annotation(param)} | None")
            if is_native(param):
                call_args.append(f"p{idx}")
            else:
                call_args.append(f"None if p{idx} is None else p{idx}.get_data()")
        if decl.is_variadic:
            signature.append("*args")
            call_args.append("*args")
        returns = "None" if return_type == "void" else f"{python_annotation(return_type)} | None"

        method = python_name(decl.name)
        target = f"self._lib.{decl.name}" if method == decl.name else f"getattr(self._lib, {decl.name!r})"
        call = f"{target}({', '.join(call_args)})"

        lines = [f"{INDENT}def {method}({', '.join(signature)}) -> {returns}:"]
        if return_type == "void":
            lines.append(f"{INDENT * 2}{call}")
        elif is_native(return_type):
            lines.append(f"{INDENT * 2}return {_native_value(return_type, call)}")
        else:
            lines.append(f"{INDENT * 2}result = {call}")
            lines.append(f"{INDENT * 2}return None if _is_null(result) else {return_type}(result)")
        logger.debug("compiled function %s(%s) -> %s", decl.name, ", ".join(params), return_type)
        return lines

    def compile_enum(self, decl: EnumDecl) -> list[str]:
        """One class constant per enum field.

        Fields shadowed by a define are skipped but still advance the
        implicit counter; an explicit value restarts the counter after it.
        """
        if decl.fields is None:
            return []
        # an anonymous enum is usually seen twice: bare and through its typedef
        key = decl.name if decl.name is not None else tuple(f.name for f in decl.fields)
        if key in self._emitted_enums:
            return []
        self._emitted_enums.add(key)
        lines = []
        counter = 0
        for field in decl.fields:
            if field.name in self._defines:
                counter += 1
                continue
            try:
                value = counter if field.value is None else evaluate_constant(field.value)
            except CompileError as e:
                e.with_decl(field.name)
                raise
            lines.append(f"{INDENT}{python_name(field.name)} = {value}")
            counter = value + 1
        return lines

    def compile_scalar_chains(self, marker: str, emitted: set[str]) -> list[str]:
        """Pointer chains over the scalar spellings and enums in use.

        ``unsigned long *`` gets ``unsigned_long_ptr`` typed ``unsigned long*``,
        so arrays built through it have the element size the library expects.
        """
        lines: list[str] = []
        for canonical in self._referenced:
            base = _chain_base(canonical)
            ctype = scalar_ctype(base)
            if ctype is None or base + PTR_SUFFIX in emitted:
                continue
            value_kind = primitive_kind(ctype) or "int"
            lines.extend(
                self.compile_wrapper_family(base, ctype, marker, 1, GENERIC_CHAIN_DEPTH, emitted, value_kind)
            )
        return lines

    def compile_decl_class(self, decl: Declaration, marker: str, emitted: set[str]) -> list[str]:
        """Wrapper class family for a typedef or a named record."""
        if isinstance(decl, TypedefDecl):
            # Names spelled like primitives classify as native and are never wrapped.
            if primitive_kind(decl.name) is not None or decl.name in emitted:
                return []
            return self.compile_wrapper_family(decl.name, decl.name, marker, 0, MAX_POINTER_DEPTH, emitted)
        elif isinstance(decl, RecordDecl):
            if decl.name is None or decl.name in emitted or self._is_typedef_name(decl.name):
                return []
            ctype = f"{decl.kind} {decl.name}"
            return self.compile_wrapper_family(decl.name, ctype, marker, 0, MAX_POINTER_DEPTH, emitted)
        return []

    def _is_typedef_name(self, name: str) -> bool:
        return name in self._typedef_names

    def compile_wrapper_family(
        self,
        base: str,
        ctype: str,
        marker: str,
        min_depth: int,
        max_depth: int,
        emitted: set[str],
        value_kind: str | None = None,
    ) -> list[str]:
        """Wrapper classes for ``base`` at every depth in ``min_depth..max_depth``.

        A family that would redefine a class of another family is skipped as
        a whole; references to the missing names then fail the compile.
        """
        names = [base + PTR_SUFFIX * depth for depth in range(min_depth, max_depth + 1)]
        taken = [name for name in names if name in emitted]
        if taken:
            logger.warning("skipping wrapper classes for %s: %s already defined", base, ", ".join(taken))
            return []
        lines = []
        for depth in range(min_depth, max_depth + 1):
            lines.extend(self.compile_wrapper_class(base, ctype, depth, max_depth, marker, value_kind))
        emitted.update(names)
        return lines

    def compile_wrapper_class(
        self,
        base: str,
        ctype: str,
        depth: int,
        max_depth: int,
        marker: str,
        value_kind: str | None = None,
    ) -> list[str]:
        """One wrapper class: ``base`` behind ``depth`` levels of pointers.

        ``value_kind`` is the native kind ``deref`` returns at depth 1, for
        chains whose base has no class of its own.
        """
        name = base + PTR_SUFFIX * depth
        type_name = ctype + "*" * depth
        boxed = self._boxed_kind(base) if depth == 0 else None

        lines = ["", "", f"class {name}({marker}):", f'{INDENT}__slots__ = ("_data",)', ""]
        lines.append(f"{INDENT}def __init__(self, data) -> None:")
        if boxed is not None:
            lines.append(f"{INDENT * 2}self._data = ffi.new({boxed + ' *'!r}, data)")
        else:
            lines.append(f"{INDENT * 2}self._data = data")
        lines.append("")
        lines.append(f"{INDENT}def get_data(self):")
        lines.append(f"{INDENT * 2}return self._data[0]" if boxed is not None else f"{INDENT * 2}return self._data")
        lines.append("")
        lines.append(f"{INDENT}def equals(self, other: {name}) -> bool:")
        lines.append(f"{INDENT * 2}return self.get_data() == other.get_data()")
        lines.append("")
        lines.append(f"{INDENT}def __eq__(self, other: object) -> bool:")
        lines.append(f"{INDENT * 2}if not isinstance(other, {name}):")
        lines.append(f"{INDENT * 3}return NotImplemented")
        lines.append(f"{INDENT * 2}return self.equals(other)")
        if depth < max_depth:
            deeper = name + PTR_SUFFIX
            lines.append("")
            lines.append(f"{INDENT}def addr(self) -> {deeper}:")
            if boxed is not None:
                lines.append(f"{INDENT * 2}return {deeper}(ffi.cast({type_name + ' *'!r}, self._data))")
            else:
                lines.append(f"{INDENT * 2}return {deeper}(_addressof(self._data, {type_name!r}))")
        if depth > 0:
            shallower = base + PTR_SUFFIX * (depth - 1)
            if depth == 1 and value_kind is not None:
                shallower = value_kind
            if shallower != "void":
                if is_native(shallower):
                    element = _native_value(shallower, "self._data[n]")
                    annotation = f"{python_annotation(shallower)} | None"
                else:
                    element = f"{shallower}(self._data[n])"
                    annotation = shallower
                lines.append("")
                lines.append(f"{INDENT}def deref(self, n: int = 0) -> {annotation}:")
                lines.append(f"{INDENT * 2}return {element}")
        lines.append("")
        lines.append(f"{INDENT}@classmethod")
        lines.append(f"{INDENT}def get_type(cls) -> str:")
        lines.append(f"{INDENT * 2}return {type_name!r}")
        return lines

    def _boxed_kind(self, name: str) -> str | None:
        """Builtin to allocate for a typedef that resolves to a scalar."""
        kind = self._resolver.get(name)
        if kind is None or primitive_kind(kind) is None:
            return None
        return kind

    def _check_references(self, emitted: set[str]) -> None:
        for canonical, decl_name in self._referenced.items():
            if canonical not in emitted:
                raise UnsupportedTypeError(f"no wrapper class for type {canonical!r}", decl_name)
