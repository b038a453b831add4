"""Serialize ffiwrap IR to JSON and load it back.

The JSON form is how declarations reach the command line tool: a C front
end dumps its parse as JSON, and ``ffiwrap`` compiles it. Every node is an
object with a ``"kind"`` tag::

    {
      "path": "zlib.h",
      "defines": {"Z_OK": "0"},
      "declarations": [
        {"kind": "typedef", "name": "uInt",
         "type": {"kind": "builtin", "name": "unsigned int"}},
        {"kind": "function", "name": "zlibVersion",
         "return_type": {"kind": "pointer", "parent":
            {"kind": "attributed", "attribute": "const",
             "parent": {"kind": "builtin", "name": "char"}}},
         "params": [{"kind": "builtin", "name": "void"}]}
      ]
    }
"""

from __future__ import annotations

import json
from typing import Any

from ffiwrap.ir import (
    AttributedType,
    BinaryOperator,
    BuiltinType,
    ConstantArrayType,
    Declaration,
    EnumDecl,
    EnumField,
    EnumType,
    Expr,
    FunctionDecl,
    FunctionProtoType,
    Header,
    IncompleteArrayType,
    IntegerLiteral,
    PointerType,
    RecordDecl,
    RecordField,
    RecordType,
    SourceLocation,
    Type,
    TypedefDecl,
    TypedefType,
    UnaryOperator,
    VarDecl,
)

# =============================================================================
# IR -> JSON
# =============================================================================


def _type_to_dict(t: Type, active: frozenset[int] = frozenset()) -> dict[str, Any]:
    """Convert a type node to a JSON-serializable dict.

    ``active`` holds the ids of records being serialized; a reference back
    to one of them (``struct node *next``) is written without its fields.
    """
    if isinstance(t, BuiltinType):
        return {"kind": "builtin", "name": t.name}
    elif isinstance(t, TypedefType):
        return {"kind": "typedef", "name": t.name}
    elif isinstance(t, PointerType):
        return {"kind": "pointer", "parent": _type_to_dict(t.parent, active)}
    elif isinstance(t, AttributedType):
        return {"kind": "attributed", "attribute": t.kind, "parent": _type_to_dict(t.parent, active)}
    elif isinstance(t, RecordType):
        if id(t.decl) in active:
            return {"kind": "record", "decl": _decl_to_dict(RecordDecl(t.decl.name, is_union=t.decl.is_union))}
        return {"kind": "record", "decl": _decl_to_dict(t.decl, active)}
    elif isinstance(t, EnumType):
        return {"kind": "enum", "decl": _decl_to_dict(t.decl)}
    elif isinstance(t, ConstantArrayType):
        return {"kind": "constant_array", "parent": _type_to_dict(t.parent, active), "size": t.size}
    elif isinstance(t, IncompleteArrayType):
        return {"kind": "incomplete_array", "parent": _type_to_dict(t.parent, active)}
    elif isinstance(t, FunctionProtoType):
        return {
            "kind": "function_proto",
            "return_type": _type_to_dict(t.return_type, active),
            "params": [_type_to_dict(p, active) for p in t.params],
            "is_variadic": t.is_variadic,
        }
    else:
        return {"kind": "unknown", "repr": repr(t)}


def _expr_to_dict(e: Expr) -> dict[str, Any]:
    """Convert a constant expression to a dict."""
    if isinstance(e, IntegerLiteral):
        return {"kind": "integer", "value": e.value}
    elif isinstance(e, UnaryOperator):
        return {"kind": "unary", "op": e.op, "operand": _expr_to_dict(e.operand)}
    elif isinstance(e, BinaryOperator):
        return {
            "kind": "binary",
            "op": e.op,
            "left": _expr_to_dict(e.left),
            "right": _expr_to_dict(e.right),
        }
    else:
        return {"kind": "unknown", "repr": repr(e)}


def _location_to_dict(loc: SourceLocation) -> dict[str, Any]:
    d: dict[str, Any] = {"file": loc.file, "line": loc.line}
    if loc.column is not None:
        d["column"] = loc.column
    return d


def _enum_field_to_dict(f: EnumField) -> dict[str, Any]:
    d: dict[str, Any] = {"name": f.name}
    if f.value is not None:
        d["value"] = _expr_to_dict(f.value)
    return d


def _decl_to_dict(decl: Declaration, active: frozenset[int] = frozenset()) -> dict[str, Any]:
    """Convert a declaration to a JSON-serializable dict."""
    if isinstance(decl, FunctionDecl):
        d: dict[str, Any] = {
            "kind": "function",
            "name": decl.name,
            "return_type": _type_to_dict(decl.return_type),
            "params": [_type_to_dict(p) for p in decl.params],
        }
        if decl.is_variadic:
            d["is_variadic"] = True
    elif isinstance(decl, EnumDecl):
        d = {
            "kind": "enum",
            "name": decl.name,
            "fields": None if decl.fields is None else [_enum_field_to_dict(f) for f in decl.fields],
        }
    elif isinstance(decl, TypedefDecl):
        d = {"kind": "typedef", "name": decl.name, "type": _type_to_dict(decl.type)}
    elif isinstance(decl, RecordDecl):
        d = {
            "kind": "record",
            "name": decl.name,
            "fields": (
                None
                if decl.fields is None
                else [{"name": f.name, "type": _type_to_dict(f.type, active | {id(decl)})} for f in decl.fields]
            ),
        }
        if decl.is_union:
            d["is_union"] = True
    elif isinstance(decl, VarDecl):
        d = {"kind": "variable", "name": decl.name, "type": _type_to_dict(decl.type)}
    else:
        return {"kind": "unknown", "repr": repr(decl)}
    if decl.location is not None:
        d["location"] = _location_to_dict(decl.location)
    return d


def header_to_json_dict(header: Header) -> dict[str, Any]:
    """Convert a Header to a JSON-serializable dict (no string encoding)."""
    return {
        "path": header.path,
        "defines": dict(header.defines),
        "declarations": [_decl_to_dict(d) for d in header.declarations],
    }


def header_to_json(header: Header, indent: int | None = 2) -> str:
    """Convert a Header to a JSON string.

    :param header: Parsed header IR.
    :param indent: JSON indentation level. None for compact output.
    """
    return json.dumps(header_to_json_dict(header), indent=indent)


# =============================================================================
# JSON -> IR
# =============================================================================


def _require(d: dict[str, Any], key: str) -> Any:
    if not isinstance(d, dict):
        raise ValueError(f"expected a JSON object with {key!r}, got {d!r}")
    try:
        return d[key]
    except KeyError:
        raise ValueError(f"{d.get('kind', 'node')!r} node is missing {key!r}: {d!r}") from None


def _type_from_dict(d: dict[str, Any]) -> Type:
    """Build a type node from its dict form."""
    kind = _require(d, "kind")
    if kind == "builtin":
        return BuiltinType(_require(d, "name"))
    elif kind == "typedef":
        return TypedefType(_require(d, "name"))
    elif kind == "pointer":
        return PointerType(_type_from_dict(_require(d, "parent")))
    elif kind == "attributed":
        return AttributedType(_require(d, "attribute"), _type_from_dict(_require(d, "parent")))
    elif kind == "record":
        decl = _decl_from_dict(_require(d, "decl"))
        if not isinstance(decl, RecordDecl):
            raise ValueError(f"record type must reference a record declaration: {d!r}")
        return RecordType(decl)
    elif kind == "enum":
        decl = _decl_from_dict(_require(d, "decl"))
        if not isinstance(decl, EnumDecl):
            raise ValueError(f"enum type must reference an enum declaration: {d!r}")
        return EnumType(decl)
    elif kind == "constant_array":
        return ConstantArrayType(_type_from_dict(_require(d, "parent")), int(_require(d, "size")))
    elif kind == "incomplete_array":
        return IncompleteArrayType(_type_from_dict(_require(d, "parent")))
    elif kind == "function_proto":
        return FunctionProtoType(
            _type_from_dict(_require(d, "return_type")),
            [_type_from_dict(p) for p in d.get("params", [])],
            bool(d.get("is_variadic", False)),
        )
    raise ValueError(f"unknown type kind {kind!r}")


def _expr_from_dict(d: dict[str, Any]) -> Expr:
    """Build a constant expression from its dict form."""
    kind = _require(d, "kind")
    if kind == "integer":
        return IntegerLiteral(str(_require(d, "value")))
    elif kind == "unary":
        return UnaryOperator(_require(d, "op"), _expr_from_dict(_require(d, "operand")))
    elif kind == "binary":
        return BinaryOperator(
            _require(d, "op"),
            _expr_from_dict(_require(d, "left")),
            _expr_from_dict(_require(d, "right")),
        )
    raise ValueError(f"unknown expression kind {kind!r}")


def _location_from_dict(d: dict[str, Any] | None) -> SourceLocation | None:
    if d is None:
        return None
    return SourceLocation(_require(d, "file"), _require(d, "line"), d.get("column"))


def _decl_from_dict(d: dict[str, Any]) -> Declaration:
    """Build a declaration from its dict form."""
    kind = _require(d, "kind")
    location = _location_from_dict(d.get("location"))
    if kind == "function":
        return FunctionDecl(
            _require(d, "name"),
            _type_from_dict(_require(d, "return_type")),
            [_type_from_dict(p) for p in d.get("params", [])],
            is_variadic=bool(d.get("is_variadic", False)),
            location=location,
        )
    elif kind == "enum":
        fields = d.get("fields")
        return EnumDecl(
            d.get("name"),
            None
            if fields is None
            else [
                EnumField(
                    _require(f, "name"),
                    _expr_from_dict(f["value"]) if f.get("value") is not None else None,
                )
                for f in fields
            ],
            location=location,
        )
    elif kind == "typedef":
        return TypedefDecl(_require(d, "name"), _type_from_dict(_require(d, "type")), location=location)
    elif kind == "record":
        fields = d.get("fields")
        return RecordDecl(
            d.get("name"),
            None
            if fields is None
            else [RecordField(_require(f, "name"), _type_from_dict(_require(f, "type"))) for f in fields],
            is_union=bool(d.get("is_union", False)),
            location=location,
        )
    elif kind == "variable":
        return VarDecl(_require(d, "name"), _type_from_dict(_require(d, "type")), location=location)
    raise ValueError(f"unknown declaration kind {kind!r}")


def header_from_dict(data: dict[str, Any]) -> Header:
    """Build a Header from the dict produced by :func:`header_to_json_dict`.

    :raises ValueError: If a node has an unknown kind or lacks a required key.
    """
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object at the top level, got {type(data).__name__}")
    defines = data.get("defines") or {}
    if not isinstance(defines, dict):
        raise ValueError(f"'defines' must be an object, got {type(defines).__name__}")
    return Header(
        path=data.get("path", "<unknown>"),
        declarations=[_decl_from_dict(d) for d in data.get("declarations", [])],
        defines={str(k): str(v) for k, v in defines.items()},
    )


def header_from_json(text: str) -> Header:
    """Parse a JSON document into a Header.

    :raises ValueError: On malformed JSON or IR.
    """
    return header_from_dict(json.loads(text))


class JsonWriter:
    """Writer that serializes ffiwrap IR to JSON.

    Options
    -------
    indent : int | None
        JSON indentation level. Defaults to 2. None for compact output.
    """

    def __init__(self, indent: int | None = 2) -> None:
        self._indent = indent

    def write(self, header: Header) -> str:
        """Convert header IR to a JSON string."""
        return header_to_json(header, indent=self._indent)

    @property
    def name(self) -> str:
        return "json"

    @property
    def format_description(self) -> str:
        return "JSON serialization of IR for inspection and tooling"


from ffiwrap.writers import register_writer  # noqa: E402

register_writer("json", JsonWriter)
