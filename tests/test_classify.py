"""Tests for type classification."""

import pytest

from ffiwrap.classify import (
    BOOL_TYPES,
    FLOAT_TYPES,
    INT_TYPES,
    classify_type,
    is_native,
    primitive_kind,
    python_annotation,
    scalar_ctype,
    strip_attributes,
)
from ffiwrap.errors import UnsupportedTypeError
from ffiwrap.ir import (
    AttributedType,
    BuiltinType,
    ConstantArrayType,
    EnumDecl,
    EnumType,
    FunctionProtoType,
    IncompleteArrayType,
    PointerType,
    RecordDecl,
    RecordType,
    TypedefType,
)


def ptr(t, depth=1):
    for _ in range(depth):
        t = PointerType(t)
    return t


class TestBuiltins:
    @pytest.mark.parametrize("name", sorted(INT_TYPES))
    def test_integer_family(self, name):
        assert classify_type(BuiltinType(name)) == "int"

    @pytest.mark.parametrize("name", sorted(FLOAT_TYPES))
    def test_float_family(self, name):
        assert classify_type(BuiltinType(name)) == "float"

    @pytest.mark.parametrize("name", sorted(BOOL_TYPES))
    def test_bool_family(self, name):
        assert classify_type(BuiltinType(name)) == "bool"

    def test_void(self):
        assert classify_type(BuiltinType("void")) == "void"

    def test_unknown_builtin_raises(self):
        with pytest.raises(UnsupportedTypeError, match="__int128"):
            classify_type(BuiltinType("__int128"))


class TestTypedefs:
    def test_typedef_keeps_name(self):
        assert classify_type(TypedefType("node_t")) == "node_t"

    def test_typedef_named_like_primitive(self):
        assert classify_type(TypedefType("size_t")) == "int"
        assert classify_type(TypedefType("bool")) == "bool"


class TestPointers:
    def test_char_pointer_is_string(self):
        assert classify_type(ptr(BuiltinType("char"))) == "string"

    def test_const_char_pointer_is_string(self):
        assert classify_type(ptr(AttributedType("const", BuiltinType("char")))) == "string"

    def test_char_pointer_pointer(self):
        assert classify_type(ptr(BuiltinType("char"), 2)) == "string_ptr"

    def test_void_pointer(self):
        assert classify_type(ptr(BuiltinType("void"))) == "void_ptr"

    def test_int_pointer(self):
        assert classify_type(ptr(BuiltinType("int"))) == "int_ptr"

    @pytest.mark.parametrize(
        ("spelling", "expected"),
        [
            ("unsigned long", "unsigned_long_ptr"),
            ("long", "long_ptr"),
            ("float", "float_ptr"),
            ("double", "double_ptr"),
            ("_Bool", "_Bool_ptr"),
            ("unsigned char", "unsigned_char_ptr"),
        ],
    )
    def test_scalar_pointer_keeps_spelling(self, spelling, expected):
        assert classify_type(ptr(BuiltinType(spelling))) == expected

    def test_scalar_pointer_through_primitive_typedef(self):
        assert classify_type(ptr(TypedefType("size_t"))) == "size_t_ptr"
        assert classify_type(ptr(TypedefType("size_t"), 2)) == "size_t_ptr_ptr"

    def test_const_scalar_pointer(self):
        assert classify_type(ptr(AttributedType("const", BuiltinType("long")))) == "long_ptr"

    def test_enum_pointer(self):
        assert classify_type(ptr(EnumType(EnumDecl("color", [])))) == "enum_color_ptr"

    def test_anonymous_enum_pointer(self):
        assert classify_type(ptr(EnumType(EnumDecl(None, [])))) == "int_ptr"

    @pytest.mark.parametrize("depth", [1, 2, 3, 4])
    def test_depth_is_preserved(self, depth):
        assert classify_type(ptr(TypedefType("node_t"), depth)) == "node_t" + "_ptr" * depth

    def test_record_pointer(self):
        assert classify_type(ptr(RecordType(RecordDecl("node")))) == "node_ptr"

    def test_pointer_to_array_raises(self):
        with pytest.raises(UnsupportedTypeError):
            classify_type(ptr(ConstantArrayType(BuiltinType("int"), 4)))

    def test_function_pointer_raises(self):
        with pytest.raises(UnsupportedTypeError):
            classify_type(ptr(FunctionProtoType(BuiltinType("int"), [BuiltinType("int")])))


class TestQualifiers:
    @pytest.mark.parametrize("kind", ["const", "volatile", "extern"])
    def test_transparent(self, kind):
        assert classify_type(AttributedType(kind, BuiltinType("int"))) == "int"

    def test_qualified_pointer(self):
        t = AttributedType("const", ptr(TypedefType("node_t")))
        assert classify_type(t) == "node_t_ptr"

    def test_unknown_attribute_raises(self):
        with pytest.raises(UnsupportedTypeError, match="restrict"):
            classify_type(AttributedType("restrict", BuiltinType("int")))

    def test_strip_attributes(self):
        inner = BuiltinType("int")
        t = AttributedType("const", AttributedType("volatile", inner))
        assert strip_attributes(t) is inner


class TestAggregates:
    def test_enum_is_int(self):
        assert classify_type(EnumType(EnumDecl("color"))) == "int"
        assert classify_type(EnumType(EnumDecl(None))) == "int"

    def test_named_record(self):
        assert classify_type(RecordType(RecordDecl("node"))) == "node"

    def test_anonymous_record_raises(self):
        with pytest.raises(UnsupportedTypeError, match="anonymous union"):
            classify_type(RecordType(RecordDecl(None, is_union=True)))

    def test_anonymous_record_behind_pointer_raises(self):
        with pytest.raises(UnsupportedTypeError):
            classify_type(ptr(RecordType(RecordDecl(None))))

    def test_arrays(self):
        assert classify_type(ConstantArrayType(BuiltinType("int"), 4)) == "array"
        assert classify_type(IncompleteArrayType(BuiltinType("char"))) == "array"

    def test_bare_function_type_raises(self):
        with pytest.raises(UnsupportedTypeError):
            classify_type(FunctionProtoType(BuiltinType("void")))


class TestHelpers:
    def test_is_native(self):
        for name in ("int", "float", "bool", "string", "array"):
            assert is_native(name)
        assert not is_native("void")
        assert not is_native("int_ptr")

    def test_primitive_kind(self):
        assert primitive_kind("uint8_t") == "int"
        assert primitive_kind("long double") == "float"
        assert primitive_kind("node_t") is None

    def test_python_annotation(self):
        assert python_annotation("string") == "bytes"
        assert python_annotation("void") == "None"
        assert python_annotation("node_t_ptr") == "node_t_ptr"


class TestScalarCtype:
    def test_spelling_with_spaces(self):
        assert scalar_ctype("unsigned_long_long") == "unsigned long long"

    def test_enum(self):
        assert scalar_ctype("enum_color") == "enum color"

    def test_not_a_scalar(self):
        assert scalar_ctype("node_t") is None
        assert scalar_ctype("char") is None
