"""Tests for rendering IR back into C text."""

import pytest

from ffiwrap.ir import (
    AttributedType,
    BinaryOperator,
    BuiltinType,
    ConstantArrayType,
    EnumDecl,
    EnumField,
    EnumType,
    FunctionDecl,
    FunctionProtoType,
    IncompleteArrayType,
    IntegerLiteral,
    PointerType,
    RecordDecl,
    RecordField,
    RecordType,
    TypedefDecl,
    TypedefType,
    UnaryOperator,
    VarDecl,
)
from ffiwrap.printer import decl_to_c, decls_to_c, type_to_c

INT = BuiltinType("int")
CHAR = BuiltinType("char")
CONST_CHAR_P = PointerType(AttributedType("const", CHAR))


def node_decl():
    decl = RecordDecl("node", [RecordField("value", INT)])
    assert decl.fields is not None
    decl.fields.append(RecordField("next", PointerType(RecordType(decl))))
    return decl


class TestTypeToC:
    def test_builtin(self):
        assert type_to_c(INT) == "int"
        assert type_to_c(INT, "x") == "int x"

    def test_pointer(self):
        assert type_to_c(PointerType(INT), "p") == "int *p"
        assert type_to_c(PointerType(PointerType(TypedefType("node_t")))) == "node_t **"

    def test_const_pointee(self):
        assert type_to_c(CONST_CHAR_P, "s") == "const char *s"

    def test_const_pointer(self):
        assert type_to_c(AttributedType("const", PointerType(INT)), "p") == "int *const p"

    def test_arrays(self):
        assert type_to_c(ConstantArrayType(CHAR, 16), "buf") == "char buf[16]"
        assert type_to_c(IncompleteArrayType(INT), "xs") == "int xs[]"

    def test_pointer_to_array(self):
        assert type_to_c(PointerType(ConstantArrayType(INT, 4)), "p") == "int (*p)[4]"

    def test_function_pointer(self):
        t = PointerType(FunctionProtoType(INT, [INT, CONST_CHAR_P]))
        assert type_to_c(t, "fn") == "int (*fn)(int, const char *)"

    def test_function_pointer_without_params(self):
        assert type_to_c(PointerType(FunctionProtoType(BuiltinType("void"))), "cb") == "void (*cb)(void)"

    def test_variadic_function_pointer(self):
        t = PointerType(FunctionProtoType(INT, [CONST_CHAR_P], is_variadic=True))
        assert type_to_c(t, "log") == "int (*log)(const char *, ...)"

    def test_opaque_record(self):
        assert type_to_c(RecordType(RecordDecl("FILE_impl")), "f") == "struct FILE_impl f"

    def test_unknown_node(self):
        with pytest.raises(TypeError):
            type_to_c("int")  # type: ignore[arg-type]


class TestDeclToC:
    def test_function(self):
        assert decl_to_c(FunctionDecl("puts", INT, [CONST_CHAR_P])) == "int puts(const char *);"

    def test_function_without_params(self):
        assert decl_to_c(FunctionDecl("rand", INT)) == "int rand(void);"

    def test_function_void_param(self):
        assert decl_to_c(FunctionDecl("rand", INT, [BuiltinType("void")])) == "int rand(void);"

    def test_function_returning_pointer(self):
        decl = FunctionDecl("strdup", PointerType(CHAR), [CONST_CHAR_P])
        assert decl_to_c(decl) == "char *strdup(const char *);"

    def test_variadic_function(self):
        decl = FunctionDecl("printf", INT, [CONST_CHAR_P], is_variadic=True)
        assert decl_to_c(decl) == "int printf(const char *, ...);"

    def test_typedef(self):
        assert decl_to_c(TypedefDecl("myint", INT)) == "typedef int myint;"

    def test_function_pointer_typedef(self):
        decl = TypedefDecl("cb", PointerType(FunctionProtoType(INT, [INT])))
        assert decl_to_c(decl) == "typedef int (*cb)(int);"

    def test_variable(self):
        assert decl_to_c(VarDecl("table", ConstantArrayType(INT, 4))) == "int table[4];"

    def test_opaque_struct(self):
        assert decl_to_c(RecordDecl("opaque")) == "struct opaque;"

    def test_union(self):
        decl = RecordDecl("value", [RecordField("i", INT)], is_union=True)
        assert decl_to_c(decl) == "union value {\n    int i;\n};"

    def test_self_referencing_struct(self):
        assert decl_to_c(TypedefDecl("node_t", RecordType(node_decl()))) == (
            "typedef struct node {\n    int value;\n    struct node *next;\n} node_t;"
        )

    def test_nested_struct_indent(self):
        inner = RecordDecl("inner", [RecordField("a", INT)])
        outer = RecordDecl("outer", [RecordField("in", RecordType(inner))])
        assert decl_to_c(outer) == "struct outer {\n    struct inner {\n        int a;\n    } in;\n};"

    def test_enum(self):
        decl = EnumDecl("color", [EnumField("RED"), EnumField("BLUE", IntegerLiteral("5"))])
        assert decl_to_c(decl) == "enum color {\n    RED,\n    BLUE = 5,\n};"

    def test_enum_values_are_folded(self):
        decl = EnumDecl(
            "flags",
            [
                EnumField("ON", UnaryOperator("!", IntegerLiteral("0"))),
                EnumField("BACK", UnaryOperator("-", UnaryOperator("-", IntegerLiteral("1")))),
                EnumField("MASK", IntegerLiteral("0x10UL")),
                EnumField("ALL", UnaryOperator("~", IntegerLiteral("0"))),
            ],
        )
        assert decl_to_c(decl) == "enum flags {\n    ON = 1,\n    BACK = 1,\n    MASK = 16,\n    ALL = -1,\n};"

    def test_unsupported_enum_value_is_kept(self):
        value = BinaryOperator("<<", IntegerLiteral("1"), IntegerLiteral("4"))
        assert decl_to_c(EnumDecl("bits", [EnumField("B4", value)])) == "enum bits {\n    B4 = (1 << 4),\n};"

    def test_empty_enum(self):
        assert decl_to_c(EnumDecl("e", [])) == "enum e { };"

    def test_anonymous_enum(self):
        assert decl_to_c(EnumDecl(None, [EnumField("X")])) == "enum {\n    X,\n};"

    def test_anonymous_record_is_skipped(self):
        assert decl_to_c(RecordDecl(None, [RecordField("a", INT)])) is None


class TestDeclsToC:
    def test_empty(self):
        assert decls_to_c([]) == ""

    def test_one_statement_per_line(self):
        text = decls_to_c([TypedefDecl("myint", INT), FunctionDecl("f", TypedefType("myint"))])
        assert text == "typedef int myint;\nmyint f(void);\n"

    def test_body_printed_once(self):
        node = node_decl()
        text = decls_to_c(
            [
                node,
                TypedefDecl("node_t", RecordType(node)),
                FunctionDecl("next", PointerType(RecordType(node)), [PointerType(RecordType(node))]),
            ]
        )
        assert text.count("int value;") == 1
        assert "typedef struct node node_t;" in text
        assert "struct node *next(struct node *);" in text

    def test_typedefed_anonymous_enum_printed_once(self):
        anon = EnumDecl(None, [EnumField("A"), EnumField("B")])
        text = decls_to_c([anon, TypedefDecl("ab_t", EnumType(anon))])
        assert text == "typedef enum {\n    A,\n    B,\n} ab_t;\n"
