"""ffiwrap - compile C declarations into cffi wrapper modules."""

from ffiwrap.classify import classify_type
from ffiwrap.compiler import Compiler
from ffiwrap.errors import (
    CompileError,
    UnresolvableTypedefChainError,
    UnsupportedExpressionError,
    UnsupportedTypeError,
)
from ffiwrap.exprs import evaluate_constant
from ffiwrap.ir import (
    AttributedType,
    # Expressions
    BinaryOperator,
    # Types
    BuiltinType,
    ConstantArrayType,
    Declaration,
    # Declarations
    EnumDecl,
    EnumField,
    EnumType,
    Expr,
    FunctionDecl,
    FunctionProtoType,
    # Container
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
from ffiwrap.resolver import build_resolver
from ffiwrap.writers import (
    WriterBackend,
    get_default_writer,
    get_writer,
    is_writer_available,
    list_writers,
    register_writer,
)

__all__ = [
    # Types
    "BuiltinType",
    "TypedefType",
    "PointerType",
    "AttributedType",
    "RecordType",
    "EnumType",
    "ConstantArrayType",
    "IncompleteArrayType",
    "FunctionProtoType",
    "Type",
    # Expressions
    "IntegerLiteral",
    "UnaryOperator",
    "BinaryOperator",
    "Expr",
    # Declarations
    "EnumField",
    "EnumDecl",
    "RecordField",
    "RecordDecl",
    "FunctionDecl",
    "TypedefDecl",
    "VarDecl",
    "Declaration",
    # Container
    "Header",
    "SourceLocation",
    # Compilation
    "Compiler",
    "classify_type",
    "build_resolver",
    "evaluate_constant",
    # Errors
    "CompileError",
    "UnsupportedTypeError",
    "UnsupportedExpressionError",
    "UnresolvableTypedefChainError",
    # Writer Protocol
    "WriterBackend",
    # Writer API
    "get_default_writer",
    "get_writer",
    "is_writer_available",
    "list_writers",
    "register_writer",
]
