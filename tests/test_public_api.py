"""Tests for the public API re-exports from the ffiwrap package."""


def test_all_matches_module_exports():
    """__all__ should list every public name exported from ffiwrap."""
    import types

    import ffiwrap

    for name in ffiwrap.__all__:
        assert hasattr(ffiwrap, name), f"ffiwrap.__all__ lists {name!r} but it is not an attribute"

    public_attrs = {
        name
        for name in dir(ffiwrap)
        if not name.startswith("_") and not isinstance(getattr(ffiwrap, name), types.ModuleType)
    }
    missing = public_attrs - set(ffiwrap.__all__)
    assert missing == set(), f"Public attributes missing from __all__: {missing}"


def test_type_aliases_are_unions():
    """Type, Expr and Declaration should be Union type aliases."""
    import typing

    import ffiwrap

    type_members = set(typing.get_args(ffiwrap.Type))
    assert {ffiwrap.BuiltinType, ffiwrap.PointerType, ffiwrap.RecordType, ffiwrap.FunctionProtoType} <= type_members

    expr_members = set(typing.get_args(ffiwrap.Expr))
    assert expr_members == {ffiwrap.IntegerLiteral, ffiwrap.UnaryOperator, ffiwrap.BinaryOperator}

    decl_members = set(typing.get_args(ffiwrap.Declaration))
    assert decl_members == {
        ffiwrap.FunctionDecl,
        ffiwrap.EnumDecl,
        ffiwrap.TypedefDecl,
        ffiwrap.RecordDecl,
        ffiwrap.VarDecl,
    }


def test_reexports_are_the_same_objects():
    """Names imported from ffiwrap should be the defining modules' objects."""
    import ffiwrap
    from ffiwrap import classify, compiler, errors, ir, resolver, writers

    assert ffiwrap.Header is ir.Header
    assert ffiwrap.SourceLocation is ir.SourceLocation
    assert ffiwrap.Compiler is compiler.Compiler
    assert ffiwrap.classify_type is classify.classify_type
    assert ffiwrap.build_resolver is resolver.build_resolver
    assert ffiwrap.CompileError is errors.CompileError
    assert ffiwrap.get_writer is writers.get_writer


def test_error_hierarchy():
    import ffiwrap

    for cls in (
        ffiwrap.UnsupportedTypeError,
        ffiwrap.UnsupportedExpressionError,
        ffiwrap.UnresolvableTypedefChainError,
    ):
        assert issubclass(cls, ffiwrap.CompileError)
    assert issubclass(ffiwrap.CompileError, ValueError)
