"""Exceptions raised while compiling declarations into wrapper code.

Every failure is fatal to the whole compile: :meth:`Compiler.compile
<ffiwrap.compiler.Compiler.compile>` either returns complete source or
raises one of these.
"""

from __future__ import annotations

from collections.abc import Sequence


class CompileError(ValueError):
    """Base class for compile failures.

    :param message: What went wrong.
    :param decl_name: Name of the declaration being compiled, if known.
    """

    def __init__(self, message: str, decl_name: str | None = None) -> None:
        self.message = message
        self.decl_name = decl_name
        super().__init__(self._format())

    def _format(self) -> str:
        if self.decl_name:
            return f"{self.decl_name}: {self.message}"
        return self.message

    def with_decl(self, decl_name: str | None) -> CompileError:
        """Attach the enclosing declaration name unless one is already set."""
        if self.decl_name is None and decl_name:
            self.decl_name = decl_name
            self.args = (self._format(),)
        return self


class UnsupportedTypeError(CompileError):
    """A type shape the classifier has no rule for."""


class UnsupportedExpressionError(CompileError):
    """A constant expression the evaluator cannot reduce."""


class UnresolvableTypedefChainError(CompileError):
    """A typedef chain that is cyclic or ends in an undeclared name.

    :param names: The typedef names along the offending chain, in order.
    """

    def __init__(self, message: str, names: Sequence[str], decl_name: str | None = None) -> None:
        self.names = list(names)
        super().__init__(message, decl_name)
