"""Reduce C constant expressions to Python literal text.

Only integer literals and the unary ``+ - ~ !`` operators are reduced;
anything else raises :class:`~ffiwrap.errors.UnsupportedExpressionError`.
"""

from __future__ import annotations

import ast
import re

from ffiwrap.errors import UnsupportedExpressionError
from ffiwrap.ir import BinaryOperator, Expr, IntegerLiteral, UnaryOperator

# Integer token with an optional C suffix (u, l, ul, ull, ...)
_INT_TOKEN_RE = re.compile(r"(?<![\w.])(0[xX][0-9a-fA-F]+|0[bB][01]+|\d+)[uUlL]*(?![\w.])")
_INT_LITERAL_RE = re.compile(r"^([+-]?)(0[xX][0-9a-fA-F]+|0[bB][01]+|\d+)[uUlL]*$")
_FLOAT_LITERAL_RE = re.compile(
    r"^([+-]?(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?\d+[eE][+-]?\d+)[fFdDlL]?$"
)


def parse_integer(text: str) -> int:
    """Parse C integer literal text, ignoring ``u``/``U``/``l``/``L`` suffixes.

    >>> parse_integer("0x10UL")
    16
    >>> parse_integer("0755")
    493
    """
    match = _INT_LITERAL_RE.match(text.strip())
    if match is None:
        raise UnsupportedExpressionError(f"not an integer literal: {text!r}")
    sign, digits = match.groups()
    lowered = digits.lower()
    if lowered.startswith(("0x", "0b")):
        value = int(lowered, 0)
    elif len(digits) > 1 and digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    return -value if sign == "-" else value


def evaluate_constant(expr: Expr) -> int:
    """Evaluate an integer constant expression.

    :raises UnsupportedExpressionError: For anything other than integer
        literals and unary ``+``, ``-``, ``~``, ``!``.
    """
    if isinstance(expr, IntegerLiteral):
        return parse_integer(expr.value)
    elif isinstance(expr, UnaryOperator):
        value = evaluate_constant(expr.operand)
        if expr.op == "+":
            return +value
        elif expr.op == "-":
            return -value
        elif expr.op == "~":
            return ~value
        elif expr.op == "!":
            return 0 if value else 1
        raise UnsupportedExpressionError(f"unsupported unary operator {expr.op!r}")
    elif isinstance(expr, BinaryOperator):
        raise UnsupportedExpressionError(f"unsupported binary operator {expr.op!r} in {expr}")
    raise UnsupportedExpressionError(f"unsupported expression {type(expr).__name__}")


def compile_expr(expr: Expr) -> str:
    """Evaluate ``expr`` and return it as Python literal text."""
    return str(evaluate_constant(expr))


def _python_int_token(match: re.Match[str]) -> str:
    digits = match.group(1)
    if len(digits) > 1 and digits.isdigit() and digits.startswith("0"):
        return f"0o{digits[1:]}"
    return digits


def normalize_define(name: str, value: str) -> str:
    """Convert pre-expanded ``#define`` text into a Python expression.

    Integer suffixes are dropped and C octal literals become ``0o``
    literals; float literals lose their ``f``/``d``/``l`` suffix. Other text
    (string literals, parenthesised arithmetic) is kept as written and must
    parse as a Python expression. An empty body becomes ``None``.

    :raises UnsupportedExpressionError: If the result is not a Python
        expression.
    """
    text = value.strip()
    if not text:
        return "None"
    float_match = _FLOAT_LITERAL_RE.match(text)
    if float_match is not None:
        return float_match.group(1)
    if not text.startswith(("'", '"')):
        text = _INT_TOKEN_RE.sub(_python_int_token, text)
    try:
        ast.parse(text, mode="eval")
    except SyntaxError as e:
        raise UnsupportedExpressionError(f"define value {value!r} is not a constant expression", name) from e
    return text
