"""Flatten typedef chains down to their primitive kind.

Given ``typedef int A; typedef A B;`` the resolver maps both ``A`` and ``B``
to ``"int"``, so wrapper generation can tell that ``B`` holds a scalar that
must be boxed without re-walking the chain.

Typedef references form a graph (typedef name -> referenced name). Each
chain is followed iteratively until it reaches a builtin, a typedef of a
non-primitive type, or a name already seen on the current walk (a cycle).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ffiwrap.classify import primitive_kind, strip_attributes
from ffiwrap.errors import UnresolvableTypedefChainError
from ffiwrap.ir import BuiltinType, Declaration, TypedefDecl, TypedefType

logger = logging.getLogger(__name__)


def build_resolver(decls: Iterable[Declaration]) -> dict[str, str]:
    """Map every typedef that bottoms out in a builtin to that builtin's name.

    Typedefs whose chain ends in a struct, enum, pointer or array typedef
    are left out of the mapping.

    :param decls: All declarations of one header.
    :returns: ``typedef name -> builtin spelling``.
    :raises UnresolvableTypedefChainError: If a chain is cyclic or references
        a name that is neither a declared typedef nor a builtin spelling.
    """
    declared: set[str] = set()
    result: dict[str, str] = {}
    edges: dict[str, str] = {}
    for decl in decls:
        if not isinstance(decl, TypedefDecl):
            continue
        declared.add(decl.name)
        underlying = strip_attributes(decl.type)
        if isinstance(underlying, BuiltinType):
            result[decl.name] = underlying.name
        elif isinstance(underlying, TypedefType):
            edges[decl.name] = underlying.name

    settled: set[str] = set(result)
    for start in edges:
        if start in settled:
            continue
        chain = [start]
        on_chain = {start}
        target = edges[start]
        while True:
            if target in settled:
                kind = result.get(target)
                break
            if target in edges:
                if target in on_chain:
                    cycle = chain[chain.index(target) :] + [target]
                    raise UnresolvableTypedefChainError(
                        "cyclic typedef chain " + " -> ".join(cycle), cycle, start
                    )
                chain.append(target)
                on_chain.add(target)
                target = edges[target]
                continue
            if target in declared:
                # typedef of a struct, enum, pointer or array: not a primitive
                kind = None
            elif target == "void" or primitive_kind(target) is not None:
                kind = target
            else:
                raise UnresolvableTypedefChainError(
                    f"typedef chain {' -> '.join(chain + [target])} references undeclared type {target!r}",
                    chain + [target],
                    start,
                )
            break
        for name in chain:
            settled.add(name)
            if kind is not None:
                result[name] = kind

    logger.debug("resolved %d typedef aliases (%d via chains)", len(result), len(edges))
    return result
