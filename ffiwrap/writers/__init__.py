"""Writers that turn a parsed :class:`~ffiwrap.ir.Header` into text.

``wrapper`` (the default) emits the cffi wrapper module, ``c`` the C text
handed to ``ffi.cdef``, and ``json`` the IR dump the command line reads.
Each writer module registers itself when imported; the built-in modules
are imported on the first lookup::

    from ffiwrap.writers import get_writer

    source = get_writer("wrapper", so_file="libz.so.1", class_name="Zlib").write(header)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ffiwrap.ir import Header

__all__ = [
    "WriterBackend",
    "get_default_writer",
    "get_writer",
    "is_writer_available",
    "list_writers",
    "register_writer",
]


@runtime_checkable
class WriterBackend(Protocol):
    """What the command line needs from a writer.

    Options such as the wrapper's library path are constructor arguments.
    """

    def write(self, header: Header) -> str:
        """Render ``header``; may raise :class:`ffiwrap.errors.CompileError`."""
        ...

    @property
    def name(self) -> str: ...

    @property
    def format_description(self) -> str: ...


_writers: dict[str, type[WriterBackend]] = {}
_default: str | None = None
_builtins_loaded = False


def register_writer(name: str, writer_class: type[WriterBackend], is_default: bool = False) -> None:
    """Make ``writer_class`` available as ``name``.

    The first writer registered is the default until one registers with
    ``is_default=True``.

    :raises ValueError: If ``name`` is taken.
    """
    global _default  # pylint: disable=global-statement
    if name in _writers:
        raise ValueError(f"Writer already registered: {name!r}")
    _writers[name] = writer_class
    if is_default or _default is None:
        _default = name


def list_writers() -> list[str]:
    """Registered writer names, in registration order."""
    _load_builtin_writers()
    return list(_writers)


def is_writer_available(name: str) -> bool:
    _load_builtin_writers()
    return name in _writers


def get_default_writer() -> str:
    """Name of the default writer.

    :raises ValueError: If nothing is registered.
    """
    _load_builtin_writers()
    if _default is None:
        raise ValueError("No writers available")
    return _default


def get_writer(name: str | None = None, **options: object) -> WriterBackend:
    """Instantiate writer ``name`` (the default if None) with ``options``.

    :raises ValueError: If no such writer is registered.
    """
    if name is None:
        name = get_default_writer()
    elif not is_writer_available(name):
        raise ValueError(f"Unknown writer: {name!r}. Available: {', '.join(_writers) or '(none)'}")
    return _writers[name](**options)


def _load_builtin_writers() -> None:
    # The writer modules import register_writer from here, so they can only
    # be imported once this module has finished loading.
    global _builtins_loaded  # pylint: disable=global-statement
    if _builtins_loaded:
        return
    _builtins_loaded = True
    import ffiwrap.writers.wrapper  # noqa: F401
    import ffiwrap.writers.c  # noqa: F401
    import ffiwrap.writers.json  # noqa: F401
