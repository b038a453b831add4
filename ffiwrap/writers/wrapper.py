"""Generate cffi wrapper modules from a parsed header.

Thin writer around :class:`~ffiwrap.compiler.Compiler`; see that module
for the layout of the generated code.
"""

from __future__ import annotations

from ffiwrap.compiler import Compiler
from ffiwrap.ir import Header


class WrapperWriter:
    """Writer that generates a cffi wrapper module from ffiwrap IR.

    Options
    -------
    so_file : str
        Default shared library path embedded as ``SOFILE``.
    class_name : str
        Name of the main class. A dotted name (``"mylib.Zlib"``) sets the
        module's ``__namespace__`` to the prefix.

    Example
    -------
    ::

        from ffiwrap.writers import get_writer

        writer = get_writer("wrapper", so_file="libz.so.1", class_name="Zlib")
        source = writer.write(header)
    """

    def __init__(self, so_file: str = "", class_name: str = "Library") -> None:
        self._so_file = so_file
        self._class_name = class_name

    def write(self, header: Header) -> str:
        """Compile the header into wrapper module source."""
        so_file = self._so_file or header.path
        return Compiler().compile(so_file, header.declarations, header.defines, self._class_name)

    @property
    def name(self) -> str:
        return "wrapper"

    @property
    def format_description(self) -> str:
        return "Python cffi wrapper module"


# Bottom-of-module self-registration; see ffiwrap.writers._load_builtin_writers.
from ffiwrap.writers import register_writer  # noqa: E402

register_writer("wrapper", WrapperWriter, is_default=True)
