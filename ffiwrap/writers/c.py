"""Write a parsed header back out as C declarations."""

from __future__ import annotations

from ffiwrap.ir import Header
from ffiwrap.printer import decls_to_c


class CWriter:
    """Writer that prints ffiwrap IR as C declarations.

    The output is the same text a generated wrapper module embeds as
    ``HEADER_DEF`` and passes to ``ffi.cdef()``.
    """

    def write(self, header: Header) -> str:
        """Render the header's declarations as C text."""
        return decls_to_c(header.declarations)

    @property
    def name(self) -> str:
        return "c"

    @property
    def format_description(self) -> str:
        return "C declarations for ffi.cdef()"


from ffiwrap.writers import register_writer  # noqa: E402

register_writer("c", CWriter)
