"""Post-processing helpers for documentation blocks."""

from .docblocks import (
    CLOSE_MARKER,
    OPEN_MARKER,
    find_existing_block,
    indent_block,
    sanitize_docstring,
)

__all__ = [
    "CLOSE_MARKER",
    "OPEN_MARKER",
    "find_existing_block",
    "indent_block",
    "sanitize_docstring",
]
