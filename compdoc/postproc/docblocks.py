"""Documentation block formatting and detection."""

from __future__ import annotations

import re
import textwrap
from typing import Optional

from ..models import Span

OPEN_MARKER = "/**"
CLOSE_MARKER = "*/"

_NESTED_DELIMITERS = ("/*", "*/")
_EXPORT_TAIL = re.compile(r"(?<![\w$])export(?:\s+default)?\s*\Z")
_EXPORT_LOOKBACK = 64


def sanitize_docstring(text: str) -> str:
    """Return ``text`` as a well-formed block with exactly one opener and closer.

    Outer markers are stripped, every nested ``/*`` or ``*/`` is removed from
    the body and leading ``*`` decoration is normalised before re-wrapping.
    Sanitising an already sanitised block returns it unchanged.
    """
    body = text.strip()
    if body.startswith(OPEN_MARKER):
        body = body[len(OPEN_MARKER) :]
    elif body.startswith("/*"):
        body = body[2:]
    if body.endswith(CLOSE_MARKER):
        body = body[: -len(CLOSE_MARKER)]

    while any(delimiter in body for delimiter in _NESTED_DELIMITERS):
        for delimiter in _NESTED_DELIMITERS:
            body = body.replace(delimiter, "")

    lines = []
    for line in textwrap.dedent(body).splitlines():
        stripped = line.lstrip()
        if stripped == "*" or stripped.startswith("* "):
            line = stripped[2:]
        lines.append(line.rstrip())

    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()

    rendered = [OPEN_MARKER]
    rendered.extend(f" * {line}" if line else " *" for line in lines)
    rendered.append(f" {CLOSE_MARKER}")
    return "\n".join(rendered)


def indent_block(block: str, indent: str, *, include_first: bool = True) -> str:
    """Prefix block lines with ``indent``; the first line only when asked."""
    if not indent:
        return block
    lines = block.split("\n")
    indented = [indent + line if line else line for line in lines[1:]]
    first = indent + lines[0] if include_first else lines[0]
    return "\n".join([first, *indented])


def line_start(text: str, position: int) -> int:
    """Offset of the first character of the line containing ``position``."""
    return text.rfind("\n", 0, position) + 1


def line_indent(text: str, position: int) -> str:
    """Leading whitespace of the line containing ``position``."""
    start = line_start(text, position)
    end = start
    while end < len(text) and text[end] in " \t":
        end += 1
    return text[start:end]


def strip_export_prefix(text: str, position: int) -> int:
    """Move ``position`` back over an ``export`` / ``export default`` keyword."""
    window_start = max(0, position - _EXPORT_LOOKBACK)
    match = _EXPORT_TAIL.search(text[window_start:position])
    if match is None:
        return position
    return window_start + match.start()


def find_preceding_block(text: str, position: int) -> Optional[Span]:
    """Return the block that ends right before ``position``, if any.

    Only whitespace may separate the closing marker from ``position``. The
    comment opens at the nearest ``/*`` before that marker and counts as a
    block only when that opener is ``/**``.
    """
    head = text[:position]
    close = head.rfind(CLOSE_MARKER)
    if close == -1:
        return None
    if head[close + len(CLOSE_MARKER) :].strip():
        return None
    opener = head.rfind("/*", 0, close)
    if opener == -1 or not head.startswith(OPEN_MARKER, opener):
        return None
    return Span(opener, close + len(CLOSE_MARKER))


def find_existing_block(text: str, position: int) -> Optional[Span]:
    """Locate the documentation block that belongs to a declaration at ``position``.

    The search starts before any ``export`` keyword. When the declaration
    shares its line with other code, the start of that line is tried as well
    because new blocks are inserted there.
    """
    anchor = strip_export_prefix(text, position)
    block = find_preceding_block(text, anchor)
    if block is not None:
        return block
    start = line_start(text, anchor)
    if text[start:anchor].strip():
        return find_preceding_block(text, start)
    return None


__all__ = [
    "CLOSE_MARKER",
    "OPEN_MARKER",
    "find_existing_block",
    "find_preceding_block",
    "indent_block",
    "line_indent",
    "line_start",
    "sanitize_docstring",
    "strip_export_prefix",
]
