"""Tree-sitter powered component declaration locator."""

from __future__ import annotations

import re
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..logging import get_logger
from ..models import Declaration, DeclarationKind, Location, Span
from ..postproc.docblocks import find_existing_block, line_start

_LANGUAGE_LOADERS: Dict[str, Callable[[], object]] = {
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

WRAPPER_NAMES = frozenset({"styled", "memo", "forwardRef"})
BASE_COMPONENT_NAMES = frozenset({"Component", "PureComponent"})

_TRANSPARENT_WRAPPERS = {
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
}
_IDENTITY_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


def dialect_for_path(path_hint: str | Path) -> str:
    """Pick the grammar for a file: TypeScript, TSX or JavaScript (with JSX)."""
    suffix = Path(path_hint).suffix.lower()
    if suffix == ".ts":
        return "typescript"
    if suffix == ".tsx":
        return "tsx"
    return "javascript"


def build_identity(name: str, relative_path: str, location: Location) -> str:
    """Deterministic project-wide identifier for a declaration."""
    sanitized = _IDENTITY_UNSAFE.sub("_", relative_path)
    return f"{name}_{sanitized}_{location.line}_{location.column}"


class _OffsetMap:
    """Converts tree-sitter byte offsets into string positions."""

    def __init__(self, text: str, data: bytes) -> None:
        self._data = data
        self._identity = len(text) == len(data)

    def to_text(self, byte_offset: int) -> int:
        if self._identity:
            return byte_offset
        return len(self._data[:byte_offset].decode("utf-8", errors="replace"))


class DeclarationLocator:
    """Finds component declarations and their documentation blocks in one file.

    Parsers are cached per thread, so one locator may serve concurrent callers.
    """

    def __init__(self) -> None:
        self._local = threading.local()
        self._matchers: Dict[str, Callable[[Node, bytes], Optional[tuple]]] = {
            "function_declaration": self._match_function,
            "lexical_declaration": self._match_variable,
            "variable_declaration": self._match_variable,
            "class_declaration": self._match_class,
        }
        self.logger = get_logger("locator")

    def locate(
        self,
        text: str,
        path_hint: str | Path,
        *,
        relative_path: str | None = None,
        file_path: Path | None = None,
    ) -> List[Declaration]:
        """Return the declarations in ``text`` sorted by start offset.

        Unparsable input yields an empty list; it is never an error.
        """
        rel = relative_path if relative_path is not None else Path(path_hint).as_posix()
        source_bytes = text.encode("utf-8")
        parser = self._get_parser(dialect_for_path(path_hint))
        try:
            tree = parser.parse(source_bytes)
        except (ValueError, RuntimeError) as exc:
            self.logger.debug("Failed to parse %s: %s", rel, exc)
            return []
        if tree.root_node.has_error:
            self.logger.debug("Failed to parse %s: syntax errors in file", rel)
            return []

        offsets = _OffsetMap(text, source_bytes)
        declarations: List[Declaration] = []
        stack = [tree.root_node]
        while stack:
            node = stack.pop()
            matcher = self._matchers.get(node.type)
            match = matcher(node, source_bytes) if matcher else None
            if match is None:
                stack.extend(reversed(node.children))
                continue
            name, kind, wrapper = match
            declarations.append(
                self._build_declaration(
                    text, node, offsets, name, kind, wrapper, rel, file_path
                )
            )

        declarations.sort(key=lambda declaration: declaration.span.start)
        if declarations:
            self.logger.debug(
                "Found %d components in %s: %s",
                len(declarations),
                rel,
                ", ".join(declaration.name for declaration in declarations),
            )
        return declarations

    def _get_parser(self, dialect: str) -> Parser:
        parsers: Optional[Dict[str, Parser]] = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = self._local.parsers = {}
        parser = parsers.get(dialect)
        if parser is None:
            parser = Parser(Language(_LANGUAGE_LOADERS[dialect]()))
            parsers[dialect] = parser
        return parser

    def _build_declaration(
        self,
        text: str,
        node: Node,
        offsets: _OffsetMap,
        name: str,
        kind: DeclarationKind,
        wrapper: Optional[str],
        relative_path: str,
        file_path: Optional[Path],
    ) -> Declaration:
        start = offsets.to_text(node.start_byte)
        end = offsets.to_text(node.end_byte)
        source = text[start:end]
        signature = source.split("\n", 1)[0].strip()
        location = Location(
            line=text.count("\n", 0, start) + 1,
            column=start - line_start(text, start) + 1,
        )
        parent = node.parent
        return Declaration(
            name=name,
            kind=kind,
            file=relative_path,
            span=Span(start, end),
            signature=signature,
            location=location,
            identity=build_identity(name, relative_path, location),
            source=source,
            occurrence=_count_occurrences(text, signature, start),
            existing_doc=find_existing_block(text, start),
            exported=parent is not None and parent.type == "export_statement",
            wrapper=wrapper,
            file_path=file_path,
        )

    # ------------------------------------------------------------------
    # Shape matchers: each returns (name, kind, wrapper) or None.

    def _match_function(self, node: Node, source_bytes: bytes) -> Optional[tuple]:
        name = self._field_text(node, "name", source_bytes)
        if not _is_component_name(name):
            return None
        return name, DeclarationKind.FUNCTION, None

    def _match_variable(self, node: Node, source_bytes: bytes) -> Optional[tuple]:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = self._field_text(declarator, "name", source_bytes)
            if not _is_component_name(name):
                continue
            value = _unwrap(declarator.child_by_field_name("value"))
            if value is None:
                continue
            if value.type == "arrow_function":
                return name, DeclarationKind.ARROW, None
            if value.type == "call_expression":
                wrapper = self._wrapper_name(value.child_by_field_name("function"), source_bytes)
                if wrapper is not None:
                    return name, DeclarationKind.STYLED_OR_HOC, wrapper
        return None

    def _match_class(self, node: Node, source_bytes: bytes) -> Optional[tuple]:
        name = self._field_text(node, "name", source_bytes)
        if not _is_component_name(name):
            return None
        superclass = _superclass(node)
        if superclass is None:
            return None
        if superclass.type == "identifier":
            base = self._node_text(superclass, source_bytes)
        elif superclass.type == "member_expression" and _is_qualified_name(superclass):
            base = self._field_text(superclass, "property", source_bytes)
        else:
            return None
        if base not in BASE_COMPONENT_NAMES:
            return None
        return name, DeclarationKind.CLASS, None

    def _wrapper_name(self, callee: Optional[Node], source_bytes: bytes) -> Optional[str]:
        if callee is None:
            return None
        if callee.type == "identifier":
            name = self._node_text(callee, source_bytes)
            return name if name in WRAPPER_NAMES else None
        if callee.type == "member_expression":
            prop = self._field_text(callee, "property", source_bytes)
            if prop in WRAPPER_NAMES:
                return prop
        if callee.type in {"member_expression", "call_expression"}:
            root = _chain_root(callee)
            if root is not None and self._node_text(root, source_bytes) == "styled":
                return "styled"
        return None

    @staticmethod
    def _node_text(node: Node, source_bytes: bytes) -> str:
        return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")

    @classmethod
    def _field_text(cls, node: Node, field: str, source_bytes: bytes) -> str:
        child = node.child_by_field_name(field)
        return cls._node_text(child, source_bytes) if child is not None else ""


def _is_component_name(name: str) -> bool:
    return bool(name) and name[0].isupper()


def _unwrap(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type in _TRANSPARENT_WRAPPERS:
        inner = node.named_children
        node = inner[0] if inner else None
    return node


def _superclass(node: Node) -> Optional[Node]:
    for child in node.children:
        if child.type != "class_heritage":
            continue
        for item in child.named_children:
            if item.type == "extends_clause":
                value = item.child_by_field_name("value")
                if value is None and item.named_children:
                    value = item.named_children[0]
                return value
            if item.type != "implements_clause":
                return item
    return None


def _is_qualified_name(node: Node) -> bool:
    while node.type == "member_expression":
        obj = node.child_by_field_name("object")
        if obj is None:
            return False
        node = obj
    return node.type == "identifier"


def _chain_root(node: Node) -> Optional[Node]:
    current: Optional[Node] = node
    while current is not None:
        if current.type == "identifier":
            return current
        if current.type == "member_expression":
            current = current.child_by_field_name("object")
        elif current.type == "call_expression":
            current = current.child_by_field_name("function")
        else:
            return None
    return None


def _count_occurrences(text: str, needle: str, limit: int) -> int:
    if not needle:
        return 0
    count = 0
    index = text.find(needle)
    while index != -1 and index < limit:
        count += 1
        index = text.find(needle, index + 1)
    return count


def locate_declarations(
    text: str,
    path_hint: str | Path,
    *,
    relative_path: str | None = None,
    file_path: Path | None = None,
) -> List[Declaration]:
    """Convenience wrapper around :class:`DeclarationLocator`."""
    return DeclarationLocator().locate(
        text, path_hint, relative_path=relative_path, file_path=file_path
    )


__all__ = [
    "BASE_COMPONENT_NAMES",
    "DeclarationLocator",
    "WRAPPER_NAMES",
    "build_identity",
    "dialect_for_path",
    "locate_declarations",
]
