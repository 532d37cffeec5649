"""Core data models shared across compdoc components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class DeclarationKind(str, Enum):
    """Closed set of declaration shapes recognised as components."""

    FUNCTION = "FunctionDeclaration"
    ARROW = "ArrowDeclaration"
    CLASS = "ClassDeclaration"
    STYLED_OR_HOC = "StyledOrHocDeclaration"


class Disposition(str, Enum):
    """Outcome of the documentation step for one declaration."""

    GENERATED = "generated"
    SKIPPED_EXISTING = "skippedExisting"
    FAILED = "failed"


@dataclass(frozen=True)
class Span:
    """Half-open ``[start, end)`` interval of offsets into a text."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Location:
    """1-based line/column position."""

    line: int
    column: int


@dataclass
class Declaration:
    """A documentable component discovered in a source file."""

    name: str
    kind: DeclarationKind
    file: str
    span: Span
    signature: str
    location: Location
    identity: str
    source: str
    occurrence: int = 0
    existing_doc: Optional[Span] = None
    exported: bool = False
    wrapper: Optional[str] = None
    file_path: Optional[Path] = None

    @property
    def has_existing_doc(self) -> bool:
        return self.existing_doc is not None


@dataclass
class DocumentationResult:
    """Generated (or fallback) documentation for a single declaration."""

    text: Optional[str]
    disposition: Disposition
    fallback: bool = False
    cached: bool = False
    error: Optional[str] = None


@dataclass
class PatchOutcome:
    """What the patcher did with one declaration."""

    identity: str
    name: str
    status: str
    detail: str = ""


@dataclass
class PatchResult:
    """Rewritten file text plus per-declaration counters."""

    new_text: str
    applied: int = 0
    skipped: int = 0
    failed: int = 0
    modified: bool = False
    outcomes: List[PatchOutcome] = field(default_factory=list)


@dataclass
class SourceFile:
    """A candidate source file discovered by the scanner."""

    path: Path
    relative_path: str


__all__ = [
    "Declaration",
    "DeclarationKind",
    "Disposition",
    "DocumentationResult",
    "Location",
    "PatchOutcome",
    "PatchResult",
    "SourceFile",
    "Span",
]
