"""Position-stable insertion of documentation blocks into one file."""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from .logging import get_logger
from .models import (
    Declaration,
    Disposition,
    DocumentationResult,
    PatchOutcome,
    PatchResult,
    Span,
)
from .postproc.docblocks import (
    find_existing_block,
    indent_block,
    line_indent,
    line_start,
    sanitize_docstring,
)

APPLIED = "applied"
SKIPPED = "skipped"
FAILED = "failed"


class DocumentationPatcher:
    """Applies per-declaration documentation edits to a single text buffer.

    Declarations are handled from the bottom of the file upwards. Every edit
    lands on or after the line of the declaration that produced it, so the
    text preceding any declaration that is still pending is identical to the
    original and the declaration can be found again by its signature.
    """

    def __init__(self, *, update_existing: bool = False) -> None:
        self.update_existing = update_existing
        self.logger = get_logger("patcher")

    def patch(
        self,
        original_text: str,
        declarations: Sequence[Declaration],
        documentation: Mapping[str, DocumentationResult],
    ) -> PatchResult:
        buffer = original_text
        result = PatchResult(new_text=original_text)
        inserted: List[Span] = []

        ordered = sorted(declarations, key=lambda declaration: declaration.span.start, reverse=True)
        for declaration in ordered:
            position = self._relocate(buffer, declaration)
            if position is None:
                self.logger.error("Could not locate component %s in file", declaration.name)
                self._record(result, declaration, FAILED, "signature not found")
                continue

            doc = documentation.get(declaration.identity)
            status, payload = self._precheck(doc)
            if status is not None:
                self.logger.debug("Skipping component %s (%s)", declaration.name, payload)
                self._record(result, declaration, status, payload)
                continue
            docstring = sanitize_docstring(payload)

            block = find_existing_block(buffer, position)
            if block is not None and block in inserted:
                block = None

            if block is None:
                insert_at = line_start(buffer, position)
                indent = line_indent(buffer, position)
                text = indent_block(docstring, indent) + "\n"
                buffer = buffer[:insert_at] + text + buffer[insert_at:]
                inserted = _shift(inserted, insert_at, len(text))
                inserted.append(Span(insert_at + len(indent), insert_at + len(text) - 1))
                self.logger.debug("Added documentation for %s", declaration.name)
                self._record(result, declaration, APPLIED, "inserted")
            elif self.update_existing:
                block_line = line_start(buffer, block.start)
                indent = "" if buffer[block_line : block.start].strip() else buffer[block_line : block.start]
                text = indent_block(docstring, indent, include_first=False)
                buffer = buffer[: block.start] + text + buffer[block.end :]
                inserted = _shift(inserted, block.end, len(text) - len(block))
                self.logger.debug("Updated existing documentation for %s", declaration.name)
                self._record(result, declaration, APPLIED, "replaced")
            else:
                self.logger.debug("Skipping %s - already has documentation", declaration.name)
                self._record(result, declaration, SKIPPED, "already documented")

        result.new_text = buffer
        result.modified = buffer != original_text
        return result

    def _relocate(self, buffer: str, declaration: Declaration) -> Optional[int]:
        signature = declaration.signature
        if not signature:
            return None
        if declaration.occurrence or buffer.count(signature) > 1:
            self.logger.debug(
                "Signature of %s is not unique in %s; using occurrence %d",
                declaration.name,
                declaration.file,
                declaration.occurrence,
            )
        index = -1
        for _ in range(declaration.occurrence + 1):
            index = buffer.find(signature, index + 1)
            if index == -1:
                return None
        return index

    @staticmethod
    def _precheck(doc: Optional[DocumentationResult]) -> tuple[Optional[str], str]:
        """Return ``(status, detail)`` for unusable results, else ``(None, text)``."""
        if doc is None:
            return SKIPPED, "no documentation result"
        if doc.disposition is Disposition.SKIPPED_EXISTING:
            return SKIPPED, "skipped existing"
        if not doc.text:
            if doc.disposition is Disposition.FAILED:
                return FAILED, doc.error or "generation failed"
            return SKIPPED, "empty documentation"
        return None, doc.text

    @staticmethod
    def _record(result: PatchResult, declaration: Declaration, status: str, detail: str) -> None:
        if status == APPLIED:
            result.applied += 1
        elif status == SKIPPED:
            result.skipped += 1
        else:
            result.failed += 1
        result.outcomes.append(
            PatchOutcome(
                identity=declaration.identity,
                name=declaration.name,
                status=status,
                detail=detail,
            )
        )


def _shift(spans: List[Span], at: int, delta: int) -> List[Span]:
    return [
        Span(span.start + delta, span.end + delta) if span.start >= at else span
        for span in spans
    ]


def patch_file(
    original_text: str,
    declarations: Sequence[Declaration],
    documentation: Mapping[str, DocumentationResult],
    *,
    update_existing: bool = False,
) -> PatchResult:
    """Return ``original_text`` with documentation applied to every eligible declaration."""
    patcher = DocumentationPatcher(update_existing=update_existing)
    return patcher.patch(original_text, declarations, documentation)


__all__ = ["APPLIED", "DocumentationPatcher", "FAILED", "SKIPPED", "patch_file"]
