"""Builds oracle prompts for individual declarations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from ..models import Declaration
from .constants import KIND_LABELS, PROMPT_TEMPLATE, SYSTEM_PROMPT

_FENCE_BY_SUFFIX = {
    ".ts": "ts",
    ".tsx": "tsx",
    ".js": "jsx",
    ".jsx": "jsx",
}


@dataclass
class PromptRequest:
    """System and user messages for a single declaration."""

    system: str
    prompt: str


class PromptBuilder:
    """Renders the documentation prompt for a declaration."""

    def __init__(self, system_prompt: str = SYSTEM_PROMPT, template: str = PROMPT_TEMPLATE) -> None:
        self.system_prompt = system_prompt
        self.template = template

    def build(self, declaration: Declaration) -> PromptRequest:
        wrapper_line = (
            f"Wrapped With: {declaration.wrapper}\n" if declaration.wrapper else ""
        )
        suffix = PurePosixPath(declaration.file).suffix.lower()
        prompt = self.template.format(
            kind_label=KIND_LABELS.get(declaration.kind.value, "component"),
            name=declaration.name,
            file=declaration.file,
            line=declaration.location.line,
            column=declaration.location.column,
            wrapper_line=wrapper_line,
            fence=_FENCE_BY_SUFFIX.get(suffix, "jsx"),
            source=declaration.source,
        )
        return PromptRequest(system=self.system_prompt, prompt=prompt)


__all__ = ["PromptBuilder", "PromptRequest"]
