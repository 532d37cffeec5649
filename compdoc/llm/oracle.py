"""Documentation oracle backed by an LLM runner."""

from __future__ import annotations

import json
import re
from typing import Protocol

from ..models import Declaration
from ..prompting.builder import PromptBuilder
from .runner import LLMRunner

_CODE_FENCE = re.compile(r"^```[\w-]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


class GenerationError(RuntimeError):
    """Raised when the oracle cannot produce documentation for a declaration."""


class DocumentationOracle(Protocol):
    """Turns a declaration into a documentation block."""

    def generate(self, declaration: Declaration) -> str:
        ...


class LLMDocumentationOracle:
    """Asks a model for a JSDoc block describing the declaration."""

    def __init__(self, runner: LLMRunner, prompt_builder: PromptBuilder | None = None) -> None:
        self.runner = runner
        self.prompt_builder = prompt_builder or PromptBuilder()

    def generate(self, declaration: Declaration) -> str:
        request = self.prompt_builder.build(declaration)
        try:
            response = self.runner.run(request.prompt, system=request.system, json_mode=True)
        except RuntimeError as exc:
            raise GenerationError(str(exc)) from exc
        return extract_docstring(response)


def extract_docstring(response: str) -> str:
    """Pull the documentation block out of a model response."""
    body = response.strip()
    fenced = _CODE_FENCE.match(body)
    if fenced:
        body = fenced.group(1).strip()

    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict):
        docstring = payload.get("docstring")
        if isinstance(docstring, str) and docstring.strip():
            return docstring.strip()
        raise GenerationError("Response JSON has no 'docstring' field")

    start = body.find("/**")
    end = body.rfind("*/")
    if start != -1 and end > start:
        return body[start : end + 2]
    raise GenerationError("Response does not contain a documentation block")


__all__ = [
    "DocumentationOracle",
    "GenerationError",
    "LLMDocumentationOracle",
    "extract_docstring",
]
