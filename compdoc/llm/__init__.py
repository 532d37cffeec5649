"""Model runners and the documentation oracle."""

from .oracle import DocumentationOracle, GenerationError, LLMDocumentationOracle
from .runner import LLMRunner, RunnerError

__all__ = ["DocumentationOracle", "GenerationError", "LLMDocumentationOracle", "LLMRunner", "RunnerError"]
