"""Prompt construction for documentation generation."""

from .builder import PromptBuilder, PromptRequest

__all__ = ["PromptBuilder", "PromptRequest"]
