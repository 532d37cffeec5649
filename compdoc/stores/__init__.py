"""Persistent stores used by compdoc."""

from .doc_cache import DocumentationCache, content_key

__all__ = ["DocumentationCache", "content_key"]
