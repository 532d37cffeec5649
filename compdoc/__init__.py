"""compdoc: in-place JSDoc generation for React components."""

from .analyzers import locate_declarations
from .patcher import patch_file
from .stores import DocumentationCache

__all__ = ["DocumentationCache", "locate_declarations", "patch_file"]
