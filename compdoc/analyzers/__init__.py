"""Source analyzers that discover documentable declarations."""

from .declarations import (
    BASE_COMPONENT_NAMES,
    WRAPPER_NAMES,
    DeclarationLocator,
    build_identity,
    dialect_for_path,
    locate_declarations,
)

__all__ = [
    "BASE_COMPONENT_NAMES",
    "DeclarationLocator",
    "WRAPPER_NAMES",
    "build_identity",
    "dialect_for_path",
    "locate_declarations",
]
