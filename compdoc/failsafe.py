"""Deterministic fallback documentation used when generation fails."""

from __future__ import annotations

from .models import Declaration, DeclarationKind, Location

_RETURNS_BY_KIND = {
    DeclarationKind.FUNCTION: "{React.ReactElement} The rendered element",
    DeclarationKind.ARROW: "{React.ReactElement} The rendered element",
    DeclarationKind.CLASS: "{React.Component} A class component instance",
    DeclarationKind.STYLED_OR_HOC: "{React.ReactElement} The wrapped component",
}


def build_fallback_docstring(
    name: str,
    file: str,
    location: Location,
    kind: DeclarationKind,
) -> str:
    """Return a minimal block built only from declaration metadata.

    The output depends on nothing but the arguments so repeated runs produce
    byte-identical text.
    """
    returns = _RETURNS_BY_KIND.get(kind, "{React.ReactElement} A React component")
    return "\n".join(
        [
            "/**",
            f" * {name} Component",
            " *",
            f" * @description A React component defined in {file} "
            f"(line {location.line}, column {location.column})",
            f" * @component {kind.value}",
            " * @param {Object} props - Component props",
            f" * @returns {returns}",
            " */",
        ]
    )


def fallback_for(declaration: Declaration) -> str:
    return build_fallback_docstring(
        declaration.name, declaration.file, declaration.location, declaration.kind
    )


__all__ = ["build_fallback_docstring", "fallback_for"]
