"""Tests for documentation block formatting and detection."""

from __future__ import annotations

import pytest

from compdoc.models import Span
from compdoc.postproc import find_existing_block, indent_block, sanitize_docstring
from compdoc.postproc.docblocks import find_preceding_block, strip_export_prefix


def test_sanitize_wraps_plain_text() -> None:
    assert sanitize_docstring("Renders a button.\n\n@param {Object} props") == (
        "/**\n * Renders a button.\n *\n * @param {Object} props\n */"
    )


def test_sanitize_removes_nested_delimiters() -> None:
    raw = "/**\n * Outer /* inner */ text\n * closes early */ here\n */"

    cleaned = sanitize_docstring(raw)

    assert cleaned.startswith("/**\n")
    assert cleaned.endswith("\n */")
    body = cleaned[len("/**") : -len("*/")]
    assert "/*" not in body
    assert "*/" not in body
    assert cleaned.count("/**") == 1
    assert cleaned.count("*/") == 1


def test_sanitize_cannot_be_tricked_into_new_delimiters() -> None:
    cleaned = sanitize_docstring("a /*/ b **/ c")

    body = cleaned[len("/**") : -len("*/")]
    assert "/*" not in body
    assert "*/" not in body


@pytest.mark.parametrize(
    "raw",
    [
        "Simple description",
        "/** One liner */",
        "/**\n * Title\n *\n * @returns {JSX.Element}\n */",
        "   /*\n      indented body\n        nested indent\n   */",
        "**Bold** markdown and * bullet",
        "*/ leading closer /* trailing opener",
        "",
    ],
)
def test_sanitize_is_idempotent(raw: str) -> None:
    once = sanitize_docstring(raw)
    assert sanitize_docstring(once) == once


def test_sanitize_keeps_markdown_emphasis() -> None:
    cleaned = sanitize_docstring("**Bold** heading")
    assert " * **Bold** heading" in cleaned.splitlines()


def test_sanitize_preserves_relative_indentation() -> None:
    cleaned = sanitize_docstring("/**\n * @example\n *   <Foo />\n */")
    assert cleaned.splitlines() == ["/**", " * @example", " *   <Foo />", " */"]


def test_indent_block_indents_continuation_lines() -> None:
    block = "/**\n * Doc\n *\n */"
    assert indent_block(block, "  ") == "  /**\n   * Doc\n   *\n   */"
    assert indent_block(block, "  ", include_first=False) == "/**\n   * Doc\n   *\n   */"
    assert indent_block(block, "") == block


def test_find_preceding_block_requires_adjacency() -> None:
    text = "/** doc */\n\nconst x = 1;\n/** other */ const y = 2;"

    assert find_preceding_block(text, text.index("const x")) == Span(0, 10)
    position = text.index("const y")
    assert find_preceding_block(text, position) == Span(position - 13, position - 1)


def test_find_preceding_block_ignores_plain_comments() -> None:
    text = "/** doc */\nconst a = 1;\n/* plain */\nfunction Foo() {}"
    assert find_preceding_block(text, text.index("function")) is None


@pytest.mark.parametrize(
    "prefix",
    ['const pattern = "src/**/*.js";\n', "/** doc */\nconst a = 1;\n", "/**/\n"],
)
def test_plain_comment_is_not_joined_to_an_earlier_opener(prefix: str) -> None:
    text = prefix + "/* plain note */\nfunction Foo() {}\n"
    position = text.index("function")

    assert find_preceding_block(text, position) is None
    assert find_existing_block(text, position) is None


def test_find_existing_block_looks_past_export_keywords() -> None:
    text = "/**\n * Doc\n */\nexport default function Foo() {}\n"
    position = text.index("function")

    assert strip_export_prefix(text, position) == text.index("export")
    assert find_existing_block(text, position) == Span(0, text.index("\nexport"))


def test_find_existing_block_uses_line_start_for_shared_lines() -> None:
    text = "/** Doc */\nexport const A = 1, B = () => null;\n"
    position = text.index("B =")

    assert find_existing_block(text, position) == Span(0, 10)


def test_strip_export_prefix_ignores_identifiers_ending_in_export() -> None:
    text = "reexport function Foo() {}"
    position = text.index("function")
    assert strip_export_prefix(text, position) == position
