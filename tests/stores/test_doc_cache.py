"""Tests for the content-addressed documentation cache."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from compdoc.stores import DocumentationCache, content_key


def test_doc_cache_round_trip(tmp_path: Path) -> None:
    key = content_key("const Foo = () => null;")
    cache = DocumentationCache(tmp_path / "cache")

    cache.put(key, "/**\n * doc\n */")

    assert cache.get(key) == "/**\n * doc\n */"
    reloaded = DocumentationCache(tmp_path / "cache")
    assert reloaded.get(key) == "/**\n * doc\n */"
    assert key in reloaded


def test_doc_cache_entry_layout(tmp_path: Path) -> None:
    key = content_key("function Foo() {}")
    cache = DocumentationCache(tmp_path)

    cache.put(key, "doc")

    payload = json.loads((tmp_path / f"{key}.json").read_text(encoding="utf-8"))
    assert payload["docstring"] == "doc"
    assert payload["timestamp"].endswith("Z")
    assert [path.name for path in tmp_path.iterdir()] == [f"{key}.json"]


def test_changed_source_misses_the_cache(tmp_path: Path) -> None:
    cache = DocumentationCache(tmp_path)
    cache.put(content_key("const Foo = () => <div />;"), "doc")

    assert cache.get(content_key("const Foo = () => <span />;")) is None


def test_entries_are_never_overwritten(tmp_path: Path) -> None:
    key = content_key("x")
    cache = DocumentationCache(tmp_path)
    cache.put(key, "first")

    DocumentationCache(tmp_path).put(key, "second")

    assert DocumentationCache(tmp_path).get(key) == "first"


def test_memory_only_cache(tmp_path: Path) -> None:
    key = content_key("x")
    cache = DocumentationCache(None)

    cache.put(key, "doc")

    assert cache.root is None
    assert cache.get(key) == "doc"
    assert list(tmp_path.iterdir()) == []


def test_corrupt_entry_is_a_miss(tmp_path: Path) -> None:
    key = content_key("x")
    (tmp_path / f"{key}.json").write_text("{not json", encoding="utf-8")

    assert DocumentationCache(tmp_path).get(key) is None


def test_unwritable_root_is_a_miss(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    key = content_key("x")
    cache = DocumentationCache(blocker / "cache")

    cache.put(key, "doc")

    assert cache.get(key) is None


@pytest.mark.parametrize("key", ["", "../escape", "ABCDEF0123456789", "short"])
def test_invalid_keys_are_rejected(tmp_path: Path, key: str) -> None:
    cache = DocumentationCache(tmp_path)
    with pytest.raises(ValueError):
        cache.get(key)
    with pytest.raises(ValueError):
        cache.put(key, "doc")
