"""Content-addressed cache for generated documentation."""

from __future__ import annotations

from datetime import UTC, datetime
import hashlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional

from ..logging import get_logger

_KEY_PATTERN = re.compile(r"^[0-9a-f]{16,128}$")


def content_key(source: str) -> str:
    """Return the cache key for a declaration's exact source text."""
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


class DocumentationCache:
    """Maps source hashes to documentation text, one JSON record per entry.

    Entries are written once and never updated or expired; a changed
    declaration hashes to a new key. ``root=None`` keeps entries in memory.
    """

    def __init__(self, root: Path | None) -> None:
        self._root = root
        self._memory: Dict[str, str] = {}
        self.logger = get_logger("cache")

    @property
    def root(self) -> Path | None:
        return self._root

    def get(self, key: str) -> Optional[str]:
        _validate_key(key)
        if key in self._memory:
            return self._memory[key]
        if self._root is None:
            return None
        path = _entry_path(self._root, key)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            self.logger.warning("Error loading doc from cache (%s): %s", key, exc)
            return None
        docstring = payload.get("docstring") if isinstance(payload, dict) else None
        if not isinstance(docstring, str):
            self.logger.warning("Ignoring malformed cache entry %s", path.name)
            return None
        self._memory[key] = docstring
        return docstring

    def put(self, key: str, text: str) -> None:
        _validate_key(key)
        root = self._root
        if root is None:
            self._memory.setdefault(key, text)
            return
        path = _entry_path(root, key)
        if key in self._memory or path.exists():
            return
        payload = {
            "docstring": text,
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        try:
            root.mkdir(parents=True, exist_ok=True)
            _write_atomic(path, json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            self.logger.warning("Error saving doc to cache (%s): %s", key, exc)
            return
        self._memory[key] = text

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


def _entry_path(root: Path, key: str) -> Path:
    return root / f"{key}.json"


def _validate_key(key: str) -> None:
    if not isinstance(key, str) or not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid cache key: {key!r}")


def _write_atomic(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


__all__ = ["DocumentationCache", "content_key"]
