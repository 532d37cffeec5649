"""Source file discovery honoring .gitignore and configured exclusions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

from .logging import get_logger
from .models import SourceFile

SOURCE_SUFFIXES = frozenset({".js", ".jsx", ".ts", ".tsx"})

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "bower_components",
    ".next",
    ".cache",
    ".compdoc",
    "coverage",
}


@dataclass
class IgnoreRule:
    """A single gitignore-style pattern."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return self.is_dir_match(is_dir)
            # Children of an ignored directory are ignored as well.
            return rel_path.startswith(f"{self.pattern}/")

        parts = rel_path.split("/")
        for index, part in enumerate(parts):
            if fnmatchcase(part, self.pattern):
                is_last = index == len(parts) - 1
                if not is_last or self.is_dir_match(is_dir):
                    return True
        return False

    def is_dir_match(self, is_dir: bool) -> bool:
        return is_dir or not self.directory_only


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern.lstrip("/")

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def parse_ignore_lines(lines: Sequence[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class RepoScanner:
    """Walks a project to find JavaScript/TypeScript source files."""

    def __init__(self) -> None:
        self.logger = get_logger("scanner")

    def scan(
        self,
        root: str | Path,
        *,
        source_dir: str | None = None,
        exclude_paths: Sequence[str] = (),
    ) -> List[SourceFile]:
        """Return source files under ``root`` (or ``root/source_dir`` when it exists)."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Project directory does not exist: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {root}")

        scan_root = root_path
        if source_dir:
            candidate = root_path / source_dir
            if candidate.is_dir():
                scan_root = candidate
            else:
                self.logger.info(
                    "Source directory %s not found; scanning %s", source_dir, root_path
                )

        rules = self._load_rules(root_path, exclude_paths)
        files = [
            SourceFile(path=path, relative_path=path.relative_to(root_path).as_posix())
            for path in self._iter_files(root_path, scan_root, rules)
        ]
        files.sort(key=lambda item: item.relative_path)
        self.logger.debug("Discovered %d source files under %s", len(files), scan_root)
        return files

    def _load_rules(self, root: Path, exclude_paths: Sequence[str]) -> List[IgnoreRule]:
        rules: List[IgnoreRule] = []
        gitignore = root / ".gitignore"
        if gitignore.is_file():
            try:
                rules.extend(parse_ignore_lines(gitignore.read_text(encoding="utf-8").splitlines()))
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.error("Error loading .gitignore: %s", exc)
            else:
                self.logger.debug("Loaded %d ignore patterns from .gitignore", len(rules))
        rules.extend(parse_ignore_lines(list(exclude_paths)))
        return rules

    @staticmethod
    def _iter_files(root: Path, scan_root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(scan_root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept_dirs = []
            for name in dirnames:
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if should_ignore(rel_path, True, rules):
                    continue
                kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for filename in filenames:
                if Path(filename).suffix.lower() not in SOURCE_SUFFIXES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if should_ignore(rel_path, False, rules):
                    continue
                yield current_dir / filename


__all__ = [
    "IgnoreRule",
    "RepoScanner",
    "SOURCE_SUFFIXES",
    "build_ignore_rule",
    "parse_ignore_lines",
    "should_ignore",
]
