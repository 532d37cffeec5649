"""Pipeline orchestration for the annotate and scan flows."""

from __future__ import annotations

import difflib
import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .analyzers import DeclarationLocator
from .config import CompDocConfig, LLMConfig, load_config
from .generator import DocumentationGenerator
from .llm.oracle import DocumentationOracle, LLMDocumentationOracle
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import Declaration, DocumentationResult, PatchResult, SourceFile
from .patcher import DocumentationPatcher
from .repo_scanner import RepoScanner
from .stores import DocumentationCache

_ENCODINGS = ("utf-8", "latin-1")


@dataclass
class FileReport:
    """Per-file outcome of an annotate run."""

    relative_path: str
    declarations: int
    applied: int = 0
    skipped: int = 0
    failed: int = 0
    modified: bool = False
    diff: str = ""
    error: Optional[str] = None


@dataclass
class RunSummary:
    """Totals reported at the end of an annotate run."""

    root: Path
    documented: int = 0
    skipped: int = 0
    failed: int = 0
    files_processed: int = 0
    files_modified: int = 0
    dry_run: bool = False
    files: List[FileReport] = field(default_factory=list)

    @property
    def diffs(self) -> Dict[str, str]:
        return {report.relative_path: report.diff for report in self.files if report.diff}

    def add(self, report: FileReport) -> None:
        self.files.append(report)
        self.documented += report.applied
        self.skipped += report.skipped
        self.failed += report.failed
        self.files_processed += 1
        if report.modified:
            self.files_modified += 1


@dataclass
class _LocatedFile:
    source: SourceFile
    text: str
    encoding: str
    declarations: List[Declaration]


class Orchestrator:
    """Coordinates file discovery, location, generation and patching."""

    def __init__(
        self,
        scanner: RepoScanner | None = None,
        locator: DeclarationLocator | None = None,
        oracle: DocumentationOracle | None = None,
        cache: DocumentationCache | None = None,
        llm_runner: LLMRunner | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.scanner = scanner or RepoScanner()
        self.locator = locator or DeclarationLocator()
        self._oracle = oracle
        self._cache = cache
        self._llm_runner = llm_runner
        self._sleep = sleep
        self.logger = get_logger("orchestrator")

    def run_annotate(
        self,
        path: str | Path,
        *,
        dry_run: bool = False,
        skip_existing: bool | None = None,
        update_existing: bool | None = None,
        rate_limit: int | None = None,
        batch_size: int | None = None,
        api_key: str | None = None,
    ) -> RunSummary:
        """Document every component under ``path`` and return the totals.

        Keyword arguments left as ``None`` fall back to the values from
        ``.compdoc.yml``. With ``dry_run`` nothing is written and the summary
        carries a unified diff per file that would change.
        """
        project = self._resolve_project(path)
        config = load_config(project)
        generation = config.generation
        skip_existing = generation.skip_existing if skip_existing is None else skip_existing
        update_existing = generation.update_existing if update_existing is None else update_existing
        rate_limit = rate_limit or generation.rate_limit
        batch_size = batch_size or generation.batch_size

        self.logger.info("Processing React components in %s", project)
        if dry_run:
            self.logger.info("Running in dry-run mode. No files will be modified.")

        summary = RunSummary(root=project, dry_run=dry_run)
        located = self._locate_project(project, config, summary)
        declarations = [declaration for item in located for declaration in item.declarations]
        if not declarations:
            self.logger.info("No components found in the project.")
            return summary
        self.logger.info("Found %d components in %d files.", len(declarations), len(located))

        generator = DocumentationGenerator(
            self._resolve_oracle(config, api_key),
            self._resolve_cache(config),
            rate_limit=rate_limit,
            batch_size=batch_size,
            skip_existing=skip_existing,
            sleep=self._sleep,
        )
        documentation = generator.generate(declarations)

        patcher = DocumentationPatcher(update_existing=update_existing)
        for index, item in enumerate(located, start=1):
            self.logger.info(
                "Updating file %d/%d: %s", index, len(located), item.source.relative_path
            )
            summary.add(self._patch_one(item, documentation, patcher, dry_run=dry_run))

        self.logger.info(
            "Documented %d components (%d skipped, %d failed) in %d files; %d modified",
            summary.documented,
            summary.skipped,
            summary.failed,
            summary.files_processed,
            summary.files_modified,
        )
        return summary

    def run_scan(self, path: str | Path) -> List[Declaration]:
        """Locate declarations without generating or writing anything."""
        project = self._resolve_project(path)
        config = load_config(project)
        located = self._locate_project(project, config, None)
        return [declaration for item in located for declaration in item.declarations]

    @staticmethod
    def _resolve_project(path: str | Path) -> Path:
        project = Path(path).expanduser().resolve()
        if not project.exists():
            raise FileNotFoundError(f"Project directory does not exist: {project}")
        if not project.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {project}")
        return project

    def _locate_project(
        self,
        project: Path,
        config: CompDocConfig,
        summary: RunSummary | None,
    ) -> List[_LocatedFile]:
        files = self.scanner.scan(
            project, source_dir=config.source_dir, exclude_paths=config.exclude_paths
        )
        self.logger.debug("Scanner discovered %d source files", len(files))

        located: List[_LocatedFile] = []
        for source in files:
            try:
                text, encoding = read_source(source.path)
            except OSError as exc:
                self._log_exception(f"Error reading {source.relative_path}", exc)
                if summary is not None:
                    summary.files.append(
                        FileReport(source.relative_path, declarations=0, error=str(exc))
                    )
                continue
            declarations = self.locator.locate(
                text, source.path, relative_path=source.relative_path, file_path=source.path
            )
            if declarations:
                located.append(_LocatedFile(source, text, encoding, declarations))
        return located

    def _patch_one(
        self,
        item: _LocatedFile,
        documentation: Mapping[str, DocumentationResult],
        patcher: DocumentationPatcher,
        *,
        dry_run: bool,
    ) -> FileReport:
        relative_path = item.source.relative_path
        report = FileReport(relative_path, declarations=len(item.declarations))

        try:
            current, _ = read_source(item.source.path)
        except OSError as exc:
            self._log_exception(f"Error reading {relative_path}", exc)
            return self._fail_file(report, str(exc))
        if current != item.text:
            self.logger.error("File %s changed on disk since it was analysed; skipping", relative_path)
            return self._fail_file(report, "file changed on disk")

        result: PatchResult = patcher.patch(item.text, item.declarations, documentation)
        report.applied = result.applied
        report.skipped = result.skipped
        report.failed = result.failed
        report.modified = result.modified
        if not result.modified:
            self.logger.debug("No changes for %s", relative_path)
            return report

        try:
            result.new_text.encode(item.encoding)
        except UnicodeEncodeError as exc:
            self.logger.error(
                "Documentation for %s cannot be stored as %s: %s", relative_path, item.encoding, exc
            )
            return self._fail_file(report, f"documentation not representable in {item.encoding}")

        if dry_run:
            report.diff = self._render_diff(item.text, result.new_text, relative_path)
            self.logger.debug("[Dry run] Would update file: %s", relative_path)
            return report

        try:
            write_source(item.source.path, result.new_text, item.encoding)
        except (OSError, UnicodeError) as exc:
            self._log_exception(f"Error writing {relative_path}", exc)
            return self._fail_file(report, str(exc))
        self.logger.info("Updated file: %s", relative_path)
        return report

    @staticmethod
    def _fail_file(report: FileReport, error: str) -> FileReport:
        report.applied = 0
        report.skipped = 0
        report.failed = report.declarations
        report.modified = False
        report.diff = ""
        report.error = error
        return report

    def _resolve_cache(self, config: CompDocConfig) -> DocumentationCache:
        if self._cache is not None:
            return self._cache
        return DocumentationCache(config.cache_path)

    def _resolve_oracle(
        self, config: CompDocConfig, api_key: str | None
    ) -> DocumentationOracle | None:
        if self._oracle is not None:
            return self._oracle
        runner = self._resolve_llm_runner(config, api_key)
        if runner is None:
            self.logger.warning(
                "No LLM configured (set OPENAI_API_KEY or add an llm section to .compdoc.yml); "
                "using basic docstring generation."
            )
            return None
        return LLMDocumentationOracle(runner)

    def _resolve_llm_runner(self, config: CompDocConfig, api_key: str | None) -> LLMRunner | None:
        if self._llm_runner is not None:
            return self._llm_runner

        llm_cfg = config.llm
        if llm_cfg is None:
            if api_key is None and not LLMRunner.environment_configured():
                self.logger.debug("No LLM configuration detected; using fallback documentation.")
                return None
            llm_cfg = LLMConfig()

        kwargs: Dict[str, object] = {}
        executable = llm_cfg.executable or llm_cfg.runner
        if executable:
            kwargs["executable"] = executable
        if llm_cfg.model:
            kwargs["model"] = llm_cfg.model
        if llm_cfg.base_url is not None:
            kwargs["base_url"] = llm_cfg.base_url
        if llm_cfg.temperature is not None:
            kwargs["temperature"] = llm_cfg.temperature
        if llm_cfg.max_tokens is not None:
            kwargs["max_tokens"] = llm_cfg.max_tokens
        if api_key is not None:
            kwargs["api_key"] = api_key
        elif llm_cfg.api_key is not None:
            kwargs["api_key"] = llm_cfg.api_key
        if llm_cfg.request_timeout is not None:
            kwargs["request_timeout"] = llm_cfg.request_timeout
        try:
            runner = LLMRunner(**kwargs)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            self.logger.warning("Failed to initialise LLM runner: %s", exc)
            return None
        self.logger.info("Using model %s for documentation generation", runner.model)
        return runner

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)

    @staticmethod
    def _render_diff(original: str, updated: str, relative_path: str) -> str:
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            updated.splitlines(keepends=True),
            fromfile=f"a/{relative_path}",
            tofile=f"b/{relative_path}",
        )
        return "".join(diff)


def read_source(path: Path, encodings: Sequence[str] = _ENCODINGS) -> Tuple[str, str]:
    """Read ``path`` returning ``(text, encoding)``; latin-1 is the last resort."""
    data = path.read_bytes()
    for encoding in encodings[:-1]:
        try:
            return data.decode(encoding), encoding
        except UnicodeDecodeError:
            continue
    return data.decode(encodings[-1]), encodings[-1]


def write_source(path: Path, text: str, encoding: str) -> None:
    """Replace ``path`` atomically, keeping its permission bits."""
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(text)
        shutil.copymode(path, temp_name)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


__all__ = ["FileReport", "Orchestrator", "RunSummary", "read_source", "write_source"]
