"""Tests for compdoc.orchestrator."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from compdoc.config import ConfigError, load_config
from compdoc.models import Declaration
from compdoc.orchestrator import Orchestrator, read_source
from compdoc.stores import DocumentationCache
from tests._fixtures.project_builder import ProjectBuilder

_ENV_KEYS = (
    "COMPDOC_LLM_MODEL",
    "OPENAI_MODEL",
    "COMPDOC_LLM_BASE_URL",
    "OPENAI_BASE_URL",
    "COMPDOC_LLM_API_KEY",
    "OPENAI_API_KEY",
)

APP_SOURCE = """
import React from 'react';

export const Foo = () => <div>Foo</div>;

export function Bar({ label }) {
  return <span>{label}</span>;
}

export const helper = () => 42;
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class RecordingOracle:
    """Oracle double that records which components were requested."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def generate(self, declaration: Declaration) -> str:
        self.calls.append(declaration.name)
        return f"/**\n * Docs for {declaration.name}\n */"


def _orchestrator(oracle=None) -> Orchestrator:
    return Orchestrator(
        oracle=oracle or RecordingOracle(),
        cache=DocumentationCache(None),
        sleep=lambda seconds: None,
    )


def test_annotate_documents_components_in_place(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/App.jsx": APP_SOURCE, "src/util.js": "export const x = 1;\n"})
    oracle = RecordingOracle()

    summary = _orchestrator(oracle).run_annotate(project_builder.path())

    assert sorted(oracle.calls) == ["Bar", "Foo"]
    assert (summary.documented, summary.skipped, summary.failed) == (2, 0, 0)
    assert (summary.files_processed, summary.files_modified) == (1, 1)
    assert summary.dry_run is False
    content = project_builder.read("src/App.jsx")
    assert "/**\n * Docs for Foo\n */\nexport const Foo = () => <div>Foo</div>;" in content
    assert "/**\n * Docs for Bar\n */\nexport function Bar({ label }) {" in content
    assert "Docs for helper" not in content


def test_second_run_skips_documented_components(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/App.jsx": APP_SOURCE})
    _orchestrator().run_annotate(project_builder.path())
    first = project_builder.read("src/App.jsx")

    summary = _orchestrator().run_annotate(project_builder.path())

    assert project_builder.read("src/App.jsx") == first
    assert (summary.documented, summary.skipped, summary.files_modified) == (0, 2, 0)


def test_dry_run_reports_diff_without_writing(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/App.jsx": APP_SOURCE})
    original = project_builder.read("src/App.jsx")

    summary = _orchestrator().run_annotate(project_builder.path(), dry_run=True)

    assert project_builder.read("src/App.jsx") == original
    assert summary.dry_run is True
    assert summary.files_modified == 1
    diff = summary.diffs["src/App.jsx"]
    assert diff.startswith("--- a/src/App.jsx\n+++ b/src/App.jsx\n")
    assert "+ * Docs for Foo\n" in diff


def test_update_existing_replaces_blocks(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {"src/Card.jsx": "/**\n * Stale\n */\nexport const Card = () => null;\n"}
    )

    kept = _orchestrator().run_annotate(project_builder.path())
    updated = _orchestrator().run_annotate(project_builder.path(), update_existing=True)

    assert (kept.documented, kept.skipped) == (0, 1)
    assert (updated.documented, updated.files_modified) == (1, 1)
    assert project_builder.read("src/Card.jsx") == (
        "/**\n * Docs for Card\n */\nexport const Card = () => null;\n"
    )


def test_configuration_supplies_defaults(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            ".compdoc.yml": "generation:\n  skip_existing: true\nsource_dir: app\n",
            "app/Card.jsx": "/** Existing */\nexport const Card = () => null;\nconst Row = () => null;\n",
        }
    )
    oracle = RecordingOracle()

    summary = _orchestrator(oracle).run_annotate(project_builder.path())

    assert oracle.calls == ["Row"]
    assert (summary.documented, summary.skipped) == (1, 1)


def test_fallback_documentation_without_llm(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/App.jsx": APP_SOURCE})

    summary = Orchestrator(sleep=lambda seconds: None).run_annotate(project_builder.path())

    content = project_builder.read("src/App.jsx")
    assert summary.documented == 2
    assert " * Foo Component\n" in content
    assert " * @component ArrowDeclaration\n" in content
    assert " * @description A React component defined in src/App.jsx (line 3, column 8)\n" in content
    assert not (project_builder.path() / ".compdoc" / "cache").exists()


def test_file_changed_during_generation_is_failed(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/App.jsx": APP_SOURCE})
    target = project_builder.path() / "src" / "App.jsx"

    class MutatingOracle(RecordingOracle):
        def generate(self, declaration: Declaration) -> str:
            target.write_text("// edited by someone else\n" + APP_SOURCE, encoding="utf-8")
            return super().generate(declaration)

    summary = _orchestrator(MutatingOracle()).run_annotate(project_builder.path())

    assert (summary.documented, summary.failed, summary.files_modified) == (0, 2, 0)
    assert summary.files[0].error == "file changed on disk"
    assert target.read_text(encoding="utf-8").startswith("// edited by someone else\n")


def test_unreadable_utf8_falls_back_to_latin1(project_builder: ProjectBuilder) -> None:
    target = project_builder.path() / "src" / "Legacy.js"
    target.parent.mkdir(parents=True)
    target.write_bytes("// caf\xe9\nconst Legacy = () => null;\n".encode("latin-1"))

    summary = _orchestrator().run_annotate(project_builder.path())

    assert summary.documented == 1
    data = target.read_bytes()
    assert data.startswith(b"// caf\xe9\n/**\n * Docs for Legacy\n */\n")
    assert read_source(target)[1] == "latin-1"


def test_latin1_file_rejects_unencodable_docs_without_aborting_run(
    project_builder: ProjectBuilder,
) -> None:
    legacy = project_builder.path() / "src" / "a.jsx"
    legacy.parent.mkdir(parents=True)
    original = "// caf\xe9\nconst Header = () => null;\n".encode("latin-1")
    legacy.write_bytes(original)
    project_builder.write({"src/b.jsx": "const Footer = () => null;\n"})

    class ArrowOracle(RecordingOracle):
        def generate(self, declaration: Declaration) -> str:
            self.calls.append(declaration.name)
            return "/** Renders → the header … nicely */"

    summary = _orchestrator(ArrowOracle()).run_annotate(project_builder.path())

    reports = {report.relative_path: report for report in summary.files}
    assert reports["src/a.jsx"].error == "documentation not representable in latin-1"
    assert reports["src/a.jsx"].failed == 1
    assert legacy.read_bytes() == original
    assert reports["src/b.jsx"].applied == 1
    assert project_builder.read("src/b.jsx").startswith("/**\n * Renders → the header")
    assert (summary.documented, summary.failed, summary.files_modified) == (1, 1, 1)


def test_write_preserves_file_mode(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/App.jsx": APP_SOURCE})
    target = project_builder.path() / "src" / "App.jsx"
    os.chmod(target, 0o640)

    _orchestrator().run_annotate(project_builder.path())

    assert stat.S_IMODE(target.stat().st_mode) == 0o640
    assert [path.name for path in target.parent.iterdir()] == ["App.jsx"]


def test_unparsable_files_are_ignored(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {"src/Broken.jsx": "function Broken( {\n", "src/App.jsx": APP_SOURCE}
    )

    summary = _orchestrator().run_annotate(project_builder.path())

    assert summary.files_processed == 1
    assert project_builder.read("src/Broken.jsx") == "function Broken( {\n"


def test_missing_project_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        _orchestrator().run_annotate(tmp_path / "missing")


def test_invalid_config_is_fatal(project_builder: ProjectBuilder) -> None:
    project_builder.write({".compdoc.yml": "generation: [oops\n", "src/App.jsx": APP_SOURCE})
    original = project_builder.read("src/App.jsx")

    with pytest.raises(ConfigError):
        _orchestrator().run_annotate(project_builder.path())
    assert project_builder.read("src/App.jsx") == original


def test_run_scan_lists_declarations(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/App.jsx": APP_SOURCE, "src/Card.tsx": "export class Card extends React.PureComponent {}\n"})

    declarations = _orchestrator().run_scan(project_builder.path())

    assert [(item.file, item.name) for item in declarations] == [
        ("src/App.jsx", "Foo"),
        ("src/App.jsx", "Bar"),
        ("src/Card.tsx", "Card"),
    ]
    assert project_builder.read("src/App.jsx").startswith("import React")


def test_llm_runner_resolution(project_builder: ProjectBuilder, monkeypatch) -> None:
    config = load_config(project_builder.path())
    orchestrator = Orchestrator()

    assert orchestrator._resolve_llm_runner(config, None) is None
    runner = orchestrator._resolve_llm_runner(config, "sk-cli")
    assert runner is not None
    assert runner.api_key == "sk-cli"

    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    runner = orchestrator._resolve_llm_runner(config, None)
    assert runner is not None
    assert runner.api_key == "sk-env"
