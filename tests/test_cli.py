"""CLI behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from compdoc import cli
from compdoc.cli import _build_parser, format_declarations, format_summary
from compdoc.orchestrator import FileReport, RunSummary


def test_cli_accepts_verbose_before_and_after_command() -> None:
    parser = _build_parser()
    assert parser.parse_args(["--verbose", "annotate"]).verbose is True
    assert parser.parse_args(["annotate", "-v"]).verbose is True
    assert parser.parse_args(["scan"]).verbose is False


def test_cli_annotate_options() -> None:
    args = _build_parser().parse_args(
        [
            "annotate",
            "app",
            "--dry-run",
            "--skip-existing",
            "--rate-limit",
            "20",
            "--batch-size",
            "3",
            "--api-key",
            "sk-test",
            "--log-file",
            "run.log",
        ]
    )

    assert args.command == "annotate"
    assert args.path == "app"
    assert args.dry_run is True
    assert args.skip_existing is True
    assert args.update_existing is None
    assert (args.rate_limit, args.batch_size) == (20, 3)
    assert args.api_key == "sk-test"
    assert args.log_file == Path("run.log")


def test_cli_rejects_non_positive_rate_limit(capsys) -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["annotate", "--rate-limit", "0"])
    assert "positive" in capsys.readouterr().err


def test_cli_missing_project_exits_with_status_one(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["annotate", str(tmp_path / "missing")])

    assert excinfo.value.code == 1
    assert "Project directory does not exist" in capsys.readouterr().err


def test_cli_invalid_config_exits_with_status_one(tmp_path: Path, capsys) -> None:
    (tmp_path / ".compdoc.yml").write_text("- not a mapping\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["scan", str(tmp_path)])

    assert excinfo.value.code == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_cli_scan_prints_declarations(tmp_path: Path, capsys) -> None:
    source = tmp_path / "src" / "App.jsx"
    source.parent.mkdir()
    source.write_text("/** Doc */\nexport const Foo = () => null;\n", encoding="utf-8")

    cli.main(["scan", str(tmp_path)])

    assert capsys.readouterr().out.strip() == "src/App.jsx:2:8 Foo ArrowDeclaration [documented]"


def test_cli_annotate_dry_run_prints_summary(tmp_path: Path, capsys, monkeypatch) -> None:
    for key in ("OPENAI_API_KEY", "COMPDOC_LLM_API_KEY", "OPENAI_BASE_URL", "COMPDOC_LLM_BASE_URL", "OPENAI_MODEL", "COMPDOC_LLM_MODEL"):
        monkeypatch.delenv(key, raising=False)
    source = tmp_path / "src" / "App.jsx"
    source.parent.mkdir()
    source.write_text("export const Foo = () => null;\n", encoding="utf-8")

    cli.main(["annotate", str(tmp_path), "--dry-run"])

    out = capsys.readouterr().out
    assert "Changes for src/App.jsx (dry-run):" in out
    assert "- 1 components documented successfully" in out
    assert "Files that would be modified: 1" in out
    assert source.read_text(encoding="utf-8") == "export const Foo = () => null;\n"


def test_format_summary_lists_totals() -> None:
    summary = RunSummary(root=Path("/project"))
    summary.add(FileReport("src/App.jsx", declarations=3, applied=2, skipped=1, modified=True))
    summary.add(FileReport("src/Other.jsx", declarations=1, failed=1))

    assert format_summary(summary).splitlines() == [
        "Component documentation generation complete:",
        "- 2 components documented successfully",
        "- 1 components skipped",
        "- 1 components failed",
        "",
        "Total files processed: 2",
        "Files modified: 1",
    ]


def test_format_declarations_handles_empty_projects() -> None:
    assert format_declarations([]) == "No components found."
