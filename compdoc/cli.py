"""CLI entrypoints for compdoc commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .config import ConfigError
from .logging import configure_logging
from .models import Declaration
from .orchestrator import Orchestrator, RunSummary


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Enable verbose (debug) logging.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("value must be a positive integer")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compdoc",
        description="Generate JSDoc documentation for React components in place.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    annotate_parser = subparsers.add_parser(
        "annotate",
        help="Document every component in a project.",
    )
    _add_verbose_option(annotate_parser, suppress_default=True)
    annotate_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )
    annotate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the changes as unified diffs without modifying files.",
    )
    annotate_parser.add_argument(
        "--skip-existing",
        action="store_true",
        default=None,
        help="Skip components that already have documentation.",
    )
    annotate_parser.add_argument(
        "--update-existing",
        action="store_true",
        default=None,
        help="Replace existing documentation blocks.",
    )
    annotate_parser.add_argument(
        "--rate-limit",
        type=_positive_int,
        default=None,
        help="Maximum model requests per minute (default: 10).",
    )
    annotate_parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Number of components documented concurrently per batch.",
    )
    annotate_parser.add_argument(
        "--api-key",
        default=None,
        help="API key for the chat-completions endpoint (overrides OPENAI_API_KEY).",
    )
    annotate_parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )

    scan_parser = subparsers.add_parser(
        "scan",
        help="List the components found in a project without changing anything.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    scan_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for compdoc commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose), log_file=getattr(args, "log_file", None)
    )

    orchestrator = Orchestrator()

    if args.command == "annotate":
        try:
            summary = orchestrator.run_annotate(
                args.path,
                dry_run=bool(args.dry_run),
                skip_existing=args.skip_existing,
                update_existing=args.update_existing,
                rate_limit=args.rate_limit,
                batch_size=args.batch_size,
                api_key=args.api_key,
            )
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except ConfigError as exc:
            parser.exit(1, f"Invalid configuration: {exc}\n")
        except Exception as exc:  # pragma: no cover - defensive guard
            parser.exit(1, f"compdoc annotate failed: {exc}\nRun with --verbose for more details.\n")
        print(format_summary(summary))
    elif args.command == "scan":
        try:
            declarations = orchestrator.run_scan(args.path)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except ConfigError as exc:
            parser.exit(1, f"Invalid configuration: {exc}\n")
        print(format_declarations(declarations))
    elif args.command == "serve":  # pragma: no cover - integration path
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def format_summary(summary: RunSummary) -> str:
    lines: List[str] = []
    if summary.dry_run:
        for relative_path, diff in summary.diffs.items():
            lines.append(f"Changes for {relative_path} (dry-run):")
            lines.append(diff.rstrip("\n"))
            lines.append("")

    lines.append("Component documentation generation complete:")
    lines.append(f"- {summary.documented} components documented successfully")
    lines.append(f"- {summary.skipped} components skipped")
    lines.append(f"- {summary.failed} components failed")
    lines.append("")
    lines.append(f"Total files processed: {summary.files_processed}")
    modified_label = "Files that would be modified" if summary.dry_run else "Files modified"
    lines.append(f"{modified_label}: {summary.files_modified}")
    return "\n".join(lines)


def format_declarations(declarations: List[Declaration]) -> str:
    if not declarations:
        return "No components found."
    lines = []
    for declaration in declarations:
        line = (
            f"{declaration.file}:{declaration.location.line}:{declaration.location.column} "
            f"{declaration.name} {declaration.kind.value}"
        )
        if declaration.has_existing_doc:
            line += " [documented]"
        lines.append(line)
    return "\n".join(lines)


if __name__ == "__main__":
    main(sys.argv[1:])
