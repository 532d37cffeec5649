"""FastAPI application entrypoint for compdoc service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..analyzers import DeclarationLocator
from ..config import ConfigError
from ..models import Declaration, Disposition, DocumentationResult
from ..orchestrator import Orchestrator, RunSummary
from ..patcher import patch_file


class LocateRequest(BaseModel):
    text: str
    path: str


class SpanModel(BaseModel):
    start: int
    end: int


class DeclarationModel(BaseModel):
    name: str
    kind: str
    file: str
    identity: str
    signature: str
    line: int
    column: int
    span: SpanModel
    occurrence: int = 0
    exported: bool = False
    wrapper: Optional[str] = None
    existing_doc: Optional[SpanModel] = None


class LocateResponse(BaseModel):
    declarations: List[DeclarationModel]


class PatchRequest(BaseModel):
    text: str
    path: str
    documentation: Dict[str, str] = Field(default_factory=dict)
    update_existing: bool = False


class PatchResponse(BaseModel):
    text: str
    applied: int
    skipped: int
    failed: int
    modified: bool


class AnnotateRequest(BaseModel):
    path: str
    dry_run: bool = False
    skip_existing: Optional[bool] = None
    update_existing: Optional[bool] = None
    rate_limit: Optional[int] = Field(default=None, gt=0)
    batch_size: Optional[int] = Field(default=None, gt=0)


class FileReportModel(BaseModel):
    path: str
    applied: int
    skipped: int
    failed: int
    modified: bool
    diff: Optional[str] = None
    error: Optional[str] = None


class AnnotateResponse(BaseModel):
    documented: int
    skipped: int
    failed: int
    files_processed: int
    files_modified: int
    dry_run: bool
    files: List[FileReportModel]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _declaration_model(declaration: Declaration) -> DeclarationModel:
    existing = declaration.existing_doc
    return DeclarationModel(
        name=declaration.name,
        kind=declaration.kind.value,
        file=declaration.file,
        identity=declaration.identity,
        signature=declaration.signature,
        line=declaration.location.line,
        column=declaration.location.column,
        span=SpanModel(start=declaration.span.start, end=declaration.span.end),
        occurrence=declaration.occurrence,
        exported=declaration.exported,
        wrapper=declaration.wrapper,
        existing_doc=SpanModel(start=existing.start, end=existing.end) if existing else None,
    )


def _annotate_response(summary: RunSummary) -> AnnotateResponse:
    return AnnotateResponse(
        documented=summary.documented,
        skipped=summary.skipped,
        failed=summary.failed,
        files_processed=summary.files_processed,
        files_modified=summary.files_modified,
        dry_run=summary.dry_run,
        files=[
            FileReportModel(
                path=report.relative_path,
                applied=report.applied,
                skipped=report.skipped,
                failed=report.failed,
                modified=report.modified,
                diff=report.diff or None,
                error=report.error,
            )
            for report in summary.files
        ],
    )


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing compdoc operations."""
    app = FastAPI(title="compdoc Service", version="1.0.0")
    locator = DeclarationLocator()

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/locate", response_model=LocateResponse)
    def locate(payload: LocateRequest) -> LocateResponse:
        declarations = locator.locate(payload.text, payload.path)
        return LocateResponse(declarations=[_declaration_model(item) for item in declarations])

    @app.post("/patch", response_model=PatchResponse)
    def patch(payload: PatchRequest) -> PatchResponse:
        declarations = locator.locate(payload.text, payload.path)
        documentation = {
            identity: DocumentationResult(text=text, disposition=Disposition.GENERATED)
            for identity, text in payload.documentation.items()
        }
        result = patch_file(
            payload.text,
            declarations,
            documentation,
            update_existing=payload.update_existing,
        )
        return PatchResponse(
            text=result.new_text,
            applied=result.applied,
            skipped=result.skipped,
            failed=result.failed,
            modified=result.modified,
        )

    @app.post("/annotate", response_model=AnnotateResponse)
    async def annotate(
        payload: AnnotateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> AnnotateResponse:
        def _run_annotate() -> RunSummary:
            return orchestrator.run_annotate(
                payload.path,
                dry_run=payload.dry_run,
                skip_existing=payload.skip_existing,
                update_existing=payload.update_existing,
                rate_limit=payload.rate_limit,
                batch_size=payload.batch_size,
            )

        loop = asyncio.get_running_loop()
        summary = await loop.run_in_executor(None, _run_annotate)
        return _annotate_response(summary)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
