"""
FastAPI entrypoint for the document accessibility scanner.

This module defines the HTTP interface: a document is uploaded, scanned
by the per-document pipeline, and returned either as a DocumentScanResult
or as a SARIF 2.1.0 log. Several documents can be uploaded together to
/scan/batch, which returns a BatchScanReport as JSON or Markdown.

The application is stateless between requests. Runtime configuration and
the project rule configuration are loaded once at startup; a request may
overlay rule settings for its own document through the "overrides" form
field (a JSON object using the configuration file keys).
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from starlette.responses import PlainTextResponse, Response

from docscan.app.config import (
    RuleConfig,
    ScannerConfig,
    load_rule_configs,
    merge_rule_config,
)
from docscan.app.coordinator.batch_scanner import BatchScanner
from docscan.app.coordinator.document_scanner import DocumentScanner
from docscan.app.errors import ConfigParseError, ScanError
from docscan.app.reports.markdown import render_markdown
from docscan.app.reports.sarif import build_sarif
from docscan.app.schemas.findings import DocumentType
from docscan.app.schemas.scan_report import BatchScanReport, DocumentScanResult


# ---------------------------------------------------------------------------
# Presentation helpers (presentation-only)
# ---------------------------------------------------------------------------

def pretty_json(data: Any) -> str:
    """Pretty-print JSON for human-readable output."""
    return json.dumps(
        data,
        ensure_ascii=False,
        allow_nan=False,
        indent=2,
        separators=(", ", ": "),
    )


class PrettyJSONResponse(Response):
    """Pretty-printed JSON response for human-readable console output."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return pretty_json(content).encode("utf-8")


# ---------------------------------------------------------------------------
# Application setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Docscan Service",
    description="Accessibility scanning for Office Open XML and PDF documents",
    version="0.1.0",
)


# ---------------------------------------------------------------------------
# Startup / Shutdown
# ---------------------------------------------------------------------------

@app.on_event("startup")
def startup_event() -> None:
    """
    Application startup hook.

    Configuration is loaded once and treated as immutable for the lifetime
    of the process.
    """
    config = ScannerConfig.from_env()

    app.state.config = config
    app.state.rule_configs = load_rule_configs(config.RULE_CONFIG_DIR)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------

def _parse_overrides(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        overrides = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=400,
            detail=f"overrides is not valid JSON: {exc.msg}",
        ) from exc
    if not isinstance(overrides, dict):
        raise HTTPException(
            status_code=400,
            detail="overrides must be a JSON object",
        )
    return overrides


def _enforce_upload_limit(data: bytes, filename: str) -> None:
    config: ScannerConfig = app.state.config
    max_size_bytes = config.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    if len(data) > max_size_bytes:
        raise HTTPException(
            status_code=413,
            detail=(
                f"Document '{filename}' exceeds maximum allowed size of "
                f"{config.MAX_UPLOAD_SIZE_MB} MB"
            ),
        )


async def _read_document(document: UploadFile) -> Tuple[bytes, DocumentType]:
    filename = document.filename or ""
    document_type = DocumentType.from_path(filename)
    if document_type is None:
        raise HTTPException(
            status_code=400,
            detail="Only .docx, .xlsx, .pptx and .pdf documents are supported",
        )

    data = await document.read()
    if not data:
        raise HTTPException(
            status_code=400,
            detail="Uploaded document is empty",
        )

    # ------------------------------------------------------------------
    # Hard resource safety limits
    # ------------------------------------------------------------------
    _enforce_upload_limit(data, filename)

    return data, document_type


def _batch_rule_configs(raw: Optional[str]) -> Dict[DocumentType, RuleConfig]:
    """Project rule configuration overlaid with overrides keyed by document type."""
    rule_configs: Dict[DocumentType, RuleConfig] = dict(app.state.rule_configs)

    for key, section in _parse_overrides(raw).items():
        try:
            document_type = DocumentType(key)
        except ValueError as exc:
            raise HTTPException(
                status_code=400,
                detail=f"Unknown document type in overrides: {key}",
            ) from exc
        try:
            rule_configs[document_type] = merge_rule_config(
                rule_configs[document_type],
                section,
            )
        except ConfigParseError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    return rule_configs


async def _scan_upload(
    document: UploadFile,
    overrides: Optional[str],
) -> DocumentScanResult:
    data, document_type = await _read_document(document)

    rule_configs: Dict[DocumentType, RuleConfig] = dict(app.state.rule_configs)
    try:
        rule_config = merge_rule_config(
            rule_configs[document_type],
            _parse_overrides(overrides),
        )
    except ConfigParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if not rule_config.enabled:
        raise HTTPException(
            status_code=400,
            detail=f"Scanning of {document_type.value} documents is disabled",
        )

    rule_configs[document_type] = rule_config
    scanner = DocumentScanner(app.state.config, rule_configs)

    try:
        return scanner.scan_bytes(
            data,
            path=document.filename,
            document_type=document_type,
        )
    except ScanError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------

@app.post(
    "/scan",
    response_model=DocumentScanResult,
    response_class=PrettyJSONResponse,
    summary="Scan one document for accessibility defects",
)
async def scan_document(
    document: UploadFile = File(..., description="Document to scan"),
    overrides: Optional[str] = Form(
        None,
        description="JSON rule configuration overlay for this document",
    ),
) -> DocumentScanResult:
    return await _scan_upload(document, overrides)


@app.post(
    "/scan/sarif",
    response_class=PrettyJSONResponse,
    summary="Scan one document and return a SARIF 2.1.0 log",
)
async def scan_document_sarif(
    document: UploadFile = File(..., description="Document to scan"),
    overrides: Optional[str] = Form(
        None,
        description="JSON rule configuration overlay for this document",
    ),
) -> PrettyJSONResponse:
    result = await _scan_upload(document, overrides)
    return PrettyJSONResponse(content=build_sarif([result]))


@app.post(
    "/scan/batch",
    response_model=BatchScanReport,
    response_class=PrettyJSONResponse,
    summary="Scan several documents and return an aggregated report",
)
async def scan_batch(
    documents: List[UploadFile] = File(..., description="Documents to scan"),
    overrides: Optional[str] = Form(
        None,
        description="JSON rule configuration overlay keyed by document type",
    ),
    output: str = Query(
        "json",
        alias="format",
        pattern="^(json|markdown)$",
        description="Report format",
    ),
) -> Response:
    """
    Scan uploads in order with the batch semantics of a project scan.

    Unsupported or unreadable documents are listed as skipped instead of
    failing the request; only an oversized upload rejects the whole batch.
    """
    rule_configs = _batch_rule_configs(overrides)

    buffers: List[Tuple[str, bytes]] = []
    for document in documents:
        filename = document.filename or ""
        data = await document.read()
        _enforce_upload_limit(data, filename)
        buffers.append((filename, data))

    scanner = DocumentScanner(app.state.config, rule_configs)
    report = BatchScanner(scanner).scan_buffers(buffers)

    if output == "markdown":
        return PlainTextResponse(render_markdown(report), media_type="text/markdown")
    return PrettyJSONResponse(content=report.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------

@app.get(
    "/health",
    summary="Service health check",
)
def health_check() -> JSONResponse:
    """Simple health check endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "service": "docscan",
        }
    )
