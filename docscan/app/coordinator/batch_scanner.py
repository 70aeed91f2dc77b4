"""
Sequential batch scanning.

Documents are discovered under a root directory (or handed over as
in-memory buffers), then scanned one at a
time: each file is fully read, parsed and scored before the next begins.
A document that cannot be scanned is recorded in the skip list with the
reason and the batch continues. Documents whose type is disabled in the
rule configuration are neither scanned nor skipped.
"""

from __future__ import annotations

import logging
import os
from functools import partial
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from docscan.app.config import ScannerConfig, load_rule_configs
from docscan.app.coordinator.document_scanner import DocumentScanner
from docscan.app.errors import ScanError
from docscan.app.schemas.findings import DocumentType
from docscan.app.schemas.scan_report import (
    BatchScanReport,
    DocumentScanResult,
    SkippedDocument,
)
from docscan.app.scoring import summarize_batch

logger = logging.getLogger(__name__)


IGNORED_DIRS = frozenset({
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    ".nuxt",
    "coverage",
    "vendor",
    "__pycache__",
})


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def discover_documents(root: Path) -> List[Path]:
    """
    Supported documents under root, sorted by path.

    Ignored directories and symbolic links (files or directories) are not
    visited. Unreadable directories are skipped.
    """
    found: List[Path] = []

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = [
            name for name in dirnames
            if name not in IGNORED_DIRS and not (current / name).is_symlink()
        ]

        for name in filenames:
            candidate = current / name
            if candidate.is_symlink():
                continue
            if DocumentType.from_path(name) is None:
                continue
            found.append(candidate)

    return sorted(found, key=lambda p: p.relative_to(root).as_posix())


def _display_path(path: Path, root: Optional[Path]) -> str:
    if root is None:
        return str(path)
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


# ---------------------------------------------------------------------------
# Batch scanner
# ---------------------------------------------------------------------------

class BatchScanner:
    """Runs a DocumentScanner over many documents and aggregates the results."""

    def __init__(self, scanner: DocumentScanner):
        self._scanner = scanner

    def _admit(
        self,
        display: str,
        skipped: List[SkippedDocument],
    ) -> bool:
        """Whether the document is scanned. Unsupported types are recorded as skipped."""
        document_type = DocumentType.from_path(display)

        if document_type is None:
            logger.info("Skipping %s: unsupported document type", display)
            skipped.append(
                SkippedDocument(path=display, reason="unsupported document type")
            )
            return False

        if not self._scanner.is_enabled(document_type):
            logger.debug("Not scanning %s: %s scanning disabled", display, document_type.value)
            return False

        return True

    def _run(
        self,
        items: Iterable[Tuple[str, Callable[[], DocumentScanResult]]],
        root: Optional[str],
    ) -> BatchScanReport:
        documents: List[DocumentScanResult] = []
        skipped: List[SkippedDocument] = []

        for display, scan in items:
            if not self._admit(display, skipped):
                continue

            try:
                result = scan()
            except ScanError as exc:
                logger.info("Skipping %s: %s", display, exc)
                skipped.append(SkippedDocument(path=display, reason=str(exc)))
                continue

            documents.append(result)

        return BatchScanReport(
            root=root,
            documents=documents,
            skipped=skipped,
            summary=summarize_batch(documents, skipped),
        )

    def scan_paths(
        self,
        paths: Iterable[Path],
        *,
        root: Optional[Path] = None,
    ) -> BatchScanReport:
        items = []
        for path in paths:
            display = _display_path(path, root)
            items.append(
                (display, partial(self._scanner.scan_file, path, display_path=display))
            )
        return self._run(items, str(root) if root is not None else None)

    def scan_buffers(self, buffers: Iterable[Tuple[str, bytes]]) -> BatchScanReport:
        """Scan in-memory documents given as (name, bytes) pairs, in order."""
        items = (
            (name, partial(self._scanner.scan_bytes, data, path=name))
            for name, data in buffers
        )
        return self._run(items, None)

    def scan_directory(self, root: Path) -> BatchScanReport:
        return self.scan_paths(discover_documents(root), root=root)


def scan_project(
    root: Path,
    *,
    config: Optional[ScannerConfig] = None,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> BatchScanReport:
    """
    Scan every supported document under root.

    Rule configuration is read from the configuration files in root and
    merged with overrides (keyed by document type).
    """
    scanner = DocumentScanner(config, load_rule_configs(root, overrides))
    return BatchScanner(scanner).scan_directory(root)
