"""
Per-document scan pipeline.

    bytes -> container validation -> extraction -> rule engine -> score

The pipeline holds no state between documents: every call builds its own
OfficePackage or PdfStructuralFacts and returns a self-contained
DocumentScanResult. One DocumentScanner may therefore scan any number of
documents, sequentially or from independent workers.

Error handling policy:
    Conditions that prevent producing a findings list for the document
    (no ZIP central directory, ZIP64, missing %PDF- header, file above the
    configured size cap, unreadable file) raise the matching ScanError
    subclass. Callers decide whether that is a skip (batch) or a client
    error (HTTP). Entry-level and rule-level failures never reach this
    layer; they degrade inside the package and engine layers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from docscan.app.checks.docx_checks import run_docx_checks
from docscan.app.checks.pdf_checks import run_pdf_checks
from docscan.app.checks.pptx_checks import run_pptx_checks
from docscan.app.checks.xlsx_checks import run_xlsx_checks
from docscan.app.config import RuleConfig, ScannerConfig, default_rule_configs
from docscan.app.container.office_package import OfficePackage
from docscan.app.errors import PdfFormatError, ResourceLimitError, UnreadableFileError
from docscan.app.parsing.pdf_structure import is_pdf, scan_pdf_structure
from docscan.app.schemas.findings import DocumentType, Finding
from docscan.app.schemas.scan_report import DocumentScanResult
from docscan.app.scoring import score_findings
from docscan.app.utils.hashing import sha256_hex

logger = logging.getLogger(__name__)


OfficeEngine = Callable[[OfficePackage, RuleConfig], List[Finding]]

_OFFICE_ENGINES: Dict[DocumentType, OfficeEngine] = {
    DocumentType.DOCX: run_docx_checks,
    DocumentType.XLSX: run_xlsx_checks,
    DocumentType.PPTX: run_pptx_checks,
}


class DocumentScanner:
    """
    Scans single documents under a fixed runtime and rule configuration.
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        rule_configs: Optional[Mapping[DocumentType, RuleConfig]] = None,
    ):
        self._config = config or ScannerConfig()
        self._rule_configs = default_rule_configs()
        if rule_configs:
            self._rule_configs.update(rule_configs)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> ScannerConfig:
        return self._config

    def rule_config(self, document_type: DocumentType) -> RuleConfig:
        return self._rule_configs[document_type]

    def is_enabled(self, document_type: DocumentType) -> bool:
        return self._rule_configs[document_type].enabled

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def scan_bytes(
        self,
        data: bytes,
        *,
        path: str,
        document_type: Optional[DocumentType] = None,
    ) -> DocumentScanResult:
        """
        Scan one document held in memory.

        document_type defaults to the type implied by the path extension.
        """
        document_type = document_type or DocumentType.from_path(path)
        if document_type is None:
            raise ValueError(f"Unsupported document type for '{path}'")

        rule_config = self.rule_config(document_type)
        self._enforce_size_limit(len(data), rule_config, path)

        pdf_facts = None
        if document_type is DocumentType.PDF:
            if not is_pdf(data):
                raise PdfFormatError(f"'{path}' does not start with a %PDF- header")

            pdf_facts = scan_pdf_structure(
                data,
                expand_streams=self._config.EXPAND_PDF_STREAMS,
                max_inflate_bytes=self._config.MAX_PDF_STREAM_INFLATE_BYTES,
            )
            findings = run_pdf_checks(pdf_facts, rule_config)
        else:
            package = OfficePackage(
                data,
                max_uncompressed_size=self._config.MAX_ENTRY_UNCOMPRESSED_BYTES,
            )
            findings = _OFFICE_ENGINES[document_type](package, rule_config)

        score = score_findings(findings)

        logger.debug(
            "Scanned %s (%s): %d finding(s), score %d",
            path,
            document_type.value,
            len(findings),
            score.score,
        )

        return DocumentScanResult(
            path=path,
            document_type=document_type,
            sha256=sha256_hex(data),
            findings=findings,
            score=score,
            pdf_facts=pdf_facts,
        )

    def scan_file(
        self,
        file_path: Path,
        *,
        display_path: Optional[str] = None,
    ) -> DocumentScanResult:
        """
        Read and scan one document from disk.

        display_path is the path recorded in the result (usually relative
        to a scan root); it defaults to file_path.
        """
        display = display_path or str(file_path)
        document_type = DocumentType.from_path(file_path.name)
        if document_type is None:
            raise ValueError(f"Unsupported document type for '{display}'")

        try:
            size = file_path.stat().st_size
            self._enforce_size_limit(size, self.rule_config(document_type), display)
            data = file_path.read_bytes()
        except OSError as exc:
            raise UnreadableFileError(
                f"Cannot read '{display}': {exc.strerror or exc}"
            ) from exc

        return self.scan_bytes(data, path=display, document_type=document_type)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _enforce_size_limit(size: int, rule_config: RuleConfig, path: str) -> None:
        limit = rule_config.max_file_size
        if limit is not None and size > limit:
            raise ResourceLimitError(
                f"'{path}' is {size} bytes, above the {limit} byte limit"
            )
