"""
Scan report schemas.

Defines the per-document and batch-level results produced by the scanner.

The report captures:
- the ordered findings list for each scanned document,
- the PDF structural facts summary (PDF documents only),
- the 0-100 score and letter grade per document,
- the batch aggregate (average score, grade, cross-document patterns),
- and the skip list for documents that could not be scanned.

These objects are the only input report emitters receive.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from docscan.app.schemas.findings import DocumentType, Finding
from docscan.app.schemas.pdf_facts import PdfStructuralFacts


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------

class Grade(str, Enum):
    """
    Letter grade derived from a 0-100 score.

    Thresholds: >=90 A, >=75 B, >=50 C, >=25 D, else F.
    """

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


GRADE_THRESHOLDS = (
    (90, Grade.A),
    (75, Grade.B),
    (50, Grade.C),
    (25, Grade.D),
)


def grade_for_score(score: int) -> Grade:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return Grade.F


# ---------------------------------------------------------------------------
# Per-document results
# ---------------------------------------------------------------------------

class ScoreCard(BaseModel):
    """Integer score in [0, 100] and its letter grade."""

    score: int = Field(..., ge=0, le=100)
    grade: Grade

    @model_validator(mode="after")
    def enforce_grade_matches_score(self):
        if grade_for_score(self.score) is not self.grade:
            raise ValueError(
                f"Grade {self.grade.value} does not match score {self.score}"
            )
        return self

    model_config = ConfigDict(frozen=True, extra="forbid")


class DocumentScanResult(BaseModel):
    """
    Result of scanning one document.

    findings preserves rule evaluation order so repeated scans with the
    same configuration produce byte-identical reports.
    """

    path: str = Field(
        ...,
        description="Path of the document, relative to the scan root when known",
    )

    document_type: DocumentType

    sha256: str = Field(
        ...,
        description="SHA-256 digest of the scanned bytes (hex)",
    )

    findings: List[Finding] = Field(default_factory=list)

    score: ScoreCard

    pdf_facts: Optional[PdfStructuralFacts] = Field(
        None,
        description="Structural facts summary (PDF documents only)",
    )

    @model_validator(mode="after")
    def enforce_pdf_facts_only_for_pdf(self):
        if self.pdf_facts is not None and self.document_type is not DocumentType.PDF:
            raise ValueError("pdf_facts is only valid for PDF documents")
        return self

    model_config = ConfigDict(frozen=True, extra="forbid")


class SkippedDocument(BaseModel):
    """A document that could not produce a findings list."""

    path: str
    reason: str

    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Batch aggregate
# ---------------------------------------------------------------------------

class RulePattern(BaseModel):
    """Number of documents in which a rule fired at least once."""

    rule_id: str
    document_count: int = Field(..., ge=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


class BatchSummary(BaseModel):
    """
    Cross-document aggregate.

    average_score and grade are None when no document was scanned.
    """

    documents_scanned: int = Field(0, ge=0)
    documents_skipped: int = Field(0, ge=0)
    total_errors: int = Field(0, ge=0)
    total_warnings: int = Field(0, ge=0)
    total_tips: int = Field(0, ge=0)
    average_score: Optional[int] = Field(None, ge=0, le=100)
    grade: Optional[Grade] = None
    top_patterns: List[RulePattern] = Field(default_factory=list)

    @model_validator(mode="after")
    def enforce_score_grade_pairing(self):
        if (self.average_score is None) != (self.grade is None):
            raise ValueError("average_score and grade must be set together")
        return self

    model_config = ConfigDict(frozen=True, extra="forbid")


class BatchScanReport(BaseModel):
    """Master report for a sequential batch scan."""

    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Timestamp when the batch report was generated (UTC)",
    )

    root: Optional[str] = Field(
        None,
        description="Scan root directory, when the batch came from discovery",
    )

    documents: List[DocumentScanResult] = Field(default_factory=list)
    skipped: List[SkippedDocument] = Field(default_factory=list)
    summary: BatchSummary

    model_config = ConfigDict(frozen=True, extra="forbid")
