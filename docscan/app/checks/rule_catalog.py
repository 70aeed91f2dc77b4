"""
Accessibility rule catalog.

Every rule the scanner can emit is declared here exactly once, together
with its fixed severity, confidence, review flag and default location.
Rule engines decide only whether a rule's condition holds; whether the
resulting finding is reported is decided afterwards, uniformly, by
apply_rule_config().

Multiplicity:
    SINGLE          at most one finding per document (counts are folded
                    into the message)
    PER_OCCURRENCE  one finding per independent occurrence (heading skips,
                    duplicate slide titles)
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from docscan.app.schemas.findings import (
    ConfidenceLevel,
    DocumentType,
    Finding,
    Severity,
)


class Multiplicity(str, Enum):
    SINGLE = "single"
    PER_OCCURRENCE = "per_occurrence"


class RuleDefinition(BaseModel):
    """Static definition of one accessibility rule."""

    rule_id: str
    document_type: DocumentType
    severity: Severity
    confidence: ConfidenceLevel = ConfidenceLevel.HIGH
    requires_human_review: bool = False
    summary: str = Field(..., description="Short description used by SARIF")
    default_location: str
    multiplicity: Multiplicity = Multiplicity.SINGLE
    suppressed_with: Optional[str] = Field(
        None,
        description=(
            "Rule id whose disablement also suppresses this rule "
            "(e.g. the scanned-only check follows the extractable-text check)"
        ),
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    def finding(self, message: Optional[str] = None, location: Optional[str] = None) -> Finding:
        return Finding(
            rule_id=self.rule_id,
            severity=self.severity,
            message=message or self.summary,
            location=location or self.default_location,
            confidence=self.confidence,
            requires_human_review=self.requires_human_review,
        )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_DEFINITIONS: List[RuleDefinition] = [
    # DOCX ---------------------------------------------------------------
    RuleDefinition(
        rule_id="DOCX-E004",
        document_type=DocumentType.DOCX,
        severity=Severity.ERROR,
        summary="Document title is not set",
        default_location="docProps/core.xml",
    ),
    RuleDefinition(
        rule_id="DOCX-T001",
        document_type=DocumentType.DOCX,
        severity=Severity.TIP,
        summary="Document language is not set",
        default_location="word/settings.xml",
    ),
    RuleDefinition(
        rule_id="DOCX-E007",
        document_type=DocumentType.DOCX,
        severity=Severity.ERROR,
        summary="Document has zero headings",
        default_location="word/document.xml",
    ),
    RuleDefinition(
        rule_id="DOCX-W001",
        document_type=DocumentType.DOCX,
        severity=Severity.WARNING,
        summary="Heading level skipped",
        default_location="word/document.xml",
        multiplicity=Multiplicity.PER_OCCURRENCE,
    ),
    RuleDefinition(
        rule_id="DOCX-E001",
        document_type=DocumentType.DOCX,
        severity=Severity.ERROR,
        summary="Images missing alt text",
        default_location="word/document.xml",
    ),
    RuleDefinition(
        rule_id="DOCX-E002",
        document_type=DocumentType.DOCX,
        severity=Severity.ERROR,
        confidence=ConfidenceLevel.MEDIUM,
        summary="Tables without header rows",
        default_location="word/document.xml",
    ),
    RuleDefinition(
        rule_id="DOCX-E005",
        document_type=DocumentType.DOCX,
        severity=Severity.ERROR,
        confidence=ConfidenceLevel.MEDIUM,
        summary="Merged table cells found",
        default_location="word/document.xml",
    ),
    # XLSX ---------------------------------------------------------------
    RuleDefinition(
        rule_id="XLSX-E006",
        document_type=DocumentType.XLSX,
        severity=Severity.ERROR,
        summary="Workbook title is not set",
        default_location="docProps/core.xml",
    ),
    RuleDefinition(
        rule_id="XLSX-E003",
        document_type=DocumentType.XLSX,
        severity=Severity.ERROR,
        summary="Sheets using default names",
        default_location="xl/workbook.xml",
    ),
    RuleDefinition(
        rule_id="XLSX-E004",
        document_type=DocumentType.XLSX,
        severity=Severity.ERROR,
        confidence=ConfidenceLevel.MEDIUM,
        summary="Merged cell regions found",
        default_location="worksheets",
    ),
    RuleDefinition(
        rule_id="XLSX-E001",
        document_type=DocumentType.XLSX,
        severity=Severity.ERROR,
        summary="Images missing alt text",
        default_location="xl/drawings",
    ),
    # PPTX ---------------------------------------------------------------
    RuleDefinition(
        rule_id="PPTX-W001",
        document_type=DocumentType.PPTX,
        severity=Severity.WARNING,
        summary="Presentation title is not set",
        default_location="docProps/core.xml",
    ),
    RuleDefinition(
        rule_id="PPTX-E002",
        document_type=DocumentType.PPTX,
        severity=Severity.ERROR,
        summary="Slides missing titles",
        default_location="ppt/slides",
    ),
    RuleDefinition(
        rule_id="PPTX-W002",
        document_type=DocumentType.PPTX,
        severity=Severity.WARNING,
        summary="Duplicate slide title",
        default_location="ppt/slides",
        multiplicity=Multiplicity.PER_OCCURRENCE,
    ),
    RuleDefinition(
        rule_id="PPTX-E001",
        document_type=DocumentType.PPTX,
        severity=Severity.ERROR,
        summary="Images missing alt text",
        default_location="ppt/slides",
    ),
    # PDF ----------------------------------------------------------------
    RuleDefinition(
        rule_id="PDFUA.01.001",
        document_type=DocumentType.PDF,
        severity=Severity.ERROR,
        summary="No structure tree, document is not tagged",
        default_location="document catalog",
    ),
    RuleDefinition(
        rule_id="PDFUA.01.002",
        document_type=DocumentType.PDF,
        severity=Severity.ERROR,
        summary="PDF is not marked as tagged",
        default_location="MarkInfo",
    ),
    RuleDefinition(
        rule_id="PDFUA.06.001",
        document_type=DocumentType.PDF,
        severity=Severity.ERROR,
        summary="Document language not set",
        default_location="document catalog",
    ),
    RuleDefinition(
        rule_id="PDFUA.13.001",
        document_type=DocumentType.PDF,
        severity=Severity.ERROR,
        confidence=ConfidenceLevel.MEDIUM,
        requires_human_review=True,
        summary="Figure elements without alt text",
        default_location="structure tree",
    ),
    RuleDefinition(
        rule_id="PDFUA.19.001",
        document_type=DocumentType.PDF,
        severity=Severity.WARNING,
        confidence=ConfidenceLevel.LOW,
        requires_human_review=True,
        summary="Tables detected, verify header cells are designated",
        default_location="structure tree",
    ),
    RuleDefinition(
        rule_id="PDFUA.26.001",
        document_type=DocumentType.PDF,
        severity=Severity.WARNING,
        confidence=ConfidenceLevel.LOW,
        requires_human_review=True,
        summary="Form fields detected, verify tooltips and tab order",
        default_location="AcroForm",
    ),
    RuleDefinition(
        rule_id="PDFUA.28.001",
        document_type=DocumentType.PDF,
        severity=Severity.WARNING,
        confidence=ConfidenceLevel.LOW,
        requires_human_review=True,
        summary="Link annotations detected, verify link text is descriptive",
        default_location="annotations",
    ),
    RuleDefinition(
        rule_id="PDFBP.META.TITLE_PRESENT",
        document_type=DocumentType.PDF,
        severity=Severity.ERROR,
        summary="Document title missing",
        default_location="Info dictionary",
    ),
    RuleDefinition(
        rule_id="PDFBP.TEXT.EXTRACTABLE",
        document_type=DocumentType.PDF,
        severity=Severity.ERROR,
        confidence=ConfidenceLevel.MEDIUM,
        summary="No extractable text, likely image-only PDF",
        default_location="page content",
    ),
    RuleDefinition(
        rule_id="PDFBP.TEXT.UNICODE_MAP",
        document_type=DocumentType.PDF,
        severity=Severity.WARNING,
        confidence=ConfidenceLevel.MEDIUM,
        summary="No ToUnicode maps for fonts",
        default_location="font resources",
    ),
    RuleDefinition(
        rule_id="PDFBP.FONTS.EMBEDDED",
        document_type=DocumentType.PDF,
        severity=Severity.TIP,
        confidence=ConfidenceLevel.MEDIUM,
        summary="No embedded font programs found",
        default_location="font resources",
    ),
    RuleDefinition(
        rule_id="PDFBP.NAV.BOOKMARKS_FOR_LONG_DOCS",
        document_type=DocumentType.PDF,
        severity=Severity.WARNING,
        summary="Long document without bookmarks",
        default_location="document outlines",
    ),
    RuleDefinition(
        rule_id="PDFQ.REPO.NO_SCANNED_ONLY",
        document_type=DocumentType.PDF,
        severity=Severity.ERROR,
        confidence=ConfidenceLevel.MEDIUM,
        summary="Image-only PDF in repository",
        default_location="page content",
        suppressed_with="PDFBP.TEXT.EXTRACTABLE",
    ),
    RuleDefinition(
        rule_id="PDFQ.REPO.ENCRYPTED",
        document_type=DocumentType.PDF,
        severity=Severity.WARNING,
        summary="PDF is encrypted, may block assistive technology access",
        default_location="encryption dictionary",
    ),
]

RULES: Dict[str, RuleDefinition] = {rule.rule_id: rule for rule in _DEFINITIONS}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def get_rule(rule_id: str) -> RuleDefinition:
    """Look up a rule definition. Unknown ids are a programming error."""
    return RULES[rule_id]


def apply_rule_config(
    findings: Iterable[Finding],
    *,
    disabled_rules: Iterable[str] = (),
    severity_filter: Iterable[Severity] = tuple(Severity),
) -> List[Finding]:
    """
    Drop findings suppressed by configuration, preserving order.

    A finding is dropped when its rule is disabled, when its severity is
    not in the severity filter, or when the rule it is suppressed with is
    disabled.
    """
    disabled = set(disabled_rules)
    allowed = set(severity_filter)

    kept: List[Finding] = []
    for finding in findings:
        if finding.rule_id in disabled:
            continue
        if finding.severity not in allowed:
            continue
        rule = RULES.get(finding.rule_id)
        if rule is not None and rule.suppressed_with in disabled:
            continue
        kept.append(finding)
    return kept
