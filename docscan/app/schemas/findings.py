"""
Standardized finding schema.

Defines the canonical structure used to report accessibility defects
detected by the format-specific rule engines (DOCX, XLSX, PPTX, PDF).

This schema is:
- rule-traceable (one rule_id per rule definition)
- immutable once created
- severity-graded
- optionally confidence-scored
- the sole interface surface consumed by report emitters

All findings included in a DocumentScanResult MUST conform to this schema.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pydantic import ConfigDict


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """
    Severity level of a finding.

    Ordering is intentional and MUST remain stable.
    """

    ERROR = "error"
    WARNING = "warning"
    TIP = "tip"


class ConfidenceLevel(str, Enum):
    """
    Confidence level of the finding.

    Indicates how certain the scanner is that the defect exists
    as described. Heuristic checks report lower confidence.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DocumentType(str, Enum):
    """
    Document formats understood by the scanner.

    Values double as lowercase file extensions and as configuration keys.
    """

    DOCX = "docx"
    XLSX = "xlsx"
    PPTX = "pptx"
    PDF = "pdf"

    @property
    def is_office(self) -> bool:
        return self is not DocumentType.PDF

    @classmethod
    def from_path(cls, path: str) -> Optional["DocumentType"]:
        """Resolve a document type from a file name, or None if unknown."""
        _, dot, ext = path.rpartition(".")
        if not dot:
            return None
        try:
            return cls(ext.lower())
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Canonical Finding Object (PUBLIC, FROZEN)
# ---------------------------------------------------------------------------


class Finding(BaseModel):
    """
    Canonical accessibility finding.

    Represents a single immutable observation. The same rule_id may appear
    more than once per scan only for rules that count independent
    occurrences (see the rule catalog multiplicity).
    """

    rule_id: str = Field(
        ...,
        description="Identifier of the rule definition (e.g. 'DOCX-E004')",
    )

    severity: Severity = Field(
        ...,
        description="Severity level of the finding",
    )

    message: str = Field(
        ...,
        description="Human-readable description, may interpolate counts",
    )

    location: str = Field(
        ...,
        description="Symbolic location (archive part, PDF structure, ...)",
    )

    confidence: Optional[ConfidenceLevel] = Field(
        None,
        description="Confidence level; scored as HIGH when absent",
    )

    requires_human_review: bool = Field(
        default=False,
        description=(
            "When True, the finding comes from a presence heuristic and "
            "must be confirmed by a person before remediation."
        ),
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
