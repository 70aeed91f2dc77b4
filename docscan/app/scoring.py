"""
Document scoring and batch aggregation.

Per-document score:
    100 minus the sum of per-finding deductions, floored at 0.

    severity   high  medium  low
    error       10      7     3
    warning      3      2     1
    tip          0      0     0

    A finding without a confidence level is scored as high confidence.

Batch aggregate:
    The average score is the arithmetic mean of per-document scores,
    rounded half-up to an integer, and the batch grade is derived from it
    with the per-document thresholds. Cross-document patterns count the
    documents (not findings) in which each rule fired and keep the top
    five, ties broken by rule id.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Sequence, Tuple

from docscan.app.schemas.findings import ConfidenceLevel, Finding, Severity
from docscan.app.schemas.scan_report import (
    BatchSummary,
    DocumentScanResult,
    RulePattern,
    ScoreCard,
    SkippedDocument,
    grade_for_score,
)


MAX_SCORE = 100
TOP_PATTERN_LIMIT = 5

DEDUCTIONS: Dict[Tuple[Severity, ConfidenceLevel], int] = {
    (Severity.ERROR, ConfidenceLevel.HIGH): 10,
    (Severity.ERROR, ConfidenceLevel.MEDIUM): 7,
    (Severity.ERROR, ConfidenceLevel.LOW): 3,
    (Severity.WARNING, ConfidenceLevel.HIGH): 3,
    (Severity.WARNING, ConfidenceLevel.MEDIUM): 2,
    (Severity.WARNING, ConfidenceLevel.LOW): 1,
}


def deduction_for(finding: Finding) -> int:
    confidence = finding.confidence or ConfidenceLevel.HIGH
    return DEDUCTIONS.get((finding.severity, confidence), 0)


def score_findings(findings: Iterable[Finding]) -> ScoreCard:
    total = sum(deduction_for(finding) for finding in findings)
    score = max(0, MAX_SCORE - total)
    return ScoreCard(score=score, grade=grade_for_score(score))


def average_score(scores: Sequence[int]) -> int:
    """Mean of integer scores, rounded half-up. Requires a non-empty sequence."""
    count = len(scores)
    return (2 * sum(scores) + count) // (2 * count)


def top_patterns(
    documents: Iterable[DocumentScanResult],
    limit: int = TOP_PATTERN_LIMIT,
) -> List[RulePattern]:
    counts: Counter = Counter()
    for document in documents:
        counts.update({finding.rule_id for finding in document.findings})

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [
        RulePattern(rule_id=rule_id, document_count=count)
        for rule_id, count in ranked[:limit]
    ]


def summarize_batch(
    documents: Sequence[DocumentScanResult],
    skipped: Sequence[SkippedDocument] = (),
) -> BatchSummary:
    severities = Counter(
        finding.severity
        for document in documents
        for finding in document.findings
    )

    if documents:
        average = average_score([document.score.score for document in documents])
        grade = grade_for_score(average)
    else:
        average = None
        grade = None

    return BatchSummary(
        documents_scanned=len(documents),
        documents_skipped=len(skipped),
        total_errors=severities[Severity.ERROR],
        total_warnings=severities[Severity.WARNING],
        total_tips=severities[Severity.TIP],
        average_score=average,
        grade=grade,
        top_patterns=top_patterns(documents),
    )
