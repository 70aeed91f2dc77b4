"""
Markdown report renderer.

Renders a BatchScanReport for humans: a batch summary first, then one
section per scanned document with its score, grade and findings table.
Presentation only; every value comes from the report object.
"""

from __future__ import annotations

from typing import List

from docscan.app.schemas.scan_report import BatchScanReport, DocumentScanResult


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def _summary_lines(report: BatchScanReport) -> List[str]:
    summary = report.summary
    lines = ["# Accessibility Scan Report", ""]

    if report.root:
        lines.append(f"Scan root: `{report.root}`")
    lines.append(f"Generated: {report.generated_at.isoformat()}")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Documents scanned: {summary.documents_scanned}")
    lines.append(f"- Documents skipped: {summary.documents_skipped}")
    if summary.average_score is not None:
        lines.append(
            f"- Average score: {summary.average_score} "
            f"(grade {summary.grade.value})"
        )
    else:
        lines.append("- Average score: n/a")
    lines.append(
        f"- Findings: {summary.total_errors} error(s), "
        f"{summary.total_warnings} warning(s), {summary.total_tips} tip(s)"
    )
    lines.append("")

    if summary.top_patterns:
        lines.append("### Top patterns")
        lines.append("")
        lines.append("| Rule | Documents |")
        lines.append("|---|---|")
        for pattern in summary.top_patterns:
            lines.append(f"| {pattern.rule_id} | {pattern.document_count} |")
        lines.append("")

    if report.skipped:
        lines.append("### Skipped documents")
        lines.append("")
        for skipped in report.skipped:
            lines.append(f"- `{skipped.path}`: {skipped.reason}")
        lines.append("")

    return lines


def _document_lines(document: DocumentScanResult) -> List[str]:
    lines = [
        f"## {document.path}",
        "",
        f"Score: {document.score.score} (grade {document.score.grade.value})",
        "",
    ]

    if not document.findings:
        lines.append("No findings.")
        lines.append("")
        return lines

    lines.append("| Severity | Rule | Message | Location | Review |")
    lines.append("|---|---|---|---|---|")
    for finding in document.findings:
        review = "yes" if finding.requires_human_review else ""
        lines.append(
            f"| {finding.severity.value} | {finding.rule_id} | "
            f"{_escape_cell(finding.message)} | "
            f"{_escape_cell(finding.location)} | {review} |"
        )
    lines.append("")
    return lines


def render_markdown(report: BatchScanReport) -> str:
    lines = _summary_lines(report)
    for document in report.documents:
        lines.extend(_document_lines(document))
    return "\n".join(lines).rstrip() + "\n"
