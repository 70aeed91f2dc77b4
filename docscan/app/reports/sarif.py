"""
SARIF 2.1.0 emitter.

Produces one run per scan. Rules are deduplicated by id in first-seen
order and described from the rule catalog. Findings are document
structural, not line addressable, so each result carries a single
physical location (the document path) without a region.

Severity mapping:
    error   -> error
    warning -> warning
    tip     -> note
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Any, Dict, Iterable, List

from docscan.app.checks.rule_catalog import RULES
from docscan.app.schemas.findings import Finding, Severity
from docscan.app.schemas.scan_report import DocumentScanResult


SARIF_SCHEMA = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/"
    "sarif-2.1/schema/sarif-schema-2.1.0.json"
)
SARIF_VERSION = "2.1.0"
TOOL_NAME = "docscan"

SARIF_LEVELS = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.TIP: "note",
}


def _tool_version() -> str:
    try:
        return version(TOOL_NAME)
    except PackageNotFoundError:
        return "0.0.0"


def _rule_descriptor(finding: Finding) -> Dict[str, Any]:
    rule = RULES.get(finding.rule_id)
    summary = rule.summary if rule is not None else finding.message
    return {
        "id": finding.rule_id,
        "shortDescription": {"text": summary},
        "defaultConfiguration": {"level": SARIF_LEVELS[finding.severity]},
    }


def _result(finding: Finding, uri: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "ruleId": finding.rule_id,
        "level": SARIF_LEVELS[finding.severity],
        "message": {"text": finding.message},
        "locations": [
            {"physicalLocation": {"artifactLocation": {"uri": uri}}}
        ],
    }

    properties: Dict[str, Any] = {}
    if finding.confidence is not None:
        properties["confidence"] = finding.confidence.value
    if finding.requires_human_review:
        properties["requiresHumanReview"] = True
    if properties:
        result["properties"] = properties

    return result


def build_sarif(documents: Iterable[DocumentScanResult]) -> Dict[str, Any]:
    """Build a SARIF log object (JSON-serializable dict) for scan results."""
    rules: Dict[str, Dict[str, Any]] = {}
    results: List[Dict[str, Any]] = []

    for document in documents:
        for finding in document.findings:
            if finding.rule_id not in rules:
                rules[finding.rule_id] = _rule_descriptor(finding)
            results.append(_result(finding, document.path))

    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": TOOL_NAME,
                        "version": _tool_version(),
                        "rules": list(rules.values()),
                    }
                },
                "results": results,
            }
        ],
    }
