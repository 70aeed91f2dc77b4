"""
Rule evaluation driver shared by the format-specific engines.

A check is a plain function taking the extracted document subject (an
OfficePackage or PdfStructuralFacts) and returning the raw findings for
one rule category. Checks never consult configuration; suppression is
applied afterwards by the rule catalog.

Error handling policy:
    A check that hits an unparseable XML part (MalformedXmlError) emits no
    finding and the remaining checks still run. False negatives are
    preferred over failing the document. Any other exception indicates a
    logic error and propagates.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Sequence, TypeVar

from docscan.app.checks.rule_catalog import apply_rule_config
from docscan.app.config import RuleConfig
from docscan.app.errors import MalformedXmlError
from docscan.app.schemas.findings import Finding

logger = logging.getLogger(__name__)


Subject = TypeVar("Subject")

# Deterministic rule check contract
RuleCheck = Callable[[Subject], Iterable[Finding]]


def evaluate_checks(checks: Sequence[RuleCheck], subject) -> List[Finding]:
    """Run each check in order and concatenate their raw findings."""
    findings: List[Finding] = []

    for check in checks:
        try:
            findings.extend(check(subject))
        except MalformedXmlError as exc:
            logger.warning(
                "Rule check %s skipped on malformed XML: %s",
                check.__name__,
                exc,
            )

    return findings


def run_rule_checks(
    checks: Sequence[RuleCheck],
    subject,
    config: RuleConfig,
) -> List[Finding]:
    """Evaluate checks, then apply disabled-rule and severity suppression."""
    return apply_rule_config(
        evaluate_checks(checks, subject),
        disabled_rules=config.disabled_rules,
        severity_filter=config.severity_filter,
    )
