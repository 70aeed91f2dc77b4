"""
Word (DOCX) accessibility checks.

Parts consulted:
    word/document.xml   body content (headings, drawings, tables)
    word/styles.xml     style-level language defaults
    docProps/core.xml   title and language metadata

Heading detection relies on paragraph style ids of the form HeadingN,
which is what Word writes for its built-in heading styles. Custom styles
based on a heading style are not resolved.

Heading skips are reported per occurrence across the whole document. The
first heading is never evaluated, so a document opening with Heading 2 is
not flagged.
"""

from __future__ import annotations

import re
from typing import List, Optional

from docscan.app.checks.engine import run_rule_checks
from docscan.app.checks.rule_catalog import get_rule
from docscan.app.config import RuleConfig
from docscan.app.container.office_package import OfficePackage
from docscan.app.parsing.xml_query import (
    NAMESPACES,
    find_all,
    is_on,
    xml_attr,
    xml_count,
    xml_has,
    xml_text,
)
from docscan.app.schemas.findings import Finding


DOCUMENT_PART = "word/document.xml"
STYLES_PART = "word/styles.xml"
CORE_PART = "docProps/core.xml"

_HEADING_STYLE = re.compile(r"^Heading(\d+)$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _heading_levels(package: OfficePackage) -> List[int]:
    """Heading levels in document order."""
    levels: List[int] = []
    for style in xml_attr(package.xml(DOCUMENT_PART), "w:pStyle", "w:val"):
        match = _HEADING_STYLE.match(style)
        if match:
            levels.append(int(match.group(1)))
    return levels


def _title(package: OfficePackage) -> Optional[str]:
    titles = xml_text(package.xml(CORE_PART), "dc:title")
    return titles[0] if titles else None


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_title(package: OfficePackage) -> List[Finding]:
    if _title(package):
        return []
    return [get_rule("DOCX-E004").finding()]


def check_language(package: OfficePackage) -> List[Finding]:
    if xml_has(package.xml(DOCUMENT_PART), "w:lang"):
        return []
    if xml_has(package.xml(STYLES_PART), "w:lang"):
        return []
    if xml_has(package.xml(CORE_PART), "dc:language"):
        return []
    return [get_rule("DOCX-T001").finding()]


def check_headings_present(package: OfficePackage) -> List[Finding]:
    if _heading_levels(package):
        return []
    return [get_rule("DOCX-E007").finding()]


def check_heading_order(package: OfficePackage) -> List[Finding]:
    rule = get_rule("DOCX-W001")
    findings: List[Finding] = []

    previous: Optional[int] = None
    for level in _heading_levels(package):
        if previous is not None and level > previous + 1:
            findings.append(
                rule.finding(
                    f"Heading level skipped: Heading {previous} "
                    f"followed by Heading {level}"
                )
            )
        previous = level

    return findings


def check_image_alt_text(package: OfficePackage) -> List[Finding]:
    missing = 0

    for drawing in find_all(package.xml(DOCUMENT_PART), "w:drawing"):
        decorative = xml_attr(drawing, "adec:decorative", "val")
        if decorative and is_on(decorative):
            continue

        descriptions = (
            xml_attr(drawing, "wp:docPr", "descr")
            + xml_attr(drawing, "pic:cNvPr", "descr")
        )
        if not any(text.strip() for text in descriptions):
            missing += 1

    if not missing:
        return []
    return [get_rule("DOCX-E001").finding(f"{missing} image(s) missing alt text")]


def check_table_headers(package: OfficePackage) -> List[Finding]:
    without_header = 0

    for table in find_all(package.xml(DOCUMENT_PART), "w:tbl"):
        header_flags = [
            flag.get(f"{{{NAMESPACES['w']}}}val", "1")
            for flag in table.findall("w:tr/w:trPr/w:tblHeader", NAMESPACES)
        ]
        if not is_on(header_flags):
            without_header += 1

    if not without_header:
        return []
    return [
        get_rule("DOCX-E002").finding(
            f"{without_header} table(s) without header rows"
        )
    ]


def check_merged_cells(package: OfficePackage) -> List[Finding]:
    document = package.xml(DOCUMENT_PART)
    merged = xml_count(document, "w:gridSpan") + xml_count(document, "w:vMerge")

    if not merged:
        return []
    return [get_rule("DOCX-E005").finding(f"{merged} merged cell(s) found")]


_CHECKS = [
    check_title,
    check_language,
    check_headings_present,
    check_heading_order,
    check_image_alt_text,
    check_table_headers,
    check_merged_cells,
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_docx_checks(package: OfficePackage, config: RuleConfig) -> List[Finding]:
    return run_rule_checks(_CHECKS, package, config)
