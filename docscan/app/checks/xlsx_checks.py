"""
Excel (XLSX) accessibility checks.

SpreadsheetML parts use a default namespace, so workbook and worksheet
elements are queried by local name.
"""

from __future__ import annotations

import re
from typing import List

from docscan.app.checks.engine import run_rule_checks
from docscan.app.checks.rule_catalog import get_rule
from docscan.app.config import RuleConfig
from docscan.app.container.office_package import OfficePackage
from docscan.app.parsing.xml_query import find_all, is_on, xml_attr, xml_count, xml_text
from docscan.app.schemas.findings import Finding


WORKBOOK_PART = "xl/workbook.xml"
CORE_PART = "docProps/core.xml"
WORKSHEET_PARTS = r"xl/worksheets/sheet\d+\.xml"
DRAWING_PARTS = r"xl/drawings/drawing\d+\.xml"

_DEFAULT_SHEET_NAME = re.compile(r"^Sheet\d+$", re.IGNORECASE)


def check_title(package: OfficePackage) -> List[Finding]:
    titles = xml_text(package.xml(CORE_PART), "dc:title")
    if titles and titles[0]:
        return []
    return [get_rule("XLSX-E006").finding()]


def check_sheet_names(package: OfficePackage) -> List[Finding]:
    names = xml_attr(package.xml(WORKBOOK_PART), "sheet", "name")
    defaults = [name for name in names if _DEFAULT_SHEET_NAME.match(name)]

    if not defaults:
        return []
    return [
        get_rule("XLSX-E003").finding(
            f"{len(defaults)} sheet(s) using default names"
        )
    ]


def check_merged_cells(package: OfficePackage) -> List[Finding]:
    merged = sum(
        xml_count(package.xml(part), "mergeCell")
        for part in package.numbered_parts(WORKSHEET_PARTS)
    )

    if not merged:
        return []
    return [get_rule("XLSX-E004").finding(f"{merged} merged cell region(s) found")]


def check_image_alt_text(package: OfficePackage) -> List[Finding]:
    missing = 0

    for part in package.numbered_parts(DRAWING_PARTS):
        for picture in find_all(package.xml(part), "xdr:pic"):
            decorative = xml_attr(picture, "adec:decorative", "val")
            if decorative and is_on(decorative):
                continue
            descriptions = xml_attr(picture, "xdr:cNvPr", "descr")
            if not any(text.strip() for text in descriptions):
                missing += 1

    if not missing:
        return []
    return [get_rule("XLSX-E001").finding(f"{missing} image(s) missing alt text")]


_CHECKS = [
    check_title,
    check_sheet_names,
    check_merged_cells,
    check_image_alt_text,
]


def run_xlsx_checks(package: OfficePackage, config: RuleConfig) -> List[Finding]:
    return run_rule_checks(_CHECKS, package, config)
