"""
PowerPoint (PPTX) accessibility checks.

Slides are the parts ppt/slides/slideN.xml, evaluated in ascending N. The
slide number reported in findings is N, which matches the slide order of
presentations written by PowerPoint.

A slide title is the text of the shape holding a "title" or "ctrTitle"
placeholder. Text runs are concatenated per paragraph and paragraphs are
joined with a single space.

Duplicate titles are compared after collapsing whitespace and case
folding. Each repeat is reported against the first slide carrying the
title.
"""

from __future__ import annotations

from typing import Dict, List, Optional
import xml.etree.ElementTree as ET

from docscan.app.checks.engine import run_rule_checks
from docscan.app.checks.rule_catalog import get_rule
from docscan.app.config import RuleConfig
from docscan.app.container.office_package import OfficePackage, part_number
from docscan.app.parsing.xml_query import find_all, is_on, xml_attr, xml_text
from docscan.app.schemas.findings import Finding


CORE_PART = "docProps/core.xml"
SLIDE_PARTS = r"ppt/slides/slide\d+\.xml"

TITLE_PLACEHOLDERS = {"title", "ctrTitle"}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _shape_text(shape: ET.Element) -> str:
    paragraphs = [
        "".join(run.text or "" for run in find_all(paragraph, "a:t"))
        for paragraph in find_all(shape, "a:p")
    ]
    return " ".join(p.strip() for p in paragraphs if p.strip())


def slide_title(slide: ET.Element) -> Optional[str]:
    """
    Title text of a slide.

    Returns None when the slide has no title placeholder and "" when the
    placeholder exists but holds no text.
    """
    for shape in find_all(slide, "p:sp"):
        placeholder_types = xml_attr(shape, "p:ph", "type")
        if TITLE_PLACEHOLDERS.intersection(placeholder_types):
            return _shape_text(shape)
    return None


def _normalize_title(title: str) -> str:
    return " ".join(title.split()).casefold()


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_title(package: OfficePackage) -> List[Finding]:
    titles = xml_text(package.xml(CORE_PART), "dc:title")
    if titles and titles[0]:
        return []
    return [get_rule("PPTX-W001").finding()]


def check_slide_titles(package: OfficePackage) -> List[Finding]:
    missing = 0
    for part in package.numbered_parts(SLIDE_PARTS):
        if not slide_title(package.xml(part)):
            missing += 1

    if not missing:
        return []
    return [get_rule("PPTX-E002").finding(f"{missing} slide(s) missing titles")]


def check_duplicate_titles(package: OfficePackage) -> List[Finding]:
    rule = get_rule("PPTX-W002")
    findings: List[Finding] = []
    first_seen: Dict[str, int] = {}

    for part in package.numbered_parts(SLIDE_PARTS):
        title = slide_title(package.xml(part))
        if not title:
            continue

        number = part_number(part)
        key = _normalize_title(title)

        if key in first_seen:
            findings.append(
                rule.finding(
                    f'Slides {first_seen[key]} and {number} share the '
                    f'title "{title}"',
                    location=part,
                )
            )
        else:
            first_seen[key] = number

    return findings


def check_image_alt_text(package: OfficePackage) -> List[Finding]:
    missing = 0

    for part in package.numbered_parts(SLIDE_PARTS):
        for picture in find_all(package.xml(part), "p:pic"):
            decorative = xml_attr(picture, "adec:decorative", "val")
            if decorative and is_on(decorative):
                continue
            descriptions = xml_attr(picture, "p:cNvPr", "descr")
            if not any(text.strip() for text in descriptions):
                missing += 1

    if not missing:
        return []
    return [get_rule("PPTX-E001").finding(f"{missing} image(s) missing alt text")]


_CHECKS = [
    check_title,
    check_slide_titles,
    check_duplicate_titles,
    check_image_alt_text,
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_pptx_checks(package: OfficePackage, config: RuleConfig) -> List[Finding]:
    return run_rule_checks(_CHECKS, package, config)
