"""
PDF accessibility checks.

Rules are evaluated exclusively against the PdfStructuralFacts summary;
nothing here looks at document bytes. Checks for tables, forms, links and
figure alt text are presence heuristics and are flagged for human review
in the rule catalog.

Figure alt text is tri-state: PDFUA.13.001 fires only when figures exist
and none carries alt content. A document without figures is never
reported for missing alt text.
"""

from __future__ import annotations

from typing import List

from docscan.app.checks.engine import run_rule_checks
from docscan.app.checks.rule_catalog import get_rule
from docscan.app.config import RuleConfig
from docscan.app.schemas.findings import Finding
from docscan.app.schemas.pdf_facts import PdfStructuralFacts


LONG_DOCUMENT_PAGES = 10


# ---------------------------------------------------------------------------
# PDF/UA checks
# ---------------------------------------------------------------------------

def check_structure_tree(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.has_structure_tree:
        return []
    return [get_rule("PDFUA.01.001").finding()]


def check_tagged(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.is_tagged:
        return []
    return [get_rule("PDFUA.01.002").finding()]


def check_language(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.has_lang:
        return []
    return [get_rule("PDFUA.06.001").finding()]


def check_figure_alt_text(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.has_alt_on_figures is False:
        return [get_rule("PDFUA.13.001").finding()]
    return []


def check_tables(facts: PdfStructuralFacts) -> List[Finding]:
    if not facts.has_tables:
        return []
    return [get_rule("PDFUA.19.001").finding()]


def check_forms(facts: PdfStructuralFacts) -> List[Finding]:
    if not facts.has_forms:
        return []
    return [get_rule("PDFUA.26.001").finding()]


def check_links(facts: PdfStructuralFacts) -> List[Finding]:
    if not facts.has_links:
        return []
    return [get_rule("PDFUA.28.001").finding()]


# ---------------------------------------------------------------------------
# Best-practice checks
# ---------------------------------------------------------------------------

def check_title(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.has_title:
        return []
    return [get_rule("PDFBP.META.TITLE_PRESENT").finding()]


def check_text_extractable(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.has_text:
        return []
    return [get_rule("PDFBP.TEXT.EXTRACTABLE").finding()]


def check_unicode_map(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.has_text and not facts.has_unicode_map:
        return [get_rule("PDFBP.TEXT.UNICODE_MAP").finding()]
    return []


def check_embedded_fonts(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.has_text and not facts.has_embedded_fonts:
        return [get_rule("PDFBP.FONTS.EMBEDDED").finding()]
    return []


def check_bookmarks(facts: PdfStructuralFacts) -> List[Finding]:
    if facts.page_count > LONG_DOCUMENT_PAGES and not facts.has_bookmarks:
        return [
            get_rule("PDFBP.NAV.BOOKMARKS_FOR_LONG_DOCS").finding(
                f"{facts.page_count} pages without bookmarks"
            )
        ]
    return []


# ---------------------------------------------------------------------------
# Repository quality checks
# ---------------------------------------------------------------------------

def check_scanned_only(facts: PdfStructuralFacts) -> List[Finding]:
    # Suppressed together with PDFBP.TEXT.EXTRACTABLE (see rule catalog).
    if facts.has_text:
        return []
    return [get_rule("PDFQ.REPO.NO_SCANNED_ONLY").finding()]


def check_encrypted(facts: PdfStructuralFacts) -> List[Finding]:
    if not facts.is_encrypted:
        return []
    return [get_rule("PDFQ.REPO.ENCRYPTED").finding()]


_CHECKS = [
    check_structure_tree,
    check_tagged,
    check_language,
    check_figure_alt_text,
    check_tables,
    check_forms,
    check_links,
    check_title,
    check_text_extractable,
    check_unicode_map,
    check_embedded_fonts,
    check_bookmarks,
    check_scanned_only,
    check_encrypted,
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_pdf_checks(facts: PdfStructuralFacts, config: RuleConfig) -> List[Finding]:
    return run_rule_checks(_CHECKS, facts, config)
