"""
Tests for PowerPoint (PPTX) accessibility checks.

Coverage matrix:

  PPTX-W001  presentation title missing                  → warning
  PPTX-E002  slides without title / blank title          → counted
  PPTX-W002  identical titles on slides 2 and 5          → exactly one warning
             normalized comparison                       → duplicate
             slide10 vs slide2 ordering                  → numeric order
  PPTX-E001  pictures without description                → counted, decorative excluded (1/true/on)
"""

from docscan.app.checks.pptx_checks import run_pptx_checks, slide_title
from docscan.app.config import RuleConfig
from docscan.app.container.office_package import OfficePackage
from docscan.app.parsing.xml_query import parse_xml
from docscan.app.schemas.findings import Severity
from docscan.tests.fixtures.office_factory import pptx_bytes, slide_xml


def _scan(data: bytes, config: RuleConfig = RuleConfig()):
    return run_pptx_checks(OfficePackage(data), config)


def _by_rule(findings, rule_id):
    return [f for f in findings if f.rule_id == rule_id]


def test_accessible_presentation_has_no_findings():
    data = pptx_bytes([
        slide_xml("Welcome", placeholder="ctrTitle"),
        slide_xml("Agenda", pictures=["Team photo"]),
    ])
    assert _scan(data) == []


def test_missing_presentation_title_is_a_warning():
    findings = _scan(pptx_bytes([slide_xml("Welcome")], title=None))

    assert [f.rule_id for f in findings] == ["PPTX-W001"]
    assert findings[0].severity == Severity.WARNING


# ---------------------------------------------------------------------------
# Slide titles
# ---------------------------------------------------------------------------

def test_slides_without_titles_are_counted():
    findings = _scan(pptx_bytes([
        slide_xml("Welcome"),
        slide_xml(None),
        slide_xml(""),
    ]))

    missing = _by_rule(findings, "PPTX-E002")
    assert [f.message for f in missing] == ["2 slide(s) missing titles"]


def test_slide_title_joins_runs_and_paragraphs():
    slide = parse_xml(
        '<p:sld xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main" '
        'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main">'
        '<p:cSld><p:spTree><p:sp><p:nvSpPr><p:nvPr><p:ph type="title"/></p:nvPr></p:nvSpPr>'
        "<p:txBody><a:p><a:r><a:t>Over</a:t></a:r><a:r><a:t>view</a:t></a:r></a:p>"
        "<a:p><a:r><a:t>2024</a:t></a:r></a:p></p:txBody></p:sp></p:spTree></p:cSld></p:sld>"
    )
    assert slide_title(slide) == "Overview 2024"


# ---------------------------------------------------------------------------
# Duplicate titles
# ---------------------------------------------------------------------------

def test_duplicate_title_on_slides_two_and_five():
    data = pptx_bytes([
        slide_xml("Welcome"),
        slide_xml("Overview"),
        slide_xml("Revenue"),
        slide_xml("Costs"),
        slide_xml("Overview"),
    ])

    duplicates = _by_rule(_scan(data), "PPTX-W002")

    assert len(duplicates) == 1
    assert duplicates[0].message == 'Slides 2 and 5 share the title "Overview"'
    assert duplicates[0].location == "ppt/slides/slide5.xml"


def test_duplicate_titles_compare_normalized_text():
    data = pptx_bytes([slide_xml("Quarterly  Results"), slide_xml("quarterly results")])
    assert len(_by_rule(_scan(data), "PPTX-W002")) == 1


def test_slides_are_ordered_numerically():
    titles = [f"Topic {n}" for n in range(1, 12)]
    titles[1] = "Agenda"
    titles[9] = "Agenda"
    data = pptx_bytes([slide_xml(title) for title in titles])

    duplicates = _by_rule(_scan(data), "PPTX-W002")
    assert [f.message for f in duplicates] == ['Slides 2 and 10 share the title "Agenda"']


def test_each_repeat_is_reported_against_first_slide():
    data = pptx_bytes([slide_xml("Summary")] * 3)

    messages = [f.message for f in _by_rule(_scan(data), "PPTX-W002")]
    assert messages == [
        'Slides 1 and 2 share the title "Summary"',
        'Slides 1 and 3 share the title "Summary"',
    ]


# ---------------------------------------------------------------------------
# Pictures
# ---------------------------------------------------------------------------

def test_pictures_missing_alt_text_are_counted():
    data = pptx_bytes([
        slide_xml("Photos", pictures=[None, "Office building"]),
        slide_xml("More photos", pictures=[""]),
    ])

    images = _by_rule(_scan(data), "PPTX-E001")
    assert [f.message for f in images] == ["2 image(s) missing alt text"]


def test_decorative_pictures_accept_any_on_spelling():
    data = pptx_bytes([
        slide_xml("Photos", pictures=[None], decorative=["true", "On"]),
        slide_xml("Divider", decorative=["1", "off"]),
    ])

    images = _by_rule(_scan(data), "PPTX-E001")
    assert [f.message for f in images] == ["2 image(s) missing alt text"]


def test_severity_filter_drops_warnings():
    data = pptx_bytes([slide_xml("Same"), slide_xml("Same")], title=None)
    findings = _scan(data, RuleConfig(severityFilter=["error"]))
    assert findings == []
