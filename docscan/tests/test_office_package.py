"""
Tests for degrade-to-empty part access on Office packages.
"""

import logging

import pytest

from docscan.app.container.office_package import OfficePackage, part_number
from docscan.app.errors import ArchiveFormatError, MalformedXmlError
from docscan.app.parsing.xml_query import xml_text
from docscan.tests.fixtures.office_factory import (
    build_package,
    core_xml,
    raw_deflate,
    raw_zip,
)


def test_construction_requires_a_central_directory():
    with pytest.raises(ArchiveFormatError):
        OfficePackage(b"PK but not really")


def test_missing_part_reads_as_empty():
    package = OfficePackage(build_package({"word/document.xml": "<doc/>"}))

    assert package.part_text("docProps/core.xml") == ""
    assert xml_text(package.xml("docProps/core.xml"), "dc:title") == []


def test_unsupported_compression_reads_as_empty(caplog):
    data = raw_zip([
        ("docProps/core.xml", core_xml("Title").encode("utf-8"), 14),
    ])
    package = OfficePackage(data)

    with caplog.at_level(logging.WARNING):
        assert package.part_text("docProps/core.xml") == ""

    assert "docProps/core.xml" in caplog.text


def test_oversized_part_reads_as_empty():
    payload = b"<doc>" + b"x" * 4096 + b"</doc>"
    data = raw_zip([("word/document.xml", raw_deflate(payload), 8, len(payload))])
    package = OfficePackage(data, max_uncompressed_size=1024)

    assert package.part_text("word/document.xml") == ""


def test_malformed_part_raises_on_every_access():
    package = OfficePackage(build_package({"word/document.xml": "<w:body><unclosed>"}))

    with pytest.raises(MalformedXmlError):
        package.xml("word/document.xml")
    with pytest.raises(MalformedXmlError):
        package.xml("word/document.xml")


def test_parsed_parts_are_cached():
    package = OfficePackage(build_package({"docProps/core.xml": core_xml("Cached")}))

    assert package.xml("docProps/core.xml") is package.xml("docProps/core.xml")


def test_numbered_parts_sort_numerically():
    names = ["ppt/slides/slide10.xml", "ppt/slides/slide2.xml", "ppt/slides/slide1.xml"]
    package = OfficePackage(build_package({name: "<p:sld/>" for name in names}))

    assert package.numbered_parts(r"ppt/slides/slide\d+\.xml") == [
        "ppt/slides/slide1.xml",
        "ppt/slides/slide2.xml",
        "ppt/slides/slide10.xml",
    ]


def test_part_names_filter_is_a_full_match():
    package = OfficePackage(build_package({
        "xl/worksheets/sheet1.xml": "<worksheet/>",
        "xl/worksheets/_rels/sheet1.xml.rels": "<Relationships/>",
    }))

    assert package.part_names(r"xl/worksheets/sheet\d+\.xml") == ["xl/worksheets/sheet1.xml"]


def test_part_number_of_unnumbered_part_is_zero():
    assert part_number("ppt/presentation.xml") == 0
    assert part_number("ppt/slides/slide7.xml") == 7
