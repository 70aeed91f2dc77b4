"""
Tests for the minimal ZIP archive reader.

Coverage matrix:

  Index       zipfile-built package              → every entry, in order
  Index       trailing archive comment           → EOCD still located
  Index       corrupt central header signature   → walk stops, earlier entries kept
  Index       no EOCD                            → ArchiveFormatError
  Index       ZIP64 locator                      → ArchiveFormatError
  Extract     stored / deflated                  → exact bytes
  Extract     unknown method                     → UnsupportedCompressionError
  Extract     declared size above ceiling        → ResourceLimitError
  Extract     inflated size above ceiling        → ResourceLimitError
  Extract     bad local header / corrupt data    → ArchiveFormatError
"""

import struct
import zipfile

import pytest

from docscan.app.container.archive_reader import (
    SIG_CENTRAL,
    extract_entry,
    list_entries,
)
from docscan.app.errors import (
    ArchiveFormatError,
    ResourceLimitError,
    UnsupportedCompressionError,
)
from docscan.tests.fixtures.office_factory import (
    accessible_docx,
    build_package,
    raw_deflate,
    raw_zip,
)


# ---------------------------------------------------------------------------
# Central directory index
# ---------------------------------------------------------------------------

def test_lists_entries_in_central_directory_order():
    data = build_package({
        "[Content_Types].xml": "<Types/>",
        "word/document.xml": "<doc/>",
        "docProps/core.xml": "<core/>",
    })

    entries = list_entries(data)

    assert list(entries) == [
        "[Content_Types].xml",
        "word/document.xml",
        "docProps/core.xml",
    ]
    assert entries["word/document.xml"].compression_method == zipfile.ZIP_DEFLATED


def test_index_is_a_pure_function_of_the_bytes():
    data = accessible_docx()
    assert list_entries(data) == list_entries(data)


def test_locates_eocd_behind_archive_comment():
    data = raw_zip([("a.xml", b"<a/>", 0)], comment=b"generated by a test suite")
    assert list(list_entries(data)) == ["a.xml"]


def test_corrupt_central_header_stops_walk_silently():
    data = raw_zip([
        ("first.xml", b"<first/>", 0),
        ("second.xml", b"<second/>", 0),
    ])
    signature = struct.pack("<I", SIG_CENTRAL)
    second = data.find(signature, data.find(signature) + 1)
    corrupted = data[:second] + b"XXXX" + data[second + 4:]

    assert list(list_entries(corrupted)) == ["first.xml"]


def test_rejects_buffer_without_eocd():
    with pytest.raises(ArchiveFormatError, match="not a valid archive"):
        list_entries(b"%PDF-1.7 this is not an archive")


def test_rejects_empty_buffer():
    with pytest.raises(ArchiveFormatError):
        list_entries(b"")


def test_rejects_zip64_archives():
    data = raw_zip([("a.xml", b"<a/>", 0)], zip64_locator=True)

    with pytest.raises(ArchiveFormatError, match="format variant not supported"):
        list_entries(data)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def test_stored_entry_length_equals_uncompressed_size():
    payload = b"<w:document>stored</w:document>"
    data = raw_zip([("word/document.xml", payload, 0)])
    entry = list_entries(data)["word/document.xml"]

    extracted = extract_entry(data, entry)

    assert extracted == payload
    assert len(extracted) == entry.uncompressed_size


def test_deflated_entry_round_trips_through_zipfile_writer():
    payload = "<p>" + "accessible " * 500 + "</p>"
    data = build_package({"ppt/slides/slide1.xml": payload})
    entry = list_entries(data)["ppt/slides/slide1.xml"]

    extracted = extract_entry(data, entry)

    assert extracted.decode("utf-8") == payload
    assert len(extracted) == entry.uncompressed_size


def test_entry_exactly_at_ceiling_is_extracted():
    payload = b"x" * 64
    data = raw_zip([("a.xml", raw_deflate(payload), 8, len(payload))])
    entry = list_entries(data)["a.xml"]

    assert extract_entry(data, entry, max_uncompressed_size=64) == payload


def test_unknown_compression_method_fails_only_on_extraction():
    data = raw_zip([
        ("ok.xml", b"<ok/>", 0),
        ("bzip.xml", b"BZh91AY&SY", 12),
    ])
    entries = list_entries(data)

    assert entries["bzip.xml"].compression_method == 12
    assert extract_entry(data, entries["ok.xml"]) == b"<ok/>"

    with pytest.raises(UnsupportedCompressionError) as excinfo:
        extract_entry(data, entries["bzip.xml"])
    assert excinfo.value.method == 12
    assert excinfo.value.entry_name == "bzip.xml"


def test_declared_size_above_ceiling_is_rejected_before_inflating():
    compressed = raw_deflate(b"<a/>")
    data = raw_zip([("bomb.xml", compressed, 8, 300 * 1024 * 1024)])
    entry = list_entries(data)["bomb.xml"]

    with pytest.raises(ResourceLimitError):
        extract_entry(data, entry)


def test_entry_lying_about_its_size_is_capped():
    payload = b"a" * 10_000
    data = raw_zip([("liar.xml", raw_deflate(payload), 8, 10)])
    entry = list_entries(data)["liar.xml"]

    with pytest.raises(ResourceLimitError):
        extract_entry(data, entry, max_uncompressed_size=1_000)


def test_bad_local_header_signature_is_a_format_error():
    data = raw_zip([("a.xml", b"<a/>", 0)])
    entry = list_entries(data)["a.xml"]
    corrupted = b"JUNK" + data[4:]

    with pytest.raises(ArchiveFormatError):
        extract_entry(corrupted, entry)


def test_corrupt_deflate_stream_is_a_format_error():
    data = raw_zip([("a.xml", b"\xff\xff\xff\xff not deflate", 8, 32)])
    entry = list_entries(data)["a.xml"]

    with pytest.raises(ArchiveFormatError):
        extract_entry(data, entry)
