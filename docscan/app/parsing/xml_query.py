"""
XML micro-query layer for Office Open XML parts.

Four read-only queries over an XML part or fragment:

    xml_text   ordered inner-text values (nested tags stripped)
    xml_attr   ordered attribute values across matching elements
    xml_has    presence check
    xml_count  occurrence count

Queries accept either XML text or an already parsed element. Text is parsed
with xml.etree.ElementTree. Fragments cut out of a larger part usually
reference namespace prefixes declared on an ancestor that is no longer
present; such fragments are re-parsed inside a synthetic wrapper that
declares every well-known OOXML prefix.

Tag and attribute names are given in prefixed form ("w:pStyle",
"w:val"). A prefixed name matches exactly one namespace; an unprefixed
tag matches by local name in any namespace (SpreadsheetML parts use a
default namespace, so "sheet" and "mergeCell" are queried unprefixed).
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional, Union
import xml.etree.ElementTree as ET

from docscan.app.errors import MalformedXmlError


NAMESPACES = {
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "adec": "http://schemas.microsoft.com/office/drawing/2017/decorative",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "mc": "http://schemas.openxmlformats.org/markup-compatibility/2006",
    "p": "http://schemas.openxmlformats.org/presentationml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "s": "http://schemas.openxmlformats.org/spreadsheetml/2006/main",
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "w14": "http://schemas.microsoft.com/office/word/2010/wordml",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "wps": "http://schemas.microsoft.com/office/word/2010/wordprocessingShape",
    "xdr": "http://schemas.openxmlformats.org/drawingml/2006/spreadsheetDrawing",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
}

FRAGMENT_NS = "urn:docscan:fragment"
FRAGMENT_TAG = f"{{{FRAGMENT_NS}}}fragment"
EMPTY_TAG = f"{{{FRAGMENT_NS}}}empty"

_SYNTHETIC_TAGS = {FRAGMENT_TAG, EMPTY_TAG}

_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")

_WRAPPER_OPEN = "<docscan:fragment xmlns:docscan=\"%s\" %s>" % (
    FRAGMENT_NS,
    " ".join(f'xmlns:{prefix}="{uri}"' for prefix, uri in NAMESPACES.items()),
)
_WRAPPER_CLOSE = "</docscan:fragment>"


XmlSource = Union[str, ET.Element]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_xml(text: str, *, source: str = "") -> ET.Element:
    """
    Parse a part or fragment into an element tree.

    Blank text parses to an empty synthetic element, so queries over a
    missing part simply find nothing. Raises MalformedXmlError when the
    text cannot be parsed even with the namespace wrapper.
    """
    body = _XML_DECLARATION.sub("", text.lstrip("\ufeff"), count=1)
    if not body.strip():
        return ET.Element(EMPTY_TAG)

    try:
        return ET.fromstring(body)
    except ET.ParseError:
        pass

    try:
        return ET.fromstring(_WRAPPER_OPEN + body + _WRAPPER_CLOSE)
    except ET.ParseError as exc:
        raise MalformedXmlError(f"{source or 'XML fragment'}: {exc}") from exc


def _root(xml: XmlSource) -> ET.Element:
    if isinstance(xml, ET.Element):
        return xml
    return parse_xml(xml)


# ---------------------------------------------------------------------------
# Name resolution
# ---------------------------------------------------------------------------

def qualify(name: str) -> Optional[str]:
    """
    Resolve "prefix:local" into Clark notation ("{uri}local").

    Returns None for unprefixed names. Unknown prefixes are a programming
    error and raise ValueError.
    """
    prefix, sep, local = name.partition(":")
    if not sep:
        return None
    try:
        return f"{{{NAMESPACES[prefix]}}}{local}"
    except KeyError:
        raise ValueError(f"Unknown namespace prefix '{prefix}' in '{name}'")


def local_name(tag: str) -> str:
    return tag.rpartition("}")[2]


def _attribute_key(attr: str) -> str:
    return qualify(attr) or attr


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def find_all(xml: XmlSource, tag: str) -> List[ET.Element]:
    """All elements matching tag, in document order."""
    return list(_iter_matching(_root(xml), tag))


def _iter_matching(root: ET.Element, tag: str) -> Iterator[ET.Element]:
    clark = qualify(tag)
    for element in root.iter():
        if element.tag in _SYNTHETIC_TAGS:
            continue
        if not isinstance(element.tag, str):
            continue
        if clark is not None:
            if element.tag == clark:
                yield element
        elif local_name(element.tag) == tag:
            yield element


def xml_text(xml: XmlSource, tag: str) -> List[str]:
    """Inner text of each matching element, nested markup stripped."""
    return [
        "".join(element.itertext()).strip()
        for element in _iter_matching(_root(xml), tag)
    ]


def xml_attr(xml: XmlSource, tag: str, attr: str) -> List[str]:
    """Values of attr on matching elements that carry it."""
    key = _attribute_key(attr)
    values = []
    for element in _iter_matching(_root(xml), tag):
        value = element.get(key)
        if value is not None:
            values.append(value)
    return values


def xml_has(xml: XmlSource, tag: str) -> bool:
    for _ in _iter_matching(_root(xml), tag):
        return True
    return False


def xml_count(xml: XmlSource, tag: str) -> int:
    return sum(1 for _ in _iter_matching(_root(xml), tag))


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

_OFF_VALUES = {"0", "false", "off"}


def is_on(values: List[str]) -> bool:
    """
    OOXML on/off property across its occurrences.

    True when any value is not one of the off spellings ("0", "false",
    "off", any case). Callers pass "1" for an element present without val.
    """
    return any(value.lower() not in _OFF_VALUES for value in values)
