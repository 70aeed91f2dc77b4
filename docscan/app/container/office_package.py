"""
Office Open XML package access.

Wraps the archive reader with the degrade-to-empty policy used by the
rule engines: a missing part, an unsupported compression method, an
oversized entry or a corrupt entry all read as empty content. Office
documents routinely omit optional parts (e.g. docProps/core.xml), so
absence is never an error at this layer.

Parsed XML trees are cached per part for the lifetime of one scan. The
package object is owned by a single scan and never shared.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional
import xml.etree.ElementTree as ET

from docscan.app.container.archive_reader import (
    DEFAULT_MAX_UNCOMPRESSED_BYTES,
    ZipEntry,
    extract_entry,
    list_entries,
)
from docscan.app.errors import (
    ArchiveFormatError,
    MalformedXmlError,
    ResourceLimitError,
    UnsupportedCompressionError,
)
from docscan.app.parsing.xml_query import parse_xml

logger = logging.getLogger(__name__)


_NUMBERED_PART = re.compile(r"(\d+)\.xml$")


def part_number(name: str) -> int:
    """Numeric suffix of a part name such as 'ppt/slides/slide12.xml'."""
    match = _NUMBERED_PART.search(name)
    return int(match.group(1)) if match else 0


class OfficePackage:
    """
    Read-only view over one OOXML package.

    Construction fails with ArchiveFormatError when the buffer carries no
    usable central directory. Every later access is fail-soft.
    """

    def __init__(
        self,
        data: bytes,
        *,
        max_uncompressed_size: int = DEFAULT_MAX_UNCOMPRESSED_BYTES,
    ) -> None:
        self._data = data
        self._max_uncompressed_size = max_uncompressed_size
        self._entries: Dict[str, ZipEntry] = list_entries(data)
        self._xml_cache: Dict[str, ET.Element] = {}
        self._xml_failures: Dict[str, MalformedXmlError] = {}

    # ------------------------------------------------------------------
    # Entry access
    # ------------------------------------------------------------------

    def part_names(self, pattern: Optional[str] = None) -> List[str]:
        """
        Entry names in central-directory order, optionally filtered by a
        full-match regular expression.
        """
        if pattern is None:
            return list(self._entries)
        compiled = re.compile(pattern)
        return [name for name in self._entries if compiled.fullmatch(name)]

    def numbered_parts(self, pattern: str) -> List[str]:
        """Matching part names ordered by their numeric suffix."""
        return sorted(self.part_names(pattern), key=part_number)

    def part_text(self, name: str) -> str:
        """
        Decoded UTF-8 text of a part, or "" when absent or unextractable.
        """
        entry = self._entries.get(name)
        if entry is None:
            return ""

        try:
            raw = extract_entry(
                self._data,
                entry,
                max_uncompressed_size=self._max_uncompressed_size,
            )
        except (
            ArchiveFormatError,
            UnsupportedCompressionError,
            ResourceLimitError,
        ) as exc:
            logger.warning("Treating part %s as empty: %s", name, exc)
            return ""

        return raw.decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # XML access
    # ------------------------------------------------------------------

    def xml(self, name: str) -> ET.Element:
        """
        Parsed root element of a part.

        Absent parts parse as an empty element. Raises MalformedXmlError
        (cached, raised again on every access) for parts that exist but
        cannot be parsed.
        """
        if name in self._xml_cache:
            return self._xml_cache[name]
        if name in self._xml_failures:
            raise self._xml_failures[name]

        try:
            root = parse_xml(self.part_text(name), source=name)
        except MalformedXmlError as exc:
            self._xml_failures[name] = exc
            raise

        self._xml_cache[name] = root
        return root
