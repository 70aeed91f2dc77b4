"""
Heuristic PDF structural scanner.

This module derives a PdfStructuralFacts summary from raw PDF bytes by
pattern-matching characteristic token sequences. It does NOT parse the
object graph, the cross-reference table or content-stream operators.

The byte buffer is viewed as Latin-1 text: PDF syntax is ASCII at the
structural level, and Latin-1 maps every byte to exactly one character so
offsets in the text view equal offsets in the buffer.

Derivation rules:
    is_tagged            /MarkInfo dictionary containing /Marked true
    has_structure_tree   /StructTreeRoot reference
    has_text             (..) Tj, <..> Tj or [..] TJ text-show operators
    has_title            non-empty /Title in the info dictionary, or an
                         XMP dc:title when no /Title is present
    has_lang             non-empty /Lang (..)
    page_count           top-level /Count of the first dictionary typed
                         /Type /Pages, in file order (nested dictionaries
                         such as inline /Resources are balanced out)
    has_alt_on_figures   evaluated only when figures exist (see below)
    is_encrypted         /Encrypt anywhere in the stream; the trailer is
                         not located without xref parsing

Compressed stream expansion:
    Modern writers place catalog dictionaries in compressed object streams
    and compress page content. When enabled, FlateDecode streams other
    than images, font programs and xref streams are inflated within a
    byte budget and appended to the text view. Streams that fail to
    inflate (encrypted or corrupt data) are ignored.

Known limitation (figure alt text):
    Each /S /Figure marker is scoped forward to the next ">>" or "endobj",
    and that range is searched for a non-empty /Alt entry. An /Alt key
    written before /S inside the same dictionary is missed, and in
    documents with unusual element ordering an /Alt may be attributed to
    the wrong element. An indirect /Alt (e.g. "/Alt 12 0 R") counts as
    present without resolving the referenced string. This is a presence
    heuristic; the PDF rule engine marks the corresponding finding for
    human review.
"""

from __future__ import annotations

import codecs
import logging
import re
import zlib
from typing import List, Optional

from docscan.app.schemas.pdf_facts import PdfStructuralFacts

logger = logging.getLogger(__name__)


PDF_MAGIC = b"%PDF-"

DEFAULT_MAX_STREAM_INFLATE_BYTES = 64 * 1024 * 1024

# Lookback window used to find the dictionary preceding a "stream" keyword.
_STREAM_DICT_WINDOW = 2048


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_ENCRYPT = re.compile(r"/Encrypt\s")
_MARK_INFO = re.compile(r"/MarkInfo\s*<<[^>]{0,200}/Marked\s+true", re.IGNORECASE)
_STRUCT_TREE_ROOT = re.compile(r"/StructTreeRoot\s")
_TEXT_SHOW = re.compile(
    r"\(.*?\)\s*Tj|<[0-9a-fA-F]+>\s*Tj|\[.*?\]\s*TJ",
    re.IGNORECASE,
)
_TITLE_LITERAL = re.compile(r"/Title\s*\(([^)\\]*(?:\\.[^)\\]*)*)\)")
_TITLE_HEX = re.compile(r"/Title\s*<([0-9a-fA-F\s]+)>")
_XMP_TITLE = re.compile(
    r"<dc:title>.*?<rdf:li[^>]*>(.*?)</rdf:li>",
    re.DOTALL,
)
_LANG = re.compile(r"/Lang\s*\(([^)]*)\)")
_OUTLINES = re.compile(r"/Type\s*/Outlines|/Outlines\s+\d+\s+\d+\s+R")
_ACROFORM = re.compile(r"/AcroForm\s")
_LINK = re.compile(r"/Subtype\s*/Link")
_FIGURE = re.compile(r"/S\s*/Figure")
_TABLE = re.compile(r"/S\s*/Table")
_LIST = re.compile(r"/S\s*/L\b")
_ROLE_MAP = re.compile(r"/RoleMap\s*<<")
_FONT_FILE = re.compile(r"/FontFile[23]?")
_TO_UNICODE = re.compile(r"/ToUnicode\s")

_FIGURE_BLOCK = re.compile(r"/S\s*/Figure[\s\S]*?(?:>>|endobj)", re.IGNORECASE)
_ALT_VALUE = re.compile(
    r"/Alt\s*(\((?:[^)\\]|\\.)*\)|<[0-9a-fA-F\s]*>|\d+\s+\d+\s+R\b)"
)

# Page tree nodes. The enclosing dictionary is found by balancing << >>.
_DICT_DELIMITER = re.compile(r"<<|>>")
_DICT_SEARCH_WINDOW = 64 * 1024
_PAGES_TYPE = re.compile(r"/Type\s*/Pages\b")
_COUNT = re.compile(r"/Count\s+(\d+)")
_PAGES_FALLBACK = re.compile(r"/Type\s*/Pages[^>]{0,200}/Count\s+(\d+)")

_STREAM_START = re.compile(r"stream\r?\n")
_ENDSTREAM = "endstream"
_SKIP_STREAM_TYPES = re.compile(
    r"/Subtype\s*/Image|/Type\s*/XRef|/Length[123]\s|/Subtype\s*/(?:Type1C|CIDFontType0C|OpenType)"
)

_ESCAPE = re.compile(r"\\(.)", re.DOTALL)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _unescape_literal(value: str) -> str:
    return _ESCAPE.sub(r"\1", value)


def _decode_hex_string(hex_digits: str) -> str:
    digits = re.sub(r"\s+", "", hex_digits)
    if len(digits) % 2:
        digits += "0"
    raw = bytes.fromhex(digits)
    if raw.startswith(codecs.BOM_UTF16_BE):
        return raw[2:].decode("utf-16-be", errors="replace")
    return raw.decode("latin-1")


def _extract_title(text: str) -> Optional[str]:
    """
    Title string, or None when no title entry exists.

    An empty string means a title entry exists but is blank.
    """
    literal = _TITLE_LITERAL.search(text)
    if literal:
        return _unescape_literal(literal.group(1)).strip()

    hex_title = _TITLE_HEX.search(text)
    if hex_title:
        return _decode_hex_string(hex_title.group(1)).strip()

    xmp = _XMP_TITLE.search(text)
    if xmp:
        return xmp.group(1).strip()

    return None


def _enclosing_dictionary(text: str, position: int) -> Optional[str]:
    """
    Top-level body of the innermost dictionary containing position, with
    nested dictionaries removed. None when the delimiters do not balance
    within the search window.
    """
    depth = 0
    start = None
    window_start = max(0, position - _DICT_SEARCH_WINDOW)
    for delimiter in reversed(list(_DICT_DELIMITER.finditer(text, window_start, position))):
        if delimiter.group(0) == ">>":
            depth += 1
        elif depth:
            depth -= 1
        else:
            start = delimiter.end()
            break
    if start is None:
        return None

    pieces: List[str] = []
    depth = 0
    cursor = start
    window_end = min(len(text), position + _DICT_SEARCH_WINDOW)
    for delimiter in _DICT_DELIMITER.finditer(text, start, window_end):
        if depth == 0:
            pieces.append(text[cursor:delimiter.start()])
        if delimiter.group(0) == "<<":
            depth += 1
        elif depth:
            depth -= 1
        else:
            return "".join(pieces)
        cursor = delimiter.end()
    return None


def _extract_page_count(text: str) -> int:
    for match in _PAGES_TYPE.finditer(text):
        body = _enclosing_dictionary(text, match.start())
        if body is None:
            continue
        count = _COUNT.search(body)
        if count:
            return int(count.group(1))

    fallback = _PAGES_FALLBACK.search(text)
    if fallback:
        return int(fallback.group(1))
    return 0


def _figures_have_alt(text: str) -> bool:
    """True iff at least one figure block carries non-empty /Alt content."""
    for block in _FIGURE_BLOCK.finditer(text):
        for alt in _ALT_VALUE.finditer(block.group(0)):
            value = alt.group(1)
            if value.endswith("R"):
                # Indirect string object; its content is not resolved.
                return True
            if value.startswith("("):
                content = _unescape_literal(value[1:-1])
            else:
                content = _decode_hex_string(value[1:-1])
            if content.strip():
                return True
    return False


def _stream_dictionary(text: str, keyword_start: int) -> str:
    """
    Text of the dictionary immediately preceding a stream keyword, limited
    to the current object.
    """
    window_start = max(0, keyword_start - _STREAM_DICT_WINDOW)
    window = text[window_start:keyword_start]
    for boundary in ("endobj", "endstream"):
        cut = window.rfind(boundary)
        if cut != -1:
            window = window[cut + len(boundary):]
    return window


def _expand_streams(data: bytes, text: str, budget: int) -> List[str]:
    """
    Inflate FlateDecode streams that may carry structural markers.

    Returns the decoded stream bodies as Latin-1 text, in file order.
    """
    expanded: List[str] = []
    remaining = budget

    for match in _STREAM_START.finditer(text):
        if remaining <= 0:
            logger.debug("PDF stream expansion budget exhausted")
            break

        keyword_start = match.start()
        if keyword_start >= 3 and text[keyword_start - 3:keyword_start] == "end":
            continue

        dictionary = _stream_dictionary(text, keyword_start)
        if "/FlateDecode" not in dictionary:
            continue
        if _SKIP_STREAM_TYPES.search(dictionary) or "/FontFile" in dictionary:
            continue

        data_start = match.end()
        data_end = text.find(_ENDSTREAM, data_start)
        if data_end == -1:
            continue

        inflater = zlib.decompressobj()
        try:
            decoded = inflater.decompress(data[data_start:data_end], remaining)
        except zlib.error:
            continue

        remaining -= len(decoded)
        expanded.append(decoded.decode("latin-1"))

    return expanded


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def is_pdf(data: bytes) -> bool:
    return data.startswith(PDF_MAGIC)


def scan_pdf_structure(
    data: bytes,
    *,
    expand_streams: bool = True,
    max_inflate_bytes: int = DEFAULT_MAX_STREAM_INFLATE_BYTES,
) -> PdfStructuralFacts:
    """
    Derive the structural facts summary for a PDF byte buffer.

    The caller validates the %PDF- header. This function never raises on
    malformed content: absent markers simply read as absent.
    """
    text = data.decode("latin-1")

    if expand_streams:
        expanded = _expand_streams(data, text, max_inflate_bytes)
        if expanded:
            text = "\n".join([text, *expanded])

    title = _extract_title(text)
    lang_match = _LANG.search(text)
    lang = lang_match.group(1).strip() if lang_match else ""

    has_figures = bool(_FIGURE.search(text))

    return PdfStructuralFacts(
        has_text=bool(_TEXT_SHOW.search(text)),
        is_tagged=bool(_MARK_INFO.search(text)),
        has_title=bool(title),
        title=title or "",
        has_lang=bool(lang),
        lang=lang,
        has_structure_tree=bool(_STRUCT_TREE_ROOT.search(text)),
        has_bookmarks=bool(_OUTLINES.search(text)),
        has_forms=bool(_ACROFORM.search(text)),
        page_count=_extract_page_count(text),
        has_links=bool(_LINK.search(text)),
        has_figures=has_figures,
        has_alt_on_figures=_figures_have_alt(text) if has_figures else None,
        has_tables=bool(_TABLE.search(text)),
        has_lists=bool(_LIST.search(text)),
        has_role_map=bool(_ROLE_MAP.search(text)),
        has_embedded_fonts=bool(_FONT_FILE.search(text)),
        has_unicode_map=bool(_TO_UNICODE.search(text)),
        is_encrypted=bool(_ENCRYPT.search(text)),
    )
