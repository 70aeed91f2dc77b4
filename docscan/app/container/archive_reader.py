"""
Minimal ZIP archive reader for Office Open XML packages.

This module indexes a ZIP byte buffer through its central directory and
extracts single named entries. It deliberately supports only what OOXML
packages need:

- stored (method 0) and deflated (method 8) entries
- a single-disk archive with a classic End Of Central Directory record

Not supported: ZIP64, streaming, encryption, multi-disk archives, writing.

Layouts (little-endian):

    EOCD (22 bytes + comment)
      0  4  signature 0x06054b50
      4  2  number of this disk
      6  2  disk where central directory starts
      8  2  entries on this disk
     10  2  total entries
     12  4  central directory size
     16  4  central directory offset
     20  2  comment length

    Central directory file header (46 bytes + name + extra + comment)
      0  4  signature 0x02014b50
     10  2  compression method
     20  4  compressed size
     24  4  uncompressed size
     28  2  file name length
     30  2  extra field length
     32  2  file comment length
     42  4  local header offset

    Local file header (30 bytes + name + extra)
      0  4  signature 0x04034b50
     26  2  file name length
     28  2  extra field length

Error handling policy:
    Index construction fails only when no EOCD exists or the archive is
    ZIP64. A central directory entry with a bad signature ends the walk
    silently: a truncated directory still yields the entries read so far.
    Extraction errors are raised per entry and never poison the index.
"""

from __future__ import annotations

import logging
import struct
import zlib
from typing import Dict

from pydantic import BaseModel, ConfigDict

from docscan.app.errors import (
    ArchiveFormatError,
    ResourceLimitError,
    UnsupportedCompressionError,
)

logger = logging.getLogger(__name__)


SIG_EOCD = 0x06054B50
SIG_ZIP64_LOCATOR = 0x07064B50
SIG_CENTRAL = 0x02014B50
SIG_LOCAL = 0x04034B50

EOCD_SIZE = 22
ZIP64_LOCATOR_SIZE = 20
CENTRAL_HEADER_SIZE = 46
LOCAL_HEADER_SIZE = 30

# The comment field is capped at 65535 bytes, so the EOCD record can never
# start further than this from the end of the buffer.
MAX_EOCD_SEARCH = EOCD_SIZE + 0xFFFF

METHOD_STORED = 0
METHOD_DEFLATE = 8

FLAG_UTF8_NAME = 0x0800

DEFAULT_MAX_UNCOMPRESSED_BYTES = 200 * 1024 * 1024


class ZipEntry(BaseModel):
    """Central directory metadata for one archive entry."""

    name: str
    compression_method: int
    compressed_size: int
    uncompressed_size: int
    local_header_offset: int

    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _u32(buf: bytes, offset: int) -> int:
    return struct.unpack_from("<I", buf, offset)[0]


def _find_eocd(buf: bytes) -> int:
    """
    Return the offset of the EOCD record, scanning backward from the end.

    Raises ArchiveFormatError if no signature is found within the bound.
    """
    last = len(buf) - EOCD_SIZE
    floor = max(0, len(buf) - MAX_EOCD_SEARCH)

    for offset in range(last, floor - 1, -1):
        if _u32(buf, offset) == SIG_EOCD:
            return offset

    raise ArchiveFormatError("not a valid archive")


def _decode_name(raw: bytes, flags: int) -> str:
    if flags & FLAG_UTF8_NAME:
        return raw.decode("utf-8", errors="replace")
    return raw.decode("cp437")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def list_entries(buf: bytes) -> Dict[str, ZipEntry]:
    """
    Parse the central directory into an ordered name -> entry mapping.

    Entries appear in central-directory order. A duplicated name keeps its
    first position and the metadata of its last occurrence.
    """
    eocd = _find_eocd(buf)

    if eocd >= ZIP64_LOCATOR_SIZE:
        if _u32(buf, eocd - ZIP64_LOCATOR_SIZE) == SIG_ZIP64_LOCATOR:
            raise ArchiveFormatError("format variant not supported")

    (
        _sig,
        _disk,
        _cd_disk,
        _count_this_disk,
        count,
        _cd_size,
        cd_offset,
        _comment_len,
    ) = struct.unpack_from("<IHHHHIIH", buf, eocd)

    entries: Dict[str, ZipEntry] = {}
    pos = cd_offset

    for _ in range(count):
        if pos + CENTRAL_HEADER_SIZE > len(buf):
            logger.debug("Central directory truncated at offset %d", pos)
            break

        (
            sig,
            _version_made,
            _version_needed,
            flags,
            method,
            _mtime,
            _mdate,
            _crc,
            compressed_size,
            uncompressed_size,
            name_len,
            extra_len,
            comment_len,
            _disk_start,
            _internal_attr,
            _external_attr,
            local_offset,
        ) = struct.unpack_from("<IHHHHHHIIIHHHHHII", buf, pos)

        if sig != SIG_CENTRAL:
            logger.debug("Central directory walk stopped at offset %d", pos)
            break

        name_start = pos + CENTRAL_HEADER_SIZE
        name = _decode_name(buf[name_start:name_start + name_len], flags)

        entries[name] = ZipEntry(
            name=name,
            compression_method=method,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            local_header_offset=local_offset,
        )

        pos = name_start + name_len + extra_len + comment_len

    return entries


def extract_entry(
    buf: bytes,
    entry: ZipEntry,
    *,
    max_uncompressed_size: int = DEFAULT_MAX_UNCOMPRESSED_BYTES,
) -> bytes:
    """
    Return the decompressed bytes of a single entry.

    The declared uncompressed size is checked against the ceiling before
    any output buffer is allocated. Inflation is additionally capped at the
    ceiling so an entry that lies about its size cannot exceed it.
    """
    local = entry.local_header_offset

    if local + LOCAL_HEADER_SIZE > len(buf) or _u32(buf, local) != SIG_LOCAL:
        raise ArchiveFormatError(
            f"Invalid local header for entry '{entry.name}'"
        )

    name_len, extra_len = struct.unpack_from("<HH", buf, local + 26)
    data_start = local + LOCAL_HEADER_SIZE + name_len + extra_len
    raw = buf[data_start:data_start + entry.compressed_size]

    if entry.compression_method == METHOD_STORED:
        return bytes(raw)

    if entry.compression_method == METHOD_DEFLATE:
        if entry.uncompressed_size > max_uncompressed_size:
            raise ResourceLimitError(
                f"Entry '{entry.name}' uncompressed size "
                f"{entry.uncompressed_size} exceeds "
                f"{max_uncompressed_size} byte limit"
            )

        inflater = zlib.decompressobj(-zlib.MAX_WBITS)
        try:
            data = inflater.decompress(raw, max_uncompressed_size + 1)
        except zlib.error as exc:
            raise ArchiveFormatError(
                f"Corrupt deflate stream in entry '{entry.name}': {exc}"
            ) from exc

        if len(data) > max_uncompressed_size:
            raise ResourceLimitError(
                f"Entry '{entry.name}' inflates beyond "
                f"{max_uncompressed_size} byte limit"
            )

        return data

    raise UnsupportedCompressionError(entry.compression_method, entry.name)
