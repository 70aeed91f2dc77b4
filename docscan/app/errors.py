"""
Scan error taxonomy.

Every condition that prevents a document (or a single part of a document)
from being evaluated is expressed as a subclass of ScanError. Callers
decide the blast radius:

- ArchiveFormatError, PdfFormatError, UnreadableFileError:
    fatal for one document. Batch runs record a skip and continue.
- UnsupportedCompressionError, ResourceLimitError (entry-level):
    fatal for one archive entry only. The entry is treated as empty.
- MalformedXmlError:
    fatal for one rule evaluation only. The rule emits no finding.
- ConfigParseError:
    recovered by the configuration loader (built-in defaults apply).

Malformed input is an expected condition for an accessibility scanner,
so none of these should ever escape as a process-level failure.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base class for all expected scan failures."""


class ArchiveFormatError(ScanError):
    """Malformed or unsupported ZIP container."""


class UnsupportedCompressionError(ScanError):
    """Archive entry uses a compression method other than store/deflate."""

    def __init__(self, method: int, entry_name: str = "") -> None:
        self.method = method
        self.entry_name = entry_name
        super().__init__(
            f"Unsupported compression method {method}"
            + (f" for entry '{entry_name}'" if entry_name else "")
        )


class ResourceLimitError(ScanError):
    """A declared or observed size exceeds a configured ceiling."""


class PdfFormatError(ScanError):
    """Byte buffer does not start with the %PDF- header magic."""


class MalformedXmlError(ScanError):
    """An XML part or fragment could not be parsed."""


class ConfigParseError(ScanError):
    """A rule configuration file is malformed."""


class UnreadableFileError(ScanError):
    """The underlying file could not be read from disk."""
