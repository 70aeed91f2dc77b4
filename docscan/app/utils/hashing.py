"""
Hashing utilities.

Provides the digest used to identify scanned documents in reports.
"""

import hashlib


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
