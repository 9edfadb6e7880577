"""SQL fingerprinting: collapse statements that differ only in values.

Usage::

    from sql_fingerprint import fingerprint_many, fingerprint_one

    fingerprint_one("SELECT a, b FROM c ORDER BY b")
    # 'SELECT ... FROM c ORDER BY ...'
"""

from __future__ import annotations

from sql_fingerprint.fingerprint import (
    CURRENT_VERSION,
    FingerprintVersion,
    compute_fingerprint_hash,
    fingerprint_many,
    fingerprint_one,
    get_fingerprint_version,
    hash_fingerprint,
)
from sql_fingerprint.sql_toolkit import Dialect

__all__ = [
    "CURRENT_VERSION",
    "Dialect",
    "FingerprintVersion",
    "compute_fingerprint_hash",
    "fingerprint_many",
    "fingerprint_one",
    "get_fingerprint_version",
    "hash_fingerprint",
]
