"""Batch fingerprinting of SQL strings.

A fingerprint is the statement re-rendered after the normalising visitor
has replaced literal values, column lists, predicates and limits with the
``...`` placeholder and dropped redundant identifier quoting::

    >>> fingerprint_one("SELECT a, b FROM c WHERE d = 1 LIMIT 10")
    'SELECT ... FROM c WHERE ... LIMIT ...'

Inputs that do not parse are returned unchanged, so a batch never fails as
a whole.  One visitor is shared by every input of a :func:`fingerprint_many`
call: savepoint names are aliased ``s1``, ``s2``, ... in the order their
SAVEPOINT statements appear across the batch.

**Hashing**: :func:`compute_fingerprint_hash` scopes the digest to the
rule-set version so that stored hashes become incompatible when the
normalisation rules change.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence
from enum import Enum

from sql_fingerprint.sql_toolkit import Dialect, SqlParseError, SqlRenderError, get_sql_toolkit
from sql_fingerprint.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


class FingerprintVersion(str, Enum):
    """Versioned normalisation rule-sets.

    Adding a new version here and updating ``CURRENT_VERSION`` invalidates
    every previously computed fingerprint hash.
    """

    V1 = "v1"


CURRENT_VERSION: FingerprintVersion = FingerprintVersion.V1


@profile_operation("sql.fingerprint_many")
def fingerprint_many(sql_list: Sequence[str], dialect: Dialect | None = None) -> list[str]:
    """Fingerprint every string in *sql_list*, preserving order and length.

    Parameters
    ----------
    sql_list:
        Raw SQL strings.  Each may hold several ``;``-separated statements,
        whose fingerprints are joined with a single space.
    dialect:
        SQL dialect to parse and render with.  Defaults to
        ``Dialect.GENERIC``.

    Returns
    -------
    list[str]
        One fingerprint per input.  Unparsable inputs are returned
        byte-for-byte; blank or comment-only inputs become ``""``.
    """
    if dialect is None:
        dialect = Dialect.GENERIC

    tk = get_sql_toolkit()
    visitor = tk.fingerprinter.create_visitor()
    fingerprints: list[str] = []

    for index, sql in enumerate(sql_list):
        try:
            result = tk.parser.parse_multi(sql, dialect)
        except SqlParseError as exc:
            logger.debug("Input %d did not parse; keeping original SQL: %s", index, exc)
            fingerprints.append(sql)
            continue

        for statement in result.statements:
            visitor.visit(statement)

        try:
            rendered = [tk.renderer.render(statement, dialect) for statement in result.statements]
        except SqlRenderError:
            logger.warning(
                "Could not render statement %d; keeping original SQL",
                index,
                exc_info=True,
                extra={"batch_index": index},
            )
            fingerprints.append(sql)
            continue

        fingerprints.append(" ".join(rendered))

    return fingerprints


def fingerprint_one(sql: str, dialect: Dialect | None = None) -> str:
    """Fingerprint a single SQL string.  See :func:`fingerprint_many`."""
    return fingerprint_many([sql], dialect)[0]


def compute_fingerprint_hash(
    sql: str,
    *,
    dialect: Dialect | None = None,
    version: FingerprintVersion | None = None,
) -> str:
    """Return the SHA-256 hex digest of the versioned fingerprint of *sql*.

    Parameters
    ----------
    sql:
        Raw SQL text.  Fingerprinting is applied internally.
    dialect:
        Dialect passed through to :func:`fingerprint_one`.
    version:
        Rule-set version.  Defaults to ``CURRENT_VERSION``.

    Returns
    -------
    str
        A 64-character lowercase hexadecimal SHA-256 digest.
    """
    return hash_fingerprint(fingerprint_one(sql, dialect), version=version)


def hash_fingerprint(fingerprint: str, *, version: FingerprintVersion | None = None) -> str:
    """Hash an already computed fingerprint.

    Use this for the output of :func:`fingerprint_many`, where savepoint
    aliases depend on the rest of the batch and re-fingerprinting a single
    element would give a different result.
    """
    if version is None:
        version = CURRENT_VERSION

    hasher = hashlib.sha256()
    # Version prefix scopes the hash to the rule-set.
    hasher.update(f"sql-fingerprint-{version.value}:".encode())
    hasher.update(fingerprint.encode("utf-8"))
    return hasher.hexdigest()


def get_fingerprint_version() -> str:
    """Return the active rule-set version string, for storing beside hashes."""
    return CURRENT_VERSION.value
