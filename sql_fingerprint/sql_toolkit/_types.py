"""SQL toolkit shared types.

Every type here is implementation-agnostic.  Consumer code operates on these
types; the backing implementation converts to and from its native AST
internally and keeps the native tree on :attr:`SqlNode.raw`.

ZERO dependency on any SQL parsing library.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Dialect
# ---------------------------------------------------------------------------


class Dialect(str, enum.Enum):
    """Supported SQL dialects.

    ``GENERIC`` is the permissive default: it accepts the common syntax of
    most engines without rejecting dialect-specific constructs outright.
    """

    GENERIC = "generic"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    CLICKHOUSE = "clickhouse"
    DUCKDB = "duckdb"
    DATABRICKS = "databricks"
    BIGQUERY = "bigquery"
    SNOWFLAKE = "snowflake"
    REDSHIFT = "redshift"


# ---------------------------------------------------------------------------
# Statement Types
# ---------------------------------------------------------------------------


class SqlNodeKind(str, enum.Enum):
    """Top-level statement kinds the fingerprinter distinguishes.

    This is NOT a 1:1 mapping to any parser's internal types, only the
    subset the normalization rules dispatch on.
    """

    SELECT = "select"
    SET_OPERATION = "set_operation"
    SUBQUERY = "subquery"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    MERGE = "merge"
    SAVEPOINT = "savepoint"
    RELEASE_SAVEPOINT = "release_savepoint"
    ROLLBACK = "rollback"
    COMMIT = "commit"
    DECLARE = "declare"
    CREATE = "create"
    DROP = "drop"
    COMMAND = "command"

    # Catch-all
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# AST Wrapper
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SqlNode:
    """Opaque wrapper around one parsed statement.

    The wrapper itself is immutable, but ``raw`` holds the mutable
    implementation-specific tree (e.g. ``sqlglot.exp.Expression``) which the
    fingerprinting visitor rewrites in place before it is rendered.  ``raw``
    is excluded from ``__eq__`` / ``__hash__``.
    """

    kind: SqlNodeKind
    raw: Any = field(default=None, repr=False, compare=False, hash=False)

    @property
    def is_query(self) -> bool:
        """True for SELECT-shaped statements (plain, set operation, subquery)."""
        return self.kind in (SqlNodeKind.SELECT, SqlNodeKind.SET_OPERATION, SqlNodeKind.SUBQUERY)


# ---------------------------------------------------------------------------
# Result Containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Result of parsing a SQL string.

    ``statements`` handles multi-statement SQL (separated by ``;``) and is
    empty for blank or comment-only input.
    """

    statements: tuple[SqlNode, ...]
    dialect: Dialect
    warnings: list[str] = field(default_factory=list)

    @property
    def single(self) -> SqlNode:
        """Return the single statement, or raise if zero / multiple."""
        if len(self.statements) != 1:
            raise ValueError(f"Expected exactly 1 statement, got {len(self.statements)}")
        return self.statements[0]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SqlToolkitError(Exception):
    """Base exception for all sql_toolkit errors."""


class SqlParseError(SqlToolkitError):
    """SQL could not be parsed."""


class SqlRenderError(SqlToolkitError):
    """A (possibly rewritten) statement could not be rendered back to SQL."""
