"""SQLGlot-backed implementation of the SQL toolkit protocols.

Modules under ``impl/`` are the ONLY files in the codebase that import
``sqlglot`` directly.  All consumer code goes through the protocol
interfaces defined in :mod:`sql_fingerprint.sql_toolkit._protocols`.

Statements are split on ``;`` at the token level so that savepoint and
cursor statements (see :mod:`.sqlglot_statements`) can be recognised before
the remaining statements are handed to the sqlglot parser.

Supports SQLGlot v25.34 and later.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from sqlglot import exp
from sqlglot.dialects.dialect import Dialect as SqlglotDialect
from sqlglot.errors import ErrorLevel, SqlglotError
from sqlglot.tokens import Token, TokenType

from .._types import (
    Dialect,
    ParseResult,
    SqlNode,
    SqlNodeKind,
    SqlParseError,
    SqlRenderError,
)
from .sqlglot_statements import (
    CUSTOM_STATEMENTS,
    is_custom_statement,
    parse_custom_statement,
    render_custom_statement,
)
from .sqlglot_visitor import SqlGlotFingerprinter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Internal: SQLGlot expression -> SqlNodeKind mapping
# ---------------------------------------------------------------------------

# Maps sqlglot expression class names to our SqlNodeKind enum.
_EXP_KIND_MAP: dict[str, SqlNodeKind] = {
    "Select": SqlNodeKind.SELECT,
    "Union": SqlNodeKind.SET_OPERATION,
    "Except": SqlNodeKind.SET_OPERATION,
    "Intersect": SqlNodeKind.SET_OPERATION,
    "Subquery": SqlNodeKind.SUBQUERY,
    "Insert": SqlNodeKind.INSERT,
    "Update": SqlNodeKind.UPDATE,
    "Delete": SqlNodeKind.DELETE,
    "Merge": SqlNodeKind.MERGE,
    "Savepoint": SqlNodeKind.SAVEPOINT,
    "ReleaseSavepoint": SqlNodeKind.RELEASE_SAVEPOINT,
    "RollbackToSavepoint": SqlNodeKind.ROLLBACK,
    "Rollback": SqlNodeKind.ROLLBACK,
    "Commit": SqlNodeKind.COMMIT,
    "DeclareCursor": SqlNodeKind.DECLARE,
    "Create": SqlNodeKind.CREATE,
    "Drop": SqlNodeKind.DROP,
    "Command": SqlNodeKind.COMMAND,
}

# Declare (variable declarations) may not exist in all sqlglot versions.
if hasattr(exp, "Declare"):
    _EXP_KIND_MAP["Declare"] = SqlNodeKind.DECLARE


# ---------------------------------------------------------------------------
# Internal: helpers
# ---------------------------------------------------------------------------


def _dialect_value(dialect: Dialect) -> str | None:
    """Return the sqlglot dialect string for a :class:`Dialect` enum member.

    ``GENERIC`` maps to ``None``, sqlglot's own permissive base dialect.
    """
    if dialect is Dialect.GENERIC:
        return None
    return dialect.value


def _sqlglot_dialect(dialect: Dialect) -> SqlglotDialect:
    return SqlglotDialect.get_or_raise(_dialect_value(dialect))


def _classify_node(node: exp.Expression) -> SqlNodeKind:
    """Map a sqlglot expression to a :class:`SqlNodeKind`."""
    kind = _EXP_KIND_MAP.get(type(node).__name__)
    if kind is not None:
        return kind
    if isinstance(node, exp.SetOperation):
        return SqlNodeKind.SET_OPERATION
    return SqlNodeKind.UNKNOWN


def _split_statements(tokens: Sequence[Token]) -> Iterator[list[Token]]:
    """Yield the tokens of each ``;``-separated statement, skipping empty ones."""
    chunk: list[Token] = []
    for token in tokens:
        if token.token_type == TokenType.SEMICOLON:
            if chunk:
                yield chunk
            chunk = []
        else:
            chunk.append(token)
    if chunk:
        yield chunk


# ---------------------------------------------------------------------------
# SqlGlotParser
# ---------------------------------------------------------------------------


class SqlGlotParser:
    """SQLGlot-backed :class:`SqlParser` implementation."""

    def parse_multi(
        self,
        sql: str,
        dialect: Dialect = Dialect.GENERIC,
    ) -> ParseResult:
        """Parse potentially multi-statement SQL."""
        sg_dialect = _sqlglot_dialect(dialect)
        try:
            statements = [
                self._parse_statement(chunk, sql, sg_dialect)
                for chunk in _split_statements(sg_dialect.tokenize(sql))
            ]
        except SqlglotError as exc:
            raise SqlParseError(f"Failed to parse SQL: {exc}") from exc

        nodes: list[SqlNode] = []
        warnings: list[str] = []
        for ast in statements:
            if ast is None:
                warnings.append("Empty statement encountered")
                logger.debug("Skipping empty statement in %d-character input", len(sql))
                continue
            nodes.append(SqlNode(kind=_classify_node(ast), raw=ast))

        return ParseResult(
            statements=tuple(nodes),
            dialect=dialect,
            warnings=warnings,
        )

    @staticmethod
    def _parse_statement(
        tokens: list[Token],
        sql: str,
        sg_dialect: SqlglotDialect,
    ) -> exp.Expression | None:
        if is_custom_statement(tokens):
            return parse_custom_statement(tokens, sql, sg_dialect)

        parsed = sg_dialect.parser(error_level=ErrorLevel.IMMEDIATE).parse(tokens, sql)
        if len(parsed) > 1:
            raise SqlParseError(f"Expected one statement, got {len(parsed)}")
        return parsed[0] if parsed else None


# ---------------------------------------------------------------------------
# SqlGlotRenderer
# ---------------------------------------------------------------------------


class SqlGlotRenderer:
    """SQLGlot-backed :class:`SqlRenderer` implementation."""

    def render(
        self,
        node: SqlNode,
        dialect: Dialect = Dialect.GENERIC,
        *,
        pretty: bool = False,
    ) -> str:
        """Render a statement to a SQL string, dropping comments."""
        raw = node.raw
        if raw is None:
            raise ValueError("SqlNode has no raw expression attached")

        if not isinstance(raw, exp.Expression):
            raise TypeError(f"Expected sqlglot Expression, got {type(raw).__name__}")

        sg_dialect = _sqlglot_dialect(dialect)
        try:
            if isinstance(raw, CUSTOM_STATEMENTS):
                return render_custom_statement(raw, sg_dialect, pretty=pretty)
            return raw.sql(dialect=sg_dialect, pretty=pretty, comments=False)
        except (SqlglotError, ValueError, TypeError) as exc:
            raise SqlRenderError(f"Failed to render {type(raw).__name__}: {exc}") from exc


# ---------------------------------------------------------------------------
# SqlGlotToolkit (composite)
# ---------------------------------------------------------------------------


class SqlGlotToolkit:
    """Composite :class:`SqlToolkit` backed by SQLGlot.

    Instantiates all individual protocol implementations and exposes them
    as properties.  This is the default implementation returned by
    :func:`get_sql_toolkit`.
    """

    def __init__(self) -> None:
        self._parser = SqlGlotParser()
        self._renderer = SqlGlotRenderer()
        self._fingerprinter = SqlGlotFingerprinter()

    @property
    def parser(self) -> SqlGlotParser:
        return self._parser

    @property
    def renderer(self) -> SqlGlotRenderer:
        return self._renderer

    @property
    def fingerprinter(self) -> SqlGlotFingerprinter:
        return self._fingerprinter
