"""Savepoint and cursor statements that sqlglot does not model natively.

sqlglot parses ``SAVEPOINT x`` and ``RELEASE SAVEPOINT x`` as ordinary
column/alias expressions, turns ``ROLLBACK TO SAVEPOINT x`` into a generic
``Rollback`` that renders without the ``SAVEPOINT`` keyword, and only knows
``DECLARE`` for variables.  The fingerprinter needs real statement nodes for
all four so that savepoint names can be aliased and cursor queries
normalised, so this module recognises them from the token stream of one
statement and builds dedicated :class:`sqlglot.exp.Expression` subclasses.

Recognised forms::

    SAVEPOINT name
    RELEASE [SAVEPOINT] name
    ROLLBACK [TRANSACTION | WORK] TO [SAVEPOINT] name
    DECLARE name [, ...] [BINARY] [ASENSITIVE | INSENSITIVE] [[NO] SCROLL]
        CURSOR [{WITH | WITHOUT} HOLD] FOR query
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlglot import exp
from sqlglot.dialects.dialect import Dialect as SqlglotDialect
from sqlglot.errors import ErrorLevel
from sqlglot.tokens import Token, TokenType

from .._types import SqlParseError

# Modifiers allowed between the cursor name(s) and the CURSOR keyword.
_CURSOR_OPTIONS: frozenset[str] = frozenset({"BINARY", "ASENSITIVE", "INSENSITIVE", "NO", "SCROLL"})


# ---------------------------------------------------------------------------
# Statement nodes
# ---------------------------------------------------------------------------


class Savepoint(exp.Expression):
    """``SAVEPOINT name``."""

    arg_types = {"this": True}


class ReleaseSavepoint(exp.Expression):
    """``RELEASE SAVEPOINT name``."""

    arg_types = {"this": True}


class RollbackToSavepoint(exp.Expression):
    """``ROLLBACK TO SAVEPOINT name``."""

    arg_types = {"this": True}


class DeclareCursor(exp.Expression):
    """``DECLARE names [options] CURSOR [hold] FOR query``.

    ``expressions`` holds the declared names, ``options`` and ``hold`` the
    upper-cased modifier keywords, and ``expression`` the cursor query.
    """

    arg_types = {"expressions": True, "options": False, "hold": False, "expression": True}


CUSTOM_STATEMENTS: tuple[type[exp.Expression], ...] = (
    Savepoint,
    ReleaseSavepoint,
    RollbackToSavepoint,
    DeclareCursor,
)


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def _word(token: Token) -> str:
    return token.text.upper()


def _identifier_from_token(token: Token) -> exp.Identifier:
    """Build an identifier, keeping the quoting the tokenizer saw."""
    if token.token_type == TokenType.IDENTIFIER:
        return exp.Identifier(this=token.text, quoted=True)
    if token.token_type == TokenType.VAR or token.text.isidentifier():
        return exp.Identifier(this=token.text, quoted=False)
    raise SqlParseError(f"Invalid identifier {token.text!r}")


def _single_identifier(tokens: Sequence[Token], statement: str) -> exp.Identifier:
    if len(tokens) != 1:
        raise SqlParseError(f"Expected a single savepoint name after {statement}")
    return _identifier_from_token(tokens[0])


def _identifier_list(tokens: Sequence[Token]) -> list[exp.Identifier]:
    """Parse ``a, b, c`` into identifiers; empty or dangling lists are errors."""
    identifiers: list[exp.Identifier] = []
    expect_name = True
    for token in tokens:
        if expect_name:
            identifiers.append(_identifier_from_token(token))
            expect_name = False
        elif token.token_type == TokenType.COMMA:
            expect_name = True
        else:
            raise SqlParseError(f"Unexpected token {token.text!r} in DECLARE name list")
    if expect_name:
        raise SqlParseError("DECLARE requires at least one name")
    return identifiers


def _skip_transaction_word(tokens: Sequence[Token]) -> Sequence[Token]:
    if tokens and _word(tokens[0]) in ("TRANSACTION", "WORK"):
        return tokens[1:]
    return tokens


# ---------------------------------------------------------------------------
# Statement recognition
# ---------------------------------------------------------------------------


def is_custom_statement(tokens: Sequence[Token]) -> bool:
    """Return ``True`` if *tokens* open one of the statements built here."""
    if not tokens:
        return False
    head = _word(tokens[0])
    if head in ("SAVEPOINT", "RELEASE"):
        return True
    if head == "ROLLBACK":
        rest = _skip_transaction_word(tokens[1:])
        return bool(rest) and _word(rest[0]) == "TO"
    if head == "DECLARE":
        return any(_word(token) == "CURSOR" for token in tokens[1:])
    return False


def parse_custom_statement(
    tokens: Sequence[Token],
    sql: str,
    dialect: SqlglotDialect,
) -> exp.Expression:
    """Build the statement node for *tokens* (one statement, no ``;``).

    Callers must check :func:`is_custom_statement` first.

    Raises
    ------
    SqlParseError
        If the statement is malformed.
    """
    head = _word(tokens[0])

    if head == "SAVEPOINT":
        return Savepoint(this=_single_identifier(tokens[1:], "SAVEPOINT"))

    if head == "RELEASE":
        rest = tokens[1:]
        if len(rest) > 1 and _word(rest[0]) == "SAVEPOINT":
            rest = rest[1:]
        return ReleaseSavepoint(this=_single_identifier(rest, "RELEASE SAVEPOINT"))

    if head == "ROLLBACK":
        # Skip past TO; is_custom_statement guarantees it is there.
        rest = _skip_transaction_word(tokens[1:])[1:]
        if len(rest) > 1 and _word(rest[0]) == "SAVEPOINT":
            rest = rest[1:]
        return RollbackToSavepoint(this=_single_identifier(rest, "ROLLBACK TO SAVEPOINT"))

    return _parse_declare_cursor(tokens, sql, dialect)


def _parse_declare_cursor(
    tokens: Sequence[Token],
    sql: str,
    dialect: SqlglotDialect,
) -> DeclareCursor:
    cursor_at = next(i for i, token in enumerate(tokens) if _word(token) == "CURSOR")

    head = list(tokens[1:cursor_at])
    options: list[str] = []
    while head and _word(head[-1]) in _CURSOR_OPTIONS:
        options.insert(0, _word(head.pop()))
    names = _identifier_list(head)

    rest = tokens[cursor_at + 1 :]
    hold = None
    if len(rest) >= 2 and _word(rest[0]) in ("WITH", "WITHOUT") and _word(rest[1]) == "HOLD":
        hold = f"{_word(rest[0])} HOLD"
        rest = rest[2:]

    if not rest or _word(rest[0]) != "FOR" or len(rest) < 2:
        raise SqlParseError("DECLARE ... CURSOR requires FOR <query>")

    parsed = [
        expression
        for expression in dialect.parser(error_level=ErrorLevel.IMMEDIATE).parse(list(rest[1:]), sql)
        if expression is not None
    ]
    if len(parsed) != 1 or not isinstance(parsed[0], exp.Query):
        raise SqlParseError("DECLARE ... CURSOR FOR must be followed by a single query")

    return DeclareCursor(
        expressions=names,
        options=" ".join(options) or None,
        hold=hold,
        expression=parsed[0],
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_custom_statement(
    node: exp.Expression,
    dialect: SqlglotDialect,
    *,
    pretty: bool = False,
) -> str:
    """Render one of the statement nodes defined in this module."""
    if isinstance(node, Savepoint):
        return f"SAVEPOINT {node.this.sql(dialect=dialect)}"
    if isinstance(node, ReleaseSavepoint):
        return f"RELEASE SAVEPOINT {node.this.sql(dialect=dialect)}"
    if isinstance(node, RollbackToSavepoint):
        return f"ROLLBACK TO SAVEPOINT {node.this.sql(dialect=dialect)}"
    if isinstance(node, DeclareCursor):
        parts = ["DECLARE", ", ".join(name.sql(dialect=dialect) for name in node.expressions)]
        if node.args.get("options"):
            parts.append(node.args["options"])
        parts.append("CURSOR")
        if node.args.get("hold"):
            parts.append(node.args["hold"])
        parts.append("FOR")
        parts.append(node.expression.sql(dialect=dialect, pretty=pretty, comments=False))
        return " ".join(parts)
    raise TypeError(f"Not a custom statement: {type(node).__name__}")
