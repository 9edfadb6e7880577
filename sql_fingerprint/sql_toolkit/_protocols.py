"""SQL toolkit protocol definitions.

These define the interface contract that ANY implementation must satisfy.
Consumer code depends on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ._types import Dialect, ParseResult, SqlNode

# ---------------------------------------------------------------------------
# Individual Capability Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class SqlParser(Protocol):
    """Parse SQL strings into AST representations."""

    def parse_multi(
        self,
        sql: str,
        dialect: Dialect = Dialect.GENERIC,
    ) -> ParseResult:
        """Parse potentially multi-statement SQL (separated by ``;``).

        Returns:
            ``ParseResult`` with zero or more statements.  Blank and
            comment-only input yields zero statements.

        Raises:
            SqlParseError: If any statement in *sql* is invalid.
        """
        ...


@runtime_checkable
class SqlRenderer(Protocol):
    """Render AST nodes back to SQL strings."""

    def render(
        self,
        node: SqlNode,
        dialect: Dialect = Dialect.GENERIC,
        *,
        pretty: bool = False,
    ) -> str:
        """Render a statement to a SQL string.

        Keywords use the implementation's standard casing and comments are
        dropped.

        Raises:
            SqlRenderError: If the tree cannot be rendered.
        """
        ...


@runtime_checkable
class FingerprintVisitor(Protocol):
    """A stateful, single-batch normalization pass over parsed statements."""

    def visit(self, node: SqlNode) -> None:
        """Rewrite *node* in place, collapsing value-bearing sub-trees.

        Never raises for a successfully parsed statement: shapes the rules
        do not recognise are left untouched.
        """
        ...

    @property
    def savepoint_aliases(self) -> dict[str, str]:
        """Snapshot of the savepoint name -> alias table built so far."""
        ...


@runtime_checkable
class SqlFingerprinter(Protocol):
    """Factory for batch-scoped :class:`FingerprintVisitor` instances."""

    def create_visitor(self) -> FingerprintVisitor:
        """Return a fresh visitor with an empty savepoint alias table."""
        ...


# ---------------------------------------------------------------------------
# Composite Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class SqlToolkit(Protocol):
    """Composite protocol: a complete SQL toolkit implementation.

    This is what consumer code receives from the factory.
    """

    @property
    def parser(self) -> SqlParser:
        ...

    @property
    def renderer(self) -> SqlRenderer:
        ...

    @property
    def fingerprinter(self) -> SqlFingerprinter:
        ...
