"""SQL Toolkit: implementation-agnostic parsing, rendering and fingerprinting.

Usage::

    from sql_fingerprint.sql_toolkit import get_sql_toolkit, Dialect

    tk = get_sql_toolkit()
    result = tk.parser.parse_multi("SELECT a FROM t WHERE b = 1", Dialect.GENERIC)
    visitor = tk.fingerprinter.create_visitor()
    for statement in result.statements:
        visitor.visit(statement)
    sql = tk.renderer.render(result.statements[0])

The default implementation delegates to sqlglot.  A different backend can be
swapped in via ``register_implementation()`` without touching consumer code.
"""

from ._factory import get_sql_toolkit, register_implementation, reset_toolkit
from ._protocols import (
    FingerprintVisitor,
    SqlFingerprinter,
    SqlParser,
    SqlRenderer,
    SqlToolkit,
)
from ._types import (
    Dialect,
    ParseResult,
    SqlNode,
    SqlNodeKind,
    SqlParseError,
    SqlRenderError,
    SqlToolkitError,
)

__all__ = [
    # Factory
    "get_sql_toolkit",
    "register_implementation",
    "reset_toolkit",
    # Protocols
    "SqlToolkit",
    "SqlParser",
    "SqlRenderer",
    "SqlFingerprinter",
    "FingerprintVisitor",
    # Types
    "Dialect",
    "SqlNodeKind",
    "SqlNode",
    "ParseResult",
    # Exceptions
    "SqlToolkitError",
    "SqlParseError",
    "SqlRenderError",
]
