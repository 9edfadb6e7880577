"""SQLGlot-backed fingerprinting visitor.

Rewrites parsed statements in place so that statements differing only in
literal values, column lists or redundant identifier quoting render to the
same text.  Every value-bearing sub-tree is replaced by a fresh placeholder
node that renders as ``...``; clause keywords and structure are kept.

The walk is iterative and pre-order: rules for a node fire before its
(already rewritten) children are descended into, so placeholders are never
revisited in a meaningful way and arbitrarily deep trees cannot exhaust the
Python stack.

Nothing in here raises for a tree the parser produced.  Each rule checks
that the field it rewrites is present and non-empty and otherwise leaves the
node alone.
"""

from __future__ import annotations

import logging

from sqlglot import exp

from .._types import SqlNode
from .sqlglot_statements import DeclareCursor, ReleaseSavepoint, RollbackToSavepoint, Savepoint

logger = logging.getLogger(__name__)

PLACEHOLDER = "..."

# Variable declarations may not exist in all sqlglot versions.
_DECLARE = getattr(exp, "Declare", None)
_DECLARE_ITEM = getattr(exp, "DeclareItem", None)

# GROUP BY forms that are kept verbatim.
_GROUPING_CONSTRUCTS: tuple[type[exp.Expression], ...] = (exp.Cube, exp.Rollup, exp.GroupingSets)


# ---------------------------------------------------------------------------
# Placeholder construction
# ---------------------------------------------------------------------------


def _placeholder() -> exp.Var:
    return exp.Var(this=PLACEHOLDER)


def _placeholder_identifier() -> exp.Identifier:
    return exp.Identifier(this=PLACEHOLDER, quoted=False)


def _placeholder_assignment() -> exp.EQ:
    """``... = ...``"""
    return exp.EQ(this=exp.Column(this=_placeholder_identifier()), expression=_placeholder())


# ---------------------------------------------------------------------------
# Clause helpers
# ---------------------------------------------------------------------------


def _is_wildcard(projection: exp.Expression) -> bool:
    if isinstance(projection, exp.Star):
        return True
    return isinstance(projection, exp.Column) and isinstance(projection.this, exp.Star)


def _is_set_operation_branch(node: exp.Expression) -> bool:
    return isinstance(node.parent, exp.SetOperation) and node.arg_key in ("this", "expression")


def _collapse_where(node: exp.Expression) -> None:
    where = node.args.get("where")
    if isinstance(where, exp.Where):
        where.set("this", _placeholder())


def _collapse_returning(node: exp.Expression) -> None:
    returning = node.args.get("returning")
    if isinstance(returning, exp.Returning) and returning.expressions:
        returning.set("expressions", [_placeholder()])


def _unquote_parts(node: exp.Expression) -> None:
    """Drop quoting from name parts made only of letters, digits and ``_``."""
    for key in ("this", "table", "db", "catalog"):
        part = node.args.get(key)
        if (
            isinstance(part, exp.Identifier)
            and part.args.get("quoted")
            and part.this
            and all(char.isalnum() or char == "_" for char in part.this)
        ):
            part.set("quoted", False)


# ---------------------------------------------------------------------------
# Savepoint aliases
# ---------------------------------------------------------------------------


class SavepointAliases:
    """Savepoint name -> alias table for one batch.

    Aliases are numbered by the order in which SAVEPOINT statements occur,
    so a name that is declared twice gets a second, distinct alias and later
    references resolve to the most recent one.
    """

    def __init__(self) -> None:
        self._aliases: dict[str, str] = {}
        self._declared = 0

    def allocate(self, name: str) -> str:
        self._declared += 1
        alias = f"s{self._declared}"
        self._aliases[name] = alias
        return alias

    def resolve(self, name: str) -> str | None:
        return self._aliases.get(name)

    def snapshot(self) -> dict[str, str]:
        return dict(self._aliases)


# ---------------------------------------------------------------------------
# FingerprintingVisitor
# ---------------------------------------------------------------------------


class FingerprintingVisitor:
    """In-place normalising pass over sqlglot statement trees.

    One instance is created per batch: the savepoint alias table it carries
    is shared by every statement of the batch, in visit order.
    """

    def __init__(self) -> None:
        self._savepoints = SavepointAliases()

    @property
    def savepoint_aliases(self) -> dict[str, str]:
        return self._savepoints.snapshot()

    def visit(self, node: SqlNode) -> None:
        raw = node.raw
        if not isinstance(raw, exp.Expression):
            raise TypeError(f"Expected sqlglot Expression, got {type(raw).__name__}")

        stack: list[exp.Expression] = [raw]
        while stack:
            current = stack.pop()
            self._pre_visit(current)
            stack.extend(reversed(list(current.iter_expressions())))

    # -- dispatch ------------------------------------------------------------

    def _pre_visit(self, node: exp.Expression) -> None:
        if isinstance(node, Savepoint):
            self._visit_savepoint(node)
        elif isinstance(node, (ReleaseSavepoint, RollbackToSavepoint)):
            self._visit_savepoint_reference(node)
        elif isinstance(node, DeclareCursor):
            node.set("expressions", [_placeholder_identifier()])
        elif _DECLARE is not None and isinstance(node, _DECLARE):
            self._visit_declare(node)
        elif isinstance(node, (exp.Insert, exp.Update)) and node.find_ancestor(exp.Merge) is not None:
            # MERGE actions keep their column lists and values.
            pass
        elif isinstance(node, exp.Insert):
            self._visit_insert(node)
        elif isinstance(node, exp.Update):
            if node.expressions:
                node.set("expressions", [_placeholder_assignment()])
            _collapse_where(node)
            _collapse_returning(node)
        elif isinstance(node, exp.Delete):
            _collapse_where(node)
            _collapse_returning(node)
        elif isinstance(node, (exp.Select, exp.SetOperation)):
            # Set operation branches are handled by their root's worklist.
            if not _is_set_operation_branch(node):
                self._visit_query(node)
        elif isinstance(node, exp.Subquery):
            self._visit_modifiers(node)
        elif isinstance(node, exp.Unnest):
            if isinstance(node.parent, (exp.From, exp.Join)):
                self._visit_unnest(node)
        elif isinstance(node, (exp.Table, exp.Column)):
            _unquote_parts(node)

    # -- statements ----------------------------------------------------------

    def _visit_savepoint(self, node: Savepoint) -> None:
        alias = self._savepoints.allocate(node.this.name)
        node.set("this", exp.Identifier(this=alias, quoted=False))

    def _visit_savepoint_reference(self, node: exp.Expression) -> None:
        alias = self._savepoints.resolve(node.this.name)
        if alias is None:
            logger.debug("No savepoint named %r in this batch; leaving it as is", node.this.name)
            return
        node.set("this", exp.Identifier(this=alias, quoted=False))

    def _visit_declare(self, node: exp.Expression) -> None:
        for item in node.expressions:
            if _DECLARE_ITEM is None or not isinstance(item, _DECLARE_ITEM):
                continue
            names = item.this
            # BigQuery and Databricks parse a list of variable names into one item.
            if isinstance(names, list):
                if names:
                    item.set("this", [_placeholder_identifier()])
            elif names is not None:
                item.set("this", _placeholder_identifier())

    def _visit_insert(self, node: exp.Insert) -> None:
        target = node.this
        if isinstance(target, exp.Schema) and target.expressions:
            target.set("expressions", [_placeholder_identifier()])

        source = node.expression
        if isinstance(source, exp.Values) and source.expressions:
            source.set("expressions", [exp.Tuple(expressions=[_placeholder()])])

        conflict = node.args.get("conflict")
        # MySQL's ON DUPLICATE KEY UPDATE shares the node but is left alone.
        if isinstance(conflict, exp.OnConflict) and not conflict.args.get("duplicate"):
            if conflict.args.get("conflict_keys"):
                conflict.set("conflict_keys", [_placeholder_identifier()])
            if conflict.expressions:
                conflict.set("expressions", [_placeholder_assignment()])
            _collapse_where(conflict)

        _collapse_returning(node)

    # -- queries -------------------------------------------------------------

    def _visit_query(self, node: exp.Expression) -> None:
        """Apply the query rules to a SELECT or to every leaf of a set operation."""
        self._visit_modifiers(node)
        if isinstance(node, exp.Select):
            self._visit_select(node)
            return

        worklist: list[exp.Expression] = [node]
        while worklist:
            current = worklist.pop()
            if isinstance(current, exp.SetOperation):
                worklist.append(current.expression)
                worklist.append(current.this)
            elif isinstance(current, exp.Select):
                self._visit_select(current)
                self._visit_modifiers(current)
            # Parenthesised branches are Subquery nodes; the main walk
            # reaches their inner SELECT on its own.

    def _visit_select(self, node: exp.Select) -> None:
        projections = node.expressions
        if projections:
            first = projections[0]
            node.set("expressions", [first if _is_wildcard(first) else _placeholder()])

        distinct = node.args.get("distinct")
        if isinstance(distinct, exp.Distinct) and distinct.args.get("on") is not None:
            distinct.set("on", exp.Tuple(expressions=[_placeholder()]))

        for join in node.args.get("joins") or []:
            if join.args.get("on") is not None:
                join.set("on", _placeholder())

        _collapse_where(node)

        group = node.args.get("group")
        if (
            isinstance(group, exp.Group)
            and group.expressions
            and not any(isinstance(item, _GROUPING_CONSTRUCTS) for item in group.expressions)
        ):
            group.set("expressions", [_placeholder()])

    def _visit_modifiers(self, node: exp.Expression) -> None:
        """ORDER BY, LIMIT, OFFSET and FETCH on the query node that owns them."""
        order = node.args.get("order")
        if isinstance(order, exp.Order) and order.expressions:
            first = order.expressions[0]
            if isinstance(first, exp.Ordered):
                first.set("this", _placeholder())
            else:
                first = _placeholder()
            order.set("expressions", [first])

        limit = node.args.get("limit")
        if isinstance(limit, exp.Limit):
            if limit.expression is not None:
                limit.set("expression", _placeholder())
            if limit.args.get("offset") is not None:
                limit.set("offset", _placeholder())
            if limit.expressions:
                limit.set("expressions", [_placeholder()])
        elif isinstance(limit, exp.Fetch) and limit.args.get("count") is not None:
            limit.set("count", _placeholder())

        offset = node.args.get("offset")
        if isinstance(offset, exp.Offset):
            if offset.expression is not None:
                offset.set("expression", _placeholder())
            # LIMIT n OFFSET m BY ... keeps the BY list on the offset.
            if offset.expressions:
                offset.set("expressions", [_placeholder()])

    def _visit_unnest(self, node: exp.Unnest) -> None:
        if node.expressions:
            node.set("expressions", [_placeholder()])
        alias = node.args.get("alias")
        if isinstance(alias, exp.TableAlias) and alias.args.get("columns"):
            alias.set("columns", [_placeholder_identifier()])


# ---------------------------------------------------------------------------
# SqlGlotFingerprinter
# ---------------------------------------------------------------------------


class SqlGlotFingerprinter:
    """SQLGlot-backed :class:`SqlFingerprinter` implementation."""

    def create_visitor(self) -> FingerprintingVisitor:
        return FingerprintingVisitor()
