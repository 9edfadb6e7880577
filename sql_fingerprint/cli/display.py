"""Rich output formatting for the sql-fingerprint CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table


def _fingerprint_cell(sql: str, fingerprint: str) -> str:
    """Dim the fingerprint when it is the input unchanged (did not parse)."""
    if fingerprint == sql:
        return f"[dim]{escape(fingerprint)}[/dim]"
    return escape(fingerprint)


# ---------------------------------------------------------------------------
# Batch results
# ---------------------------------------------------------------------------


def display_fingerprints(
    console: Console,
    rows: Sequence[tuple[str, str, str | None]],
) -> None:
    """Render one row per input statement.

    Parameters
    ----------
    console:
        Rich console to write to.
    rows:
        ``(sql, fingerprint, hash)`` triples; ``hash`` is ``None`` when
        hashes were not requested.
    """
    if not rows:
        console.print("[dim]No SQL statements found.[/dim]")
        return

    with_hash = any(row[2] is not None for row in rows)

    table = Table(
        title=f"Fingerprints ({len(rows)})",
        show_lines=False,
        pad_edge=True,
        expand=False,
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("SQL")
    table.add_column("Fingerprint", style="bold")
    if with_hash:
        table.add_column("Hash", style="cyan")

    for position, (sql, fingerprint, digest) in enumerate(rows, start=1):
        cells = [str(position), escape(sql), _fingerprint_cell(sql, fingerprint)]
        if with_hash:
            cells.append((digest or "")[:12])
        table.add_row(*cells)

    console.print(table)


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def display_groups(
    console: Console,
    groups: Sequence[tuple[str, int, str]],
    total: int,
) -> None:
    """Render distinct fingerprints with their occurrence counts.

    Parameters
    ----------
    console:
        Rich console to write to.
    groups:
        ``(fingerprint, count, hash)`` triples, most frequent first.
    total:
        Number of input statements the groups were built from.
    """
    if not groups:
        console.print("[dim]No SQL statements found.[/dim]")
        return

    table = Table(
        title=f"{len(groups)} distinct fingerprints from {total} statements",
        show_lines=False,
        pad_edge=True,
        expand=False,
    )
    table.add_column("Count", justify="right", style="bold")
    table.add_column("Share", justify="right")
    table.add_column("Fingerprint")
    table.add_column("Hash", style="cyan")

    for fingerprint, count, digest in groups:
        table.add_row(
            str(count),
            f"{count / total:.0%}",
            escape(fingerprint),
            digest[:12],
        )

    console.print(table)
