"""sql-fingerprint CLI application -- Typer-based front end.

Human-readable output goes to *stderr* via Rich; fingerprints and JSON go
to *stdout* so that the tool composes in shell pipelines.
"""

from __future__ import annotations

import json
import sys
from collections import Counter
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from sql_fingerprint.cli.display import display_fingerprints, display_groups
from sql_fingerprint.config import load_settings
from sql_fingerprint.fingerprint import (
    fingerprint_many,
    fingerprint_one,
    get_fingerprint_version,
    hash_fingerprint,
)
from sql_fingerprint.sql_toolkit import Dialect
from sql_fingerprint.telemetry.json_logging import configure_logging

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="sql-fingerprint",
    help="Normalise SQL statements into value-independent fingerprints.",
    no_args_is_help=True,
)
console = Console(stderr=True)

# Mutable global options populated by the Typer callback.
_json_output: bool = False
_dialect: Dialect = Dialect.GENERIC


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit structured JSON to stdout instead of human-readable output.",
    ),
    dialect: Dialect | None = typer.Option(
        None,
        "--dialect",
        help="SQL dialect to parse with (defaults to SQL_FINGERPRINT_DIALECT or generic).",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output, _dialect  # noqa: PLW0603

    overrides: dict[str, Any] = {}
    if log_level is not None:
        overrides["log_level"] = log_level
    try:
        settings = load_settings(**overrides)
    except ValidationError as exc:
        console.print(f"[red]Invalid settings:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    configure_logging(settings)
    _json_output = json_mode
    _dialect = dialect if dialect is not None else settings.dialect


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_statements(source: str) -> list[str]:
    """Return the non-blank lines of *source* (a path, or ``-`` for stdin)."""
    if source == "-":
        text = sys.stdin.read()
    else:
        path = Path(source)
        if not path.is_file():
            console.print(f"[red]Input file not found:[/red] {source}")
            raise typer.Exit(code=1)
        text = path.read_text(encoding="utf-8")
    return [line.strip() for line in text.splitlines() if line.strip()]


def _write_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def one(
    sql: str = typer.Argument(..., help="SQL text to fingerprint."),
) -> None:
    """Print the fingerprint of a single SQL string."""
    fingerprint = fingerprint_one(sql, _dialect)
    if _json_output:
        _write_json({"sql": sql, "fingerprint": fingerprint})
    else:
        sys.stdout.write(fingerprint + "\n")


@app.command()
def many(
    source: str = typer.Argument("-", help="File with one SQL string per line, or '-' for stdin."),
    with_hash: bool = typer.Option(False, "--hash", help="Include the fingerprint hash."),
) -> None:
    """Fingerprint every line of SOURCE as one batch."""
    statements = _read_statements(source)
    fingerprints = fingerprint_many(statements, _dialect)
    digests = [hash_fingerprint(fp) if with_hash else None for fp in fingerprints]

    if _json_output:
        records: list[dict[str, str]] = []
        for sql, fingerprint, digest in zip(statements, fingerprints, digests):
            record = {"sql": sql, "fingerprint": fingerprint}
            if digest is not None:
                record["hash"] = digest
            records.append(record)
        _write_json(records)
        return

    display_fingerprints(console, list(zip(statements, fingerprints, digests)))


@app.command()
def group(
    source: str = typer.Argument("-", help="File with one SQL string per line, or '-' for stdin."),
) -> None:
    """Count how often each distinct fingerprint occurs, most frequent first."""
    statements = _read_statements(source)
    counts = Counter(fingerprint_many(statements, _dialect))
    groups = [(fingerprint, count, hash_fingerprint(fingerprint)) for fingerprint, count in counts.most_common()]

    if _json_output:
        _write_json([{"fingerprint": fp, "count": count, "hash": digest} for fp, count, digest in groups])
        return

    display_groups(console, groups, total=len(statements))


@app.command("hash")
def hash_command(
    sql: str = typer.Argument(..., help="SQL text to hash."),
) -> None:
    """Print the versioned SHA-256 hash of a statement's fingerprint."""
    fingerprint = fingerprint_one(sql, _dialect)
    digest = hash_fingerprint(fingerprint)
    if _json_output:
        _write_json({"fingerprint": fingerprint, "hash": digest, "version": get_fingerprint_version()})
    else:
        sys.stdout.write(digest + "\n")
