"""Entry point for `python -m sql_fingerprint` and the `sql-fingerprint` console script."""

from __future__ import annotations

from sql_fingerprint.cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
