"""Entry point for `python -m typings_cli` and `typings-impact` console script."""

from __future__ import annotations

from typings_cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
