"""Entry point for `python -m codesonar_gate.cli` and the `codesonar-gate` console script."""

from __future__ import annotations

from codesonar_gate.cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
