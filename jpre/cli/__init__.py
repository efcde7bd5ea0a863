"""Entry point for the `jpre` console script; the parser and commands live in `jpre.cli.__main__`."""

from __future__ import annotations


def main(argv: list[str] | None = None) -> int:
    from jpre.cli.__main__ import main as _main

    return _main(argv)

__all__ = ["main"]
