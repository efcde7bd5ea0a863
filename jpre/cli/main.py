"""Runs the jpre command line when executed as `python -m jpre.cli.main`."""

from __future__ import annotations

import sys

from jpre.cli import main

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
