#!/usr/bin/env python3
"""Runs ``login-probe`` straight from a source checkout."""
from __future__ import annotations

import importlib
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
SRC_PATH = ROOT / "src"
if SRC_PATH.exists():  # src/ layout, package not installed
    sys.path.insert(0, str(SRC_PATH))


def main() -> int:
    cli = importlib.import_module("login_probe.cli")
    return cli.main()


if __name__ == "__main__":
    sys.exit(main())
