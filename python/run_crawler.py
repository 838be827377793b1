#!/usr/bin/env python3
from __future__ import annotations

import sys
from pathlib import Path

PYTHON_SRC = Path(__file__).resolve().parent / "src"
if str(PYTHON_SRC) not in sys.path:
    sys.path.insert(0, str(PYTHON_SRC))

from vn_address_crawlers.cli import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
