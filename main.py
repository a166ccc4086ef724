"""Convenience entry point to run the tomb command line.

Allows `python main.py list` etc. from the project root without installing.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the src/ directory is on sys.path so `import tomb` works
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tomb.frontend.cli.commands import main


if __name__ == "__main__":
    sys.exit(main())
