"""Lightweight logging setup for the CLI and the TUI."""

import logging
import sys
from pathlib import Path
from typing import Optional


def configure_logging(level: int = logging.WARNING, logfile: Optional[str] = None) -> None:
    # Configure root logger once. The TUI owns the terminal, so it logs to a file.
    if logfile:
        path = Path(logfile).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        target = {"filename": str(path), "encoding": "utf-8"}
    else:
        target = {"stream": sys.stderr}
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        **target,
    )


def verbosity_to_level(verbose: int) -> int:
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING
