"""
Structured-file codec: load and save JSON documents for keys, stores and
configuration files.
"""

import json
from pathlib import Path
from typing import Any, Dict

from .exceptions import DecodeError, StorageError


def absolute_path(filename: str) -> Path:
    return Path(filename).expanduser().absolute()


def load_document(filename: str) -> Dict[str, Any]:
    """ Read ``filename`` and return its top-level JSON object. """
    path = absolute_path(filename)
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        raise StorageError(f"failed to read file {path}: {e}") from e
    try:
        doc = json.loads(raw.decode("utf-8"))
    except ValueError as e:
        raise DecodeError(f"failed to decode {path}: {e}") from e
    if not isinstance(doc, dict):
        raise DecodeError(f"failed to decode {path}: expected an object at the top level")
    return doc


def save_document(filename: str, doc: Dict[str, Any]) -> str:
    """ Write ``doc`` to ``filename`` and return the absolute path written. """
    path = absolute_path(filename)
    try:
        text = json.dumps(doc, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"failed to encode document for {path}: {e}") from e
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
            f.write("\n")
    except OSError as e:
        raise StorageError(f"failed to write file {path}: {e}") from e
    return str(path)
