"""Terminal UI preferences persisted next to the key and tomb files."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from tomb import __version__
from tomb.core.exceptions import DecodeError
from tomb.core.jsonfile import absolute_path, load_document, save_document


logger = logging.getLogger(__name__)

DEFAULT_TOMB_CONFIG_PATH = "~/.tombconfig"
DEFAULT_UI_COLOR = "cyan"


def default_tomb_config_filename() -> str:
    return str(absolute_path(os.environ.get("TOMB_CONFIG") or DEFAULT_TOMB_CONFIG_PATH))


@dataclass
class UIConfig:
    ui_color: str = DEFAULT_UI_COLOR
    key_filename: str = ""
    tomb_filename: str = ""
    version: Optional[str] = __version__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ui_color": self.ui_color,
            "key_filename": self.key_filename,
            "tomb_filename": self.tomb_filename,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UIConfig":
        values = {name: data.get(name) for name in ("ui_color", "key_filename", "tomb_filename")}
        for name, value in values.items():
            if value is not None and not isinstance(value, str):
                raise DecodeError(f"invalid ui config: {name} must be a string")
        return cls(
            ui_color=values["ui_color"] or DEFAULT_UI_COLOR,
            key_filename=values["key_filename"] or "",
            tomb_filename=values["tomb_filename"] or "",
            version=data.get("version"),
        )

    @classmethod
    def load(cls, filename: str, key_filename: str = "", tomb_filename: str = "") -> "UIConfig":
        """
        Read the UI config from ``filename``. A missing file yields defaults
        pointing at the given key and tomb files.
        """
        if not absolute_path(filename).exists():
            return cls(key_filename=key_filename, tomb_filename=tomb_filename)
        cfg = cls.from_dict(load_document(filename))
        cfg.key_filename = cfg.key_filename or key_filename
        cfg.tomb_filename = cfg.tomb_filename or tomb_filename
        return cfg

    def save(self, filename: str) -> str:
        written = save_document(filename, self.to_dict())
        logger.info("config saved: %s", written)
        return written
