"""Small helpers to resolve file locations and build the context the TUI needs."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from tomb.core.jsonfile import absolute_path
from tomb.core.store import SecretStore, default_tomb_filename
from tomb.security.key import Key, default_key_filename

from .config import UIConfig, default_tomb_config_filename

TOMB_LOG = "~/.tomb.log"


@dataclass(frozen=True)
class TombPaths:
    """File locations, resolved from the environment once at startup."""

    key_filename: str
    tomb_filename: str
    config_filename: str
    log_filename: str


def default_log_filename() -> str:
    return str(absolute_path(os.environ.get("TOMB_LOG") or TOMB_LOG))


def resolve_paths() -> TombPaths:
    """
    Read ``TOMB_KEY``, ``TOMB_FILE``, ``TOMB_CONFIG`` and ``TOMB_LOG``.

    Nothing else in the program consults the environment after this.
    """
    return TombPaths(
        key_filename=default_key_filename(),
        tomb_filename=default_tomb_filename(),
        config_filename=default_tomb_config_filename(),
        log_filename=default_log_filename(),
    )


@dataclass
class AppContext:
    """Container for runtime objects the UI needs."""

    store: SecretStore
    key: Key
    ui_config: UIConfig
    paths: Optional[TombPaths] = None


def build_context(store: SecretStore, key: Key, paths: Optional[TombPaths] = None) -> AppContext:
    """
    Bundle an opened store and its key with the UI config.

    The UI config is read here and nowhere else; widgets take colours from
    ``ctx.ui_config`` instead of going back to disk.
    """
    paths = paths or resolve_paths()
    ui_config = UIConfig.load(
        paths.config_filename,
        key_filename=paths.key_filename,
        tomb_filename=store.filepath or paths.tomb_filename,
    )
    return AppContext(store=store, key=key, ui_config=ui_config, paths=paths)
