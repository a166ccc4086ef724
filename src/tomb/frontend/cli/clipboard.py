"""Clipboard helpers shared by the `copy` command and the TUI.

Uses pyperclip for cross-platform clipboard access.
"""

from __future__ import annotations

import pyperclip

from tomb.core.exceptions import TombError
from tomb.core.store import SecretStore
from tomb.security.key import Key


class ClipboardError(TombError):
    # raised when no clipboard mechanism is usable
    pass


def copy_to_clipboard(text: str) -> None:
    """Copy text to the system clipboard.

    Raises:
        ClipboardError: If clipboard access fails.
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as exc:
        raise ClipboardError(f"cannot access the clipboard: {exc}") from exc


def copy_secret(store: SecretStore, path: str, key: Key) -> None:
    """Decrypt the secret at ``path`` and place it on the clipboard."""
    copy_to_clipboard(store.get_string(path, key))
