"""Textual terminal UI for browsing and editing a tomb.

Start it with `tomb ui`; it needs an opened store and key, see
:func:`tomb.frontend.cli.context.build_context`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.color import Color, ColorParseError
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Static

from tomb import __version__
from tomb.core.exceptions import InvalidPatternError, TombError
from tomb.core.models import SecretRecord
from tomb.core.store import SecretStore
from tomb.frontend.cli.clipboard import copy_secret
from tomb.frontend.cli.config import UIConfig, default_tomb_config_filename
from tomb.frontend.cli.context import AppContext

logger = logging.getLogger(__name__)

GLOB_CHARS = set("*?[")

# seconds between background reloads of the tomb file
REFRESH_INTERVAL = 5.0

HELP_TEXT = """\
Keyboard shortcuts

  /      filter secrets by path (glob patterns or plain words)
  s      show the selected secret
  c      copy the selected secret to the clipboard
  a      new secret
  e      edit the selected secret
  d      delete the selected secret
  r      reload the tomb from disk
  C      configuration
  H, ?   this help
  A      about
  q      quit
"""


def search_pattern(text: str) -> str:
    """Turn search box input into a glob; bare words match anywhere in the path."""
    text = (text or "").strip()
    if not text:
        return "*"
    if GLOB_CHARS & set(text):
        return text
    return f"*{text}*"


def filter_secrets(store: SecretStore, text: str) -> List[SecretRecord]:
    return store.list(search_pattern(text))


def _format_time(ts: datetime) -> str:
    return ts.astimezone().strftime("%Y-%m-%d %H:%M")


# === Modal definitions ===


class SecretFormResult:
    def __init__(self, path: str, value: str, username: str, url: str, notes: str):
        self.path = path
        self.value = value
        self.username = username
        self.url = url
        self.notes = notes


class SecretFormModal(ModalScreen[Optional[SecretFormResult]]):
    """Create or edit a secret. Every field starts from ``initial`` when given."""

    def __init__(self, title: str, initial: Optional[SecretFormResult] = None):
        super().__init__()
        self.form_title = title
        self.initial = initial or SecretFormResult("", "", "", "", "")

    def compose(self) -> ComposeResult:  # pragma: no cover - UI only
        with Vertical(classes="dialog"):
            yield Static(self.form_title, classes="title")
            yield Label("Path")
            self.path_input = Input(value=self.initial.path, placeholder="email/password", id="path")
            yield self.path_input
            yield Label("Secret")
            self.value_input = Input(value=self.initial.value, password=True, id="value")
            yield self.value_input
            yield Label("Username")
            self.username_input = Input(value=self.initial.username, id="username")
            yield self.username_input
            yield Label("URL")
            self.url_input = Input(value=self.initial.url, id="url")
            yield self.url_input
            yield Label("Notes")
            self.notes_input = Input(value=self.initial.notes, id="notes")
            yield self.notes_input
            with Horizontal():
                yield Button("Cancel (Esc)", id="cancel")
                yield Button("Save", id="ok", variant="primary")

    def on_mount(self) -> None:  # pragma: no cover
        self.set_focus(self.path_input)

    def _submit(self) -> None:
        path = self.path_input.value.strip()
        if not path:
            self.notify("Path is required", severity="error")
            return
        self.dismiss(
            SecretFormResult(
                path=path,
                value=self.value_input.value,
                username=self.username_input.value.strip(),
                url=self.url_input.value.strip(),
                notes=self.notes_input.value.strip(),
            )
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:  # pragma: no cover
        if event.button.id == "cancel":
            self.dismiss(None)
        else:
            self._submit()

    def on_key(self, event) -> None:  # pragma: no cover
        if event.key == "escape":
            self.dismiss(None)
        elif event.key == "enter":
            self._submit()


class DeleteConfirmModal(ModalScreen[Optional[bool]]):
    def __init__(self, prompt: str):
        super().__init__()
        self.prompt = prompt

    def compose(self) -> ComposeResult:  # pragma: no cover
        with Vertical(classes="dialog"):
            yield Static(self.prompt)
            with Horizontal():
                yield Button("Cancel (Esc)", id="cancel")
                yield Button("Delete (Enter)", id="ok", variant="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:  # pragma: no cover
        self.dismiss(event.button.id == "ok")

    def on_key(self, event) -> None:  # pragma: no cover
        if event.key == "escape":
            self.dismiss(False)
        elif event.key == "enter":
            self.dismiss(True)


class ErrorModal(ModalScreen[None]):
    """Modal for displaying core errors without leaving the UI."""

    def __init__(self, title: str, message: str):
        super().__init__()
        self.error_title = title
        self.error_message = message

    def compose(self) -> ComposeResult:  # pragma: no cover
        with Vertical(classes="dialog"):
            yield Static(self.error_title, classes="title")
            yield Static(self.error_message)
            yield Static("")
            yield Button("OK", id="ok", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:  # pragma: no cover
        self.dismiss(None)

    def on_key(self, event) -> None:  # pragma: no cover
        if event.key in ("escape", "enter"):
            self.dismiss(None)


class InfoModal(ModalScreen[None]):
    """Read-only text screen used for help and about."""

    def __init__(self, title: str, body: str):
        super().__init__()
        self.info_title = title
        self.info_body = body

    def compose(self) -> ComposeResult:  # pragma: no cover
        with Vertical(classes="dialog"):
            yield Static(self.info_title, classes="title")
            yield Static(self.info_body)
            yield Button("Close (Esc)", id="ok", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:  # pragma: no cover
        self.dismiss(None)

    def on_key(self, event) -> None:  # pragma: no cover
        if event.key in ("escape", "enter"):
            self.dismiss(None)


class ConfigModal(ModalScreen[Optional[UIConfig]]):
    """Edit the UI colour and the recorded key/tomb file locations."""

    def __init__(self, current: UIConfig):
        super().__init__()
        self.current = current

    def compose(self) -> ComposeResult:  # pragma: no cover
        with Vertical(classes="dialog"):
            yield Static("Configuration", classes="title")
            yield Label("UI colour (name or #rrggbb)")
            self.color_input = Input(value=self.current.ui_color, id="ui_color")
            yield self.color_input
            yield Label("Key file")
            self.key_input = Input(value=self.current.key_filename, id="key_filename")
            yield self.key_input
            yield Label("Tomb file")
            self.tomb_input = Input(value=self.current.tomb_filename, id="tomb_filename")
            yield self.tomb_input
            with Horizontal():
                yield Button("Cancel (Esc)", id="cancel")
                yield Button("Save", id="ok", variant="primary")

    def on_mount(self) -> None:  # pragma: no cover
        self.set_focus(self.color_input)

    def _submit(self) -> None:
        color = self.color_input.value.strip()
        try:
            Color.parse(color)
        except ColorParseError:
            self.notify(f"Unknown colour {color!r}", severity="error")
            return
        self.dismiss(
            UIConfig(
                ui_color=color,
                key_filename=self.key_input.value.strip(),
                tomb_filename=self.tomb_input.value.strip(),
                version=__version__,
            )
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:  # pragma: no cover
        if event.button.id == "cancel":
            self.dismiss(None)
        else:
            self._submit()

    def on_key(self, event) -> None:  # pragma: no cover
        if event.key == "escape":
            self.dismiss(None)
        elif event.key == "enter":
            self._submit()


class TombApp(App):
    """Secrets table with glob search, details panel and CRUD modals."""

    TITLE = "Tomb"

    CSS = """
    #sidebar { width: 60%; border: heavy $accent; }
    #main { border: heavy $accent; }
    .title { padding: 1 1; text-style: bold; }
    #details { padding: 0 1; }
    #status { padding: 0 1 1 1; height: 3; color: $text-muted; }
    ModalScreen { align: center middle; background: rgba(0,0,0,0.45); }
    .dialog { width: 75%; height: auto; padding: 1; border: heavy $accent; background: $boost; }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reload", "Reload"),
        ("/", "search", "Search"),
        ("s", "show_secret", "Show"),
        ("c", "copy_secret", "Copy"),
        ("a", "create_secret", "New"),
        ("e", "edit_secret", "Edit"),
        ("d", "delete_secret", "Delete"),
        ("C", "config", "Config"),
        ("H", "help", "Help"),
        Binding("question_mark", "help", "Help", show=False),
        ("A", "about", "About"),
    ]

    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        super().__init__()
        self.search: Input | None = None
        self.table: DataTable | None = None
        self.details: Static | None = None
        self.status: Static | None = None
        self.row_keys: list[str] = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal():
            with Vertical(id="sidebar"):
                self.search = Input(placeholder="search (glob, e.g. email/*)", id="search")
                yield self.search
                self.table = DataTable(id="secrets", cursor_type="row")
                yield self.table
            with Vertical(id="main"):
                yield Static("Details", classes="title")
                self.details = Static("", id="details")
                yield self.details
                self.status = Static("", id="status")
                yield self.status
        yield Footer()

    def on_mount(self) -> None:
        assert self.table is not None
        self.table.add_columns("Path", "Username", "URL", "Updated")
        self._apply_color()
        self.refresh_secrets(reload=False)
        self.set_focus(self.table)
        # pick up secrets saved by other processes while the UI is open
        self.set_interval(REFRESH_INTERVAL, self._auto_refresh)

    def _apply_color(self) -> None:
        assert self.table is not None
        try:
            color = Color.parse(self.ctx.ui_config.ui_color)
        except ColorParseError:
            logger.warning("unknown ui_color %r, using the theme accent", self.ctx.ui_config.ui_color)
        else:
            self.table.styles.border = ("heavy", color)

    def _config_filename(self) -> str:
        if self.ctx.paths is not None:
            return self.ctx.paths.config_filename
        return default_tomb_config_filename()

    # === Data ===

    def _auto_refresh(self) -> None:
        if len(self.screen_stack) > 1:
            return
        try:
            self.ctx.store.reload()
        except TombError as exc:
            logger.warning("background reload failed: %s", exc)
            self._set_status(f"Reload failed: {exc}")
            return
        self.refresh_secrets(reload=False)

    def _reload_before_change(self) -> bool:
        try:
            self.ctx.store.reload()
        except TombError as exc:
            self._show_error("Reload failed", str(exc))
            return False
        return True

    def refresh_secrets(self, reload: bool = True) -> None:
        assert self.table is not None
        if reload and not self._reload_before_change():
            return
        previous_row = self.table.cursor_row or 0
        self.table.clear(columns=False)
        self.row_keys = []
        text = self.search.value if self.search else ""
        try:
            records = filter_secrets(self.ctx.store, text)
        except InvalidPatternError as exc:
            self._set_status(str(exc))
            return
        for record in records:
            self.table.add_row(
                record.path,
                record.username or "--",
                record.url or "--",
                _format_time(record.updated_at),
                key=record.key_id(),
            )
            self.row_keys.append(record.key_id())
        if records:
            self.table.move_cursor(row=min(previous_row, len(records) - 1))
        self._set_status(f"Tomb: {self.ctx.store.filepath} • Secrets: {len(records)}/{len(self.ctx.store)}")
        self._show_details(self._selected_record())

    def _selected_record(self) -> Optional[SecretRecord]:
        if not self.table or self.table.cursor_row is None:
            return None
        idx = self.table.cursor_row
        if 0 <= idx < len(self.row_keys):
            try:
                return self.ctx.store.get_by_id(self.row_keys[idx])
            except TombError:
                return None
        return None

    def _show_details(self, record: Optional[SecretRecord], value: Optional[str] = None) -> None:
        if not self.details:
            return
        if record is None:
            self.details.update("No secret selected")
            return
        lines = [
            f"Path: {record.path}",
            f"Secret: {value if value is not None else '********'}",
            f"Username: {record.username or '--'}",
            f"URL: {record.url or '--'}",
            f"Notes: {record.notes or '--'}",
            f"Created: {_format_time(record.created_at)}",
            f"Updated: {_format_time(record.updated_at)}",
        ]
        self.details.update("\n".join(lines))

    def _set_status(self, message: str) -> None:
        if self.status:
            self.status.update(message)

    def _show_error(self, title: str, message: str) -> None:
        self._set_status(title)
        self.push_screen(ErrorModal(title, message))

    def _save(self) -> bool:
        try:
            self.ctx.store.save()
        except TombError as exc:
            self._show_error("Save failed", str(exc))
            return False
        return True

    # === Events ===

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search":
            self.refresh_secrets(reload=False)

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self._show_details(self._selected_record())

    # === Actions ===

    def action_reload(self) -> None:
        self.refresh_secrets()

    def action_search(self) -> None:
        if self.search:
            self.set_focus(self.search)

    def action_show_secret(self) -> None:
        record = self._selected_record()
        if record is None:
            self._set_status("Select a secret first")
            return
        try:
            value = self.ctx.store.get_string(record.path, self.ctx.key)
        except TombError as exc:
            self._show_error("Cannot decrypt secret", str(exc))
            return
        self._show_details(record, value)

    def action_copy_secret(self) -> None:
        record = self._selected_record()
        if record is None:
            self._set_status("Select a secret first")
            return
        try:
            copy_secret(self.ctx.store, record.path, self.ctx.key)
        except TombError as exc:
            self._show_error("Copy failed", str(exc))
            return
        self._set_status(f"{record.path} secret copied to clipboard")

    def action_create_secret(self) -> None:
        self.push_screen(SecretFormModal("New Secret"), self._handle_create_secret)

    def _handle_create_secret(self, result: Optional[SecretFormResult]) -> None:
        if not result:
            return
        if not self._reload_before_change():
            return
        try:
            self.ctx.store.add_secret(
                result.path,
                result.value,
                self.ctx.key,
                username=result.username or None,
                url=result.url or None,
                notes=result.notes or None,
            )
        except TombError as exc:
            self._show_error("Create failed", str(exc))
            return
        if self._save():
            self.refresh_secrets(reload=False)
            self._set_status(f"Added secret {result.path}")

    def action_edit_secret(self) -> None:
        record = self._selected_record()
        if record is None:
            self._set_status("Select a secret first")
            return
        try:
            value = self.ctx.store.get_string(record.path, self.ctx.key)
        except TombError as exc:
            self._show_error("Cannot decrypt secret", str(exc))
            return
        initial = SecretFormResult(
            path=record.path,
            value=value,
            username=record.username or "",
            url=record.url or "",
            notes=record.notes or "",
        )
        self.push_screen(
            SecretFormModal(f"Edit {record.path}", initial),
            lambda res: self._handle_edit_secret(res, record),
        )

    def _handle_edit_secret(self, result: Optional[SecretFormResult], record: SecretRecord) -> None:
        if not result:
            return
        if not self._reload_before_change():
            return
        try:
            updated = self.ctx.store.update_secret(record.path, result.value, self.ctx.key, new_path=result.path)
            updated.username = result.username or None
            updated.url = result.url or None
            updated.notes = result.notes or None
        except TombError as exc:
            self._show_error("Update failed", str(exc))
            return
        if self._save():
            self.refresh_secrets(reload=False)
            self._set_status(f"Updated secret {result.path}")

    def action_delete_secret(self) -> None:
        record = self._selected_record()
        if record is None:
            self._set_status("Select a secret first")
            return
        self.push_screen(
            DeleteConfirmModal(f"Delete secret '{record.path}'?"),
            lambda ok: self._handle_delete_secret(ok, record.path),
        )

    def _handle_delete_secret(self, confirmed: Optional[bool], path: str) -> None:
        if not confirmed:
            return
        if not self._reload_before_change():
            return
        try:
            self.ctx.store.delete_secret(path)
        except TombError as exc:
            self._show_error("Delete failed", str(exc))
            return
        if self._save():
            self.refresh_secrets(reload=False)
            self._set_status(f"Deleted secret {path}")

    def action_config(self) -> None:
        self.push_screen(ConfigModal(self.ctx.ui_config), self._handle_config)

    def _handle_config(self, result: Optional[UIConfig]) -> None:
        if not result:
            return
        try:
            written = result.save(self._config_filename())
        except TombError as exc:
            self._show_error("Saving configuration failed", str(exc))
            return
        self.ctx.ui_config = result
        self._apply_color()
        self._set_status(f"Configuration saved to {written}")

    def action_help(self) -> None:
        self.push_screen(InfoModal("Help", HELP_TEXT))

    def action_about(self) -> None:
        body = (
            f"tomb {__version__}\n\n"
            "Encrypted secret store: AES-256-CBC keys derived with PBKDF2-HMAC-SHA256.\n"
            f"Tomb file: {self.ctx.store.filepath}\n"
            f"Key file: {self.ctx.ui_config.key_filename or '--'}"
        )
        self.push_screen(InfoModal("About", body))
