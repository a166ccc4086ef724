"""Unit tests for the Tomb Textual App (Frontend)."""

import pytest

import tomb.frontend.cli.clipboard as clipboard_mod
from tomb.core.store import SecretStore
from tomb.frontend.cli.app import (
    ConfigModal,
    DeleteConfirmModal,
    ErrorModal,
    InfoModal,
    SecretFormModal,
    TombApp,
    filter_secrets,
    search_pattern,
)
from tomb.frontend.cli.config import UIConfig
from tomb.frontend.cli.context import AppContext, TombPaths


# --- Fixtures ---

@pytest.fixture
def saved_store(store, key):
    """A store on disk with two secrets."""
    store.add_secret("email/password", "hunter2", key, username="me")
    store.add_secret("web/github", "token", key)
    store.save()
    return store


@pytest.fixture
def paths(tmp_path):
    return TombPaths(
        key_filename=str(tmp_path / "tomb.key"),
        tomb_filename=str(tmp_path / "tomb.json"),
        config_filename=str(tmp_path / "tombconfig"),
        log_filename=str(tmp_path / "tomb.log"),
    )


@pytest.fixture
def ctx(saved_store, key, paths):
    return AppContext(store=saved_store, key=key, ui_config=UIConfig(ui_color="magenta"), paths=paths)


# --- Test 1: Search helpers ---

@pytest.mark.parametrize(
    "text,pattern",
    [("", "*"), ("   ", "*"), ("git", "*git*"), ("email/*", "email/*"), ("p?n", "p?n")],
)
def test_search_pattern(text, pattern):
    assert search_pattern(text) == pattern


def test_filter_secrets(saved_store):
    assert [r.path for r in filter_secrets(saved_store, "hub")] == ["web/github"]
    assert len(filter_secrets(saved_store, "")) == 2


# --- Test 2: App startup ---

@pytest.mark.asyncio
async def test_app_startup_lists_secrets(ctx):
    app = TombApp(ctx)
    async with app.run_test() as pilot:
        await pilot.pause()
        table = app.query_one("#secrets")
        assert table.row_count == 2
        assert app.row_keys == sorted(r.key_id() for r in ctx.store.list("*"))


@pytest.mark.asyncio
async def test_search_filters_table(ctx):
    app = TombApp(ctx)
    async with app.run_test() as pilot:
        app.search.value = "email"
        await pilot.pause()
        assert app.query_one("#secrets").row_count == 1


# --- Test 3: Actions ---

@pytest.mark.asyncio
async def test_copy_action(ctx, monkeypatch):
    copied = []
    monkeypatch.setattr(clipboard_mod.pyperclip, "copy", copied.append)
    app = TombApp(ctx)
    async with app.run_test() as pilot:
        await pilot.pause()
        selected = app._selected_record()
        await pilot.press("c")
        await pilot.pause()
        assert copied == [ctx.store.get_string(selected.path, ctx.key)]


@pytest.mark.asyncio
async def test_create_secret_via_modal(ctx, key):
    app = TombApp(ctx)
    async with app.run_test(size=(120, 60)) as pilot:
        await pilot.press("a")
        await pilot.pause()
        assert isinstance(app.screen, SecretFormModal)

        app.screen.path_input.value = "bank/pin"
        app.screen.value_input.value = "1234"
        app.screen.url_input.value = "https://bank.example"
        await pilot.click("#ok")
        await pilot.pause()

        assert app.query_one("#secrets").row_count == 3

    on_disk = SecretStore.import_file(ctx.store.filepath)
    assert on_disk.get_string("bank/pin", key) == "1234"
    assert on_disk.get("bank/pin").url == "https://bank.example"


@pytest.mark.asyncio
async def test_edit_secret_via_modal(ctx, key):
    app = TombApp(ctx)
    async with app.run_test(size=(120, 60)) as pilot:
        await pilot.pause()
        selected = app._selected_record()
        await pilot.press("e")
        await pilot.pause()
        assert isinstance(app.screen, SecretFormModal)
        assert app.screen.path_input.value == selected.path

        app.screen.value_input.value = "rotated"
        app.screen.notes_input.value = "changed today"
        await pilot.click("#ok")
        await pilot.pause()

    on_disk = SecretStore.import_file(ctx.store.filepath)
    assert on_disk.get_string(selected.path, key) == "rotated"
    assert on_disk.get(selected.path).notes == "changed today"
    assert on_disk.get(selected.path).created_at == selected.created_at


@pytest.mark.asyncio
async def test_delete_secret_via_modal(ctx):
    app = TombApp(ctx)
    async with app.run_test(size=(120, 60)) as pilot:
        await pilot.pause()
        selected = app._selected_record()
        await pilot.press("d")
        await pilot.pause()
        assert isinstance(app.screen, DeleteConfirmModal)
        await pilot.click("#ok")
        await pilot.pause()
        assert app.query_one("#secrets").row_count == 1

    on_disk = SecretStore.import_file(ctx.store.filepath)
    assert selected.path not in on_disk
    assert len(on_disk) == 1


# --- Test 4: Changes made by other processes ---

@pytest.mark.asyncio
async def test_create_keeps_secrets_saved_elsewhere(ctx, key):
    app = TombApp(ctx)
    async with app.run_test(size=(120, 60)) as pilot:
        await pilot.pause()
        # another shell runs `tomb save` while the UI is open
        other = SecretStore.import_file(ctx.store.filepath)
        other.add_secret("from/shell", "outside", key)
        other.save()

        await pilot.press("a")
        await pilot.pause()
        app.screen.path_input.value = "from/ui"
        app.screen.value_input.value = "inside"
        await pilot.click("#ok")
        await pilot.pause()
        assert app.query_one("#secrets").row_count == 4

    on_disk = SecretStore.import_file(ctx.store.filepath)
    assert on_disk.get_string("from/shell", key) == "outside"
    assert on_disk.get_string("from/ui", key) == "inside"


@pytest.mark.asyncio
async def test_auto_refresh_picks_up_external_changes(ctx, key):
    app = TombApp(ctx)
    async with app.run_test() as pilot:
        await pilot.pause()
        other = SecretStore.import_file(ctx.store.filepath)
        other.add_secret("from/shell", "outside", key)
        other.save()

        app._auto_refresh()
        await pilot.pause()
        assert app.query_one("#secrets").row_count == 3


@pytest.mark.asyncio
async def test_rename_onto_existing_secret_shows_error(ctx, key):
    app = TombApp(ctx)
    async with app.run_test(size=(120, 60)) as pilot:
        await pilot.pause()
        selected = app._selected_record()
        target = "web/github" if selected.path == "email/password" else "email/password"
        await pilot.press("e")
        await pilot.pause()
        app.screen.path_input.value = target
        await pilot.click("#ok")
        await pilot.pause()
        assert isinstance(app.screen, ErrorModal)

    on_disk = SecretStore.import_file(ctx.store.filepath)
    assert len(on_disk) == 2
    assert on_disk.get_string("web/github", key) == "token"
    assert on_disk.get_string("email/password", key) == "hunter2"


# --- Test 5: Configuration, help and about ---

@pytest.mark.asyncio
async def test_config_modal_saves_ui_color(ctx, paths):
    app = TombApp(ctx)
    async with app.run_test(size=(120, 60)) as pilot:
        await pilot.press("C")
        await pilot.pause()
        assert isinstance(app.screen, ConfigModal)
        assert app.screen.color_input.value == "magenta"

        app.screen.color_input.value = "red"
        await pilot.click("#ok")
        await pilot.pause()
        assert not isinstance(app.screen, ConfigModal)

    assert ctx.ui_config.ui_color == "red"
    assert UIConfig.load(paths.config_filename).ui_color == "red"


@pytest.mark.asyncio
async def test_config_modal_rejects_unknown_color(ctx, paths, tmp_path):
    app = TombApp(ctx)
    async with app.run_test(size=(120, 60)) as pilot:
        await pilot.press("C")
        await pilot.pause()
        app.screen.color_input.value = "not-a-colour"
        app.screen._submit()
        await pilot.pause()
        assert isinstance(app.screen, ConfigModal)

    assert ctx.ui_config.ui_color == "magenta"
    assert not (tmp_path / "tombconfig").exists()


@pytest.mark.asyncio
@pytest.mark.parametrize("key_name,title", [("H", "Help"), ("question_mark", "Help"), ("A", "About")])
async def test_info_screens(ctx, key_name, title):
    app = TombApp(ctx)
    async with app.run_test(size=(120, 60)) as pilot:
        await pilot.press(key_name)
        await pilot.pause()
        assert isinstance(app.screen, InfoModal)
        assert app.screen.info_title == title

        await pilot.press("escape")
        await pilot.pause()
        assert not isinstance(app.screen, InfoModal)
