"""Command line entry point: `tomb init|save|get|copy|delete|list|ui`.

Every command exits 0 on success and 1 on any core error, with the error
printed to stderr.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tomb import __version__
from tomb.core.exceptions import TombError
from tomb.core.store import SecretStore
from tomb.security.kdf import KEY_CYCLES, IV_CYCLES, SALT_CYCLES, Config
from tomb.security.key import Key

from .clipboard import copy_secret
from .context import TombPaths, build_context, resolve_paths
from .logging_config import configure_logging, verbosity_to_level


logger = logging.getLogger(__name__)


class CommandError(TombError):
    # raised for invalid combinations of command line options
    pass


# === Key and tomb loading ===


def confirm_password() -> str:
    password = getpass.getpass("Password: ")
    confirmation = getpass.getpass("Confirm password: ")
    if password != confirmation:
        raise CommandError("Password/Confirmation mismatch")
    return password


def get_password(args: argparse.Namespace, confirm: bool = False) -> str:
    if getattr(args, "ask_password", False):
        return confirm_password() if confirm else getpass.getpass("Password: ")
    return getattr(args, "password", None) or ""


def load_key(args: argparse.Namespace, store: Optional[SecretStore] = None) -> Key:
    """
    Build the key for a command: a password derives it with the tomb's own
    cycles config, otherwise the key file is imported.
    """
    password = get_password(args)
    if password:
        if store is not None:
            return store.derive_key(password)
        return Key.from_password(password, Config.builtin())
    if args.key_filename:
        return Key.import_file(args.key_filename)
    raise CommandError("either --password, --key-filename or --ask-password is required")


def load_tomb(args: argparse.Namespace) -> SecretStore:
    return SecretStore.import_file(args.tomb_filename)


# === Commands ===


def _cycles_config(values: List[int]) -> Config:
    try:
        return Config.from_list(values)
    except ValueError as exc:
        raise CommandError(f"invalid cycles: {exc}") from exc


def init_command(args: argparse.Namespace, paths: TombPaths) -> int:
    key_path = Path(args.key_filename).expanduser()
    if not key_path.exists():
        config = _cycles_config([args.key_cycles, args.salt_cycles, args.iv_cycles])
        password = get_password(args, confirm=True)
        if password:
            print("deriving key from password, please be patient...", file=sys.stderr)
            key = Key.from_password(password, config)
        else:
            key = Key.generate()
        written = key.export(args.key_filename)
        print(f"generated key: {written}", file=sys.stderr)
    else:
        key = Key.import_file(args.key_filename)
        config = _cycles_config(list(key.magic)) if key.magic else Config.builtin()

    tomb_path = Path(args.tomb_filename).expanduser()
    if tomb_path.exists():
        print(f"file already exists: {args.tomb_filename}", file=sys.stderr)
        return 0

    config = Config(cycles=config.cycles, default_key_path=str(key_path.absolute()))
    store = SecretStore.new(args.tomb_filename, key, config)
    target = store.save()
    build_context(store, key, paths).ui_config.save(paths.config_filename)
    print(f"initialized tomb file: {target}")
    return 0


def save_command(args: argparse.Namespace, paths: TombPaths) -> int:
    store = load_tomb(args)
    key = load_key(args, store)
    store.add_secret(
        args.path,
        args.value,
        key,
        notes=args.notes,
        username=args.username,
        url=args.url,
    )
    store.save()
    print(f"added secret: {args.path}")
    return 0


def get_command(args: argparse.Namespace, paths: TombPaths) -> int:
    store = load_tomb(args)
    key = load_key(args, store)
    print(store.get_string(args.path, key))
    return 0


def copy_command(args: argparse.Namespace, paths: TombPaths) -> int:
    store = load_tomb(args)
    key = load_key(args, store)
    copy_secret(store, args.path, key)
    print(f"{args.path} secret copied to clipboard", file=sys.stderr)
    return 0


def delete_command(args: argparse.Namespace, paths: TombPaths) -> int:
    store = load_tomb(args)
    store.delete_secret(args.path)
    store.save()
    print(f"deleted secret: {args.path}")
    return 0


def list_command(args: argparse.Namespace, paths: TombPaths) -> int:
    store = load_tomb(args)
    for record in store.list(args.pattern):
        print(record.path)
    return 0


def ui_command(args: argparse.Namespace, paths: TombPaths) -> int:  # pragma: no cover - UI only
    from .app import TombApp

    store = load_tomb(args)
    key = load_key(args, store)
    target = store.save()
    logger.info("saved file: %s", target)
    TombApp(build_context(store, key, paths)).run()
    return 0


# === Parser ===


def _add_file_options(parser: argparse.ArgumentParser, paths: TombPaths) -> None:
    parser.add_argument(
        "-k",
        "--key-filename",
        default=paths.key_filename,
        help=f"the path to the aes256cbc key (default: {paths.key_filename})",
    )
    parser.add_argument(
        "-t",
        "--tomb",
        dest="tomb_filename",
        metavar="FILENAME",
        default=paths.tomb_filename,
        help=f"the tomb file containing the encrypted secrets (default: {paths.tomb_filename})",
    )


def _add_password_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-P", "--password", default=None, help="derive the key from this password")
    group.add_argument(
        "-p",
        "--ask-password",
        action="store_true",
        help="prompt for the password instead of reading the key file",
    )


def build_parser(paths: TombPaths) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tomb", description="Password Manager")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log more (-v info, -vv debug)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    init = sub.add_parser("init", help="initializes a tomb file and generates a key")
    _add_file_options(init, paths)
    _add_password_options(init)
    init.add_argument("-K", "--key", dest="key_cycles", type=int, default=KEY_CYCLES)
    init.add_argument("-S", "--salt", dest="salt_cycles", type=int, default=SALT_CYCLES)
    init.add_argument("-I", "--iv", dest="iv_cycles", type=int, default=IV_CYCLES)
    init.set_defaults(func=init_command)

    save = sub.add_parser("save", help="store a secret in the tomb")
    _add_file_options(save, paths)
    _add_password_options(save)
    save.add_argument("path", metavar="KEY_PATH", help="the path to the secret")
    save.add_argument("value", metavar="VALUE", help="the secret value to be saved")
    save.add_argument("--notes", default=None)
    save.add_argument("--username", default=None)
    save.add_argument("--url", default=None)
    save.set_defaults(func=save_command)

    get = sub.add_parser("get", help="get a secret")
    _add_file_options(get, paths)
    _add_password_options(get)
    get.add_argument("path", metavar="KEY_PATH", help="the path to the secret")
    get.set_defaults(func=get_command)

    copy = sub.add_parser("copy", help="copy a secret to the clipboard")
    _add_file_options(copy, paths)
    _add_password_options(copy)
    copy.add_argument("path", metavar="KEY_PATH", help="the path to the secret")
    copy.set_defaults(func=copy_command)

    delete = sub.add_parser("delete", help="delete a secret")
    _add_file_options(delete, paths)
    delete.add_argument("path", metavar="KEY_PATH", help="the path to the secret")
    delete.set_defaults(func=delete_command)

    list_ = sub.add_parser("list", help="list secrets")
    _add_file_options(list_, paths)
    list_.add_argument("pattern", metavar="PATTERN", nargs="?", default="*", help="glob over secret paths")
    list_.set_defaults(func=list_command)

    ui = sub.add_parser("ui", help="open the terminal ui")
    _add_file_options(ui, paths)
    _add_password_options(ui)
    ui.set_defaults(func=ui_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    paths = resolve_paths()
    parser = build_parser(paths)
    args = parser.parse_args(argv)

    if args.command == "ui":
        configure_logging(verbosity_to_level(max(args.verbose, 1)), logfile=paths.log_filename)
    else:
        configure_logging(verbosity_to_level(args.verbose))

    try:
        return args.func(args, paths)
    except TombError as exc:
        logger.debug("%s failed", args.command, exc_info=True)
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
