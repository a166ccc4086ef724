"""
Secret store ("tomb") with file persistence

File layout for reference:
==============================
 {
   "version": "<package version that created the file>",
   "digest":  [32 ints],          # creator key's fingerprint, informational
   "config":  {"cycles": {...}, "default_key_path": ...},
   "data": {
       "<md5 hex of path>": {digest, path, value, notes, username, url,
                             attributes, created_at, updated_at},
       ...
   }
 }
==============================
> Records are keyed by the MD5 hex of their path. Older files may key a record
  by its literal path; lookups and search tolerate both.
> Nothing guards against two processes saving at once: the last save wins.
"""

import copy
import fnmatch
import logging
import os
import re
from typing import Any, Dict, List, Optional

from tomb import __version__
from tomb.security.kdf import Config
from tomb.security.key import Key

from .exceptions import (
    DecodeError,
    InvalidPatternError,
    SecretExistsError,
    SecretNotFoundError,
    StorageError,
    TombError,
)
from .hashing import path_to_id
from .jsonfile import absolute_path, load_document, save_document
from .models import SecretRecord, digest_from_list, digest_to_list


logger = logging.getLogger(__name__)

DEFAULT_TOMB_PATH = "~/.tomb.json"


def default_tomb_filename() -> str:
    return str(absolute_path(os.environ.get("TOMB_FILE") or DEFAULT_TOMB_PATH))


def _check_brackets(pattern: str) -> None:
    # Mirrors how fnmatch scans character classes: a leading '!' or ']' is
    # part of the class, anything else runs until the next ']'.
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c != '[':
            continue
        j = i
        if j < n and pattern[j] == '!':
            j += 1
        if j < n and pattern[j] == ']':
            j += 1
        while j < n and pattern[j] != ']':
            j += 1
        if j >= n:
            raise InvalidPatternError(f"invalid pattern {pattern}: unterminated character class at {i - 1}")
        i = j + 1


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """ Compile a shell-style glob (``*``, ``?``, ``[...]``) into an anchored regex. """
    if not isinstance(pattern, str) or not pattern:
        raise InvalidPatternError("invalid pattern: pattern must be a non-empty string")
    _check_brackets(pattern)
    try:
        return re.compile(fnmatch.translate(pattern))
    except re.error as e:
        raise InvalidPatternError(f"invalid pattern {pattern}: {e}") from e


class SecretStore:
    """ A persisted collection of SecretRecords addressed by path. """

    def __init__(
        self,
        digest: bytes,
        config: Config,
        filepath: Optional[str] = None,
        data: Optional[Dict[str, SecretRecord]] = None,
        version: Optional[str] = None,
    ):
        self.digest = digest
        self.config = config
        self.filepath = filepath
        self.data: Dict[str, SecretRecord] = dict(data) if data else {}
        self.version = version

    @classmethod
    def new(cls, filepath: Optional[str], key: Key, config: Config) -> "SecretStore":
        """ Create an empty store owned by ``key``. """
        return cls(digest=key.digest(), config=config, filepath=filepath, version=__version__)

    def set_filepath(self, path: str) -> None:
        self.filepath = path

    def with_filepath(self, path: str) -> "SecretStore":
        dolly = self.copy()
        dolly.set_filepath(path)
        return dolly

    def copy(self) -> "SecretStore":
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> str:
        """
        Write the store to ``filepath``, read it back and adopt the reloaded
        records. Returns the absolute path written.
        """
        if self.filepath is None:
            raise StorageError(
                "attempt to save tomb that does not have a filepath, "
                f"default is {default_tomb_filename()}"
            )
        written = self.export(self.filepath)
        try:
            fresh = SecretStore.import_file(written)
        except TombError as e:
            raise StorageError(f"failed to save tomb to path {written}: {e}") from e
        self.data = fresh.data
        logger.info("saved tomb %s (%d secrets)", written, len(self.data))
        return written

    def reload(self) -> None:
        """ Replace the in-memory records with what is on disk. """
        filepath = self.filepath
        if filepath is None:
            filepath = default_tomb_filename()
            logger.error(
                "attempt to reload tomb that does not have a filepath, falling back to %s", filepath
            )
        try:
            fresh = SecretStore.import_file(filepath)
        except TombError as e:
            raise StorageError(f"failed to reload tomb from path {filepath}: {e}") from e
        self.data = fresh.data
        logger.info("reloaded tomb %s (%d secrets)", filepath, len(self.data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "digest": digest_to_list(self.digest),
            "config": self.config.to_dict(),
            "data": {key_id: self.data[key_id].to_dict() for key_id in sorted(self.data)},
        }

    @classmethod
    def from_dict(cls, doc: Dict[str, Any], filepath: Optional[str] = None) -> "SecretStore":
        try:
            digest = digest_from_list(doc["digest"])
            config_doc = doc["config"]
            raw_data = doc.get("data") or {}
            if not isinstance(config_doc, dict) or not isinstance(raw_data, dict):
                raise TypeError("config and data must be objects")
            version = doc.get("version")
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"invalid tomb document: {e}") from e
        data = {}
        for key_id, record in raw_data.items():
            if not isinstance(record, dict):
                raise DecodeError(f"invalid tomb document: record {key_id} is not an object")
            data[key_id] = SecretRecord.from_dict(record)
        return cls(
            digest=digest,
            config=Config.from_dict(config_doc),
            filepath=filepath,
            data=data,
            version=version,
        )

    def export(self, filename: str) -> str:
        return save_document(filename, self.to_dict())

    @classmethod
    def import_file(cls, filename: str) -> "SecretStore":
        return cls.from_dict(load_document(filename), filepath=filename)

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def derive_key(self, password: str | bytes) -> Key:
        return Key.from_password(password, self.config)

    def add_secret(self, path: str, plaintext: str | bytes, key: Key, **metadata) -> SecretRecord:
        """ Encrypt ``plaintext`` under ``path``; an existing secret is overwritten. """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        return self.add_secret_from_bytes(path, plaintext, key, **metadata)

    def add_secret_from_bytes(self, path: str, plaintext: bytes, key: Key, **metadata) -> SecretRecord:
        ciphertext = key.encrypt(plaintext)
        record = SecretRecord(path, ciphertext, key, **metadata)
        self.data[record.key_id()] = record
        logger.debug("stored secret %s", path)
        return record

    def _find_id(self, path: str) -> Optional[str]:
        key_id = path_to_id(path)
        if key_id in self.data:
            return key_id
        legacy = self.data.get(path)
        if legacy is not None and legacy.path == path:
            return path
        return None

    def delete_secret(self, path: str) -> None:
        key_id = self._find_id(path)
        if key_id is None:
            raise SecretNotFoundError(f"key not found {path}")
        del self.data[key_id]

    def get(self, path: str) -> SecretRecord:
        key_id = self._find_id(path)
        if key_id is None:
            logger.debug("secret not found: %s", path)
            raise SecretNotFoundError(f"key (path) not found: {path}")
        return self.data[key_id].copy()

    def get_by_id(self, key_id: str) -> SecretRecord:
        try:
            return self.data[key_id].copy()
        except KeyError:
            raise SecretNotFoundError(f"key (md5) not found: {key_id}") from None

    def get_bytes(self, path: str, key: Key) -> bytes:
        return self.get(path).get_bytes(path, key)

    def get_string(self, path: str, key: Key) -> str:
        return self.get(path).get_string(path, key)

    def get_base64_string(self, path: str, key: Key) -> str:
        return self.get(path).get_base64_string(path, key)

    def update_secret(self, path: str, plaintext: str | bytes, key: Key, new_path: Optional[str] = None) -> SecretRecord:
        """
        Re-encrypt an existing secret in place, keeping its metadata and
        creation time. With ``new_path`` the secret is also renamed; renaming
        onto another existing secret raises SecretExistsError.
        """
        key_id = self._find_id(path)
        if key_id is None:
            raise SecretNotFoundError(f"key (path) not found: {path}")
        new_path = new_path or path
        if new_path != path and self._find_id(new_path) is not None:
            raise SecretExistsError(f"cannot rename {path}: a secret already exists at {new_path}")
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        record = self.data.pop(key_id)
        try:
            record.update(new_path, plaintext, key)
        except TombError:
            self.data[key_id] = record
            raise
        self.data[record.key_id()] = record
        return record

    def list(self, pattern: str) -> List[SecretRecord]:
        """ Return every record whose path matches the glob ``pattern``, ordered by id. """
        regex = glob_to_regex(pattern)
        result = []
        for key_id in sorted(self.data):
            record = self.data[key_id]
            if regex.match(record.path) and key_id in (record.key_id(), record.path):
                result.append(record.copy())
        return result

    def __len__(self):
        return len(self.data)

    def __contains__(self, path):
        return self._find_id(path) is not None

    def __repr__(self):
        return f"SecretStore(filepath={self.filepath!r}, secrets={len(self.data)})"
